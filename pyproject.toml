[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pgreplicate"
version = "0.1.0"
description = "Decode Postgres logical replication data and prepare it for DuckDB and BigQuery sinks"
requires-python = ">=3.10"
dependencies = []
keywords = ["postgres", "replication", "cdc", "duckdb", "bigquery", "logical-decoding"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["pgreplicate"]

[tool.pytest.ini_options]
addopts = "-ra"

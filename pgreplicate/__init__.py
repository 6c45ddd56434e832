"""Decoding, query and encoding helpers for Postgres logical replication."""

__version__ = "0.1.0"
"""SQL for a logical replication client and parsing of its results.

Each query builder returns the text sent with the simple query protocol.
Each parser takes the rows that came back, as mappings from column name to
text value (``None`` for SQL null), and turns them into Python values.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from .cells import ColumnSchema, PgType, TableName

logger = logging.getLogger(__name__)

Row = Mapping[str, "str | None"]

_U32 = re.compile(r"\+?[0-9]+")
_I32 = re.compile(r"[+-]?[0-9]+")
_HEX = re.compile(r"[0-9A-Fa-f]+")
_PLAIN_IDENT = re.compile(r"[a-z_][a-z0-9_]*")

# Keywords that Postgres will not accept as bare identifiers.
_KEYWORDS = frozenset(
    """
    all analyse analyze and any array as asc asymmetric both case cast check
    collate column constraint create current_catalog current_date current_role
    current_time current_timestamp current_user default deferrable desc
    distinct do else end except false fetch for foreign from grant group
    having in initially intersect into lateral leading limit localtime
    localtimestamp not null offset on only or order placing primary
    references returning select session_user some symmetric system_user
    table then to trailing true union unique user using variadic when where
    window with authorization binary collation concurrently cross
    current_schema freeze full ilike inner is isnull join left like natural
    notnull outer overlaps right similar tablesample verbose between bigint
    bit boolean char character coalesce dec decimal exists extract float
    greatest grouping inout int integer interval least national nchar none
    normalize nullif numeric out overlay position precision real row
    setof smallint substring time timestamp treat trim values varchar
    xmlattributes xmlconcat xmlelement xmlexists xmlforest xmlnamespaces
    xmlparse xmlpi xmlroot xmlserialize xmltable
    """.split()
)


class ReplicationClientError(Exception):
    """A replication query returned something the client cannot use."""


@dataclass(frozen=True)
class SlotInfo:
    confirmed_flush_lsn: int


def quote_identifier(s: str) -> str:
    """Quote an identifier unless it can be written bare."""
    if _PLAIN_IDENT.fullmatch(s) and s not in _KEYWORDS:
        return s
    return '"' + s.replace('"', '""') + '"'


def quote_literal(s: str) -> str:
    """Quote a string literal, using the ``E''`` form when it has backslashes."""
    quoted = s.replace("'", "''")
    if "\\" in s:
        return "E'" + quoted.replace("\\", "\\\\") + "'"
    return "'" + quoted + "'"


def format_lsn(lsn: int) -> str:
    """Format a log sequence number as ``XXX/XXX``."""
    if not 0 <= lsn < 2**64:
        raise ReplicationClientError("not a valid PgLsn")
    return f"{lsn >> 32:X}/{lsn & 0xFFFFFFFF:X}"


def parse_lsn(s: str) -> int:
    """Parse a ``XXX/XXX`` log sequence number."""
    high, sep, low = s.partition("/")
    if not sep or not _HEX.fullmatch(high) or not _HEX.fullmatch(low):
        raise ReplicationClientError("not a valid PgLsn")
    hi, lo = int(high, 16), int(low, 16)
    if hi >= 2**32 or lo >= 2**32:
        raise ReplicationClientError("not a valid PgLsn")
    return (hi << 32) | lo


def _required(row: Row, column: str, reported: str, table: str) -> str:
    value = row.get(column)
    if value is None:
        raise ReplicationClientError(f"column {reported} is missing from table {table}")
    return value


def _parse_u32(text: str, message: str) -> int:
    if not _U32.fullmatch(text) or int(text) >= 2**32:
        raise ReplicationClientError(message)
    return int(text)


def _parse_i32(text: str, message: str) -> int:
    if not _I32.fullmatch(text) or not -(2**31) <= int(text) < 2**31:
        raise ReplicationClientError(message)
    return int(text)


def table_copy_query(table_name: TableName, column_schemas: Sequence[ColumnSchema]) -> str:
    column_list = ", ".join(quote_identifier(c.name) for c in column_schemas)
    return (
        f"COPY {table_name.as_quoted_identifier()} ({column_list}) "
        "TO STDOUT WITH (FORMAT text);"
    )


def column_schemas_query(table_id: int, publication: str | None = None) -> str:
    """Query the columns of a table, optionally limited to a publication's column list."""
    if publication is not None:
        pub_cte = f"""with pub_attrs as (
                        select unnest(r.prattrs)
                        from pg_publication_rel r
                        left join pg_publication p on r.prpubid = p.oid
                        where p.pubname = {quote_literal(publication)}
                        and r.prrelid = {table_id}
                    )"""
        pub_pred = """and (
                    case (select count(*) from pub_attrs)
                    when 0 then true
                    else (a.attnum in (select * from pub_attrs))
                    end
                )"""
    else:
        pub_cte = ""
        pub_pred = ""
    return f"""{pub_cte}
            select a.attname,
                a.atttypid,
                a.atttypmod,
                a.attnotnull,
                coalesce(i.indisprimary, false) as primary
            from pg_attribute a
            left join pg_index i
                on a.attrelid = i.indrelid
                and a.attnum = any(i.indkey)
                and i.indisprimary = true
            where a.attnum > 0::int2
            and not a.attisdropped
            and a.attgenerated = ''
            and a.attrelid = {table_id}
            {pub_pred}
            order by a.attnum
            """


def parse_column_schemas(rows: Iterable[Row]) -> list[ColumnSchema]:
    """Build column schemas from the rows of :func:`column_schemas_query`.

    Types that are not known map to a ``typ`` of None.
    """
    schemas = []
    for row in rows:
        name = _required(row, "attname", "attname", "pg_attribute")
        type_oid = _parse_u32(
            _required(row, "atttypid", "atttypid", "pg_attribute"),
            "oid column is not a valid u32",
        )
        modifier = _parse_i32(
            _required(row, "atttypmod", "atttypmod", "pg_attribute"),
            "type modifier column is not a valid u32",
        )
        nullable = _required(row, "attnotnull", "attnotnull", "pg_attribute") == "f"
        primary = _required(row, "primary", "indisprimary", "pg_index") == "t"
        schemas.append(
            ColumnSchema(
                name=name,
                typ=PgType.from_oid(type_oid),
                modifier=modifier,
                nullable=nullable,
                primary=primary,
            )
        )
    return schemas


def table_info_query(table: TableName) -> str:
    return f"""select c.oid,
                c.relreplident
            from pg_class c
            join pg_namespace n
                on (c.relnamespace = n.oid)
            where n.nspname = {quote_literal(table.schema)}
                and c.relname = {quote_literal(table.name)}
            """


def parse_table_id(rows: Iterable[Row]) -> int | None:
    """Return the relation id from :func:`table_info_query`, or None if no table.

    Only the default and full replica identities are accepted.
    """
    for row in rows:
        identity = _required(row, "relreplident", "relreplident", "pg_class")
        if identity not in ("d", "f"):
            raise ReplicationClientError(f"replica identity '{identity}' not supported")
        return _parse_u32(
            _required(row, "oid", "oid", "pg_class"), "oid column is not a valid u32"
        )
    return None


def slot_query(slot_name: str) -> str:
    return (
        "select confirmed_flush_lsn from pg_replication_slots "
        f"where slot_name = {quote_literal(slot_name)};"
    )


def parse_slot_info(rows: Iterable[Row]) -> SlotInfo | None:
    for row in rows:
        lsn = _required(
            row, "confirmed_flush_lsn", "confirmed_flush_lsn", "pg_replication_slots"
        )
        return SlotInfo(parse_lsn(lsn))
    return None


def create_slot_query(slot_name: str) -> str:
    return f"CREATE_REPLICATION_SLOT {quote_identifier(slot_name)} LOGICAL pgoutput USE_SNAPSHOT"


def parse_created_slot(rows: Iterable[Row]) -> SlotInfo:
    for row in rows:
        point = _required(
            row, "consistent_point", "consistent_point", "create_replication_slot"
        )
        return SlotInfo(parse_lsn(point))
    raise ReplicationClientError("failed to create slot")


def publication_tables_query(publication: str) -> str:
    return (
        "select schemaname, tablename from pg_publication_tables "
        f"where pubname = {quote_literal(publication)};"
    )


def parse_publication_table_names(rows: Iterable[Row]) -> list[TableName]:
    return [
        TableName(
            schema=_required(row, "schemaname", "schemaname", "pg_publication_tables"),
            name=_required(row, "tablename", "tablename", "pg_publication_tables"),
        )
        for row in rows
    ]


def publication_exists_query(publication: str) -> str:
    return (
        "select 1 as exists from pg_publication "
        f"where pubname = {quote_literal(publication)};"
    )


def start_replication_query(publication: str, slot_name: str, start_lsn: int) -> str:
    options = (
        f"(\"proto_version\" '1', "
        f"\"publication_names\" {quote_literal(quote_identifier(publication))})"
    )
    return (
        f"START_REPLICATION SLOT {quote_identifier(slot_name)} "
        f"LOGICAL {format_lsn(start_lsn)} {options}"
    )
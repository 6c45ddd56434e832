"""Conversion of logical replication messages into change events."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .cells import Cell, ColumnSchema, TableRow, TableSchema
from .text import FromTextError, default_value, try_from_str


class CdcEventConversionError(ValueError):
    """A replication message could not be turned into a change event."""


@dataclass(frozen=True)
class TupleData:
    """One column of a tuple as sent by pgoutput.

    ``format`` is the protocol marker: ``n`` null, ``u`` unchanged TOAST,
    ``t`` text and ``b`` binary.
    """

    format: str
    data: bytes = b""

    @classmethod
    def null(cls) -> TupleData:
        return cls("n")

    @classmethod
    def unchanged_toast(cls) -> TupleData:
        return cls("u")

    @classmethod
    def text(cls, data: bytes) -> TupleData:
        return cls("t", bytes(data))

    @classmethod
    def binary(cls, data: bytes) -> TupleData:
        return cls("b", bytes(data))


class MessageKind(Enum):
    """Logical replication message types, keyed by their pgoutput byte."""

    BEGIN = "B"
    COMMIT = "C"
    ORIGIN = "O"
    RELATION = "R"
    TYPE = "Y"
    INSERT = "I"
    UPDATE = "U"
    DELETE = "D"
    TRUNCATE = "T"
    MESSAGE = "M"


@dataclass
class LogicalMessage:
    """A decoded logical replication message carried in XLogData.

    ``new_tuple`` holds the row of an insert or the new row of an update;
    deletes carry ``key_tuple`` or ``old_tuple``. ``body`` keeps the
    decoded payload of messages that pass through unchanged.
    """

    kind: MessageKind
    rel_id: int = 0
    new_tuple: Sequence[TupleData] | None = None
    key_tuple: Sequence[TupleData] | None = None
    old_tuple: Sequence[TupleData] | None = None
    body: Any = None


@dataclass
class KeepAlive:
    """A primary keepalive message."""

    wal_end: int = 0
    timestamp: int = 0
    reply: int = 0


class CdcEventKind(Enum):
    BEGIN = "begin"
    COMMIT = "commit"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    RELATION = "relation"
    TYPE = "type"
    ORIGIN = "origin"
    TRUNCATE = "truncate"
    KEEP_ALIVE_REQUESTED = "keep_alive_requested"


@dataclass
class CdcEvent:
    """A change event; row events carry ``table_id`` and ``row``."""

    kind: CdcEventKind
    table_id: int | None = None
    row: TableRow | None = None
    body: Any = None
    reply: bool = False

    def is_last_in_batch(self) -> bool:
        return self.kind in (CdcEventKind.COMMIT, CdcEventKind.KEEP_ALIVE_REQUESTED)


_PASSTHROUGH = {
    MessageKind.BEGIN: CdcEventKind.BEGIN,
    MessageKind.COMMIT: CdcEventKind.COMMIT,
    MessageKind.ORIGIN: CdcEventKind.ORIGIN,
    MessageKind.RELATION: CdcEventKind.RELATION,
    MessageKind.TYPE: CdcEventKind.TYPE,
    MessageKind.TRUNCATE: CdcEventKind.TRUNCATE,
}


def _cell_from_tuple(column_schema: ColumnSchema, data: TupleData) -> Cell:
    if data.format == "n":
        return Cell()
    if data.format == "b":
        raise CdcEventConversionError("binary format not yet supported")
    try:
        if data.format == "u":
            return default_value(column_schema.typ)
        if data.format == "t":
            try:
                text = data.data.decode("utf-8")
            except UnicodeDecodeError as e:
                raise CdcEventConversionError("invalid string value") from e
            return try_from_str(column_schema.typ, text)
    except FromTextError as e:
        raise CdcEventConversionError(f"from bytes error: {e}") from e
    raise CdcEventConversionError(f"unknown tuple data format {data.format!r}")


def row_from_tuple_data(
    column_schemas: Sequence[ColumnSchema], tuple_data: Sequence[TupleData]
) -> TableRow:
    """Build a row from tuple columns, one per column schema."""
    if len(tuple_data) < len(column_schemas):
        raise CdcEventConversionError(
            f"tuple has {len(tuple_data)} columns, schema has {len(column_schemas)}"
        )
    return TableRow(
        [_cell_from_tuple(schema, data) for schema, data in zip(column_schemas, tuple_data)]
    )


def _columns_for(table_id: int, table_schemas: Mapping[int, TableSchema]) -> list[ColumnSchema]:
    schema = table_schemas.get(table_id)
    if schema is None:
        raise CdcEventConversionError(f"schema missing for table id {table_id}")
    return schema.column_schemas


def convert_message(
    message: LogicalMessage | KeepAlive, table_schemas: Mapping[int, TableSchema]
) -> CdcEvent:
    """Turn a replication message into a :class:`CdcEvent`."""
    if isinstance(message, KeepAlive):
        return CdcEvent(CdcEventKind.KEEP_ALIVE_REQUESTED, reply=message.reply == 1)
    if not isinstance(message, LogicalMessage):
        raise CdcEventConversionError("unknown replication message")

    kind = message.kind
    if kind in _PASSTHROUGH:
        return CdcEvent(_PASSTHROUGH[kind], body=message.body)

    if kind in (MessageKind.INSERT, MessageKind.UPDATE, MessageKind.DELETE):
        table_id = message.rel_id
        columns = _columns_for(table_id, table_schemas)
        if kind is MessageKind.DELETE:
            tuple_data = (
                message.key_tuple if message.key_tuple is not None else message.old_tuple
            )
            if tuple_data is None:
                raise CdcEventConversionError("missing tuple in delete body")
            event_kind = CdcEventKind.DELETE
        else:
            tuple_data = message.new_tuple
            if tuple_data is None:
                raise CdcEventConversionError(f"missing tuple in {kind.name.lower()} body")
            event_kind = (
                CdcEventKind.INSERT if kind is MessageKind.INSERT else CdcEventKind.UPDATE
            )
        row = row_from_tuple_data(columns, tuple_data)
        return CdcEvent(event_kind, table_id=table_id, row=row)

    raise CdcEventConversionError("unknown replication message")
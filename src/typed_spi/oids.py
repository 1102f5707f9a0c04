"""Built-in type identifiers shared between the engine and host code."""

from __future__ import annotations

import datetime
import decimal
import uuid
from enum import IntEnum


class BuiltinOid(IntEnum):
    """Engine type identifiers, numbered the way PostgreSQL numbers them."""

    BOOL = 16
    BYTEA = 17
    INT8 = 20
    INT2 = 21
    INT4 = 23
    TEXT = 25
    JSON = 114
    FLOAT4 = 700
    FLOAT8 = 701
    UNKNOWN = 705
    VARCHAR = 1043
    DATE = 1082
    TIMESTAMP = 1114
    TIMESTAMPTZ = 1184
    NUMERIC = 1700
    UUID = 2950
    JSONB = 3802

    def oid(self) -> int:
        """Return the raw integer identifier."""
        return int(self)

    @property
    def sql_name(self) -> str:
        """Return the SQL spelling of this type."""
        return SQL_NAMES[self]

    @property
    def host_type(self) -> type | None:
        """Return the Python type values of this oid decode to."""
        return HOST_TYPES.get(self)

    @property
    def is_integer(self) -> bool:
        return self in INTEGER_OIDS

    @classmethod
    def lookup(cls, value: int | BuiltinOid) -> BuiltinOid | None:
        """Return the member for an integer oid, or None if it is not built in."""
        try:
            return cls(value)
        except ValueError:
            return None


SQL_NAMES: dict[BuiltinOid, str] = {
    BuiltinOid.BOOL: "boolean",
    BuiltinOid.BYTEA: "bytea",
    BuiltinOid.INT8: "bigint",
    BuiltinOid.INT2: "smallint",
    BuiltinOid.INT4: "integer",
    BuiltinOid.TEXT: "text",
    BuiltinOid.JSON: "json",
    BuiltinOid.FLOAT4: "real",
    BuiltinOid.FLOAT8: "double precision",
    BuiltinOid.UNKNOWN: "unknown",
    BuiltinOid.VARCHAR: "character varying",
    BuiltinOid.DATE: "date",
    BuiltinOid.TIMESTAMP: "timestamp without time zone",
    BuiltinOid.TIMESTAMPTZ: "timestamp with time zone",
    BuiltinOid.NUMERIC: "numeric",
    BuiltinOid.UUID: "uuid",
    BuiltinOid.JSONB: "jsonb",
}

# UNKNOWN has no host type; values tagged with it never decode.
HOST_TYPES: dict[BuiltinOid, type] = {
    BuiltinOid.BOOL: bool,
    BuiltinOid.BYTEA: bytes,
    BuiltinOid.INT8: int,
    BuiltinOid.INT2: int,
    BuiltinOid.INT4: int,
    BuiltinOid.TEXT: str,
    BuiltinOid.JSON: object,
    BuiltinOid.FLOAT4: float,
    BuiltinOid.FLOAT8: float,
    BuiltinOid.VARCHAR: str,
    BuiltinOid.DATE: datetime.date,
    BuiltinOid.TIMESTAMP: datetime.datetime,
    BuiltinOid.TIMESTAMPTZ: datetime.datetime,
    BuiltinOid.NUMERIC: decimal.Decimal,
    BuiltinOid.UUID: uuid.UUID,
    BuiltinOid.JSONB: object,
}

INTEGER_OIDS = frozenset({BuiltinOid.INT2, BuiltinOid.INT4, BuiltinOid.INT8})
TEXT_OIDS = frozenset({BuiltinOid.TEXT, BuiltinOid.VARCHAR})
FLOAT_OIDS = frozenset({BuiltinOid.FLOAT4, BuiltinOid.FLOAT8})
JSON_OIDS = frozenset({BuiltinOid.JSON, BuiltinOid.JSONB})
TIMESTAMP_OIDS = frozenset({BuiltinOid.TIMESTAMP, BuiltinOid.TIMESTAMPTZ})


def integer_range(oid: BuiltinOid) -> tuple[int, int]:
    """Return (min, max) for an integer oid."""
    bits = {
        BuiltinOid.INT2: 16,
        BuiltinOid.INT4: 32,
        BuiltinOid.INT8: 64,
    }[oid]
    return (-(1 << (bits - 1)), (1 << (bits - 1)) - 1)


def oid_for_value(value: object) -> BuiltinOid:
    """Infer a type tag from a Python value the engine handed back.

    Used when the engine reports a column type this package does not map.
    """
    if value is None:
        return BuiltinOid.UNKNOWN
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return BuiltinOid.BOOL
    if isinstance(value, int):
        lo, hi = integer_range(BuiltinOid.INT4)
        if lo <= value <= hi:
            return BuiltinOid.INT4
        lo, hi = integer_range(BuiltinOid.INT8)
        if lo <= value <= hi:
            return BuiltinOid.INT8
        return BuiltinOid.NUMERIC
    if isinstance(value, float):
        return BuiltinOid.FLOAT8
    if isinstance(value, decimal.Decimal):
        return BuiltinOid.NUMERIC
    if isinstance(value, str):
        return BuiltinOid.TEXT
    if isinstance(value, (bytes, bytearray, memoryview)):
        return BuiltinOid.BYTEA
    if isinstance(value, uuid.UUID):
        return BuiltinOid.UUID
    # datetime before date: datetime is a date subclass
    if isinstance(value, datetime.datetime):
        return BuiltinOid.TIMESTAMPTZ if value.tzinfo is not None else BuiltinOid.TIMESTAMP
    if isinstance(value, datetime.date):
        return BuiltinOid.DATE
    if isinstance(value, (dict, list)):
        return BuiltinOid.JSON
    return BuiltinOid.UNKNOWN

"""Tagged engine values and their conversion to and from host types."""

from __future__ import annotations

import datetime
import decimal
import json
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar, Union

from typed_spi.errors import DecodeError, StatementError
from typed_spi.oids import (
    FLOAT_OIDS,
    INTEGER_OIDS,
    JSON_OIDS,
    TEXT_OIDS,
    TIMESTAMP_OIDS,
    BuiltinOid,
    integer_range,
)

T = TypeVar("T")

# What a caller may ask a column to become: a Python type, or an oid when the
# exact engine width matters (e.g. BuiltinOid.INT4 rejects 64-bit values).
DecodeTarget = Union[type, BuiltinOid, int]


@dataclass(frozen=True)
class Datum:
    """A single engine value together with its runtime type tag."""

    oid: int
    value: Any

    @property
    def is_null(self) -> bool:
        return self.value is None

    @property
    def builtin(self) -> BuiltinOid | None:
        return BuiltinOid.lookup(self.oid)

    def decode(self, target: DecodeTarget) -> Decoded:
        return decode(self, target)


class DecodedKind(Enum):
    PRESENT = "present"
    NULL = "null"
    MISMATCH = "mismatch"


@dataclass(frozen=True)
class Decoded(Generic[T]):
    """Outcome of decoding one column: present(value), null, or mismatch(reason)."""

    kind: DecodedKind
    value: Any = None
    reason: str | None = None

    @classmethod
    def present(cls, value: Any) -> Decoded:
        return cls(DecodedKind.PRESENT, value)

    @classmethod
    def null(cls) -> Decoded:
        return cls(DecodedKind.NULL)

    @classmethod
    def mismatch(cls, reason: str) -> Decoded:
        return cls(DecodedKind.MISMATCH, reason=reason)

    @property
    def is_present(self) -> bool:
        return self.kind is DecodedKind.PRESENT

    @property
    def is_null(self) -> bool:
        return self.kind is DecodedKind.NULL

    @property
    def is_mismatch(self) -> bool:
        return self.kind is DecodedKind.MISMATCH

    def unwrap(self) -> T | None:
        """Return the value, None for SQL NULL, or raise DecodeError on mismatch."""
        if self.kind is DecodedKind.MISMATCH:
            raise DecodeError(self.reason or "type mismatch")
        return self.value


# Host type -> engine oids it may be decoded from
_ACCEPTED_OIDS: dict[type, frozenset[BuiltinOid]] = {
    bool: frozenset({BuiltinOid.BOOL}),
    int: INTEGER_OIDS | {BuiltinOid.NUMERIC},
    float: FLOAT_OIDS,
    decimal.Decimal: INTEGER_OIDS | {BuiltinOid.NUMERIC},
    str: TEXT_OIDS,
    bytes: frozenset({BuiltinOid.BYTEA}),
    uuid.UUID: frozenset({BuiltinOid.UUID}),
    datetime.date: frozenset({BuiltinOid.DATE}),
    datetime.datetime: TIMESTAMP_OIDS,
    dict: JSON_OIDS,
    list: JSON_OIDS,
    object: JSON_OIDS,
}

_FAMILIES: tuple[frozenset[BuiltinOid], ...] = (
    INTEGER_OIDS,
    TEXT_OIDS,
    FLOAT_OIDS,
    JSON_OIDS,
    TIMESTAMP_OIDS,
)


def _type_name(target: DecodeTarget) -> str:
    if isinstance(target, BuiltinOid):
        return target.sql_name
    if isinstance(target, type):
        return target.__name__
    return f"oid {target}"


def _convert(value: Any, host_type: type) -> Any:
    """Convert an engine-native value to host_type. Raises on failure."""
    if host_type is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"{value!r} is not an integer")
        return value
    if host_type is bool:
        if not isinstance(value, bool):
            raise TypeError(f"{value!r} is not a boolean")
        return value
    if host_type is float:
        return float(value)
    if host_type is decimal.Decimal:
        return value if isinstance(value, decimal.Decimal) else decimal.Decimal(value)
    if host_type is str:
        if not isinstance(value, str):
            raise TypeError(f"{value!r} is not text")
        return value
    if host_type is bytes:
        return bytes(value)
    if host_type is uuid.UUID:
        return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
    if host_type is datetime.datetime:
        if not isinstance(value, datetime.datetime):
            raise TypeError(f"{value!r} is not a timestamp")
        return value
    if host_type is datetime.date:
        if isinstance(value, datetime.datetime) or not isinstance(value, datetime.date):
            raise TypeError(f"{value!r} is not a date")
        return value
    if host_type in (dict, list, object):
        parsed = json.loads(value) if isinstance(value, (str, bytes)) else value
        if host_type is not object and not isinstance(parsed, host_type):
            raise TypeError(f"JSON value is not a {host_type.__name__}")
        return parsed
    raise TypeError(f"unsupported host type {host_type!r}")


def decode(datum: Datum, target: DecodeTarget) -> Decoded:
    """Decode a datum into the requested type.

    SQL NULL is always ``null`` regardless of the requested type. Everything
    else is checked against the datum's tag; an unrecognised tag, an
    incompatible tag, or a failed conversion yields ``mismatch``.
    """
    if datum.value is None:
        return Decoded.null()

    source = datum.builtin
    if source is None or source is BuiltinOid.UNKNOWN:
        return Decoded.mismatch(f"unrecognized type oid {datum.oid}")

    if isinstance(target, int) and not isinstance(target, bool):
        wanted = BuiltinOid.lookup(target)
        if wanted is None or wanted is BuiltinOid.UNKNOWN:
            return Decoded.mismatch(f"cannot decode into unrecognized type oid {int(target)}")
        return _decode_to_oid(datum, source, wanted)

    if not isinstance(target, type) or target not in _ACCEPTED_OIDS:
        return Decoded.mismatch(f"no decoder for host type {target!r}")
    if source not in _ACCEPTED_OIDS[target]:
        return Decoded.mismatch(
            f"cannot decode {source.sql_name} (oid {source.oid()}) as {_type_name(target)}"
        )
    try:
        return Decoded.present(_convert(datum.value, target))
    except (TypeError, ValueError, ArithmeticError) as e:
        return Decoded.mismatch(f"cannot decode {source.sql_name} as {_type_name(target)}: {e}")


def _decode_to_oid(datum: Datum, source: BuiltinOid, wanted: BuiltinOid) -> Decoded:
    """Decode against an exact engine type, range-checking integer widths."""
    if source is not wanted and not any(source in fam and wanted in fam for fam in _FAMILIES):
        return Decoded.mismatch(f"cannot decode {source.sql_name} as {wanted.sql_name}")
    host_type = wanted.host_type
    if host_type is None:
        return Decoded.mismatch(f"no host type for {wanted.sql_name}")
    try:
        value = _convert(datum.value, host_type)
    except (TypeError, ValueError, ArithmeticError) as e:
        return Decoded.mismatch(f"cannot decode {source.sql_name} as {wanted.sql_name}: {e}")
    if wanted.is_integer:
        lo, hi = integer_range(wanted)
        if not lo <= value <= hi:
            return Decoded.mismatch(f"value {value} is out of range for type {wanted.sql_name}")
    return Decoded.present(value)


def encode(oid: BuiltinOid, value: Any) -> Any:
    """Validate a host value against its declared type and return the engine form.

    None always encodes as SQL NULL of the declared type. Raises
    StatementError when the value cannot be bound as that type.
    """
    if value is None:
        return None

    def reject() -> StatementError:
        return StatementError(
            f"cannot bind {type(value).__name__} value {value!r} as type {oid.sql_name}"
        )

    if oid is BuiltinOid.BOOL:
        if not isinstance(value, bool):
            raise reject()
        return value
    if oid.is_integer:
        if isinstance(value, bool) or not isinstance(value, int):
            raise reject()
        lo, hi = integer_range(oid)
        if not lo <= value <= hi:
            raise StatementError(f"value \"{value}\" is out of range for type {oid.sql_name}")
        return value
    if oid in FLOAT_OIDS:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise reject()
        return float(value)
    if oid is BuiltinOid.NUMERIC:
        if isinstance(value, bool) or not isinstance(value, (int, float, decimal.Decimal)):
            raise reject()
        return value if isinstance(value, decimal.Decimal) else decimal.Decimal(str(value))
    if oid in TEXT_OIDS:
        if not isinstance(value, str):
            raise reject()
        return value
    if oid is BuiltinOid.UUID:
        if isinstance(value, uuid.UUID):
            return value
        if isinstance(value, str):
            try:
                return uuid.UUID(value)
            except ValueError:
                raise StatementError(
                    f"invalid input syntax for type uuid: \"{value}\""
                ) from None
        raise reject()
    if oid is BuiltinOid.BYTEA:
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise reject()
        return bytes(value)
    if oid is BuiltinOid.DATE:
        if isinstance(value, datetime.datetime) or not isinstance(value, datetime.date):
            raise reject()
        return value
    if oid in TIMESTAMP_OIDS:
        if not isinstance(value, datetime.datetime):
            raise reject()
        return value
    if oid in JSON_OIDS:
        try:
            return json.dumps(value)
        except (TypeError, ValueError):
            raise reject() from None
    raise reject()

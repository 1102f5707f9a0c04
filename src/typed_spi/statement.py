"""Statements and their typed argument bindings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Sequence, Tuple, Union

from typed_spi.datum import encode
from typed_spi.errors import StatementError
from typed_spi.oids import BuiltinOid

# What callers pass as an argument: (type, value). A value of None is SQL NULL.
Argument = Tuple[Union[BuiltinOid, int], Any]


@dataclass(frozen=True)
class Binding:
    """One bound argument: a declared type and an optional value."""

    oid: BuiltinOid
    value: Any = None

    @property
    def is_null(self) -> bool:
        return self.value is None

    @classmethod
    def of(cls, oid: BuiltinOid | int, value: Any = None) -> Binding:
        """Build a binding, validating the value against the declared type."""
        builtin = BuiltinOid.lookup(oid)
        if builtin is None or builtin is BuiltinOid.UNKNOWN:
            raise StatementError(f"could not bind parameter of unsupported type oid {oid!r}")
        return cls(builtin, encode(builtin, value))


@dataclass(frozen=True)
class Statement:
    """SQL text plus its ordered bindings. Built per call and then discarded."""

    sql: str
    bindings: tuple[Binding, ...] = ()

    @classmethod
    def build(cls, sql: str, args: Iterable[Argument | Binding] | None = None) -> Statement:
        bindings = []
        for arg in args or ():
            if isinstance(arg, Binding):
                bindings.append(arg)
                continue
            try:
                oid, value = arg
            except (TypeError, ValueError):
                raise StatementError(
                    f"argument {arg!r} is not a (type, value) pair"
                ) from None
            bindings.append(Binding.of(oid, value))
        return cls(sql, tuple(bindings))

    @property
    def arg_count(self) -> int:
        return len(self.bindings)

    def types(self) -> Sequence[BuiltinOid]:
        return [b.oid for b in self.bindings]

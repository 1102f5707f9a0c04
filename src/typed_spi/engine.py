"""The low-level call contract between this package and the database engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, Sequence

from typed_spi.datum import Datum
from typed_spi.statement import Binding


@dataclass(frozen=True)
class Column:
    """Result column metadata."""

    name: str
    oid: int
    type_name: str = ""


@dataclass
class TupleTable:
    """Raw answer to one statement: tagged rows plus the processed-row count."""

    columns: list[Column] = field(default_factory=list)
    rows: list[tuple[Datum, ...]] = field(default_factory=list)
    processed: int = 0


class EngineConnection(Protocol):
    """The connection resource held by the outermost execution frame."""

    def execute(
        self,
        sql: str,
        bindings: Sequence[Binding],
        read_only: bool,
        limit: int | None = None,
    ) -> TupleTable: ...

    def explain(self, sql: str, bindings: Sequence[Binding]) -> str: ...

    def close(self) -> None: ...


class Engine(Protocol):
    """An engine instance already running in this process."""

    def connect(self) -> EngineConnection: ...

    def close(self) -> None: ...

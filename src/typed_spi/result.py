"""Result sets and rows read back from the engine."""

from __future__ import annotations

from typing import Any, Iterator, TypeVar, overload

from typed_spi.datum import Datum, DecodeTarget, Decoded
from typed_spi.engine import Column, TupleTable
from typed_spi.errors import DecodeError
from typed_spi.frames import ExecutionFrame

T = TypeVar("T")
U = TypeVar("U")
V = TypeVar("V")


class Row:
    """One row of a result set, addressed by 1-based column ordinal.

    Values stay in their engine form until a typed accessor asks for them.
    A column past the end of the row reads as None, the same as SQL NULL.
    """

    def __init__(self, datums: tuple[Datum, ...], columns: list[Column], frame: ExecutionFrame) -> None:
        self._datums = datums
        self._columns = columns
        self._frame = frame

    def __len__(self) -> int:
        self._frame.check_open()
        return len(self._datums)

    @property
    def is_empty(self) -> bool:
        self._frame.check_open()
        return not self._datums

    def datum(self, ordinal: int) -> Datum | None:
        """Return the raw datum at ``ordinal``, or None past the end of the row."""
        self._frame.check_open()
        if ordinal < 1:
            raise DecodeError(f"column ordinal {ordinal} is invalid; ordinals start at 1")
        if ordinal > len(self._datums):
            return None
        return self._datums[ordinal - 1]

    def try_get(self, ordinal: int, target: DecodeTarget) -> Decoded:
        """Decode one column without raising on a type mismatch."""
        datum = self.datum(ordinal)
        if datum is None:
            return Decoded.null()
        return datum.decode(target)

    @overload
    def get_datum(self, ordinal: int, target: type[T]) -> T | None: ...

    @overload
    def get_datum(self, ordinal: int, target: DecodeTarget) -> Any: ...

    def get_datum(self, ordinal, target):
        """Decode column ``ordinal`` as ``target``.

        Returns None for SQL NULL and for a column past the end of the row.
        Raises DecodeError when the stored type cannot become ``target``.
        """
        return self.try_get(ordinal, target).unwrap()

    def get_by_name(self, name: str, target: DecodeTarget) -> Any:
        """Decode the first column called ``name``."""
        for index, column in enumerate(self._columns, start=1):
            if column.name == name:
                return self.get_datum(index, target)
        self._frame.check_open()
        raise DecodeError(f"no column named {name!r}")

    def get_one(self, t: type[T]) -> T | None:
        return self.get_datum(1, t)

    def get_two(self, t: type[T], u: type[U]) -> tuple[T | None, U | None]:
        return (self.get_datum(1, t), self.get_datum(2, u))

    def get_three(
        self, t: type[T], u: type[U], v: type[V]
    ) -> tuple[T | None, U | None, V | None]:
        return (self.get_datum(1, t), self.get_datum(2, u), self.get_datum(3, v))

    def __repr__(self) -> str:
        return f"Row({[d.value for d in self._datums]!r})"


class ResultSet:
    """Rows produced by one statement, valid only while its frame is open."""

    def __init__(self, table: TupleTable, frame: ExecutionFrame) -> None:
        self._table = table
        self._frame = frame

    @property
    def frame(self) -> ExecutionFrame:
        return self._frame

    @property
    def processed(self) -> int:
        """Rows returned, or rows affected for INSERT/UPDATE/DELETE."""
        self._frame.check_open()
        return self._table.processed

    @property
    def columns(self) -> list[Column]:
        self._frame.check_open()
        return list(self._table.columns)

    def column_name(self, ordinal: int) -> str:
        return self._column(ordinal).name

    def column_oid(self, ordinal: int) -> int:
        return self._column(ordinal).oid

    def _column(self, ordinal: int) -> Column:
        self._frame.check_open()
        if not 1 <= ordinal <= len(self._table.columns):
            raise DecodeError(f"column ordinal {ordinal} is out of range")
        return self._table.columns[ordinal - 1]

    def __len__(self) -> int:
        self._frame.check_open()
        return len(self._table.rows)

    @property
    def is_empty(self) -> bool:
        self._frame.check_open()
        return not self._table.rows

    def row(self, index: int) -> Row:
        """Return the row at 0-based ``index``."""
        self._frame.check_open()
        return Row(self._table.rows[index], self._table.columns, self._frame)

    def first(self) -> Row:
        """Return the first row; an empty result gives an empty row."""
        self._frame.check_open()
        if not self._table.rows:
            return Row((), self._table.columns, self._frame)
        return self.row(0)

    def __iter__(self) -> Iterator[Row]:
        self._frame.check_open()
        for datums in self._table.rows:
            yield Row(datums, self._table.columns, self._frame)

    def __repr__(self) -> str:
        return f"ResultSet(rows={len(self._table.rows)}, processed={self._table.processed})"

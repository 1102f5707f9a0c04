"""Tests for ResultSet and Row accessors."""

import uuid

import pytest

from typed_spi.datum import Datum
from typed_spi.engine import Column, TupleTable
from typed_spi.errors import DecodeError, FrameError
from typed_spi.frames import ExecutionContext
from typed_spi.oids import BuiltinOid
from typed_spi.result import ResultSet


class _Connection:
    def close(self):
        pass


class _Engine:
    def connect(self):
        return _Connection()

    def close(self):
        pass


@pytest.fixture
def context():
    return ExecutionContext(_Engine())


@pytest.fixture
def frame(context):
    frame = context.open_frame()
    yield frame
    if not frame.closed:
        context.close_frame(frame)


def _table(*rows, columns=None):
    if columns is None:
        width = max((len(r) for r in rows), default=0)
        columns = [Column(f"c{i}", BuiltinOid.UNKNOWN) for i in range(1, width + 1)]
    return TupleTable(columns=columns, rows=[tuple(r) for r in rows], processed=len(rows))


class TestRow:
    def test_get_datum(self, frame):
        rs = ResultSet(_table([Datum(BuiltinOid.INT4, 42), Datum(BuiltinOid.TEXT, "test")]), frame)
        row = rs.first()
        assert row.get_datum(1, int) == 42
        assert row.get_datum(2, str) == "test"
        assert len(row) == 2

    def test_null_independence(self, frame):
        """(42, NULL, NULL) read three at a time gives (42, None, None)."""
        rs = ResultSet(_table([
            Datum(BuiltinOid.INT4, 42),
            Datum(BuiltinOid.TEXT, None),
            Datum(BuiltinOid.BOOL, None),
        ]), frame)
        assert rs.first().get_three(int, str, bool) == (42, None, None)

    def test_missing_column_reads_as_none(self, frame):
        """A column past the end of the row is indistinguishable from NULL."""
        rs = ResultSet(_table([Datum(BuiltinOid.INT8, 42)]), frame)
        row = rs.first()
        assert row.get_two(int, str) == (42, None)
        assert row.get_three(int, str, bool) == (42, None, None)
        assert row.try_get(5, int).is_null

    def test_ordinal_below_one(self, frame):
        rs = ResultSet(_table([Datum(BuiltinOid.INT4, 1)]), frame)
        with pytest.raises(DecodeError, match="ordinals start at 1"):
            rs.first().get_datum(0, int)

    def test_mismatch_is_local_to_one_access(self, frame):
        """A bad type on one column does not affect its siblings."""
        rs = ResultSet(_table([Datum(BuiltinOid.TEXT, "x"), Datum(BuiltinOid.INT4, 7)]), frame)
        row = rs.first()
        with pytest.raises(DecodeError):
            row.get_datum(1, int)
        assert row.try_get(1, int).is_mismatch
        assert row.get_datum(2, int) == 7
        assert row.get_datum(1, str) == "x"

    def test_get_by_name(self, frame):
        columns = [Column("id", BuiltinOid.UUID), Column("n", BuiltinOid.INT4)]
        u = uuid.uuid4()
        rs = ResultSet(_table([Datum(BuiltinOid.UUID, u), Datum(BuiltinOid.INT4, 3)], columns=columns), frame)
        row = rs.first()
        assert row.get_by_name("id", uuid.UUID) == u
        assert row.get_by_name("n", int) == 3
        with pytest.raises(DecodeError, match="no column named"):
            row.get_by_name("missing", int)

    def test_raw_datum(self, frame):
        rs = ResultSet(_table([Datum(BuiltinOid.INT4, 1)]), frame)
        assert rs.first().datum(1) == Datum(BuiltinOid.INT4, 1)
        assert rs.first().datum(2) is None


class TestResultSet:
    def test_empty_first(self, frame):
        """An empty result gives an empty row whose reads are all None."""
        rs = ResultSet(_table(), frame)
        row = rs.first()
        assert rs.is_empty and len(rs) == 0
        assert row.is_empty
        assert row.get_one(int) is None
        assert row.get_three(int, str, bool) == (None, None, None)

    def test_iteration(self, frame):
        rs = ResultSet(_table([Datum(BuiltinOid.INT4, 1)], [Datum(BuiltinOid.INT4, 2)]), frame)
        assert [row.get_one(int) for row in rs] == [1, 2]
        assert rs.row(1).get_one(int) == 2
        assert rs.processed == 2

    def test_column_metadata(self, frame):
        columns = [Column("a", BuiltinOid.INT4, "INTEGER")]
        rs = ResultSet(_table([Datum(BuiltinOid.INT4, 1)], columns=columns), frame)
        assert rs.column_name(1) == "a"
        assert rs.column_oid(1) == BuiltinOid.INT4
        assert rs.columns == columns
        with pytest.raises(DecodeError):
            rs.column_name(2)

    def test_invalid_after_frame_closes(self, context, frame):
        """Nothing in a result set can be read once its frame has closed."""
        rs = ResultSet(_table([Datum(BuiltinOid.INT4, 1)]), frame)
        row = rs.first()
        context.close_frame(frame)
        with pytest.raises(FrameError):
            rs.first()
        with pytest.raises(FrameError):
            row.get_one(int)
        with pytest.raises(FrameError):
            list(rs)

    @pytest.mark.parametrize("read", [
        len,
        lambda rs: rs.is_empty,
        lambda rs: rs.processed,
    ])
    def test_sizes_invalid_after_frame_closes(self, context, frame, read):
        """Sizes and counts are reads too and fail once the frame has closed."""
        rs = ResultSet(_table([Datum(BuiltinOid.INT4, 1)]), frame)
        row = rs.first()
        context.close_frame(frame)
        with pytest.raises(FrameError):
            read(rs)
        with pytest.raises(FrameError):
            len(row)
        with pytest.raises(FrameError):
            row.is_empty

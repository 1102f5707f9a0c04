"""The handle a frame body uses to run statements."""

from __future__ import annotations

import logging
from typing import Iterable, Union

from typed_spi.explain import Explain
from typed_spi.frames import ExecutionFrame
from typed_spi.result import ResultSet
from typed_spi.statement import Argument, Binding, Statement

logger = logging.getLogger(__name__)

Args = Iterable[Union[Argument, Binding]]


class SpiClient:
    """Runs statements on the connection borrowed by one execution frame."""

    def __init__(self, frame: ExecutionFrame) -> None:
        self.frame = frame

    @property
    def depth(self) -> int:
        return self.frame.depth

    def _run(
        self,
        sql: str,
        read_only: bool,
        args: Args | None,
        limit: int | None,
    ) -> ResultSet:
        self.frame.check_open()
        statement = Statement.build(sql, args)
        logger.debug(
            "frame %d: %s (%d arg(s), read_only=%s)",
            self.frame.frame_id, sql, statement.arg_count, read_only,
        )
        table = self.frame.connection.execute(
            statement.sql, statement.bindings, read_only, limit
        )
        return ResultSet(table, self.frame)

    def select(
        self,
        sql: str,
        read_only: bool | None = None,
        args: Args | None = None,
        limit: int | None = None,
    ) -> ResultSet:
        """Run a query. Read-only unless ``read_only`` is explicitly False."""
        return self._run(sql, True if read_only is None else read_only, args, limit)

    def update(
        self,
        sql: str,
        read_only: bool | None = None,
        args: Args | None = None,
        limit: int | None = None,
    ) -> ResultSet:
        """Run a statement that may modify data; ``processed`` holds the row count."""
        return self._run(sql, False if read_only is None else read_only, args, limit)

    def run(self, sql: str, args: Args | None = None) -> None:
        """Run a statement and discard whatever it returns."""
        self.update(sql, args=args)

    def explain(self, sql: str, args: Args | None = None) -> Explain:
        """Plan a statement without executing it."""
        self.frame.check_open()
        statement = Statement.build(sql, args)
        text = self.frame.connection.explain(statement.sql, statement.bindings)
        return Explain.parse(text)

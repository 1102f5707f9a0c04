"""Entry points for running SQL against the installed engine.

Every entry point runs inside an execution frame. Frames nest freely; the
outermost one holds the engine connection and is the single place where a
failure in caller code is turned into a ``HostAbort``.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, TypeVar

from typed_spi.client import Args, SpiClient
from typed_spi.errors import HostAbort, SpiError
from typed_spi.explain import Explain
from typed_spi.frames import current_context
from typed_spi.result import Row

logger = logging.getLogger(__name__)

T = TypeVar("T")
U = TypeVar("U")
V = TypeVar("V")


def _within_frame(body: Callable[[SpiClient], T]) -> T:
    """Run ``body`` inside a new frame and convert host failures at the top.

    Nested frames let exceptions pass through untouched so that every frame
    is released exactly once on the way out. Only the outermost frame turns
    a non-SpiError exception into HostAbort, keeping its message.
    """
    context = current_context()
    outermost = context.depth == 0
    try:
        with context.frame() as frame:
            return body(SpiClient(frame))
    except SpiError:
        raise
    except Exception as e:
        if not outermost:
            raise
        message = str(e) or type(e).__name__
        logger.debug("host failure reached the outermost frame: %s", message)
        raise HostAbort(message, original=e) from e


def _first_row(client: SpiClient, sql: str, args: Args | None) -> Row:
    # Not read-only: INSERT ... RETURNING is a valid single-value query
    return client.select(sql, read_only=False, args=args).first()


class Spi:
    """Static entry points, mirroring how code inside the engine reaches it."""

    @staticmethod
    def execute(body: Callable[[SpiClient], Any]) -> None:
        """Run ``body`` in a frame; its return value is discarded."""
        _within_frame(body)

    @staticmethod
    def connect(body: Callable[[SpiClient], T]) -> T:
        """Run ``body`` in a frame and return what it returns.

        The value must not be a ResultSet or Row from inside the frame: those
        stop being readable when the frame closes.
        """
        return _within_frame(body)

    @staticmethod
    def run(sql: str) -> None:
        Spi.run_with_args(sql, None)

    @staticmethod
    def run_with_args(sql: str, args: Args | None) -> None:
        Spi.execute(lambda client: client.run(sql, args))

    @staticmethod
    def get_one(sql: str, t: type[T]) -> T | None:
        return Spi.get_one_with_args(sql, t, None)

    @staticmethod
    def get_one_with_args(sql: str, t: type[T], args: Args | None) -> T | None:
        """Return the first column of the first row, or None if there are no rows."""
        return Spi.connect(lambda client: _first_row(client, sql, args).get_one(t))

    @staticmethod
    def get_two(sql: str, t: type[T], u: type[U]) -> tuple[T | None, U | None]:
        return Spi.get_two_with_args(sql, t, u, None)

    @staticmethod
    def get_two_with_args(
        sql: str, t: type[T], u: type[U], args: Args | None
    ) -> tuple[T | None, U | None]:
        return Spi.connect(lambda client: _first_row(client, sql, args).get_two(t, u))

    @staticmethod
    def get_three(
        sql: str, t: type[T], u: type[U], v: type[V]
    ) -> tuple[T | None, U | None, V | None]:
        return Spi.get_three_with_args(sql, t, u, v, None)

    @staticmethod
    def get_three_with_args(
        sql: str, t: type[T], u: type[U], v: type[V], args: Args | None
    ) -> tuple[T | None, U | None, V | None]:
        return Spi.connect(lambda client: _first_row(client, sql, args).get_three(t, u, v))

    @staticmethod
    def explain(sql: str) -> Explain:
        return Spi.explain_with_args(sql, None)

    @staticmethod
    def explain_with_args(sql: str, args: Args | None) -> Explain:
        return Spi.connect(lambda client: client.explain(sql, args))


"""Nested execution frames around the single shared engine connection."""

from __future__ import annotations

import itertools
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator

from typed_spi.config import EngineConfig
from typed_spi.engine import Engine, EngineConnection
from typed_spi.errors import FrameError, SpiError

logger = logging.getLogger(__name__)

_frame_ids = itertools.count(1)


@dataclass(eq=False)
class ExecutionFrame:
    """One nested execution scope.

    The depth-0 frame owns the engine connection; deeper frames borrow it.
    Destroyed when the scope exits, whichever way it exits.
    """

    depth: int
    parent: ExecutionFrame | None
    connection: EngineConnection
    frame_id: int = field(default_factory=lambda: next(_frame_ids))
    closed: bool = False

    @property
    def owns_connection(self) -> bool:
        return self.parent is None

    def check_open(self) -> None:
        if self.closed:
            raise FrameError(
                f"frame {self.frame_id} (depth {self.depth}) has closed; "
                "results produced inside it can no longer be read"
            )

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"ExecutionFrame(id={self.frame_id}, depth={self.depth}, {state})"


class ExecutionContext:
    """Owns the frame stack for one engine.

    Frames open and close in strict LIFO order. The connection is acquired
    when the first frame opens and released when that same frame closes.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._frames: list[ExecutionFrame] = []
        self._connection: EngineConnection | None = None
        self._owner_thread: int | None = None

    @property
    def depth(self) -> int:
        """Number of frames currently open."""
        return len(self._frames)

    @property
    def current(self) -> ExecutionFrame | None:
        """Return the innermost open frame, or None when no frame is open."""
        return self._frames[-1] if self._frames else None

    def open_frame(self) -> ExecutionFrame:
        """Push a new frame, acquiring the engine connection at depth 0."""
        thread = threading.get_ident()
        if self._frames:
            if thread != self._owner_thread:
                raise FrameError("frames may only be nested on the thread that opened the outermost frame")
            parent = self._frames[-1]
            connection = parent.connection
        else:
            parent = None
            connection = self.engine.connect()
            self._connection = connection
            self._owner_thread = thread
        frame = ExecutionFrame(depth=len(self._frames), parent=parent, connection=connection)
        self._frames.append(frame)
        logger.debug("opened %r", frame)
        return frame

    def close_frame(self, frame: ExecutionFrame) -> None:
        """Pop ``frame``, which must be the innermost one.

        Closing the depth-0 frame releases the engine connection. The frame is
        popped even if releasing the connection fails.
        """
        if not self._frames or self._frames[-1] is not frame:
            raise FrameError(f"{frame!r} is not the innermost open frame")
        self._frames.pop()
        frame.closed = True
        logger.debug("closed %r", frame)
        if frame.parent is None:
            connection = self._connection
            self._connection = None
            self._owner_thread = None
            if connection is not None:
                connection.close()

    @contextmanager
    def frame(self) -> Iterator[ExecutionFrame]:
        """Open a frame for the duration of the ``with`` block."""
        frame = self.open_frame()
        try:
            yield frame
        except BaseException:
            # Keep the in-flight exception if the release itself fails
            try:
                self.close_frame(frame)
            except Exception:
                logger.warning("failed to release %r while unwinding", frame, exc_info=True)
            raise
        else:
            self.close_frame(frame)


_context: ExecutionContext | None = None


def install(engine: Engine | None = None, config: EngineConfig | None = None) -> ExecutionContext:
    """Make ``engine`` the process-wide engine and return its execution context.

    With no engine, a DuckDB engine is opened from ``config`` (or from the
    environment when no config is given). A previously installed engine is
    closed first.
    """
    global _context
    if _context is not None:
        if _context.depth:
            raise FrameError("cannot replace the engine while frames are open")
        if _context.engine is not engine:
            _context.engine.close()
        _context = None
    if engine is None:
        from typed_spi.duckdb_engine import DuckDBEngine

        engine = DuckDBEngine(config or EngineConfig.from_env())
    _context = ExecutionContext(engine)
    logger.debug("installed engine %r", engine)
    return _context


def uninstall(close_engine: bool = True) -> None:
    """Drop the process-wide engine, closing it unless told otherwise."""
    global _context
    if _context is None:
        return
    if _context.depth:
        raise FrameError("cannot uninstall the engine while frames are open")
    context, _context = _context, None
    if close_engine:
        context.engine.close()


def current_context() -> ExecutionContext:
    """Return the installed execution context."""
    if _context is None:
        raise SpiError("no engine has been installed; call typed_spi.install() first")
    return _context

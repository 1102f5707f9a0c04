"""Exception hierarchy for typed_spi."""

from __future__ import annotations


class SpiError(Exception):
    """Base class for every failure raised by this package."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class StatementError(SpiError):
    """The engine rejected a statement or its bindings.

    The engine's message is kept verbatim so callers can match on it.
    """


class DecodeError(SpiError):
    """A typed accessor asked for a type the stored value cannot become.

    Local to the single access that raised it; never unwinds a frame.
    """


class HostAbort(SpiError):
    """A failure raised by caller-supplied code inside a frame.

    Raised once, at the outermost frame boundary, with the original message.
    The original exception is available as ``__cause__`` and ``original``.
    """

    def __init__(self, message: str, original: BaseException | None = None) -> None:
        super().__init__(message)
        self.original = original


class FrameError(SpiError):
    """An execution frame was used outside its lifetime or out of order."""

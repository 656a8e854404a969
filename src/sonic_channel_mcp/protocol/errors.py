"""Error kinds raised while framing and decoding channel replies.

``Incomplete`` is a control signal rather than a failure: the buffer does
not hold a full line yet and more bytes must be read.  The other kinds are
terminal for the line or connection they describe.
"""

from __future__ import annotations


class FrameError(Exception):
    """Base class for framing and decoding errors."""


class Incomplete(FrameError):
    """No CRLF-terminated line is available in the buffer yet."""

    def __init__(self, message: str = "no complete line buffered yet") -> None:
        super().__init__(message)


class InvalidFrame(FrameError):
    """A complete line was received but does not follow the reply grammar."""

    def __init__(self, message: str, line: bytes | None = None) -> None:
        super().__init__(message)
        self.line = line


class TruncatedConnection(FrameError):
    """The peer closed the stream while a partial frame was buffered."""

    def __init__(self, pending: bytes) -> None:
        super().__init__(
            f"connection reset by peer with {len(pending)} byte(s) of "
            f"an unterminated frame buffered"
        )
        self.pending = pending

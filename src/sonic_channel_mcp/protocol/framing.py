"""Line framing for the Sonic channel protocol.

Every frame is a single line of UTF-8 text::

    +-----------------------------+------+------+
    |  Verb [ SP argument ]*      |  CR  |  LF  |
    |  variable length            | 0x0D | 0x0A |
    +-----------------------------+------+------+

Lines may arrive split across any number of socket reads, so the scanner
works on whatever has been buffered so far and reports ``Incomplete``
until the terminator is present.
"""

from __future__ import annotations

from .errors import Incomplete

LINE_TERMINATOR = b"\r\n"


def get_line(buf: bytes | bytearray, start: int = 0) -> tuple[bytes, int]:
    """Locate the next CRLF-terminated line in ``buf``.

    A CR sitting in the last buffered position is not a match: its LF has
    not arrived yet.

    Args:
        buf: Bytes received so far.
        start: Offset to begin scanning from.

    Returns:
        ``(line, end)`` where ``line`` excludes the terminator and ``end`` is
        the offset just past LF, i.e. the number of bytes to consume when
        ``start`` is 0.

    Raises:
        Incomplete: If no terminator is buffered yet.
    """
    index = buf.find(LINE_TERMINATOR, start)
    if index < 0:
        raise Incomplete()
    return bytes(buf[start:index]), index + len(LINE_TERMINATOR)


def check(buf: bytes | bytearray, start: int = 0) -> bool:
    """Return True if a complete line is buffered at ``start``."""
    try:
        get_line(buf, start)
    except Incomplete:
        return False
    return True


def build_line(*words: str) -> bytes:
    """Join words with single spaces and append the line terminator."""
    return " ".join(words).encode("utf-8") + LINE_TERMINATOR

"""Tests for CRLF line scanning."""

import pytest

from sonic_channel_mcp.protocol.errors import Incomplete
from sonic_channel_mcp.protocol.framing import (
    LINE_TERMINATOR,
    build_line,
    check,
    get_line,
)


def test_get_line_strips_terminator():
    """The returned line excludes CRLF and the end offset includes it."""
    line, end = get_line(b"PONG\r\n")
    assert line == b"PONG"
    assert end == 6


def test_get_line_stops_at_first_terminator():
    """Only the first line is returned when several are buffered."""
    buf = b"OK\r\nPONG\r\n"
    line, end = get_line(buf)
    assert line == b"OK"
    assert buf[end:] == b"PONG\r\n"


def test_get_line_from_offset():
    """Scanning can start past an already-consumed prefix."""
    buf = b"OK\r\nPONG\r\n"
    line, end = get_line(buf, 4)
    assert line == b"PONG"
    assert end == len(buf)


def test_get_line_incomplete_without_terminator():
    """A line still being received is Incomplete."""
    with pytest.raises(Incomplete):
        get_line(b"EVENT QUERY Bt2m2gYa conv")


def test_get_line_trailing_cr_is_incomplete():
    """A CR at the very end has no LF yet and is not a match."""
    with pytest.raises(Incomplete):
        get_line(b"PONG\r")


def test_get_line_lone_lf_is_not_a_terminator():
    """Bare LF does not end a frame."""
    with pytest.raises(Incomplete):
        get_line(b"PONG\nOK")


def test_get_line_empty_buffer():
    with pytest.raises(Incomplete):
        get_line(b"")


def test_get_line_empty_line():
    """An empty line is still a line; rejecting it is the parser's job."""
    assert get_line(b"\r\n") == (b"", 2)


def test_get_line_accepts_bytearray():
    line, end = get_line(bytearray(b"OK\r\n"))
    assert line == b"OK"
    assert isinstance(line, bytes)


def test_check():
    assert check(b"OK\r\n")
    assert not check(b"OK\r")
    assert not check(b"OK\r\n", 4)


def test_build_line():
    assert build_line("QUIT") == b"QUIT" + LINE_TERMINATOR
    assert build_line("START", "search", "pw") == b"START search pw\r\n"


def test_incomplete_message_describes_missing_line():
    with pytest.raises(Incomplete) as exc:
        get_line(b"PONG")
    assert str(exc.value) == "no complete line buffered yet"

"""Tests for server reply parsing."""

import pytest

from sonic_channel_mcp.protocol.commands import Mode
from sonic_channel_mcp.protocol.errors import Incomplete, InvalidFrame
from sonic_channel_mcp.protocol.parser import (
    Connected,
    Ended,
    Err,
    EventQuery,
    EventSuggest,
    Ok,
    Pending,
    Pong,
    Result,
    Started,
    parse_line,
    parse_reply,
)


def test_connected():
    assert parse_line(b"CONNECTED <sonic-server v1.0.0>") == Connected("1.0.0")


def test_connected_multi_digit_version():
    assert parse_line(b"CONNECTED <sonic-server v1.12.3>") == Connected("1.12.3")


@pytest.mark.parametrize(
    "line",
    [
        b"CONNECTED",
        b"CONNECTED <sonic-server",
        b"CONNECTED <other-server v1.0.0>",
        b"CONNECTED <sonic-server 1.0.0>",
        b"CONNECTED <sonic-server v1.0>",
        b"CONNECTED <sonic-server v1.0.0",
        b"CONNECTED <sonic-server vX.0.0>",
        "CONNECTED <sonic-server v\u0661.0.0>".encode(),
    ],
)
def test_connected_malformed(line):
    """Any deviation from the greeting grammar is an invalid frame."""
    with pytest.raises(InvalidFrame):
        parse_line(line)


def test_started():
    assert parse_line(b"STARTED search protocol(1) buffer(20000)") == Started(
        Mode.SEARCH, 20000
    )
    assert parse_line(b"STARTED ingest protocol(1) buffer(0)") == Started(Mode.INGEST, 0)


def test_started_unknown_mode():
    """An unrecognised mode is not an error; it decodes to None."""
    assert parse_line(b"STARTED control protocol(1) buffer(20000)") == Started(None, 20000)


def test_started_max_buffer():
    size = 2**64 - 1
    line = f"STARTED search protocol(1) buffer({size})".encode()
    assert parse_line(line).buffer_size == size


@pytest.mark.parametrize(
    "line",
    [
        b"STARTED",
        b"STARTED search",
        b"STARTED search protocol(1)",
        b"STARTED search protocol(1) buffer()",
        b"STARTED search protocol(1) buffer(abc)",
        b"STARTED search protocol(1) buffer(-1)",
        b"STARTED search protocol(1) buffer(20000",
        b"STARTED search protocol(1) size(20000)",
        "STARTED search protocol(1) buffer(\u0662\u0660)".encode(),
        b"STARTED search protocol(1) buffer(18446744073709551616)",
    ],
)
def test_started_malformed(line):
    with pytest.raises(InvalidFrame):
        parse_line(line)


def test_pending():
    assert parse_line(b"PENDING Bt2m2gYa") == Pending("Bt2m2gYa")


def test_pending_without_id():
    with pytest.raises(InvalidFrame):
        parse_line(b"PENDING")


def test_event_query():
    """Keys are kept in order with their exact count."""
    reply = parse_line(b"EVENT QUERY Bt2m2gYa conversation:71f3d63b conversation:6501e83a")
    assert reply == EventQuery(
        "Bt2m2gYa", ("conversation:71f3d63b", "conversation:6501e83a")
    )
    assert len(reply.keys) == 2


def test_event_query_splits_on_ascii_whitespace_only():
    """Non-ASCII spaces and separators stay inside their key."""
    reply = parse_line("EVENT QUERY id a\xa0b c\x1fd e\u3000f\tg".encode())
    assert reply == EventQuery("id", ("a\xa0b", "c\x1fd", "e\u3000f", "g"))


def test_err_keeps_non_ascii_space_in_word():
    assert parse_line("ERR bad\xa0word".encode()) == Err(" bad\xa0word")


def test_event_query_no_results():
    assert parse_line(b"EVENT QUERY Bt2m2gYa") == EventQuery("Bt2m2gYa", ())


def test_event_suggest():
    assert parse_line(b"EVENT SUGGEST z98uDE0f valerian valala") == EventSuggest(
        "z98uDE0f", ("valerian", "valala")
    )


@pytest.mark.parametrize("line", [b"EVENT", b"EVENT QUERY", b"EVENT LIST abc key"])
def test_event_malformed(line):
    with pytest.raises(InvalidFrame):
        parse_line(line)


def test_ok_pong():
    assert parse_line(b"OK") == Ok()
    assert parse_line(b"PONG") == Pong()


def test_ended():
    assert parse_line(b"ENDED quit") == Ended("quit")


def test_ended_without_reason():
    with pytest.raises(InvalidFrame):
        parse_line(b"ENDED")


def test_err_keeps_leading_space():
    reply = parse_line(b'ERR invalid_format(PUSH <collection> <bucket> <object> "<text>")')
    assert reply == Err(' invalid_format(PUSH <collection> <bucket> <object> "<text>")')


def test_err_without_message():
    assert parse_line(b"ERR") == Err("")


def test_result():
    assert parse_line(b"RESULT 42") == Result("42")


@pytest.mark.parametrize("line", [b"", b"   ", b"HELLO world", b"ok", b"Bt2m2gYa"])
def test_unknown_or_empty_line(line):
    """Unknown verbs are rejected, never mistaken for a pending id."""
    with pytest.raises(InvalidFrame) as exc:
        parse_line(line)
    assert exc.value.line == line


def test_invalid_utf8():
    with pytest.raises(InvalidFrame):
        parse_line(b"ERR \xff\xfe")


def test_invalid_frame_carries_line():
    with pytest.raises(InvalidFrame) as exc:
        parse_line(b"STARTED search")
    assert exc.value.line == b"STARTED search"


def test_parse_reply_consumes_one_line():
    buf = b"PENDING Bt2m2gYa\r\nEVENT QUERY Bt2m2gYa a b\r\n"
    reply, end = parse_reply(buf)
    assert reply == Pending("Bt2m2gYa")
    reply, end = parse_reply(buf, end)
    assert reply == EventQuery("Bt2m2gYa", ("a", "b"))
    assert end == len(buf)


def test_parse_reply_incomplete():
    with pytest.raises(Incomplete):
        parse_reply(b"CONNECTED <sonic-server v1.0.0>\r")

"""Reply parsing for server lines."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Union

from .commands import Mode
from .errors import InvalidFrame
from .framing import get_line

MAX_BUFFER_SIZE = 2**64 - 1

_RE_VERSION = re.compile(r"v(\d+\.\d+\.\d+)>", re.ASCII)
_RE_BUFFER = re.compile(r"buffer\((\d+)\)", re.ASCII)


@dataclass(frozen=True)
class Connected:
    """Greeting sent by the server as soon as the socket is accepted."""

    version: str


@dataclass(frozen=True)
class Started:
    """Parsed ``STARTED`` reply.

    ``mode`` is None when the server announced a mode this client does not
    know about.
    """

    mode: Mode | None
    buffer_size: int


@dataclass(frozen=True)
class Pending:
    request_id: str


@dataclass(frozen=True)
class Ok:
    pass


@dataclass(frozen=True)
class Pong:
    pass


@dataclass(frozen=True)
class EventQuery:
    """Asynchronous query results for an earlier ``PENDING`` id."""

    request_id: str
    keys: tuple[str, ...]


@dataclass(frozen=True)
class EventSuggest:
    """Asynchronous suggestions for an earlier ``PENDING`` id."""

    request_id: str
    suggestions: tuple[str, ...]


@dataclass(frozen=True)
class Ended:
    reason: str


@dataclass(frozen=True)
class Err:
    """Server-side error.

    ``message`` keeps the space that separated it from ``ERR`` on the wire.
    """

    message: str


@dataclass(frozen=True)
class Result:
    """Synchronous value reply, sent for ``COUNT``."""

    value: str


InboundReply = Union[
    Connected, Started, Pending, Ok, Pong, EventQuery, EventSuggest, Ended, Err, Result
]


def _next(words: list[str], what: str) -> str:
    if not words:
        raise InvalidFrame(f"invalid frame; `{what}` missing")
    return words.pop(0)


def parse_connected(words: list[str]) -> Connected:
    """Parse ``CONNECTED <sonic-server vX.Y.Z>``."""
    server = _next(words, "CONNECTED")
    if server != "<sonic-server":
        raise InvalidFrame(f"invalid frame; `CONNECTED` got {server!r}")

    version = _next(words, "CONNECTED version")
    match = _RE_VERSION.fullmatch(version)
    if match is None:
        raise InvalidFrame(f"invalid frame; `CONNECTED` version {version!r}")
    return Connected(version=match.group(1))


def parse_started(words: list[str]) -> Started:
    """Parse ``STARTED <mode> <protocol> buffer(<size>)``.

    The protocol token must be present but its value is not checked.
    """
    mode = Mode.from_token(_next(words, "STARTED mode"))
    _next(words, "STARTED protocol")

    b_size = _next(words, "STARTED buffer")
    match = _RE_BUFFER.fullmatch(b_size)
    if match is None:
        raise InvalidFrame(f"invalid frame; `STARTED` buffer {b_size!r}")

    size = int(match.group(1))
    if size > MAX_BUFFER_SIZE:
        raise InvalidFrame(f"invalid frame; `STARTED` buffer size {size} overflows")
    return Started(mode=mode, buffer_size=size)


def parse_pending(words: list[str]) -> Pending:
    return Pending(request_id=_next(words, "PENDING"))


def parse_event(words: list[str]) -> EventQuery | EventSuggest:
    """Parse ``EVENT QUERY|SUGGEST <id> <token>...``."""
    kind = _next(words, "EVENT type")
    if kind == "QUERY":
        request_id = _next(words, "EVENT id")
        return EventQuery(request_id=request_id, keys=tuple(words))
    if kind == "SUGGEST":
        request_id = _next(words, "EVENT id")
        return EventSuggest(request_id=request_id, suggestions=tuple(words))
    raise InvalidFrame(f"invalid frame; `EVENT` type {kind!r}")


def parse_ended(words: list[str]) -> Ended:
    return Ended(reason=_next(words, "ENDED"))


def parse_err(words: list[str]) -> Err:
    return Err(message="".join(f" {word}" for word in words))


def parse_result(words: list[str]) -> Result:
    return Result(value=_next(words, "RESULT"))


_PARSERS: dict[str, Callable[[list[str]], InboundReply]] = {
    "CONNECTED": parse_connected,
    "STARTED": parse_started,
    "PENDING": parse_pending,
    "EVENT": parse_event,
    "OK": lambda words: Ok(),
    "PONG": lambda words: Pong(),
    "ENDED": parse_ended,
    "ERR": parse_err,
    "RESULT": parse_result,
}


def parse_line(line: bytes) -> InboundReply:
    """Parse one server line (without its CRLF) into a reply.

    Raises:
        InvalidFrame: If the line is not UTF-8, is empty, starts with an
            unknown verb, or does not match the grammar for its verb.
    """
    # Split on ASCII whitespace only; UTF-8 continuation bytes never match it.
    try:
        words = [word.decode("utf-8") for word in bytes(line).split()]
    except UnicodeDecodeError as e:
        raise InvalidFrame("protocol error; invalid frame format", line) from e

    if not words:
        raise InvalidFrame("protocol error; empty frame", line)

    verb = words.pop(0)
    parser = _PARSERS.get(verb)
    if parser is None:
        raise InvalidFrame(f"protocol error; unknown reply {verb!r}", line)

    try:
        return parser(words)
    except InvalidFrame as e:
        if e.line is None:
            e.line = line
        raise


def parse_reply(buf: bytes | bytearray, start: int = 0) -> tuple[InboundReply, int]:
    """Scan the next line out of ``buf`` and parse it.

    Returns:
        ``(reply, end)`` with ``end`` the offset just past the line's CRLF.

    Raises:
        Incomplete: If no full line is buffered.
        InvalidFrame: If the line cannot be parsed.
    """
    line, end = get_line(buf, start)
    return parse_line(line), end

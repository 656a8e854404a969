"""Outbound commands and their wire encoding.

Each command is a small frozen dataclass whose ``encode()`` returns the
exact CRLF-terminated line sent to the server.  Optional trailing fields
only appear on the wire when set, and always after the required ones.
Free-text fields (query terms, pushed text, suggest word) are wrapped in
double quotes and sent as-is; callers must not pass text containing
quotes or line breaks.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from .framing import build_line


class Verb(str, Enum):
    """Command verbs understood by search and ingest channels."""

    START = "START"
    QUERY = "QUERY"
    PUSH = "PUSH"
    SUGGEST = "SUGGEST"
    COUNT = "COUNT"
    PING = "PING"
    QUIT = "QUIT"


class Mode(str, Enum):
    """Channel mode selected with ``START``."""

    SEARCH = "search"
    INGEST = "ingest"

    @classmethod
    def from_token(cls, token: str) -> Mode | None:
        """Map a wire token to a Mode, or None if it is not recognised."""
        try:
            return cls(token)
        except ValueError:
            return None


def _quote(text: str) -> str:
    return f'"{text}"'


def _check_count(name: str, value: int | None) -> None:
    if value is not None and value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")


@dataclass(frozen=True)
class Start:
    """Open a channel in the given mode."""

    mode: Mode
    password: str

    def encode(self) -> bytes:
        return build_line(Verb.START.value, Mode(self.mode).value, self.password)

    def __repr__(self) -> str:
        return f"Start(mode={Mode(self.mode).value!r}, password='***')"


@dataclass(frozen=True)
class Query:
    """Search ``terms`` within a collection bucket.

    ``offset`` is positional and follows ``limit`` on the wire, so it can
    only be given together with a limit.
    """

    collection: str
    bucket: str
    terms: str
    limit: int | None = None
    offset: int | None = None

    def __post_init__(self) -> None:
        _check_count("limit", self.limit)
        _check_count("offset", self.offset)
        if self.offset is not None and self.limit is None:
            raise ValueError("Query offset requires a limit")

    def encode(self) -> bytes:
        words = [Verb.QUERY.value, self.collection, self.bucket, _quote(self.terms)]
        if self.limit is not None:
            words.append(str(self.limit))
        if self.offset is not None:
            words.append(str(self.offset))
        return build_line(*words)


@dataclass(frozen=True)
class Push:
    """Index ``text`` for an object, optionally hinting its language."""

    collection: str
    bucket: str
    object: str
    text: str
    lang: str | None = None

    def encode(self) -> bytes:
        words = [
            Verb.PUSH.value,
            self.collection,
            self.bucket,
            self.object,
            _quote(self.text),
        ]
        if self.lang is not None:
            words.append(self.lang)
        return build_line(*words)


@dataclass(frozen=True)
class Suggest:
    """Auto-complete ``word`` within a collection bucket."""

    collection: str
    bucket: str
    word: str
    limit: int | None = None

    def __post_init__(self) -> None:
        _check_count("limit", self.limit)

    def encode(self) -> bytes:
        words = [Verb.SUGGEST.value, self.collection, self.bucket, _quote(self.word)]
        if self.limit is not None:
            words.append(str(self.limit))
        return build_line(*words)


@dataclass(frozen=True)
class Count:
    """Count indexed items in a collection, bucket or object.

    An object is only addressable inside a bucket; constructing a Count
    with an object and no bucket raises ``ValueError``.
    """

    collection: str
    bucket: str | None = None
    object: str | None = None

    def __post_init__(self) -> None:
        if self.object is not None and self.bucket is None:
            raise ValueError("Count object requires a bucket")

    def with_bucket(self, bucket: str, object: str | None = None) -> Count:
        """Return a copy narrowed to ``bucket`` (and optionally ``object``)."""
        return Count(self.collection, bucket, object)

    def encode(self) -> bytes:
        words = [Verb.COUNT.value, self.collection]
        if self.bucket is not None:
            words.append(self.bucket)
            if self.object is not None:
                words.append(self.object)
        return build_line(*words)


@dataclass(frozen=True)
class Ping:
    def encode(self) -> bytes:
        return build_line(Verb.PING.value)


@dataclass(frozen=True)
class Quit:
    def encode(self) -> bytes:
        return build_line(Verb.QUIT.value)


OutboundCommand = Union[Start, Query, Push, Suggest, Count, Ping, Quit]


def encode_command(command: OutboundCommand) -> bytes:
    """Serialize any outbound command to its wire line."""
    return command.encode()

"""High-level channel session on top of the connection engine.

``SonicChannel`` performs the greeting and ``START`` handshake and turns
each operation into its request/reply exchange, including waiting for the
``EVENT`` that answers a ``PENDING`` query or suggest.
"""

from __future__ import annotations

import logging
from typing import TypeVar

from .config import ChannelSettings
from .protocol.commands import Count, Mode, Ping, Push, Query, Quit, Start, Suggest
from .protocol.errors import FrameError
from .protocol.parser import (
    Connected,
    Ended,
    Err,
    EventQuery,
    EventSuggest,
    InboundReply,
    Ok,
    Pending,
    Pong,
    Result,
    Started,
)
from .transport.connection import Connection, Transport
from .transport.tcp import TCPTransport

logger = logging.getLogger(__name__)

R = TypeVar("R")


class ChannelError(Exception):
    """The server answered with something the session did not expect."""


class ServerError(ChannelError):
    """The server replied ``ERR``."""

    def __init__(self, message: str) -> None:
        super().__init__(f"server error:{message}")
        self.message = message


def _expect(reply: InboundReply, kind: type[R]) -> R:
    if isinstance(reply, kind):
        return reply
    if isinstance(reply, Err):
        raise ServerError(reply.message)
    raise ChannelError(f"expected {kind.__name__}, got {reply!r}")


class SonicChannel:
    """A started search or ingest channel.

    Usage::

        with SonicChannel.open(ChannelSettings.from_env(), Mode.SEARCH) as channel:
            keys = channel.query("messages", "user:0dcde3a6", "valerian saliou")
    """

    def __init__(self, connection: Connection) -> None:
        self._connection = connection
        self.server_version: str | None = None
        self.mode: Mode | None = None
        self.buffer_size: int | None = None

    @classmethod
    def open(
        cls,
        settings: ChannelSettings,
        mode: Mode,
        transport: Transport | None = None,
    ) -> SonicChannel:
        """Connect, read the greeting and start the channel in ``mode``.

        Args:
            settings: Server address and password.
            mode: Channel mode to start.
            transport: Already-open transport to use instead of TCP.
        """
        if transport is None:
            tcp = TCPTransport(settings.host, settings.port, timeout=settings.timeout)
            tcp.open()
            transport = tcp

        channel = cls(Connection(transport))
        try:
            channel.start(Mode(mode), settings.password)
        except BaseException:
            channel.close()
            raise
        return channel

    @property
    def connection(self) -> Connection:
        return self._connection

    @property
    def started(self) -> bool:
        return (
            self.mode is not None
            and not self._connection.closed
            and not self._connection.broken
        )

    def start(self, mode: Mode, password: str) -> Started:
        """Read the ``CONNECTED`` greeting and send ``START``."""
        greeting = _expect(self._connection.receive(), Connected)
        self.server_version = greeting.version

        self._connection.send(Start(mode, password))
        started = _expect(self._connection.receive(), Started)
        if started.mode is not None and started.mode != mode:
            raise ChannelError(
                f"requested {mode.value} channel, server started {started.mode.value}"
            )
        self.mode = started.mode or mode
        self.buffer_size = started.buffer_size
        logger.info(
            "Started %s channel (server %s, buffer %d)",
            self.mode.value,
            self.server_version,
            self.buffer_size,
        )
        return started

    def _require(self, mode: Mode, operation: str) -> None:
        if self.mode is None:
            raise ChannelError("channel has not been started")
        if self.mode != mode:
            raise ChannelError(f"{operation} needs a {mode.value} channel, not {self.mode.value}")

    def _await_event(self, kind: type[R]) -> tuple[str, R]:
        pending = _expect(self._connection.receive(), Pending)
        event = _expect(self._connection.receive(), kind)
        if event.request_id != pending.request_id:
            raise ChannelError(
                f"event {event.request_id} does not answer pending {pending.request_id}"
            )
        return pending.request_id, event

    def ping(self) -> None:
        self._connection.send(Ping())
        _expect(self._connection.receive(), Pong)

    def query(
        self,
        collection: str,
        bucket: str,
        terms: str,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[str]:
        """Search for ``terms`` and return the matching object keys."""
        self._require(Mode.SEARCH, "QUERY")
        self._connection.send(Query(collection, bucket, terms, limit, offset))
        request_id, event = self._await_event(EventQuery)
        logger.debug("Query %s returned %d key(s)", request_id, len(event.keys))
        return list(event.keys)

    def suggest(
        self,
        collection: str,
        bucket: str,
        word: str,
        limit: int | None = None,
    ) -> list[str]:
        """Return completions for ``word``."""
        self._require(Mode.SEARCH, "SUGGEST")
        self._connection.send(Suggest(collection, bucket, word, limit))
        request_id, event = self._await_event(EventSuggest)
        logger.debug("Suggest %s returned %d word(s)", request_id, len(event.suggestions))
        return list(event.suggestions)

    def push(
        self,
        collection: str,
        bucket: str,
        object: str,
        text: str,
        lang: str | None = None,
    ) -> None:
        """Index ``text`` for ``object``."""
        self._require(Mode.INGEST, "PUSH")
        self._connection.send(Push(collection, bucket, object, text, lang))
        _expect(self._connection.receive(), Ok)

    def count(
        self,
        collection: str,
        bucket: str | None = None,
        object: str | None = None,
    ) -> int:
        """Count indexed items in a collection, bucket or object."""
        self._require(Mode.INGEST, "COUNT")
        self._connection.send(Count(collection, bucket, object))
        result = _expect(self._connection.receive(), Result)
        try:
            return int(result.value)
        except ValueError:
            raise ChannelError(f"COUNT returned a non-integer {result.value!r}") from None

    def quit(self) -> str:
        """Send ``QUIT`` and return the server's ``ENDED`` reason."""
        self._connection.send(Quit())
        ended = _expect(self._connection.receive(), Ended)
        self.close()
        return ended.reason

    def close(self) -> None:
        self._connection.close()

    def __enter__(self) -> SonicChannel:
        return self

    def __exit__(self, *exc_info) -> None:
        if self.started:
            try:
                self.quit()
            except (OSError, FrameError, ChannelError) as e:
                logger.warning("Error quitting channel: %s", e)
        self.close()

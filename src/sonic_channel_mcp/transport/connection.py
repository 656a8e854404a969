"""Connection engine: buffers the byte stream and exchanges frames.

The engine owns one transport and one receive buffer.  ``receive()``
decodes exactly one reply per call, reading from the transport only when
the buffer does not yet hold a complete line, so replies come back in the
order their lines appear on the wire.
"""

from __future__ import annotations

import logging
from typing import Protocol

from ..protocol.commands import Mode, OutboundCommand, Start, encode_command
from ..protocol.errors import Incomplete, InvalidFrame, TruncatedConnection
from ..protocol.framing import get_line
from ..protocol.parser import Ended, InboundReply, parse_line

logger = logging.getLogger(__name__)

# Initial read size; Sonic lines are short but EVENT QUERY can list many keys.
DEFAULT_READ_SIZE = 4 * 1024

REMOTE_ENDED = "Remote"


class Transport(Protocol):
    """Ordered bidirectional byte stream."""

    def read(self, max_bytes: int) -> bytes: ...

    def write(self, data: bytes) -> None: ...

    def flush(self) -> None: ...

    def close(self) -> None: ...


class Connection:
    """Sends commands and receives replies over a transport.

    Usage::

        with Connection(transport) as conn:
            greeting = conn.receive()
            conn.send(Start(Mode.SEARCH, "SecretPassword"))
            started = conn.receive()

    A transport I/O failure leaves the connection broken; every later call
    raises ``ConnectionError`` and the caller must reconnect.
    """

    def __init__(self, transport: Transport, read_size: int = DEFAULT_READ_SIZE) -> None:
        if read_size < 1:
            raise ValueError(f"read_size must be positive, got {read_size}")
        self._transport = transport
        self._read_size = read_size
        self._buffer = bytearray()
        self._closed = False
        self._broken: BaseException | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def broken(self) -> bool:
        """True once a transport failure or truncation has killed the stream."""
        return self._broken is not None

    @property
    def buffered(self) -> bytes:
        """Bytes received but not yet decoded."""
        return bytes(self._buffer)

    def _check_usable(self) -> None:
        if self._broken is not None:
            raise ConnectionError(f"connection is broken: {self._broken}")
        if self._closed:
            raise ConnectionError("connection is closed")

    def send(self, command: OutboundCommand) -> None:
        """Encode ``command``, write it and flush the transport."""
        self._check_usable()
        data = encode_command(command)
        if isinstance(command, Start):
            logger.debug("-> START %s ***", Mode(command.mode).value)
        else:
            logger.debug("-> %r", data)
        try:
            self._transport.write(data)
            self._transport.flush()
        except OSError as e:
            self._broken = e
            raise

    def receive(self) -> InboundReply:
        """Return the next reply from the stream, reading as needed.

        Raises:
            InvalidFrame: If the next line does not parse.  The line is
                consumed, so the following call moves on to the next one.
            TruncatedConnection: If the peer closed mid-frame.
            OSError: If the transport read fails.
        """
        self._check_usable()
        while True:
            try:
                line, consumed = get_line(self._buffer)
            except Incomplete:
                if not self._fill():
                    return self._at_eof()
                continue

            del self._buffer[:consumed]
            try:
                reply = parse_line(line)
            except InvalidFrame:
                logger.debug("<- invalid %r", line)
                raise

            logger.debug("<- %r", reply)
            if isinstance(reply, Ended) and not self._buffer:
                self.close()
            return reply

    def send_and_receive(self, command: OutboundCommand) -> InboundReply:
        """Send a command and return the next reply."""
        self.send(command)
        return self.receive()

    def _fill(self) -> bool:
        """Read more bytes into the buffer; False at end of stream."""
        try:
            data = self._transport.read(self._read_size)
        except OSError as e:
            self._broken = e
            raise
        if not data:
            return False
        self._buffer += data
        return True

    def _at_eof(self) -> Ended:
        if self._buffer:
            pending = bytes(self._buffer)
            self._buffer.clear()
            self._broken = TruncatedConnection(pending)
            self.close()
            raise self._broken
        logger.info("Server closed the connection")
        self.close()
        return Ended(reason=REMOTE_ENDED)

    def close(self) -> None:
        """Close the underlying transport."""
        if self._closed:
            return
        self._closed = True
        try:
            self._transport.close()
        except OSError as e:
            logger.warning("Error closing transport: %s", e)

    def __enter__(self) -> Connection:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

"""TCP transport to a Sonic server.

Writes are buffered locally and sent on ``flush()`` so a command line
always leaves in a single ``sendall``.
"""

from __future__ import annotations

import logging
import socket

logger = logging.getLogger(__name__)

DEFAULT_HOST = "::1"
DEFAULT_PORT = 1491


class TCPTransport:
    """Blocking socket transport.

    Usage::

        transport = TCPTransport("localhost", 1491)
        transport.open()
        transport.write(b"PING\\r\\n")
        transport.flush()
        data = transport.read(4096)
        transport.close()
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        timeout: float | None = None,
    ) -> None:
        self._host = host
        self._port = port
        self._timeout = timeout
        self._sock: socket.socket | None = None
        self._out = bytearray()

    @property
    def connected(self) -> bool:
        return self._sock is not None

    @property
    def address(self) -> tuple[str, int]:
        return self._host, self._port

    def open(self) -> None:
        """Connect to the server.

        Raises:
            ConnectionError: If the server cannot be reached.
        """
        if self._sock is not None:
            return
        try:
            self._sock = socket.create_connection(
                (self._host, self._port), timeout=self._timeout
            )
        except OSError as e:
            raise ConnectionError(
                f"Could not connect to Sonic at [{self._host}]:{self._port}. "
                f"Last error: {e}"
            ) from e
        logger.info("Connected to [%s]:%d", self._host, self._port)

    def _socket(self) -> socket.socket:
        if self._sock is None:
            raise ConnectionError("Not connected to server")
        return self._sock

    def read(self, max_bytes: int) -> bytes:
        """Read whatever is available, up to ``max_bytes``.

        Returns ``b""`` once the peer has closed the stream.
        """
        return self._socket().recv(max_bytes)

    def write(self, data: bytes) -> None:
        self._socket()
        self._out += data

    def flush(self) -> None:
        sock = self._socket()
        if self._out:
            sock.sendall(self._out)
            self._out.clear()

    def close(self) -> None:
        """Close the socket, dropping any unflushed output."""
        if self._sock is None:
            return
        try:
            self._sock.close()
        except OSError as e:
            logger.warning("Error closing socket: %s", e)
        finally:
            self._sock = None
            self._out.clear()
            logger.info("Disconnected")

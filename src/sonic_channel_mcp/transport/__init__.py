"""Byte-stream transports and the connection engine that frames them."""

from .connection import Connection, Transport
from .memory import MemoryTransport
from .tcp import TCPTransport

"""Protocol layer: line framing, command encoding, and reply parsing."""

from .errors import FrameError, Incomplete, InvalidFrame, TruncatedConnection
from .framing import get_line, LINE_TERMINATOR
from .commands import Mode, encode_command
from .parser import parse_line, parse_reply

"""
Raw-socket transport to LXI bench instruments.

Layers, bottom-up:

1. `connection` - socket ownership, connection state, identity handshake
2. `transmitter` - LF-terminated UTF-8 commands
3. `reader` - timing-based framing of ASCII replies, stale-byte discard
4. `decoder` - permissive typed decoding with sentinel results
5. `binary` - bitmap and definite-length block replies, waveform scaling

Every query follows discard -> send -> read. The protocol has no request
identifiers, so skipping the discard can attribute a late reply to the wrong
request.
"""

from .binary import (
    decode_bitmap,
    decode_waveform,
    extract_block,
    find_bitmap,
    parse_block_header,
    read_bitmap,
    read_bitmap_bytes,
    read_block,
)
from .connection import ConnectionState, ConnectionSupervisor, InstrumentLink
from .decoder import (
    INT_SENTINEL,
    decode_bool,
    decode_float,
    decode_int,
    decode_string,
    parse_identity,
)
from .reader import FrameReader, TimedFrameReader, drain
from .transmitter import encode_command, send

__all__ = [
    "INT_SENTINEL",
    "ConnectionState",
    "ConnectionSupervisor",
    "FrameReader",
    "InstrumentLink",
    "TimedFrameReader",
    "decode_bitmap",
    "decode_bool",
    "decode_float",
    "decode_int",
    "decode_string",
    "decode_waveform",
    "drain",
    "encode_command",
    "extract_block",
    "find_bitmap",
    "parse_block_header",
    "parse_identity",
    "read_bitmap",
    "read_bitmap_bytes",
    "read_block",
    "send",
]

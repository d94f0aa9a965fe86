"""Binary replies: screen bitmaps and IEEE-488.2 definite-length blocks.

Neither shape is tagged on the command side; the caller picks the reader
matching the query it sent. Reading a binary reply with the ASCII reader (or
the reverse) desynchronizes the exchange and cannot be detected here.

Bitmaps are located by scanning for the ``BM`` magic, since instruments may
prefix the image with protocol chatter (often a block header). Blocks are
``#``, one digit ``n``, ``n`` digits giving the byte length ``L``, then ``L``
bytes. This is the only reply shape with an explicit length.
"""

from __future__ import annotations

import asyncio
import io
from typing import TYPE_CHECKING, Optional

import numpy as np
from loguru import logger
from PIL import Image

from benchlink.errors import TransmissionError
from benchlink.types import TimingConfig, Waveform, WaveformPreamble

if TYPE_CHECKING:
    from .connection import InstrumentLink

BITMAP_MAGIC = b"BM"
BLOCK_START = b"#"


def find_bitmap(buffer: bytes) -> Optional[int]:
    """Offset of the first bitmap magic in `buffer`, or None."""
    idx = buffer.find(BITMAP_MAGIC)
    return idx if idx >= 0 else None


def decode_bitmap(buffer: bytes) -> Optional[Image.Image]:
    """Decode the bitmap starting at the magic. None if absent or corrupt."""
    start = find_bitmap(buffer)
    if start is None:
        logger.warning("No bitmap marker in {} byte reply", len(buffer))
        return None
    try:
        image = Image.open(io.BytesIO(buffer[start:]))
        image.load()
    except (OSError, ValueError) as e:
        logger.warning("Could not decode bitmap at offset {}: {}", start, e)
        return None
    return image


def parse_block_header(buffer: bytes) -> Optional[tuple[int, int]]:
    """Locate a definite-length block header.

    Returns
    -------
    (start, length) : tuple[int, int] or None
        Offset of the first data byte and the declared byte count. None if no
        complete header is present. Indefinite blocks (``#0``) are not
        supported.
    """
    pos = buffer.find(BLOCK_START)
    if pos < 0:
        return None
    n_digit = buffer[pos + 1 : pos + 2]
    if not n_digit.isdigit():
        return None
    n = int(n_digit)
    if n == 0:
        return None
    digits = buffer[pos + 2 : pos + 2 + n]
    if len(digits) < n or not digits.isdigit():
        return None
    return pos + 2 + n, int(digits)


def extract_block(buffer: bytes) -> Optional[bytes]:
    """Exactly the declared number of data bytes; trailing bytes are ignored."""
    header = parse_block_header(buffer)
    if header is None:
        logger.warning("No block header in {} byte reply", len(buffer))
        return None
    start, length = header
    if len(buffer) - start < length:
        logger.warning(
            "Truncated block: header declares {} bytes, got {}",
            length,
            len(buffer) - start,
        )
        return None
    return bytes(buffer[start : start + length])


def decode_waveform(block: bytes, preamble: WaveformPreamble) -> Waveform:
    """Scale one-byte samples into (time, value) pairs.

    value = (raw - (y_reference + y_origin)) * y_increment
    time = x_origin + i * x_increment
    """
    raw = np.frombuffer(block, dtype=np.uint8)
    value = (raw.astype(np.float64) - preamble.voltage_offset) * preamble.y_increment
    time = preamble.x_origin + np.arange(raw.size, dtype=np.float64) * preamble.x_increment
    if preamble.points and raw.size != preamble.points:
        logger.debug(
            "Block holds {} samples, preamble announced {}", raw.size, preamble.points
        )
    return Waveform(time=time, value=value, preamble=preamble)


async def _wait_first_byte(link: InstrumentLink, budget: float, poll: float) -> bool:
    loop = asyncio.get_running_loop()
    start = loop.time()
    while link.available <= 0:
        if not link.is_open:
            raise TransmissionError("Connection closed while waiting for a reply")
        remaining = budget - (loop.time() - start)
        if remaining <= 0:
            return False
        await link.wait_for_data(min(poll, remaining))
    return True


async def read_bitmap_bytes(
    link: InstrumentLink, timing: Optional[TimingConfig] = None
) -> bytes:
    """Collect a bitmap reply; b"" if nothing arrives within `read_timeout`."""
    timing = timing if timing is not None else TimingConfig()
    if not await _wait_first_byte(link, timing.read_timeout, timing.poll_interval):
        logger.debug("No bitmap reply within {}s", timing.read_timeout)
        return b""
    received = bytearray()
    while link.available > 0:
        received += link.take()
        # slow instruments need a moment to push the next segment
        await asyncio.sleep(timing.bitmap_settle)
    logger.trace("[RX] {} bitmap bytes", len(received))
    return bytes(received)


async def read_bitmap(
    link: InstrumentLink, timing: Optional[TimingConfig] = None
) -> Optional[Image.Image]:
    data = await read_bitmap_bytes(link, timing)
    if not data:
        return None
    return decode_bitmap(data)


async def read_block(
    link: InstrumentLink, timing: Optional[TimingConfig] = None
) -> Optional[bytes]:
    """Read a definite-length block and return its data bytes.

    Waits up to `first_byte_timeout` for the reply to start, then keeps
    reading until the declared length has arrived or the link has been idle
    for `continuation_timeout`. None when nothing (or too little) arrives.
    """
    timing = timing if timing is not None else TimingConfig()
    if not await _wait_first_byte(
        link, timing.first_byte_timeout, timing.poll_interval
    ):
        logger.debug("No block reply within {}s", timing.first_byte_timeout)
        return None

    loop = asyncio.get_running_loop()
    received = bytearray()
    expected_end: Optional[int] = None
    last_rx = loop.time()
    while True:
        if link.available > 0:
            received += link.take()
            last_rx = loop.time()
            if expected_end is None:
                header = parse_block_header(received)
                if header is not None:
                    expected_end = header[0] + header[1]
            if expected_end is not None and len(received) >= expected_end:
                break
            continue
        if not link.is_open:
            break
        idle = loop.time() - last_rx
        if idle >= timing.continuation_timeout:
            break
        await link.wait_for_data(
            min(timing.poll_interval, timing.continuation_timeout - idle)
        )

    logger.trace("[RX] {} block bytes", len(received))
    return extract_block(received)

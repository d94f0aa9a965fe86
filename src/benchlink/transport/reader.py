"""Framing of ASCII replies.

ASCII replies carry no length field. A reply is whatever arrives up to the
first terminator, or whatever has arrived when the read budget runs out.
There are two budgets: a short one while the instrument has said nothing yet,
and a longer one once any byte has arrived. Some instruments answer in one
packet and others trickle the reply over several segments; a single timeout
would either give up on the slow ones or wait needlessly on silent ones.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

from loguru import logger

from benchlink.errors import TransmissionError
from benchlink.types import TimingConfig
from benchlink.util.defaults import TERMINATOR

if TYPE_CHECKING:
    from .connection import InstrumentLink


@runtime_checkable
class FrameReader(Protocol):
    """Strategy that extracts one reply from the link.

    Implementations return `b""` when the instrument stays silent; an empty
    reply is a valid outcome, not an error.
    """

    async def read_frame(
        self, link: InstrumentLink, terminator: bytes = TERMINATOR
    ) -> bytes: ...


class TimedFrameReader:
    """Poll-and-accumulate reader with a two-phase time budget.

    Parameters
    ----------
    timing : TimingConfig, optional
        Uses `first_byte_timeout`, `continuation_timeout` and `poll_interval`.
        Both budgets are measured from the start of the read.
    """

    def __init__(self, timing: Optional[TimingConfig] = None):
        self.timing = timing if timing is not None else TimingConfig()

    async def read_frame(
        self, link: InstrumentLink, terminator: bytes = TERMINATOR
    ) -> bytes:
        loop = asyncio.get_running_loop()
        start = loop.time()
        budget = self.timing.first_byte_timeout
        received = bytearray()

        while True:
            elapsed = loop.time() - start
            if elapsed >= budget:
                break
            if link.available > 0:
                received += link.take(upto=terminator)
                budget = self.timing.continuation_timeout
                if terminator in received:
                    break
                continue
            if not link.is_open:
                if received:
                    break
                raise TransmissionError("Connection closed while waiting for a reply")
            await link.wait_for_data(min(self.timing.poll_interval, budget - elapsed))

        elapsed_ms = (loop.time() - start) * 1e3
        if not received:
            logger.debug("No reply within {:.0f}ms", elapsed_ms)
        else:
            logger.trace("[RX] {} bytes in {:.0f}ms", len(received), elapsed_ms)
        return bytes(received)


async def drain(link: InstrumentLink, reader: FrameReader) -> int:
    """Discard stale bytes left over from a previous exchange.

    Replies carry no request identifier, so anything still buffered would be
    taken as the answer to the next query. If what is buffered ends mid-reply,
    the rest of that reply is read (and discarded) too.

    Returns
    -------
    int
        Number of bytes discarded.
    """
    if link.available <= 0:
        return 0

    stale = link.take()
    if not stale.endswith(TERMINATOR):
        stale += await reader.read_frame(link, TERMINATOR)
    # the tail of a partial reply may have carried the start of another
    stale += link.take()
    logger.trace("Discarded {} stale bytes: {!r}", len(stale), stale[:64])
    return len(stale)

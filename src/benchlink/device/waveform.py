"""Waveform block download from oscilloscopes using the `:WAVeform` subsystem.

The raw sample bytes mean nothing without the preamble that describes their
scaling, and that preamble is only valid for the acquisition it was read with.
`WaveformSubsystem.data` therefore fixes the order of operations:

1. select source and mode
2. force one byte per sample (`BYTE` format) and wait for the instrument
3. fetch the preamble
4. discard stale bytes, request the block, read it
5. scale the samples with that preamble
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from loguru import logger

from benchlink.transport import decode_waveform
from benchlink.types import Waveform, WaveformFormat, WaveformMode, WaveformPreamble

if TYPE_CHECKING:
    from .instrument import NetworkInstrument


class WaveformSubsystem:
    """`:WAV:*` commands of an oscilloscope.

    Parameters
    ----------
    instrument : NetworkInstrument
        Connected instrument to talk through.
    """

    def __init__(self, instrument: NetworkInstrument):
        self.instrument = instrument

    async def set_source(self, source: str) -> None:
        await self.instrument.send_command(f"WAV:SOUR {source}")

    async def query_source(self) -> str:
        return await self.instrument.query("WAV:SOUR?")

    async def set_mode(self, mode: WaveformMode) -> None:
        await self.instrument.send_command(f"WAV:MODE {WaveformMode(mode).name}")

    async def query_mode(self) -> Optional[WaveformMode]:
        reply = (await self.instrument.query("WAV:MODE?")).upper()
        return WaveformMode.__members__.get(reply)

    async def set_format(self, fmt: WaveformFormat) -> None:
        await self.instrument.send_command(f"WAV:FORM {WaveformFormat(fmt).name}")

    async def query_format(self) -> Optional[WaveformFormat]:
        reply = (await self.instrument.query("WAV:FORM?")).upper()
        return WaveformFormat.__members__.get(reply)

    async def set_points(self, points: int) -> None:
        await self.instrument.send_command(f"WAV:POIN {points}")

    async def query_points(self) -> int:
        return await self.instrument.query_int("WAV:POIN?")

    async def set_start(self, point: int) -> None:
        await self.instrument.send_command(f"WAV:STAR {point}")

    async def query_start(self) -> int:
        return await self.instrument.query_int("WAV:STAR?")

    async def set_stop(self, point: int) -> None:
        await self.instrument.send_command(f"WAV:STOP {point}")

    async def query_stop(self) -> int:
        return await self.instrument.query_int("WAV:STOP?")

    async def query_preamble(self) -> Optional[WaveformPreamble]:
        reply = await self.instrument.query("WAV:PRE?")
        try:
            return WaveformPreamble.parse(reply)
        except ValueError as e:
            logger.warning("Unusable waveform preamble {!r}: {}", reply, e)
            return None

    async def data(
        self,
        source: Optional[str] = None,
        mode: Optional[WaveformMode] = None,
    ) -> Optional[Waveform]:
        """Download and scale one waveform.

        Returns None if the instrument does not deliver a usable preamble or
        block.
        """
        if source is not None:
            await self.set_source(source)
        if mode is not None:
            await self.set_mode(mode)

        await self.set_format(WaveformFormat.BYTE)
        await self.instrument.wait_for_operation_complete(1)

        preamble = await self.query_preamble()
        if preamble is None:
            return None

        block = await self.instrument.query_block("WAV:DATA?")
        if block is None:
            return None

        waveform = decode_waveform(block, preamble)
        logger.debug("Read waveform of {} points", len(waveform))
        return waveform

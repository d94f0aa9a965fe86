"""Tests for timing-based reply framing, stale-byte discard and transmission."""

import asyncio

import pytest

from benchlink.device import NetworkInstrument
from benchlink.errors import TransmissionError
from benchlink.transport import (
    FrameReader,
    InstrumentLink,
    TimedFrameReader,
    drain,
    encode_command,
    send,
)
from benchlink.types import TimingConfig


def link_of(instrument) -> InstrumentLink:
    return instrument.supervisor.ensure_connected()


class TestEncodeCommand:
    def test_trims_and_terminates(self):
        assert encode_command("  *IDN? ") == b"*IDN?\n"
        assert encode_command("MEAS:VOLT?\n") == b"MEAS:VOLT?\n"

    def test_utf8(self):
        assert encode_command("DISP:TEXT 'µ'") == "DISP:TEXT 'µ'\n".encode("utf-8")

    @pytest.mark.parametrize("command", ["", "   ", "\n", None])
    def test_empty_rejected(self, command):
        with pytest.raises(ValueError):
            encode_command(command)


class TestSend:
    @pytest.mark.asyncio
    async def test_closed_link_raises(self):
        with pytest.raises(TransmissionError):
            await send(InstrumentLink(), "*RST")

    @pytest.mark.asyncio
    async def test_command_reaches_instrument(self, instrument, mock):
        await send(link_of(instrument), "  OUTP ON  ")
        await asyncio.sleep(0.1)
        assert mock.received[-1] == "OUTP ON"


class TestTimedFrameReader:
    def test_is_a_frame_reader(self):
        assert isinstance(TimedFrameReader(), FrameReader)

    @pytest.mark.asyncio
    async def test_single_packet(self, instrument, mock):
        mock.set_reply("MEAS:VOLT?", "1.25")
        await instrument.send_command("MEAS:VOLT?")
        assert await instrument.read_raw() == b"1.25\n"

    @pytest.mark.asyncio
    async def test_silence_returns_empty_after_first_byte_budget(
        self, instrument, mock
    ):
        mock.silent = True
        loop = asyncio.get_running_loop()
        await instrument.send_command("MEAS:VOLT?")
        start = loop.time()
        assert await instrument.read_raw() == b""
        elapsed = loop.time() - start
        assert 0.35 <= elapsed < 0.7
        # still usable afterwards
        assert instrument.is_connected()

    @pytest.mark.asyncio
    async def test_split_reply_is_reassembled(self, instrument, mock):
        # past the first-byte budget, inside the continuation budget
        mock.set_reply("SLOW?", [(0.0, b"1"), (0.5, b"23\n")])
        await instrument.send_command("SLOW?")
        assert await instrument.read_raw() == b"123\n"

    @pytest.mark.asyncio
    async def test_unterminated_reply_ends_at_continuation_budget(
        self, instrument, mock
    ):
        mock.set_reply("RAW?", b"abc")
        loop = asyncio.get_running_loop()
        await instrument.send_command("RAW?")
        start = loop.time()
        assert await instrument.read_raw() == b"abc"
        assert loop.time() - start >= 0.7

    @pytest.mark.asyncio
    async def test_stops_at_terminator_and_keeps_the_rest(self, instrument, mock):
        mock.set_reply("TWO?", b"A\nB\n")
        await instrument.send_command("TWO?")
        link = link_of(instrument)
        assert await instrument.read_raw() == b"A\n"
        await asyncio.sleep(0.05)
        assert link.available == 2
        assert await instrument.read_raw() == b"B\n"

    @pytest.mark.asyncio
    async def test_custom_budgets(self, mock):
        timing = TimingConfig(first_byte_timeout=0.1, continuation_timeout=0.2)
        instrument = NetworkInstrument(mock.host, mock.port, timing=timing)
        assert await instrument.connect()
        mock.silent = True
        loop = asyncio.get_running_loop()
        start = loop.time()
        assert await instrument.read_raw() == b""
        assert loop.time() - start < 0.3
        instrument.close()

    @pytest.mark.asyncio
    async def test_link_closed_without_reply_raises(self, instrument, mock):
        def hang_up(command):
            mock.drop_clients()
            return None

        mock.set_reply("BYE?", hang_up)
        link = link_of(instrument)
        await send(link, "BYE?")
        with pytest.raises(TransmissionError):
            await instrument.reader.read_frame(link)


class TestDrain:
    @pytest.mark.asyncio
    async def test_nothing_buffered(self, instrument):
        assert await drain(link_of(instrument), instrument.reader) == 0

    @pytest.mark.asyncio
    async def test_discards_complete_reply(self, instrument, mock):
        mock.set_reply("JUNK?", "stale")
        await instrument.send_command("JUNK?")
        await asyncio.sleep(0.1)
        link = link_of(instrument)
        assert await drain(link, instrument.reader) == 6
        assert link.available == 0

    @pytest.mark.asyncio
    async def test_reads_rest_of_partial_reply(self, instrument, mock):
        mock.set_reply("PART?", [(0.0, b"par"), (0.1, b"tial\n")])
        await instrument.send_command("PART?")
        await asyncio.sleep(0.05)
        link = link_of(instrument)
        assert await drain(link, instrument.reader) == 8
        assert link.available == 0

    @pytest.mark.asyncio
    async def test_late_reply_does_not_leak_into_next_query(self, instrument, mock):
        mock.set_reply("LATE?", [(0.5, b"late\n")])
        mock.set_reply("MEAS:VOLT?", "1.25")
        assert await instrument.query("LATE?") == ""
        await asyncio.sleep(0.2)
        assert await instrument.query_float("MEAS:VOLT?") == 1.25

"""In-process SCPI instrument served over TCP, for tests and demos.

Answers the IEEE-488.2 common queries by itself; everything else is scripted
with `set_reply`. Commands without a scripted reply are accepted silently,
which is what real instruments do with set commands.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Optional, Sequence, Union

from loguru import logger

from benchlink.types import Endpoint
from benchlink.util.defaults import DEFAULT_HOST_ADDR, DEFAULT_PORT

DEFAULT_IDENTITY = "ACME,Model9,SN123,1.0"

Chunks = Sequence[tuple[float, bytes]]
Reply = Union[str, bytes, Chunks, Callable[[str], Optional[Union[str, bytes]]]]


def make_block(data: bytes) -> bytes:
    """Wrap `data` in a definite-length block header."""
    length = str(len(data))
    return f"#{len(length)}{length}".encode() + data


class MockInstrument:
    """Minimal SCPI-over-TCP instrument.

    Parameters
    ----------
    identity : str, optional
        `*IDN?` reply. None makes the instrument ignore `*IDN?`, so the
        connection handshake fails.
    host : str
        Interface to listen on.
    port : int
        Port to listen on, 0 picks a free one.

    Attributes
    ----------
    silent : bool
        When set, no command gets a reply.
    received : list[str]
        Every command received, trimmed, in arrival order.

    Examples
    --------
    ```python
    async with MockInstrument() as mock:
        mock.set_reply("MEAS:VOLT?", "1.25")
        dmm = NetworkInstrument()
        await dmm.connect(mock.endpoint)
    ```
    """

    def __init__(
        self,
        identity: Optional[str] = DEFAULT_IDENTITY,
        host: str = DEFAULT_HOST_ADDR,
        port: int = 0,
    ):
        self.identity = identity
        self.host = host
        self.port = port
        self.silent = False
        self.received: list[str] = []
        self._replies: dict[str, Reply] = {}
        self._server: Optional[asyncio.AbstractServer] = None
        self._writers: set[asyncio.StreamWriter] = set()
        self._ese = 0
        self._sre = 0

    @property
    def endpoint(self) -> Endpoint:
        return Endpoint(self.host, self.port)

    async def start(self) -> Endpoint:
        self._server = await asyncio.start_server(
            self._handle_client, self.host, self.port
        )
        self.port = self._server.sockets[0].getsockname()[1]
        logger.debug("Mock instrument listening on {}", self.endpoint)
        return self.endpoint

    async def stop(self) -> None:
        self.drop_clients()
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
            logger.debug("Mock instrument on {} stopped", self.endpoint)

    async def serve_forever(self) -> None:
        if self._server is None:
            await self.start()
        await self._server.serve_forever()

    async def __aenter__(self) -> MockInstrument:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_value, traceback):
        await self.stop()

    def drop_clients(self) -> None:
        """Close every client socket from the instrument side."""
        for writer in list(self._writers):
            writer.close()
        self._writers.clear()

    # ---------------------------------------------------------------------------
    # scripting
    # ---------------------------------------------------------------------------

    def set_reply(self, command: str, reply: Reply) -> None:
        """Script the reply to `command` (matched case-insensitively).

        A `str` is sent with a line feed appended, `bytes` are sent as is, a
        sequence of `(delay, bytes)` pairs is sent chunk by chunk with a pause
        before each chunk, and a callable receives the command and returns one
        of the first two (or None for no reply).
        """
        self._replies[command.strip().upper()] = reply

    def clear_reply(self, command: str) -> None:
        self._replies.pop(command.strip().upper(), None)

    def load_waveform(self, preamble: str, samples: bytes) -> None:
        """Serve `preamble` for `WAV:PRE?` and `samples` as a block for `WAV:DATA?`."""
        self.set_reply("WAV:PRE?", preamble)
        self.set_reply("WAV:DATA?", make_block(samples) + b"\n")

    def load_bitmap(self, image: bytes) -> None:
        """Serve an encoded BMP for `DISP:DATA?`, wrapped in a block header."""
        self.set_reply("DISP:DATA?", make_block(image) + b"\n")

    # ---------------------------------------------------------------------------
    # serving
    # ---------------------------------------------------------------------------

    def _builtin_reply(self, command: str) -> Optional[str]:
        key = command.upper()
        if key == "*IDN?":
            return self.identity
        if key == "*OPC?":
            return "1"
        if key in ("*ESR?", "*STB?", "*TST?"):
            return "0"
        if key == "*ESE?":
            return str(self._ese)
        if key == "*SRE?":
            return str(self._sre)
        if key.startswith("*ESE "):
            self._ese = int(key[5:].strip())
        elif key.startswith("*SRE "):
            self._sre = int(key[5:].strip())
        return None

    def _respond(self, command: str) -> list[tuple[float, bytes]]:
        if self.silent:
            return []
        reply = self._replies.get(command.upper())
        if reply is None:
            reply = self._builtin_reply(command)
        elif callable(reply):
            reply = reply(command)
        if reply is None:
            return []
        if isinstance(reply, str):
            return [(0.0, (reply + "\n").encode())]
        if isinstance(reply, (bytes, bytearray)):
            return [(0.0, bytes(reply))]
        return [(float(delay), bytes(chunk)) for delay, chunk in reply]

    async def _handle_client(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        peer = writer.get_extra_info("peername")
        logger.debug("Mock instrument: client {} connected", peer)
        self._writers.add(writer)
        try:
            while True:
                try:
                    line = await reader.readuntil(b"\n")
                except (asyncio.IncompleteReadError, ConnectionError):
                    break
                command = line.decode("utf-8", errors="replace").strip()
                if not command:
                    continue
                self.received.append(command)
                logger.trace("Mock instrument received {!r}", command)
                for delay, chunk in self._respond(command):
                    if delay > 0:
                        await asyncio.sleep(delay)
                    if writer.is_closing():
                        return
                    writer.write(chunk)
                    await writer.drain()
        except ConnectionError as e:
            logger.debug("Mock instrument: client {} went away: {}", peer, e)
        finally:
            self._writers.discard(writer)
            writer.close()
            logger.debug("Mock instrument: client {} disconnected", peer)


async def run_mock(
    host: str = DEFAULT_HOST_ADDR,
    port: int = DEFAULT_PORT,
    identity: Optional[str] = DEFAULT_IDENTITY,
) -> None:
    """Serve a mock instrument until cancelled."""
    mock = MockInstrument(identity, host, port)
    await mock.start()
    logger.info("Mock instrument '{}' serving on {}", identity, mock.endpoint)
    try:
        await mock.serve_forever()
    finally:
        await mock.stop()

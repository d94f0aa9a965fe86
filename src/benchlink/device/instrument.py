"""Base class for instruments reached over a raw TCP (LXI) socket.

Provides the primitives that instrument families build on (send a command,
read a typed scalar, read a bitmap or a data block, observe the connection)
and the IEEE-488.2 common commands shared by every SCPI instrument.

Access to one instrument must be serialized by the caller: there is at most
one outstanding command per instance and no internal locking. Different
instruments can be driven concurrently from the same event loop.
"""

from __future__ import annotations

import asyncio
import math
from typing import Callable, Optional

from loguru import logger
from PIL import Image

from benchlink.errors import NotConnectedError
from benchlink.transport import (
    ConnectionState,
    ConnectionSupervisor,
    FrameReader,
    decode_bool,
    decode_float,
    decode_int,
    decode_string,
    drain,
    parse_identity,
    read_bitmap,
    read_block,
    send,
)
from benchlink.types import (
    Endpoint,
    EventRegister,
    InstrumentIdentity,
    InstrumentType,
    Reading,
    StatusRegister,
    TimingConfig,
)
from benchlink.util.defaults import DEFAULT_PORT

from .device import Device


class NetworkInstrument(Device):
    """An instrument speaking SCPI over a raw TCP socket.

    Parameters
    ----------
    host : str, optional
        Host name or IP address. May instead be given to `connect()`.
    port : int
        TCP port, 5555 for most bench instruments.
    timing : TimingConfig, optional
        Per-operation time budgets.
    reader : FrameReader, optional
        Framing strategy for ASCII replies. Override for instrument families
        that need something other than the two-phase timed reader.
    instrument_type : InstrumentType, optional
        Category tag, informational only.

    Examples
    --------
    ```python
    dmm = NetworkInstrument("192.168.1.20")
    if await dmm.connect():
        print(dmm.identity)
        volts = await dmm.query_float("MEAS:VOLT:DC?")
        dmm.close()
    ```
    """

    required_config = {"port": int, "timing": TimingConfig}
    exported_attrs = ("endpoint", "identity", "timing", "instrument_type", "state")

    def __init__(
        self,
        host: Optional[str] = None,
        port: int = DEFAULT_PORT,
        timing: Optional[TimingConfig] = None,
        reader: Optional[FrameReader] = None,
        instrument_type: Optional[InstrumentType] = None,
    ):
        super().__init__(
            port=port, timing=timing if timing is not None else TimingConfig()
        )
        self.host = host
        self.instrument_type = instrument_type
        endpoint = Endpoint(host, port) if host else None
        self._supervisor = ConnectionSupervisor(endpoint, self.timing, reader)

    def __repr__(self):
        return (
            f"{self.__class__.__name__}(endpoint={self.endpoint}, "
            f"state={self._supervisor.state.name})"
        )

    # ---------------------------------------------------------------------------
    # connection
    # ---------------------------------------------------------------------------

    @property
    def supervisor(self) -> ConnectionSupervisor:
        return self._supervisor

    @property
    def reader(self) -> FrameReader:
        return self._supervisor.reader

    @property
    def identity(self) -> Optional[InstrumentIdentity]:
        return self._supervisor.identity

    @property
    def endpoint(self) -> Optional[Endpoint]:
        return self._supervisor.endpoint

    @property
    def state(self) -> ConnectionState:
        return self._supervisor.state

    async def connect(self, endpoint: Optional[Endpoint | str] = None) -> bool:
        ok = await self._supervisor.connect(endpoint)
        if ok:
            self.host = self.endpoint.host
            self.port = self.endpoint.port
        return ok

    async def open(self) -> tuple[bool, str]:
        if await self.connect():
            return True, f"Connected to {self.identity}"
        return False, f"Could not connect to {self.endpoint}"

    def close(self):
        self._supervisor.disconnect()

    def is_connected(self) -> bool:
        return self._supervisor.is_connected

    def on_connection_change(
        self, callback: Callable[[ConnectionState], None]
    ) -> Callable[[], None]:
        """Register a connection state callback. Returns an unsubscriber."""
        return self._supervisor.subscribe(callback)

    async def __aenter__(self) -> NetworkInstrument:
        if not self.is_connected() and not await self.connect():
            raise NotConnectedError(f"Could not connect to {self.endpoint}")
        return self

    async def __aexit__(self, exc_type, exc_value, traceback):
        self.close()

    # ---------------------------------------------------------------------------
    # primitives
    # ---------------------------------------------------------------------------

    async def send_command(self, command: str) -> None:
        link = self._supervisor.ensure_connected()
        await send(link, command, self.timing.send_timeout)

    async def clear_buffer(self) -> None:
        """Discard any reply bytes left over from a previous exchange."""
        if not self.is_connected():
            return
        await drain(self._supervisor.ensure_connected(), self.reader)

    async def read_raw(self) -> bytes:
        """One framed reply, b"" if the instrument stays silent."""
        link = self._supervisor.ensure_connected()
        return await self.reader.read_frame(link)

    async def read_string_reading(self) -> Reading[str]:
        return decode_string(await self.read_raw())

    async def read_bool_reading(self) -> Reading[bool]:
        return decode_bool(await self.read_raw())

    async def read_int_reading(self) -> Reading[int]:
        return decode_int(await self.read_raw())

    async def read_float_reading(self) -> Reading[float]:
        return decode_float(await self.read_raw())

    async def read_string(self) -> str:
        return (await self.read_string_reading()).value

    async def read_bool(self) -> bool:
        return (await self.read_bool_reading()).value

    async def read_int(self) -> int:
        return (await self.read_int_reading()).value

    async def read_float(self) -> float:
        return (await self.read_float_reading()).value

    async def read_bitmap(self) -> Optional[Image.Image]:
        link = self._supervisor.ensure_connected()
        return await read_bitmap(link, self.timing)

    async def read_block(self) -> Optional[bytes]:
        link = self._supervisor.ensure_connected()
        return await read_block(link, self.timing)

    # ---------------------------------------------------------------------------
    # queries (discard -> send -> read)
    # ---------------------------------------------------------------------------

    async def _ask(self, command: str) -> None:
        self._supervisor.ensure_connected()
        await self.clear_buffer()
        await self.send_command(command)

    async def query(self, command: str) -> str:
        await self._ask(command)
        return await self.read_string()

    async def query_bool(self, command: str) -> bool:
        await self._ask(command)
        return await self.read_bool()

    async def query_int(self, command: str) -> int:
        await self._ask(command)
        return await self.read_int()

    async def query_float(self, command: str) -> float:
        await self._ask(command)
        return await self.read_float()

    async def query_reading(
        self, command: str, decoder: Callable[[bytes], Reading] = decode_string
    ) -> Reading:
        """Query and decode into a tagged `Reading` (OK / EMPTY / INVALID)."""
        await self._ask(command)
        return decoder(await self.read_raw())

    async def query_bitmap(self, command: str) -> Optional[Image.Image]:
        await self._ask(command)
        return await self.read_bitmap()

    async def query_block(self, command: str) -> Optional[bytes]:
        await self._ask(command)
        return await self.read_block()

    # ---------------------------------------------------------------------------
    # IEEE-488.2 common commands
    # ---------------------------------------------------------------------------

    async def identification(self) -> Optional[InstrumentIdentity]:
        """Query `*IDN?` again. The cached handshake result is `identity`."""
        return parse_identity(await self.query("*IDN?"))

    async def clear_status(self) -> None:
        await self.send_command("*CLS")

    async def reset(self) -> None:
        await self.send_command("*RST")

    async def set_standard_event_status_enable(self, mask: EventRegister) -> None:
        await self.send_command(f"*ESE {int(mask) & 0xFF}")

    async def query_standard_event_status_enable(self) -> Optional[EventRegister]:
        return await self._query_register("*ESE?", EventRegister)

    async def query_event_register(self) -> Optional[EventRegister]:
        return await self._query_register("*ESR?", EventRegister)

    async def set_service_request_enable(self, mask: StatusRegister) -> None:
        await self.send_command(f"*SRE {int(mask) & 0xFF}")

    async def query_service_request_enable(self) -> Optional[StatusRegister]:
        return await self._query_register("*SRE?", StatusRegister)

    async def query_status(self) -> Optional[StatusRegister]:
        return await self._query_register("*STB?", StatusRegister)

    async def _query_register(self, command, register_type):
        reading = await self.query_reading(command, decode_int)
        if not reading.ok:
            logger.debug("{} gave no register value ({})", command, reading.status.name)
            return None
        return register_type(reading.value)

    async def query_self_test(self) -> str:
        return await self.query("*TST?")

    async def register_operation_complete(self) -> None:
        await self.send_command("*OPC")

    async def query_operation_complete(self) -> bool:
        return await self.query_bool("*OPC?")

    async def wait_for_operation_complete(self, seconds: float = 1.0) -> bool:
        """Poll `*OPC?` until it reports completion or `seconds` have passed."""
        interval = self.timing.opc_poll_interval
        max_waits = math.ceil(seconds / interval)
        for _ in range(max_waits):
            if await self.query_operation_complete():
                return True
            await asyncio.sleep(interval)
        return await self.query_operation_complete()

    async def wait_to_continue(self) -> None:
        await self.send_command("*WAI")

    async def trigger(self) -> None:
        await self.send_command("*TRG")

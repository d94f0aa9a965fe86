"""TCP connection to a single instrument and its connection-state machine.

The instrument offers no authentication and no request identifiers: a
connection is "up" once the socket is open *and* the instrument has answered
`*IDN?`. Everything after that is half-duplex request/response, serialized by
the caller.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Callable, Optional

from loguru import logger

from benchlink.errors import NotConnectedError, TransmissionError
from benchlink.types import Endpoint, InstrumentIdentity, TimingConfig
from benchlink.util.defaults import TERMINATOR

from .decoder import decode_string, parse_identity
from .reader import FrameReader, TimedFrameReader, drain
from .transmitter import send

__all__ = [
    "ConnectionState",
    "ConnectionSupervisor",
    "Endpoint",
    "InstrumentLink",
]


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class InstrumentLink(asyncio.Protocol):
    """asyncio protocol holding the bytes received but not yet consumed.

    `available` plays the role of the socket's available-byte count; the
    readers poll it and `take` what they need.
    """

    def __init__(self):
        self._transport: Optional[asyncio.Transport] = None
        self._buffer = bytearray()
        self._data_event = asyncio.Event()
        self._closed = False
        self._paused = False
        self._drain_waiters: list[asyncio.Future] = []

    # asyncio callbacks

    def connection_made(self, transport):
        self._transport = transport

    def data_received(self, data: bytes):
        logger.trace("[RX] {!r}", data)
        self._buffer.extend(data)
        self._data_event.set()

    def eof_received(self):
        # closes the transport
        return False

    def connection_lost(self, exc: Optional[Exception]):
        if exc is not None:
            logger.debug("Instrument link lost: {}", exc)
        self._closed = True
        self._data_event.set()
        self._wake_drain_waiters(exc or ConnectionResetError("Connection lost"))

    def pause_writing(self):
        self._paused = True

    def resume_writing(self):
        self._paused = False
        self._wake_drain_waiters(None)

    # buffer access

    @property
    def available(self) -> int:
        return len(self._buffer)

    @property
    def is_open(self) -> bool:
        return (
            self._transport is not None
            and not self._closed
            and not self._transport.is_closing()
        )

    def take(self, upto: Optional[bytes] = None) -> bytes:
        """Remove and return buffered bytes.

        With `upto`, stop after the first occurrence of that delimiter and
        leave the rest buffered.
        """
        end = len(self._buffer)
        if upto is not None:
            idx = self._buffer.find(upto)
            if idx >= 0:
                end = idx + len(upto)
        data = bytes(self._buffer[:end])
        del self._buffer[:end]
        return data

    async def wait_for_data(self, timeout: float) -> None:
        """Suspend until bytes arrive, the link closes, or `timeout` elapses."""
        if self._buffer or not self.is_open:
            return
        self._data_event.clear()
        try:
            await asyncio.wait_for(self._data_event.wait(), timeout)
        except asyncio.TimeoutError:
            pass

    # writing

    def write(self, data: bytes) -> None:
        if not self.is_open:
            raise ConnectionResetError("Connection closed")
        logger.trace("[TX] {!r}", data)
        self._transport.write(data)

    async def drain(self) -> None:
        if not self.is_open:
            raise ConnectionResetError("Connection closed")
        if not self._paused:
            return
        waiter = asyncio.get_running_loop().create_future()
        self._drain_waiters.append(waiter)
        await waiter

    def _wake_drain_waiters(self, exc: Optional[Exception]):
        for waiter in self._drain_waiters:
            if waiter.done():
                continue
            if exc is None:
                waiter.set_result(None)
            else:
                waiter.set_exception(exc)
        self._drain_waiters.clear()

    def close(self) -> None:
        if self._transport is not None:
            self._transport.close()
        self._data_event.set()


class ConnectionSupervisor:
    """Owns the socket to one instrument and tracks its connection state.

    The state is only ever changed here, and every change is pushed to
    subscribers (callbacks and queues). A transition is reported exactly once:
    setting the state it already has is a no-op.

    `is_connected` is a live check. The instrument can drop the socket at any
    time; the drop is noticed, and notified, the next time the flag is read.

    Parameters
    ----------
    endpoint : Endpoint, optional
        Default endpoint used by `connect()` when none is passed.
    timing : TimingConfig, optional
        Connect/send/read budgets.
    reader : FrameReader, optional
        Framing strategy for ASCII replies, defaults to `TimedFrameReader`.
    """

    def __init__(
        self,
        endpoint: Optional[Endpoint] = None,
        timing: Optional[TimingConfig] = None,
        reader: Optional[FrameReader] = None,
    ):
        self._endpoint = endpoint
        self.timing = timing if timing is not None else TimingConfig()
        self.reader: FrameReader = (
            reader if reader is not None else TimedFrameReader(self.timing)
        )
        self._link: Optional[InstrumentLink] = None
        self._state = ConnectionState.DISCONNECTED
        self._identity: Optional[InstrumentIdentity] = None
        self._callbacks: list[Callable[[ConnectionState], None]] = []
        self._queues: list[asyncio.Queue] = []

    def __repr__(self):
        return (
            f"ConnectionSupervisor(endpoint={self._endpoint}, "
            f"state={self._state.name})"
        )

    @property
    def endpoint(self) -> Optional[Endpoint]:
        return self._endpoint

    @property
    def identity(self) -> Optional[InstrumentIdentity]:
        return self._identity

    @property
    def state(self) -> ConnectionState:
        """Last observed state, without checking the socket."""
        return self._state

    @property
    def is_connected(self) -> bool:
        live = self._link is not None and self._link.is_open
        if self._state is ConnectionState.CONNECTED and not live:
            logger.info("Connection to {} dropped by remote side", self._endpoint)
            self._link = None
            self._set_state(ConnectionState.DISCONNECTED)
        return self._state is ConnectionState.CONNECTED

    def ensure_connected(self) -> InstrumentLink:
        """Return the open link, or raise NotConnectedError."""
        if not self.is_connected:
            raise NotConnectedError()
        return self._link

    # subscriptions

    def subscribe(
        self, callback: Callable[[ConnectionState], None]
    ) -> Callable[[], None]:
        """Call `callback(new_state)` on every transition. Returns an unsubscriber."""
        self._callbacks.append(callback)

        def unsubscribe():
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    def state_changes(self, maxsize: int = 0) -> asyncio.Queue:
        """Get a queue that receives every subsequent state transition.

        The queue stays registered until `close_state_changes` is called. With
        the default `maxsize=0` it is unbounded, so a consumer that stops
        reading must close it. A bounded queue keeps the newest transitions and
        drops the oldest when full.
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._queues.append(queue)
        return queue

    def close_state_changes(self, queue: asyncio.Queue) -> None:
        if queue in self._queues:
            self._queues.remove(queue)

    def _set_state(self, state: ConnectionState) -> None:
        if state is self._state:
            return
        logger.debug("Connection state {} -> {}", self._state.name, state.name)
        self._state = state
        for callback in list(self._callbacks):
            try:
                callback(state)
            except Exception:
                logger.exception("Connection state callback {} failed.", callback)
        for queue in self._queues:
            if queue.full():
                queue.get_nowait()
            queue.put_nowait(state)

    # lifecycle

    async def connect(self, endpoint: Optional[Endpoint | str] = None) -> bool:
        """Open the socket and perform the identity handshake.

        Returns False (never raises) if the address is unusable, the socket
        cannot be opened within the connect budget or the instrument does not
        identify itself. The state is back at DISCONNECTED in every such case.
        """
        if isinstance(endpoint, str):
            try:
                endpoint = Endpoint.parse(endpoint)
            except ValueError as e:
                logger.warning("Cannot connect: {}", e)
                return False
        endpoint = endpoint if endpoint is not None else self._endpoint
        if endpoint is None:
            logger.warning("No endpoint given, cannot connect.")
            return False

        if self._link is not None:
            self.disconnect()

        self._endpoint = endpoint
        self._identity = None
        self._set_state(ConnectionState.CONNECTING)
        logger.debug("Connecting to {}", endpoint)

        link = await self._open_link(endpoint)
        if link is None:
            self._set_state(ConnectionState.DISCONNECTED)
            return False

        self._link = link
        try:
            identity = await self._handshake(link)
        except TransmissionError as e:
            logger.warning("Identity handshake with {} failed: {}", endpoint, e)
            identity = None

        if identity is None:
            logger.warning(
                "Instrument at {} did not identify itself, closing connection.",
                endpoint,
            )
            self.disconnect()
            return False

        self._identity = identity
        self._set_state(ConnectionState.CONNECTED)
        logger.info("Connected to {} at {}", identity, endpoint)
        return True

    async def _handshake(self, link: InstrumentLink) -> Optional[InstrumentIdentity]:
        await drain(link, self.reader)
        await send(link, "*IDN?", self.timing.send_timeout)
        raw = await self.reader.read_frame(link, TERMINATOR)
        return parse_identity(decode_string(raw).value)

    async def _open_link(self, endpoint: Endpoint) -> Optional[InstrumentLink]:
        """Open the socket, or log why it could not be opened and return None."""
        loop = asyncio.get_running_loop()
        try:
            _, link = await asyncio.wait_for(
                loop.create_connection(InstrumentLink, endpoint.host, endpoint.port),
                timeout=self.timing.connect_timeout,
            )
        except asyncio.TimeoutError:
            logger.info(
                "Connection to {} timed out after {}s",
                endpoint,
                self.timing.connect_timeout,
            )
            return None
        except (OSError, OverflowError, ValueError) as e:
            # OverflowError: port out of range, UnicodeError: bad host label
            logger.info("Could not connect to {}: {}", endpoint, e)
            return None
        return link

    def disconnect(self) -> None:
        """Close the socket unconditionally. Close errors are logged, not raised."""
        if self._link is not None:
            try:
                self._link.close()
            except Exception:
                logger.exception("Error closing connection to {}.", self._endpoint)
            self._link = None
            logger.info("Disconnected from {}", self._endpoint)
        self._set_state(ConnectionState.DISCONNECTED)

    async def __aenter__(self) -> ConnectionSupervisor:
        return self

    async def __aexit__(self, exc_type, exc_value, traceback):
        self.disconnect()

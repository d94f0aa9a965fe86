"""Configuration types for instrument connections."""

import json
from dataclasses import dataclass

from mashumaro import DataClassDictMixin

from benchlink.util.defaults import (
    BITMAP_SETTLE,
    CONNECT_TIMEOUT,
    CONTINUATION_TIMEOUT,
    DEFAULT_PORT,
    FIRST_BYTE_TIMEOUT,
    OPC_POLL_INTERVAL,
    POLL_INTERVAL,
    READ_TIMEOUT,
    SEND_TIMEOUT,
)


@dataclass(frozen=True)
class Endpoint(DataClassDictMixin):
    """Host/port pair of an instrument. Immutable once a connection starts."""

    host: str
    port: int = DEFAULT_PORT

    @classmethod
    def parse(cls, address: str, default_port: int = DEFAULT_PORT) -> "Endpoint":
        """Parse 'host', 'host:port', a bare IPv6 address or '[ipv6]:port'."""
        address = address.strip()
        if not address:
            raise ValueError("Empty instrument address")
        if address.startswith("["):
            host, sep, rest = address[1:].partition("]")
            if not sep or not host or (rest and not rest.startswith(":")):
                raise ValueError(f"Invalid instrument address: {address!r}")
            return cls(host, int(rest[1:]) if rest else default_port)
        if address.count(":") > 1:
            # bare IPv6, no port
            return cls(address, default_port)
        host, sep, port = address.rpartition(":")
        if not sep:
            return cls(address, default_port)
        if not host:
            raise ValueError(f"Invalid instrument address: {address!r}")
        return cls(host, int(port))

    def __str__(self):
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


@dataclass(kw_only=True)
class TimingConfig(DataClassDictMixin):
    """Per-operation time budgets, in seconds.

    The two read budgets form the framing heuristic for ASCII replies:
    `first_byte_timeout` applies while nothing has arrived, and is replaced by
    `continuation_timeout` as soon as any byte is received.
    """

    connect_timeout: float = CONNECT_TIMEOUT
    send_timeout: float = SEND_TIMEOUT
    read_timeout: float = READ_TIMEOUT
    first_byte_timeout: float = FIRST_BYTE_TIMEOUT
    continuation_timeout: float = CONTINUATION_TIMEOUT
    poll_interval: float = POLL_INTERVAL
    bitmap_settle: float = BITMAP_SETTLE
    opc_poll_interval: float = OPC_POLL_INTERVAL

    def __post_init__(self):
        for name, value in self.to_dict().items():
            if value <= 0:
                raise ValueError(f"{name} must be positive (got {value})")
        if self.continuation_timeout < self.first_byte_timeout:
            raise ValueError(
                "continuation_timeout must not be shorter than first_byte_timeout"
            )

    @classmethod
    def load(cls, path: str) -> "TimingConfig":
        """Load budgets from a JSON file; missing keys keep their defaults."""
        with open(path) as f:
            return cls.from_dict(json.load(f))

    def save(self, path: str) -> None:
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

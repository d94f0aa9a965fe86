"""Exceptions raised by the transport.

Only hard connectivity problems raise. Silence from the instrument and replies
that do not parse are reported through sentinels (see
`benchlink.transport.decoder`), never through these classes.
"""


class InstrumentError(Exception):
    """Base exception for all benchlink errors."""


class NotConnectedError(InstrumentError, RuntimeError):
    """Raised when an operation is attempted on a disconnected instrument."""

    def __init__(self, msg: str = "Test equipment not connected"):
        super().__init__(msg)


class TransmissionError(InstrumentError, OSError):
    """Raised when the socket fails (or times out) during a send or read."""

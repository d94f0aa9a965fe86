"""
Data types shared by the transport, decoders and instruments.

- Connection configuration (endpoint, timing budgets)
- Instrument identity from the `*IDN?` handshake
- Tagged readings for permissive reply decoding
- IEEE-488.2 status registers
- Waveform preamble and decoded waveform samples
"""

from .config import Endpoint, TimingConfig
from .identity import InstrumentIdentity
from .reading import Reading, ReadStatus
from .registers import EventRegister, InstrumentType, StatusRegister
from .waveform import Waveform, WaveformFormat, WaveformMode, WaveformPreamble

__all__ = [
    "Endpoint",
    "EventRegister",
    "InstrumentIdentity",
    "InstrumentType",
    "Reading",
    "ReadStatus",
    "StatusRegister",
    "TimingConfig",
    "Waveform",
    "WaveformFormat",
    "WaveformMode",
    "WaveformPreamble",
]

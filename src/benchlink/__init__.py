# -*- coding: utf-8 -*-
"""# benchlink

`Raw-socket transport for LXI bench instruments`

An asyncio library for talking SCPI to bench instruments (oscilloscopes,
multimeters, supplies, loads) over their raw TCP port, usually 5555.

- `benchlink.transport`: connection state, command transmission, timing-based
  reply framing, permissive typed decoding, bitmap and data-block replies.
- `benchlink.device`: `NetworkInstrument` with the IEEE-488.2 common commands,
  oscilloscope waveform download and a mock instrument.
- `benchlink.cli`: the `benchlink` command-line tool.

Quick start:
```python
import asyncio
from benchlink import NetworkInstrument

async def main():
    async with NetworkInstrument("192.168.1.20") as dmm:
        print(dmm.identity)
        print(await dmm.query_float("MEAS:VOLT:DC?"))

asyncio.run(main())
```
"""

from ._version import __version__
from .device import MockInstrument, NetworkInstrument, WaveformSubsystem
from .errors import InstrumentError, NotConnectedError, TransmissionError
from .transport import ConnectionState
from .types import Endpoint, TimingConfig

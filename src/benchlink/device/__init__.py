# -*- coding: utf-8 -*-
"""
Instrument classes for benchlink.

This module provides the classes instrument drivers are built from:

- `Device`: configuration validation and metadata export
- `NetworkInstrument`: SCPI over a raw TCP socket, with the IEEE-488.2
  common commands
- `WaveformSubsystem`: oscilloscope waveform download
- `MockInstrument`: an in-process TCP instrument for tests and demos

Examples
--------
```python
from benchlink.device import NetworkInstrument, WaveformSubsystem
scope = NetworkInstrument("192.168.1.30")
async with scope:
    waveform = await WaveformSubsystem(scope).data("CHAN1")
```

See Also
--------
benchlink.transport : Connection, framing and decoding layers
"""

from .device import Device
from .instrument import NetworkInstrument
from .mock import MockInstrument, run_mock
from .waveform import WaveformSubsystem

"""Waveform scaling metadata and decoded sample sequences."""

from dataclasses import dataclass
from enum import IntEnum
from typing import Iterator

import numpy as np
from mashumaro import DataClassDictMixin


class WaveformFormat(IntEnum):
    BYTE = 0  # one byte per point
    WORD = 1  # two bytes per point, only the low byte is valid
    ASC = 2  # comma-separated values in scientific notation


class WaveformMode(IntEnum):
    NORM = 0  # points currently on screen
    MAX = 1  # on screen when running, internal memory when stopped
    RAW = 2  # internal memory, only readable when stopped


@dataclass(kw_only=True)
class WaveformPreamble(DataClassDictMixin):
    """Scale and offset record returned by `WAV:PRE?`.

    Only valid for the block read immediately following it; the instrument may
    rescale between acquisitions.
    """

    format: WaveformFormat
    mode: WaveformMode
    points: int
    averages: int
    x_increment: float
    x_origin: float
    x_reference: float
    y_increment: float
    y_origin: float
    y_reference: float

    @classmethod
    def parse(cls, reply: str) -> "WaveformPreamble":
        """Parse the ten comma-separated preamble fields.

        Raises
        ------
        ValueError
            If the reply is empty, short, or contains a non-numeric field.
        """
        if not reply or not reply.strip():
            raise ValueError("No preamble reply")
        parts = [p.strip() for p in reply.strip().split(",")]
        if len(parts) < 10:
            raise ValueError(f"Preamble has {len(parts)} fields, expected 10")

        # counts are sometimes sent in scientific notation, e.g. 1.000000e+03
        def as_int(s):
            return int(float(s))

        return cls(
            format=WaveformFormat(as_int(parts[0])),
            mode=WaveformMode(as_int(parts[1])),
            points=as_int(parts[2]),
            averages=as_int(parts[3]),
            x_increment=float(parts[4]),
            x_origin=float(parts[5]),
            x_reference=float(parts[6]),
            y_increment=float(parts[7]),
            y_origin=float(parts[8]),
            y_reference=float(parts[9]),
        )

    @property
    def voltage_offset(self) -> float:
        return self.y_reference + self.y_origin

    def __str__(self):
        return (
            f"Format:\t{self.format.name}\nMode:\t{self.mode.name}\n\n"
            f"Points:\t{self.points}\nAverages:\t{self.averages}\n\n"
            f"XIncrement:\t{self.x_increment}\nXOrigin:\t{self.x_origin}\n"
            f"XReference:\t{self.x_reference}\n\n"
            f"YIncrement:\t{self.y_increment}\nYOrigin:\t{self.y_origin}\n"
            f"YReference:\t{self.y_reference}\n"
        )


@dataclass(frozen=True, repr=False, eq=False)
class Waveform:
    """Decoded (time, value) samples of one block read.

    Both arrays are made read-only; the caller owns the waveform once built.
    """

    time: np.ndarray
    value: np.ndarray
    preamble: WaveformPreamble | None = None

    def __post_init__(self):
        if self.time.shape != self.value.shape:
            raise ValueError(
                f"time and value differ in shape: {self.time.shape} vs {self.value.shape}"
            )
        self.time.flags.writeable = False
        self.value.flags.writeable = False

    def __len__(self):
        return len(self.value)

    def __iter__(self) -> Iterator[tuple[float, float]]:
        for t, v in zip(self.time, self.value):
            yield float(t), float(v)

    def __repr__(self):
        return f"Waveform(points={len(self)})"

    def to_dict(self) -> dict:
        return {"time": self.time.tolist(), "value": self.value.tolist()}

"""Identity of an instrument as reported by `*IDN?`."""

from dataclasses import dataclass

from mashumaro import DataClassDictMixin


@dataclass(frozen=True)
class InstrumentIdentity(DataClassDictMixin):
    """Manufacturer, model, serial number and firmware version.

    Created once per successful connection and replaced on reconnect.
    """

    manufacturer: str
    model: str
    serial_number: str
    version: str

    def __str__(self):
        return f"{self.manufacturer} {self.model} (SN {self.serial_number}, FW {self.version})"

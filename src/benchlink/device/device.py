"""Device base class.

All instruments in benchlink inherit from `Device`, which provides:

1. Configuration validation
2. Connection handling hooks
3. Attribute (metadata) export

Instrument families (one per vendor/model line) sit on top of this and only
format commands and interpret replies; the transport work happens in
`NetworkInstrument`.
"""

from __future__ import annotations

from enum import Enum
from typing import Type

from loguru import logger


class Device:
    """Base class for all instruments.

    Required Methods
    --------------
    All device implementations must override these methods:

    - open(): Connect to the hardware
    - close(): Disconnect from the hardware
    - is_connected(): Check connection status

    Attributes
    ----------
    required_config : dict[str, Type]
        Required configuration parameters and their types
    exported_attrs : tuple[str, ...]
        Attribute names exported by `get_all_attrs`

    Examples
    --------
    ```python
    class MyLoad(NetworkInstrument):
        async def set_current(self, amps: float) -> None:
            await self.send_command(f":CURR {amps}")

        async def get_current(self) -> float:
            return await self.query_float(":CURR?")
    ```
    """

    required_config: dict[str, Type] = {}  # Required configuration keys
    exported_attrs: tuple[str, ...] = ()  # Exported by get_all_attrs

    def __init__(self, **config_kwargs):
        for key, value in config_kwargs.items():
            setattr(self, key, value)
        for key, value in self.required_config.items():
            if not hasattr(self, key):
                logger.error(
                    f"Device {self.__class__.__name__} missing required config key: "
                    + f"{key}"
                )
                raise ValueError(
                    f"Device {self.__class__.__name__} missing required config "
                    + f"key: {key}"
                )
            if not isinstance(getattr(self, key), value):
                logger.error(
                    f"Device {self.__class__.__name__} config key {key} "
                    + f"has wrong type: {type(getattr(self, key))} (expected {value})"
                )
                raise ValueError(
                    f"Device {self.__class__.__name__} config key {key} has "
                    + f"wrong type: {type(getattr(self, key))} (expected {value})"
                )

    async def open(self) -> tuple[bool, str]:
        raise NotImplementedError()

    def close(self):
        raise NotImplementedError()

    def is_connected(self) -> bool:
        raise NotImplementedError()

    def get_all_attrs(self) -> dict:
        """
        Return the attributes named in `exported_attrs` as plain values, e.g. to
        store alongside a measurement. Dataclasses are exported via `to_dict`,
        enums by name.
        """
        attrs = {}
        for key in self.exported_attrs:
            value = getattr(self, key, None)
            if hasattr(value, "to_dict"):
                value = value.to_dict()
            elif isinstance(value, Enum):
                value = value.name
            elif not isinstance(value, (str, int, float, bool, type(None))):
                value = str(value)
            attrs[key] = value
        return attrs

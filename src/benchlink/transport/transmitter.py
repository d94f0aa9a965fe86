"""Serialization and transmission of ASCII commands.

Commands are never retried: a partially delivered command may already have
had a physical effect (e.g. a trigger), so a failed send is reported to the
caller instead.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from loguru import logger

from benchlink.errors import TransmissionError
from benchlink.util.defaults import SEND_TIMEOUT

if TYPE_CHECKING:
    from .connection import InstrumentLink


def encode_command(command: str) -> bytes:
    """Trim `command`, terminate it with a single LF and encode as UTF-8."""
    if command is None or not command.strip():
        raise ValueError("Command must not be empty")
    return f"{command.strip()}\n".encode("utf-8")


async def send(
    link: InstrumentLink, command: str, timeout: float = SEND_TIMEOUT
) -> None:
    """Write one command to the instrument.

    Raises
    ------
    ValueError
        If the command is empty.
    TransmissionError
        If the link is closed or the bytes are not handed to the OS within
        `timeout` seconds.
    """
    data = encode_command(command)
    logger.debug("[SEND] {}", command.strip())
    try:
        link.write(data)
        await asyncio.wait_for(link.drain(), timeout)
    except asyncio.TimeoutError as e:
        raise TransmissionError(
            f"Timed out after {timeout}s sending {command.strip()!r}"
        ) from e
    except OSError as e:
        raise TransmissionError(f"Sending {command.strip()!r} failed: {e}") from e

"""Utilities for caching instrument endpoints between sessions."""

import json
from typing import Optional

from loguru import logger

from .defaults import CONFIG_DIR

CACHE_DIR = CONFIG_DIR / "device_cache"


def get_cached_address(name: str) -> Optional[tuple[str, int]]:
    """Get the cached (host, port) for a named instrument.

    Args:
        name: Instrument nickname (e.g. 'scope')

    Returns:
        Cached (host, port) if found, None otherwise
    """
    try:
        cache_file = CACHE_DIR / f"{name}.json"
        if cache_file.exists():
            with open(cache_file) as f:
                data = json.load(f)
                return data["host"], int(data["port"])
    except Exception as e:
        logger.debug(f"Error reading cache for {name}: {e}")
    return None


def update_cached_address(name: str, host: str, port: int) -> None:
    """Update the cached endpoint for a named instrument.

    Args:
        name: Instrument nickname (e.g. 'scope')
        host: Host name or IP address to cache
        port: TCP port to cache
    """
    try:
        CACHE_DIR.mkdir(parents=True, exist_ok=True)
        cache_file = CACHE_DIR / f"{name}.json"
        with open(cache_file, "w") as f:
            json.dump({"host": host, "port": port}, f)
    except Exception as e:
        logger.debug(f"Error updating cache for {name}: {e}")

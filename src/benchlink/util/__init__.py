# -*- coding: utf-8 -*-
"""
Utility functions and constants for benchlink.

- Logging configuration and management
- Default timing budgets and network constants
- Endpoint caching between sessions
- SI-prefix formatting of readings

Examples
--------
Logging everything the transport does to stderr:
```python
from benchlink.util import start_log
start_log(log_to_file=False, log_to_stdout=True, log_level="TRACE")
```

See Also
--------
benchlink.util.logging : Logging configuration
benchlink.util.defaults : Timing budgets
"""

from .defaults import (
    BITMAP_SETTLE,
    CONNECT_TIMEOUT,
    CONTINUATION_TIMEOUT,
    DEFAULT_HOST_ADDR,
    DEFAULT_LOGLEVEL,
    DEFAULT_PORT,
    FIRST_BYTE_TIMEOUT,
    POLL_INTERVAL,
    READ_TIMEOUT,
    SEND_TIMEOUT,
    SINGLE_LINE_ERR_LOG,
    TEST_LOGLEVEL,
)
from .device_cache import get_cached_address, update_cached_address
from .logging import (
    clear_log,
    format_error_response,
    get_log_filename,
    log_default_path,
    shutdown_log,
    start_log,
)
from .si import to_si_string

__all__ = [
    "BITMAP_SETTLE",
    "CONNECT_TIMEOUT",
    "CONTINUATION_TIMEOUT",
    "DEFAULT_HOST_ADDR",
    "DEFAULT_LOGLEVEL",
    "DEFAULT_PORT",
    "FIRST_BYTE_TIMEOUT",
    "POLL_INTERVAL",
    "READ_TIMEOUT",
    "SEND_TIMEOUT",
    "SINGLE_LINE_ERR_LOG",
    "TEST_LOGLEVEL",
    "clear_log",
    "format_error_response",
    "get_cached_address",
    "get_log_filename",
    "log_default_path",
    "shutdown_log",
    "start_log",
    "to_si_string",
    "update_cached_address",
]

# -*- coding: utf-8 -*-

import pathlib

DEFAULT_HOST_ADDR = "127.0.0.1"
DEFAULT_PORT = 5555  # raw-socket SCPI port used by most LXI bench instruments
DEFAULT_LOGLEVEL = "INFO"
TEST_LOGLEVEL = "TRACE"
SINGLE_LINE_ERR_LOG = False  # reformat tracebacks into a single line for cli output

CONFIG_DIR = pathlib.Path.home() / ".benchlink"

# timing budgets, all in seconds
CONNECT_TIMEOUT = 1.0
SEND_TIMEOUT = 0.5
READ_TIMEOUT = 1.0  # first byte of a bitmap reply
FIRST_BYTE_TIMEOUT = 0.4  # nothing received yet
CONTINUATION_TIMEOUT = 0.75  # at least one byte received
POLL_INTERVAL = 0.003
BITMAP_SETTLE = 0.05  # slow instruments trickle bitmap data
OPC_POLL_INTERVAL = 0.1

TERMINATOR = b"\n"

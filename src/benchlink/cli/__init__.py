"""
Command-line interface for benchlink.

This module provides command-line tools for working with LXI instruments,
including:

- Identifying an instrument and querying or commanding it
- Reading the IEEE-488.2 status registers
- Saving screenshots and oscilloscope waveforms
- Running a mock instrument

The CLI is built using the Click framework and provides a hierarchical
command structure with consistent help documentation. The last address used
for each `--name` is cached, so `--host` can be left out on later calls.

Examples
--------
Identifying an instrument:
```bash
$ benchlink idn --host 192.168.1.30
```

Reading a float with an SI prefix from the cached instrument:
```bash
$ benchlink query "MEAS:VOLT:DC?" --type float --si
```

See Also
--------
benchlink.device : Instrument classes
benchlink.util.device_cache : Cached instrument addresses


CLI Tree
--------

```
$ benchlink --tree
cli
└── idn
└── mock
└── query
└── screenshot
└── status
└── waveform
└── write
```

CLI Help
--------
```
$ benchlink --help
Usage: benchlink [OPTIONS] COMMAND [ARGS]...

  benchlink - talk to LXI bench instruments over raw TCP sockets.

  - Identify, query and command any SCPI instrument

  - Read status registers, screenshots and oscilloscope waveforms

  - Run a mock instrument for testing

Options:
  --tree                          Show command tree from this point
  -ltf, --log-to-file / --no-log-to-file
  -lts, --log-to-stdout / --no-log-to-stdout
  -lp, --log-path TEXT
  -ll, --log-level TEXT
  --help                          Show this message and exit.

Commands:
  idn         Connect and show the instrument identity.
  mock        Run a mock SCPI instrument until interrupted.
  query       Send a query COMMAND and print the decoded reply.
  screenshot  Save the instrument's screen to an image file.
  status      Show the IEEE-488.2 status registers.
  waveform    Download a waveform and save it as time,value CSV.
  write       Send COMMAND without reading a reply.
```

"""

from .base import cli, tree_option

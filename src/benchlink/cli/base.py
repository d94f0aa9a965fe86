import asyncio
import functools
from typing import Optional

import click
import numpy as np
from loguru import logger
from rich.console import Console
from rich.table import Table

from benchlink.device import NetworkInstrument, WaveformSubsystem, run_mock
from benchlink.device.mock import DEFAULT_IDENTITY
from benchlink.errors import InstrumentError
from benchlink.transport import decode_bool, decode_float, decode_int, decode_string
from benchlink.types import Endpoint, TimingConfig, WaveformMode
from benchlink.util import (
    DEFAULT_HOST_ADDR,
    DEFAULT_LOGLEVEL,
    DEFAULT_PORT,
    format_error_response,
    get_cached_address,
    start_log,
    to_si_string,
    update_cached_address,
)

DECODERS = {
    "str": decode_string,
    "bool": decode_bool,
    "int": decode_int,
    "float": decode_float,
}


def print_tree(cmd, prefix="", parent_ctx=None):
    """Print command tree starting from given command."""
    ctx = click.Context(cmd, info_name=cmd.name, parent=parent_ctx)

    # Only print root name if no parent
    if not parent_ctx:
        click.echo(cmd.name)

    for sub in sorted(cmd.list_commands(ctx)):
        sub_cmd = cmd.get_command(ctx, sub)
        click.echo(f"{prefix}└── {sub}")
        if isinstance(sub_cmd, click.Group):
            print_tree(sub_cmd, prefix + "    ", ctx)


def tree_option(f):
    """Add --tree option to command."""

    def callback(ctx, param, value):
        if not value or ctx.resilient_parsing:
            return
        print_tree(ctx.command)
        ctx.exit()

    return click.option(
        "--tree",
        is_flag=True,
        help="Show command tree from this point",
        expose_value=False,
        is_eager=True,
        callback=callback,
    )(f)


def instrument_options(f):
    """Add the options locating an instrument (address, port, timing)."""

    @click.option(
        "--host",
        "-H",
        default=None,
        help="Instrument host name or IP, optionally 'host:port' "
        + "(default: last address used under --name)",
    )
    @click.option(
        "--port",
        "-p",
        default=DEFAULT_PORT,
        type=int,
        help="Instrument TCP port (default: 5555)",
    )
    @click.option(
        "--name",
        "-n",
        default="default",
        help="Nickname the address is cached under (default: 'default')",
    )
    @click.option(
        "--timing",
        "-t",
        type=click.Path(exists=True, dir_okay=False),
        default=None,
        help="JSON file of timing budgets (default: built-in budgets)",
    )
    @functools.wraps(f)
    def wrapper(*args, host, port, name, timing, **kwargs):
        endpoint = resolve_endpoint(host, port, name)
        timing_config = TimingConfig.load(timing) if timing else TimingConfig()
        instrument = NetworkInstrument(
            endpoint.host, endpoint.port, timing=timing_config
        )
        return f(*args, instrument=instrument, name=name, **kwargs)

    return wrapper


def resolve_endpoint(host: Optional[str], port: int, name: str) -> Endpoint:
    if host:
        try:
            return Endpoint.parse(host, port)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="--host")
    cached = get_cached_address(name)
    if cached is None:
        raise click.UsageError(
            f"No --host given and no cached address for instrument '{name}'."
        )
    return Endpoint(*cached)


def run_with(instrument: NetworkInstrument, name: str, action):
    """Connect, run `action(instrument)` and disconnect, all in one event loop."""

    async def _run():
        if not await instrument.connect():
            raise click.ClickException(
                f"Could not connect to an instrument at {instrument.endpoint}"
            )
        update_cached_address(name, instrument.endpoint.host, instrument.endpoint.port)
        try:
            return await action(instrument)
        except InstrumentError as e:
            logger.error(format_error_response())
            raise click.ClickException(f"{instrument.endpoint}: {e}")
        finally:
            instrument.close()

    return asyncio.run(_run())


@click.group()
@tree_option
@click.option(
    "--log-to-file/--no-log-to-file",
    "-ltf/",
    default=False,
    help="Enable/disable logging to file (default: disabled)",
)
@click.option(
    "--log-to-stdout/--no-log-to-stdout",
    "-lts/",
    default=False,
    help="Enable/disable console logging (default: disabled)",
)
@click.option(
    "--log-path",
    "-lp",
    default="",
    help="Custom path for log file (default: ~/.benchlink/benchlink.log)",
)
@click.option(
    "--log-level",
    "-ll",
    default=DEFAULT_LOGLEVEL,
    help="Logging level (TRACE, DEBUG, INFO, WARNING, ERROR) (default: INFO)",
)
def cli(log_to_file, log_to_stdout, log_path, log_level):
    """benchlink - talk to LXI bench instruments over raw TCP sockets.

    - Identify, query and command any SCPI instrument

    - Read status registers, screenshots and oscilloscope waveforms

    - Run a mock instrument for testing
    """
    start_log(
        log_to_file=log_to_file,
        log_to_stdout=log_to_stdout,
        log_path=log_path,
        clear_prev=False,
        log_level=log_level.upper(),
    )


@cli.command()
@instrument_options
def idn(instrument: NetworkInstrument, name: str):
    """Connect and show the instrument identity."""

    async def action(inst: NetworkInstrument):
        return inst.identity

    identity = run_with(instrument, name, action)

    table = Table(title=f"Instrument at {instrument.endpoint}", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Manufacturer", identity.manufacturer)
    table.add_row("Model", identity.model)
    table.add_row("Serial", identity.serial_number)
    table.add_row("Firmware", identity.version)
    Console().print(table)


@cli.command()
@click.argument("command")
@click.option(
    "--type",
    "-T",
    "reply_type",
    type=click.Choice(list(DECODERS)),
    default="str",
    help="Decode the reply as this type (default: str)",
)
@click.option(
    "--si/--no-si",
    default=False,
    help="Print numeric replies with an SI prefix (default: disabled)",
)
@instrument_options
def query(command: str, reply_type: str, si: bool, instrument, name):
    """Send a query COMMAND and print the decoded reply."""

    async def action(inst: NetworkInstrument):
        return await inst.query_reading(command, DECODERS[reply_type])

    reading = run_with(instrument, name, action)
    if not reading.ok:
        click.echo(f"No valid reply ({reading.status.name.lower()})", err=True)
        click.get_current_context().exit(1)
    if si and reply_type in ("int", "float"):
        click.echo(to_si_string(reading.value))
    else:
        click.echo(reading.value)


@cli.command()
@click.argument("command")
@instrument_options
def write(command: str, instrument, name):
    """Send COMMAND without reading a reply."""

    async def action(inst: NetworkInstrument):
        await inst.send_command(command)

    run_with(instrument, name, action)
    click.echo(f"Sent '{command}'")


@cli.command()
@instrument_options
def status(instrument, name):
    """Show the IEEE-488.2 status registers."""

    async def action(inst: NetworkInstrument):
        return {
            "Event status (*ESR?)": await inst.query_event_register(),
            "Event enable (*ESE?)": await inst.query_standard_event_status_enable(),
            "Status byte (*STB?)": await inst.query_status(),
            "Service request enable (*SRE?)": await inst.query_service_request_enable(),
            "Self test (*TST?)": await inst.query_self_test(),
        }

    registers = run_with(instrument, name, action)

    table = Table(title=f"Status of {instrument.identity}")
    table.add_column("Register", style="bold")
    table.add_column("Value", justify="right")
    table.add_column("Flags")
    for label, value in registers.items():
        if value is None:
            table.add_row(label, "[red]no reply[/red]", "")
        elif isinstance(value, str):
            table.add_row(label, value, "")
        else:
            flags = ", ".join(flag.name for flag in type(value) if flag in value)
            table.add_row(label, str(int(value)), flags)
    Console().print(table)


@cli.command()
@click.option(
    "--command",
    "-c",
    default="DISP:DATA?",
    help="Query returning the screen bitmap (default: DISP:DATA?)",
)
@click.option(
    "--out",
    "-o",
    type=click.Path(dir_okay=False, writable=True),
    default="screenshot.png",
    help="Output image file, format from the extension (default: screenshot.png)",
)
@instrument_options
def screenshot(command: str, out: str, instrument, name):
    """Save the instrument's screen to an image file."""

    async def action(inst: NetworkInstrument):
        return await inst.query_bitmap(command)

    image = run_with(instrument, name, action)
    if image is None:
        raise click.ClickException("Instrument did not return a readable bitmap")
    image.save(out)
    click.echo(f"Saved {image.width}x{image.height} screenshot to {out}")


@cli.command()
@click.option(
    "--source",
    "-s",
    default="CHAN1",
    help="Waveform source channel (default: CHAN1)",
)
@click.option(
    "--mode",
    "-m",
    type=click.Choice([m.name for m in WaveformMode], case_sensitive=False),
    default=None,
    help="Waveform read mode (default: instrument setting)",
)
@click.option(
    "--out",
    "-o",
    type=click.Path(dir_okay=False, writable=True),
    default="waveform.csv",
    help="Output CSV file (default: waveform.csv)",
)
@instrument_options
def waveform(source: str, mode: Optional[str], out: str, instrument, name):
    """Download a waveform and save it as time,value CSV."""
    wf_mode = WaveformMode[mode.upper()] if mode else None

    async def action(inst: NetworkInstrument):
        return await WaveformSubsystem(inst).data(source, wf_mode)

    wf = run_with(instrument, name, action)
    if wf is None:
        raise click.ClickException("Instrument did not return a usable waveform")
    np.savetxt(
        out,
        np.column_stack((wf.time, wf.value)),
        delimiter=",",
        header="time,value",
        comments="",
    )
    logger.info("Saved waveform of {} points to {}", len(wf), out)
    click.echo(f"Saved {len(wf)} points from {source} to {out}")


@cli.command()
@click.option(
    "--host-address",
    "-ha",
    default=DEFAULT_HOST_ADDR,
    help="Network address to bind the mock instrument to (default: localhost)",
)
@click.option(
    "--port",
    "-p",
    default=DEFAULT_PORT,
    type=int,
    help="Port to listen on (default: 5555)",
)
@click.option(
    "--identity",
    "-i",
    default=DEFAULT_IDENTITY,
    help="Reply to *IDN? (default: 'ACME,Model9,SN123,1.0')",
)
def mock(host_address: str, port: int, identity: str):
    """Run a mock SCPI instrument until interrupted."""
    click.echo(f"Mock instrument '{identity}' on {host_address}:{port}")
    try:
        asyncio.run(run_mock(host_address, port, identity))
    except KeyboardInterrupt:
        click.echo("Mock instrument stopped")

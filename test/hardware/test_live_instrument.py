"""Tests against a real instrument. Set BENCHLINK_HOST (and BENCHLINK_PORT)."""

import math
import os

import pytest
import pytest_asyncio
from loguru import logger

from benchlink.device import NetworkInstrument
from benchlink.util import TEST_LOGLEVEL, shutdown_log, start_log

HOST = os.environ.get("BENCHLINK_HOST", "")
PORT = int(os.environ.get("BENCHLINK_PORT", "5555"))

pytestmark = [
    pytest.mark.hardware,
    pytest.mark.skipif(not HOST, reason="BENCHLINK_HOST not set"),
]


@pytest.fixture(autouse=True, scope="module")
def hardware_log():
    start_log(log_to_file=True, log_to_stdout=True, log_level=TEST_LOGLEVEL)
    yield
    shutdown_log()


@pytest_asyncio.fixture
async def instrument():
    instrument = NetworkInstrument(HOST, PORT)
    assert await instrument.connect(), f"no instrument at {HOST}:{PORT}"
    logger.info("Testing against {}", instrument.identity)
    yield instrument
    instrument.close()


@pytest.mark.asyncio
async def test_identity(instrument):
    assert instrument.identity.manufacturer
    assert await instrument.identification() == instrument.identity


@pytest.mark.asyncio
async def test_common_commands(instrument):
    await instrument.clear_status()
    assert await instrument.wait_for_operation_complete(2.0)
    assert await instrument.query_event_register() is not None
    assert await instrument.query_status() is not None


@pytest.mark.asyncio
async def test_unknown_query_does_not_hang(instrument):
    # most instruments ignore unknown headers and log a command error
    value = await instrument.query_float("BENCHLINK:NOT:A:COMMAND?")
    assert math.isnan(value)
    await instrument.clear_status()

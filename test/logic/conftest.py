import io

import pytest
import pytest_asyncio
from loguru import logger
from PIL import Image

from benchlink.device import MockInstrument, NetworkInstrument
from benchlink.types import TimingConfig
from benchlink.util import TEST_LOGLEVEL, shutdown_log, start_log


@pytest.fixture(autouse=True, scope="session")
def test_log():
    start_log(
        log_to_file=False,
        log_to_stdout=True,
        clear_prev=False,
        log_level=TEST_LOGLEVEL,
    )
    yield
    shutdown_log()


@pytest.fixture(autouse=True)
def log(request):
    logger.warning("STARTED Test '{}'".format(request.node.originalname))
    yield
    logger.warning("COMPLETED Test '{}' \n".format(request.node.originalname))


@pytest.fixture
def fast_timing():
    """Short OPC polling so negative waits finish quickly."""
    return TimingConfig(opc_poll_interval=0.02)


@pytest_asyncio.fixture
async def mock():
    async with MockInstrument() as mock:
        yield mock


@pytest_asyncio.fixture
async def instrument(mock, fast_timing):
    instrument = NetworkInstrument(mock.host, mock.port, timing=fast_timing)
    assert await instrument.connect()
    yield instrument
    instrument.close()


@pytest.fixture
def bmp_bytes():
    image = Image.new("RGB", (8, 4), color=(255, 0, 0))
    buf = io.BytesIO()
    image.save(buf, format="BMP")
    return buf.getvalue()

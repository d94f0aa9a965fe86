"""IEEE-488.2 status registers and instrument categories."""

from enum import Enum, IntFlag


class EventRegister(IntFlag):
    """Standard Event Status Register bits (`*ESR?`, `*ESE`)."""

    OPERATION_COMPLETE = 1
    QUERY_ERROR = 4
    DEVICE_ERROR = 8
    EXECUTION_ERROR = 16
    COMMAND_ERROR = 32
    POWER_ON = 128


class StatusRegister(IntFlag):
    """Status Byte bits (`*STB?`, `*SRE`)."""

    ERROR_QUEUE = 4
    QUESTIONABLE_SUMMARY = 8
    MESSAGE_AVAILABLE = 16
    STANDARD_EVENT_SUMMARY = 32
    MASTER_SUMMARY = 64
    OPERATION_SUMMARY = 128


class InstrumentType(Enum):
    OSCILLOSCOPE = "oscilloscope"
    SUPPLY = "supply"
    LOAD = "load"
    MULTIMETER = "multimeter"
    WAVEFORM_GENERATOR = "waveform_generator"
    LCR_METER = "lcr_meter"

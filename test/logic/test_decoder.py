"""Tests for permissive reply decoding."""

import math

import pytest

from benchlink.transport import (
    INT_SENTINEL,
    decode_bool,
    decode_float,
    decode_int,
    decode_string,
    parse_identity,
)
from benchlink.types import InstrumentIdentity, ReadStatus


class TestDecodeString:
    def test_trims_whitespace_and_terminator(self):
        reading = decode_string(b"  RIGOL TECHNOLOGIES \r\n")
        assert reading.value == "RIGOL TECHNOLOGIES"
        assert reading.ok

    @pytest.mark.parametrize("raw", [b"", None, b"\n", b"   \r\n", ""])
    def test_empty(self, raw):
        reading = decode_string(raw)
        assert reading.value == ""
        assert reading.status is ReadStatus.EMPTY
        assert reading.empty

    def test_undecodable_bytes_are_replaced(self):
        reading = decode_string(b"caf\xff\n")
        assert reading.ok
        assert reading.value.startswith("caf")
        assert "�" in reading.value

    def test_accepts_str(self):
        assert decode_string(" ok ").value == "ok"


class TestDecodeBool:
    @pytest.mark.parametrize("raw", [b"1\n", b"ON\n", b"on", b"Yes\n"])
    def test_true_words(self, raw):
        reading = decode_bool(raw)
        assert reading.value is True
        assert reading.ok

    @pytest.mark.parametrize("raw", [b"0\n", b"OFF\n", b"no"])
    def test_false_words(self, raw):
        reading = decode_bool(raw)
        assert reading.value is False
        assert reading.ok

    def test_error_reply_is_false_and_invalid(self):
        reading = decode_bool(b"ERR\n")
        assert reading.value is False
        assert reading.status is ReadStatus.INVALID

    def test_silence_is_false_and_empty(self):
        reading = decode_bool(b"")
        assert reading.value is False
        assert reading.empty


class TestDecodeInt:
    @pytest.mark.parametrize(
        "raw, expected", [(b"42\n", 42), (b"-7\n", -7), (b"+3", 3), (b" 0 ", 0)]
    )
    def test_integers(self, raw, expected):
        reading = decode_int(raw)
        assert reading.value == expected
        assert reading.ok

    @pytest.mark.parametrize("raw", [b"ERR\n", b"4.5\n", b"1e3", b"12abc"])
    def test_non_integers_give_sentinel(self, raw):
        reading = decode_int(raw)
        assert reading.value == INT_SENTINEL
        assert reading.status is ReadStatus.INVALID

    def test_silence_gives_sentinel(self):
        reading = decode_int(b"")
        assert reading.value == INT_SENTINEL == -(2**31)
        assert reading.empty


class TestDecodeFloat:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            (b"1.25\n", 1.25),
            (b"-4.700000E-03\n", -4.7e-3),
            (b" 3.5 \r\n", 3.5),
            (b"9.9E37", 9.9e37),
            (b"12", 12.0),
        ],
    )
    def test_floats(self, raw, expected):
        reading = decode_float(raw)
        assert reading.value == pytest.approx(expected)
        assert reading.ok

    @pytest.mark.parametrize("raw", [b"ERR\n", b"1_000\n", b"1,5", b"volts"])
    def test_malformed_gives_nan(self, raw):
        reading = decode_float(raw)
        assert math.isnan(reading.value)
        assert reading.status is ReadStatus.INVALID

    def test_silence_gives_nan(self):
        reading = decode_float(b"")
        assert math.isnan(reading.value)
        assert reading.empty

    def test_literal_nan_is_ok(self):
        reading = decode_float(b"NaN\n")
        assert math.isnan(reading.value)
        assert reading.ok


class TestParseIdentity:
    def test_four_fields(self):
        identity = parse_identity("ACME,Model9,SN123,1.0")
        assert identity == InstrumentIdentity("ACME", "Model9", "SN123", "1.0")

    def test_fields_are_trimmed(self):
        identity = parse_identity(" ACME , Model9 ,SN123, 1.0\n")
        assert identity.manufacturer == "ACME"
        assert identity.model == "Model9"
        assert identity.version == "1.0"

    def test_firmware_may_contain_commas(self):
        identity = parse_identity("Siglent,SDS1104X-E,SDSMMEBC1R0001,8.2.6.1.37R9,build 3")
        assert identity.serial_number == "SDSMMEBC1R0001"
        assert identity.version == "8.2.6.1.37R9,build 3"

    @pytest.mark.parametrize("reply", ["", None, "   ", "ACME,Model9,SN123", "hello"])
    def test_incomplete_identity(self, reply):
        assert parse_identity(reply) is None

    def test_str(self):
        identity = parse_identity("ACME,Model9,SN123,1.0")
        assert str(identity) == "ACME Model9 (SN SN123, FW 1.0)"

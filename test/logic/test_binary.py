"""Tests for bitmap and definite-length block extraction, and waveform scaling."""

import io

import numpy as np
import pytest

from benchlink.transport import (
    decode_bitmap,
    decode_waveform,
    extract_block,
    find_bitmap,
    parse_block_header,
)
from benchlink.types import Waveform, WaveformFormat, WaveformMode, WaveformPreamble

PREAMBLE = "0,0,5,1,1.000000e-03,-2.000000e-03,0,1.000000e-02,0,128"


class TestBlock:
    def test_header(self):
        assert parse_block_header(b"#212abcdefghijkl") == (4, 12)
        assert parse_block_header(b"#9000000003abc") == (11, 3)

    def test_exact_length_and_trailing_bytes_ignored(self):
        payload = bytes(range(12))
        block = extract_block(b"#212" + payload + b"\nTRAILING")
        assert block == payload
        assert len(block) == 12

    def test_chatter_before_header(self):
        assert extract_block(b"junk#15hello\n") == b"hello"

    def test_payload_may_contain_terminator(self):
        assert extract_block(b"#13\n\n\n") == b"\n\n\n"

    def test_zero_length_block(self):
        assert extract_block(b"#10") == b""

    @pytest.mark.parametrize(
        "buffer",
        [
            b"",
            b"no header here",
            b"#",
            b"#2",
            b"#21",
            b"#x12",
            b"#2a5",
            b"#0hello\n",  # indefinite length
        ],
    )
    def test_missing_or_malformed_header(self, buffer):
        assert extract_block(buffer) is None

    def test_truncated(self):
        assert extract_block(b"#2100abc") is None


class TestBitmap:
    def test_find_marker(self):
        assert find_bitmap(b"xxBMyy") == 2
        assert find_bitmap(b"BM") == 0
        assert find_bitmap(b"no marker") is None

    def test_decode_with_block_prefix(self, bmp_bytes):
        buffer = f"#9{len(bmp_bytes):09d}".encode() + bmp_bytes + b"\n"
        image = decode_bitmap(buffer)
        assert image is not None
        assert image.size == (8, 4)
        assert image.getpixel((0, 0)) == (255, 0, 0)

    def test_no_marker(self):
        assert decode_bitmap(b"#15hello") is None

    def test_corrupt(self):
        assert decode_bitmap(b"garbageBM\x00\x01\x02") is None


class TestPreamble:
    def test_parse(self):
        preamble = WaveformPreamble.parse(
            "0,2,1200,1,1.000000e-06,-6.000000e-04,0,4.000000e-02,0,127\n"
        )
        assert preamble.format is WaveformFormat.BYTE
        assert preamble.mode is WaveformMode.RAW
        assert preamble.points == 1200
        assert preamble.x_increment == pytest.approx(1e-6)
        assert preamble.x_origin == pytest.approx(-6e-4)
        assert preamble.y_increment == pytest.approx(0.04)
        assert preamble.y_reference == 127
        assert preamble.voltage_offset == 127

    def test_counts_in_scientific_notation(self):
        preamble = WaveformPreamble.parse("0,0,1.200000e+03,1,1,0,0,1,0,0")
        assert preamble.points == 1200

    @pytest.mark.parametrize("reply", ["", "  ", "0,0,1200", "0,0,a,1,1,0,0,1,0,0"])
    def test_unusable(self, reply):
        with pytest.raises(ValueError):
            WaveformPreamble.parse(reply)

    def test_to_dict(self):
        d = WaveformPreamble.parse(PREAMBLE).to_dict()
        assert d["points"] == 5
        assert d["y_reference"] == 128


class TestWaveformScaling:
    @pytest.fixture
    def preamble(self):
        return WaveformPreamble.parse(PREAMBLE)

    def test_values(self, preamble):
        wf = decode_waveform(bytes([128, 228, 28, 178, 0]), preamble)
        assert isinstance(wf, Waveform)
        assert len(wf) == 5
        np.testing.assert_allclose(wf.value, [0.0, 1.0, -1.0, 0.5, -1.28])

    def test_times(self, preamble):
        wf = decode_waveform(bytes(5), preamble)
        np.testing.assert_allclose(
            wf.time, [-2e-3, -1e-3, 0.0, 1e-3, 2e-3], atol=1e-12
        )

    def test_pairs(self, preamble):
        pairs = list(decode_waveform(bytes([128, 228]), preamble))
        assert pairs[0] == pytest.approx((-2e-3, 0.0))
        assert pairs[1] == pytest.approx((-1e-3, 1.0))

    def test_read_only(self, preamble):
        wf = decode_waveform(bytes([128, 228]), preamble)
        with pytest.raises(ValueError):
            wf.value[0] = 5.0
        with pytest.raises(ValueError):
            wf.time[0] = 5.0

    def test_empty_block(self, preamble):
        wf = decode_waveform(b"", preamble)
        assert len(wf) == 0

    def test_shape_mismatch(self):
        with pytest.raises(ValueError):
            Waveform(time=np.zeros(3), value=np.zeros(2))

    def test_to_dict(self, preamble):
        d = decode_waveform(bytes([228]), preamble).to_dict()
        assert d["value"] == pytest.approx([1.0])
        assert d["time"] == pytest.approx([-2e-3])

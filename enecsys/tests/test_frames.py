"""
Tests for frame reading, validation and payload decoding.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

import asyncio
import base64
from collections.abc import Callable

import pytest
from enecsys.src.errors import PayloadDecodeError
from enecsys.src.frames import (
    FRAME_LENGTH,
    decode_payload,
    is_telemetry_frame,
    read_frame,
)


def _reader(data: bytes, *, limit: int = 2**16) -> asyncio.StreamReader:
    """StreamReader pre-filled with *data* and then closed."""
    reader = asyncio.StreamReader(limit=limit)
    reader.feed_data(data)
    reader.feed_eof()
    return reader


# ===========================================================================
# read_frame
# ===========================================================================


class TestReadFrame:
    """Frames are split on 0x0D and the terminator is stripped."""

    @pytest.mark.asyncio
    async def test_reads_successive_frames(self) -> None:
        reader = _reader(b"first\rsecond\r")
        assert await read_frame(reader) == b"first"
        assert await read_frame(reader) == b"second"
        assert await read_frame(reader) is None

    @pytest.mark.asyncio
    async def test_empty_frame(self) -> None:
        reader = _reader(b"\r")
        assert await read_frame(reader) == b""

    @pytest.mark.asyncio
    async def test_newline_is_not_a_terminator(self) -> None:
        reader = _reader(b"a\nb\r")
        assert await read_frame(reader) == b"a\nb"

    @pytest.mark.asyncio
    async def test_unterminated_tail_is_end_of_stream(self) -> None:
        reader = _reader(b"complete\rpartial")
        assert await read_frame(reader) == b"complete"
        assert await read_frame(reader) is None

    @pytest.mark.asyncio
    async def test_eof_on_empty_stream(self) -> None:
        assert await read_frame(_reader(b"")) is None

    @pytest.mark.asyncio
    async def test_overlong_line_ends_stream(self) -> None:
        reader = _reader(b"x" * 200 + b"\r", limit=64)
        assert await read_frame(reader) is None

    @pytest.mark.asyncio
    async def test_read_error_ends_stream(self) -> None:
        reader = asyncio.StreamReader()
        reader.set_exception(ConnectionResetError("peer reset"))
        assert await read_frame(reader) is None

    @pytest.mark.asyncio
    async def test_waits_for_terminator(self) -> None:
        reader = asyncio.StreamReader()
        task = asyncio.create_task(read_frame(reader))
        reader.feed_data(b"abc")
        await asyncio.sleep(0)
        assert not task.done()
        reader.feed_data(b"def\r")
        assert await asyncio.wait_for(task, timeout=1.0) == b"abcdef"


# ===========================================================================
# is_telemetry_frame
# ===========================================================================


class TestIsTelemetryFrame:
    """Only 77-byte frames with the WS marker are telemetry frames."""

    def test_valid_frame(self, telemetry_frame: bytes) -> None:
        assert len(telemetry_frame) == FRAME_LENGTH
        assert is_telemetry_frame(telemetry_frame)

    @pytest.mark.parametrize("marker", [b"WZ", b"ws", b"SW", b"  "])
    def test_other_markers_rejected(
        self, make_frame: Callable[..., bytes], marker: bytes
    ) -> None:
        assert not is_telemetry_frame(make_frame(marker=marker))

    def test_short_frame_rejected(self, telemetry_frame: bytes) -> None:
        assert not is_telemetry_frame(telemetry_frame[:-1])

    def test_long_frame_rejected(self, telemetry_frame: bytes) -> None:
        assert not is_telemetry_frame(telemetry_frame + b"A")

    def test_empty_frame_rejected(self) -> None:
        assert not is_telemetry_frame(b"")

    def test_marker_at_other_offset_rejected(self) -> None:
        frame = b"WS" + b"0" * (FRAME_LENGTH - 2)
        assert not is_telemetry_frame(frame)


# ===========================================================================
# decode_payload
# ===========================================================================


class TestDecodePayload:
    """Payload decoding is strict unpadded URL-safe base64 -> lowercase hex."""

    def test_scenario_digest(self, telemetry_frame: bytes, scenario_digest: str) -> None:
        assert decode_payload(telemetry_frame) == scenario_digest

    @pytest.mark.parametrize(
        "raw",
        [
            b"",
            b"\x00",
            b"\xff\xfe",
            b"\xfb\xff\xbf",
            bytes(range(42)),
            bytes(range(255, 213, -1)),
        ],
    )
    def test_round_trip(self, raw: bytes) -> None:
        encoded = base64.urlsafe_b64encode(raw).rstrip(b"=")
        frame = b"0" * 21 + encoded
        assert decode_payload(frame) == raw.hex()

    def test_output_is_lowercase(self) -> None:
        frame = b"0" * 21 + base64.urlsafe_b64encode(b"\xab\xcd\xef").rstrip(b"=")
        assert decode_payload(frame) == "abcdef"

    def test_url_safe_characters_accepted(self) -> None:
        # b"\xfb\xff" encodes to "-_8" in the URL-safe alphabet
        frame = b"0" * 21 + b"-_8"
        assert decode_payload(frame) == "fbff"

    @pytest.mark.parametrize(
        "payload",
        [
            b"+/8",  # standard alphabet
            b"AAA=",  # padded
            b"AA AA",  # whitespace
            b"A",  # impossible length
            b"AAAAA",  # impossible length
            b"AA*A",  # illegal character
        ],
    )
    def test_malformed_payload_raises(self, payload: bytes) -> None:
        with pytest.raises(PayloadDecodeError):
            decode_payload(b"0" * 21 + payload)

    def test_non_ascii_payload_raises(self) -> None:
        with pytest.raises(PayloadDecodeError, match="non-ASCII"):
            decode_payload(b"0" * 21 + "AAé".encode())

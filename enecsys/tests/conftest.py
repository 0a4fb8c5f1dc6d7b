"""
Shared test fixtures for gateway tests.

Provides environment isolation for EnecsysSettings and builders for
synthetic digests and wire frames. All gateway env vars are cleaned before
each test to ensure isolation.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

import base64
import os
from collections.abc import Callable

import pytest
from enecsys.src.metrics import MetricsExporter

# Digest for the reference scenario, split at the field boundaries:
#   id        pad         time1  pad       time2   pad
#   dc_cur dc_pow eff  freq ac_volt temp wh   kwh   trailing
SCENARIO_DIGEST = (
    "deadbeef" + "0000000000" + "0102" + "00000000" + "000a0b" + "0000000000"
    + "0010" + "00c8" + "0032" + "32" + "0064" + "32" + "0014" + "012c"
    + "0000000000"
)
"""84-char digest: dc_power=200, dc_current_raw=16, efficiency_raw=50,
ac_freq=50, ac_volt=100, temperature=50, wh=20, kwh=300, time1=258,
time2=2571."""

FRAME_PREFIX = b"0123456789ABCDEFGH"
"""18 bytes preceding the marker in synthetic frames."""


@pytest.fixture(autouse=True)
def _clean_gateway_env(monkeypatch: pytest.MonkeyPatch, tmp_path: str) -> None:
    """Remove all ENECSYS_* env vars and isolate from .env files.

    Changes working directory to tmp_path so no stray file is picked up.
    """
    for var in list(os.environ):
        if var.upper().startswith("ENECSYS_"):
            monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


def encode_payload(digest: str) -> bytes:
    """Return the unpadded URL-safe base64 encoding of a hex digest."""
    return base64.urlsafe_b64encode(bytes.fromhex(digest)).rstrip(b"=")


@pytest.fixture()
def scenario_digest() -> str:
    return SCENARIO_DIGEST


@pytest.fixture()
def make_frame() -> Callable[..., bytes]:
    """Factory for wire frames (without terminator).

    ``make_frame(digest)`` returns a 77-byte telemetry frame when the digest
    is 42 bytes long; ``marker`` and ``prefix`` override the header.
    """

    def _make(
        digest: str = SCENARIO_DIGEST,
        *,
        marker: bytes = b"WS",
        prefix: bytes = FRAME_PREFIX,
    ) -> bytes:
        return prefix + marker + b"=" + encode_payload(digest)

    return _make


@pytest.fixture()
def telemetry_frame(make_frame: Callable[..., bytes]) -> bytes:
    return make_frame()


@pytest.fixture()
def exporter() -> MetricsExporter:
    """Exporter with its own registry, isolated per test."""
    return MetricsExporter()

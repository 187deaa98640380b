# tests/conftest.py
from __future__ import annotations

import json

import pytest

from bitgraph.common import settings as settings_mod
from bitgraph.domain.entities.probe import ProbeData

_ENV_KEYS = (
    "FFPROBE_BIN",
    "LOG_LEVEL",
    "FFPROBE__PROGRAM",
    "FFPROBE__TIMEOUT_SEC",
    "HISTORY__LIMIT",
    "BITRATE__BUCKET_WIDTH",
    "BITRATE__STREAM_INDEX",
)


@pytest.fixture(autouse=True)
def _clean_settings(monkeypatch, tmp_path):
    # no stray .env, no inherited overrides, fresh cache per test
    monkeypatch.chdir(tmp_path)
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    settings_mod.get_settings.cache_clear()
    yield
    settings_mod.get_settings.cache_clear()


def _probe_doc(packets=None, duration="10.000000", error=None, streams=None) -> dict:
    """A compact ffprobe-style document; pass duration=None to drop `format`."""
    doc: dict = {}
    if packets is not None:
        doc["packets"] = [
            {"stream_index": s, "pts": pts, "pts_time": f"{t:.6f}", "size": str(size)}
            for (s, pts, t, size) in packets
        ]
    if streams is not None:
        doc["streams"] = streams
    if duration is not None:
        doc["format"] = {
            "filename": "clip.mp4",
            "nb_streams": 2,
            "format_name": "mov,mp4,m4a,3gp,3g2,mj2",
            "format_long_name": "QuickTime / MOV",
            "start_time": "0.000000",
            "duration": duration,
            "size": "1048576",
            "bit_rate": "838860",
            "probe_score": 100,
        }
    if error is not None:
        doc["error"] = error
    return doc


def _make_probe_data(**kwargs) -> ProbeData:
    return ProbeData.model_validate_json(json.dumps(_probe_doc(**kwargs)))


@pytest.fixture
def probe_doc():
    """Factory: packets as (stream_index, pts, pts_time, size) tuples -> ffprobe dict."""
    return _probe_doc


@pytest.fixture
def probe_data():
    """Factory: same arguments as probe_doc, decoded into ProbeData."""
    return _make_probe_data

# tests/services/test_ffprobe_adapter.py
from __future__ import annotations

import json
import subprocess
from pathlib import Path

import pytest

import bitgraph.common.path.locator as locator_mod
import bitgraph.services.probe.ffprobe_adapter as adapter_mod
from bitgraph.common.path.locator import ProgramLocator
from bitgraph.domain.errors import (
    DecodeFailure,
    DiscoveryFailure,
    InvalidInput,
    LaunchFailure,
    ProbeTimeout,
    ToolReportedError,
)
from bitgraph.services.probe.ffprobe_adapter import FFprobeAdapter, build_probe_args

FAKE_BIN = "/opt/ffmpeg/bin/ffprobe"


class _FakePopen:
    """Test double that records each spawn and replays canned stdout/rc."""
    calls = []
    instances = []
    stdout = b"{}"
    returncode = 0
    timeout_first = False
    spawn_error = None
    communicate_error = None

    def __init__(self, cmd, **kwargs):
        if _FakePopen.spawn_error is not None:
            raise _FakePopen.spawn_error
        _FakePopen.calls.append((cmd, kwargs))
        _FakePopen.instances.append(self)
        self.returncode = None
        self.killed = False
        self.exited = False
        self._timed_out = False

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.exited = True
        return False

    def communicate(self, timeout=None):
        if _FakePopen.communicate_error is not None:
            raise _FakePopen.communicate_error
        if _FakePopen.timeout_first and not self._timed_out:
            self._timed_out = True
            raise subprocess.TimeoutExpired(cmd="ffprobe", timeout=timeout)
        self.returncode = -9 if self.killed else _FakePopen.returncode
        return _FakePopen.stdout, None

    def kill(self):
        self.killed = True


@pytest.fixture(autouse=True)
def fake_popen(monkeypatch):
    _FakePopen.calls = []
    _FakePopen.instances = []
    _FakePopen.stdout = b"{}"
    _FakePopen.returncode = 0
    _FakePopen.timeout_first = False
    _FakePopen.spawn_error = None
    _FakePopen.communicate_error = None
    monkeypatch.setattr(adapter_mod.subprocess, "Popen", _FakePopen)
    return _FakePopen


@pytest.fixture
def media(tmp_path) -> Path:
    f = tmp_path / "clip.mp4"
    f.write_bytes(b"\x00" * 16)
    return f


def test_build_probe_args_layout(tmp_path):
    f = tmp_path / "video.mp4"
    args = build_probe_args(f)
    assert args == [
        "-hide_banner", "-show_error",
        "-show_entries", "packet=stream_index,pts,pts_time,size:stream:format",
        "-of", "json=c=1",
        str(f),
    ]
    args = build_probe_args(f, "v:0")
    assert args[-3:] == ["-select_streams", "v:0", str(f)]


def test_probe_spawns_with_piped_stdout_and_inherited_stderr(media, fake_popen, probe_doc):
    fake_popen.stdout = json.dumps(probe_doc(packets=[(0, 0, 0.0, 100)])).encode()
    ad = FFprobeAdapter(ffprobe_bin=FAKE_BIN)

    data = ad.probe(media)

    assert data.packets[0].size == 100
    assert data.format.duration == 10.0
    cmd, kwargs = fake_popen.calls[0]
    assert cmd[0] == FAKE_BIN
    assert cmd[1:] == build_probe_args(media)
    assert kwargs["stdout"] is subprocess.PIPE
    assert kwargs["stderr"] is None
    assert fake_popen.instances[0].exited
    assert not fake_popen.instances[0].killed


def test_missing_path_fails_before_spawn(tmp_path, fake_popen):
    ad = FFprobeAdapter(ffprobe_bin=FAKE_BIN)
    with pytest.raises(InvalidInput) as ei:
        ad.probe(tmp_path / "nope.mp4")
    assert "does not exist" in str(ei.value)
    assert ei.value.kind == "invalid_input"
    assert fake_popen.calls == []


def test_directory_fails_before_spawn(tmp_path, fake_popen):
    ad = FFprobeAdapter(ffprobe_bin=FAKE_BIN)
    with pytest.raises(InvalidInput) as ei:
        ad.probe(tmp_path)
    assert "is not a file" in str(ei.value)
    assert fake_popen.calls == []


def test_tool_reported_error_is_returned_not_raised(media, fake_popen):
    fake_popen.stdout = json.dumps(
        {"error": {"code": -1094995529, "string": "Invalid data found when processing input"}}
    ).encode()
    fake_popen.returncode = 1
    ad = FFprobeAdapter(ffprobe_bin=FAKE_BIN)

    data = ad.probe(media)
    assert data.error.code == -1094995529
    assert data.packets is None

    with pytest.raises(ToolReportedError) as ei:
        ad.probe_checked(media)
    assert ei.value.code == -1094995529
    assert ei.value.message == "Invalid data found when processing input"


def test_spawn_failure_is_launch_failure(media, fake_popen):
    fake_popen.spawn_error = PermissionError(13, "Permission denied")
    ad = FFprobeAdapter(ffprobe_bin=FAKE_BIN)
    with pytest.raises(LaunchFailure) as ei:
        ad.probe(media)
    assert "Permission denied" in str(ei.value)
    assert ei.value.kind == "launch_failure"


def test_garbage_output_is_decode_failure(media, fake_popen):
    fake_popen.stdout = b"Segmentation fault"
    fake_popen.returncode = 139
    ad = FFprobeAdapter(ffprobe_bin=FAKE_BIN)
    with pytest.raises(DecodeFailure) as ei:
        ad.probe(media)
    assert ei.value.rc == 139


def test_schema_mismatch_names_field(media, fake_popen):
    fake_popen.stdout = b'{"packets":[{"stream_index":0,"pts":0,"pts_time":0.5,"size":"1"}]}'
    ad = FFprobeAdapter(ffprobe_bin=FAKE_BIN)
    with pytest.raises(DecodeFailure) as ei:
        ad.probe(media)
    assert ei.value.field == "packets.0.pts_time"


def test_timeout_kills_child(media, fake_popen):
    fake_popen.timeout_first = True
    ad = FFprobeAdapter(ffprobe_bin=FAKE_BIN, timeout_sec=0.5)
    with pytest.raises(ProbeTimeout) as ei:
        ad.probe(media)
    assert isinstance(ei.value, LaunchFailure)
    assert ei.value.timeout_sec == 0.5
    assert fake_popen.instances[0].killed
    assert fake_popen.instances[0].exited


@pytest.mark.parametrize("exc", [KeyboardInterrupt(), MemoryError()])
def test_interrupted_wait_kills_and_reaps_child(media, fake_popen, exc):
    fake_popen.communicate_error = exc
    ad = FFprobeAdapter(ffprobe_bin=FAKE_BIN)
    with pytest.raises(type(exc)):
        ad.probe(media)
    child = fake_popen.instances[0]
    assert child.killed
    assert child.exited


def test_fetch_version(fake_popen):
    fake_popen.stdout = json.dumps({"program_version": {
        "version": "6.1.1",
        "copyright": "Copyright (c) 2007-2023 the FFmpeg developers",
        "compiler_ident": "gcc 13.2.0",
        "configuration": "--enable-gpl --enable-libx264",
    }}).encode()
    ad = FFprobeAdapter(ffprobe_bin=FAKE_BIN)
    ver = ad.fetch_version()
    assert ver.version == "6.1.1"
    cmd, _ = fake_popen.calls[0]
    assert cmd[1:] == ["-hide_banner", "-show_program_version", "-of", "json=c=1"]


def test_binary_from_settings(monkeypatch):
    monkeypatch.setenv("FFPROBE_BIN", FAKE_BIN)
    ad = FFprobeAdapter()
    assert ad.ffprobe_bin == Path(FAKE_BIN)


def test_binary_from_locator(tmp_path, monkeypatch):
    target = tmp_path / "lib" / "ffprobe"
    target.parent.mkdir()
    target.write_bytes(b"")
    loc = ProgramLocator(exe_dir=tmp_path / "none", work_dir=tmp_path, system_dirs=[], platform="linux")
    ad = FFprobeAdapter(locator=loc)
    assert ad.ffprobe_bin == target


def test_discovery_failure(tmp_path, monkeypatch):
    def _no_which(*a, **k):
        raise FileNotFoundError("which")

    monkeypatch.setattr(locator_mod.subprocess, "run", _no_which)
    loc = ProgramLocator(exe_dir=tmp_path, work_dir=tmp_path, system_dirs=[], platform="linux")
    with pytest.raises(DiscoveryFailure):
        FFprobeAdapter(locator=loc)


def test_timeout_defaults_to_settings(monkeypatch):
    monkeypatch.setenv("FFPROBE__TIMEOUT_SEC", "12")
    assert FFprobeAdapter(ffprobe_bin=FAKE_BIN).timeout_sec == 12
    assert FFprobeAdapter(ffprobe_bin=FAKE_BIN, timeout_sec=3).timeout_sec == 3

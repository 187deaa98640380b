# bitgraph/services/probe/ffprobe_adapter.py
from __future__ import annotations

import shlex
import subprocess
from pathlib import Path
from typing import List, Optional

from bitgraph.common.logging import get_logger
from bitgraph.common.path.locator import ProgramLocator
from bitgraph.common.settings import get_settings
from bitgraph.domain.entities.probe import (
    ProbeData,
    ProgramVersion,
    decode_probe_data,
    decode_program_version,
)
from bitgraph.domain.errors import InvalidInput, LaunchFailure, ProbeTimeout, ToolReportedError
from bitgraph.domain.ports.probe import MediaProbePort

logger = get_logger(__name__)

PACKET_ENTRIES = "packet=stream_index,pts,pts_time,size:stream:format"
JSON_OUTPUT = "json=c=1"


def build_probe_args(path: Path | str, stream_select: Optional[str] = None) -> List[str]:
    """Arguments (without the binary) for a packet/stream/format probe."""
    args = [
        "-hide_banner",
        "-show_error",
        "-show_entries", PACKET_ENTRIES,
        "-of", JSON_OUTPUT,
    ]
    if stream_select:
        args += ["-select_streams", stream_select]
    args.append(str(path))
    return args


def build_version_args() -> List[str]:
    return ["-hide_banner", "-show_program_version", "-of", JSON_OUTPUT]


def ensure_ok(data: ProbeData) -> ProbeData:
    """Raise ToolReportedError if ffprobe reported a problem with the input."""
    if data.error is not None:
        raise ToolReportedError.from_probe_error(data.error)
    return data


class FFprobeAdapter(MediaProbePort):
    """
    Infrastructure adapter implementing MediaProbePort using `ffprobe`.

    The binary is located once, on construction, and never changes afterwards.
    Each call is a blocking one-shot run: stdout is captured and decoded,
    stderr goes straight to our own stderr for humans to read.
    """

    def __init__(
        self,
        ffprobe_bin: Optional[Path | str] = None,
        timeout_sec: Optional[float] = None,
        locator: Optional[ProgramLocator] = None,
    ):
        cfg = get_settings()
        candidate = ffprobe_bin or cfg.ffprobe_bin
        if candidate:
            candidate = Path(candidate)
        else:
            # raises DiscoveryFailure when nothing turns up
            candidate = (locator or ProgramLocator()).require(cfg.ffprobe.program)

        self._ffprobe_bin = candidate
        self.timeout_sec = timeout_sec if timeout_sec is not None else cfg.ffprobe.timeout_sec
        logger.debug("using ffprobe at %s", self._ffprobe_bin)

    @property
    def ffprobe_bin(self) -> Path:
        return self._ffprobe_bin

    # ---- Port API -------------------------------------------------------------
    def probe(self, path: Path | str, stream_select: Optional[str] = None) -> ProbeData:
        """
        Probe packets, streams and format of `path`.

        A ProbeData whose `error` is set is returned, not raised: ffprobe ran
        and judged the input bad. Use `probe_checked` to raise instead.
        """
        if not path:
            raise InvalidInput("No path provided to probe().")
        p = Path(path)
        if not p.exists():
            raise InvalidInput(f"Path `{p}` does not exist", path=p)
        if not p.is_file():
            raise InvalidInput(f"Path `{p}` is not a file", path=p)

        stdout, rc = self._execute(build_probe_args(p, stream_select))
        data = decode_probe_data(stdout, rc=rc)
        if rc != 0:
            logger.warning("ffprobe exited with %s for %s", rc, p)
        logger.info(
            "probed %s: %d packet(s), error=%s",
            p, len(data.packets or ()), data.error.code if data.error else None,
        )
        return data

    def probe_checked(self, path: Path | str, stream_select: Optional[str] = None) -> ProbeData:
        return ensure_ok(self.probe(path, stream_select))

    def fetch_version(self) -> ProgramVersion:
        stdout, rc = self._execute(build_version_args())
        return decode_program_version(stdout, rc=rc)

    # ---- process handling -----------------------------------------------------
    def _execute(self, args: List[str]) -> tuple[bytes, int]:
        cmd = [str(self._ffprobe_bin), *args]
        logger.debug("ffprobe cmd: %s", " ".join(shlex.quote(p) for p in cmd))

        try:
            proc = subprocess.Popen(cmd, stdout=subprocess.PIPE, stderr=None, stdin=subprocess.DEVNULL)
        except OSError as e:
            raise LaunchFailure("Failed to spawn ffprobe", stderr=str(e)) from e

        with proc:
            try:
                stdout, _ = proc.communicate(timeout=self.timeout_sec)
            except subprocess.TimeoutExpired as e:
                proc.kill()
                proc.communicate()
                raise ProbeTimeout(
                    f"ffprobe timed out after {self.timeout_sec}s", timeout_sec=self.timeout_sec
                ) from e
            except BaseException:
                # __exit__ waits for the child, so it must be dead first
                proc.kill()
                raise
        return stdout or b"", proc.returncode

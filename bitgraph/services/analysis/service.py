# bitgraph/services/analysis/service.py
from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Optional, Tuple

from bitgraph.common.history import History
from bitgraph.common.logging import get_logger
from bitgraph.common.path.display import display_label
from bitgraph.common.settings import get_settings
from bitgraph.domain.entities import analysis
from bitgraph.domain.entities.analysis import AnalyzeStatus
from bitgraph.domain.entities.probe import ProgramVersion
from bitgraph.domain.errors import BitGraphError, DiscoveryFailure
from bitgraph.domain.ports.probe import MediaProbePort
from bitgraph.services.probe.ffprobe_adapter import FFprobeAdapter

logger = get_logger(__name__)


class AnalysisService:
    """
    High-level orchestrator the UI talks to.

    Owns the recent-files history and a lazily created probe adapter; the
    analysis state itself is passed in and returned, never stored.
    """

    def __init__(
        self,
        probe_factory: Optional[Callable[[], MediaProbePort]] = None,
        history: Optional[History[Path]] = None,
    ):
        self.cfg = get_settings()
        self.history: History[Path] = history if history is not None else History(self.cfg.history.limit)
        self._probe_factory = probe_factory or FFprobeAdapter
        self._probe: Optional[MediaProbePort] = None
        self._probe_lock = threading.Lock()
        self._executor: Optional[ThreadPoolExecutor] = None

    # -------------------------
    # Probe availability
    # -------------------------
    def probe_port(self) -> MediaProbePort:
        """The probe adapter, located on first use. Raises DiscoveryFailure."""
        with self._probe_lock:
            if self._probe is None:
                self._probe = self._probe_factory()
            return self._probe

    def is_available(self) -> bool:
        try:
            self.probe_port()
        except DiscoveryFailure as e:
            logger.warning("bitrate analysis unavailable: %s", e)
            return False
        return True

    def version(self) -> Optional[ProgramVersion]:
        """ffprobe version info for an About box; None when it cannot be read."""
        try:
            return self.probe_port().fetch_version()
        except BitGraphError as e:
            logger.warning("could not read ffprobe version: %s", e)
            return None

    # -------------------------
    # Files & history
    # -------------------------
    def open_file(self, path: Path | str) -> AnalyzeStatus:
        p = Path(path)
        self.history.push(p)
        return analysis.select(p)

    def recent_files(self, home: Optional[Path] = None) -> Tuple[Tuple[Path, str], ...]:
        """(path, menu label) pairs, most recent first."""
        return tuple((p, display_label(p, home)) for p in self.history.snapshot())

    def clear_history(self) -> None:
        self.history.clear()

    # -------------------------
    # Pipeline
    # -------------------------
    def advance(self, state: AnalyzeStatus, *, bucket_width: Optional[float] = None) -> AnalyzeStatus:
        """Drive `state` as far as it goes: probe if pending, then render if ready."""
        width = bucket_width if bucket_width is not None else self.cfg.bitrate.bucket_width
        stream_index = self.cfg.bitrate.stream_index
        if isinstance(state, analysis.PendingProbe):
            try:
                port = self.probe_port()
            except DiscoveryFailure as e:
                return analysis.ProbeFailed(e, state.path)
            state = analysis.run_probe(state, port, stream_select=str(stream_index))
        return analysis.render(state, width, stream_index=stream_index)

    def analyze(self, path: Path | str, *, bucket_width: Optional[float] = None) -> AnalyzeStatus:
        """Blocking: open `path`, probe it and build the histogram."""
        return self.advance(self.open_file(path), bucket_width=bucket_width)

    def submit(self, path: Path | str, *, bucket_width: Optional[float] = None) -> Future[AnalyzeStatus]:
        """
        Like analyze(), but the probe runs on a background worker.
        Probes are serialized: one worker, submission order preserved.
        """
        state = self.open_file(path)
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="bitgraph-probe")
        return self._executor.submit(self.advance, state, bucket_width=bucket_width)

    # -------------------------
    # Lifecycle
    # -------------------------
    def shutdown(self, wait: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait, cancel_futures=not wait)
            self._executor = None

    def __enter__(self) -> "AnalysisService":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown(wait=True)

# bitgraph/domain/entities/analysis.py
"""
Analysis status of the currently selected file, as an explicit state machine.

    NotSelected --select--> PendingProbe --run_probe--> Ready --render--> Rendered
                                  |                        |
                                  +------> ProbeFailed <---+

The caller owns the state value and advances it; nothing here keeps state
between calls.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

from bitgraph.domain.entities.histogram import Bar
from bitgraph.domain.entities.probe import ProbeData
from bitgraph.domain.errors import BitGraphError, ToolReportedError
from bitgraph.domain.policies.bitrate import aggregate
from bitgraph.domain.ports.probe import MediaProbePort


@dataclass(frozen=True)
class NotSelected:
    pass


@dataclass(frozen=True)
class PendingProbe:
    path: Path


@dataclass(frozen=True)
class ProbeFailed:
    reason: BitGraphError
    path: Optional[Path] = None

    @property
    def kind(self) -> str:
        return self.reason.kind

    @property
    def message(self) -> str:
        return self.reason.user_message()


@dataclass(frozen=True)
class Ready:
    path: Path
    data: ProbeData


@dataclass(frozen=True)
class Rendered:
    path: Path
    data: ProbeData
    bars: Tuple[Bar, ...]
    bucket_width: float
    stream_index: int = 0


AnalyzeStatus = Union[NotSelected, PendingProbe, ProbeFailed, Ready, Rendered]


# ---- transitions ---------------------------------------------------------------
def select(path: Path | str) -> PendingProbe:
    return PendingProbe(Path(path))


def close() -> NotSelected:
    return NotSelected()


def run_probe(state: AnalyzeStatus, port: MediaProbePort, stream_select: Optional[str] = None) -> AnalyzeStatus:
    """PendingProbe -> Ready | ProbeFailed. Other states pass through untouched."""
    if not isinstance(state, PendingProbe):
        return state
    try:
        data = port.probe(state.path, stream_select)
    except BitGraphError as e:
        return ProbeFailed(e, state.path)
    if data.error is not None:
        return ProbeFailed(ToolReportedError.from_probe_error(data.error), state.path)
    return Ready(state.path, data)


def render(state: AnalyzeStatus, bucket_width: float, *, stream_index: int = 0) -> AnalyzeStatus:
    """
    Ready -> Rendered | ProbeFailed. A Rendered state is re-rendered when the
    bucket width or stream changes; any other state passes through.
    """
    if isinstance(state, Rendered):
        if (state.bucket_width, state.stream_index) == (bucket_width, stream_index):
            return state
        state = Ready(state.path, state.data)
    if not isinstance(state, Ready):
        return state
    try:
        bars = aggregate(state.data, bucket_width, stream_index=stream_index)
    except BitGraphError as e:
        return ProbeFailed(e, state.path)
    return Rendered(state.path, state.data, tuple(bars), bucket_width, stream_index)

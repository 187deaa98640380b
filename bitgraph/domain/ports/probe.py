from __future__ import annotations
from pathlib import Path
from typing import Optional, Protocol
from bitgraph.domain.entities.probe import ProbeData, ProgramVersion

class MediaProbePort(Protocol):
    def probe(self, path: Path, stream_select: Optional[str] = None) -> ProbeData: ...
    def fetch_version(self) -> ProgramVersion: ...

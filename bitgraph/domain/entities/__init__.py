from bitgraph.domain.entities.histogram import Bar
from bitgraph.domain.entities.probe import (
    Format,
    Packet,
    ProbeData,
    ProbeError,
    ProgramVersion,
    Stream,
)

__all__ = [
    "Bar",
    "Format",
    "Packet",
    "ProbeData",
    "ProbeError",
    "ProgramVersion",
    "Stream",
]

# bitgraph/domain/errors.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar, Optional


class BitGraphError(RuntimeError):
    """
    Root of every recoverable failure raised by the bitgraph core.

    Each subclass carries a stable `kind` tag so callers (and the analysis
    state machine) can branch on the failure without isinstance ladders, and
    a `user_message()` suitable for showing in a dialog or status bar.
    """
    kind: ClassVar[str] = "error"

    def user_message(self) -> str:
        return str(self)


@dataclass(eq=False)
class DiscoveryFailure(BitGraphError):
    """The probe executable was not found by any search strategy."""
    message: str
    program: str = "ffprobe"
    kind: ClassVar[str] = "discovery_failure"

    def __str__(self) -> str:
        return self.message

    def user_message(self) -> str:
        return f"{self.program} could not be found. Install FFmpeg or place {self.program} next to the application."


@dataclass(eq=False)
class InvalidInput(BitGraphError):
    """The path handed to the probe does not exist or is not a regular file."""
    message: str
    path: Optional[Path] = None
    kind: ClassVar[str] = "invalid_input"

    def __str__(self) -> str:
        return self.message

    def user_message(self) -> str:
        return f"Cannot open {self.path}: {self.message}" if self.path else self.message


@dataclass(eq=False)
class LaunchFailure(BitGraphError):
    """ffprobe could not be started (or had to be killed)."""
    message: str
    stderr: Optional[str] = None
    rc: Optional[int] = None
    kind: ClassVar[str] = "launch_failure"

    def __str__(self) -> str:
        return f"{self.message}: {self.stderr}" if self.stderr else self.message

    def user_message(self) -> str:
        return f"ffprobe failed to run ({self}). Check the ffprobe installation."


@dataclass(eq=False)
class ProbeTimeout(LaunchFailure):
    timeout_sec: Optional[float] = None


@dataclass(eq=False)
class DecodeFailure(BitGraphError):
    """ffprobe ran but its output was not the JSON document we expect."""
    message: str
    field: Optional[str] = None
    rc: Optional[int] = None
    kind: ClassVar[str] = "decode_failure"

    def __str__(self) -> str:
        return f"{self.message} (field: {self.field})" if self.field else self.message

    def user_message(self) -> str:
        return f"ffprobe produced unreadable output ({self}). The ffprobe build may be incompatible."


@dataclass(eq=False)
class ToolReportedError(BitGraphError):
    """ffprobe ran fine and reported, in its own JSON, that the input is bad."""
    code: int
    message: str
    kind: ClassVar[str] = "tool_reported_error"

    def __str__(self) -> str:
        return f"ffprobe error {self.code}: {self.message}"

    def user_message(self) -> str:
        return f"The selected file could not be analyzed: {self.message}"

    @classmethod
    def from_probe_error(cls, err) -> "ToolReportedError":
        return cls(code=err.code, message=err.message)


@dataclass(eq=False)
class AggregationPrecondition(BitGraphError):
    """Decoded probe data lacks what the histogram needs (packets, duration)."""
    message: str
    missing: Optional[str] = None
    kind: ClassVar[str] = "aggregation_precondition"

    def __str__(self) -> str:
        return self.message

    def user_message(self) -> str:
        return f"Not enough information to draw a bitrate graph: {self.message}"

# bitgraph/domain/entities/histogram.py
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Bar:
    """
    One histogram bucket, ready for a bar chart.
    `value` is the average rate over the bucket in KiB/s.
    """
    center_time: float
    value: float
    width: float

    @property
    def start_time(self) -> float:
        return self.center_time - self.width / 2

    @property
    def end_time(self) -> float:
        return self.center_time + self.width / 2

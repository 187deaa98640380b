# bitgraph/domain/policies/bitrate.py
from __future__ import annotations

import math
from typing import Iterable, List, Sequence

from bitgraph.common.logging import get_logger
from bitgraph.domain.entities.histogram import Bar
from bitgraph.domain.entities.probe import Packet, ProbeData
from bitgraph.domain.errors import AggregationPrecondition

logger = get_logger(__name__)

KIB = 1024
# about eleven days of 1s buckets; longer durations come from corrupt headers
MAX_BUCKETS = 1_000_000


def _packet_order(p: Packet):
    # decode order; the rest only makes ties deterministic
    return (p.pts, p.pts_time, p.size)


def select_packets(packets: Iterable[Packet], stream_index: int = 0) -> List[Packet]:
    """Packets of one stream, sorted by pts."""
    return sorted((p for p in packets if p.stream_index == stream_index), key=_packet_order)


def aggregate(
    data: ProbeData,
    bucket_width: float,
    *,
    stream_index: int = 0,
    max_buckets: int = MAX_BUCKETS,
) -> List[Bar]:
    """
    Bucket packet sizes of `stream_index` into `bucket_width`-second bins and
    return one Bar per bin (KiB/s), ordered by time.

    The number of bins is ceil(duration / bucket_width). Packets whose
    timestamp falls before 0 or past the declared duration are clamped into
    the first/last bin so every byte is accounted for.
    """
    if not (isinstance(bucket_width, (int, float)) and math.isfinite(bucket_width) and bucket_width > 0):
        raise ValueError(f"bucket_width must be a positive finite number, got {bucket_width!r}")
    if data.packets is None:
        raise AggregationPrecondition("probe data has no packets", missing="packets")
    if data.format is None or data.format.duration is None:
        raise AggregationPrecondition("media duration is unknown", missing="duration")

    duration = data.format.duration
    if not math.isfinite(duration) or duration <= 0:
        raise AggregationPrecondition(f"media duration is not positive ({duration})", missing="duration")

    buckets = duration / bucket_width
    if not math.isfinite(buckets) or buckets > max_buckets:
        raise AggregationPrecondition(
            f"media duration {duration}s needs more than {max_buckets} buckets of {bucket_width}s",
            missing="duration",
        )
    n = math.ceil(buckets)
    rates = [0.0] * n
    clamped = 0

    for pkt in select_packets(data.packets, stream_index):
        pos = pkt.pts_time / bucket_width
        if pos < 0 or pos >= n:
            clamped += 1
            idx = 0 if pos < 0 else n - 1
        else:
            idx = math.floor(pos)
        rates[idx] += pkt.size / bucket_width / KIB

    if clamped:
        logger.warning("%d packet(s) outside 0..%.3fs were clamped into the edge buckets", clamped, duration)

    return [
        Bar(center_time=i * bucket_width + bucket_width / 2, value=v, width=bucket_width)
        for i, v in enumerate(rates)
    ]


def total_bytes(bars: Sequence[Bar]) -> float:
    """Bytes represented by `bars` (inverse of the KiB/s density)."""
    return sum(b.value * b.width * KIB for b in bars)

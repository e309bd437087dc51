"""
Aggregation & Ranking

Turns per-Function accumulators and the Line Histogram into ranked output
records.

Function records:
- the first `warmup_skip` invocation durations are dropped (first calls are
  systematically slower and skew mean/median)
- mean/median over what remains, 0 if nothing remains
- occupancy_fraction = inclusive time / total profiled time. This is the share
  of wall time the function was anywhere on the stack, not self time.
- sorted by mean_ms descending

Line records:
- total_ms = sum of deltas on the line
- avg_per_sec = total_ms per second of profile
- sorted by line ascending
"""

from typing import Iterable, List, Sequence, Tuple

import numpy as np

from ..settings import ProfileSettings
from .line_histogram import LineHistogram
from .node_table import Function, FunctionRegistry
from .types import FunctionRecord, LineRecord

ROOT_FUNCTION_NAME = "(root)"

US_PER_MS = 1000.0


def trimmed_stats(samples: Sequence[float], warmup_skip: int) -> Tuple[float, float]:
    """(mean, median) of `samples` after dropping the first `warmup_skip` entries."""
    kept = samples[warmup_skip:]
    if len(kept) == 0:
        return 0.0, 0.0
    arr = np.asarray(kept, dtype=float)
    return float(np.mean(arr)), float(np.median(arr))


def _occupancy(function: Function, total_us: float) -> float:
    if total_us <= 0:
        return 0.0
    return function.inclusive_time_sum / total_us


def build_function_records(
    functions: Iterable[Function],
    total_us: float,
    settings: ProfileSettings,
) -> List[FunctionRecord]:
    """Function records ranked by mean_ms descending (ties keep registry order)."""
    records = []
    for fn in functions:
        if not settings.include_root and fn.name == ROOT_FUNCTION_NAME:
            continue
        mean_us, median_us = trimmed_stats(fn.duration_samples, settings.warmup_skip)
        records.append(FunctionRecord(
            name=fn.name,
            url=fn.url,
            line=fn.line,
            column=fn.column,
            occupancy_fraction=_occupancy(fn, total_us),
            mean_ms=mean_us / US_PER_MS,
            median_ms=median_us / US_PER_MS,
        ))

    records.sort(key=lambda r: r.mean_ms, reverse=True)
    if settings.top_n is not None:
        records = records[:settings.top_n]
    return records


def build_line_records(
    histogram: LineHistogram,
    registry: FunctionRegistry,
    total_us: float,
) -> List[LineRecord]:
    """Line records ranked by raw line ascending."""
    total_profiled_ms = total_us / US_PER_MS
    records = []
    for bucket in histogram.buckets():
        total_ms = bucket.total / US_PER_MS
        avg_per_sec = total_ms / total_profiled_ms * 1000 if total_profiled_ms > 0 else 0.0
        records.append(LineRecord(
            line=bucket.line,
            url=registry.url_for_script(bucket.script_id),
            total_ms=total_ms,
            avg_per_sec=avg_per_sec,
        ))
    return records


"""
Line Histogram

Accumulates sample time per raw source line, independent of function
identity. Lines are kept exactly as the profiler reports them (0-based).
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class LineBucket:
    line: int
    deltas: List[float] = field(default_factory=list)
    script_id: Optional[int] = None

    @property
    def total(self) -> float:
        return sum(self.deltas)


class LineHistogram:
    def __init__(self):
        self._buckets: Dict[int, LineBucket] = {}

    def __len__(self) -> int:
        return len(self._buckets)

    def record(self, line: int, time_delta: float, script_id: Optional[int]) -> None:
        bucket = self._buckets.get(line)
        if bucket is None:
            bucket = self._buckets[line] = LineBucket(line=line)
        bucket.deltas.append(time_delta)
        # Last write wins.
        bucket.script_id = script_id

    def buckets(self) -> List[LineBucket]:
        """Buckets sorted by line ascending."""
        return [self._buckets[line] for line in sorted(self._buckets)]

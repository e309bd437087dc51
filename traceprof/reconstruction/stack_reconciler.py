"""
Stack Reconciler

Rebuilds the active call stack at every sample from a single leaf node id,
using nothing but parent lookups in the NodeTable.

For each sample:
1. Walk up from the leaf until a node already on the stack is found (index j).
   That is the deepest ancestor still active; everything collected on the way
   is newly entered.
2. Close every frame deeper than j: its elapsed time goes into the owning
   Function's duration_samples.
3. Push the collected path (outermost first), stamping start_time.
4. Add the sample's delta once to each distinct Function on the stack, so
   recursion never double-counts inclusive time.
5. Advance the clock and feed the Line Histogram.

Samples must be processed strictly in order; the stack persists across chunks.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..trace_types import ProfileChunkEvent
from .errors import TraceStructureError
from .line_histogram import LineHistogram
from .node_table import Node, NodeTable

logger = logging.getLogger(__name__)


@dataclass
class ActiveFrame:
    node: Node
    start_time: Optional[float]

    @property
    def node_id(self) -> int:
        return self.node.id


class StackReconciler:
    def __init__(
        self,
        table: NodeTable,
        histogram: Optional[LineHistogram] = None,
        start_time: float = 0.0,
    ):
        self.table = table
        self.histogram = histogram if histogram is not None else LineHistogram()
        self.current_time = start_time
        self.stack: List[ActiveFrame] = []
        self._position: Dict[int, int] = {}  # node id -> stack index

        self.sample_count = 0
        self.dropped_samples = 0
        self.parent_cycles = 0
        self.frames_opened = 0
        self.frames_closed = 0

    def stack_node_ids(self) -> List[int]:
        """Active path, root first."""
        return [frame.node_id for frame in self.stack]

    # ------------------------------------------------------------------
    # Per-chunk
    # ------------------------------------------------------------------

    def process_chunk(self, chunk: ProfileChunkEvent) -> int:
        """
        Register the chunk's nodes, then fold its samples in order.

        Returns the number of samples attributed (dropped samples excluded).

        Raises:
            TraceStructureError: if samples/timeDeltas/lines differ in length
        """
        samples = chunk.samples
        deltas = chunk.time_deltas
        lines = chunk.lines

        if len(deltas) != len(samples):
            raise TraceStructureError(
                f"Chunk at ts={chunk.ts}: {len(samples)} samples but {len(deltas)} timeDeltas"
            )
        if lines is not None and len(lines) != len(samples):
            raise TraceStructureError(
                f"Chunk at ts={chunk.ts}: {len(samples)} samples but {len(lines)} lines"
            )

        self.table.register_chunk(chunk)

        attributed = 0
        for i, node_id in enumerate(samples):
            line = lines[i] if lines is not None else None
            if self.process_sample(node_id, deltas[i], line):
                attributed += 1
        return attributed

    # ------------------------------------------------------------------
    # Per-sample
    # ------------------------------------------------------------------

    def process_sample(self, leaf_node_id: int, time_delta: float, source_line: Optional[int] = None) -> bool:
        """Reconcile the stack against one sample. False if the sample was dropped."""
        leaf = self.table.get(leaf_node_id)
        if leaf is None:
            # No function identity to attribute to; time still passes.
            self.dropped_samples += 1
            self.current_time += time_delta
            logger.debug("Dropping sample for unknown node %s", leaf_node_id)
            return False

        path, j = self._walk_to_stack(leaf)
        self._close_deeper_than(j)
        for node in reversed(path):
            self._push(node)

        self._attribute(time_delta)
        self.current_time += time_delta

        if source_line is not None:
            self.histogram.record(source_line, time_delta, leaf.function.script_id)

        self.sample_count += 1
        return True

    def _walk_to_stack(self, leaf: Node) -> Tuple[List[Node], int]:
        """
        Collect [leaf, parent(leaf), ...] until a node already on the stack.

        Returns the collected path and the stack index of the matching
        ancestor, or -1 when the walk reached a root (or a cycle) first.
        """
        path: List[Node] = []
        seen = set()
        node: Optional[Node] = leaf
        while node is not None:
            j = self._position.get(node.id)
            if j is not None:
                return path, j
            if node.id in seen:
                self.parent_cycles += 1
                logger.warning("Parent cycle through node %s; treating it as a root", node.id)
                break
            seen.add(node.id)
            path.append(node)
            node = self.table.parent_of(node)
        return path, -1

    def _close_deeper_than(self, j: int) -> None:
        # Innermost invocation ends first.
        for frame in reversed(self.stack[j + 1:]):
            if frame.start_time is not None:
                frame.node.function.duration_samples.append(self.current_time - frame.start_time)
                frame.start_time = None
                self.frames_closed += 1
            del self._position[frame.node_id]
        del self.stack[j + 1:]

    def _push(self, node: Node) -> None:
        self._position[node.id] = len(self.stack)
        self.stack.append(ActiveFrame(node=node, start_time=self.current_time))
        self.frames_opened += 1

    def _attribute(self, time_delta: float) -> None:
        seen = set()
        for frame in self.stack:
            function = frame.node.function
            if function.index in seen:
                continue
            seen.add(function.index)
            function.inclusive_time_sum += time_delta

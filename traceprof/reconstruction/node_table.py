"""
Node Identity Table & Function Registry

Accumulates, across all chunks, the profiler's sample-node ids and the
deduplicated call-site identities (Functions) they map to.

Storage is an arena: Functions and Nodes live in lists and are addressed by
stable integer indices. Dicts are used only to dedup identities on insertion
and to map sample-node ids to arena indices.

Coordinates are normalised to 1-based before a Function key is built, so two
node ids with identical call-site coordinates (recursion, repeated call
sites) collapse onto one Function and one set of statistics.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

import networkx as nx

from ..trace_types import RawNode, ProfileChunkEvent

logger = logging.getLogger(__name__)

# (script_id or 0, 1-based line, 1-based column, function name)
FunctionKey = Tuple[int, int, int, str]


@dataclass(eq=False)
class Function:
    """A deduplicated call-site identity and its aggregation state."""
    index: int
    name: str
    url: str
    script_id: int
    line: int
    column: int
    duration_samples: List[float] = field(default_factory=list)
    inclusive_time_sum: float = 0.0

    @property
    def key(self) -> FunctionKey:
        return (self.script_id, self.line, self.column, self.name)


@dataclass(eq=False)
class Node:
    """One call-tree position as emitted by the profiler (not one invocation)."""
    index: int
    id: int
    function: Function
    parent_id: Optional[int]
    resolved_parent: Optional[int] = None  # arena index of the parent Node


class FunctionRegistry:
    """Interns call-site identities into Function records."""

    def __init__(self):
        self.functions: List[Function] = []
        self._by_key: Dict[FunctionKey, int] = {}
        self._script_urls: Dict[int, str] = {}

    def __len__(self) -> int:
        return len(self.functions)

    def __iter__(self) -> Iterator[Function]:
        return iter(self.functions)

    def __getitem__(self, index: int) -> Function:
        return self.functions[index]

    def intern(self, name: str, url: str, script_id: int, line: int, column: int) -> Function:
        """Return the Function for this identity, creating it on first sight."""
        key = (script_id, line, column, name)
        existing = self._by_key.get(key)
        if existing is not None:
            return self.functions[existing]

        function = Function(
            index=len(self.functions),
            name=name,
            url=url,
            script_id=script_id,
            line=line,
            column=column,
        )
        self.functions.append(function)
        self._by_key[key] = function.index
        if url and script_id not in self._script_urls:
            self._script_urls[script_id] = url
        return function

    def url_for_script(self, script_id: Optional[int]) -> str:
        if script_id is None:
            return ""
        return self._script_urls.get(script_id, "")


def _normalise(raw: Optional[int], inherited: Optional[int]) -> int:
    """
    Raw 0-based coordinate -> 1-based; inherited values are already 1-based.

    Only a missing coordinate falls back to the parent. V8's -1 ("no source
    position", native frames) is a real value and normalises to 0, so a native
    frame keeps one identity whoever calls it.
    """
    if raw is not None:
        return raw + 1
    if inherited is not None:
        return inherited
    return 1


class NodeTable:
    """
    Sample-node id -> Node, accumulated over every chunk and never purged.

    Registration is idempotent: a later chunk re-describing a known id gets the
    existing Node back unchanged.
    """

    def __init__(self, registry: Optional[FunctionRegistry] = None):
        self.registry = registry if registry is not None else FunctionRegistry()
        self.nodes: List[Node] = []
        self._index_by_id: Dict[int, int] = {}
        self._pending_children: Dict[int, List[int]] = defaultdict(list)
        self.unresolved_parents = 0

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, node_id: int) -> bool:
        return node_id in self._index_by_id

    def get(self, node_id: Optional[int]) -> Optional[Node]:
        if node_id is None:
            return None
        index = self._index_by_id.get(node_id)
        return self.nodes[index] if index is not None else None

    def parent_of(self, node: Node) -> Optional[Node]:
        if node.resolved_parent is None:
            return None
        return self.nodes[node.resolved_parent]

    def register_node(self, raw: RawNode) -> Node:
        existing = self.get(raw.id)
        if existing is not None:
            return existing

        parent_id = raw.parent_id
        parent = self.get(parent_id)
        inherited = parent.function if parent is not None else None
        frame = raw.call_frame

        function = self.registry.intern(
            name=frame.function_name,
            url=frame.url,
            script_id=frame.script_id or 0,
            line=_normalise(frame.line_number, inherited.line if inherited else None),
            column=_normalise(frame.column_number, inherited.column if inherited else None),
        )

        node = Node(
            index=len(self.nodes),
            id=raw.id,
            function=function,
            parent_id=parent_id,
            resolved_parent=parent.index if parent is not None else None,
        )
        self.nodes.append(node)
        self._index_by_id[raw.id] = node.index

        if parent_id is not None and parent is None:
            # Forward reference; filled in when the parent shows up.
            self._pending_children[parent_id].append(node.index)
            logger.debug("Node %s registered before its parent %s", raw.id, parent_id)

        for child_index in self._pending_children.pop(raw.id, ()):
            self.nodes[child_index].resolved_parent = node.index

        return node

    def register_chunk(self, chunk: ProfileChunkEvent) -> int:
        """
        Register every node described by a chunk; returns how many were new.

        A child listed ahead of its parent in the same chunk is not counted as
        unresolved. Only references still pending once the whole chunk is in
        add to `unresolved_parents`.
        """
        before = len(self.nodes)
        for raw in chunk.nodes:
            self.register_node(raw)
        self.unresolved_parents += sum(
            1
            for waiting in self._pending_children.values()
            for child_index in waiting
            if child_index >= before
        )
        return len(self.nodes) - before

    def to_networkx(self) -> nx.DiGraph:
        """
        Export the accumulated node graph.

        Nodes are keyed by sample-node id and carry the Function's name, url,
        line and column; edges run parent -> child for resolved parents only.
        """
        G = nx.DiGraph()
        for node in self.nodes:
            fn = node.function
            G.add_node(
                node.id,
                name=fn.name,
                url=fn.url,
                line=fn.line,
                column=fn.column,
                function_index=fn.index,
            )
        for node in self.nodes:
            parent = self.parent_of(node)
            if parent is not None:
                G.add_edge(parent.id, node.id)
        return G

    def max_depth(self) -> int:
        """Frames on the longest root-to-leaf path (0 for an empty or cyclic graph)."""
        G = self.to_networkx()
        if G.number_of_nodes() == 0 or not nx.is_directed_acyclic_graph(G):
            return 0
        return len(nx.dag_longest_path(G))

"""
V8 .cpuprofile support

A standalone .cpuprofile (as written by `node --cpu-prof` or the DevTools
"Save profile" button) holds the whole node tree at once, with `children`
lists instead of parent ids. These helpers turn one into the Profile +
ProfileChunk event pair that analyze_trace() consumes, or rank its nodes by
self time per hit without reconstructing the call tree.
"""

import posixpath
import re
from collections import defaultdict
from typing import Any, Dict, List, Optional

from .reconstruction.errors import TraceStructureError
from .reconstruction.types import SelfTimeRecord

_URL_SCHEME = re.compile(r'^\w[\w\d+.-]*:///?')


def is_valid_profile(profile: Dict[str, Any]) -> bool:
    """A profile is usable only if it carries both samples and timeDeltas."""
    return bool(profile.get('samples') and profile.get('timeDeltas'))


def rewrite_absolute_paths(profile: Dict[str, Any], replace: str = 'noAbsolutePaths') -> Dict[str, Any]:
    """
    Replace absolute file paths and scheme URLs in call frames with
    `<replace>/<basename>`, so profiles can be shared without leaking local
    directory layout. Mutates and returns `profile`.
    """
    for node in profile.get('nodes', []):
        frame = node.get('callFrame')
        url = frame.get('url') if frame else None
        if not url:
            continue
        if url.startswith('/') or _URL_SCHEME.match(url):
            frame['url'] = posixpath.join(replace, url.split('/')[-1])
    return profile


def _parent_ids(nodes: List[Dict[str, Any]]) -> Dict[int, int]:
    parents: Dict[int, int] = {}
    for node in nodes:
        for child in node.get('children') or ():
            parents.setdefault(child, node['id'])
    return parents


def events_from_cpuprofile(profile: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Convert a .cpuprofile dict into a [Profile, ProfileChunk] event list.

    The chunk's ts is the profile's endTime so the total profiled duration is
    endTime - startTime. Each sample's line is the sampled node's own
    callFrame.lineNumber (0 when unknown).

    Raises:
        TraceStructureError: if the profile has no samples/timeDeltas
    """
    if not is_valid_profile(profile):
        raise TraceStructureError("cpuprofile has no samples/timeDeltas")

    nodes = profile.get('nodes', [])
    parents = _parent_ids(nodes)
    frames_by_id = {node['id']: node.get('callFrame') or {} for node in nodes}

    raw_nodes = []
    for node in nodes:
        raw = {'id': node['id'], 'callFrame': node.get('callFrame') or {}}
        if node['id'] in parents:
            raw['parent'] = parents[node['id']]
        raw_nodes.append(raw)

    samples = list(profile['samples'])
    lines = []
    for node_id in samples:
        line = frames_by_id.get(node_id, {}).get('lineNumber')
        lines.append(line if isinstance(line, int) and line >= 0 else 0)

    start_time = profile.get('startTime', 0)
    end_time = profile.get('endTime')
    if end_time is None:
        end_time = start_time + sum(profile['timeDeltas'])

    return [
        {
            'ts': start_time,
            'name': 'Profile',
            'args': {'data': {'startTime': start_time}},
        },
        {
            'ts': end_time,
            'name': 'ProfileChunk',
            'args': {
                'data': {
                    'cpuProfile': {'nodes': raw_nodes, 'samples': samples},
                    'lines': lines,
                    'timeDeltas': list(profile['timeDeltas']),
                },
            },
        },
    ]


def _hottest_tick_line(node: Dict[str, Any]) -> Optional[int]:
    ticks = node.get('positionTicks') or []
    if not ticks:
        return None
    return max(ticks, key=lambda t: t.get('ticks', 0)).get('line')


def self_time_report(profile: Dict[str, Any], top_n: Optional[int] = None) -> List[SelfTimeRecord]:
    """
    Rank .cpuprofile nodes by self time per hit.

    A sample's timeDelta is charged to the node it landed on. Each node's
    hit count is its `hitCount`, or the number of samples on it when the
    profile omits hitCount. Nodes that never carried self time are left out.

    Raises:
        TraceStructureError: if the profile has no samples/timeDeltas
    """
    if not is_valid_profile(profile):
        raise TraceStructureError("cpuprofile has no samples/timeDeltas")

    samples = profile['samples']
    deltas = profile['timeDeltas']
    if len(samples) != len(deltas):
        raise TraceStructureError(
            f"cpuprofile: {len(samples)} samples but {len(deltas)} timeDeltas"
        )

    self_us: Dict[int, float] = defaultdict(float)
    sample_hits: Dict[int, int] = defaultdict(int)
    for node_id, delta in zip(samples, deltas):
        self_us[node_id] += delta
        sample_hits[node_id] += 1

    records = []
    for node in profile.get('nodes', []):
        node_id = node['id']
        if not self_us.get(node_id):
            continue
        frame = node.get('callFrame') or {}
        hits = node.get('hitCount')
        if hits is None:
            hits = sample_hits[node_id]
        self_ms = self_us[node_id] / 1000
        records.append(SelfTimeRecord(
            name=frame.get('functionName', ''),
            node_id=node_id,
            url=frame.get('url', ''),
            line=(frame.get('lineNumber') or 0) + 1,
            column=(frame.get('columnNumber') or 0) + 1,
            self_ms=self_ms,
            hit_count=hits,
            ms_per_hit=self_ms / (hits or 1),
            hot_line=_hottest_tick_line(node),
        ))

    records.sort(key=lambda r: (r.ms_per_hit, r.self_ms), reverse=True)
    if top_n is not None:
        records = records[:top_n]
    return records

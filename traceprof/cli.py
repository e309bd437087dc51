#!/usr/bin/env python3
"""
traceprof - rank function and line hotspots in a captured CPU profile.

Accepts either a Chrome performance trace (`{"traceEvents": [...]}` or a bare
event list) or a standalone V8 .cpuprofile.

Run: traceprof trace.json --top 50
"""

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .cpuprofile import events_from_cpuprofile, rewrite_absolute_paths, self_time_report
from .reconstruction import ProfileReport, SelfTimeRecord, TraceError, analyze_trace
from .settings import ProfileSettings, load_settings_file, settings_from_dict, settings_from_env


def _read_document(path: Path) -> Union[Dict[str, Any], List[Any]]:
    with open(path, 'r') as f:
        doc = json.load(f)
    if not isinstance(doc, (dict, list)):
        raise ValueError(f"{path}: expected a JSON object or array, got {type(doc).__name__}")
    return doc


def _as_cpuprofile(doc: Dict[str, Any], strip_paths: bool) -> Dict[str, Any]:
    # Optionally wrapped as {"profile": {...}}
    profile = doc.get('profile', doc)
    if strip_paths:
        rewrite_absolute_paths(profile)
    return profile


def load_events(path: Path, strip_paths: bool = False) -> List[Dict[str, Any]]:
    """Read a trace or .cpuprofile file and return trace events."""
    doc = _read_document(path)
    if isinstance(doc, list):
        return doc
    if 'traceEvents' in doc:
        return doc['traceEvents']
    return events_from_cpuprofile(_as_cpuprofile(doc, strip_paths))


def load_cpuprofile(path: Path, strip_paths: bool = False) -> Dict[str, Any]:
    """Read a .cpuprofile file; trace-event documents are rejected."""
    doc = _read_document(path)
    if isinstance(doc, list) or 'traceEvents' in doc:
        raise ValueError(f"{path}: --self-time needs a .cpuprofile, not a trace-event file")
    return _as_cpuprofile(doc, strip_paths)


def build_settings(args: argparse.Namespace) -> ProfileSettings:
    """Defaults < config file < TRACEPROF_* env < command-line flags."""
    base = load_settings_file(args.config) if args.config else ProfileSettings()
    settings = settings_from_env(base)

    overrides: Dict[str, Any] = {}
    if args.top is not None:
        overrides['top_n'] = args.top
    if args.warmup_skip is not None:
        overrides['warmup_skip'] = args.warmup_skip
    if args.no_lines:
        overrides['include_line_records'] = False
    if args.no_root:
        overrides['include_root'] = False
    if not overrides:
        return settings
    return settings_from_dict({**asdict(settings), **overrides})


def print_report(report: ProfileReport, line_limit: int) -> None:
    print(f"Profiled duration: {report.total_duration_ms:.2f}ms "
          f"({report.chunk_count} chunks, {report.sample_count} samples, "
          f"{report.function_count} functions)")

    print("\n" + "=" * 80)
    print("FUNCTIONS (by mean invocation time)")
    print("=" * 80)
    for rec in report.functions:
        print(f"{rec.mean_ms:.3f} {rec.name or '(anonymous)'}  "
              f"median={rec.median_ms:.3f} occupancy={rec.occupancy_fraction:.1%}  "
              f"{rec.url}:{rec.line}:{rec.column}")

    if report.lines:
        print("\n" + "=" * 80)
        print("LINES (by total time)")
        print("=" * 80)
        print(f"{'Total ms':<12} {'ms/sec':<10} {'Location':<60}")
        print("-" * 82)
        hottest = sorted(report.lines, key=lambda r: r.total_ms, reverse=True)[:line_limit]
        for rec in hottest:
            print(f"{rec.total_ms:>10.3f}  {rec.avg_per_sec:>8.3f}  {rec.url}:{rec.line}:{rec.column}")

    for warning in report.diagnostics.warnings:
        print(f"\n[WARNING] {warning}")


def print_self_time(records: List[SelfTimeRecord]) -> None:
    for rec in records:
        location = f"{rec.url}:{rec.line}:{rec.column}"
        if rec.hot_line is not None:
            location += f" (hot line {rec.hot_line})"
        print(f"{rec.ms_per_hit:.3f} {rec.name or '(anonymous)'} h={rec.hit_count}  "
              f"self={rec.self_ms:.3f}ms  {location}")


def run_self_time(args: argparse.Namespace) -> int:
    try:
        profile = load_cpuprofile(args.trace_file, strip_paths=args.strip_paths)
        records = self_time_report(profile, top_n=args.top)
    except (OSError, json.JSONDecodeError, TraceError, ValueError) as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps([r.model_dump() for r in records], indent=2))
    else:
        print_self_time(records)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Reconstruct call-tree timings from a sampled CPU profile."
    )
    parser.add_argument('trace_file', type=Path, help="Chrome trace JSON or .cpuprofile")
    parser.add_argument('--top', type=int, default=None, help="Keep only the top N function records")
    parser.add_argument('--warmup-skip', type=int, default=None,
                        help="Invocations dropped per function before mean/median (default 2)")
    parser.add_argument('--config', type=Path, default=None, help="YAML settings file")
    parser.add_argument('--no-lines', action='store_true', help="Omit per-line records")
    parser.add_argument('--no-root', action='store_true', help="Omit the synthetic (root) record")
    parser.add_argument('--line-limit', type=int, default=20, help="Line hotspots to print (text output)")
    parser.add_argument('--strip-paths', action='store_true',
                        help="Rewrite absolute script paths in a .cpuprofile to their basename")
    parser.add_argument('--self-time', action='store_true',
                        help="Rank .cpuprofile nodes by self time per hit instead of reconstructing the call tree")
    parser.add_argument('--json', action='store_true', help="Print the full report as JSON")
    parser.add_argument('-v', '--verbose', action='store_true', help="Debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="[%(levelname)s] %(name)s: %(message)s",
    )

    if args.self_time:
        return run_self_time(args)

    try:
        settings = build_settings(args)
        events = load_events(args.trace_file, strip_paths=args.strip_paths)
        report = analyze_trace(events, settings)
    except (OSError, json.JSONDecodeError, TraceError, ValueError) as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1

    if args.json:
        print(report.model_dump_json(indent=2))
    else:
        print_report(report, args.line_limit)
    return 0


if __name__ == '__main__':
    sys.exit(main())

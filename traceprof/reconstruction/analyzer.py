"""
Main Analyzer

Orchestrates the reconstruction flow:
1. Classify events into the Profile header and ProfileChunks
2. Per chunk: register nodes, reconcile the stack for every sample
3. Aggregate per-function and per-line statistics
4. Return a ranked ProfileReport

The whole run is a single-threaded fold over the samples in order.
Cancellation, if requested, is only checked between chunks.
"""

import logging
from typing import Any, Callable, Dict, Iterable, Optional

from ..settings import ProfileSettings, settings_from_dict, compute_settings_signature
from .aggregation import build_function_records, build_line_records
from .errors import AnalysisCancelled, TraceStructureError
from .event_classifier import classify_events
from .line_histogram import LineHistogram
from .node_table import NodeTable
from .stack_reconciler import StackReconciler
from .types import AnalysisError, AnalysisRequest, AnalysisResponse, ProfileReport

logger = logging.getLogger(__name__)


def analyze_trace(
    events: Iterable[Dict[str, Any]],
    settings: Optional[ProfileSettings] = None,
    should_cancel: Optional[Callable[[], bool]] = None,
) -> ProfileReport:
    """
    Reconstruct the call tree from sampled trace events and rank the results.

    Args:
        events: Chrome trace events (Profile + ProfileChunk, others ignored)
        settings: Aggregation settings (defaults if None)
        should_cancel: Polled before each chunk; returning True aborts the run

    Returns:
        ProfileReport with function records (by mean_ms desc), line records
        (by line asc) and diagnostics for any recovered input problems.

    Raises:
        TraceStructureError: structurally impossible input
        AnalysisCancelled: should_cancel() returned True
    """
    settings = settings or ProfileSettings()
    trace = classify_events(events)
    diagnostics = trace.diagnostics

    table = NodeTable()
    histogram = LineHistogram()
    reconciler = StackReconciler(table, histogram, start_time=trace.start_time)

    for chunk_index, chunk in enumerate(trace.chunks):
        if should_cancel is not None and should_cancel():
            raise AnalysisCancelled(f"Cancelled before chunk {chunk_index} of {len(trace.chunks)}")
        if chunk.lines is None:
            diagnostics.chunks_without_lines += 1
        attributed = reconciler.process_chunk(chunk)
        logger.debug(
            "Chunk %d: %d nodes known, %d/%d samples attributed, stack depth %d",
            chunk_index, len(table), attributed, len(chunk.samples), len(reconciler.stack),
        )

    diagnostics.unresolved_parents = table.unresolved_parents
    diagnostics.dropped_samples = reconciler.dropped_samples
    diagnostics.parent_cycles = reconciler.parent_cycles
    if reconciler.dropped_samples:
        message = f"Dropped {reconciler.dropped_samples} sample(s) referencing unknown nodes"
        logger.warning(message)
        diagnostics.warnings.append(message)
    if table.unresolved_parents:
        logger.info("%d node(s) were registered before their parent", table.unresolved_parents)

    total_us = trace.end_time - trace.start_time

    functions = []
    lines = []
    if reconciler.sample_count:
        functions = build_function_records(table.registry, total_us, settings)
        if settings.include_line_records:
            lines = build_line_records(histogram, table.registry, total_us)

    return ProfileReport(
        functions=functions,
        lines=lines,
        total_duration_ms=total_us / 1000.0,
        chunk_count=len(trace.chunks),
        sample_count=reconciler.sample_count,
        node_count=len(table),
        function_count=len(table.registry),
        max_stack_depth=table.max_depth(),
        settings_signature=compute_settings_signature(settings),
        diagnostics=diagnostics,
    )


def analyze(
    request: AnalysisRequest,
    should_cancel: Optional[Callable[[], bool]] = None,
) -> AnalysisResponse:
    """
    Request/response entry point.

    Failures are returned as AnalysisResponse(success=False) rather than raised.
    """
    try:
        report = analyze_trace(
            request.trace_events,
            settings_from_dict(request.settings),
            should_cancel=should_cancel,
        )
        return AnalysisResponse(success=True, report=report)

    except TraceStructureError as e:
        return AnalysisResponse(
            success=False,
            error=AnalysisError(error_type='structure_error', message=str(e)),
        )
    except AnalysisCancelled as e:
        logger.info("Trace analysis cancelled: %s", e)
        return AnalysisResponse(
            success=False,
            error=AnalysisError(error_type='cancelled', message=str(e)),
        )
    except Exception as e:
        logger.exception("Trace analysis failed")
        return AnalysisResponse(
            success=False,
            error=AnalysisError(
                error_type='compute_error',
                message=str(e),
                details={'exception': type(e).__name__},
            ),
        )

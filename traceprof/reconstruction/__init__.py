"""
Call-tree Reconstruction Package

Rebuilds an execution profile from chunked CPU-profiler samples and ranks
per-function and per-line timings.
"""

from .types import (
    FunctionRecord,
    LineRecord,
    SelfTimeRecord,
    Diagnostics,
    ProfileReport,
    AnalysisRequest,
    AnalysisResponse,
    AnalysisError,
)
from .errors import TraceError, TraceStructureError, AnalysisCancelled
from .event_classifier import ClassifiedTrace, classify_events
from .node_table import Function, FunctionRegistry, Node, NodeTable
from .stack_reconciler import ActiveFrame, StackReconciler
from .line_histogram import LineBucket, LineHistogram
from .aggregation import trimmed_stats, build_function_records, build_line_records
from .analyzer import analyze, analyze_trace

__all__ = [
    # Types
    'FunctionRecord',
    'LineRecord',
    'SelfTimeRecord',
    'Diagnostics',
    'ProfileReport',
    'AnalysisRequest',
    'AnalysisResponse',
    'AnalysisError',
    # Errors
    'TraceError',
    'TraceStructureError',
    'AnalysisCancelled',
    # Building blocks
    'ClassifiedTrace',
    'classify_events',
    'Function',
    'FunctionRegistry',
    'Node',
    'NodeTable',
    'ActiveFrame',
    'StackReconciler',
    'LineBucket',
    'LineHistogram',
    'trimmed_stats',
    'build_function_records',
    'build_line_records',
    # Functions
    'analyze',
    'analyze_trace',
]

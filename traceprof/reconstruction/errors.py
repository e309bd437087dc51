"""
Exceptions raised by call-tree reconstruction.

Malformed-but-recoverable input (missing profile header, unresolved parents,
dangling samples) is never raised; it is counted in Diagnostics instead.
"""


class TraceError(Exception):
    """Base class for trace analysis failures."""


class TraceStructureError(TraceError, ValueError):
    """The trace is structurally impossible to process (e.g. ragged parallel arrays)."""


class AnalysisCancelled(TraceError):
    """Cancellation was requested between two chunks."""

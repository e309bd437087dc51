"""
Profile Reconstruction Types

Pydantic models for the ranked output of call-tree reconstruction, plus the
request/response envelope used by analyze().
"""

from typing import Any, Literal, Optional, Union
from pydantic import BaseModel, Field


# ============================================================================
# Output Records
# ============================================================================

class FunctionRecord(BaseModel):
    """Aggregated timing for one deduplicated call-site (Function)."""
    kind: Literal["function"] = "function"
    name: str = Field(description="Function name as reported by the profiler")
    url: str = Field(default="", description="Script URL")
    line: int = Field(description="1-based line (0 for native frames)")
    column: int = Field(description="1-based column (0 for native frames)")
    occupancy_fraction: float = Field(
        description="Share of profiled wall time with the function anywhere on the stack"
    )
    mean_ms: float = Field(description="Mean invocation duration after warm-up trimming")
    median_ms: float = Field(description="Median invocation duration after warm-up trimming")


class LineRecord(BaseModel):
    """Total sampled time attributed to one raw source line."""
    kind: Literal["line"] = "line"
    line: int = Field(description="Raw (chunk-native, 0-based) line index")
    column: int = Field(default=1, description="Always 1; line records carry no column")
    url: str = Field(default="", description="URL of the script last seen on this line")
    total_ms: float = Field(description="Sum of sample deltas on this line")
    avg_per_sec: float = Field(description="Milliseconds on this line per second of profile")


OutputRecord = Union[FunctionRecord, LineRecord]


class SelfTimeRecord(BaseModel):
    """Self time of one .cpuprofile node, ranked by time per hit."""
    kind: Literal["self_time"] = "self_time"
    name: str
    node_id: int
    url: str = ""
    line: int = Field(description="1-based line (0 for native frames)")
    column: int = Field(description="1-based column (0 for native frames)")
    self_ms: float = Field(description="Sample time with this node as the leaf")
    hit_count: int = Field(description="Samples landing on this node")
    ms_per_hit: float = Field(description="self_ms / hit_count")
    hot_line: Optional[int] = Field(default=None, description="positionTicks line with the most ticks")


class Diagnostics(BaseModel):
    """Counts of recovered input problems; none of these abort a run."""
    missing_profile_header: bool = Field(default=False, description="Chunks arrived before any Profile event")
    unresolved_parents: int = Field(default=0, description="Nodes registered before their parent")
    dropped_samples: int = Field(default=0, description="Samples whose leaf node was never registered")
    parent_cycles: int = Field(default=0, description="Parent walks cut short by a cycle")
    chunks_without_lines: int = Field(default=0, description="Chunks that carried no line array")
    ignored_events: int = Field(default=0, description="Events that are neither Profile nor ProfileChunk")
    extra_profile_headers: int = Field(default=0, description="Profile events after the first")
    warnings: list[str] = Field(default_factory=list, description="Human-readable warnings")


class ProfileReport(BaseModel):
    """Ranked function and line records for one profile."""
    functions: list[FunctionRecord] = Field(default_factory=list, description="Sorted by mean_ms descending")
    lines: list[LineRecord] = Field(default_factory=list, description="Sorted by line ascending")
    total_duration_ms: float = Field(default=0.0, description="Last chunk ts minus profile start")
    chunk_count: int = Field(default=0)
    sample_count: int = Field(default=0)
    node_count: int = Field(default=0)
    function_count: int = Field(default=0)
    max_stack_depth: int = Field(default=0, description="Longest root-to-leaf path in the node graph")
    settings_signature: str = Field(default="", description="compute_settings_signature() of the settings used")
    diagnostics: Diagnostics = Field(default_factory=Diagnostics)

    @property
    def records(self) -> list[OutputRecord]:
        """Function records first, then line records."""
        return [*self.functions, *self.lines]

    def to_rows(self) -> list[dict[str, Any]]:
        return [r.model_dump() for r in self.records]


# ============================================================================
# Request / Response envelope
# ============================================================================

class AnalysisRequest(BaseModel):
    """Request to analyze a captured trace."""
    trace_events: list[dict[str, Any]] = Field(description="Chrome trace events (Profile + ProfileChunk)")
    settings: dict[str, Any] = Field(
        default_factory=dict,
        description="ProfileSettings overrides (see settings_from_dict)"
    )


class AnalysisError(BaseModel):
    """Error response from analysis."""
    error: bool = Field(default=True)
    error_type: str = Field(description="Error category: structure_error, cancelled, compute_error")
    message: str = Field(description="Human-readable error message")
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional error context"
    )


class AnalysisResponse(BaseModel):
    """Response from trace analysis."""
    success: bool = Field(default=True, description="Whether analysis succeeded")
    report: Optional[ProfileReport] = Field(default=None, description="Analysis report")
    error: Optional[AnalysisError] = Field(default=None, description="Error details if success=False")

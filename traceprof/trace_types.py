"""
Trace event type definitions using Pydantic

These models mirror the Chrome trace-event JSON emitted by the V8 sampling
profiler (`Profile` / `ProfileChunk` events). Field aliases keep the wire
names (camelCase) while the Python side uses snake_case.
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


# ============================================================================
# Call-tree nodes
# ============================================================================

class CallFrame(BaseModel):
    """Call-site coordinates as reported by the profiler (0-based line/column)."""
    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    function_name: str = Field("", alias="functionName", description="Function name ('' for anonymous)")
    script_id: Optional[int] = Field(None, alias="scriptId", description="V8 script id (0 or absent for native frames)")
    url: str = Field("", description="Script URL")
    line_number: Optional[int] = Field(None, alias="lineNumber", description="0-based line (-1 for native frames), absent for partial frames")
    column_number: Optional[int] = Field(None, alias="columnNumber", description="0-based column (-1 for native frames), absent for partial frames")

    @field_validator('script_id', mode='before')
    @classmethod
    def parse_script_id(cls, v):
        """V8 serialises scriptId as a string; accept both forms."""
        if v is None or v == '':
            return None
        return int(v)


class RawNode(BaseModel):
    """One call-tree position as described by a single chunk."""
    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    id: int = Field(..., description="Sample-node id, unique across the whole profile")
    parent: Optional[int] = Field(None, description="Parent node id (0/absent = root)")
    call_frame: CallFrame = Field(default_factory=CallFrame, alias="callFrame")

    @property
    def parent_id(self) -> Optional[int]:
        return self.parent or None


# ============================================================================
# Trace events
# ============================================================================

class ProfileStartData(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    start_time: Optional[float] = Field(None, alias="startTime", description="Profile start (microseconds)")


class ProfileEvent(BaseModel):
    """The single `Profile` marker that opens a sampled profile."""
    model_config = ConfigDict(extra='ignore')

    ts: float = Field(0, description="Event timestamp (microseconds)")
    name: str = "Profile"
    data: ProfileStartData = Field(default_factory=ProfileStartData)

    @property
    def start_time(self) -> float:
        if self.data.start_time is not None:
            return self.data.start_time
        return self.ts


class CpuProfileSlice(BaseModel):
    model_config = ConfigDict(extra='ignore')

    nodes: List[RawNode] = Field(default_factory=list)
    samples: List[int] = Field(default_factory=list)


class ProfileChunkData(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    cpu_profile: CpuProfileSlice = Field(default_factory=CpuProfileSlice, alias="cpuProfile")
    lines: Optional[List[int]] = Field(None, description="Current source line per sample (raw, 0-based)")
    time_deltas: List[float] = Field(default_factory=list, alias="timeDeltas", description="Microseconds since previous sample")


class ProfileChunkEvent(BaseModel):
    """One streamed batch of nodes and samples."""
    model_config = ConfigDict(extra='ignore')

    ts: float = Field(0, description="Event timestamp (microseconds)")
    name: str = "ProfileChunk"
    data: ProfileChunkData = Field(default_factory=ProfileChunkData)

    @property
    def nodes(self) -> List[RawNode]:
        return self.data.cpu_profile.nodes

    @property
    def samples(self) -> List[int]:
        return self.data.cpu_profile.samples

    @property
    def lines(self) -> Optional[List[int]]:
        return self.data.lines

    @property
    def time_deltas(self) -> List[float]:
        return self.data.time_deltas

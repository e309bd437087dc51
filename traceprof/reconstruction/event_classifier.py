"""
Event Classifier

Splits a raw trace-event list into the single Profile start marker and the
ordered ProfileChunk records. Everything else in the trace is ignored.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError

from ..trace_types import ProfileEvent, ProfileChunkEvent
from .errors import TraceStructureError
from .types import Diagnostics

logger = logging.getLogger(__name__)

PROFILE_EVENT = "Profile"
PROFILE_CHUNK_EVENT = "ProfileChunk"


@dataclass
class ClassifiedTrace:
    """Profile header plus chunks, in input order."""
    header: Optional[ProfileEvent]
    chunks: List[ProfileChunkEvent] = field(default_factory=list)
    diagnostics: Diagnostics = field(default_factory=Diagnostics)

    @property
    def start_time(self) -> float:
        """Profile start in microseconds; 0 when the header is missing or late."""
        if self.header is None or self.diagnostics.missing_profile_header:
            return 0.0
        return self.header.start_time

    @property
    def end_time(self) -> float:
        """Timestamp of the last chunk (start time when there are none)."""
        if not self.chunks:
            return self.start_time
        return self.chunks[-1].ts


def _event_payload(event: Dict[str, Any]) -> Dict[str, Any]:
    args = event.get('args') or {}
    return {
        'ts': event.get('ts', 0),
        'name': event.get('name'),
        'data': args.get('data') or {},
    }


def classify_events(events: Iterable[Dict[str, Any]]) -> ClassifiedTrace:
    """
    Classify trace events.

    Args:
        events: Chrome trace events in chronological order

    Returns:
        ClassifiedTrace with the first Profile event (if any) and every
        ProfileChunk event, plus diagnostics for anything unexpected.

    Raises:
        TraceStructureError: if a Profile/ProfileChunk event fails validation
    """
    diagnostics = Diagnostics()
    header: Optional[ProfileEvent] = None
    chunks: List[ProfileChunkEvent] = []

    for index, event in enumerate(events):
        name = event.get('name')
        try:
            if name == PROFILE_EVENT:
                if header is not None:
                    diagnostics.extra_profile_headers += 1
                    continue
                header = ProfileEvent.model_validate(_event_payload(event))
                if chunks:
                    diagnostics.missing_profile_header = True
            elif name == PROFILE_CHUNK_EVENT:
                chunks.append(ProfileChunkEvent.model_validate(_event_payload(event)))
            else:
                diagnostics.ignored_events += 1
        except ValidationError as e:
            raise TraceStructureError(f"Malformed {name} event at index {index}: {e}") from e

    if chunks and header is None:
        diagnostics.missing_profile_header = True

    if diagnostics.missing_profile_header:
        message = "ProfileChunk events precede the Profile header; treating startTime as 0"
        logger.warning(message)
        diagnostics.warnings.append(message)
    if diagnostics.extra_profile_headers:
        message = f"Ignoring {diagnostics.extra_profile_headers} extra Profile event(s)"
        logger.warning(message)
        diagnostics.warnings.append(message)

    return ClassifiedTrace(header=header, chunks=chunks, diagnostics=diagnostics)

"""Event sources, the streaming consumer and incremental JSON extraction."""

from .json_extractor import (
    Idle,
    Active,
    MaybeFence,
    Fence,
    ExtractionState,
    ExtractionResult,
    IncrementalJsonExtractor,
    step,
    extract_json_from_stream,
)
from .event_source import (
    OpenEvent,
    MessageEvent,
    ErrorEvent,
    SourceEvent,
    EventSource,
    SSEDecoder,
    SSEEventSource,
)
from .streaming_handler import StreamingJsonHandler, DONE_SENTINEL

__all__ = [
    "Idle",
    "Active",
    "MaybeFence",
    "Fence",
    "ExtractionState",
    "ExtractionResult",
    "IncrementalJsonExtractor",
    "step",
    "extract_json_from_stream",
    "OpenEvent",
    "MessageEvent",
    "ErrorEvent",
    "SourceEvent",
    "EventSource",
    "SSEDecoder",
    "SSEEventSource",
    "StreamingJsonHandler",
    "DONE_SENTINEL",
]

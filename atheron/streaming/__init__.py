"""
Streaming module - Everything that happens while an answer is arriving.

- sources.py  : Source-Block Extractor (display text + citation list)
- events.py   : Typed stream lifecycle events
- stream.py   : ChatStream, the event-publishing chunk iterator
- detector.py : Turn Completion Detector (exactly-once persistence)
"""
from atheron.streaming.sources import (
    SOURCES_START,
    SOURCES_END,
    Source,
    SourceExtraction,
    extract_sources,
    parse_sources_best_effort,
    strip_source_block,
)
from atheron.streaming.events import (
    StreamStart,
    StreamDelta,
    StreamComplete,
    StreamError,
    StreamEvent,
)
from atheron.streaming.stream import ChatStream
from atheron.streaming.detector import (
    DetectorConfig,
    TurnCompletionDetector,
    TurnPersistence,
    TurnState,
)

__all__ = [
    "SOURCES_START",
    "SOURCES_END",
    "Source",
    "SourceExtraction",
    "extract_sources",
    "parse_sources_best_effort",
    "strip_source_block",
    "StreamStart",
    "StreamDelta",
    "StreamComplete",
    "StreamError",
    "StreamEvent",
    "ChatStream",
    "DetectorConfig",
    "TurnCompletionDetector",
    "TurnPersistence",
    "TurnState",
]

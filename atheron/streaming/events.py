"""
Stream lifecycle events.

The chat transport announces what happens to an answer instead of making
anyone infer it from rendered output:

- StreamStart    : the provider accepted the request
- StreamDelta    : a new chunk arrived (carries the whole buffer so far)
- StreamComplete : end of stream, with the final raw text and sources
- StreamError    : the provider failed after the stream had begun
"""
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Union

from atheron.streaming.sources import Source


@dataclass(frozen=True)
class StreamStart:
    session_id: Optional[str] = None


@dataclass(frozen=True)
class StreamDelta:
    text: str
    buffer: str


@dataclass(frozen=True)
class StreamComplete:
    text: str
    sources: List[Source] = field(default_factory=list)


@dataclass(frozen=True)
class StreamError:
    message: str


StreamEvent = Union[StreamStart, StreamDelta, StreamComplete, StreamError]
StreamSubscriber = Callable[[StreamEvent], None]

"""
ChatStream - Async iterator over answer chunks that publishes lifecycle events.

The HTTP layer iterates the stream to send chunks to the browser; the
persistence layer subscribes to the events. Neither needs to know about
the other.
"""
from typing import AsyncIterator, List, Optional

from atheron.core.exceptions import LLMError
from atheron.core.logging_config import get_logger
from atheron.streaming.events import (
    StreamComplete,
    StreamDelta,
    StreamError,
    StreamEvent,
    StreamStart,
    StreamSubscriber,
)
from atheron.streaming.sources import extract_sources

logger = get_logger(__name__)

STREAM_FAILURE_NOTICE = "\n\n_The answer was interrupted. Please try again._"
STREAM_CLOSED_EARLY = "Stream closed before completion"


class ChatStream:
    """
    Wraps a provider chunk iterator.

    open() pulls the first chunk so provider failures surface before any
    response is sent; after that, failures end the stream with a short
    notice and a StreamError event. Closing the iterator before the end
    (client disconnect) also publishes StreamError.

    Example:
        >>> stream = ChatStream(client.stream(messages), session_id="...")
        >>> stream.subscribe(detector.handle)
        >>> await stream.open()
        >>> async for chunk in stream:
        ...     send(chunk)
    """

    def __init__(self, chunks: AsyncIterator[str], session_id: Optional[str] = None):
        self._chunks = chunks
        self.session_id = session_id
        self.buffer = ""
        self._subscribers: List[StreamSubscriber] = []
        self._first_chunk: Optional[str] = None
        self._opened = False
        self._exhausted = False

    def subscribe(self, subscriber: StreamSubscriber) -> None:
        self._subscribers.append(subscriber)

    def _publish(self, event: StreamEvent) -> None:
        for subscriber in self._subscribers:
            subscriber(event)

    async def open(self) -> None:
        """Start the provider stream. Raises LLMError if nothing can be produced."""
        if self._opened:
            return
        self._opened = True
        try:
            self._first_chunk = await self._chunks.__anext__()
        except StopAsyncIteration:
            self._exhausted = True
        self._publish(StreamStart(session_id=self.session_id))

    def _append(self, chunk: str) -> None:
        self.buffer += chunk
        self._publish(StreamDelta(text=chunk, buffer=self.buffer))

    async def __aiter__(self):
        await self.open()

        ended = False
        try:
            if self._first_chunk:
                self._append(self._first_chunk)
                yield self._first_chunk

            if not self._exhausted:
                try:
                    async for chunk in self._chunks:
                        if not chunk:
                            continue
                        self._append(chunk)
                        yield chunk
                except LLMError as e:
                    logger.error(f"Stream failed after {len(self.buffer)} chars: {e}")
                    ended = True
                    self._publish(StreamError(message=str(e)))
                    yield STREAM_FAILURE_NOTICE
                    return

            ended = True
            self._publish(StreamComplete(text=self.buffer, sources=extract_sources(self.buffer).sources))
            logger.info(f"Stream complete: session={self.session_id}, chars={len(self.buffer)}")
        finally:
            if not ended:
                # Consumer went away (client disconnect) or an unexpected error
                logger.warning(f"Stream closed before completion: session={self.session_id}, chars={len(self.buffer)}")
                self._publish(StreamError(message=STREAM_CLOSED_EARLY))

    async def collect(self) -> str:
        """Consume the whole stream and return the raw text."""
        async for _ in self:
            pass
        return self.buffer

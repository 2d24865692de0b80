"""
Streaming Response Writer

Owns the outbound text/event-stream for one request. Every envelope is one
`data: <json>` line followed by a blank line; the stream always ends with a
single `data: [DONE]` line, on success and on failure alike.

The query strategy runs in a producer task and writes into a bounded queue;
the StreamingResponse body drains it. A full queue suspends the producer
(backpressure). When the client goes away Starlette stops iterating the
body, the body generator is closed, and the producer task is cancelled so
no further LLM work is done for a dead connection.
"""

import asyncio
import logging
from typing import Any, AsyncIterator, Optional

from cardquery.schemas.stream import StreamEvent, StreamEventType
from cardquery.services.query_service import QueryStrategy

logger = logging.getLogger(__name__)

DONE_LINE = "data: [DONE]\n\n"
GENERIC_ERROR_MESSAGE = "❌ An error occurred. Please try again."
DEFAULT_MAX_PENDING = 64


def format_event(event: StreamEvent) -> str:
    """Serialize one envelope as a single SSE data line plus blank line."""
    return f"data: {event.model_dump_json()}\n\n"


class EventStreamWriter:
    """
    Per-request envelope writer.

    - send(): non-terminal envelopes (status / thinking / message)
    - finish(): the one terminal envelope (cards / done / error)
    - fail(): error envelope, ignored if a terminal was already sent
    - close(): writes the [DONE] terminator exactly once and ends the stream
    """

    def __init__(self, max_pending: int = DEFAULT_MAX_PENDING):
        self._queue: "asyncio.Queue[Optional[str]]" = asyncio.Queue(maxsize=max_pending)
        self._terminal_sent = False
        self._closed = False

    @property
    def terminal_sent(self) -> bool:
        return self._terminal_sent

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, event_type: StreamEventType, content: Any = None) -> None:
        event = StreamEvent(type=event_type, content=content)
        if event.is_terminal:
            raise ValueError(f"'{event_type}' is a terminal envelope; use finish()")
        if self._terminal_sent or self._closed:
            raise RuntimeError("Cannot send envelopes after the stream has finished")
        await self._queue.put(format_event(event))

    async def finish(self, event: StreamEvent) -> None:
        if not event.is_terminal:
            raise ValueError(f"'{event.type}' is not a terminal envelope")
        if self._terminal_sent:
            logger.warning(f"Dropping extra terminal envelope '{event.type}'")
            return
        self._terminal_sent = True
        await self._queue.put(format_event(event))

    async def fail(self, message: str = GENERIC_ERROR_MESSAGE) -> None:
        await self.finish(StreamEvent(type="error", content=message))

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._queue.put(DONE_LINE)
        await self._queue.put(None)

    async def lines(self) -> AsyncIterator[str]:
        """Yield formatted lines until close() has been drained."""
        while True:
            line = await self._queue.get()
            if line is None:
                return
            yield line


async def _run_strategy(strategy: QueryStrategy, query: str, writer: EventStreamWriter) -> None:
    try:
        final_event = await strategy.run(query, writer.send)
        await writer.finish(final_event)
    except Exception as e:
        # Extraction/provider errors and anything unexpected end up here
        logger.error(f"Query pipeline failed ({strategy.name}): {e}", exc_info=True)
        await writer.fail(GENERIC_ERROR_MESSAGE)
    await writer.close()


async def stream_query_events(
    strategy: QueryStrategy,
    query: str,
    writer: Optional[EventStreamWriter] = None,
) -> AsyncIterator[str]:
    """
    Run one query and yield its SSE lines; used as a StreamingResponse body.

    Always ends with the [DONE] line unless the consumer stops early, in
    which case the running strategy is cancelled.
    """
    writer = writer or EventStreamWriter()
    producer = asyncio.create_task(_run_strategy(strategy, query, writer))

    try:
        async for line in writer.lines():
            yield line
    finally:
        if not producer.done():
            logger.info("Client disconnected before the stream completed; cancelling query")
            producer.cancel()

"""Shared helper for streaming one LLM completion into the event sink."""

from typing import List

from cardquery.schemas.stream import EventSink, StreamEventType
from cardquery.services.llm_client import TextStreamProvider


async def stream_completion(
    llm: TextStreamProvider,
    prompt: str,
    sink: EventSink,
    event_type: StreamEventType,
) -> str:
    """
    Stream a completion, forwarding every chunk to the sink as it arrives.

    Returns:
        The concatenated completion text (untrimmed)
    """
    chunks: List[str] = []
    async for chunk in llm.stream_text(prompt):
        chunks.append(chunk)
        await sink(event_type, chunk)
    return "".join(chunks)

"""
Tests for the SSE stream writer.

Verifies the framing contract of every /api/query response:
- one `data: <json>` line per envelope, each followed by a blank line
- at most one terminal envelope (cards / done / error)
- exactly one `data: [DONE]` line, always last
- the running query is cancelled when the consumer goes away
"""

import asyncio
import json

import pytest

from cardquery.schemas.stream import StreamEvent
from cardquery.services.event_stream import (
    DONE_LINE,
    GENERIC_ERROR_MESSAGE,
    EventStreamWriter,
    format_event,
    stream_query_events,
)


class StubStrategy:
    """Strategy double that replays a fixed list of envelopes."""

    name = "stub"

    def __init__(self, events, final=None, error=None):
        self.events = events
        self.final = final
        self.error = error

    async def run(self, query, sink):
        for event_type, content in self.events:
            await sink(event_type, content)
        if self.error is not None:
            raise self.error
        return self.final


class HangingStrategy:
    """Strategy double that never finishes on its own."""

    name = "hanging"

    def __init__(self):
        self.cancelled = False

    async def run(self, query, sink):
        await sink("status", "started")
        try:
            await asyncio.sleep(3600)
        except asyncio.CancelledError:
            self.cancelled = True
            raise


async def _collect(strategy, query="q"):
    return [line async for line in stream_query_events(strategy, query)]


def _payload(line):
    assert line.startswith("data: ") and line.endswith("\n\n")
    return json.loads(line[len("data: "):])


class TestFormatEvent:

    def test_single_line(self):
        line = format_event(StreamEvent(type="message", content="multi\nline\ntext"))

        assert line.startswith("data: ")
        assert line.endswith("\n\n")
        assert "\n" not in line[:-2]
        assert _payload(line) == {"type": "message", "content": "multi\nline\ntext"}

    def test_non_ascii_content(self):
        line = format_event(StreamEvent(type="status", content="✅ Found 2 relevant cards"))
        assert _payload(line)["content"] == "✅ Found 2 relevant cards"


class TestStreamQueryEvents:

    @pytest.mark.asyncio
    async def test_success(self):
        strategy = StubStrategy(
            events=[("status", "working"), ("thinking", "{")],
            final=StreamEvent(type="cards", content={"totalResults": 0}),
        )

        lines = await _collect(strategy)

        assert lines[-1] == DONE_LINE
        assert lines.count(DONE_LINE) == 1
        assert [_payload(line)["type"] for line in lines[:-1]] == ["status", "thinking", "cards"]

    @pytest.mark.asyncio
    async def test_failure_before_any_event(self):
        strategy = StubStrategy(events=[], error=RuntimeError("boom"))

        lines = await _collect(strategy)

        assert lines == [format_event(StreamEvent(type="error", content=GENERIC_ERROR_MESSAGE)), DONE_LINE]

    @pytest.mark.asyncio
    async def test_failure_after_events(self):
        strategy = StubStrategy(events=[("status", "working")], error=ValueError("bad"))

        lines = await _collect(strategy)

        assert [_payload(line)["type"] for line in lines[:-1]] == ["status", "error"]
        assert lines[-1] == DONE_LINE

    @pytest.mark.asyncio
    async def test_error_message_is_generic(self):
        strategy = StubStrategy(events=[], error=RuntimeError("secret internals"))

        lines = await _collect(strategy)

        assert all("secret internals" not in line for line in lines)

    @pytest.mark.asyncio
    async def test_strategy_sending_terminal_through_sink_fails_cleanly(self):
        strategy = StubStrategy(events=[("done", {})], final=StreamEvent(type="done", content={}))

        lines = await _collect(strategy)

        assert [_payload(line)["type"] for line in lines[:-1]] == ["error"]
        assert lines.count(DONE_LINE) == 1

    @pytest.mark.asyncio
    async def test_consumer_disconnect_cancels_strategy(self):
        strategy = HangingStrategy()
        stream = stream_query_events(strategy, "q")

        first = await stream.__anext__()
        assert _payload(first) == {"type": "status", "content": "started"}

        await stream.aclose()
        for _ in range(5):
            await asyncio.sleep(0)

        assert strategy.cancelled is True


class TestEventStreamWriter:

    @pytest.mark.asyncio
    async def test_only_first_terminal_is_written(self):
        writer = EventStreamWriter()

        await writer.finish(StreamEvent(type="done", content={"totalResults": 1}))
        await writer.fail()
        await writer.close()
        lines = [line async for line in writer.lines()]

        assert [_payload(line)["type"] for line in lines[:-1]] == ["done"]
        assert lines[-1] == DONE_LINE

    @pytest.mark.asyncio
    async def test_send_rejects_terminal_types(self):
        writer = EventStreamWriter()
        with pytest.raises(ValueError):
            await writer.send("cards", {})

    @pytest.mark.asyncio
    async def test_finish_rejects_non_terminal(self):
        writer = EventStreamWriter()
        with pytest.raises(ValueError):
            await writer.finish(StreamEvent(type="status", content="x"))

    @pytest.mark.asyncio
    async def test_send_after_finish(self):
        writer = EventStreamWriter()
        await writer.finish(StreamEvent(type="done", content={}))
        with pytest.raises(RuntimeError):
            await writer.send("status", "late")

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        writer = EventStreamWriter()
        await writer.close()
        await writer.close()
        lines = [line async for line in writer.lines()]

        assert lines == [DONE_LINE]
        assert writer.closed is True

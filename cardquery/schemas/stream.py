"""
Server-Sent Events envelope schema.

Every unit written to the /api/query stream is one StreamEvent serialized on
a single `data: ` line. `cards`, `done` and `error` are terminal: at most one
of them is sent per request.
"""

from typing import Any, Awaitable, Callable, Literal

from pydantic import BaseModel

StreamEventType = Literal["status", "thinking", "message", "cards", "done", "error"]

TERMINAL_EVENT_TYPES = frozenset({"cards", "done", "error"})


class StreamEvent(BaseModel):
    """One typed envelope in the outbound event stream."""

    type: StreamEventType
    content: Any = None

    @property
    def is_terminal(self) -> bool:
        return self.type in TERMINAL_EVENT_TYPES


# Caller-supplied callback that receives (event type, content) per envelope
EventSink = Callable[[StreamEventType, Any], Awaitable[None]]

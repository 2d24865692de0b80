"""
FastAPI route for the streaming card query endpoint.

Endpoints:
- POST /api/query: Answer a free-text credit card question as a
  Server-Sent Events stream

Body validation happens before the stream opens: a missing or non-string
`query` is rejected with HTTP 400 (see the validation handler in main.py).
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from cardquery.dependencies import get_query_strategy
from cardquery.schemas.query import QueryRequest
from cardquery.services.event_stream import stream_query_events
from cardquery.services.query_service import QueryStrategy

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api",
    tags=["query"]
)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    # Disable proxy buffering (nginx) so chunks reach the client immediately
    "X-Accel-Buffering": "no",
}


@router.post(
    "/query",
    response_class=StreamingResponse,
    status_code=200,
    summary="Stream credit card recommendations for a query",
    description="""
    Answers a free-text credit card question.

    **Response:** `text/event-stream`. Each line is `data: <envelope>` where the
    envelope is `{"type": ..., "content": ...}` and type is one of:
    - status: progress messages
    - thinking: raw extraction output as the model writes it
    - message: explanation text chunks and parse-failure notices
    - cards / done: final structured payload (selection / criteria strategy)
    - error: the request failed

    The stream always ends with `data: [DONE]`.
    """
)
async def query_endpoint(
    request: QueryRequest,
    strategy: QueryStrategy = Depends(get_query_strategy),
) -> StreamingResponse:
    logger.info(f"POST /api/query called (strategy={strategy.name}), query='{request.query[:50]}'")

    return StreamingResponse(
        stream_query_events(strategy, request.query),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )

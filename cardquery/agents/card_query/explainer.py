"""
Explanation Generator

Second LLM call of every request: turns the picked cards into a short,
conversational explanation, streamed to the sink as "message" envelopes.

Unlike extraction, a provider failure here does not abort the request: the
generator logs the error and returns a fixed generic sentence instead.
"""

import logging
from typing import Sequence

from cardquery.agents.card_query.prompts import (
    build_criteria_explanation_prompt,
    build_selection_explanation_prompt,
)
from cardquery.agents.card_query.streaming import stream_completion
from cardquery.schemas.cards import CardRecord
from cardquery.schemas.query import QueryCriteria, SelectionResult
from cardquery.schemas.stream import EventSink
from cardquery.services.errors import LLMProviderError
from cardquery.services.llm_client import TextStreamProvider

logger = logging.getLogger(__name__)

CRITERIA_FALLBACK_EXPLANATION = "Here are the best matching cards based on your criteria."
SELECTION_FALLBACK_EXPLANATION = "Here are the best matching cards for your query."


async def _explain(llm: TextStreamProvider, prompt: str, sink: EventSink, fallback: str) -> str:
    try:
        explanation = await stream_completion(llm, prompt, sink, "message")
    except LLMProviderError as e:
        logger.error(f"Error generating explanation: {e}")
        return fallback

    explanation = explanation.strip()
    return explanation or fallback


async def explain_criteria_matches(
    llm: TextStreamProvider,
    query: str,
    cards: Sequence[CardRecord],
    criteria: QueryCriteria,
    sink: EventSink,
) -> str:
    """Explain why the filtered cards match the query (criteria strategy)."""
    logger.info(f"Generating explanation for {len(cards)} filtered cards")
    prompt = build_criteria_explanation_prompt(query, cards, criteria)
    return await _explain(llm, prompt, sink, CRITERIA_FALLBACK_EXPLANATION)


async def explain_selection(
    llm: TextStreamProvider,
    query: str,
    selection: SelectionResult,
    sink: EventSink,
) -> str:
    """
    Explain the selected cards conversationally (selection strategy).

    Falls back to the selection's own analysis text, or a generic sentence
    when there is none.
    """
    logger.info(f"Generating explanation for {selection.total_results} selected cards")
    prompt = build_selection_explanation_prompt(query, selection)
    return await _explain(llm, prompt, sink, selection.analysis or SELECTION_FALLBACK_EXPLANATION)

"""
Criteria/Selection Extractor

First LLM call of every request. Builds the extraction prompt, streams the
model's raw output to the sink as "thinking" envelopes, then parses the
accumulated text into a tagged outcome (see types.py).

Provider failures are NOT handled here: they propagate so the request
aborts with an error envelope. Parse failures never raise; they come back
as the "unparseable" variant, and recover_selection() turns that into a
usable SelectionResult through the degraded paths:

    parse JSON (with repair) -> regex card_name scan -> fallback matcher
"""

import logging
from typing import Any, List, Optional, Tuple

from pydantic import ValidationError

from cardquery.agents.card_query.prompts import build_criteria_prompt, build_selection_prompt
from cardquery.agents.card_query.streaming import stream_completion
from cardquery.agents.card_query.types import CriteriaOutcome, SelectionOutcome
from cardquery.data.dataset import CardDataset
from cardquery.schemas.cards import CardRecord, SelectedCard
from cardquery.schemas.query import QUERY_TYPES, QueryCriteria, SelectionResult
from cardquery.schemas.stream import EventSink
from cardquery.services.errors import LLMOutputParseError
from cardquery.services.fallback_matcher import fallback_match
from cardquery.services.llm_client import TextStreamProvider
from cardquery.utils.json_extract import extract_quoted_values, parse_llm_json

logger = logging.getLogger(__name__)

# Free-text fields the model may fill with unescaped multi-line text
SELECTION_FREE_TEXT_FIELDS = ("analysis",)

DEFAULT_RELEVANCE_SCORE = 50
PARTIAL_RELEVANCE_SCORE = 90
PARTIAL_RELEVANCE_REASON = "Extracted from failed JSON response"
PARTIAL_ANALYSIS = "Card recommendations were extracted despite JSON parsing issues."


def _log_parse_failure(error: Exception, raw_text: str) -> None:
    logger.error(f"Error parsing LLM response: {error}")
    logger.error(f"Raw response: {raw_text[:500]}")


# =============================================================================
# CRITERIA STRATEGY
# =============================================================================

async def extract_criteria(
    llm: TextStreamProvider,
    query: str,
    sink: EventSink,
) -> CriteriaOutcome:
    """
    Extract filter criteria from a free-text query.

    Args:
        llm: Streaming LLM provider
        query: User's free-text query
        sink: Receives every raw chunk as a "thinking" envelope

    Returns:
        CriteriaExtracted or ExtractionUnparseable

    Raises:
        LLMProviderError: If the provider call fails
    """
    logger.info(f"Extracting criteria for query='{query[:50]}'")
    raw_text = await stream_completion(llm, build_criteria_prompt(query), sink, "thinking")

    try:
        criteria = QueryCriteria.model_validate(parse_llm_json(raw_text))
    except (LLMOutputParseError, ValidationError) as e:
        _log_parse_failure(e, raw_text)
        return {"kind": "unparseable", "raw_text": raw_text, "reason": str(e)}

    logger.info(f"Extracted criteria: {criteria.to_payload()}")
    return {"kind": "criteria", "criteria": criteria, "raw_text": raw_text}


# =============================================================================
# SELECTION STRATEGY
# =============================================================================

def _coerce_score(value: Any) -> int:
    """Clamp an LLM-supplied relevance score into 1-100."""
    if isinstance(value, bool):
        return DEFAULT_RELEVANCE_SCORE
    try:
        score = int(round(float(value)))
    except (TypeError, ValueError):
        return DEFAULT_RELEVANCE_SCORE
    return max(1, min(100, score))


def _resolve_unique(dataset: CardDataset, names: List[Any]) -> List[Tuple[int, CardRecord]]:
    """
    Resolve names against the dataset, dropping unknown names and repeats.

    Returns:
        (position in names, card) pairs, in first-seen order
    """
    resolved: List[Tuple[int, CardRecord]] = []
    seen = set()
    for idx, name in enumerate(names):
        card = dataset.find_by_name(name) if isinstance(name, str) else None
        if card is None:
            logger.info(f"Dropping unknown card name from selection: {name!r}")
            continue
        if card.card_name in seen:
            continue
        seen.add(card.card_name)
        resolved.append((idx, card))
    return resolved


def parse_selection(raw_text: str, dataset: CardDataset) -> SelectionOutcome:
    """
    Parse the selection response and resolve card names against the dataset.

    Names are matched case-insensitively and exactly; unknown names are
    silently dropped, never fabricated.
    """
    try:
        data = parse_llm_json(raw_text, free_text_fields=SELECTION_FREE_TEXT_FIELDS)
    except LLMOutputParseError as e:
        _log_parse_failure(e, raw_text)
        return {"kind": "unparseable", "raw_text": raw_text, "reason": str(e)}

    selections = data.get("selectedCards")
    if not isinstance(selections, list):
        reason = "LLM response missing 'selectedCards' list"
        _log_parse_failure(LLMOutputParseError(reason), raw_text)
        return {"kind": "unparseable", "raw_text": raw_text, "reason": reason}

    items = [item for item in selections if isinstance(item, dict)]
    selected = [
        SelectedCard(
            card=card,
            relevance_score=_coerce_score(items[idx].get("relevanceScore")),
            relevance_reason=str(items[idx].get("relevanceReason") or ""),
        )
        for idx, card in _resolve_unique(dataset, [item.get("card_name") for item in items])
    ]

    query_type = data.get("queryType")
    if query_type not in QUERY_TYPES:
        query_type = "recommendation"

    analysis = data.get("analysis")
    selection = SelectionResult(
        query_type=query_type,
        selected_cards=selected,
        analysis=analysis if isinstance(analysis, str) else "",
        source="llm",
    )
    logger.info(f"LLM selected {selection.total_results} cards (queryType={query_type})")
    return {"kind": "selection", "selection": selection, "raw_text": raw_text}


async def extract_selection(
    llm: TextStreamProvider,
    dataset: CardDataset,
    query: str,
    sink: EventSink,
    prompt_card_limit: int = 0,
) -> SelectionOutcome:
    """
    Let the LLM pick cards from the dataset for a free-text query.

    Args:
        llm: Streaming LLM provider
        dataset: Card dataset (embedded in the prompt, then used for lookups)
        query: User's free-text query
        sink: Receives every raw chunk as a "thinking" envelope
        prompt_card_limit: Max dataset records embedded in the prompt (0 = all)

    Returns:
        SelectionExtracted or ExtractionUnparseable

    Raises:
        LLMProviderError: If the provider call fails
    """
    logger.info(f"Extracting card selection for query='{query[:50]}'")
    prompt = build_selection_prompt(query, dataset.to_prompt_json(prompt_card_limit))
    raw_text = await stream_completion(llm, prompt, sink, "thinking")
    return parse_selection(raw_text, dataset)


def recover_selection(
    raw_text: Optional[str],
    query: str,
    dataset: CardDataset,
) -> SelectionResult:
    """
    Build a selection after the structured parse failed.

    First scans the raw text for `"card_name": "..."` pairs and resolves
    them with a uniform high score; if nothing resolves, delegates to the
    deterministic fallback matcher. Never raises.
    """
    names = extract_quoted_values(raw_text or "", "card_name")
    cards = [card for _, card in _resolve_unique(dataset, names)]

    if cards:
        logger.warning(f"Recovered {len(cards)} card names from unparseable response")
        return SelectionResult(
            query_type="recommendation",
            selected_cards=[
                SelectedCard(
                    card=card,
                    relevance_score=PARTIAL_RELEVANCE_SCORE,
                    relevance_reason=PARTIAL_RELEVANCE_REASON,
                )
                for card in cards
            ],
            analysis=PARTIAL_ANALYSIS,
            source="partial",
        )

    logger.warning("No card names recoverable from response; using fallback matcher")
    return fallback_match(dataset, query)

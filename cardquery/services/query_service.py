"""
Query strategies.

Two interchangeable ways of answering POST /api/query, behind one interface:

- CriteriaFilterStrategy: the LLM extracts filter criteria, a deterministic
  filter picks the cards, the LLM explains them. Final envelope: "done".
- LLMSelectionStrategy: the LLM sees the whole dataset and picks the cards
  itself (with regex / keyword fallbacks), then explains them. Final
  envelope: "cards".

A strategy writes intermediate envelopes to the sink and returns the single
terminal envelope; the stream writer decides how and when it goes out.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict

from cardquery.agents.card_query.explainer import explain_criteria_matches, explain_selection
from cardquery.agents.card_query.extractor import (
    extract_criteria,
    extract_selection,
    recover_selection,
)
from cardquery.data.dataset import CardDataset
from cardquery.schemas.cards import CardRecord, SelectedCard
from cardquery.schemas.query import QueryCriteria
from cardquery.schemas.stream import EventSink, StreamEvent
from cardquery.services.card_filter import DEFAULT_REWARD_CATEGORY, filter_cards
from cardquery.services.llm_client import TextStreamProvider

logger = logging.getLogger(__name__)

RELEVANT_FEATURE_COUNT = 4

CRITERIA_PARSE_WARNING = "[Warning: Could not parse criteria. Using fallback.]"
SELECTION_PARSE_WARNING = "⚠️ JSON parsing failed, using fallback matching..."


def _format_rate(rate: float) -> str:
    return f"{rate:g}"


def _card_payload(card: CardRecord) -> Dict[str, Any]:
    payload = card.model_dump()
    payload["annual_fee_display"] = card.annual_fee_display
    return payload


class QueryStrategy(ABC):
    """Common interface of the two query strategies."""

    name: str = ""

    def __init__(self, llm: TextStreamProvider, dataset: CardDataset):
        self.llm = llm
        self.dataset = dataset

    @abstractmethod
    async def run(self, query: str, sink: EventSink) -> StreamEvent:
        """
        Answer one query.

        Args:
            query: User's free-text query
            sink: Receives intermediate (non-terminal) envelopes

        Returns:
            The terminal envelope carrying the final structured payload

        Raises:
            LLMProviderError: If the extraction call fails
        """


# =============================================================================
# CRITERIA STRATEGY
# =============================================================================

class CriteriaFilterStrategy(QueryStrategy):
    """LLM extracts criteria; the deterministic card filter picks the cards."""

    name = "criteria"

    async def run(self, query: str, sink: EventSink) -> StreamEvent:
        await sink("status", "Processing your query...")

        outcome = await extract_criteria(self.llm, query, sink)
        if outcome["kind"] == "criteria":
            criteria = outcome["criteria"]
        else:
            logger.warning(f"Criteria unparseable ({outcome['reason']}); filtering with annualFee=any")
            await sink("message", CRITERIA_PARSE_WARNING)
            criteria = QueryCriteria(fee_tier="any")

        matches = filter_cards(self.dataset, criteria)

        await sink("status", f"Found {len(matches)} matching cards...")

        explanation = await explain_criteria_matches(self.llm, query, matches, criteria, sink)

        return StreamEvent(type="done", content={
            "criteria": criteria.to_payload(),
            "matches": [self._match_payload(card, criteria) for card in matches],
            "explanation": explanation,
            "totalResults": len(matches),
        })

    @staticmethod
    def _match_payload(card: CardRecord, criteria: QueryCriteria) -> Dict[str, Any]:
        payload = _card_payload(card)
        if criteria.reward_category:
            rate = card.rate_for(criteria.reward_category) or 0
            payload["relevantReward"] = f"{_format_rate(rate)}% on {criteria.reward_category}"
        else:
            rate = card.rate_for(DEFAULT_REWARD_CATEGORY) or 0
            payload["relevantReward"] = f"{_format_rate(rate)}% general"
        return payload


# =============================================================================
# SELECTION STRATEGY
# =============================================================================

class LLMSelectionStrategy(QueryStrategy):
    """LLM reads the dataset and selects the cards directly."""

    name = "selection"

    def __init__(self, llm: TextStreamProvider, dataset: CardDataset, prompt_card_limit: int = 0):
        super().__init__(llm, dataset)
        self.prompt_card_limit = prompt_card_limit

    async def run(self, query: str, sink: EventSink) -> StreamEvent:
        await sink("status", "🤖 AI is analyzing your query and finding the best matches...")

        outcome = await extract_selection(
            self.llm, self.dataset, query, sink, prompt_card_limit=self.prompt_card_limit
        )
        if outcome["kind"] == "selection":
            selection = outcome["selection"]
        else:
            await sink("message", SELECTION_PARSE_WARNING)
            selection = recover_selection(outcome["raw_text"], query, self.dataset)

        await sink("status", f"✅ Found {selection.total_results} relevant cards")
        await sink("status", "💬 Preparing personalized explanation...")

        explanation = await explain_selection(self.llm, query, selection, sink)

        return StreamEvent(type="cards", content={
            "queryType": selection.query_type,
            "matches": [self._match_payload(selected) for selected in selection.selected_cards],
            "explanation": explanation,
            "totalResults": selection.total_results,
            "query": query,
            "aiAnalysis": selection.analysis,
        })

    @staticmethod
    def _match_payload(selected: SelectedCard) -> Dict[str, Any]:
        payload = _card_payload(selected.card)
        payload["relevanceScore"] = selected.relevance_score
        payload["relevanceReason"] = selected.relevance_reason
        payload["relevantFeatures"] = selected.card.features[:RELEVANT_FEATURE_COUNT]
        return payload


def build_query_strategy(
    name: str,
    llm: TextStreamProvider,
    dataset: CardDataset,
    prompt_card_limit: int = 0,
) -> QueryStrategy:
    """
    Construct the configured strategy.

    Raises:
        ValueError: If name is not "selection" or "criteria"
    """
    name = (name or "").strip().lower()
    if name == LLMSelectionStrategy.name:
        return LLMSelectionStrategy(llm, dataset, prompt_card_limit=prompt_card_limit)
    if name == CriteriaFilterStrategy.name:
        return CriteriaFilterStrategy(llm, dataset)
    raise ValueError(f"Unknown query strategy '{name}'")

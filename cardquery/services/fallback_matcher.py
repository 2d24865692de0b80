"""
Deterministic fallback matcher.

Used only when the LLM output cannot be turned into a card selection at all.
Guarantees the user always gets a (possibly empty) answer without another
LLM call.

Two phases:
1. Name match: card name or bank name appears in the query, or the query's
   first word appears in the card name. Any hit short-circuits phase 2.
2. Keyword scoring: each query word scores 20 if it appears in any feature,
   30 if it appears in the card type, 10 if it appears in the summary.
"""

import logging
from typing import List

from cardquery.data.dataset import CardDataset
from cardquery.schemas.cards import SelectedCard
from cardquery.schemas.query import SelectionResult

logger = logging.getLogger(__name__)

MAX_MATCHES = 5

NAME_MATCH_SCORE = 80
FEATURE_WEIGHT = 20
CARD_TYPE_WEIGHT = 30
SUMMARY_WEIGHT = 10
MAX_SCORE = 100

NAME_MATCH_REASON = "Name mentioned in query"
KEYWORD_MATCH_REASON = "Keyword matching"
FALLBACK_ANALYSIS = "Here are the cards that best match your query based on keyword analysis."


def _name_matches(dataset: CardDataset, query_lower: str, terms: List[str]) -> List[SelectedCard]:
    first_term = terms[0] if terms else ""
    matches = []
    for card in dataset:
        card_name = card.card_name.lower()
        bank = card.bank.lower()
        if (
            card_name in query_lower
            or (bank and bank in query_lower)
            or (first_term and first_term in card_name)
        ):
            matches.append(SelectedCard(
                card=card,
                relevance_score=NAME_MATCH_SCORE,
                relevance_reason=NAME_MATCH_REASON,
            ))
    return matches


def _keyword_matches(dataset: CardDataset, terms: List[str]) -> List[SelectedCard]:
    scored = []
    for card in dataset:
        features = [feature.lower() for feature in card.features]
        card_type = card.card_type.lower()
        summary = card.summary.lower()

        score = 0
        for term in terms:
            if any(term in feature for feature in features):
                score += FEATURE_WEIGHT
            if term in card_type:
                score += CARD_TYPE_WEIGHT
            if term in summary:
                score += SUMMARY_WEIGHT

        if score > 0:
            scored.append(SelectedCard(
                card=card,
                relevance_score=min(score, MAX_SCORE),
                relevance_reason=KEYWORD_MATCH_REASON,
            ))

    # sort() is stable: ties keep dataset order
    scored.sort(key=lambda selected: selected.relevance_score, reverse=True)
    return scored


def fallback_match(dataset: CardDataset, query: str, limit: int = MAX_MATCHES) -> SelectionResult:
    """
    Match cards to a raw query without any LLM involvement.

    Never raises for any string input; an empty or unmatched query yields an
    empty selection.
    """
    query_lower = (query or "").lower()
    terms = query_lower.split()

    matches = _name_matches(dataset, query_lower, terms)
    if not matches:
        matches = _keyword_matches(dataset, terms)

    logger.info(f"Fallback matcher found {len(matches)} candidate cards")

    return SelectionResult(
        query_type="recommendation",
        selected_cards=matches[:limit],
        analysis=FALLBACK_ANALYSIS,
        source="fallback",
    )

"""
Deterministic card filter for the criteria strategy.

Applies QueryCriteria to the dataset. Every predicate is independent and
they are ANDed; a criterion that is absent is a no-op.
"""

import logging
from typing import List

from cardquery.data.dataset import CardDataset
from cardquery.schemas.cards import CardRecord
from cardquery.schemas.query import QueryCriteria

logger = logging.getLogger(__name__)

MAX_MATCHES = 5
LOW_FEE_THRESHOLD = 100.0
DEFAULT_REWARD_CATEGORY = "general"


def _fee_ok(card: CardRecord, criteria: QueryCriteria) -> bool:
    if criteria.fee_tier == "zero":
        return card.annual_fee_amount == 0
    if criteria.fee_tier == "low":
        fee = card.annual_fee_amount
        return fee is not None and fee <= LOW_FEE_THRESHOLD
    return True


def _reward_category_ok(card: CardRecord, criteria: QueryCriteria) -> bool:
    if not criteria.reward_category:
        return True
    rate = card.rate_for(criteria.reward_category)
    return rate is not None and rate > 1


def _min_rate_ok(card: CardRecord, criteria: QueryCriteria) -> bool:
    if not criteria.min_reward_rate:
        return True
    rate = card.rate_for(criteria.reward_category or DEFAULT_REWARD_CATEGORY)
    return rate is not None and rate >= criteria.min_reward_rate


def _card_type_ok(card: CardRecord, criteria: QueryCriteria) -> bool:
    if not criteria.card_type:
        return True
    wanted = criteria.card_type.lower()
    return wanted in card.card_type.lower() or any(
        wanted in feature.lower() for feature in card.features
    )


def _features_ok(card: CardRecord, criteria: QueryCriteria) -> bool:
    if not criteria.features:
        return True
    card_features = [feature.lower() for feature in card.features]
    return any(
        wanted.lower() in card_feature
        for wanted in criteria.features
        for card_feature in card_features
    )


_PREDICATES = (_fee_ok, _reward_category_ok, _min_rate_ok, _card_type_ok, _features_ok)


def filter_cards(
    dataset: CardDataset,
    criteria: QueryCriteria,
    limit: int = MAX_MATCHES,
) -> List[CardRecord]:
    """
    Filter and rank cards for the given criteria.

    Ranking:
    - reward category requested: descending by that category's rate (missing = 0)
    - else zero-fee requested: descending by the general rate
    - else: ascending by annual fee (unknown fees last)

    Returns:
        At most `limit` cards
    """
    matches = [
        card for card in dataset
        if all(predicate(card, criteria) for predicate in _PREDICATES)
    ]

    if criteria.reward_category:
        category = criteria.reward_category
        matches.sort(key=lambda card: card.rate_for(category) or 0, reverse=True)
    elif criteria.fee_tier == "zero":
        matches.sort(key=lambda card: card.rate_for(DEFAULT_REWARD_CATEGORY) or 0, reverse=True)
    else:
        matches.sort(
            key=lambda card: card.annual_fee_amount
            if card.annual_fee_amount is not None else float("inf")
        )

    logger.debug(f"Card filter kept {len(matches)} cards before truncation")
    return matches[:limit]

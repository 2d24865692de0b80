"""
Pydantic schemas for the query endpoint and its per-request results.

- QueryRequest: body of POST /api/query
- QueryCriteria: structured filter criteria (criteria strategy)
- SelectionResult: LLM- or heuristic-selected cards (selection strategy)

QueryCriteria accepts the camelCase keys the LLM is prompted to return
(annualFee, rewardCategory, ...) and normalizes sloppy values instead of
failing validation: an unusable field becomes None.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator

from cardquery.schemas.cards import SelectedCard

FeeTier = Literal["zero", "low", "any"]
QueryType = Literal["comparison", "recommendation", "information"]
SelectionSource = Literal["llm", "partial", "fallback"]

QUERY_TYPES = ("comparison", "recommendation", "information")

_ZERO_FEE_WORDS = {"0", "zero", "none", "no", "free", "no fee", "no annual fee", "nil"}


# ============================================================================
# REQUEST MODELS
# ============================================================================

class QueryRequest(BaseModel):
    """Request body for POST /api/query."""

    query: StrictStr = Field(
        ...,
        min_length=1,
        description="Free-text question about credit cards",
        examples=["No annual fee cards", "Compare HDFC Millennia and SBI SimplyCLICK"]
    )


# ============================================================================
# CRITERIA (criteria strategy)
# ============================================================================

class QueryCriteria(BaseModel):
    """Filter criteria extracted from a free-text query."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    fee_tier: Optional[FeeTier] = Field(None, alias="annualFee")
    reward_category: Optional[str] = Field(None, alias="rewardCategory")
    min_reward_rate: Optional[float] = Field(None, alias="minRewardRate")
    card_type: Optional[str] = Field(None, alias="cardType")
    features: List[str] = Field(default_factory=list)

    @field_validator("fee_tier", mode="before")
    @classmethod
    def _normalize_fee_tier(cls, value):
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            # Only an exact zero means anything; other amounts don't filter
            return "zero" if value == 0 else "any"
        if isinstance(value, str):
            text = value.strip().lower()
            if text in _ZERO_FEE_WORDS:
                return "zero"
            if text in ("low", "any"):
                return text
        return None

    @field_validator("reward_category", "card_type", mode="before")
    @classmethod
    def _normalize_tag(cls, value):
        if not isinstance(value, str):
            return None
        text = value.strip().lower()
        return text or None

    @field_validator("min_reward_rate", mode="before")
    @classmethod
    def _normalize_min_rate(cls, value):
        if value is None or isinstance(value, bool):
            return None
        try:
            rate = float(str(value).rstrip("%"))
        except ValueError:
            return None
        # A zero threshold filters nothing
        return rate if rate > 0 else None

    @field_validator("features", mode="before")
    @classmethod
    def _normalize_features(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, list):
            return []
        return [str(item).strip() for item in value if str(item).strip()]

    def to_payload(self) -> dict:
        """
        camelCase dict for the final stream payload.

        The zero tier goes back out as 0, the value the extraction prompt asks for.
        """
        payload = self.model_dump(by_alias=True, exclude_none=True, exclude_defaults=True)
        if payload.get("annualFee") == "zero":
            payload["annualFee"] = 0
        return payload


# ============================================================================
# SELECTION (selection strategy)
# ============================================================================

class SelectionResult(BaseModel):
    """Cards selected for a query, ordered as the selector returned them."""

    query_type: QueryType = "recommendation"
    selected_cards: List[SelectedCard] = Field(default_factory=list)
    analysis: str = ""
    source: SelectionSource = Field(
        "llm",
        description="llm: parsed JSON; partial: regex-recovered names; fallback: keyword matcher"
    )

    @property
    def total_results(self) -> int:
        return len(self.selected_cards)

"""
Card record schemas.

`CardRecord` mirrors one entry of the static dataset file. Records are frozen:
the dataset is loaded once at startup and never mutated by the service.
"""

import re
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

_FEE_NUMBER_PATTERN = re.compile(r"\d[\d,]*(?:\.\d+)?")
_FREE_FEE_WORDS = ("free", "nil", "none")


def parse_fee_amount(value: Union[str, float, int, None]) -> Optional[float]:
    """
    Parse an annual fee given as a number or a currency string.

    Examples:
        - 0 -> 0.0
        - "2,500" -> 2500.0
        - "₹499 + GST" -> 499.0
        - "Lifetime Free" -> 0.0
        - "Varies" -> None
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)

    text = str(value).strip().lower()
    match = _FEE_NUMBER_PATTERN.search(text)
    if match:
        return float(match.group(0).replace(",", ""))
    if any(word in text for word in _FREE_FEE_WORDS):
        return 0.0
    return None


class CardRecord(BaseModel):
    """A single credit card from the static dataset."""

    model_config = ConfigDict(frozen=True)

    card_name: str = Field(..., min_length=1, description="Unique card name")
    bank: str = Field("", description="Issuing bank")
    annual_fee: Union[int, float, str] = Field(
        "0",
        description="Annual fee as a number or a currency string",
        examples=["0", "500", "2,500"]
    )
    reward_rate: str = Field("", description="Human-readable reward rate summary")
    rewards: Dict[str, float] = Field(
        default_factory=dict,
        description="Reward percentage keyed by spending category (case-folded)",
        examples=[{"general": 1.0, "dining": 5.0}]
    )
    card_type: str = Field("", description="Card classification, e.g. 'cashback'")
    features: List[str] = Field(default_factory=list)
    summary: str = Field("", description="Free-text description")

    @field_validator("rewards", mode="before")
    @classmethod
    def _casefold_reward_categories(cls, value):
        if value is None:
            return {}
        if isinstance(value, dict):
            return {str(key).strip().lower(): rate for key, rate in value.items()}
        return value

    @property
    def annual_fee_amount(self) -> Optional[float]:
        return parse_fee_amount(self.annual_fee)

    @property
    def annual_fee_display(self) -> str:
        if self.annual_fee_amount == 0:
            return "Free"
        fee = str(self.annual_fee).strip()
        return fee if fee.startswith("₹") else f"₹{fee}"

    def rate_for(self, category: str) -> Optional[float]:
        """Reward rate for a spending category, or None if the card has none."""
        return self.rewards.get(category.strip().lower())


class SelectedCard(BaseModel):
    """A dataset card chosen for a query, with its relevance annotation."""

    model_config = ConfigDict(frozen=True)

    card: CardRecord
    relevance_score: int = Field(..., ge=1, le=100)
    relevance_reason: str = ""

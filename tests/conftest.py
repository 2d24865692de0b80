"""
Pytest configuration for Card Query backend tests.

Sets up test environment and global fixtures.
"""
import os
from typing import Any, List, Tuple

import pytest

# Disable config validation during tests
# This allows tests to run without requiring real environment variables
os.environ["VALIDATE_CONFIG"] = "false"

# Set test environment variables
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("GOOGLE_API_KEY", "test-google-api-key")
os.environ.setdefault("QUERY_STRATEGY", "selection")

from cardquery.data.dataset import CardDataset  # noqa: E402


SAMPLE_CARDS = [
    {
        "card_name": "Acme Gold",
        "bank": "Acme Bank",
        "annual_fee": "0",
        "reward_rate": "4% on dining, 1.5% elsewhere",
        "rewards": {"general": 1.5, "dining": 4},
        "card_type": "cashback",
        "features": ["No annual fee", "4% cashback on dining"],
        "summary": "Everyday cashback card with dining rewards.",
    },
    {
        "card_name": "Zenith Travel Elite",
        "bank": "Zenith Bank",
        "annual_fee": "5,000",
        "reward_rate": "5% on travel",
        "rewards": {"general": 1, "travel": 5},
        "card_type": "premium travel",
        "features": ["Airport lounge access", "Travel insurance"],
        "summary": "Premium travel card for frequent flyers.",
    },
    {
        "card_name": "FuelMax Card",
        "bank": "Petro Bank",
        "annual_fee": 500,
        "reward_rate": "4% on fuel",
        "rewards": {"general": 0.5, "fuel": 4},
        "card_type": "fuel",
        "features": ["1% fuel surcharge waiver", "Fuel points"],
        "summary": "Fuel rewards for daily commuters.",
    },
    {
        "card_name": "Basic Saver",
        "bank": "Thrift Bank",
        "annual_fee": "Lifetime Free",
        "reward_rate": "1% on everything",
        "rewards": {"general": 1},
        "card_type": "everyday",
        "features": ["Lifetime free", "Low interest rate"],
        "summary": "Simple no-frills card.",
    },
    {
        "card_name": "Dine Plus",
        "bank": "Metro Bank",
        "annual_fee": "99",
        "reward_rate": "Dining offers",
        "rewards": {"general": 1, "dining": 1},
        "card_type": "lifestyle",
        "features": ["Movie discounts", "Dining offers"],
        "summary": "Lifestyle card with dining offers.",
    },
    {
        "card_name": "Shopper Pro",
        "bank": "Metro Bank",
        "annual_fee": "1,000",
        "reward_rate": "5% on online shopping",
        "rewards": {"general": 1, "shopping": 5, "dining": 2},
        "card_type": "shopping",
        "features": ["5% on online shopping", "Airport lounge access"],
        "summary": "Online shopping card.",
    },
]


class ScriptedLLM:
    """
    Fake streaming provider.

    Each positional argument is the script for one stream_text() call: a
    list of chunks to yield, or an exception to raise instead.
    """

    def __init__(self, *responses: Any):
        self.responses = list(responses)
        self.prompts: List[str] = []

    async def stream_text(self, prompt: str):
        self.prompts.append(prompt)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        for chunk in response:
            yield chunk


class RecordingSink:
    """Event sink that records every (type, content) pair it receives."""

    def __init__(self):
        self.events: List[Tuple[str, Any]] = []

    async def __call__(self, event_type: str, content: Any = None) -> None:
        self.events.append((event_type, content))

    def of_type(self, event_type: str) -> List[Any]:
        return [content for kind, content in self.events if kind == event_type]


@pytest.fixture
def sample_cards():
    """Raw card dicts as they would appear in the dataset file."""
    return [dict(card) for card in SAMPLE_CARDS]


@pytest.fixture
def dataset(sample_cards):
    """Small in-memory dataset."""
    return CardDataset.from_records(sample_cards)


@pytest.fixture
def scripted_llm():
    """Factory for ScriptedLLM instances."""
    return ScriptedLLM


@pytest.fixture
def sink():
    return RecordingSink()

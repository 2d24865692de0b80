#!/usr/bin/env python3
"""
Card Query Test Script

Runs one query through a query strategy locally, without starting the HTTP
server, and prints every envelope as it is produced.

Usage:
    python scripts/try_query.py "No annual fee cards"
    python scripts/try_query.py "Compare HDFC Millennia and Axis Bank ACE" --strategy selection
    python scripts/try_query.py "fuel cashback" --strategy criteria --dataset path/to/cards.json
    python scripts/try_query.py "fuel cashback" --raw   # print the SSE lines instead
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import Any

# Add the project root to the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cardquery.config import VALID_QUERY_STRATEGIES, settings
from cardquery.data.dataset import load_dataset
from cardquery.services.event_stream import stream_query_events
from cardquery.services.llm_client import GeminiStreamClient
from cardquery.services.query_service import build_query_strategy

# Configure logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def print_final_payload(event_type: str, payload: Any) -> None:
    """Pretty print the terminal envelope."""
    print("\n" + "=" * 60)
    print(f"FINAL ENVELOPE: {event_type}")
    print("=" * 60)

    if event_type == "error":
        print(f"\n❌ {payload}\n")
        return

    matches = payload.get("matches", [])
    print(f"\n✅ {payload.get('totalResults', len(matches))} card(s):\n")
    for i, card in enumerate(matches, 1):
        print(f"--- Card #{i} ---")
        print(f"  Name:      {card['card_name']}")
        print(f"  Bank:      {card['bank']}")
        print(f"  Fee:       {card['annual_fee_display']}")
        if "relevanceScore" in card:
            print(f"  Score:     {card['relevanceScore']}")
            print(f"  Reason:    {card['relevanceReason']}")
        if "relevantReward" in card:
            print(f"  Reward:    {card['relevantReward']}")
        print()

    if "criteria" in payload:
        print(f"Criteria: {json.dumps(payload['criteria'])}")


async def run_query(query: str, strategy_name: str, dataset_path: str, raw: bool) -> None:
    """Run a single query and print its stream."""
    if not settings.GOOGLE_API_KEY:
        print("\n⚠️  ERROR: GOOGLE_API_KEY environment variable not set!")
        print("   Please set it in your .env file or export it:")
        print("   export GOOGLE_API_KEY=your-gemini-api-key")
        return

    dataset = load_dataset(dataset_path or None)
    llm = GeminiStreamClient(api_key=settings.GOOGLE_API_KEY, model=settings.GEMINI_MODEL)
    strategy = build_query_strategy(
        strategy_name, llm=llm, dataset=dataset, prompt_card_limit=settings.PROMPT_CARD_LIMIT
    )

    print(f"\nQuery:    {query}")
    print(f"Strategy: {strategy.name}")
    print(f"Cards:    {len(dataset)}\n")

    async for line in stream_query_events(strategy, query):
        if raw:
            print(line, end="")
            continue

        data = line[len("data: "):].strip()
        if data == "[DONE]":
            break
        envelope = json.loads(data)
        if envelope["type"] in ("thinking", "message"):
            print(envelope["content"], end="", flush=True)
        elif envelope["type"] == "status":
            print(f"\n[{envelope['content']}]")
        else:
            print_final_payload(envelope["type"], envelope["content"])

    llm.close()


def main():
    parser = argparse.ArgumentParser(description="Run one card query locally")
    parser.add_argument("query", help="Free-text question about credit cards")
    parser.add_argument(
        "--strategy",
        choices=VALID_QUERY_STRATEGIES,
        default=settings.QUERY_STRATEGY if settings.QUERY_STRATEGY in VALID_QUERY_STRATEGIES else "selection",
        help="Query strategy (default: QUERY_STRATEGY)",
    )
    parser.add_argument("--dataset", default=settings.CARD_DATASET_PATH, help="Path to a card dataset JSON file")
    parser.add_argument("--raw", action="store_true", help="Print raw SSE lines")
    args = parser.parse_args()

    asyncio.run(run_query(args.query, args.strategy, args.dataset, args.raw))


if __name__ == "__main__":
    main()

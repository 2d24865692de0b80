"""
Tests for the two query strategies.

Each strategy is driven end-to-end with a scripted provider: the first
scripted response answers the extraction call, the second the explanation
call. The recorded sink shows what the client would see before the
terminal envelope.
"""

import json

import pytest

from cardquery.schemas.stream import TERMINAL_EVENT_TYPES
from cardquery.services.errors import LLMProviderError
from cardquery.services.query_service import (
    CRITERIA_PARSE_WARNING,
    SELECTION_PARSE_WARNING,
    CriteriaFilterStrategy,
    LLMSelectionStrategy,
    build_query_strategy,
)


def _selection_json(cards, analysis="Solid options."):
    return json.dumps({"queryType": "recommendation", "selectedCards": cards, "analysis": analysis})


# =============================================================================
# CRITERIA STRATEGY
# =============================================================================

class TestCriteriaFilterStrategy:
    """Tests for CriteriaFilterStrategy."""

    @pytest.mark.asyncio
    async def test_no_annual_fee_cards(self, scripted_llm, sink, dataset):
        llm = scripted_llm(['{"annualFee": 0}'], ["Both cards ", "are free."])
        strategy = CriteriaFilterStrategy(llm, dataset)

        final = await strategy.run("No annual fee cards", sink)

        assert final.type == "done"
        content = final.content
        assert content["criteria"] == {"annualFee": 0}
        assert [m["card_name"] for m in content["matches"]] == ["Acme Gold", "Basic Saver"]
        assert all(m["annual_fee_display"] == "Free" for m in content["matches"])
        assert content["matches"][0]["relevantReward"] == "1.5% general"
        assert content["explanation"] == "Both cards are free."
        assert content["totalResults"] == 2

    @pytest.mark.asyncio
    async def test_event_order(self, scripted_llm, sink, dataset):
        llm = scripted_llm(['{"annualFee": ', '0}'], ["Free cards."])
        strategy = CriteriaFilterStrategy(llm, dataset)

        await strategy.run("No annual fee cards", sink)

        assert sink.events == [
            ("status", "Processing your query..."),
            ("thinking", '{"annualFee": '),
            ("thinking", "0}"),
            ("status", "Found 2 matching cards..."),
            ("message", "Free cards."),
        ]
        assert not any(kind in TERMINAL_EVENT_TYPES for kind, _ in sink.events)

    @pytest.mark.asyncio
    async def test_reward_category(self, scripted_llm, sink, dataset):
        llm = scripted_llm(['{"rewardCategory": "dining"}'], ["Dining picks."])
        strategy = CriteriaFilterStrategy(llm, dataset)

        content = (await strategy.run("Cards with dining rewards", sink)).content

        assert [m["card_name"] for m in content["matches"]] == ["Acme Gold", "Shopper Pro"]
        assert content["matches"][0]["relevantReward"] == "4% on dining"
        assert content["matches"][1]["relevantReward"] == "2% on dining"

    @pytest.mark.asyncio
    async def test_unparseable_criteria_filter_with_any_fee(self, scripted_llm, sink, dataset):
        """Unparseable criteria fall back to annualFee=any: the five cheapest cards."""
        llm = scripted_llm(["garbage no json"], ["Here you go."])
        strategy = CriteriaFilterStrategy(llm, dataset)

        final = await strategy.run("zzz qqq", sink)

        assert CRITERIA_PARSE_WARNING in sink.of_type("message")
        assert final.content["criteria"] == {"annualFee": "any"}
        assert [m["card_name"] for m in final.content["matches"]] == [
            "Acme Gold", "Basic Saver", "Dine Plus", "FuelMax Card", "Shopper Pro",
        ]
        assert final.content["totalResults"] == 5

    @pytest.mark.asyncio
    async def test_no_matches(self, scripted_llm, sink, dataset):
        llm = scripted_llm(['{"rewardCategory": "groceries"}'], ["Nothing fits."])
        strategy = CriteriaFilterStrategy(llm, dataset)

        final = await strategy.run("grocery cards", sink)

        assert final.content["matches"] == []
        assert final.content["totalResults"] == 0
        assert "Found 0 matching cards..." in sink.of_type("status")

    @pytest.mark.asyncio
    async def test_explanation_failure_is_not_fatal(self, scripted_llm, sink, dataset):
        llm = scripted_llm(['{"annualFee": 0}'], LLMProviderError("quota"))
        strategy = CriteriaFilterStrategy(llm, dataset)

        final = await strategy.run("No annual fee cards", sink)

        assert final.type == "done"
        assert final.content["explanation"] == "Here are the best matching cards based on your criteria."

    @pytest.mark.asyncio
    async def test_extraction_failure_raises(self, scripted_llm, sink, dataset):
        llm = scripted_llm(LLMProviderError("quota"))
        strategy = CriteriaFilterStrategy(llm, dataset)

        with pytest.raises(LLMProviderError):
            await strategy.run("No annual fee cards", sink)


# =============================================================================
# SELECTION STRATEGY
# =============================================================================

class TestLLMSelectionStrategy:
    """Tests for LLMSelectionStrategy."""

    @pytest.mark.asyncio
    async def test_happy_path(self, scripted_llm, sink, dataset):
        extraction = _selection_json([
            {"card_name": "acme gold", "relevanceScore": 95, "relevanceReason": "Dining"},
            {"card_name": "Made Up Card", "relevanceScore": 90},
        ])
        llm = scripted_llm([extraction[:20], extraction[20:]], ["Pick ", "Acme Gold."])
        strategy = LLMSelectionStrategy(llm, dataset)

        final = await strategy.run("best dining card", sink)

        assert final.type == "cards"
        content = final.content
        assert content["queryType"] == "recommendation"
        assert content["totalResults"] == 1
        assert content["query"] == "best dining card"
        assert content["aiAnalysis"] == "Solid options."
        assert content["explanation"] == "Pick Acme Gold."

        match = content["matches"][0]
        assert match["card_name"] == "Acme Gold"
        assert match["relevanceScore"] == 95
        assert match["relevanceReason"] == "Dining"
        assert match["relevantFeatures"] == ["No annual fee", "4% cashback on dining"]
        assert match["annual_fee_display"] == "Free"

    @pytest.mark.asyncio
    async def test_event_order(self, scripted_llm, sink, dataset):
        llm = scripted_llm([_selection_json([{"card_name": "Dine Plus"}])], ["Try Dine Plus."])
        strategy = LLMSelectionStrategy(llm, dataset)

        await strategy.run("movie card", sink)

        kinds = [kind for kind, _ in sink.events]
        assert kinds == ["status", "thinking", "status", "status", "message"]
        assert sink.of_type("status") == [
            "🤖 AI is analyzing your query and finding the best matches...",
            "✅ Found 1 relevant cards",
            "💬 Preparing personalized explanation...",
        ]

    @pytest.mark.asyncio
    async def test_empty_selection(self, scripted_llm, sink, dataset):
        llm = scripted_llm([_selection_json([], analysis="No card fits.")], ["Sorry!"])
        strategy = LLMSelectionStrategy(llm, dataset)

        final = await strategy.run("crypto card", sink)

        assert final.type == "cards"
        assert final.content["matches"] == []
        assert final.content["totalResults"] == 0

    @pytest.mark.asyncio
    async def test_partial_recovery(self, scripted_llm, sink, dataset):
        broken = '{"selectedCards": [{"card_name": "FuelMax Card", "relevanceScore": 9'
        llm = scripted_llm([broken], ["Fuel it is."])
        strategy = LLMSelectionStrategy(llm, dataset)

        final = await strategy.run("fuel", sink)

        assert SELECTION_PARSE_WARNING in sink.of_type("message")
        assert [m["card_name"] for m in final.content["matches"]] == ["FuelMax Card"]
        assert final.content["matches"][0]["relevanceScore"] == 90

    @pytest.mark.asyncio
    async def test_fallback_matcher(self, scripted_llm, sink, dataset):
        llm = scripted_llm(["no json at all"], LLMProviderError("quota"))
        strategy = LLMSelectionStrategy(llm, dataset)

        final = await strategy.run("cashback dining", sink)

        assert [m["card_name"] for m in final.content["matches"]] == ["Acme Gold", "Dine Plus"]
        assert [m["relevanceScore"] for m in final.content["matches"]] == [90, 30]
        # Explanation failed: the fallback analysis is used instead
        assert final.content["explanation"] == final.content["aiAnalysis"]

    @pytest.mark.asyncio
    async def test_extraction_failure_raises(self, scripted_llm, sink, dataset):
        llm = scripted_llm(LLMProviderError("network down"))
        strategy = LLMSelectionStrategy(llm, dataset)

        with pytest.raises(LLMProviderError):
            await strategy.run("anything", sink)


class TestBuildQueryStrategy:

    def test_selection(self, scripted_llm, dataset):
        strategy = build_query_strategy("selection", scripted_llm(), dataset, prompt_card_limit=3)
        assert isinstance(strategy, LLMSelectionStrategy)
        assert strategy.prompt_card_limit == 3

    def test_criteria(self, scripted_llm, dataset):
        strategy = build_query_strategy(" CRITERIA ", scripted_llm(), dataset)
        assert isinstance(strategy, CriteriaFilterStrategy)

    def test_unknown(self, scripted_llm, dataset):
        with pytest.raises(ValueError):
            build_query_strategy("magic", scripted_llm(), dataset)

"""
Card Query Prompt Templates

Contains the prompt builders for the two LLM calls made per request:

1. Extraction (streamed to the client as "thinking")
   - Criteria strategy: free text -> filter criteria JSON
   - Selection strategy: free text + full dataset -> selected cards JSON
2. Explanation (streamed to the client as "message")
   - Conversational summary of the cards that were picked

The query and dataset are interpolated in fixed positions so the prompts
are deterministic for a given input.
"""

import json
from typing import Sequence

from cardquery.schemas.cards import CardRecord
from cardquery.schemas.query import QueryCriteria, SelectionResult

# Features listed per card in the explanation prompt
EXPLANATION_FEATURE_COUNT = 4


# =============================================================================
# EXTRACTION PROMPTS
# =============================================================================

def build_criteria_prompt(query: str) -> str:
    """
    Build the criteria extraction prompt (criteria strategy).

    Args:
        query: User's free-text query

    Returns:
        str: Prompt asking for a JSON object of filter criteria
    """
    return f"""
Analyze this credit card query and extract filtering criteria. Return a JSON object with these possible fields:

- annualFee: 0 (for no fee), "low" (under 100), or "any"
- rewardCategory: "fuel", "dining", "groceries", "travel", "entertainment", "general"
- minRewardRate: minimum reward percentage (number)
- cardType: "premium", "cashback", "travel", "fuel", "lifestyle", "everyday"
- features: array of required features like ["no annual fee", "travel benefits"]

Query: "{query}"

Examples:
"Best card with fuel cashback" → {{"rewardCategory": "fuel", "annualFee": "any", "cardType": "fuel"}}
"No annual fee cards" → {{"annualFee": 0}}
"Premium travel rewards card" → {{"cardType": "premium", "rewardCategory": "travel"}}
"Cards with dining rewards and no fee" → {{"rewardCategory": "dining", "annualFee": 0}}

Return only the JSON object, no explanation:"""


def build_selection_prompt(query: str, dataset_json: str) -> str:
    """
    Build the card selection prompt (selection strategy).

    Args:
        query: User's free-text query
        dataset_json: JSON dump of the card dataset (see CardDataset.to_prompt_json)

    Returns:
        str: Prompt asking for queryType, selectedCards and analysis as JSON
    """
    return f"""
You are an expert credit card consultant with access to a comprehensive database of Indian credit cards. Analyze the user's query and provide the most relevant card recommendations.

<card_database>
{dataset_json}
</card_database>

User Query: "{query}"

<instructions>
1. Understand the user's intent (comparison, recommendation, specific card info, etc.)
2. Analyze their needs based on the query
3. Select the most relevant cards from the database
4. For comparisons: Find the exact cards mentioned
5. For recommendations: Find cards that best match their criteria
6. Consider factors like fees, rewards, card type, features, and target audience
</instructions>

IMPORTANT: In the analysis field, avoid using pipe characters (|) for tables. Use simple text formatting instead.

<output_format>
Return a JSON response with this structure:
{{
  "queryType": "comparison" | "recommendation" | "information",
  "selectedCards": [
    {{
      "card_name": "exact name from database",
      "bank": "bank name",
      "relevanceScore": 95,
      "relevanceReason": "why this card matches the query"
    }}
  ],
  "analysis": "detailed explanation using simple markdown without pipe tables"
}}
</output_format>

<rules>
- For comparison queries: Find the exact cards mentioned, even if names are abbreviated
- Maximum 5 cards for recommendations, all mentioned cards for comparisons
- Relevance score: 1-100 based on how well the card matches the query
- Be thorough in your analysis but avoid pipe tables in the analysis field
- Use bullet points, numbered lists, and simple formatting instead of tables
- Consider Indian market context and typical usage patterns
</rules>

Be flexible with card names, abbreviations, and common terms. If the query is vague, use your best judgment to find the most relevant cards.

Return only the JSON object:"""


# =============================================================================
# EXPLANATION PROMPTS
# =============================================================================

def build_criteria_explanation_prompt(
    query: str,
    cards: Sequence[CardRecord],
    criteria: QueryCriteria,
) -> str:
    """Build the explanation prompt for cards picked by the criteria filter."""
    card_lines = "\n".join(
        f"- {card.card_name}: {card.summary} (Annual Fee: {card.annual_fee_display})"
        for card in cards
    ) or "- No cards matched the criteria"

    return f"""
You are a helpful credit card advisor. Provide a brief, natural explanation for why these cards match the user's query.
Query: "{query}"

Filtering criteria used: {json.dumps(criteria.to_payload(), ensure_ascii=False)}

Top matched cards:
{card_lines}

Provide a brief, helpful explanation (2-3 sentences) of why these cards are good matches.
"""


def build_selection_explanation_prompt(query: str, selection: SelectionResult) -> str:
    """
    Build the explanation prompt for cards picked by the selection strategy.

    Each card is summarized with name, bank, fee, reward rate, type, top
    features and the reason it was selected, followed by the prior analysis.
    """
    card_blocks = "\n\n".join(
        f"""{index}. {selected.card.card_name} by {selected.card.bank}
   - Annual Fee: {selected.card.annual_fee_display}
   - Reward Rate: {selected.card.reward_rate}
   - Type: {selected.card.card_type}
   - Key Features: {", ".join(selected.card.features[:EXPLANATION_FEATURE_COUNT])}
   - Why selected: {selected.relevance_reason}
   - Summary: {selected.card.summary}"""
        for index, selected in enumerate(selection.selected_cards, start=1)
    ) or "No cards matched the query."

    return f"""
You are a friendly credit card advisor. The user asked: "{query}"

Based on my analysis, I've selected these cards:
{card_blocks}

Previous Analysis: {selection.analysis}

Now provide a conversational, helpful explanation to the user. Make it:
- Natural and friendly
- Focused on practical benefits
- Easy to understand
- Action-oriented (help them decide)

Don't repeat the technical details, focus on helping them understand which card(s) would work best for their needs."""

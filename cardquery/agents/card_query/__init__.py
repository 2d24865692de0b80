"""
Card Query - LLM-facing steps of the query pipeline.

Two streamed LLM calls per request:

1. Extraction (extractor.py)
   - extract_criteria: free text -> QueryCriteria (criteria strategy)
   - extract_selection: free text + dataset -> SelectionResult (selection strategy)
   - recover_selection: regex / fallback-matcher path when parsing fails

2. Explanation (explainer.py)
   - explain_criteria_matches / explain_selection

Prompt templates are in prompts.py; outcome types in types.py.
"""

from cardquery.agents.card_query.explainer import explain_criteria_matches, explain_selection
from cardquery.agents.card_query.extractor import (
    extract_criteria,
    extract_selection,
    parse_selection,
    recover_selection,
)

__all__ = [
    "extract_criteria",
    "extract_selection",
    "parse_selection",
    "recover_selection",
    "explain_criteria_matches",
    "explain_selection",
]

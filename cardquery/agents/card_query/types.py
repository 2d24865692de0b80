"""
Card Query Extraction Outcome Types

The extraction step returns a tagged union discriminated by `kind`.
Callers must handle every variant, including "unparseable"; no caller may
assume the LLM produced well-formed output.
"""

from typing import Literal, TypedDict, Union

from cardquery.schemas.query import QueryCriteria, SelectionResult


class CriteriaExtracted(TypedDict):
    """Criteria strategy: the LLM returned usable filter criteria."""
    kind: Literal["criteria"]
    criteria: QueryCriteria
    raw_text: str


class SelectionExtracted(TypedDict):
    """Selection strategy: the LLM returned a parseable card selection."""
    kind: Literal["selection"]
    selection: SelectionResult
    raw_text: str


class ExtractionUnparseable(TypedDict):
    """The LLM output could not be parsed into the expected structure."""
    kind: Literal["unparseable"]
    raw_text: str
    reason: str  # Short factual explanation, for logs


CriteriaOutcome = Union[CriteriaExtracted, ExtractionUnparseable]
SelectionOutcome = Union[SelectionExtracted, ExtractionUnparseable]

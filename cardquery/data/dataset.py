"""
Card dataset loader.

The dataset is a JSON array of card objects, read once at process start and
held as an immutable, ordered collection for the lifetime of the process.
Card names are unique (case-insensitive); lookups by name are exact after
case folding.
"""

import json
import logging
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from pydantic import ValidationError

from cardquery.schemas.cards import CardRecord
from cardquery.services.errors import DatasetError

logger = logging.getLogger(__name__)

BUNDLED_DATASET = "cards.json"


class CardDataset:
    """Read-only, ordered collection of CardRecord with name lookup."""

    def __init__(self, cards: Iterable[CardRecord]):
        self._cards: Tuple[CardRecord, ...] = tuple(cards)
        self._by_name: Dict[str, CardRecord] = {}

        for card in self._cards:
            key = card.card_name.strip().lower()
            if key in self._by_name:
                raise DatasetError(f"Duplicate card name in dataset: '{card.card_name}'")
            self._by_name[key] = card

    @classmethod
    def from_records(cls, records: Iterable[Dict[str, Any]]) -> "CardDataset":
        """Build a dataset from raw dicts (as found in the JSON file)."""
        cards: List[CardRecord] = []
        for idx, record in enumerate(records):
            try:
                cards.append(CardRecord.model_validate(record))
            except ValidationError as e:
                raise DatasetError(f"Invalid card record at index {idx}: {e}") from e
        return cls(cards)

    def __iter__(self) -> Iterator[CardRecord]:
        return iter(self._cards)

    def __len__(self) -> int:
        return len(self._cards)

    @property
    def cards(self) -> Tuple[CardRecord, ...]:
        return self._cards

    def find_by_name(self, name: str) -> Optional[CardRecord]:
        """Case-insensitive exact lookup; None if the card is unknown."""
        if not isinstance(name, str):
            return None
        return self._by_name.get(name.strip().lower())

    def to_prompt_json(self, limit: int = 0) -> str:
        """
        Dump the dataset as indented JSON for embedding in a prompt.

        Args:
            limit: Maximum number of records to include (0 = all)
        """
        cards = self._cards
        if limit and len(cards) > limit:
            logger.warning(
                f"Dataset has {len(cards)} cards; only the first {limit} are "
                "included in the prompt (PROMPT_CARD_LIMIT)"
            )
            cards = cards[:limit]

        records = [card.model_dump() for card in cards]
        return json.dumps(records, indent=2, ensure_ascii=False)


def load_dataset(path: Optional[str] = None) -> CardDataset:
    """
    Load the card dataset from a JSON file.

    Args:
        path: Path to a JSON array of card objects. When empty or None the
              sample dataset bundled with the package is used.

    Raises:
        DatasetError: If the file is missing, not valid JSON, not a list,
                      or contains invalid or duplicate cards.
    """
    try:
        if path:
            raw = Path(path).read_text(encoding="utf-8")
            source = path
        else:
            raw = resources.files("cardquery.data").joinpath(BUNDLED_DATASET).read_text(encoding="utf-8")
            source = f"bundled {BUNDLED_DATASET}"
    except OSError as e:
        raise DatasetError(f"Could not read card dataset: {e}") from e

    try:
        records = json.loads(raw)
    except json.JSONDecodeError as e:
        raise DatasetError(f"Card dataset is not valid JSON: {e}") from e

    if not isinstance(records, list):
        raise DatasetError("Card dataset must be a JSON array of card objects")

    dataset = CardDataset.from_records(records)
    logger.info(f"Loaded {len(dataset)} cards from {source}")
    return dataset

"""
Card catalog loader: JSON records → validated, immutable ``CatalogSnapshot``.

Responsibilities
----------------
1. Validate every raw card record once, at load time, into a
   ``CardCatalogEntry`` (tagged reward variant, fee and eligibility models).
2. Skip invalid records with a ``SkippedCard`` entry instead of failing the
   whole catalog (``CardDataValidationError`` per record).
3. Freeze the result: the snapshot holds tuples of frozen models, so no
   concurrent evaluation can mutate it.

File format
-----------
Either a JSON array of card objects, or an object with a ``"cards"`` array::

    {"cards": [{"id": "hdfc-millennia", "name": "...", "issuer": "hdfc",
                "reward_structure": {"reward_type": "cashback", ...}}, ...]}

Validation rules
----------------
- ``id``, ``name``, ``issuer`` and ``reward_structure`` are required.
- Duplicate card ids: the first record wins, later ones are skipped.
- Rule categories are NOT checked here; unknown categories only cost the
  rule itself, at evaluation time.

Usage
-----
    from card_recommender.catalog.loader import load_catalog_file

    snapshot = load_catalog_file(Path("config/catalog/cards.json"))
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from card_recommender.errors import CardDataValidationError
from card_recommender.models.card import CardCatalogEntry
from card_recommender.models.recommendation import SkippedCard
from card_recommender.taxonomy.category_taxonomy import DEFAULT_CATEGORY_TAXONOMY

log = logging.getLogger(__name__)

_REQUIRED_FIELDS: tuple[str, ...] = ("id", "name", "issuer", "reward_structure")


@dataclass(frozen=True)
class CatalogSnapshot:
    """Validated card catalog for one or more requests.

    Attributes:
        cards:    Valid entries in file order.
        skipped:  Records rejected at load time, with reasons.
        taxonomy: Category ids reward rules may reference.
    """

    cards:    tuple[CardCatalogEntry, ...]
    skipped:  tuple[SkippedCard, ...] = ()
    taxonomy: frozenset[str] = field(default=DEFAULT_CATEGORY_TAXONOMY)

    def __len__(self) -> int:
        return len(self.cards)

    def card(self, card_id: str) -> Optional[CardCatalogEntry]:
        for entry in self.cards:
            if entry.id == card_id:
                return entry
        return None


# ── Validation ────────────────────────────────────────────────────────────────

def validate_card_record(record: Any) -> CardCatalogEntry:
    """Validate one raw record into a ``CardCatalogEntry``.

    Raises:
        CardDataValidationError: If required fields are missing or invalid.
    """
    if not isinstance(record, dict):
        raise CardDataValidationError(None, f"expected an object, got {type(record).__name__}.")

    card_id = record.get("id")
    card_label = str(card_id) if card_id else None
    missing = [f for f in _REQUIRED_FIELDS if record.get(f) in (None, "", {})]
    if missing:
        raise CardDataValidationError(card_label, f"missing required field(s): {', '.join(missing)}.")

    try:
        return CardCatalogEntry.model_validate(record)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(p) for p in first.get("loc", ()))
        raise CardDataValidationError(
            card_label,
            f"{exc.error_count()} validation error(s); first at '{location}': {first.get('msg')}",
        ) from exc


def load_catalog(
    records: Iterable[Any],
    taxonomy: frozenset[str] = DEFAULT_CATEGORY_TAXONOMY,
) -> CatalogSnapshot:
    """Validate ``records`` into a ``CatalogSnapshot``; invalid ones are skipped.

    Args:
        records:  Raw card dicts (already parsed JSON).
        taxonomy: Category ids rules may reference.

    Returns:
        Immutable snapshot. ``skipped`` lists every rejected record.
    """
    cards: list[CardCatalogEntry] = []
    skipped: list[SkippedCard] = []
    seen: set[str] = set()

    for idx, record in enumerate(records):
        try:
            entry = validate_card_record(record)
        except CardDataValidationError as exc:
            log.warning("Catalog record #%d skipped: %s", idx, exc)
            skipped.append(SkippedCard(card_id=exc.card_id, reason=exc.message))
            continue

        if entry.id in seen:
            log.warning("Catalog record #%d skipped: duplicate card id '%s'.", idx, entry.id)
            skipped.append(SkippedCard(card_id=entry.id, reason="duplicate card id."))
            continue

        seen.add(entry.id)
        cards.append(entry)

    log.info("Catalog loaded: %d card(s), %d skipped.", len(cards), len(skipped))
    return CatalogSnapshot(cards=tuple(cards), skipped=tuple(skipped), taxonomy=taxonomy)


def load_catalog_file(
    path: Path,
    taxonomy: frozenset[str] = DEFAULT_CATEGORY_TAXONOMY,
) -> CatalogSnapshot:
    """Read a catalog JSON file and return its ``CatalogSnapshot``.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If the file is not valid JSON or has the wrong shape.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Catalog file not found: {path}")

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Catalog file {path} is not valid JSON: {exc}") from exc

    if isinstance(raw, dict):
        raw = raw.get("cards")
    if not isinstance(raw, list):
        raise ValueError(
            f"Catalog file {path} must be a JSON array or an object with a 'cards' array."
        )
    return load_catalog(raw, taxonomy=taxonomy)

"""
Spend-category taxonomy.

Category ids are shared by transactions (after categorization) and by the
``category_id`` of accelerated reward rules. A rule that references an id
outside the active taxonomy is skipped at evaluation time.

``uncategorized`` is reserved: transactions without a resolved category land
there. It counts toward total spend but never toward reward alignment.

This module has NO imports from any other ``card_recommender`` package.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import StrEnum


class SpendCategory(StrEnum):
    """Built-in spend categories used by the bundled card catalog."""

    ONLINE_SHOPPING = "online_shopping"
    DINING = "dining"
    GROCERY = "grocery"
    FUEL = "fuel"
    TRAVEL = "travel"
    UTILITIES = "utilities"
    ENTERTAINMENT = "entertainment"
    BRAND_SPECIFIC = "brand_specific"
    GENERAL = "general"

    UNCATEGORIZED = "uncategorized"
    """Reserved bucket for transactions with no resolved category."""


UNCATEGORIZED: str = SpendCategory.UNCATEGORIZED.value

DEFAULT_CATEGORY_TAXONOMY: frozenset[str] = frozenset(c.value for c in SpendCategory)


def build_taxonomy(extra: Iterable[str] = ()) -> frozenset[str]:
    """Return the default taxonomy extended with ``extra`` category ids.

    Ids are lower-cased and stripped; blanks are ignored.
    """
    cleaned = {c.strip().lower() for c in extra if c and c.strip()}
    return DEFAULT_CATEGORY_TAXONOMY | cleaned


def is_alignment_category(category_id: str) -> bool:
    """``True`` when the category participates in reward-alignment scoring."""
    return category_id != UNCATEGORIZED

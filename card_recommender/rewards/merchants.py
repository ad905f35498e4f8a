"""
Merchant-name normalization and pattern matching.

Both the merchant name and the catalog pattern are lower-cased and stripped
of everything but letters and digits before a substring test, so
``"AMAZON.IN"``, ``"Amazon Pay"`` and ``"amazon-in"`` all match ``"amazon"``.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from card_recommender.models.transaction import CategorySpend, MerchantSpend

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def normalize_merchant(name: str) -> str:
    return _NON_ALNUM.sub("", name.lower())


def merchant_matches(merchant: str, patterns: Iterable[str]) -> bool:
    """``True`` if any non-empty normalized pattern occurs in ``merchant``."""
    target = normalize_merchant(merchant)
    if not target:
        return False
    for pattern in patterns:
        needle = normalize_merchant(pattern)
        if needle and needle in target:
            return True
    return False


def matching_merchants(
    category: CategorySpend,
    patterns: Iterable[str],
) -> tuple[MerchantSpend, ...]:
    """Merchants seen in ``category`` that match any of ``patterns``."""
    patterns = tuple(patterns)
    if not patterns:
        return ()
    return tuple(m for m in category.merchants if merchant_matches(m.merchant, patterns))

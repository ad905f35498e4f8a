"""
Reward-rule condition checks.

A condition is satisfied in exactly two ways:

1. The caller flagged it on the profile (``SpendingProfile.flags``), for
   facts spend data cannot show, e.g. ``amazon_prime_membership``.
2. It is a spend threshold the profile can verify:

     ``min_monthly_spend:<amount>``   average monthly total spend
     ``min_annual_spend:<amount>``    annualized total spend
     ``min_category_spend:<amount>``  annualized spend in the rule's category

Anything else is treated as unsatisfied. That is a conservative default,
not an error: the rule simply does not apply.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from card_recommender.models.transaction import SpendingProfile
from card_recommender.utils.time_utils import annualization_factor

logger = logging.getLogger(__name__)


def _monthly_spend(profile: SpendingProfile, category_id: Optional[str]) -> float:
    return profile.total_spent / profile.months_spanned


def _annual_spend(profile: SpendingProfile, category_id: Optional[str]) -> float:
    return profile.total_spent * annualization_factor(profile.months_spanned)


def _annual_category_spend(profile: SpendingProfile, category_id: Optional[str]) -> float:
    cat = profile.category(category_id) if category_id else None
    if cat is None:
        return 0.0
    return cat.total_spent * annualization_factor(profile.months_spanned)


_SPEND_CHECKS: dict[str, Callable[[SpendingProfile, Optional[str]], float]] = {
    "min_monthly_spend":  _monthly_spend,
    "min_annual_spend":   _annual_spend,
    "min_category_spend": _annual_category_spend,
}


def is_condition_satisfied(
    condition: str,
    profile: SpendingProfile,
    category_id: Optional[str] = None,
) -> bool:
    """Return ``True`` when ``condition`` holds for ``profile``.

    Args:
        condition:   Condition string from an ``AcceleratedRewardRule``.
        profile:     The spending profile under evaluation.
        category_id: Category being evaluated (used by ``min_category_spend``).
    """
    if profile.has_flag(condition):
        return True

    name, sep, raw_amount = condition.partition(":")
    check = _SPEND_CHECKS.get(name.strip().lower()) if sep else None
    if check is None:
        return False

    try:
        threshold = float(raw_amount)
    except ValueError:
        logger.debug("Unparseable spend condition '%s'; treated as unsatisfied.", condition)
        return False
    return check(profile, category_id) >= threshold


def unmet_conditions(
    conditions: tuple[str, ...],
    profile: SpendingProfile,
    category_id: Optional[str] = None,
) -> list[str]:
    """Conditions from ``conditions`` that do not hold, in declaration order."""
    return [c for c in conditions if not is_condition_satisfied(c, profile, category_id)]

"""
Card-side taxonomy: reward types, currencies, networks, capping periods,
credit tiers and confidence levels.

Usage example::

    from card_recommender.taxonomy.card_taxonomy import CappingPeriod, RewardType

    period = CappingPeriod.QUARTERLY
    period.months   # -> 3

This module has NO imports from any other ``card_recommender`` package.
"""

from __future__ import annotations

from enum import StrEnum


class RewardType(StrEnum):
    """How a card's rewards are denominated."""

    CASHBACK = "cashback"
    POINTS = "points"
    MILES = "miles"


class RewardCurrency(StrEnum):
    """Issuer-specific reward currency names."""

    REWARD_POINTS = "reward_points"
    EDGE_REWARD_POINTS = "edge_reward_points"
    CASHBACK = "cashback"
    NEU_COINS = "neu_coins"
    CASH_POINTS = "cash_points"
    AMAZON_PAY_BALANCE = "amazon_pay_balance"
    STATEMENT_CREDIT = "statement_credit"
    MILES = "miles"


class CardNetwork(StrEnum):
    VISA = "visa"
    MASTERCARD = "mastercard"
    AMEX = "amex"
    RUPAY = "rupay"
    DINERS = "diners"


# Networks with noticeably lower merchant acceptance.
LIMITED_ACCEPTANCE_NETWORKS: frozenset[CardNetwork] = frozenset(
    {CardNetwork.AMEX, CardNetwork.DINERS}
)


class CappingPeriod(StrEnum):
    """Window over which a spend cap on an accelerated rate resets."""

    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"

    @property
    def months(self) -> int:
        return _PERIOD_MONTHS[self]


_PERIOD_MONTHS: dict[str, int] = {
    "monthly":   1,
    "quarterly": 3,
    "yearly":    12,
}

# Applied when a catalog rule sets ``capping_limit`` but omits ``capping_period``.
DEFAULT_CAPPING_PERIOD: CappingPeriod = CappingPeriod.YEARLY


class CreditTier(StrEnum):
    """Self-reported credit tier, mapped to a representative score."""

    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


CREDIT_TIER_SCORES: dict[str, int] = {
    "excellent": 800,
    "good":      750,
    "fair":      700,
    "poor":      650,
}


class ConfidenceLevel(StrEnum):
    """Bucketed label for a numeric confidence score."""

    VERY_HIGH = "very_high"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    VERY_LOW = "very_low"


# Lower bound (inclusive) of each bucket, checked top-down.
_CONFIDENCE_FLOORS: tuple[tuple[float, ConfidenceLevel], ...] = (
    (0.9, ConfidenceLevel.VERY_HIGH),
    (0.8, ConfidenceLevel.HIGH),
    (0.7, ConfidenceLevel.MEDIUM),
    (0.6, ConfidenceLevel.LOW),
)


def confidence_level_for(score: float) -> ConfidenceLevel:
    """Map a confidence score in ``[0, 1]`` to its ``ConfidenceLevel`` bucket."""
    for floor, level in _CONFIDENCE_FLOORS:
        if score >= floor:
            return level
    return ConfidenceLevel.VERY_LOW

"""
Exception taxonomy for the recommendation engine.

Propagation policy
------------------
- ``InsufficientDataError`` and ``RecommendationTimeoutError`` abort the whole
  request. The caller gets one clear error, never a partial list.
- ``CardDataValidationError`` skips one catalog entry. Skips are collected and
  reported in aggregate on the response.
- ``UnknownCategoryReferenceError`` skips one reward rule; the card falls back
  to its base rate for that category.
- ``EligibilityUnverifiableError`` lowers confidence. It only excludes a card
  when the missing field is needed by a filter the caller asked for.
"""

from __future__ import annotations

from typing import Optional


class RecommendationError(Exception):
    """Base class for every engine error."""


class InsufficientDataError(RecommendationError):
    """The spending history cannot support any recommendation."""


class CardDataValidationError(RecommendationError):
    """A catalog entry is missing required fields or holds invalid values."""

    def __init__(self, card_id: Optional[str], message: str) -> None:
        self.card_id = card_id
        self.message = message
        label = card_id or "<unknown>"
        super().__init__(f"Card '{label}': {message}")


class UnknownCategoryReferenceError(RecommendationError):
    """A reward rule references a category outside the active taxonomy."""

    def __init__(self, card_id: str, category_id: str, rule_index: int) -> None:
        self.card_id = card_id
        self.category_id = category_id
        self.rule_index = rule_index
        super().__init__(
            f"Card '{card_id}' rule #{rule_index} references unknown category "
            f"'{category_id}'; rule skipped."
        )


class EligibilityUnverifiableError(RecommendationError):
    """An eligibility constraint cannot be checked from the supplied criteria."""

    def __init__(self, card_id: str, field: str) -> None:
        self.card_id = card_id
        self.field = field
        super().__init__(
            f"Card '{card_id}': eligibility on '{field}' could not be verified."
        )


class RecommendationTimeoutError(RecommendationError):
    """The request was cancelled or exceeded its deadline."""

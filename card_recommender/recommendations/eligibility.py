"""
Eligibility and criteria checks for one card.

Two kinds of checks are run:

Hard eligibility (issuer requirements)
    Minimum income for the applicant's employment type and minimum credit
    score. Failing one puts the card on the near-miss list. When the
    applicant did not state the fact, the constraint is *unverified*
    (``EligibilityUnverifiableError``), which lowers confidence instead.

Caller filters (``RecommendationCriteria``)
    ``max_annual_fee``, ``preferred_network``, ``include_business_cards``
    and ``include_inactive_cards``. A card with no recorded network cannot
    satisfy an explicit ``preferred_network`` filter and is excluded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from card_recommender.errors import EligibilityUnverifiableError
from card_recommender.models.card import CardCatalogEntry
from card_recommender.models.recommendation import RecommendationCriteria

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EligibilityAssessment:
    """Outcome of all eligibility checks for one card.

    Attributes:
        failures:             Hard-eligibility failures (human-readable).
        filter_exclusions:    Caller-filter exclusions (human-readable).
        unverified:           Field names that could not be checked.
        constraints_total:    Constraints that applied to this card.
        constraints_verified: Constraints that could be checked.
    """

    failures:             tuple[str, ...] = ()
    filter_exclusions:    tuple[str, ...] = ()
    unverified:           tuple[str, ...] = ()
    constraints_total:    int = 0
    constraints_verified: int = 0

    @property
    def excluded(self) -> bool:
        return bool(self.failures or self.filter_exclusions)

    @property
    def certainty(self) -> float:
        """Share of applicable constraints that could be verified (1.0 if none)."""
        if self.constraints_total == 0:
            return 1.0
        return self.constraints_verified / self.constraints_total

    @property
    def reasons(self) -> tuple[str, ...]:
        return self.failures + self.filter_exclusions


def assess_eligibility(
    card: CardCatalogEntry,
    criteria: Optional[RecommendationCriteria] = None,
) -> EligibilityAssessment:
    """Run hard-eligibility checks and caller filters for ``card``."""
    criteria = criteria or RecommendationCriteria()

    failures: list[str] = []
    unverified: list[str] = []
    total = 0
    verified = 0

    for check in (_check_income, _check_credit_score):
        try:
            applies, failure = check(card, criteria)
        except EligibilityUnverifiableError as exc:
            logger.debug("%s", exc)
            total += 1
            unverified.append(exc.field)
            continue
        if applies:
            total += 1
            verified += 1
        if failure:
            failures.append(failure)

    exclusions: list[str] = []
    try:
        network_issue = _check_network(card, criteria)
    except EligibilityUnverifiableError as exc:
        # Needed for a filter the caller asked for, so this one excludes.
        unverified.append(exc.field)
        exclusions.append("Card network is not recorded; cannot confirm preferred network")
    else:
        if network_issue:
            exclusions.append(network_issue)

    if criteria.max_annual_fee is not None and card.annual_fee > criteria.max_annual_fee:
        exclusions.append(
            f"Annual fee {card.annual_fee:,.0f} exceeds your limit of "
            f"{criteria.max_annual_fee:,.0f}"
        )
    if card.is_business and not criteria.include_business_cards:
        exclusions.append("Business card (business cards not requested)")
    if not card.is_active and not criteria.include_inactive_cards:
        exclusions.append("Card is no longer offered by the issuer")

    return EligibilityAssessment(
        failures=tuple(failures),
        filter_exclusions=tuple(exclusions),
        unverified=tuple(unverified),
        constraints_total=total,
        constraints_verified=verified,
    )


# ── Individual checks ─────────────────────────────────────────────────────────
# Each returns (constraint_applies, failure_reason_or_None) or raises
# EligibilityUnverifiableError when the applicant fact is missing.

def _check_income(
    card: CardCatalogEntry,
    criteria: RecommendationCriteria,
) -> tuple[bool, Optional[str]]:
    requirement = card.eligibility.minimum_income
    required = requirement.for_employment(criteria.employment_type) if requirement else None
    if required is None or required <= 0:
        return False, None
    if criteria.annual_income is None:
        raise EligibilityUnverifiableError(card.id, "annual_income")
    if criteria.annual_income < required:
        return True, f"Requires minimum annual income of {required:,.0f}"
    return True, None


def _check_credit_score(
    card: CardCatalogEntry,
    criteria: RecommendationCriteria,
) -> tuple[bool, Optional[str]]:
    required = card.eligibility.minimum_credit_score
    if required is None:
        return False, None
    if criteria.credit_score is None:
        raise EligibilityUnverifiableError(card.id, "credit_score")
    if criteria.credit_score < required:
        return True, f"Requires a credit score of at least {required}"
    return True, None


def _check_network(
    card: CardCatalogEntry,
    criteria: RecommendationCriteria,
) -> Optional[str]:
    if criteria.preferred_network is None:
        return None
    if card.network is None:
        raise EligibilityUnverifiableError(card.id, "network")
    if card.network != criteria.preferred_network:
        return (
            f"Network {card.network.value} does not match preferred "
            f"{criteria.preferred_network.value}"
        )
    return None

"""
Side-by-side card comparison ordered by first-year value.

Unlike the scored ranking, a comparison lists every card in the catalog with
its plain money figures and no eligibility judgement:

    compare_cards(catalog, profile, evaluation_quarter=4)
        -> (CardComparison, ...) sorted by first-year value desc, card id asc
    select_top(comparisons, ComparisonOptions(...))
        -> filtered and re-ordered rows

``first_year_value`` is annual earnings + signup bonus − annual fee, the
same figure the scorer normalizes.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, Optional

from card_recommender.catalog.loader import CatalogSnapshot
from card_recommender.models.card import CardCatalogEntry
from card_recommender.models.evaluation import CardEvaluation
from card_recommender.models.recommendation import CardComparison, ComparisonOptions
from card_recommender.models.transaction import SpendingProfile
from card_recommender.recommendations.scorer import fee_breakeven_months, first_year_value
from card_recommender.rewards.evaluator import DEFAULT_BASELINE_RATE, evaluate_card

logger = logging.getLogger(__name__)


def build_comparison(card: CardCatalogEntry, evaluation: CardEvaluation) -> CardComparison:
    return CardComparison(
        card_id=card.id,
        card_name=card.name,
        issuer=card.issuer,
        annual_fee=card.annual_fee,
        annual_earnings=evaluation.annual_earnings,
        annual_savings=evaluation.annual_savings,
        signup_bonus_value=evaluation.signup_bonus_value,
        first_year_value=first_year_value(evaluation, card),
        yearly_roi=evaluation.yearly_roi,
        fee_breakeven_months=fee_breakeven_months(evaluation, card),
    )


def compare_cards(
    catalog: CatalogSnapshot,
    profile: SpendingProfile,
    *,
    evaluation_quarter: int,
    baseline_rate: float = DEFAULT_BASELINE_RATE,
) -> tuple[CardComparison, ...]:
    """Evaluate every catalog card and order by first-year value.

    Args:
        catalog:            Validated catalog snapshot.
        profile:            Spending profile to evaluate against.
        evaluation_quarter: Calendar quarter (1-4) for rotating rules.
        baseline_rate:      Rate (%) of the user's current generic card.

    Returns:
        One row per card, first-year value descending, ties by card id.
    """
    rows = [
        build_comparison(
            card,
            evaluate_card(
                card,
                profile,
                evaluation_quarter=evaluation_quarter,
                taxonomy=catalog.taxonomy,
                baseline_rate=baseline_rate,
            ),
        )
        for card in catalog.cards
    ]
    rows.sort(key=lambda r: (-r.first_year_value, r.card_id))
    logger.info("Compared %d card(s) | quarter=%d", len(rows), evaluation_quarter)
    return tuple(rows)


def select_top(
    comparisons: Iterable[CardComparison],
    options: Optional[ComparisonOptions] = None,
) -> tuple[CardComparison, ...]:
    """Filter and re-order comparison rows.

    Filters: ``max_annual_fee`` keeps fees at or under the limit; ``min_roi``
    keeps fee-free cards and cards whose ROI reaches the minimum.

    Ordering: fee-free cards first (``prioritize_no_fee``), or larger signup
    bonus bands first (``prioritize_signup_bonus``); first-year value then
    card id break the remaining ties.
    """
    options = options or ComparisonOptions()
    rows = list(comparisons)

    if options.max_annual_fee is not None:
        rows = [r for r in rows if r.annual_fee <= options.max_annual_fee]
    if options.min_roi is not None:
        rows = [
            r for r in rows
            if r.annual_fee == 0 or (r.yearly_roi is not None and r.yearly_roi >= options.min_roi)
        ]

    if options.prioritize_no_fee:
        rows.sort(key=lambda r: (r.annual_fee > 0, -r.first_year_value, r.card_id))
    elif options.prioritize_signup_bonus:
        band = options.signup_bonus_band
        rows.sort(key=lambda r: (
            -math.floor(r.signup_bonus_value / band), -r.first_year_value, r.card_id,
        ))
    else:
        rows.sort(key=lambda r: (-r.first_year_value, r.card_id))
    return tuple(rows)

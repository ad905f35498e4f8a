"""
SpendingAggregator: reduces categorized transactions to a ``SpendingProfile``.

Rules
-----
- Positive amounts are spend. Negative amounts are refunds/credits: they are
  excluded from spend and reported as ``refund_total``. Zero amounts are
  ignored.
- Transactions without a category land in ``uncategorized``, which counts
  toward total spend but not toward reward alignment.
- ``months_spanned`` is the inclusive number of calendar months between the
  earliest and latest counted transaction (minimum 1).
- No counted spend at all (empty list, or nothing positive) raises
  ``InsufficientDataError``. The engine treats that as "no recommendation
  possible", never as zero spend.

Usage
-----
    from card_recommender.spending.aggregator import aggregate_spending

    profile = aggregate_spending(transactions, flags=["amazon_prime_membership"])
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence

from card_recommender.errors import InsufficientDataError
from card_recommender.models.recommendation import CategoryShare, SpendingAnalysis
from card_recommender.models.transaction import (
    CategorySpend,
    MerchantSpend,
    MonthlySpend,
    SpendingProfile,
    Transaction,
)
from card_recommender.taxonomy.category_taxonomy import UNCATEGORIZED
from card_recommender.utils.time_utils import month_key, months_spanned

logger = logging.getLogger(__name__)

TOP_MERCHANT_COUNT = 5


def aggregate_spending(
    transactions: Sequence[Transaction],
    flags: Iterable[str] = (),
) -> SpendingProfile:
    """Build an immutable ``SpendingProfile`` from ``transactions``.

    Args:
        transactions: Categorized transactions, any order.
        flags:        Conditions the caller vouches for (e.g. memberships).

    Returns:
        ``SpendingProfile`` with categories ordered by spend descending.

    Raises:
        InsufficientDataError: If there is no positive-amount transaction.
    """
    if not transactions:
        raise InsufficientDataError("No transactions supplied; cannot recommend.")

    spend = [t for t in transactions if t.amount > 0]
    refunds = [t for t in transactions if t.amount < 0]
    zero_count = len(transactions) - len(spend) - len(refunds)

    if not spend:
        raise InsufficientDataError(
            f"No spend transactions among {len(transactions)} supplied "
            "(all were refunds, credits or zero amounts); cannot recommend."
        )
    if zero_count:
        logger.debug("Ignored %d zero-amount transaction(s).", zero_count)

    start = min(t.transaction_date for t in spend)
    end = max(t.transaction_date for t in spend)
    months = months_spanned(start, end)
    total = sum(t.amount for t in spend)

    # missing category -> reserved bucket
    by_category: dict[str, list[Transaction]] = defaultdict(list)
    for txn in spend:
        by_category[txn.category_id or UNCATEGORIZED].append(txn)

    categories = [
        _build_category(cat_id, txns, months, total)
        for cat_id, txns in by_category.items()
    ]
    categories.sort(key=lambda c: (-c.total_spent, c.category_id))

    profile = SpendingProfile(
        categories=tuple(categories),
        total_spent=round(total, 2),
        transaction_count=len(spend),
        months_spanned=months,
        period_start=start,
        period_end=end,
        monthly_totals=_build_monthly(spend),
        refund_total=round(-sum(t.amount for t in refunds), 2),
        flags=tuple(flags),
    )
    logger.info(
        "Aggregated %d transaction(s) into %d categor%s over %d month(s); total=%.2f",
        len(spend), len(categories), "y" if len(categories) == 1 else "ies",
        months, total,
    )
    return profile


def summarize_spending(profile: SpendingProfile) -> SpendingAnalysis:
    """Descriptive spending analysis for the response payload."""
    count = profile.transaction_count
    distribution = tuple(
        CategoryShare(
            category_id=c.category_id,
            total_spent=c.total_spent,
            transaction_count=c.transaction_count,
            percentage=c.percentage,
        )
        for c in profile.categories
    )
    return SpendingAnalysis(
        total_spent=profile.total_spent,
        transaction_count=count,
        average_transaction=round(profile.total_spent / count, 2) if count else 0.0,
        months_spanned=profile.months_spanned,
        monthly_average=round(profile.total_spent / profile.months_spanned, 2),
        refund_total=profile.refund_total,
        category_distribution=distribution,
        monthly_trends=profile.monthly_totals,
    )


# ── Internal helpers ──────────────────────────────────────────────────────────

def _build_category(
    category_id: str,
    txns: list[Transaction],
    months: int,
    grand_total: float,
) -> CategorySpend:
    cat_total = sum(t.amount for t in txns)

    merchant_totals: dict[str, list[float]] = defaultdict(lambda: [0.0, 0])
    for t in txns:
        if t.merchant:
            bucket = merchant_totals[t.merchant]
            bucket[0] += t.amount
            bucket[1] += 1

    merchants = sorted(
        (
            MerchantSpend(merchant=name, total_spent=round(amt, 2), transaction_count=int(n))
            for name, (amt, n) in merchant_totals.items()
        ),
        key=lambda m: (-m.total_spent, m.merchant),
    )

    return CategorySpend(
        category_id=category_id,
        total_spent=round(cat_total, 2),
        transaction_count=len(txns),
        monthly_average=round(cat_total / months, 2),
        percentage=round(cat_total / grand_total * 100.0, 2) if grand_total else 0.0,
        top_merchants=tuple(m.merchant for m in merchants[:TOP_MERCHANT_COUNT]),
        merchants=tuple(merchants),
        mcc_codes=tuple(sorted({t.mcc_code for t in txns if t.mcc_code})),
    )


def _build_monthly(spend: list[Transaction]) -> tuple[MonthlySpend, ...]:
    """Per-month totals with the month's top category, chronological."""
    per_month: dict[str, dict[str, float]] = defaultdict(lambda: defaultdict(float))
    counts: dict[str, int] = defaultdict(int)
    for t in spend:
        key = month_key(t.transaction_date)
        per_month[key][t.category_id or UNCATEGORIZED] += t.amount
        counts[key] += 1

    rows: list[MonthlySpend] = []
    for key in sorted(per_month):
        cats = per_month[key]
        top = min(cats.items(), key=lambda kv: (-kv[1], kv[0]))[0]
        rows.append(
            MonthlySpend(
                month=key,
                total_spent=round(sum(cats.values()), 2),
                transaction_count=counts[key],
                top_category=top,
            )
        )
    return tuple(rows)

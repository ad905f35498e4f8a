"""
Calendar helpers for spend windows, rotating quarters and cap scaling.

Key concepts:
  - Evaluation window: the inclusive span of calendar months covered by a
    transaction set. Window totals are annualized with ``12 / months``.
  - Evaluation quarter: the calendar quarter (1-4) used to decide whether a
    rotating reward rule is active.
  - Cap scaling: a cap quoted per month/quarter/year is scaled to the
    evaluation window proportionally.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from card_recommender.taxonomy.card_taxonomy import CappingPeriod

MONTHS_PER_YEAR = 12


def utcnow() -> datetime:
    """Return the current UTC datetime with timezone info."""
    return datetime.now(tz=timezone.utc)


def quarter_of(d: date) -> int:
    """Calendar quarter of ``d``: Jan-Mar -> 1 ... Oct-Dec -> 4."""
    return (d.month - 1) // 3 + 1


def month_key(d: date) -> str:
    """``YYYY-MM`` bucket key for monthly distributions."""
    return f"{d.year:04d}-{d.month:02d}"


def months_spanned(start: date, end: date) -> int:
    """Inclusive count of calendar months from ``start`` to ``end``.

    Two dates in the same month span 1 month; Jan 31 -> Feb 1 spans 2.
    Never returns less than 1.

    Args:
        start: Earliest date.
        end:   Latest date.

    Returns:
        Positive month count.
    """
    if end < start:
        start, end = end, start
    span = (end.year - start.year) * MONTHS_PER_YEAR + (end.month - start.month) + 1
    return max(1, span)


def annualization_factor(months: int) -> float:
    """Multiplier that converts a ``months``-long window total to a yearly figure."""
    return MONTHS_PER_YEAR / max(1, months)


def scale_cap_to_window(limit: float, period: CappingPeriod, months: int) -> float:
    """Scale a per-period spend cap to an evaluation window of ``months``.

    A monthly cap of 5,000 over a 12-month window allows 60,000; a yearly cap
    of 150,000 over a 6-month window allows 75,000.
    """
    return limit * max(1, months) / period.months

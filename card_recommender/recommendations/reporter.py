"""
Recommendation report writer: JSON, CSV and Parquet output for one response.

All functions are pure I/O over an in-memory ``RecommendationResponse``.

Output files
------------
  data/outputs/recommendations/
    recommendations_{date}.json          -- full response document
    recommendations_{date}.csv           -- one row per ranked card
    benefit_breakdown_{date}.parquet     -- one row per (card, category)

Parquet schema (benefit_breakdown)
----------------------------------
  rank, card_id, category_id, spent_amount, card_rate, current_rate,
  accelerated_spend, capped_amount_excluded, earned_value,
  alternate_earned_value (nullable), baseline_earned_value, savings,
  match_kind
"""

from __future__ import annotations

import csv
import json
import logging
from datetime import date
from pathlib import Path

import pyarrow as pa
import pyarrow.parquet as pq

from card_recommender.models.recommendation import RecommendationResponse

logger = logging.getLogger(__name__)

BREAKDOWN_PA_SCHEMA = pa.schema([
    pa.field("rank",                   pa.int32(),   nullable=False),
    pa.field("card_id",                pa.string(),  nullable=False),
    pa.field("category_id",            pa.string(),  nullable=False),
    pa.field("spent_amount",           pa.float64(), nullable=False),
    pa.field("card_rate",              pa.float64(), nullable=False),
    pa.field("current_rate",           pa.float64(), nullable=False),
    pa.field("accelerated_spend",      pa.float64(), nullable=False),
    pa.field("capped_amount_excluded", pa.float64(), nullable=False),
    pa.field("earned_value",           pa.float64(), nullable=False),
    pa.field("alternate_earned_value", pa.float64(), nullable=True),
    pa.field("baseline_earned_value",  pa.float64(), nullable=False),
    pa.field("savings",                pa.float64(), nullable=False),
    pa.field("match_kind",             pa.string(),  nullable=False),
])

_CSV_FIELDS = [
    "rank", "card_id", "card_name", "issuer", "score", "annual_earnings",
    "annual_savings", "annual_fee", "fee_breakeven_months", "yearly_roi", "confidence_score",
    "primary_reason", "pros", "cons",
]


def write_recommendation_json(
    response: RecommendationResponse,
    output_dir: Path,
    run_date: date | None = None,
) -> Path:
    """Write the full response as indented JSON.

    Returns:
        Path to the written file.
    """
    run_date = run_date or date.today()
    output_dir.mkdir(parents=True, exist_ok=True)
    json_path = output_dir / f"recommendations_{run_date}.json"

    with json_path.open("w", encoding="utf-8") as f:
        json.dump(response.to_json_dict(), f, indent=2)

    logger.info("Recommendation JSON written: %s", json_path)
    return json_path


def write_recommendation_csv(
    response: RecommendationResponse,
    output_dir: Path,
    run_date: date | None = None,
) -> Path:
    """Write one CSV row per ranked card, rank order.

    Pros and cons are joined with ``" | "``.
    """
    run_date = run_date or date.today()
    output_dir.mkdir(parents=True, exist_ok=True)
    csv_path = output_dir / f"recommendations_{run_date}.csv"

    with csv_path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=_CSV_FIELDS)
        writer.writeheader()
        for rec in response.recommendations:
            writer.writerow(
                {
                    "rank":                 rec.rank,
                    "card_id":              rec.card_id,
                    "card_name":            rec.card_name,
                    "issuer":               rec.issuer,
                    "score":                rec.score,
                    "annual_earnings":      rec.annual_earnings,
                    "annual_savings":       rec.annual_savings,
                    "annual_fee":           rec.annual_fee,
                    "fee_breakeven_months": rec.fee_breakeven_months,
                    "yearly_roi":           rec.yearly_roi,
                    "confidence_score":     rec.confidence_score,
                    "primary_reason":       rec.primary_reason,
                    "pros":                 " | ".join(rec.pros),
                    "cons":                 " | ".join(rec.cons),
                }
            )

    logger.info("Recommendation CSV written: %s (%d rows)", csv_path, len(response.recommendations))
    return csv_path


def write_benefit_breakdown_parquet(
    response: RecommendationResponse,
    output_dir: Path,
    run_date: date | None = None,
) -> Path:
    """Write the per-category benefit breakdown of every ranked card to Parquet."""
    run_date = run_date or date.today()
    output_dir.mkdir(parents=True, exist_ok=True)
    parquet_path = output_dir / f"benefit_breakdown_{run_date}.parquet"

    rows: list[dict] = []
    for rec in response.recommendations:
        for row in rec.benefit_breakdown:
            rows.append(
                {
                    "rank":                   rec.rank,
                    "card_id":                rec.card_id,
                    "category_id":            row.category_id,
                    "spent_amount":           row.spent_amount,
                    "card_rate":              row.card_rate,
                    "current_rate":           row.current_rate,
                    "accelerated_spend":      row.accelerated_spend,
                    "capped_amount_excluded": row.capped_amount_excluded,
                    "earned_value":           row.earned_value,
                    "alternate_earned_value": row.alternate_earned_value,
                    "baseline_earned_value":  row.baseline_earned_value,
                    "savings":                row.savings,
                    "match_kind":             row.match_kind,
                }
            )

    table = pa.Table.from_pylist(rows, schema=BREAKDOWN_PA_SCHEMA)
    pq.write_table(table, parquet_path)
    logger.info("Benefit breakdown Parquet written: %s (%d rows)", parquet_path, len(rows))
    return parquet_path


def write_all_reports(
    response: RecommendationResponse,
    output_dir: Path,
    run_date: date | None = None,
) -> list[Path]:
    """Write JSON, CSV and Parquet outputs; return their paths in that order."""
    return [
        write_recommendation_json(response, output_dir, run_date),
        write_recommendation_csv(response, output_dir, run_date),
        write_benefit_breakdown_parquet(response, output_dir, run_date),
    ]

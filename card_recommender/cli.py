"""
Card Recommender — CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Load and validate inputs (catalog, transactions).
  4. Run the engine or the requested check.
  5. Report the result to stdout.

Install and run::

    pip install -e .
    card-recommender --help
    card-recommender validate-config
    card-recommender validate-catalog
    card-recommender profile --transactions statements.csv
    card-recommender recommend --transactions statements.csv --credit-score good
    card-recommender compare --transactions statements.csv --no-fee-first
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(
    name="card-recommender",
    help="Credit-card recommendation engine driven by categorized spending.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from card_recommender.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    from card_recommender.utils.logging import configure_logging
    configure_logging(config.logging)


def _load_catalog_or_exit(config, catalog_path: Optional[str]):
    from card_recommender.catalog.loader import load_catalog_file
    from card_recommender.taxonomy.category_taxonomy import build_taxonomy

    path = Path(catalog_path or config.catalog.catalog_file)
    try:
        return load_catalog_file(path, taxonomy=build_taxonomy(config.catalog.extra_categories))
    except (FileNotFoundError, ValueError) as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)


def _load_transactions_or_exit(transactions_path: str):
    from card_recommender.spending.loader import load_transactions_file

    try:
        return load_transactions_file(Path(transactions_path))
    except (FileNotFoundError, ValueError) as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None, "--config", help="Path to TOML config file (default: config/default.toml).",
    ),
    show_full: bool = typer.Option(False, "--full", help="Print the full config as JSON."),
) -> None:
    """Validate the configuration file and print the key values.

    Exits with code 1 if the config fails validation.
    """
    config = _load_config_or_exit(config_path)
    w = config.scoring.weights

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Catalog file:      {config.catalog.catalog_file}")
    typer.echo(f"  Max workers:       {config.engine.max_workers}")
    typer.echo(f"  Deadline (s):      {config.engine.deadline_seconds}")
    typer.echo(f"  Baseline rate (%): {config.engine.baseline_reward_rate}")
    typer.echo(
        f"  Weights:           fyv={w.first_year_value} align={w.category_alignment} "
        f"fee={w.fee_efficiency} brand={w.brand_preference} access={w.accessibility}"
    )
    typer.echo(f"  Max results:       {config.ranking.max_recommendations}")
    typer.echo(f"  Log level:         {config.logging.level}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(mode="json"), indent=2))

    typer.echo("")
    typer.echo("[OK] Config valid.")


@app.command("validate-catalog")
def validate_catalog(
    catalog_path: Optional[str] = typer.Option(
        None, "--catalog", help="Catalog JSON file (default: [catalog].catalog_file).",
    ),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
    strict: bool = typer.Option(
        False, "--strict", help="Exit with code 1 if any card is skipped.",
    ),
) -> None:
    """Validate every card in the catalog and report skipped entries."""
    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    snapshot = _load_catalog_or_exit(config, catalog_path)
    typer.echo(f"  Valid cards:   {len(snapshot.cards)}")
    typer.echo(f"  Skipped cards: {len(snapshot.skipped)}")
    for skip in snapshot.skipped[:10]:
        typer.echo(f"    {skip.card_id or '<no id>'}: {skip.reason}")
    if len(snapshot.skipped) > 10:
        typer.echo(f"    ... and {len(snapshot.skipped) - 10} more.")

    if strict and snapshot.skipped:
        typer.echo("[ERROR] Catalog contains invalid cards.", err=True)
        raise typer.Exit(code=1)
    typer.echo("[OK] Catalog checked.")


@app.command("profile")
def profile(
    transactions_path: str = typer.Option(
        ..., "--transactions", "-t", help="Transactions file (.json or .csv).",
    ),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Aggregate a transactions file and print the spending profile."""
    from card_recommender.errors import InsufficientDataError
    from card_recommender.spending.aggregator import aggregate_spending

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    txn_file = _load_transactions_or_exit(transactions_path)
    try:
        spending = aggregate_spending(txn_file.transactions, flags=txn_file.flags)
    except InsufficientDataError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(
        f"Spending profile: {spending.total_spent:,.2f} over {spending.months_spanned} "
        f"month(s), {spending.transaction_count} transaction(s)"
    )
    if spending.refund_total:
        typer.echo(f"  Refunds excluded: {spending.refund_total:,.2f}")
    typer.echo("")
    typer.echo(f"  {'category':<20} {'total':>14} {'monthly':>12} {'share':>7}")
    for cat in spending.categories:
        typer.echo(
            f"  {cat.category_id:<20} {cat.total_spent:>14,.2f} "
            f"{cat.monthly_average:>12,.2f} {cat.percentage:>6.1f}%"
        )


@app.command("recommend")
def recommend(
    transactions_path: str = typer.Option(
        ..., "--transactions", "-t", help="Transactions file (.json or .csv).",
    ),
    catalog_path: Optional[str] = typer.Option(None, "--catalog", help="Catalog JSON file."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
    credit_score: Optional[str] = typer.Option(
        None, "--credit-score", help="Numeric score or tier (excellent/good/fair/poor).",
    ),
    annual_income: Optional[float] = typer.Option(None, "--income", help="Annual income."),
    employment_type: str = typer.Option(
        "salaried", "--employment", help="salaried or self_employed.",
    ),
    max_annual_fee: Optional[float] = typer.Option(None, "--max-fee", help="Maximum annual fee."),
    min_roi: Optional[float] = typer.Option(
        None, "--min-roi", help="Minimum annual savings as % of the annual fee.",
    ),
    preferred_network: Optional[str] = typer.Option(None, "--network", help="e.g. visa."),
    preferred_issuer: Optional[str] = typer.Option(None, "--issuer", help="e.g. hdfc."),
    include_business: bool = typer.Option(False, "--include-business", help="Allow business cards."),
    include_inactive: bool = typer.Option(False, "--include-inactive", help="Allow discontinued cards."),
    flags: Optional[list[str]] = typer.Option(
        None, "--flag", help="Condition you satisfy, e.g. amazon_prime_membership (repeatable).",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the full response JSON to stdout."),
    write_reports: bool = typer.Option(
        False, "--write-reports", help="Write JSON/CSV/Parquet reports to [output].output_dir.",
    ),
) -> None:
    """Rank catalog cards against a transactions file."""
    from pydantic import ValidationError

    from card_recommender.errors import RecommendationError
    from card_recommender.models.recommendation import RecommendationCriteria
    from card_recommender.pipeline.engine import RecommendationEngine
    from card_recommender.recommendations.reporter import write_all_reports

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    try:
        criteria = RecommendationCriteria(
            credit_score=credit_score,
            annual_income=annual_income,
            employment_type=employment_type,
            max_annual_fee=max_annual_fee,
            min_roi=min_roi,
            preferred_network=preferred_network,
            preferred_issuer=preferred_issuer,
            include_business_cards=include_business,
            include_inactive_cards=include_inactive,
        )
    except ValidationError as exc:
        typer.echo(f"[ERROR] Invalid criteria: {exc}", err=True)
        raise typer.Exit(code=1)

    snapshot = _load_catalog_or_exit(config, catalog_path)
    txn_file = _load_transactions_or_exit(transactions_path)

    engine = RecommendationEngine(config)
    try:
        response = engine.recommend(
            txn_file.transactions,
            snapshot,
            criteria,
            flags=list(txn_file.flags) + list(flags or []),
        )
    except RecommendationError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)

    if write_reports:
        for path in write_all_reports(response, Path(config.output.output_dir)):
            typer.echo(f"  Wrote {path}", err=True)

    if as_json:
        typer.echo(json.dumps(response.to_json_dict(), indent=2))
        return

    if not response.recommendations:
        typer.echo("No card matched your criteria.")
    for rec in response.recommendations:
        typer.echo(
            f"#{rec.rank} {rec.card_name} ({rec.issuer}) | score {rec.score:.1f} | "
            f"earns {rec.annual_earnings:,.0f}/yr | saves {rec.annual_savings:,.0f}/yr | "
            f"fee {rec.annual_fee:,.0f}"
        )
        typer.echo(f"    {rec.primary_reason}")
        for pro in rec.pros:
            typer.echo(f"    + {pro}")
        for con in rec.cons:
            typer.echo(f"    - {con}")
    if response.near_misses:
        typer.echo("")
        typer.echo(f"Near misses ({len(response.near_misses)}):")
        for nm in response.near_misses[:5]:
            typer.echo(f"  {nm.card_name}: {'; '.join(nm.cons)}")
    for warning in response.warnings:
        typer.echo(f"[WARN] {warning}", err=True)

    summary = response.summary
    typer.echo("")
    typer.echo(
        f"[OK] {len(response.recommendations)} recommendation(s) | "
        f"confidence {summary.confidence_level.value} | "
        f"{response.processing_time_ms:.0f} ms"
    )


@app.command("compare")
def compare(
    transactions_path: str = typer.Option(
        ..., "--transactions", "-t", help="Transactions file (.json or .csv).",
    ),
    catalog_path: Optional[str] = typer.Option(None, "--catalog", help="Catalog JSON file."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
    max_annual_fee: Optional[float] = typer.Option(None, "--max-fee", help="Maximum annual fee."),
    min_roi: Optional[float] = typer.Option(
        None, "--min-roi", help="Minimum annual savings as % of the annual fee.",
    ),
    no_fee_first: bool = typer.Option(False, "--no-fee-first", help="List fee-free cards first."),
    bonus_first: bool = typer.Option(
        False, "--bonus-first", help="Order by signup bonus before first-year value.",
    ),
    flags: Optional[list[str]] = typer.Option(
        None, "--flag", help="Condition you satisfy (repeatable).",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the rows as JSON to stdout."),
) -> None:
    """Compare catalog cards side by side by first-year value."""
    from pydantic import ValidationError

    from card_recommender.errors import RecommendationError
    from card_recommender.models.recommendation import ComparisonOptions
    from card_recommender.pipeline.engine import RecommendationEngine

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    try:
        options = ComparisonOptions(
            max_annual_fee=max_annual_fee,
            min_roi=min_roi,
            prioritize_no_fee=no_fee_first,
            prioritize_signup_bonus=bonus_first,
        )
    except ValidationError as exc:
        typer.echo(f"[ERROR] Invalid options: {exc}", err=True)
        raise typer.Exit(code=1)

    snapshot = _load_catalog_or_exit(config, catalog_path)
    txn_file = _load_transactions_or_exit(transactions_path)

    try:
        rows = RecommendationEngine(config).compare(
            txn_file.transactions,
            snapshot,
            options,
            flags=list(txn_file.flags) + list(flags or []),
        )
    except RecommendationError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(json.dumps([r.model_dump(mode="json") for r in rows], indent=2))
        return

    typer.echo(
        f"  {'card':<28} {'fee':>8} {'earnings':>10} {'bonus':>8} {'first-year':>11} {'roi':>8}"
    )
    for row in rows:
        roi = f"{row.yearly_roi:.0f}%" if row.yearly_roi is not None else "-"
        typer.echo(
            f"  {row.card_name[:28]:<28} {row.annual_fee:>8,.0f} {row.annual_earnings:>10,.0f} "
            f"{row.signup_bonus_value:>8,.0f} {row.first_year_value:>11,.0f} {roi:>8}"
        )
    typer.echo("")
    typer.echo(f"[OK] {len(rows)} card(s) compared.")


if __name__ == "__main__":
    app()

"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      — committed defaults
  2. ``config/local.toml``        — optional local overrides (gitignored)
  3. ``.env``                     — local env overrides (gitignored)
  4. Environment variables        — ``CARD_RECOMMENDER_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

Every scoring weight, bonus, penalty and threshold lives here as a named
field so the scoring model can be audited from one place. ``AppConfig()``
with no arguments is a complete, valid configuration; tests and library
callers may use it directly without any file on disk.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

ENV_PREFIX = "CARD_RECOMMENDER_"

# ── Sub-config models ─────────────────────────────────────────────────────────


class EngineConfig(BaseModel):
    """Evaluation pool, deadline and baseline comparison settings."""

    model_config = ConfigDict(frozen=True)

    max_workers: int = 8
    deadline_seconds: Optional[float] = 30.0
    baseline_reward_rate: float = 1.0        # % earned by a generic card
    evaluation_quarter: Optional[int] = None  # None → quarter of last transaction

    @field_validator("max_workers")
    @classmethod
    def validate_workers(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"max_workers must be >= 1, got {v}.")
        return v

    @field_validator("deadline_seconds")
    @classmethod
    def validate_deadline(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError(f"deadline_seconds must be > 0 when set, got {v}.")
        return v

    @field_validator("evaluation_quarter")
    @classmethod
    def validate_quarter(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v not in (1, 2, 3, 4):
            raise ValueError(f"evaluation_quarter must be 1-4, got {v}.")
        return v


class ScoringWeights(BaseModel):
    """Weights of the five sub-scores. Must sum to 1.0."""

    model_config = ConfigDict(frozen=True)

    first_year_value:   float = 0.40
    category_alignment: float = 0.25
    fee_efficiency:     float = 0.20
    brand_preference:   float = 0.10
    accessibility:      float = 0.05

    @model_validator(mode="after")
    def validate_sum(self) -> "ScoringWeights":
        values = self.model_dump().values()
        if any(w < 0 for w in values):
            raise ValueError("Scoring weights must be non-negative.")
        total = sum(values)
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Scoring weights must sum to 1.0, got {total:.4f}.")
        return self


class ScoringBonuses(BaseModel):
    """Additive bonus points, each recorded by name on the score breakdown."""

    model_config = ConfigDict(frozen=True)

    lifetime_free:    float = 15.0
    preferred_issuer: float = 20.0


class ScoringPenalties(BaseModel):
    """Additive penalty points, each recorded by name on the score breakdown."""

    model_config = ConfigDict(frozen=True)

    ineligible:              float = 40.0
    inactive:                float = 50.0
    high_fee_low_benefit:    float = 20.0
    poor_satisfaction:       float = 10.0
    limited_acceptance:      float = 5.0
    uncategorized_dominance: float = 5.0


class ScoringConfig(BaseModel):
    """Composite score model."""

    model_config = ConfigDict(frozen=True)

    weights: ScoringWeights = ScoringWeights()
    bonuses: ScoringBonuses = ScoringBonuses()
    penalties: ScoringPenalties = ScoringPenalties()
    top_category_count: int = 3
    max_breakeven_months: float = 24.0
    high_income_threshold: float = 1_000_000.0
    high_annual_fee: float = 2_000.0
    poor_satisfaction_threshold: float = 3.5
    uncategorized_dominance_share: float = 0.5

    @field_validator("top_category_count")
    @classmethod
    def validate_top_n(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"top_category_count must be >= 1, got {v}.")
        return v


class RankingConfig(BaseModel):
    """Result list shaping."""

    model_config = ConfigDict(frozen=True)

    max_recommendations: int = 5
    min_score_threshold: float = 10.0
    fallback_count: int = 3
    diversity_top_n: int = 3

    @model_validator(mode="after")
    def validate_counts(self) -> "RankingConfig":
        if self.max_recommendations < 1:
            raise ValueError("max_recommendations must be >= 1.")
        if self.fallback_count < 0 or self.diversity_top_n < 0:
            raise ValueError("fallback_count and diversity_top_n must be >= 0.")
        return self


class ExplanationConfig(BaseModel):
    """Thresholds behind pros/cons and the confidence score."""

    model_config = ConfigDict(frozen=True)

    quick_breakeven_months: float = 6.0
    slow_breakeven_months: float = 24.0
    strong_rate_multiple: float = 2.0
    excellent_credit_score: int = 750
    completeness_weight: float = 0.6
    eligibility_weight: float = 0.4

    @model_validator(mode="after")
    def validate_weights(self) -> "ExplanationConfig":
        if abs(self.completeness_weight + self.eligibility_weight - 1.0) > 1e-6:
            raise ValueError("completeness_weight + eligibility_weight must equal 1.0.")
        return self


class CatalogConfig(BaseModel):
    """Card catalog location and taxonomy extensions."""

    model_config = ConfigDict(frozen=True)

    catalog_file: str = "config/catalog/cards.json"
    extra_categories: list[str] = []


class OutputConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    output_dir: str = "data/outputs/recommendations"


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = ""
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class AppConfig(BaseModel):
    """Complete application configuration.

    Constructed by ``load_config()``; every engine component receives the
    section it needs from here.
    """

    model_config = ConfigDict(frozen=True)

    engine: EngineConfig = EngineConfig()
    scoring: ScoringConfig = ScoringConfig()
    ranking: RankingConfig = RankingConfig()
    explanation: ExplanationConfig = ExplanationConfig()
    catalog: CatalogConfig = CatalogConfig()
    output: OutputConfig = OutputConfig()
    logging: LoggingConfig = LoggingConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent


def _find_project_root() -> Path:
    """Walk up from this file to the directory holding pyproject.toml."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit TOML file. Defaults to
            ``<project_root>/config/default.toml``.

    Returns:
        Validated ``AppConfig``.

    Raises:
        FileNotFoundError: If ``config_path`` does not exist.
        pydantic.ValidationError: If merged values fail validation.
    """
    root = _find_project_root()

    load_dotenv(dotenv_path=root / ".env", override=False)

    if config_path is None:
        config_path = root / "config" / "default.toml"

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Create config/default.toml or pass --config."
        )

    with open(config_path, "rb") as f:
        raw: dict[str, Any] = tomllib.load(f)

    local_config_path = config_path.parent / "local.toml"
    if local_config_path.exists():
        with open(local_config_path, "rb") as f:
            raw = _deep_merge(raw, tomllib.load(f))

    raw = _apply_env_overrides(raw)
    return _build_app_config(raw)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply CARD_RECOMMENDER_* env vars to the raw config dict.

    Supported overrides:
      CARD_RECOMMENDER_CATALOG_FILE        → raw["catalog"]["catalog_file"]
      CARD_RECOMMENDER_MAX_WORKERS         → raw["engine"]["max_workers"]
      CARD_RECOMMENDER_DEADLINE_SECONDS    → raw["engine"]["deadline_seconds"]
      CARD_RECOMMENDER_EVALUATION_QUARTER  → raw["engine"]["evaluation_quarter"]
      CARD_RECOMMENDER_LOG_LEVEL           → raw["logging"]["level"]
      CARD_RECOMMENDER_DEBUG               → raw["debug"]
    """
    env = os.environ

    if catalog_file := env.get(f"{ENV_PREFIX}CATALOG_FILE"):
        raw.setdefault("catalog", {})["catalog_file"] = catalog_file

    if workers := env.get(f"{ENV_PREFIX}MAX_WORKERS"):
        raw.setdefault("engine", {})["max_workers"] = int(workers)

    if deadline := env.get(f"{ENV_PREFIX}DEADLINE_SECONDS"):
        raw.setdefault("engine", {})["deadline_seconds"] = float(deadline)

    if quarter := env.get(f"{ENV_PREFIX}EVALUATION_QUARTER"):
        raw.setdefault("engine", {})["evaluation_quarter"] = int(quarter)

    if log_level := env.get(f"{ENV_PREFIX}LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if debug := env.get(f"{ENV_PREFIX}DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map the raw TOML dict onto ``AppConfig``."""
    project = raw.pop("project", {})

    return AppConfig(
        engine=EngineConfig(**raw.get("engine", {})),
        scoring=ScoringConfig(**raw.get("scoring", {})),
        ranking=RankingConfig(**raw.get("ranking", {})),
        explanation=ExplanationConfig(**raw.get("explanation", {})),
        catalog=CatalogConfig(**raw.get("catalog", {})),
        output=OutputConfig(**raw.get("output", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        debug=raw.get("debug", project.get("debug", False)),
    )

"""
Tests for card_recommender/config.py and utils/logging.py.

What we test
------------
1. ``AppConfig()`` is complete and valid without any file.
2. Validation: weights must sum to 1, ranges on workers/deadline/quarter.
3. load_config: bundled defaults, explicit file, local.toml merge,
   CARD_RECOMMENDER_* env overrides, missing file.
4. configure_logging: stderr + optional file handler, JSON formatter extras.
"""

from __future__ import annotations

import json
import logging

import pytest
from pydantic import ValidationError

from card_recommender.config import (
    AppConfig,
    EngineConfig,
    ExplanationConfig,
    LoggingConfig,
    RankingConfig,
    ScoringWeights,
    load_config,
)
from card_recommender.utils.logging import build_formatter, configure_logging


# ── Models ────────────────────────────────────────────────────────────────────

class TestConfigModels:
    def test_defaults(self):
        config = AppConfig()
        assert config.engine.max_workers == 8
        assert config.engine.baseline_reward_rate == 1.0
        assert config.scoring.weights.first_year_value == pytest.approx(0.40)
        assert config.ranking.max_recommendations == 5
        assert config.logging.log_file == ""

    def test_weights_must_sum_to_one(self):
        with pytest.raises(ValidationError, match="sum to 1.0"):
            ScoringWeights(first_year_value=0.5)

    def test_weights_non_negative(self):
        with pytest.raises(ValidationError, match="non-negative"):
            ScoringWeights(
                first_year_value=1.2,
                category_alignment=-0.2,
                fee_efficiency=0.0,
                brand_preference=0.0,
                accessibility=0.0,
            )

    @pytest.mark.parametrize("kwargs", [
        {"max_workers": 0},
        {"deadline_seconds": 0.0},
        {"evaluation_quarter": 5},
    ])
    def test_engine_validation(self, kwargs):
        with pytest.raises(ValidationError):
            EngineConfig(**kwargs)

    def test_deadline_can_be_disabled(self):
        assert EngineConfig(deadline_seconds=None).deadline_seconds is None

    def test_ranking_validation(self):
        with pytest.raises(ValidationError):
            RankingConfig(max_recommendations=0)

    def test_explanation_weights(self):
        with pytest.raises(ValidationError):
            ExplanationConfig(completeness_weight=0.5, eligibility_weight=0.6)

    def test_log_level_normalized(self):
        assert LoggingConfig(level="debug").level == "DEBUG"
        with pytest.raises(ValidationError):
            LoggingConfig(level="LOUD")


# ── Loader ────────────────────────────────────────────────────────────────────

class TestLoadConfig:
    def test_bundled_defaults(self):
        config = load_config()
        assert config.catalog.catalog_file == "config/catalog/cards.json"
        assert config.scoring.penalties.inactive == 50.0
        assert config.ranking.diversity_top_n == 3

    def test_explicit_file(self, tmp_path):
        path = tmp_path / "custom.toml"
        path.write_text(
            "[engine]\nmax_workers = 2\n\n"
            "[ranking]\nmax_recommendations = 3\n"
        )
        config = load_config(path)
        assert config.engine.max_workers == 2
        assert config.ranking.max_recommendations == 3
        assert config.scoring.weights.fee_efficiency == pytest.approx(0.20)

    def test_local_toml_merged(self, tmp_path):
        (tmp_path / "default.toml").write_text(
            "[scoring]\nhigh_annual_fee = 2000.0\n\n[scoring.bonuses]\nlifetime_free = 15.0\n"
        )
        (tmp_path / "local.toml").write_text("[scoring.bonuses]\nlifetime_free = 5.0\n")

        config = load_config(tmp_path / "default.toml")

        assert config.scoring.bonuses.lifetime_free == 5.0
        assert config.scoring.high_annual_fee == 2000.0

    def test_env_overrides(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.toml"
        path.write_text("[engine]\nmax_workers = 2\n")
        monkeypatch.setenv("CARD_RECOMMENDER_MAX_WORKERS", "6")
        monkeypatch.setenv("CARD_RECOMMENDER_EVALUATION_QUARTER", "3")
        monkeypatch.setenv("CARD_RECOMMENDER_LOG_LEVEL", "warning")
        monkeypatch.setenv("CARD_RECOMMENDER_DEBUG", "true")

        config = load_config(path)

        assert config.engine.max_workers == 6
        assert config.engine.evaluation_quarter == 3
        assert config.logging.level == "WARNING"
        assert config.debug is True

    def test_invalid_values_rejected(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text("[scoring.weights]\nfirst_year_value = 0.9\n")
        with pytest.raises(ValidationError):
            load_config(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.toml")


# ── Logging ───────────────────────────────────────────────────────────────────

@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestLogging:
    def test_file_handler_created(self, tmp_path, restore_root_logger):
        log_file = tmp_path / "logs" / "run.log"
        configure_logging(LoggingConfig(level="DEBUG", log_file=str(log_file)))

        logging.getLogger("card_recommender.test").info("hello")

        assert restore_root_logger.level == logging.DEBUG
        assert len(restore_root_logger.handlers) == 2
        for handler in restore_root_logger.handlers:
            handler.flush()
        assert "hello" in log_file.read_text(encoding="utf-8")

    def test_console_only_without_log_file(self, restore_root_logger):
        configure_logging(LoggingConfig(level="WARNING"))
        assert len(restore_root_logger.handlers) == 1
        assert logging.getLogger("pyarrow").level == logging.WARNING

    def test_json_formatter_promotes_extras(self):
        record = logging.LogRecord(
            "card_recommender.engine", logging.WARNING, __file__, 1, "Card %s skipped", ("x",), None,
        )
        record.card_id = "hdfc-millennia"

        payload = json.loads(build_formatter(True).format(record))

        assert payload["msg"] == "Card x skipped"
        assert payload["level"] == "WARNING"
        assert payload["card_id"] == "hdfc-millennia"

"""
Tests for card_recommender/spending/loader.py.

What we test
------------
1. JSON arrays and ``{"transactions", "flags"}`` objects both load.
2. CSV with optional columns left blank.
3. Missing files, bad extensions, missing columns and bad rows fail loudly.
"""

from __future__ import annotations

import json
from datetime import date

import pytest

from card_recommender.spending.loader import load_transactions_file


class TestJson:
    def test_array(self, tmp_path):
        path = tmp_path / "txns.json"
        path.write_text(json.dumps([
            {"date": "2025-01-05", "amount": 120.5, "category_id": "dining"},
        ]))

        result = load_transactions_file(path)

        assert len(result.transactions) == 1
        assert result.transactions[0].transaction_date == date(2025, 1, 5)
        assert result.flags == ()

    def test_object_with_flags(self, tmp_path):
        path = tmp_path / "txns.json"
        path.write_text(json.dumps({
            "transactions": [
                {"transaction_date": "2025-02-01", "amount": 10, "merchant": "Amazon"},
            ],
            "flags": ["amazon_prime_membership"],
        }))

        result = load_transactions_file(path)

        assert result.flags == ("amazon_prime_membership",)
        assert result.transactions[0].merchant == "Amazon"

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "txns.json"
        path.write_text("{not json")
        with pytest.raises(ValueError, match="not valid JSON"):
            load_transactions_file(path)

    def test_wrong_shape(self, tmp_path):
        path = tmp_path / "txns.json"
        path.write_text(json.dumps({"rows": []}))
        with pytest.raises(ValueError, match="transactions"):
            load_transactions_file(path)

    def test_invalid_row_named(self, tmp_path):
        path = tmp_path / "txns.json"
        path.write_text(json.dumps([
            {"date": "2025-01-05", "amount": 1},
            {"date": "not-a-date", "amount": 1},
        ]))
        with pytest.raises(ValueError, match="row 1"):
            load_transactions_file(path)


class TestCsv:
    def test_blank_optional_cells(self, tmp_path):
        path = tmp_path / "txns.csv"
        path.write_text(
            "date,amount,category_id,mcc_code,merchant\n"
            "2025-01-05,250.00,dining,5812,Swiggy\n"
            "2025-01-06,99.00,,,\n"
        )

        txns = load_transactions_file(path).transactions

        assert len(txns) == 2
        assert txns[0].mcc_code == "5812"
        assert txns[1].category_id is None
        assert txns[1].merchant is None

    def test_missing_required_column(self, tmp_path):
        path = tmp_path / "txns.csv"
        path.write_text("date,category_id\n2025-01-05,dining\n")
        with pytest.raises(ValueError, match="amount"):
            load_transactions_file(path)


class TestFileErrors:
    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_transactions_file(tmp_path / "nope.json")

    def test_unsupported_extension(self, tmp_path):
        path = tmp_path / "txns.xlsx"
        path.write_text("")
        with pytest.raises(ValueError, match="Unsupported"):
            load_transactions_file(path)

"""
Transaction file loader (JSON or CSV) for the CLI.

JSON: an array of objects, or ``{"transactions": [...], "flags": [...]}``.
CSV:  header row with ``date,amount,category_id,mcc_code,merchant``; only
``date`` and ``amount`` are required columns.

Rows that fail validation raise ``ValueError`` naming the row; a statement
file with bad lines should be fixed upstream, not half-read.
"""

from __future__ import annotations

import csv
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from card_recommender.models.transaction import Transaction

_CSV_REQUIRED = ("date", "amount")


@dataclass(frozen=True)
class TransactionFile:
    transactions: list[Transaction]
    flags:        tuple[str, ...] = ()


def load_transactions_file(path: Path) -> TransactionFile:
    """Parse ``path`` (``.json`` or ``.csv``) into validated transactions.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: On unsupported extension, bad shape or invalid rows.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Transactions file not found: {path}")

    suffix = path.suffix.lower()
    if suffix == ".json":
        return _load_json(path)
    if suffix == ".csv":
        return TransactionFile(transactions=_load_csv(path))
    raise ValueError(f"Unsupported transactions file type '{suffix}' (use .json or .csv).")


def _load_json(path: Path) -> TransactionFile:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"{path} is not valid JSON: {exc}") from exc

    flags: list[str] = []
    if isinstance(raw, dict):
        flags = list(raw.get("flags") or [])
        raw = raw.get("transactions")
    if not isinstance(raw, list):
        raise ValueError(
            f"{path} must be a JSON array or an object with a 'transactions' array."
        )
    return TransactionFile(
        transactions=[_validate_row(i, row) for i, row in enumerate(raw)],
        flags=tuple(flags),
    )


def _load_csv(path: Path) -> list[Transaction]:
    with path.open(newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        header = reader.fieldnames or []
        missing = [c for c in _CSV_REQUIRED if c not in header]
        if missing:
            raise ValueError(f"{path} is missing CSV column(s): {', '.join(missing)}")
        # Row numbers count the header as row 1.
        return [
            _validate_row(i, {k: v for k, v in row.items() if v not in (None, "")})
            for i, row in enumerate(reader, start=2)
        ]


def _validate_row(index: int, row: Any) -> Transaction:
    try:
        return Transaction.model_validate(row)
    except ValidationError as exc:
        raise ValueError(f"Transaction row {index} is invalid: {exc}") from exc

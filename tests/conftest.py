"""Pytest configuration and fixtures for test suite."""

import json
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

# Add src directory to path for imports
SRC_PATH = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(SRC_PATH))

from trustmatch.engine import RunConfig  # noqa: E402
from trustmatch.matching import FieldRole, FieldSimilarityConfig, MatchingRule  # noqa: E402

FIXTURES_DIR = Path(__file__).parent / "fixtures"
RECONCILE_FIXTURES = FIXTURES_DIR / "reconcile"


@pytest.fixture
def make_record() -> Callable[..., dict[str, Any]]:
    """Factory for company records with minimal boilerplate.

    Fields passed as None are left out of the record entirely, so tests
    can exercise missing-field handling.
    """

    def _factory(
        record_id: str = "C-001",
        *,
        company: str | None = "Acme Handels GmbH",
        city: str | None = "München",
        email: str | None = "info@acme-handels.de",
        vat: str | None = "DE123456789",
        **extra: Any,
    ) -> dict[str, Any]:
        record: dict[str, Any] = {"id": record_id}
        for name, value in (("company", company), ("city", city), ("email", email), ("vat", vat)):
            if value is not None:
                record[name] = value
        record.update(extra)
        return record

    return _factory


@pytest.fixture
def company_rules() -> tuple[MatchingRule, ...]:
    """Company name, email and VAT rules weighted 0.5 / 0.3 / 0.2."""
    return (
        MatchingRule(
            "company",
            "company",
            field_config=FieldSimilarityConfig(role=FieldRole.COMPANY_NAME),
            threshold=0.85,
            weight=0.5,
        ),
        MatchingRule(
            "email",
            "email",
            field_config=FieldSimilarityConfig(role=FieldRole.EMAIL),
            threshold=0.9,
            weight=0.3,
        ),
        MatchingRule(
            "vat",
            "vat",
            field_config=FieldSimilarityConfig(role=FieldRole.IDENTIFIER),
            threshold=0.95,
            weight=0.2,
        ),
    )


@pytest.fixture
def company_config(company_rules: tuple[MatchingRule, ...]) -> RunConfig:
    """Run configuration without blocking over :func:`company_rules`."""
    return RunConfig(rules=company_rules)


@pytest.fixture
def reconcile_fixtures() -> Path:
    """Directory holding left.json, right.jsonl and config.json."""
    return RECONCILE_FIXTURES


@pytest.fixture
def reconcile_config_data() -> dict[str, Any]:
    """Parsed tests/fixtures/reconcile/config.json."""
    with (RECONCILE_FIXTURES / "config.json").open(encoding="utf-8") as f:
        return json.load(f)

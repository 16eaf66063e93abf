"""Unit tests for presentation schemas"""

from datetime import date, time

import pydantic
import pytest

from flowsight_core.domain.engine import FinancialEngine
from flowsight_core.domain.fhss import compute_fhss
from flowsight_core.domain.models import DetectedPattern, PatternType
from flowsight_core.domain.statistics import make_rng
from flowsight_core.schemas import (
    ComprehensiveReportSchema,
    DetectedPatternSchema,
    FHSSResponseSchema,
    TransactionSchema,
)


def test_fhss_response_json_preserves_numbers(sample_profile):
    """Test FHSS fields survive JSON serialization exactly"""
    response = compute_fhss(sample_profile, rng=make_rng(8), iterations=100)

    payload = FHSSResponseSchema.from_domain(response).model_dump_json()
    restored = FHSSResponseSchema.model_validate_json(payload).to_domain()

    assert restored == response
    assert restored.fhss == response.fhss
    assert restored.ci95 == response.ci95


def test_detected_pattern_json_preserves_numbers():
    """Test pattern impact, confidence and enum type survive JSON"""
    pattern = DetectedPattern(
        type=PatternType.CONSISTENCY_CHAMPION,
        category="Savings",
        impact=920,
        confidence=96,
        description="You've saved consistently for 10 weeks. Longest streak detected.",
        formula="streak_multiplier = 1 + (weeks * 0.05) = 1.50",
        action_suggestion="Reward yourself with a small celebration!",
        streak_weeks=10,
    )

    payload = DetectedPatternSchema.from_domain(pattern).model_dump_json()
    restored = DetectedPatternSchema.model_validate_json(payload).to_domain()

    assert restored == pattern
    assert restored.type is PatternType.CONSISTENCY_CHAMPION
    assert '"consistency_champion"' in payload


def test_comprehensive_report_round_trip(sample_profile, sample_transactions, as_of):
    """Test the full report serializes and restores unchanged"""
    report = FinancialEngine(sample_transactions, sample_profile, rng=make_rng(6), as_of=as_of).generate_comprehensive_report()

    payload = ComprehensiveReportSchema.from_domain(report).model_dump_json()
    restored = ComprehensiveReportSchema.model_validate_json(payload).to_domain()

    assert restored == report


def test_transaction_schema_parses_upstream_payload():
    """Test ISO date and time strings become a domain transaction"""
    txn = TransactionSchema.model_validate(
        {"transaction_id": "t1", "amount": -12.5, "date": "2024-06-01", "time_of_day": "19:30:00", "category": "Dining"}
    ).to_domain()

    assert txn.date == date(2024, 6, 1)
    assert txn.time_of_day == time(19, 30)
    assert txn.spend == 12.5
    assert txn.hour == 19


def test_transaction_schema_rejects_missing_id():
    """Test empty identifiers are refused"""
    with pytest.raises(pydantic.ValidationError):
        TransactionSchema.model_validate({"transaction_id": "", "amount": 1, "date": "2024-06-01"})

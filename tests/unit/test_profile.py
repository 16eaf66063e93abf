"""Unit tests for profile normalization"""

import pytest

from flowsight_core.domain.exceptions import ValidationError
from flowsight_core.domain.models import FinancialProfile
from flowsight_core.domain.profile import PartialFinancialProfile, normalize_profile


def test_empty_profile_gets_documented_defaults():
    """Test missing fields default to 0 and the documented non-zero values"""
    profile = normalize_profile({})

    assert profile.monthly_income == 0
    assert profile.age == 30
    assert profile.income_stability == 5
    assert profile.income_source_count == 1
    assert profile.location == "US"
    assert profile.segment is None


def test_none_profile_is_accepted():
    """Test None behaves like an empty profile"""
    assert normalize_profile(None) == normalize_profile({})


def test_essential_expenses_default_to_monthly_expenses():
    """Test essential expenses fall back to the monthly total"""
    profile = normalize_profile({"monthly_expenses": 3000})
    assert profile.essential_expenses == 3000

    explicit = normalize_profile({"monthly_expenses": 3000, "essential_expenses": 0})
    assert explicit.essential_expenses == 0


def test_explicit_zero_is_not_replaced_by_default():
    """Test defaults apply only to missing values"""
    profile = normalize_profile({"income_stability": 0, "age": 0})

    assert profile.income_stability == 0
    assert profile.age == 0


def test_camel_case_keys_are_accepted():
    """Test presentation-layer keys map onto profile fields"""
    profile = normalize_profile({"monthlyIncome": 5000, "creditUtilization": 0.4, "liquidSavings": 1200})

    assert profile.monthly_income == 5000
    assert profile.credit_utilization == 0.4
    assert profile.liquid_savings == 1200


def test_credit_utilization_is_clamped():
    """Test utilization outside [0, 1] is clamped"""
    assert normalize_profile({"credit_utilization": 1.7}).credit_utilization == 1.0
    assert normalize_profile({"credit_utilization": -0.2}).credit_utilization == 0.0
    assert normalize_profile(FinancialProfile(credit_utilization=3.0)).credit_utilization == 1.0


def test_partial_model_input():
    """Test a PartialFinancialProfile instance is normalized directly"""
    profile = normalize_profile(PartialFinancialProfile(monthly_income=4200))
    assert profile.monthly_income == 4200


def test_malformed_profile_raises_validation_error():
    """Test uncoercible and out-of-range values raise the domain error"""
    with pytest.raises(ValidationError):
        normalize_profile({"monthly_income": "lots"})

    with pytest.raises(ValidationError):
        normalize_profile({"income_stability": 15})


def test_unsupported_profile_type():
    """Test non-mapping input raises ValidationError"""
    with pytest.raises(ValidationError):
        normalize_profile([6000, 4000])

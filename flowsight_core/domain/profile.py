"""Profile normalization - turns partial upstream input into a fully-populated FinancialProfile"""

from dataclasses import replace
from typing import Any, Mapping, Optional, Union

import pydantic
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from flowsight_core.domain.exceptions import ValidationError
from flowsight_core.domain.models import FinancialProfile


class PartialFinancialProfile(BaseModel):
    """
    Household snapshot as supplied upstream.

    Every field is optional. Keys may be snake_case or the camelCase used by the
    presentation layer (``monthlyIncome``, ``creditUtilization`` ...).
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    monthly_income: Optional[float] = None
    income_stability: Optional[float] = Field(None, ge=0, le=10)
    income_source_count: Optional[int] = Field(None, ge=0)

    monthly_expenses: Optional[float] = None
    essential_expenses: Optional[float] = None
    discretionary_expenses: Optional[float] = None

    total_debt: Optional[float] = None
    monthly_debt_payments: Optional[float] = None
    credit_utilization: Optional[float] = None
    credit_score: Optional[int] = None

    liquid_savings: Optional[float] = None
    investment_accounts: Optional[float] = None
    retirement_accounts: Optional[float] = None

    age: Optional[int] = Field(None, ge=0)
    location: Optional[str] = None
    dependents: Optional[int] = Field(None, ge=0)
    segment: Optional[str] = None


ProfileInput = Union[FinancialProfile, PartialFinancialProfile, Mapping[str, Any], None]


def _or(value, default):
    return default if value is None else value


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def normalize_profile(profile: ProfileInput) -> FinancialProfile:
    """
    Apply the default-value contract in one place.

    Monetary fields default to 0, ``age`` to 30, ``income_stability`` to 5,
    ``income_source_count`` to 1 and ``essential_expenses`` to the monthly
    expenses. ``credit_utilization`` is clamped to [0, 1].

    Raises:
        ValidationError: If a field cannot be coerced to its declared type
    """
    if isinstance(profile, FinancialProfile):
        return replace(profile, credit_utilization=clamp(profile.credit_utilization, 0.0, 1.0))

    if profile is None:
        partial = PartialFinancialProfile()
    elif isinstance(profile, PartialFinancialProfile):
        partial = profile
    elif isinstance(profile, Mapping):
        try:
            partial = PartialFinancialProfile.model_validate(dict(profile))
        except pydantic.ValidationError as e:
            raise ValidationError(f"Malformed financial profile: {e}") from e
    else:
        raise ValidationError(f"Unsupported profile type: {type(profile).__name__}")

    monthly_expenses = _or(partial.monthly_expenses, 0.0)

    return FinancialProfile(
        monthly_income=_or(partial.monthly_income, 0.0),
        income_stability=_or(partial.income_stability, 5.0),
        income_source_count=_or(partial.income_source_count, 1),
        monthly_expenses=monthly_expenses,
        essential_expenses=_or(partial.essential_expenses, monthly_expenses),
        discretionary_expenses=_or(partial.discretionary_expenses, 0.0),
        total_debt=_or(partial.total_debt, 0.0),
        monthly_debt_payments=_or(partial.monthly_debt_payments, 0.0),
        credit_utilization=clamp(_or(partial.credit_utilization, 0.0), 0.0, 1.0),
        credit_score=partial.credit_score,
        liquid_savings=_or(partial.liquid_savings, 0.0),
        investment_accounts=_or(partial.investment_accounts, 0.0),
        retirement_accounts=_or(partial.retirement_accounts, 0.0),
        age=_or(partial.age, 30),
        location=_or(partial.location, "US"),
        dependents=_or(partial.dependents, 0),
        segment=partial.segment,
    )

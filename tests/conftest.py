"""Pytest fixtures for testing"""

import pytest
from datetime import date, time, timedelta

import numpy as np

from flowsight_core.domain.models import FinancialProfile, Transaction


AS_OF = date(2024, 6, 30)


@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded generator so stochastic routines are reproducible"""
    return np.random.default_rng(42)


@pytest.fixture
def as_of() -> date:
    return AS_OF


@pytest.fixture
def sample_profile() -> FinancialProfile:
    """Mid-career household with a modest surplus"""
    return FinancialProfile(
        monthly_income=6000,
        income_stability=7,
        income_source_count=1,
        monthly_expenses=4500,
        essential_expenses=3200,
        discretionary_expenses=1300,
        total_debt=15000,
        monthly_debt_payments=600,
        credit_utilization=0.35,
        liquid_savings=9000,
        investment_accounts=20000,
        retirement_accounts=45000,
        age=41,
    )


@pytest.fixture
def sample_transactions() -> list[Transaction]:
    """Ninety days of groceries, dining and a monthly subscription"""
    base_date = AS_OF - timedelta(days=90)
    transactions = []

    # Weekly groceries
    for week in range(13):
        transactions.append(
            Transaction(
                transaction_id=f"groceries_{week}",
                amount=-(120 + (week % 3) * 15),
                date=base_date + timedelta(days=week * 7),
                time_of_day=time(17, 30),
                category="Groceries",
                merchant="Supermarket",
            )
        )

    # Dining every few days
    for day in range(0, 90, 4):
        transactions.append(
            Transaction(
                transaction_id=f"dining_{day}",
                amount=-(25 + (day % 5) * 4),
                date=base_date + timedelta(days=day),
                time_of_day=time(19, 0),
                category="Dining",
                merchant="Bistro",
            )
        )

    # Monthly streaming subscription
    for month in range(3):
        transactions.append(
            Transaction(
                transaction_id=f"streaming_{month}",
                amount=-15.99,
                date=date(2024, 4 + month, 3),
                time_of_day=time(3, 0),
                category="Entertainment",
                merchant="Streamer",
            )
        )

    return transactions


@pytest.fixture
def make_transactions():
    """Factory building one category's transactions from (date, amount) pairs"""

    def build(category: str, entries, hour: int = 12) -> list[Transaction]:
        return [
            Transaction(
                transaction_id=f"{category.lower()}_{i}",
                amount=amount,
                date=day,
                time_of_day=time(hour, 0),
                category=category,
            )
            for i, (day, amount) in enumerate(entries)
        ]

    return build

"""Unit tests for domain model validation"""

from datetime import date

import pytest

from flowsight_core.domain.exceptions import ValidationError
from flowsight_core.domain.models import Transaction


def test_transaction_requires_amount():
    """Test a transaction without an amount is rejected"""
    with pytest.raises(ValidationError, match="no amount"):
        Transaction(transaction_id="t1", amount=None, date=date(2024, 6, 1))


def test_transaction_requires_date():
    """Test a transaction without a date is rejected"""
    with pytest.raises(ValidationError, match="no date"):
        Transaction(transaction_id="t1", amount=-20, date=None)


@pytest.mark.parametrize("category", [None, ""])
def test_missing_category_defaults_to_other(category):
    """Test blank categories fall back to Other"""
    txn = Transaction(transaction_id="t1", amount=-20, date=date(2024, 6, 1), category=category)

    assert txn.category == "Other"
    assert txn.spend == 20

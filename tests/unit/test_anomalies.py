"""Unit tests for the analytics engine"""

from datetime import date, timedelta

import pytest

from flowsight_core.domain.anomalies import RiskAnalyticsEngine
from flowsight_core.domain.exceptions import ValidationError
from flowsight_core.domain.models import FinancialProfile, Transaction


AS_OF = date(2024, 6, 30)


@pytest.fixture
def engine() -> RiskAnalyticsEngine:
    return RiskAnalyticsEngine(as_of=AS_OF)


def daily(count, amount=-50, end=AS_OF):
    return [(end - timedelta(days=count - 1 - i), amount) for i in range(count)]


def test_model_registry(engine):
    """Test each engine owns its own model descriptors"""
    assert set(engine.models) == {"spending_prediction", "anomaly_detection", "risk_assessment"}
    assert engine.models["spending_prediction"].type == "linear"
    assert RiskAnalyticsEngine().models is not engine.models


def test_spending_pattern_profile(engine, sample_transactions):
    """Test weekly groceries are summarized per category"""
    patterns = engine.analyze_spending_patterns(sample_transactions)
    groceries = next(p for p in patterns if p.category == "Groceries")

    assert groceries.frequency == pytest.approx(12 / 84 * 30)
    assert groceries.day_of_week == 0  # 2024-04-01 is a Monday
    assert 0.1 <= groceries.confidence <= 1.0
    assert [p.confidence for p in patterns] == sorted((p.confidence for p in patterns), reverse=True)


def test_anomaly_detection_needs_ten_transactions(engine, make_transactions):
    """Test fewer than ten records yield no anomalies"""
    entries = daily(8) + [(AS_OF, -5000)]

    assert engine.detect_anomalies(make_transactions("Shopping", entries)) == []


def test_amount_anomaly(engine, make_transactions):
    """Test one outsized purchase is flagged as critical"""
    entries = daily(19, end=AS_OF - timedelta(days=1)) + [(AS_OF, -1000)]
    transactions = make_transactions("Shopping", entries)

    anomalies = engine.detect_anomalies(transactions)

    assert len(anomalies) == 1
    anomaly = anomalies[0]
    assert anomaly.type == "amount"
    assert anomaly.severity == "critical"  # z = 4.36
    assert anomaly.score == 1.0
    assert anomaly.transaction_id == "shopping_19"
    assert "higher than normal" in anomaly.description


@pytest.mark.parametrize("category", ["Groceries", "Grocery", "grocery store"])
def test_timing_anomalies(engine, make_transactions, category):
    """Test late-night groceries are flagged as low severity under any spelling"""
    entries = [(AS_OF - timedelta(weeks=9 - i), -80) for i in range(10)]
    transactions = make_transactions(category, entries, hour=23)

    anomalies = engine.detect_anomalies(transactions)

    assert len(anomalies) == 10
    assert all(a.type == "timing" and a.severity == "low" and a.score == 0.6 for a in anomalies)


def test_restaurant_monday_morning(engine, make_transactions):
    """Test only Monday-morning restaurant visits count as odd timing"""
    monday = date(2024, 6, 24)
    weeks = [(monday - timedelta(weeks=9 - i), -40) for i in range(10)]

    morning = engine.detect_anomalies(make_transactions("Restaurant", weeks, hour=9))
    lunch = engine.detect_anomalies(make_transactions("Restaurant", weeks, hour=12))

    assert [a.type for a in morning] == ["timing"] * 10
    assert lunch == []


def test_frequency_anomaly_is_reported_once_per_category(engine, make_transactions):
    """Test a recent burst against a sparse history"""
    history = [(AS_OF - timedelta(days=days), -4) for days in (300, 240, 180, 120, 60)]
    burst = [(AS_OF - timedelta(days=days), -4) for days in (4, 3, 2, 1, 0)]
    transactions = make_transactions("Coffee", history + burst)

    anomalies = engine.detect_anomalies(transactions)

    assert len(anomalies) == 1
    anomaly = anomalies[0]
    assert anomaly.type == "frequency"
    assert anomaly.severity == "medium"
    assert anomaly.transaction_id is None
    # expected 9 / 300 * 30 = 0.9 per month, observed 5
    assert anomaly.score == pytest.approx(4.1 / 0.9)


def test_anomalies_sorted_by_score(engine, make_transactions):
    """Test highest score first across anomaly types"""
    entries = daily(19, end=AS_OF - timedelta(days=1)) + [(AS_OF, -1000)]
    transactions = make_transactions("Shopping", entries)
    transactions += make_transactions("Groceries", [(AS_OF - timedelta(weeks=i), -80) for i in range(3)], hour=23)

    scores = [a.score for a in engine.detect_anomalies(transactions)]

    assert scores == sorted(scores, reverse=True)
    assert scores[0] == 1.0


def test_predict_spending_scales_with_timeframe(engine, make_transactions):
    """Test longer windows predict more spend"""
    weekly = [(AS_OF - timedelta(weeks=7 - i), -40) for i in range(8)]
    transactions = make_transactions("Gym", weekly)

    week, = engine.predict_spending(transactions, "week")
    month, = engine.predict_spending(transactions, "month")
    quarter, = engine.predict_spending(transactions, "quarter")

    assert 0 < week.predicted_amount < month.predicted_amount < quarter.predicted_amount
    assert 0.3 <= month.confidence <= 1.0
    assert month.timeframe == "month"
    assert month.model.type == "linear"
    assert [f.name for f in month.factors] == [
        "Historical Average", "Seasonal Trends", "Frequency Pattern", "Recent Trend",
    ]


def test_predict_spending_skips_sparse_categories(engine, make_transactions):
    """Test categories need three records"""
    transactions = make_transactions("Gym", [(AS_OF, -40), (AS_OF - timedelta(days=7), -40)])

    assert engine.predict_spending(transactions) == []


def test_predict_spending_rejects_unknown_timeframe(engine, sample_transactions):
    """Test timeframe must be week, month or quarter"""
    with pytest.raises(ValidationError):
        engine.predict_spending(sample_transactions, "decade")


def test_subscription_insight(engine, make_transactions):
    """Test six steady monthly charges are grouped as subscriptions"""
    transactions = []
    for i in range(6):
        amount = -(9.99 + i)
        transactions += make_transactions(f"Service{i}", [(date(2024, month, 5), amount) for month in (4, 5, 6)])

    insights = engine.analyze_behavioral_patterns(transactions)

    assert [i.pattern for i in insights] == ["Multiple Subscriptions"]
    assert "6 recurring charges" in insights[0].description
    assert insights[0].potential_savings == pytest.approx(sum(9.99 + i for i in range(6)) * 0.3)


def test_weekend_spending_insight(engine, make_transactions):
    """Test weekend-heavy spending is called out"""
    saturday = date(2024, 6, 1)
    entries = [(saturday + timedelta(weeks=w), -100) for w in range(3)]
    entries += [(saturday + timedelta(weeks=w, days=2), -20) for w in range(3)]

    insights = engine.analyze_behavioral_patterns(make_transactions("Dining", entries))
    weekend = next(i for i in insights if i.pattern == "High Weekend Spending")

    assert weekend.description == "You spend 400% more on weekends than weekdays"
    assert weekend.impact == "negative"
    assert "High Category Concentration" in {i.pattern for i in insights}
    assert engine.analyze_behavioral_patterns([]) == []


def test_five_factor_weights_sum_to_one(engine, sample_profile, sample_transactions):
    """Test overall is the weighted sum of the five factors"""
    assessment = engine.assess_financial_risk(sample_profile, sample_transactions)

    assert [f.name for f in assessment.factors] == [
        "Income Stability", "Debt Burden", "Emergency Preparedness", "Spending Consistency", "Credit Management",
    ]
    assert sum(f.weight for f in assessment.factors) == pytest.approx(1.0)
    assert assessment.overall == pytest.approx(sum(f.score * f.weight for f in assessment.factors))
    assert assessment.timeline == "long_term"
    assert assessment.recommendations[0] == "Build emergency fund to 3-6 months of expenses as top priority"


def test_five_factor_fragile_household(engine):
    """Test a stretched household needs immediate attention"""
    fragile = FinancialProfile(
        monthly_income=3000,
        monthly_expenses=2900,
        liquid_savings=500,
        income_stability=2,
        credit_utilization=0.9,
        monthly_debt_payments=1500,
    )
    assessment = engine.assess_financial_risk(fragile, [])
    scores = {f.name: f.score for f in assessment.factors}

    assert scores == pytest.approx(
        {
            "Income Stability": 80,
            "Debt Burden": 100,
            "Emergency Preparedness": 100,
            "Spending Consistency": 0,
            "Credit Management": 90,
        }
    )
    assert assessment.overall == pytest.approx(79)
    assert assessment.timeline == "immediate"
    assert assessment.recommendations[-1].startswith("Consider consulting with a financial advisor")
    assert len(assessment.recommendations) == 5


def test_insights_tolerate_uncategorized_transactions(engine):
    """Test transactions built without a category are analyzed as Other"""
    transactions = [
        Transaction(transaction_id=f"u{i}", amount=-300, date=AS_OF - timedelta(days=i), category=None)
        for i in range(12)
    ]

    insights = engine.analyze_behavioral_patterns(transactions)

    assert all(t.category == "Other" for t in transactions)
    assert "High Category Concentration" in {i.pattern for i in insights}

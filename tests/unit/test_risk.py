"""Unit tests for the four-factor risk model, stress tests, cash flow and goals"""

from datetime import date

import pytest

from flowsight_core.domain.models import FinancialProfile, Goal, StressScenario
from flowsight_core.domain.risk import (
    RISK_WEIGHTS,
    analyze_goals,
    analyze_spending_categories,
    assess_financial_risk,
    calculate_concentration_risk,
    calculate_liquidity_risk,
    calculate_trend,
    generate_cash_flow_projections,
    predict_next_month,
    run_stress_test,
    run_stress_tests,
)
from flowsight_core.domain.statistics import make_rng


def test_liquidity_risk_bands():
    """Test emergency-fund months map onto risk bands"""
    assert calculate_liquidity_risk(FinancialProfile(liquid_savings=24000, monthly_expenses=4000)) == 10
    assert calculate_liquidity_risk(FinancialProfile(liquid_savings=12000, monthly_expenses=4000)) == 30
    assert calculate_liquidity_risk(FinancialProfile(liquid_savings=4000, monthly_expenses=4000)) == 60
    assert calculate_liquidity_risk(FinancialProfile(liquid_savings=2000, monthly_expenses=4000)) == 90
    assert calculate_liquidity_risk(FinancialProfile(liquid_savings=0, monthly_expenses=0)) == 10


def test_concentration_risk_by_income_sources():
    """Test more income sources lower concentration risk"""
    assert calculate_concentration_risk(FinancialProfile(income_source_count=1)) == 50
    assert calculate_concentration_risk(FinancialProfile(income_source_count=2)) == 35
    assert calculate_concentration_risk(FinancialProfile(income_source_count=4)) == 25


def test_overall_risk_is_weighted_sum(sample_profile, sample_transactions):
    """Test overall risk combines the four factors with their weights"""
    assessment = assess_financial_risk(sample_profile, sample_transactions)

    expected = (
        assessment.liquidity_risk * RISK_WEIGHTS[0]
        + assessment.concentration_risk * RISK_WEIGHTS[1]
        + assessment.volatility_risk * RISK_WEIGHTS[2]
        + assessment.credit_risk * RISK_WEIGHTS[3]
    )
    assert assessment.overall_risk == pytest.approx(expected, abs=0.5)
    assert assessment.time_horizon == "12 months"
    for value in (
        assessment.liquidity_risk,
        assessment.concentration_risk,
        assessment.volatility_risk,
        assessment.credit_risk,
    ):
        assert 0 <= value <= 100


def test_risk_recommendations_for_fragile_household():
    """Test factors above 50 produce recommendations"""
    fragile = FinancialProfile(
        monthly_income=3000,
        monthly_expenses=2900,
        liquid_savings=500,
        income_stability=2,
        credit_utilization=0.9,
        monthly_debt_payments=1500,
    )
    assessment = assess_financial_risk(fragile, [])

    assert "Build emergency fund to 3-6 months of expenses" in assessment.recommendations
    assert "Reduce debt burden and credit utilization" in assessment.recommendations
    assert assessment.credit_risk == 70  # (90 + 50) / 2


def test_job_loss_scenario(sample_profile):
    """Test income shock recovery and survival odds"""
    result = run_stress_test(sample_profile, StressScenario(name="Job Loss", income_reduction=1.0, duration_months=6))

    # net cash flow 1500, net impact -6000 for 6 months
    assert result.impact_percent == 100
    assert result.months_to_recover == 6 + 24
    assert result.success_probability == 23  # 9000 / 6000 * 15 = 22.5
    assert "Establish multiple income streams" in result.recommended_actions


def test_asset_only_shock_has_no_cash_flow_impact(sample_profile):
    """Test a market downturn leaves cash flow intact"""
    result = run_stress_test(
        sample_profile, StressScenario(name="Market Downturn", asset_reduction=0.3, duration_months=12)
    )

    assert result.impact_percent == 0
    assert result.months_to_recover == 12
    assert result.success_probability == 95
    assert result.recommended_actions == ["Rebalance investments toward your risk tolerance"]


def test_no_recovery_without_positive_cash_flow():
    """Test recovery is undefined when the household runs a deficit"""
    deficit = FinancialProfile(monthly_income=3000, monthly_expenses=3200, liquid_savings=1000)
    result = run_stress_test(deficit, StressScenario(name="Job Loss", income_reduction=1.0, duration_months=6))

    assert result.months_to_recover is None
    assert result.success_probability == 5


def test_default_scenarios(sample_profile):
    """Test the four canned scenarios run with bounded probabilities"""
    results = run_stress_tests(sample_profile)

    assert [r.scenario for r in results] == ["Job Loss", "Medical Emergency", "Market Downturn", "Economic Recession"]
    assert all(5 <= r.success_probability <= 95 for r in results)


def test_cash_flow_projection(sample_profile, sample_transactions):
    """Test length, dates and non-increasing confidence"""
    projections = generate_cash_flow_projections(
        sample_profile, sample_transactions, [], months=12, rng=make_rng(3), start=date(2024, 1, 31)
    )

    assert len(projections) == 12
    assert projections[0].date == date(2024, 2, 29)
    assert projections[0].confidence == 67  # 0.7 * e^-0.05
    assert all(a.confidence >= b.confidence for a, b in zip(projections, projections[1:]))
    assert all(p.income == 6000 for p in projections)


def test_cash_flow_balance_accumulates(sample_profile):
    """Test projected balance is savings plus cumulative cash flow"""
    projections = generate_cash_flow_projections(sample_profile, [], [], months=6, rng=make_rng(3), start=date(2024, 1, 1))

    last = projections[-1]
    assert abs(last.projected_balance - (sample_profile.liquid_savings + last.cumulative_cash_flow)) <= 1


def test_trend_and_smoothing():
    """Test half-over-half trend labels and exponential smoothing"""
    assert calculate_trend([100, 100, 150, 150]) == "increasing"
    assert calculate_trend([150, 150, 100, 100]) == "decreasing"
    assert calculate_trend([100, 105, 100, 104]) == "stable"
    assert calculate_trend([100]) == "stable"

    assert predict_next_month([]) == 0.0
    assert predict_next_month([100, 200]) == pytest.approx(130)


def test_spending_category_analysis(sample_transactions):
    """Test one analysis per category with the month's seasonality prior"""
    analyses = analyze_spending_categories(sample_transactions, as_of=date(2024, 12, 1))

    assert {a.category for a in analyses} == {"Groceries", "Dining", "Entertainment"}
    assert all(a.seasonality == 0.35 for a in analyses)
    streaming = next(a for a in analyses if a.category == "Entertainment")
    assert streaming.average_monthly == pytest.approx(15.99)
    assert streaming.trend == "stable"


def test_goal_analysis(sample_profile):
    """Test required savings, completion date and probability bands"""
    goals = [
        Goal(goal_id="house", target_amount=30000, current_amount=6000, target_date=date(2026, 1, 1)),
        Goal(goal_id="boat", target_amount=500000),
    ]
    house, boat = analyze_goals(sample_profile, goals, as_of=date(2024, 1, 1))

    # 731 days -> 25 months; 24000 / 25 = 960 per month, below the 1500 surplus
    assert house.required_monthly_savings == 960
    assert house.projected_completion_date == date(2026, 2, 1)
    assert house.probability == 95
    assert house.alternative_strategies == []

    # No target date: 60-month horizon
    assert boat.required_monthly_savings == 8333
    assert boat.probability == 25
    assert len(boat.alternative_strategies) == 4

"""Financial risk engine - four-factor risk, stress scenarios, cash flow and category analysis"""

import math
from collections import defaultdict
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from flowsight_core.config import settings
from flowsight_core.domain.models import (
    CashFlowProjection,
    DetectedPattern,
    FinancialProfile,
    Goal,
    GoalAnalysis,
    RiskAssessment,
    SpendingCategoryAnalysis,
    StressScenario,
    StressTestResult,
    Transaction,
)
from flowsight_core.domain.patterns import group_by_category
from flowsight_core.domain.profile import clamp
from flowsight_core.domain.statistics import (
    coefficient_of_variation,
    default_rng,
    mean,
    population_std,
    round_half_up,
)
from flowsight_core.utils.date_utils import add_months, days_between, month_key

# Weights of the four-factor model: liquidity, concentration, volatility, credit
RISK_WEIGHTS = (0.3, 0.2, 0.25, 0.25)
RISK_TIME_HORIZON = "12 months"
RECOMMENDATION_THRESHOLD = 50
# Asset mix is not part of the profile; holdings count as moderately concentrated
ASSET_CONCENTRATION_RISK = 30

STRESS_SCENARIOS: Tuple[StressScenario, ...] = (
    StressScenario(name="Job Loss", income_reduction=1.0, duration_months=6),
    StressScenario(name="Medical Emergency", expense_increase=0.5, duration_months=3),
    StressScenario(name="Market Downturn", asset_reduction=0.3, duration_months=12),
    StressScenario(name="Economic Recession", income_reduction=0.2, expense_increase=0.1, duration_months=18),
)

# Seasonality prior by calendar month (January first)
MONTHLY_SEASONALITY = (0.1, 0.05, 0.15, 0.2, 0.25, 0.15, 0.1, 0.05, 0.2, 0.3, 0.25, 0.35)

DEFAULT_GOAL_HORIZON_MONTHS = 60


# =============================================================================
# Transaction aggregates
# =============================================================================

def daily_spending_amounts(transactions: Sequence[Transaction]) -> List[float]:
    daily: Dict[date, float] = defaultdict(float)
    for txn in transactions:
        daily[txn.date] += txn.spend
    return list(daily.values())


def monthly_spending_amounts(transactions: Sequence[Transaction]) -> List[float]:
    """Calendar-month totals in chronological order"""
    monthly: Dict[Tuple[int, int], float] = defaultdict(float)
    for txn in transactions:
        monthly[month_key(txn.date)] += txn.spend
    return [monthly[key] for key in sorted(monthly)]


def calculate_volatility_factor(transactions: Sequence[Transaction]) -> float:
    """Coefficient of variation of daily spend totals"""
    return coefficient_of_variation(daily_spending_amounts(transactions))


def calculate_seasonality_factor(transactions: Sequence[Transaction]) -> float:
    """Coefficient of variation of spend across the twelve calendar months"""
    by_month = [0.0] * 12
    for txn in transactions:
        by_month[txn.date.month - 1] += txn.spend
    return coefficient_of_variation(by_month)


# =============================================================================
# Four-factor risk model
# =============================================================================

def calculate_liquidity_risk(profile: FinancialProfile) -> int:
    if profile.monthly_expenses <= 0:
        return 10
    emergency_fund_months = profile.liquid_savings / profile.monthly_expenses

    if emergency_fund_months >= 6:
        return 10
    if emergency_fund_months >= 3:
        return 30
    if emergency_fund_months >= 1:
        return 60
    return 90


def calculate_concentration_risk(profile: FinancialProfile) -> int:
    if profile.income_source_count <= 1:
        income_source_risk = 70
    elif profile.income_source_count == 2:
        income_source_risk = 40
    else:
        income_source_risk = 20

    return round_half_up((income_source_risk + ASSET_CONCENTRATION_RISK) / 2)


def calculate_volatility_risk(profile: FinancialProfile, transactions: Sequence[Transaction]) -> int:
    income_volatility = (10 - profile.income_stability) * 10
    expense_volatility = calculate_volatility_factor(transactions) * 100
    return int(clamp(round_half_up((income_volatility + expense_volatility) / 2), 0, 100))


def calculate_credit_risk(profile: FinancialProfile) -> int:
    utilization_risk = profile.credit_utilization * 100
    dti_risk = profile.debt_to_income * 100
    return int(clamp(round_half_up((utilization_risk + dti_risk) / 2), 0, 100))


def generate_risk_recommendations(
    liquidity_risk: int,
    concentration_risk: int,
    volatility_risk: int,
    credit_risk: int,
) -> List[str]:
    recommendations = []

    if liquidity_risk > RECOMMENDATION_THRESHOLD:
        recommendations.append("Build emergency fund to 3-6 months of expenses")
    if concentration_risk > RECOMMENDATION_THRESHOLD:
        recommendations.append("Diversify income sources and investment portfolio")
    if volatility_risk > RECOMMENDATION_THRESHOLD:
        recommendations.append("Create more predictable income and expense patterns")
    if credit_risk > RECOMMENDATION_THRESHOLD:
        recommendations.append("Reduce debt burden and credit utilization")

    return recommendations


def assess_financial_risk(profile: FinancialProfile, transactions: Sequence[Transaction]) -> RiskAssessment:
    """
    Weighted four-factor risk, 0 (safe) to 100 (critical).

    overall = 0.3 * liquidity + 0.2 * concentration + 0.25 * volatility + 0.25 * credit
    """
    liquidity_risk = calculate_liquidity_risk(profile)
    concentration_risk = calculate_concentration_risk(profile)
    volatility_risk = calculate_volatility_risk(profile, transactions)
    credit_risk = calculate_credit_risk(profile)

    w_liquidity, w_concentration, w_volatility, w_credit = RISK_WEIGHTS
    overall_risk = round_half_up(
        liquidity_risk * w_liquidity
        + concentration_risk * w_concentration
        + volatility_risk * w_volatility
        + credit_risk * w_credit
    )

    return RiskAssessment(
        overall_risk=overall_risk,
        liquidity_risk=liquidity_risk,
        concentration_risk=concentration_risk,
        volatility_risk=volatility_risk,
        credit_risk=credit_risk,
        recommendations=generate_risk_recommendations(
            liquidity_risk, concentration_risk, volatility_risk, credit_risk
        ),
        time_horizon=RISK_TIME_HORIZON,
    )


# =============================================================================
# Stress tests
# =============================================================================

def stress_test_recommendations(scenario: StressScenario) -> List[str]:
    recommendations = []

    if scenario.income_reduction:
        recommendations.append("Establish multiple income streams")
        recommendations.append("Build larger emergency fund")

    if scenario.expense_increase:
        recommendations.append("Review and optimize monthly expenses")
        recommendations.append("Consider insurance coverage")

    if scenario.asset_reduction:
        recommendations.append("Rebalance investments toward your risk tolerance")

    return recommendations


def run_stress_test(profile: FinancialProfile, scenario: StressScenario) -> StressTestResult:
    """
    Apply one shock and estimate recovery.

    months_to_recover = duration + ceil(|net_impact * duration| / net_cash_flow),
    or None when there is no positive cash flow to recover with.
    success_probability = clamp(liquid_savings / |net_impact| * 15, 5, 95).
    """
    income = profile.monthly_income
    expenses = profile.monthly_expenses
    net_cash_flow = income - expenses

    stressed_income = income * (1 - scenario.income_reduction)
    stressed_expenses = expenses * (1 + scenario.expense_increase)
    net_impact = (stressed_income - stressed_expenses) - net_cash_flow

    impact_percent = abs(net_impact) / income * 100 if income > 0 else 0.0

    shortfall = abs(net_impact * scenario.duration_months)
    if shortfall == 0:
        months_to_recover: Optional[int] = scenario.duration_months
    elif net_cash_flow > 0:
        months_to_recover = scenario.duration_months + math.ceil(shortfall / net_cash_flow)
    else:
        months_to_recover = None

    if net_impact == 0:
        success_probability = 95.0
    else:
        liquidity_cushion = profile.liquid_savings / abs(net_impact)
        success_probability = clamp(liquidity_cushion * 15, 5, 95)

    return StressTestResult(
        scenario=scenario.name,
        impact_percent=round_half_up(impact_percent),
        months_to_recover=months_to_recover,
        recommended_actions=stress_test_recommendations(scenario),
        success_probability=round_half_up(success_probability),
    )


def run_stress_tests(
    profile: FinancialProfile,
    scenarios: Sequence[StressScenario] = STRESS_SCENARIOS,
) -> List[StressTestResult]:
    return [run_stress_test(profile, scenario) for scenario in scenarios]


# =============================================================================
# Cash flow projections
# =============================================================================

def behavior_impact_for_month(patterns: Sequence[DetectedPattern], month: int) -> float:
    """Monthly share of pattern impacts, decaying as exp(-0.1 * month)"""
    time_decay = math.exp(-month * 0.1)
    return sum(p.impact * time_decay / 12 for p in patterns)


def projection_confidence(month: int, pattern_count: int) -> int:
    """Decays with horizon, boosted (up to +0.3) by detected pattern data"""
    time_decay = math.exp(-month * 0.05)
    data_bonus = min(pattern_count * 0.1, 0.3)
    return round_half_up((0.7 + data_bonus) * time_decay * 100)


def generate_cash_flow_projections(
    profile: FinancialProfile,
    transactions: Sequence[Transaction],
    patterns: Sequence[DetectedPattern],
    months: int = settings.default_projection_months,
    rng: Optional[np.random.Generator] = None,
    start: Optional[date] = None,
) -> List[CashFlowProjection]:
    """
    Month-by-month income/expense projection from the current profile.

    Expenses get a sinusoidal seasonal adjustment, the decayed behavioral
    impact and a random volatility shock scaled by daily-spend variation.
    """
    rng = rng if rng is not None else default_rng()
    start = start if start is not None else date.today()

    seasonality_factor = calculate_seasonality_factor(transactions)
    volatility_factor = calculate_volatility_factor(transactions)

    projections = []
    cumulative_cash_flow = 0.0
    balance = profile.liquid_savings

    for month in range(1, months + 1):
        projected_income = profile.monthly_income
        projected_expenses = profile.monthly_expenses

        seasonal_adjustment = math.sin((month / 12) * 2 * math.pi) * seasonality_factor
        projected_expenses += projected_expenses * seasonal_adjustment * 0.1
        projected_expenses += behavior_impact_for_month(patterns, month)
        projected_expenses += (rng.random() - 0.5) * volatility_factor * projected_expenses

        net_cash_flow = projected_income - projected_expenses
        cumulative_cash_flow += net_cash_flow
        balance += net_cash_flow

        projections.append(
            CashFlowProjection(
                date=add_months(start, month),
                income=round_half_up(projected_income),
                expenses=round_half_up(projected_expenses),
                net_cash_flow=round_half_up(net_cash_flow),
                cumulative_cash_flow=round_half_up(cumulative_cash_flow),
                projected_balance=round_half_up(balance),
                confidence=projection_confidence(month, len(patterns)),
            )
        )

    return projections


# =============================================================================
# Spending categories
# =============================================================================

def calculate_trend(values: Sequence[float]) -> str:
    """Compare the first and second halves; +/-10% marks a trend"""
    if len(values) < 2:
        return "stable"

    half = len(values) // 2
    first_avg = mean(values[:half])
    second_avg = mean(values[half:])

    if first_avg == 0:
        return "increasing" if second_avg > 0 else "stable"

    change_percent = (second_avg - first_avg) / first_avg * 100
    if change_percent > 10:
        return "increasing"
    if change_percent < -10:
        return "decreasing"
    return "stable"


def predict_next_month(values: Sequence[float], alpha: float = 0.3) -> float:
    """Simple exponential smoothing"""
    if not values:
        return 0.0
    forecast = values[0]
    for value in values[1:]:
        forecast = alpha * value + (1 - alpha) * forecast
    return forecast


def calculate_anomaly_score(values: Sequence[float]) -> float:
    """|z| of the latest month scaled to 0-100"""
    if len(values) < 3:
        return 0.0
    sigma = population_std(values)
    if sigma == 0:
        return 0.0
    z = abs((values[-1] - mean(values)) / sigma)
    return min(100.0, z * 20)


def analyze_spending_categories(
    transactions: Sequence[Transaction],
    as_of: Optional[date] = None,
) -> List[SpendingCategoryAnalysis]:
    as_of = as_of if as_of is not None else date.today()
    seasonality = MONTHLY_SEASONALITY[as_of.month - 1]

    analyses = []
    for category, category_txns in group_by_category(transactions).items():
        monthly_amounts = monthly_spending_amounts(category_txns)
        analyses.append(
            SpendingCategoryAnalysis(
                category=category,
                average_monthly=mean(monthly_amounts),
                trend=calculate_trend(monthly_amounts),
                volatility=coefficient_of_variation(monthly_amounts),
                seasonality=seasonality,
                predicted_next_30_days=predict_next_month(monthly_amounts),
                anomaly_score=calculate_anomaly_score(monthly_amounts),
            )
        )
    return analyses


# =============================================================================
# Goals
# =============================================================================

def calculate_goal_probability(profile: FinancialProfile, required_monthly_savings: float) -> int:
    """Banded by how the required savings rate compares with the current one"""
    if required_monthly_savings <= 0:
        return 95
    if profile.monthly_income <= 0:
        return 25

    current_rate = profile.monthly_surplus / profile.monthly_income
    required_rate = required_monthly_savings / profile.monthly_income

    if required_rate <= current_rate:
        return 95
    if required_rate <= current_rate * 1.5:
        return 75
    if required_rate <= current_rate * 2:
        return 50
    return 25


def alternative_strategies(profile: FinancialProfile, required_monthly_savings: float) -> List[str]:
    if required_monthly_savings <= profile.monthly_surplus:
        return []
    return [
        "Increase income through side hustle or career advancement",
        "Reduce monthly expenses to increase savings capacity",
        "Extend timeline to reduce monthly requirement",
        "Invest in higher-yield accounts to boost growth",
    ]


def analyze_goals(
    profile: FinancialProfile,
    goals: Sequence[Goal],
    as_of: Optional[date] = None,
) -> List[GoalAnalysis]:
    as_of = as_of if as_of is not None else date.today()

    analyses = []
    for goal in goals:
        if goal.target_date is not None:
            months_to_target = max(1, math.ceil(days_between(as_of, goal.target_date) / 30))
        else:
            months_to_target = DEFAULT_GOAL_HORIZON_MONTHS

        remaining = goal.target_amount - goal.current_amount
        required_monthly_savings = remaining / months_to_target

        analyses.append(
            GoalAnalysis(
                goal_id=goal.goal_id,
                target_amount=goal.target_amount,
                current_amount=goal.current_amount,
                required_monthly_savings=round_half_up(required_monthly_savings),
                projected_completion_date=add_months(as_of, months_to_target),
                probability=calculate_goal_probability(profile, required_monthly_savings),
                alternative_strategies=alternative_strategies(profile, required_monthly_savings),
            )
        )
    return analyses

"""Multi-horizon net-worth trajectory forecasting"""

import math
from datetime import date, timedelta
from typing import List, Optional, Sequence

import numpy as np

from flowsight_core.config import settings
from flowsight_core.domain.models import DetectedPattern, GoalAchievement, PatternType, TrajectoryPoint
from flowsight_core.domain.statistics import default_rng

WEEKEND_MARKERS = ("Weekend", "Saturday", "Sunday")
MIDWEEK_MARKERS = ("Wednesday", "Thursday")
RANDOM_ACTIVITY_THRESHOLD = 0.7  # other timed patterns fire ~30% of weeks


def compute_behavior_delta(patterns: Sequence[DetectedPattern], monthly_income: float) -> float:
    """Sum of pattern impacts normalized by income; 0 without income"""
    if monthly_income <= 0:
        return 0.0
    return sum(p.impact / monthly_income for p in patterns)


def is_pattern_active(pattern: DetectedPattern, week: int, rng: np.random.Generator) -> bool:
    """
    Weekend patterns run in the first half of each 4-week cycle, midweek
    patterns every other week. Other timed patterns are drawn at random and
    untimed ones never fire.
    """
    if not pattern.time_pattern:
        return False

    if pattern.type == PatternType.WEEKEND_REBOUNDER or any(m in pattern.time_pattern for m in WEEKEND_MARKERS):
        return week % 4 < 2

    if pattern.type == PatternType.MIDWEEK_IMPULSE or any(m in pattern.time_pattern for m in MIDWEEK_MARKERS):
        return week % 2 == 0

    return rng.random() > RANDOM_ACTIVITY_THRESHOLD


def generate_trajectory_projections(
    monthly_income: float,
    monthly_expenses: float,
    patterns: Sequence[DetectedPattern],
    weeks: int = settings.default_forecast_weeks,
    start: Optional[date] = None,
    rng: Optional[np.random.Generator] = None,
) -> List[TrajectoryPoint]:
    """
    Project the weekly, monthly, quarterly and yearly horizons over ``weeks``.

    Formulas, with S the monthly surplus and R the savings rate:
    - P_week = 0.9 * S
    - P_month = S * (1 + 0.1 * sin(0.1 t)) * (1 + 0.25 * behavior_delta)
    - P_quarter = 1.15 * P_month
    - P_year = P_quarter * (1 + 0.4 * R)
    Net worth accumulates P_year / 52 per week; each horizon is reported as
    that running total plus ``P_x * t / 52``.
    """
    rng = rng if rng is not None else default_rng()
    start = start if start is not None else date.today()

    surplus = monthly_income - monthly_expenses
    resilience = surplus / monthly_income if surplus > 0 and monthly_income > 0 else 0.0
    behavior_delta = compute_behavior_delta(patterns, monthly_income)

    projections = []
    cumulative_net_worth = 0.0

    for week in range(weeks + 1):
        p_week = surplus * 0.9
        smoothed_surplus = surplus * (1 + math.sin(week * 0.1) * 0.1)
        p_month = smoothed_surplus * (1 + behavior_delta * 0.25)
        p_quarter = p_month * 1.15
        p_year = p_quarter * (1 + resilience * 0.4)

        cumulative_net_worth += p_year / 52

        behavior_impact = sum(
            p.impact / 52 for p in patterns if is_pattern_active(p, week, rng)
        )

        projections.append(
            TrajectoryPoint(
                week=week,
                date=start + timedelta(weeks=week),
                p_week=cumulative_net_worth + p_week * week / 52,
                p_month=cumulative_net_worth + p_month * week / 52,
                p_quarter=cumulative_net_worth + p_quarter * week / 52,
                p_year=cumulative_net_worth + p_year * week / 52,
                behavior_impact=behavior_impact,
            )
        )

    return projections


def calculate_goal_achievement(goal_amount: float, projections: Sequence[TrajectoryPoint]) -> GoalAchievement:
    """First week the yearly (optimistic) and quarterly (realistic) horizons reach the goal"""
    optimistic = next((p.week for p in projections if p.p_year >= goal_amount), None)
    realistic = next((p.week for p in projections if p.p_quarter >= goal_amount), None)

    return GoalAchievement(
        optimistic_week=optimistic,
        realistic_week=realistic,
        behavior_change_impact=sum(p.behavior_impact for p in projections),
    )

"""Behavioral pattern detection over categorized transactions.

Per category (at least ``min_category_transactions`` records):
- entropy spike: coefficient of variation above 0.8
- weekend rebounder: dining-like category, CV above 1.2, weekend/weekday spend above 1.5
- midweek impulse: over 20% of records on Wed/Thu between 21:00 and 23:59

Profile level (only with a positive monthly surplus):
- back-half saver: day 1-25 average daily spend over 1.5x the day 26-31 average
- consistency champion: more than 4 consecutive weeks under 90% of the weekly budget
"""

from collections import Counter, defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from flowsight_core.config import settings
from flowsight_core.domain.models import DetectedPattern, PatternType, Transaction
from flowsight_core.domain.statistics import coefficient_of_variation, default_rng, round_half_up
from flowsight_core.utils.date_utils import DAY_NAMES, is_weekend, week_of_month_key

WEEKS_PER_MONTH = 4.33
WEEKEND_REBOUND_CV = 1.2
WEEKEND_REBOUND_RATIO = 1.5
IMPULSE_SHARE = 0.2
ENTROPY_SPIKE_CV = 0.8
BACK_HALF_MULTIPLIER = 1.5
STREAK_BUDGET_SHARE = 0.9
STREAK_MIN_WEEKS = 4


@dataclass(frozen=True)
class TimePattern:
    description: str
    peak_day: int  # 0 = Monday
    peak_hour: int


def group_by_category(transactions: Sequence[Transaction]) -> Dict[str, List[Transaction]]:
    """Group preserving first-seen category order"""
    groups: Dict[str, List[Transaction]] = defaultdict(list)
    for txn in transactions:
        groups[txn.category].append(txn)
    return dict(groups)


def calculate_entropy(amounts: Sequence[float]) -> float:
    """Coefficient of variation used as an unpredictability proxy"""
    return coefficient_of_variation(amounts)


def calculate_weekend_ratio(transactions: Sequence[Transaction]) -> float:
    """sum(weekend spend) / sum(weekday spend), 0 without weekday spend"""
    weekend_spend = sum(t.spend for t in transactions if is_weekend(t.date))
    weekday_spend = sum(t.spend for t in transactions if not is_weekend(t.date))
    return weekend_spend / weekday_spend if weekday_spend > 0 else 0.0


def detect_time_pattern(transactions: Sequence[Transaction]) -> TimePattern:
    day_counts = Counter(t.date.weekday() for t in transactions)
    hour_counts = Counter(t.hour for t in transactions)

    # Ties resolve to the earliest day / hour
    peak_day = max(range(7), key=lambda d: (day_counts[d], -d))
    peak_hour = max(range(24), key=lambda h: (hour_counts[h], -h))

    return TimePattern(
        description=f"{DAY_NAMES[peak_day]} {peak_hour:02d}:00-{peak_hour + 2:02d}:00",
        peak_day=peak_day,
        peak_hour=peak_hour,
    )


def impulse_window_share(transactions: Sequence[Transaction]) -> float:
    """Share of records on Wednesday/Thursday from 21:00 onwards"""
    if not transactions:
        return 0.0
    midweek_evening = sum(
        1 for t in transactions if t.date.weekday() in (2, 3) and 21 <= t.hour <= 23
    )
    return midweek_evening / len(transactions)


def end_of_month_multiplier(transactions: Sequence[Transaction]) -> float:
    """
    Average daily spend on days 1-25 divided by that on days 26-31.

    Averages run over distinct days of month that carry spend. A missing late
    window divides by 1; no early spend yields 1.
    """
    daily_spend: Dict[int, float] = defaultdict(float)
    for txn in transactions:
        daily_spend[txn.date.day] += txn.spend

    early = [amount for day, amount in daily_spend.items() if day <= 25]
    late = [amount for day, amount in daily_spend.items() if day > 25]

    early_avg = sum(early) / len(early) if early else 0.0
    late_avg = sum(late) / len(late) if late else 0.0

    return early_avg / (late_avg or 1) if early_avg > 0 else 1.0


def calculate_savings_streak(transactions: Sequence[Transaction], monthly_expenses: float) -> int:
    """Longest run of consecutive week buckets spending under 90% of the weekly budget"""
    weekly_budget = monthly_expenses / WEEKS_PER_MONTH

    weekly_spend: Dict[Tuple[int, int, int], float] = defaultdict(float)
    for txn in transactions:
        weekly_spend[week_of_month_key(txn.date)] += txn.spend

    streak = 0
    max_streak = 0
    for week in sorted(weekly_spend):
        if weekly_spend[week] < weekly_budget * STREAK_BUDGET_SHARE:
            streak += 1
            max_streak = max(max_streak, streak)
        else:
            streak = 0
    return max_streak


def detect_savings_pattern(
    transactions: Sequence[Transaction],
    monthly_income: float,
    monthly_expenses: float,
) -> Optional[DetectedPattern]:
    monthly_savings = monthly_income - monthly_expenses
    if monthly_savings <= 0:
        return None

    # Literal ratio: early spend over late spend (see DESIGN.md on its direction)
    multiplier = end_of_month_multiplier(transactions)
    if multiplier > BACK_HALF_MULTIPLIER:
        return DetectedPattern(
            type=PatternType.BACK_HALF_SAVER,
            category="Savings",
            impact=round_half_up(monthly_savings * 1.3),
            confidence=94,
            description=f"You save {multiplier:.1f}x more during the final 5 days of your pay cycle.",
            formula=f"end_month_multiplier = {multiplier:.1f}",
            action_suggestion="Auto-schedule transfers during high-surplus window?",
            time_pattern="Days 26-30 of month",
        )

    streak_weeks = calculate_savings_streak(transactions, monthly_expenses)
    if streak_weeks > STREAK_MIN_WEEKS:
        return DetectedPattern(
            type=PatternType.CONSISTENCY_CHAMPION,
            category="Savings",
            impact=round_half_up(monthly_savings + streak_weeks * 25),
            confidence=96,
            description=f"You've saved consistently for {streak_weeks} weeks. Longest streak detected.",
            formula=f"streak_multiplier = 1 + (weeks * 0.05) = {1 + streak_weeks * 0.05:.2f}",
            action_suggestion="Reward yourself with a small celebration!",
            streak_weeks=streak_weeks,
        )

    return None


def _category_patterns(
    category: str,
    transactions: Sequence[Transaction],
    rng: np.random.Generator,
) -> List[DetectedPattern]:
    patterns = []
    amounts = [t.spend for t in transactions]
    entropy = calculate_entropy(amounts)
    time_pattern = detect_time_pattern(transactions)
    total = sum(amounts)

    if entropy > WEEKEND_REBOUND_CV and "dining" in category.lower():
        weekend_ratio = calculate_weekend_ratio(transactions)
        if weekend_ratio > WEEKEND_REBOUND_RATIO:
            patterns.append(
                DetectedPattern(
                    type=PatternType.WEEKEND_REBOUNDER,
                    category=category,
                    impact=-round_half_up(total * 0.3),
                    confidence=round_half_up(85 + rng.random() * 10),
                    description=(
                        f"{round_half_up((weekend_ratio - 1) * 100)}% of weekday gains lost "
                        f"to weekend {category.lower()}."
                    ),
                    formula=f"weekend_ratio = sum(weekend_spend) / sum(weekday_spend) = {weekend_ratio:.2f}",
                    action_suggestion="Set weekend spending limits or find alternative activities.",
                    time_pattern=time_pattern.description,
                )
            )

    if impulse_window_share(transactions) > IMPULSE_SHARE:
        patterns.append(
            DetectedPattern(
                type=PatternType.MIDWEEK_IMPULSE,
                category=category,
                impact=-round_half_up(total * 0.15),
                confidence=round_half_up(80 + rng.random() * 15),
                description=f"Impulse spending peaks during {time_pattern.description}.",
                formula=f"time_cluster_variance = {entropy:.3f} (high entropy window)",
                action_suggestion="Consider app blocks or alerts during vulnerable hours.",
                time_pattern=time_pattern.description,
            )
        )

    if entropy > ENTROPY_SPIKE_CV:
        patterns.append(
            DetectedPattern(
                type=PatternType.ENTROPY_SPIKE,
                category=category,
                impact=-round_half_up(total * 0.2),
                confidence=min(100, round_half_up(75 + entropy * 20)),
                description=f"{category} spending entropy increased {round_half_up(entropy * 100)}% above baseline.",
                formula=f"CV = sigma/mu = {entropy:.3f} (high volatility)",
                action_suggestion="Review recent purchases and identify triggers.",
            )
        )

    return patterns


def detect_behavioral_patterns(
    transactions: Sequence[Transaction],
    monthly_income: float,
    monthly_expenses: float,
    rng: Optional[np.random.Generator] = None,
    min_transactions: int = settings.min_category_transactions,
) -> List[DetectedPattern]:
    """
    Main entry point: scan every category, then the household savings rhythm.

    Categories with fewer than ``min_transactions`` records are skipped
    silently (exactly ``min_transactions`` is enough).
    """
    rng = rng if rng is not None else default_rng()
    patterns: List[DetectedPattern] = []

    for category, category_txns in group_by_category(transactions).items():
        if len(category_txns) < min_transactions:
            continue
        patterns.extend(_category_patterns(category, category_txns, rng))

    savings_pattern = detect_savings_pattern(transactions, monthly_income, monthly_expenses)
    if savings_pattern is not None:
        patterns.append(savings_pattern)

    return patterns

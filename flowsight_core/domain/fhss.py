"""Financial Health Scorecard Score (FHSS) - six sub-scores, segment weights, bootstrap CI"""

import logging
import math
from dataclasses import asdict, dataclass, fields, replace
from typing import Dict, List, Mapping, Any, Optional, Tuple

import numpy as np

from flowsight_core.config import settings
from flowsight_core.domain.models import (
    FHSSResponse,
    FHSSSubScores,
    FinancialProfile,
    Segment,
    WhatIfResult,
)
from flowsight_core.domain.profile import ProfileInput, clamp, normalize_profile
from flowsight_core.domain.statistics import default_rng, ensure_finite

logger = logging.getLogger(__name__)

# Weight vectors over the six sub-scores; each sums to 1
SEGMENT_WEIGHTS: Dict[Segment, FHSSSubScores] = {
    Segment.EARLY_CAREER: FHSSSubScores(
        liquidity=0.25,
        debt=0.20,
        savings=0.15,
        income_stability=0.15,
        expense_predictability=0.15,
        growth=0.10,
    ),
    Segment.MID_CAREER: FHSSSubScores(
        liquidity=0.20,
        debt=0.25,
        savings=0.20,
        income_stability=0.10,
        expense_predictability=0.15,
        growth=0.10,
    ),
    Segment.PRE_RETIREMENT: FHSSSubScores(
        liquidity=0.15,
        debt=0.15,
        savings=0.30,
        income_stability=0.20,
        expense_predictability=0.10,
        growth=0.10,
    ),
    Segment.DEBT_RECOVERY: FHSSSubScores(
        liquidity=0.30,
        debt=0.40,
        savings=0.10,
        income_stability=0.15,
        expense_predictability=0.05,
        growth=0.00,
    ),
}

SCORE_FLOOR = 0.01  # keeps ln() finite in the geometric mean


# =============================================================================
# Sub-scores
# =============================================================================

def calculate_liquidity_score(liquid_savings: float, monthly_expenses: float, income_stability: float) -> float:
    """
    Emergency-fund months against a stability-adjusted target.

    target_months = max(3, 9 - income_stability); +0.1 bonus once the ratio
    strictly exceeds the target.
    """
    emergency_fund_ratio = liquid_savings / max(monthly_expenses, 1)
    target_months = max(3, 9 - income_stability)

    score = min(emergency_fund_ratio / target_months, 1.0)
    if emergency_fund_ratio > target_months:
        score = min(score + 0.1, 1.0)

    return clamp(score, 0.0, 1.0)


def _dti_band(dti: float) -> float:
    if dti > 0.43:
        return 0.0  # Critical
    elif dti > 0.36:
        return 0.3
    elif dti > 0.28:
        return 0.6
    elif dti > 0.20:
        return 0.8
    return 1.0


def _utilization_band(utilization: float) -> float:
    if utilization > 0.90:
        return 0.0
    elif utilization > 0.70:
        return 0.2
    elif utilization > 0.50:
        return 0.4
    elif utilization > 0.30:
        return 0.7
    elif utilization > 0.10:
        return 0.9
    return 1.0


def calculate_debt_score(monthly_debt_payments: float, monthly_income: float, credit_utilization: float) -> float:
    """DTI band weighted 0.7 blended with credit-utilization band weighted 0.3"""
    dti = monthly_debt_payments / (monthly_income or 1)
    return _dti_band(dti) * 0.7 + _utilization_band(credit_utilization) * 0.3


def calculate_savings_score(
    monthly_income: float,
    monthly_expenses: float,
    investment_accounts: float,
    retirement_accounts: float,
) -> float:
    savings_rate = (monthly_income - monthly_expenses) / (monthly_income or 1)

    if savings_rate < 0:
        rate_score = 0.0  # Spending more than earning
    elif savings_rate < 0.05:
        rate_score = 0.2
    elif savings_rate < 0.10:
        rate_score = 0.4
    elif savings_rate < 0.15:
        rate_score = 0.6
    elif savings_rate < 0.20:
        rate_score = 0.8
    else:
        rate_score = 1.0

    total_investments = investment_accounts + retirement_accounts
    investment_bonus = min(total_investments / ((monthly_income * 12) or 1), 0.2)

    return clamp(rate_score + investment_bonus, 0.0, 1.0)


def calculate_income_stability_score(income_stability: float, income_source_count: int) -> float:
    diversification_bonus = min((income_source_count - 1) * 0.1, 0.2)
    return clamp(income_stability / 10 + diversification_bonus, 0.0, 1.0)


def calculate_expense_predictability_score(
    essential_expenses: float,
    discretionary_expenses: float,
    monthly_income: float,
) -> float:
    """Essential share of spending, penalized when expenses eat most of the income"""
    total_expenses = essential_expenses + discretionary_expenses
    if total_expenses <= 0:
        return 0.0

    predictability = essential_expenses / total_expenses
    expense_to_income = total_expenses / (monthly_income or 1)

    if expense_to_income > 0.80:
        predictability *= 0.7
    elif expense_to_income > 0.60:
        predictability *= 0.9

    return clamp(predictability, 0.0, 1.0)


def _growth_target_multiplier(age: int) -> float:
    if age < 30:
        return 0.5
    elif age < 40:
        return 2.0
    elif age < 50:
        return 4.0
    elif age < 60:
        return 8.0
    return 10.0


def calculate_growth_score(
    age: int,
    investment_accounts: float,
    retirement_accounts: float,
    monthly_income: float,
) -> float:
    """Invested assets against an age-banded multiple of annual income"""
    target = monthly_income * 12 * _growth_target_multiplier(age)
    total_investments = investment_accounts + retirement_accounts
    return clamp(total_investments / (target or 1), 0.0, 1.0)


def calculate_sub_scores(profile: FinancialProfile) -> FHSSSubScores:
    return FHSSSubScores(
        liquidity=calculate_liquidity_score(
            profile.liquid_savings, profile.monthly_expenses, profile.income_stability
        ),
        debt=calculate_debt_score(
            profile.monthly_debt_payments, profile.monthly_income, profile.credit_utilization
        ),
        savings=calculate_savings_score(
            profile.monthly_income,
            profile.monthly_expenses,
            profile.investment_accounts,
            profile.retirement_accounts,
        ),
        income_stability=calculate_income_stability_score(
            profile.income_stability, profile.income_source_count
        ),
        expense_predictability=calculate_expense_predictability_score(
            profile.essential_expenses, profile.discretionary_expenses, profile.monthly_income
        ),
        growth=calculate_growth_score(
            profile.age, profile.investment_accounts, profile.retirement_accounts, profile.monthly_income
        ),
    )


# =============================================================================
# Segmentation and aggregation
# =============================================================================

def determine_segment(profile: FinancialProfile) -> Segment:
    """Pure function of age, DTI, total debt and income"""
    if profile.debt_to_income > 0.50 or profile.total_debt > profile.monthly_income * 24:
        return Segment.DEBT_RECOVERY
    elif profile.age < 35:
        return Segment.EARLY_CAREER
    elif profile.age < 55:
        return Segment.MID_CAREER
    return Segment.PRE_RETIREMENT


def resolve_segment(profile: FinancialProfile) -> Tuple[str, FHSSSubScores]:
    """Explicit profile segment wins; unknown names score with MidCareer weights"""
    if profile.segment:
        try:
            segment = Segment(profile.segment)
        except ValueError:
            return profile.segment, SEGMENT_WEIGHTS[Segment.MID_CAREER]
        return segment.value, SEGMENT_WEIGHTS[segment]

    segment = determine_segment(profile)
    return segment.value, SEGMENT_WEIGHTS[segment]


def weighted_geometric_mean(scores: FHSSSubScores, weights: FHSSSubScores) -> float:
    """exp(sum(w_i * ln(max(s_i, 0.01))) / sum(w_i))"""
    score_values = np.maximum(np.array(list(scores.as_dict().values())), SCORE_FLOOR)
    weight_values = np.array(list(weights.as_dict().values()))
    total_weight = weight_values.sum()
    if total_weight <= 0:
        return 0.0
    return float(np.exp(np.dot(weight_values, np.log(score_values)) / total_weight))


def _score(profile: FinancialProfile) -> Tuple[float, FHSSSubScores, str]:
    sub_scores = calculate_sub_scores(profile)
    segment, weights = resolve_segment(profile)
    fhss = ensure_finite(weighted_geometric_mean(sub_scores, weights), "FHSS")
    return clamp(fhss, 0.0, 1.0), sub_scores, segment


# =============================================================================
# Bootstrap confidence interval
# =============================================================================

@dataclass(frozen=True)
class ConfidenceInterval:
    confidence: float
    range: Tuple[float, float]


def calculate_bootstrap_ci(
    profile: FinancialProfile,
    iterations: int = settings.bootstrap_iterations,
    rng: Optional[np.random.Generator] = None,
) -> ConfidenceInterval:
    """
    Resample the profile with measurement noise and rescore it.

    Income and expenses move by +/-10%, savings by +/-20%, utilization by
    +/-0.1 (clamped). Each resample is scored without its own bootstrap.
    """
    if iterations <= 0:
        fhss = _score(profile)[0]
        return ConfidenceInterval(confidence=1.0, range=(fhss, fhss))

    rng = rng if rng is not None else default_rng()
    income_noise = 0.9 + rng.random(iterations) * 0.2
    expense_noise = 0.9 + rng.random(iterations) * 0.2
    savings_noise = 0.8 + rng.random(iterations) * 0.4
    utilization_noise = (rng.random(iterations) - 0.5) * 0.2

    scores = np.empty(iterations)
    for i in range(iterations):
        noisy_profile = replace(
            profile,
            monthly_income=profile.monthly_income * income_noise[i],
            monthly_expenses=profile.monthly_expenses * expense_noise[i],
            liquid_savings=profile.liquid_savings * savings_noise[i],
            credit_utilization=clamp(profile.credit_utilization + utilization_noise[i], 0.0, 1.0),
        )
        scores[i] = _score(noisy_profile)[0]

    scores.sort()
    lower = float(scores[math.floor(iterations * 0.025)])
    upper = float(scores[min(math.floor(iterations * 0.975), iterations - 1)])
    confidence = 1 - math.sqrt(float(np.var(scores)))

    return ConfidenceInterval(confidence=clamp(confidence, 0.5, 1.0), range=(lower, upper))


# =============================================================================
# Advice
# =============================================================================

def generate_recommendations(sub_scores: FHSSSubScores, profile: FinancialProfile) -> List[str]:
    recommendations = []

    if sub_scores.liquidity < 0.4:
        recommendations.append("Build emergency fund: Aim for 3-6 months of expenses in liquid savings")

    if sub_scores.debt < 0.5:
        if profile.debt_to_income > 0.36:
            recommendations.append("Reduce debt burden: Consider debt consolidation or payment acceleration")
        if profile.credit_utilization > 0.30:
            recommendations.append("Lower credit utilization: Pay down credit card balances below 30%")

    if sub_scores.savings < 0.5:
        savings_rate = profile.monthly_surplus / (profile.monthly_income or 1)
        if savings_rate < 0.10:
            recommendations.append("Increase savings rate: Target saving at least 10-15% of income")

    if sub_scores.growth < 0.4 and profile.age < 55:
        recommendations.append("Boost retirement savings: Maximize employer 401(k) match and consider IRA")

    return recommendations


def identify_critical_issues(sub_scores: FHSSSubScores, profile: FinancialProfile) -> List[str]:
    issues = []

    if profile.monthly_income < profile.monthly_expenses:
        issues.append("CRITICAL: Monthly expenses exceed income")

    if sub_scores.liquidity < 0.2:
        issues.append("CRITICAL: Insufficient emergency fund - financial shock vulnerability")

    if profile.debt_to_income > 0.50:
        issues.append("CRITICAL: Debt payments consume over 50% of income")

    if profile.credit_utilization > 0.90:
        issues.append("CRITICAL: Credit utilization near maximum - credit score at risk")

    return issues


# =============================================================================
# Entry points
# =============================================================================

def compute_fhss(
    profile: ProfileInput,
    rng: Optional[np.random.Generator] = None,
    iterations: int = settings.bootstrap_iterations,
) -> FHSSResponse:
    """
    Main entry point: normalize the profile, score it and attach a bootstrap CI.

    Deterministic for a seeded ``rng``.
    """
    complete_profile = normalize_profile(profile)
    fhss, sub_scores, segment = _score(complete_profile)
    ci = calculate_bootstrap_ci(complete_profile, iterations=iterations, rng=rng)

    return FHSSResponse(
        fhss=fhss,
        sub_scores=sub_scores,
        confidence=ci.confidence,
        ci95=ci.range,
        segment=segment,
        recommendations=generate_recommendations(sub_scores, complete_profile),
        critical_issues=identify_critical_issues(sub_scores, complete_profile),
    )


def compute_what_if(
    base_profile: ProfileInput,
    changes: Mapping[str, Any],
    rng: Optional[np.random.Generator] = None,
) -> WhatIfResult:
    """Score the profile before and after applying ``changes`` (snake_case field names)"""
    base = normalize_profile(base_profile)
    known = {f.name for f in fields(FinancialProfile)}
    unknown = sorted(set(changes) - known)
    if unknown:
        logger.debug("Ignoring unknown what-if fields", extra={"fields": unknown})
    modified_profile = normalize_profile({**asdict(base), **changes})

    original = compute_fhss(base, rng=rng)
    modified = compute_fhss(modified_profile, rng=rng)
    return WhatIfResult(original=original, modified=modified, impact=modified.fhss - original.fhss)

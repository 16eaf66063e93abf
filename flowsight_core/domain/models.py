"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date, time
from enum import Enum
from typing import Dict, List, Optional, Tuple

from flowsight_core.domain.exceptions import ValidationError


class Segment(str, Enum):
    """Household life-stage segment driving FHSS weights"""

    EARLY_CAREER = "EarlyCareer"
    MID_CAREER = "MidCareer"
    PRE_RETIREMENT = "PreRetirement"
    DEBT_RECOVERY = "DebtRecovery"


class PatternType(str, Enum):
    """Behavioral finding emitted by the pattern detector"""

    BACK_HALF_SAVER = "back_half_saver"
    WEEKEND_REBOUNDER = "weekend_rebounder"
    MIDWEEK_IMPULSE = "midweek_impulse"
    CONSISTENCY_CHAMPION = "consistency_champion"
    ENTROPY_SPIKE = "entropy_spike"


@dataclass(frozen=True)
class Transaction:
    """Categorized ledger event supplied by the ingestion layer"""

    transaction_id: str
    amount: float
    date: date
    time_of_day: Optional[time] = None
    category: str = "Other"
    merchant: str = ""

    def __post_init__(self):
        if self.amount is None:
            raise ValidationError(f"Transaction {self.transaction_id!r} has no amount")
        if self.date is None:
            raise ValidationError(f"Transaction {self.transaction_id!r} has no date")
        if not self.category:
            object.__setattr__(self, "category", "Other")

    @property
    def spend(self) -> float:
        """Unsigned amount; ledgers disagree on the sign of debits"""
        return abs(self.amount)

    @property
    def hour(self) -> int:
        return self.time_of_day.hour if self.time_of_day is not None else 12


@dataclass(frozen=True)
class FinancialProfile:
    """Fully-populated household snapshot (see profile.normalize_profile)"""

    # Income
    monthly_income: float = 0.0
    income_stability: float = 5.0  # 1-10 scale
    income_source_count: int = 1

    # Expenses
    monthly_expenses: float = 0.0
    essential_expenses: float = 0.0
    discretionary_expenses: float = 0.0

    # Debt
    total_debt: float = 0.0
    monthly_debt_payments: float = 0.0
    credit_utilization: float = 0.0  # 0-1 scale
    credit_score: Optional[int] = None

    # Assets
    liquid_savings: float = 0.0
    investment_accounts: float = 0.0
    retirement_accounts: float = 0.0

    # Demographics
    age: int = 30
    location: str = "US"
    dependents: int = 0
    segment: Optional[str] = None

    @property
    def monthly_surplus(self) -> float:
        return self.monthly_income - self.monthly_expenses

    @property
    def total_investments(self) -> float:
        return self.investment_accounts + self.retirement_accounts

    @property
    def debt_to_income(self) -> float:
        """DTI with the income floored at 1"""
        return self.monthly_debt_payments / (self.monthly_income or 1)


@dataclass(frozen=True)
class FHSSSubScores:
    """Six normalized dimension scores, each in [0, 1]"""

    liquidity: float
    debt: float
    savings: float
    income_stability: float
    expense_predictability: float
    growth: float

    def as_dict(self) -> Dict[str, float]:
        return {
            "liquidity": self.liquidity,
            "debt": self.debt,
            "savings": self.savings,
            "income_stability": self.income_stability,
            "expense_predictability": self.expense_predictability,
            "growth": self.growth,
        }


@dataclass(frozen=True)
class FHSSResponse:
    """Output of a financial health scoring run"""

    fhss: float
    sub_scores: FHSSSubScores
    confidence: float
    ci95: Tuple[float, float]
    segment: str
    recommendations: List[str]
    critical_issues: List[str]


@dataclass(frozen=True)
class WhatIfResult:
    original: FHSSResponse
    modified: FHSSResponse
    impact: float


@dataclass(frozen=True)
class DetectedPattern:
    """One behavioral finding with its signed monthly dollar impact"""

    type: PatternType
    category: str
    impact: float
    confidence: float  # 0-100
    description: str
    formula: str
    action_suggestion: str
    time_pattern: Optional[str] = None
    streak_weeks: Optional[int] = None


@dataclass(frozen=True)
class TrajectoryPoint:
    """One weekly sample of the four-horizon net-worth projection"""

    week: int
    date: date
    p_week: float
    p_month: float
    p_quarter: float
    p_year: float
    behavior_impact: float


@dataclass(frozen=True)
class GoalAchievement:
    optimistic_week: Optional[int]
    realistic_week: Optional[int]
    behavior_change_impact: float


@dataclass(frozen=True)
class CashFlowProjection:
    """One monthly cash-flow projection"""

    date: date
    income: int
    expenses: int
    net_cash_flow: int
    cumulative_cash_flow: int
    projected_balance: int
    confidence: int  # 0-100


@dataclass(frozen=True)
class RiskAssessment:
    """Four-factor household risk snapshot (0 = safe, 100 = critical)"""

    overall_risk: int
    liquidity_risk: int
    concentration_risk: int
    volatility_risk: int
    credit_risk: int
    recommendations: List[str]
    time_horizon: str


@dataclass(frozen=True)
class RiskFactor:
    name: str
    score: float
    weight: float
    description: str


@dataclass(frozen=True)
class FactorRiskAssessment:
    """Five-factor risk model from the analytics engine"""

    overall: float
    factors: List[RiskFactor]
    recommendations: List[str]
    timeline: str  # immediate | short_term | long_term


@dataclass(frozen=True)
class StressScenario:
    """Canned shock applied to income and expenses for a duration in months"""

    name: str
    duration_months: int
    income_reduction: float = 0.0
    expense_increase: float = 0.0
    asset_reduction: float = 0.0


@dataclass(frozen=True)
class StressTestResult:
    scenario: str
    impact_percent: int
    months_to_recover: Optional[int]
    recommended_actions: List[str]
    success_probability: int  # 5-95


@dataclass(frozen=True)
class SpendingCategoryAnalysis:
    category: str
    average_monthly: float
    trend: str  # increasing | decreasing | stable
    volatility: float
    seasonality: float
    predicted_next_30_days: float
    anomaly_score: float


@dataclass(frozen=True)
class Goal:
    """Savings goal supplied by the caller"""

    goal_id: str
    target_amount: float
    current_amount: float = 0.0
    target_date: Optional[date] = None


@dataclass(frozen=True)
class GoalAnalysis:
    goal_id: str
    target_amount: float
    current_amount: float
    required_monthly_savings: int
    projected_completion_date: date
    probability: int
    alternative_strategies: List[str]


@dataclass(frozen=True)
class SpendingPattern:
    """Per-category statistical summary used by the analytics engine"""

    category: str
    amount: float
    frequency: float  # occurrences per 30 days
    day_of_week: int  # 0 = Monday
    day_of_month: int
    seasonality: float
    confidence: float


@dataclass(frozen=True)
class AnomalyDetection:
    type: str  # amount | frequency | timing
    score: float  # 0-1 for amount/timing; relative deviation for frequency
    description: str
    severity: str  # low | medium | high | critical
    recommendation: str
    category: str = "Other"
    transaction_id: Optional[str] = None


@dataclass(frozen=True)
class PredictionModel:
    type: str
    accuracy: float
    confidence: float
    features: Tuple[str, ...]


@dataclass(frozen=True)
class PredictionFactor:
    name: str
    impact: float


@dataclass(frozen=True)
class SpendingPrediction:
    category: str
    predicted_amount: float
    confidence: float
    timeframe: str  # week | month | quarter
    model: PredictionModel
    factors: List[PredictionFactor]


@dataclass(frozen=True)
class BehavioralInsight:
    pattern: str
    description: str
    impact: str  # positive | negative | neutral
    confidence: float
    recommendation: str
    potential_savings: Optional[float] = None


@dataclass(frozen=True)
class FanChart:
    """Per-month percentile bands of simulated net worth"""

    p10: List[float]
    p50: List[float]
    p90: List[float]


@dataclass(frozen=True)
class ComprehensiveReport:
    fhss: FHSSResponse
    cash_flow_projections: List[CashFlowProjection]
    risk_assessment: RiskAssessment
    stress_tests: List[StressTestResult]
    spending_analysis: List[SpendingCategoryAnalysis]
    recommendations: List[str] = field(default_factory=list)

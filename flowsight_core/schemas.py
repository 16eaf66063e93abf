"""Pydantic schemas for the presentation boundary"""

from dataclasses import asdict
from datetime import date, time
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from flowsight_core.domain.models import (
    CashFlowProjection,
    ComprehensiveReport,
    DetectedPattern,
    FHSSResponse,
    FHSSSubScores,
    PatternType,
    RiskAssessment,
    SpendingCategoryAnalysis,
    StressTestResult,
    Transaction,
    TrajectoryPoint,
)


class DomainSchema(BaseModel):
    """Schemas built straight from domain dataclasses"""

    model_config = ConfigDict(from_attributes=True)


class TransactionSchema(BaseModel):
    """Inbound categorized transaction"""

    transaction_id: str = Field(..., min_length=1)
    amount: float
    date: date
    time_of_day: Optional[time] = None
    category: str = "Other"
    merchant: str = ""

    def to_domain(self) -> Transaction:
        return Transaction(**self.model_dump())


class SubScoresSchema(DomainSchema):
    liquidity: float = Field(..., ge=0, le=1)
    debt: float = Field(..., ge=0, le=1)
    savings: float = Field(..., ge=0, le=1)
    income_stability: float = Field(..., ge=0, le=1)
    expense_predictability: float = Field(..., ge=0, le=1)
    growth: float = Field(..., ge=0, le=1)

    def to_domain(self) -> FHSSSubScores:
        return FHSSSubScores(**self.model_dump())


class FHSSResponseSchema(DomainSchema):
    """Financial health score with its bootstrap interval"""

    fhss: float
    sub_scores: SubScoresSchema
    confidence: float
    ci95: Tuple[float, float]
    segment: str
    recommendations: List[str]
    critical_issues: List[str]

    @classmethod
    def from_domain(cls, response: FHSSResponse) -> "FHSSResponseSchema":
        return cls.model_validate(response)

    def to_domain(self) -> FHSSResponse:
        return FHSSResponse(
            fhss=self.fhss,
            sub_scores=self.sub_scores.to_domain(),
            confidence=self.confidence,
            ci95=self.ci95,
            segment=self.segment,
            recommendations=list(self.recommendations),
            critical_issues=list(self.critical_issues),
        )


class DetectedPatternSchema(DomainSchema):
    type: PatternType
    category: str
    impact: float
    confidence: float = Field(..., ge=0, le=100)
    description: str
    formula: str
    action_suggestion: str
    time_pattern: Optional[str] = None
    streak_weeks: Optional[int] = None

    @classmethod
    def from_domain(cls, pattern: DetectedPattern) -> "DetectedPatternSchema":
        return cls.model_validate(pattern)

    def to_domain(self) -> DetectedPattern:
        return DetectedPattern(**self.model_dump())


class TrajectoryPointSchema(DomainSchema):
    week: int
    date: date
    p_week: float
    p_month: float
    p_quarter: float
    p_year: float
    behavior_impact: float

    def to_domain(self) -> TrajectoryPoint:
        return TrajectoryPoint(**self.model_dump())


class CashFlowProjectionSchema(DomainSchema):
    date: date
    income: int
    expenses: int
    net_cash_flow: int
    cumulative_cash_flow: int
    projected_balance: int
    confidence: int

    def to_domain(self) -> CashFlowProjection:
        return CashFlowProjection(**self.model_dump())


class RiskAssessmentSchema(DomainSchema):
    overall_risk: int = Field(..., ge=0, le=100)
    liquidity_risk: int
    concentration_risk: int
    volatility_risk: int
    credit_risk: int
    recommendations: List[str]
    time_horizon: str

    def to_domain(self) -> RiskAssessment:
        return RiskAssessment(**self.model_dump())


class StressTestResultSchema(DomainSchema):
    scenario: str
    impact_percent: int
    months_to_recover: Optional[int] = None
    recommended_actions: List[str]
    success_probability: int = Field(..., ge=5, le=95)

    def to_domain(self) -> StressTestResult:
        return StressTestResult(**self.model_dump())


class SpendingCategoryAnalysisSchema(DomainSchema):
    category: str
    average_monthly: float
    trend: str
    volatility: float
    seasonality: float
    predicted_next_30_days: float
    anomaly_score: float

    def to_domain(self) -> SpendingCategoryAnalysis:
        return SpendingCategoryAnalysis(**self.model_dump())


class ComprehensiveReportSchema(DomainSchema):
    """Response body for a full household report"""

    fhss: FHSSResponseSchema
    cash_flow_projections: List[CashFlowProjectionSchema]
    risk_assessment: RiskAssessmentSchema
    stress_tests: List[StressTestResultSchema]
    spending_analysis: List[SpendingCategoryAnalysisSchema]
    recommendations: List[str]

    @classmethod
    def from_domain(cls, report: ComprehensiveReport) -> "ComprehensiveReportSchema":
        return cls.model_validate(asdict(report))

    def to_domain(self) -> ComprehensiveReport:
        return ComprehensiveReport(
            fhss=self.fhss.to_domain(),
            cash_flow_projections=[p.to_domain() for p in self.cash_flow_projections],
            risk_assessment=self.risk_assessment.to_domain(),
            stress_tests=[s.to_domain() for s in self.stress_tests],
            spending_analysis=[a.to_domain() for a in self.spending_analysis],
            recommendations=list(self.recommendations),
        )

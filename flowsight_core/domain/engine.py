"""FinancialEngine - one household snapshot, every analysis"""

import time
from datetime import date
from typing import Any, List, Mapping, Optional, Sequence

import numpy as np

from flowsight_core.config import settings
from flowsight_core.domain import fhss, patterns, risk, statistics, trajectory
from flowsight_core.domain.anomalies import RiskAnalyticsEngine
from flowsight_core.domain.exceptions import InsufficientDataError
from flowsight_core.domain.models import (
    AnomalyDetection,
    BehavioralInsight,
    CashFlowProjection,
    ComprehensiveReport,
    DetectedPattern,
    FactorRiskAssessment,
    FanChart,
    FHSSResponse,
    Goal,
    GoalAchievement,
    GoalAnalysis,
    RiskAssessment,
    SpendingCategoryAnalysis,
    SpendingPrediction,
    StressScenario,
    StressTestResult,
    Transaction,
    TrajectoryPoint,
    WhatIfResult,
)
from flowsight_core.domain.profile import ProfileInput, normalize_profile
from flowsight_core.infrastructure.observability.logging import log_computation
from flowsight_core.infrastructure.observability.metrics import (
    computation_duration_histogram,
    record_anomalies,
    record_fhss,
    record_patterns,
    record_stress_tests,
)
from flowsight_core.utils.date_utils import month_key


class FinancialEngine:
    """
    Facade over the scoring, pattern, trajectory and risk modules.

    Bound to a single transaction snapshot and profile. The profile is
    normalized once and the FHSS is cached after the first computation.
    Stochastic methods draw from ``rng`` so a seeded generator makes the whole
    engine deterministic; ``as_of`` anchors date-relative analyses.
    """

    def __init__(
        self,
        transactions: Sequence[Transaction],
        profile: ProfileInput,
        rng: Optional[np.random.Generator] = None,
        as_of: Optional[date] = None,
    ):
        self.transactions = list(transactions)
        self.profile = normalize_profile(profile)
        self.rng = rng if rng is not None else statistics.default_rng()
        self.as_of = as_of if as_of is not None else date.today()
        self.analytics = RiskAnalyticsEngine(as_of=self.as_of)
        self._fhss: Optional[FHSSResponse] = None

    def _finish(self, operation: str, start_time: float, **fields: Any) -> None:
        elapsed = time.time() - start_time
        computation_duration_histogram.labels(operation=operation).observe(elapsed)
        log_computation(operation, elapsed * 1000, **fields)

    def require_transactions(self, minimum: int = 1) -> None:
        """
        Raises:
            InsufficientDataError: If fewer than ``minimum`` transactions are loaded
        """
        if len(self.transactions) < minimum:
            raise InsufficientDataError(
                f"At least {minimum} transactions required, got {len(self.transactions)}"
            )

    # =========================================================================
    # Scoring
    # =========================================================================

    def compute_fhss(self) -> FHSSResponse:
        if self._fhss is None:
            start_time = time.time()
            self._fhss = fhss.compute_fhss(self.profile, rng=self.rng)
            record_fhss(self._fhss.segment, self._fhss.fhss)
            self._finish("compute_fhss", start_time, segment=self._fhss.segment, fhss=self._fhss.fhss)
        return self._fhss

    def compute_what_if(self, changes: Mapping[str, Any]) -> WhatIfResult:
        return fhss.compute_what_if(self.profile, changes, rng=self.rng)

    # =========================================================================
    # Behavior and trajectory
    # =========================================================================

    def detect_behavioral_patterns(self) -> List[DetectedPattern]:
        start_time = time.time()
        detected = patterns.detect_behavioral_patterns(
            self.transactions,
            self.profile.monthly_income,
            self.profile.monthly_expenses,
            rng=self.rng,
        )
        record_patterns(p.type.value for p in detected)
        self._finish("detect_behavioral_patterns", start_time, pattern_count=len(detected))
        return detected

    def generate_trajectory_projections(self, weeks: int = settings.default_forecast_weeks) -> List[TrajectoryPoint]:
        return trajectory.generate_trajectory_projections(
            self.profile.monthly_income,
            self.profile.monthly_expenses,
            self.detect_behavioral_patterns(),
            weeks=weeks,
            start=self.as_of,
            rng=self.rng,
        )

    def calculate_goal_achievement(
        self,
        goal_amount: float,
        projections: Optional[Sequence[TrajectoryPoint]] = None,
    ) -> GoalAchievement:
        if projections is None:
            projections = self.generate_trajectory_projections()
        return trajectory.calculate_goal_achievement(goal_amount, projections)

    # =========================================================================
    # Cash flow, risk and stress
    # =========================================================================

    def generate_cash_flow_projections(self, months: int = settings.default_projection_months) -> List[CashFlowProjection]:
        return risk.generate_cash_flow_projections(
            self.profile,
            self.transactions,
            self.detect_behavioral_patterns(),
            months=months,
            rng=self.rng,
            start=self.as_of,
        )

    def assess_financial_risk(self) -> RiskAssessment:
        start_time = time.time()
        assessment = risk.assess_financial_risk(self.profile, self.transactions)
        self._finish("assess_financial_risk", start_time, overall_risk=assessment.overall_risk)
        return assessment

    def assess_factor_risk(self) -> FactorRiskAssessment:
        return self.analytics.assess_financial_risk(self.profile, self.transactions)

    def run_stress_tests(self, scenarios: Sequence[StressScenario] = risk.STRESS_SCENARIOS) -> List[StressTestResult]:
        start_time = time.time()
        results = risk.run_stress_tests(self.profile, scenarios)
        record_stress_tests(r.scenario for r in results)
        self._finish("run_stress_tests", start_time, scenario_count=len(results))
        return results

    def analyze_spending_categories(self) -> List[SpendingCategoryAnalysis]:
        return risk.analyze_spending_categories(self.transactions, as_of=self.as_of)

    def analyze_goals(self, goals: Sequence[Goal]) -> List[GoalAnalysis]:
        return risk.analyze_goals(self.profile, goals, as_of=self.as_of)

    # =========================================================================
    # Anomalies and predictions
    # =========================================================================

    def detect_anomalies(self) -> List[AnomalyDetection]:
        start_time = time.time()
        anomalies = self.analytics.detect_anomalies(self.transactions)
        record_anomalies(a.severity for a in anomalies)
        self._finish("detect_anomalies", start_time, anomaly_count=len(anomalies))
        return anomalies

    def predict_spending(self, timeframe: str = "month") -> List[SpendingPrediction]:
        return self.analytics.predict_spending(self.transactions, timeframe)

    def analyze_behavioral_insights(self) -> List[BehavioralInsight]:
        return self.analytics.analyze_behavioral_patterns(self.transactions)

    # =========================================================================
    # Advanced forecasting models
    # =========================================================================

    def monte_carlo_net_worth_forecast(
        self,
        initial_net_worth: float,
        expected_return: float,
        volatility: float,
        years: int,
        num_simulations: int = settings.monte_carlo_simulations,
    ) -> np.ndarray:
        return statistics.monte_carlo_forecast(
            initial_net_worth, expected_return, volatility, years, n_sims=num_simulations, rng=self.rng
        )

    def net_worth_fan_chart(
        self,
        months: int = 120,
        expected_return: float = 0.07,
        volatility: float = 0.15,
        simulations: int = 5000,
    ) -> FanChart:
        """Fan chart starting from current net worth, contributing the monthly surplus"""
        net_worth = self.profile.liquid_savings + self.profile.total_investments - self.profile.total_debt
        return statistics.monte_carlo_fan(
            net_worth,
            max(0.0, self.profile.monthly_surplus),
            expected_return,
            volatility,
            months,
            simulations=simulations,
            rng=self.rng,
        )

    def bsts_spending_forecast(self, history: Optional[Sequence[float]] = None, steps: int = 12) -> List[float]:
        """Forecast ``history``, or this household's calendar-month spend totals when omitted"""
        if history is None:
            self.require_transactions()
            history = self._monthly_totals()
        return statistics.bsts_forecast(history, steps, rng=self.rng)

    def cluster_spending_patterns(
        self,
        data: Optional[Sequence[Sequence[float]]] = None,
        k: int = 3,
    ) -> statistics.KMeansResult:
        """Cluster ``data``, or (amount, weekday, hour) rows of the loaded transactions"""
        if data is None:
            self.require_transactions()
            data = [[t.spend, t.date.weekday(), t.hour] for t in self.transactions]
        return statistics.kmeans(data, k)

    def fit_elastic_net_spending_model(
        self,
        features: Optional[Sequence[Sequence[float]]] = None,
        targets: Optional[Sequence[float]] = None,
        alpha: float = 1.0,
        l1_ratio: float = 0.5,
        iterations: int = 1000,
        learning_rate: float = 0.01,
    ) -> statistics.ElasticNetResult:
        """
        Fit on ``features``/``targets``, or regress spend on (weekend, day/31, hour/24)
        of the loaded transactions when both are omitted.
        """
        if features is None and targets is None:
            self.require_transactions()
            features = [
                [1.0 if t.date.weekday() >= 5 else 0.0, t.date.day / 31, t.hour / 24]
                for t in self.transactions
            ]
            targets = [t.spend for t in self.transactions]
        return statistics.elastic_net(
            features if features is not None else [],
            targets if targets is not None else [],
            alpha,
            l1_ratio,
            iterations,
            learning_rate,
        )

    def _monthly_totals(self) -> List[float]:
        totals = {}
        for txn in self.transactions:
            key = month_key(txn.date)
            totals[key] = totals.get(key, 0.0) + txn.spend
        return [totals[key] for key in sorted(totals)]

    # =========================================================================
    # Report
    # =========================================================================

    def generate_comprehensive_report(self) -> ComprehensiveReport:
        """FHSS, 12-month cash flow, risk, stress tests and category analysis in one pass"""
        start_time = time.time()
        score = self.compute_fhss()
        risk_assessment = self.assess_financial_risk()

        report = ComprehensiveReport(
            fhss=score,
            cash_flow_projections=self.generate_cash_flow_projections(settings.default_projection_months),
            risk_assessment=risk_assessment,
            stress_tests=self.run_stress_tests(),
            spending_analysis=self.analyze_spending_categories(),
            recommendations=score.recommendations + risk_assessment.recommendations,
        )
        self._finish("generate_comprehensive_report", start_time, fhss=score.fhss)
        return report

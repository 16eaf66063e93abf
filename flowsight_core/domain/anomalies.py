"""Analytics engine - anomaly detection, ensemble spending prediction, behavioral insights, five-factor risk"""

from collections import Counter, defaultdict
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence

import numpy as np

from flowsight_core.config import settings
from flowsight_core.domain.exceptions import ValidationError
from flowsight_core.domain.models import (
    AnomalyDetection,
    BehavioralInsight,
    FactorRiskAssessment,
    FinancialProfile,
    PredictionFactor,
    PredictionModel,
    RiskFactor,
    SpendingPattern,
    SpendingPrediction,
    Transaction,
)
from flowsight_core.domain.patterns import group_by_category
from flowsight_core.domain.statistics import coefficient_of_variation, mean, population_std, z_score
from flowsight_core.utils.date_utils import DAY_NAMES, is_weekend, month_key

TIMEFRAME_DAYS = {"week": 7, "month": 30, "quarter": 90}

# Ensemble weights: linear regression, seasonal projection, recent trend
ENSEMBLE_WEIGHTS = (0.4, 0.4, 0.2)

AMOUNT_Z_THRESHOLD = 2.5
AMOUNT_Z_CRITICAL = 3.0
FREQUENCY_DEVIATION = 0.5
RECENT_WINDOW_DAYS = 30

DISCRETIONARY_CATEGORIES = ("entertainment", "dining", "shopping", "retail")


class RiskAnalyticsEngine:
    """
    Statistical analytics over a transaction history.

    Constructed explicitly by the caller and passed where needed; it owns the
    registry of prediction-model descriptors reported with each prediction.
    ``as_of`` anchors the rolling frequency window (defaults to today).
    """

    def __init__(self, as_of: Optional[date] = None, min_transactions: int = settings.min_anomaly_transactions):
        self.as_of = as_of if as_of is not None else date.today()
        self.min_transactions = min_transactions
        features = ("amount", "category", "day_of_week", "day_of_month")
        self.models: Dict[str, PredictionModel] = {
            "spending_prediction": PredictionModel(type="linear", accuracy=0.75, confidence=0.8, features=features),
            "anomaly_detection": PredictionModel(type="polynomial", accuracy=0.75, confidence=0.8, features=features),
            "risk_assessment": PredictionModel(type="exponential", accuracy=0.75, confidence=0.8, features=features),
        }

    # =========================================================================
    # Spending patterns
    # =========================================================================

    def analyze_spending_patterns(self, transactions: Sequence[Transaction]) -> List[SpendingPattern]:
        """Per-category statistical profile, most confident first"""
        patterns = []
        for category, category_txns in group_by_category(transactions).items():
            ordered = sorted(category_txns, key=lambda t: t.date)
            amounts = [t.spend for t in ordered]
            dates = [t.date for t in ordered]

            patterns.append(
                SpendingPattern(
                    category=category,
                    amount=mean(amounts),
                    frequency=self._monthly_frequency(dates),
                    day_of_week=self._peak(Counter(d.weekday() for d in dates), range(7)),
                    day_of_month=self._peak(Counter(d.day for d in dates), range(1, 32)),
                    seasonality=self._seasonality(dates, amounts),
                    confidence=self._pattern_confidence(amounts, dates),
                )
            )
        return sorted(patterns, key=lambda p: p.confidence, reverse=True)

    @staticmethod
    def _peak(counts: Counter, candidates) -> int:
        return max(candidates, key=lambda c: (counts[c], -c))

    @staticmethod
    def _monthly_frequency(dates: Sequence[date]) -> float:
        """Occurrences per 30 days across the observed span"""
        if len(dates) < 2:
            return 0.0
        span_days = (max(dates) - min(dates)).days
        return 0.0 if span_days == 0 else (len(dates) - 1) / span_days * 30

    @staticmethod
    def _seasonality(dates: Sequence[date], amounts: Sequence[float]) -> float:
        """CV of per-calendar-month average spend (months without data count as 0)"""
        if len(dates) < 4:
            return 0.0
        totals = [0.0] * 12
        counts = [0] * 12
        for day, amount in zip(dates, amounts):
            totals[day.month - 1] += amount
            counts[day.month - 1] += 1
        averages = [totals[i] / counts[i] if counts[i] else 0.0 for i in range(12)]
        return coefficient_of_variation(averages)

    @staticmethod
    def _pattern_confidence(amounts: Sequence[float], dates: Sequence[date]) -> float:
        mu = mean(amounts)
        amount_consistency = 1 - population_std(amounts) / mu if mu > 0 else 0.0
        data_points = min(1.0, len(dates) / 10)
        time_span = min(1.0, (dates[-1] - dates[0]).days / 90) if len(dates) > 1 else 0.0
        return max(0.1, min(1.0, (amount_consistency + data_points + time_span) / 3))

    # =========================================================================
    # Anomalies
    # =========================================================================

    def detect_anomalies(self, transactions: Sequence[Transaction]) -> List[AnomalyDetection]:
        """
        Flag unusual amounts, frequencies and timings, highest score first.

        Returns nothing below ``min_transactions`` records. Amount anomalies are
        per transaction (|z| > 2.5, critical above 3); frequency anomalies are
        per category (30-day count vs historical monthly rate off by > 50%).
        """
        if len(transactions) < self.min_transactions:
            return []

        anomalies: List[AnomalyDetection] = []
        patterns = {p.category: p for p in self.analyze_spending_patterns(transactions)}
        groups = group_by_category(transactions)

        for category, category_txns in groups.items():
            pattern = patterns[category]
            sigma = population_std([t.spend for t in category_txns])

            for txn in category_txns:
                z = z_score(txn.spend, pattern.amount, sigma)
                if abs(z) > AMOUNT_Z_THRESHOLD:
                    anomalies.append(
                        AnomalyDetection(
                            type="amount",
                            score=min(abs(z) / 3, 1.0),
                            description=(
                                f"Unusual {category} spending: ${txn.spend:.2f} "
                                f"({'higher' if z > 0 else 'lower'} than normal)"
                            ),
                            severity="critical" if abs(z) > AMOUNT_Z_CRITICAL else "high",
                            recommendation=(
                                "Review this large expense and ensure it aligns with your budget"
                                if z > 0
                                else "This unusually small transaction might indicate a partial payment or error"
                            ),
                            category=category,
                            transaction_id=txn.transaction_id,
                        )
                    )

                if txn.time_of_day is not None and self._is_timing_anomalous(txn.date.weekday(), txn.hour, category):
                    anomalies.append(
                        AnomalyDetection(
                            type="timing",
                            score=0.6,
                            description=(
                                f"Unusual timing for {category} transaction: "
                                f"{DAY_NAMES[txn.date.weekday()]} at {txn.hour}:00"
                            ),
                            severity="low",
                            recommendation="Verify this transaction timing aligns with your normal spending patterns",
                            category=category,
                            transaction_id=txn.transaction_id,
                        )
                    )

            frequency_anomaly = self._frequency_anomaly(category, category_txns, pattern.frequency)
            if frequency_anomaly is not None:
                anomalies.append(frequency_anomaly)

        return sorted(anomalies, key=lambda a: a.score, reverse=True)

    def _frequency_anomaly(
        self,
        category: str,
        transactions: Sequence[Transaction],
        expected: float,
    ) -> Optional[AnomalyDetection]:
        if expected <= 0:
            return None

        cutoff = self.as_of - timedelta(days=RECENT_WINDOW_DAYS)
        actual = sum(1 for t in transactions if cutoff <= t.date <= self.as_of)
        deviation = abs(actual - expected)
        if deviation <= expected * FREQUENCY_DEVIATION:
            return None

        return AnomalyDetection(
            type="frequency",
            score=deviation / expected,
            description=(
                f"Unusual {category} spending frequency: {actual:.1f} times vs expected {expected:.1f} times"
            ),
            severity="medium" if deviation > expected else "low",
            recommendation=(
                "Consider if increased spending in this category is necessary"
                if actual > expected
                else "Reduced spending detected - ensure all necessary expenses are covered"
            ),
            category=category,
        )

    @staticmethod
    def _is_timing_anomalous(day_of_week: int, hour: int, category: str) -> bool:
        name = category.lower()
        if "grocer" in name and (hour < 6 or hour > 22):
            return True
        if "restaurant" in name and day_of_week == 0 and hour < 11:
            return True
        return False

    # =========================================================================
    # Predictions
    # =========================================================================

    def predict_spending(self, transactions: Sequence[Transaction], timeframe: str = "month") -> List[SpendingPrediction]:
        """
        Ensemble prediction per category with at least three records.

        0.4 * linear regression + 0.4 * seasonal projection + 0.2 * recent trend;
        confidence = max(0.3, 1 - stddev(models) / ensemble).
        """
        if timeframe not in TIMEFRAME_DAYS:
            raise ValidationError(f"Unknown timeframe {timeframe!r}; expected one of {sorted(TIMEFRAME_DAYS)}")
        days = TIMEFRAME_DAYS[timeframe]

        groups = group_by_category(transactions)
        predictions = []
        for pattern in self.analyze_spending_patterns(transactions):
            category_txns = sorted(groups[pattern.category], key=lambda t: t.date)
            if len(category_txns) < 3:
                continue

            model_outputs = [
                self._linear_prediction(category_txns, days),
                self._seasonal_prediction(pattern, days),
                self._trend_prediction(category_txns, days),
            ]
            ensemble = float(np.dot(ENSEMBLE_WEIGHTS, model_outputs))
            spread = population_std(model_outputs)
            confidence = max(0.3, 1 - spread / ensemble) if ensemble > 0 else 0.3

            predictions.append(
                SpendingPrediction(
                    category=pattern.category,
                    predicted_amount=max(0.0, ensemble),
                    confidence=confidence,
                    timeframe=timeframe,
                    model=self.models["spending_prediction"],
                    factors=self._prediction_factors(pattern),
                )
            )

        return sorted(predictions, key=lambda p: p.predicted_amount, reverse=True)

    @staticmethod
    def _linear_prediction(transactions: Sequence[Transaction], days: int) -> float:
        """Fit amount against transaction index and extrapolate over the period's expected count"""
        n = len(transactions)
        if n < 2:
            return 0.0

        amounts = np.array([t.spend for t in transactions])
        slope, intercept = np.polyfit(np.arange(n), amounts, 1)

        span_days = (transactions[-1].date - transactions[0].date).days
        avg_gap = span_days / (n - 1) if span_days > 0 else 1.0
        transactions_in_period = max(1.0, days / avg_gap)
        future_x = n + transactions_in_period

        return max(0.0, float(slope * future_x + intercept) * transactions_in_period)

    @staticmethod
    def _seasonal_prediction(pattern: SpendingPattern, days: int) -> float:
        seasonality_factor = 1 + pattern.seasonality * 0.2
        frequency_factor = pattern.frequency * (days / 30)
        return pattern.amount * seasonality_factor * frequency_factor

    def _trend_prediction(self, transactions: Sequence[Transaction], days: int) -> float:
        """Average of the last five records times their recent frequency"""
        if len(transactions) < 3:
            return 0.0
        recent = transactions[-5:]
        frequency = self._monthly_frequency([t.date for t in recent])
        return mean([t.spend for t in recent]) * frequency * (days / 30)

    @staticmethod
    def _prediction_factors(pattern: SpendingPattern) -> List[PredictionFactor]:
        return [
            PredictionFactor(name="Historical Average", impact=0.4),
            PredictionFactor(name="Seasonal Trends", impact=pattern.seasonality * 0.3),
            PredictionFactor(name="Frequency Pattern", impact=min(0.3, pattern.frequency / 10)),
            PredictionFactor(name="Recent Trend", impact=0.2),
        ]

    # =========================================================================
    # Behavioral insights
    # =========================================================================

    def analyze_behavioral_patterns(self, transactions: Sequence[Transaction]) -> List[BehavioralInsight]:
        if not transactions:
            return []

        detectors = (
            self._weekend_spending_insight,
            self._monthly_cycle_insight,
            self._category_concentration_insight,
            self._impulse_spending_insight,
            self._subscription_insight,
        )
        insights = [insight for insight in (detect(transactions) for detect in detectors) if insight is not None]
        return sorted(insights, key=lambda i: i.confidence, reverse=True)

    @staticmethod
    def _weekend_spending_insight(transactions: Sequence[Transaction]) -> Optional[BehavioralInsight]:
        weekend = [t.spend for t in transactions if is_weekend(t.date)]
        weekday = [t.spend for t in transactions if not is_weekend(t.date)]
        if not weekend or not weekday:
            return None

        weekend_avg = mean(weekend)
        weekday_avg = mean(weekday)
        if weekday_avg <= 0:
            return None

        ratio = weekend_avg / weekday_avg
        if ratio <= 1.5:
            return None

        return BehavioralInsight(
            pattern="High Weekend Spending",
            description=f"You spend {ratio * 100 - 100:.0f}% more on weekends than weekdays",
            impact="negative",
            confidence=0.8,
            recommendation="Consider planning weekend activities with budget limits to control discretionary spending",
            potential_savings=(weekend_avg - weekday_avg) * len(weekend) * 0.3,
        )

    @staticmethod
    def _monthly_cycle_insight(transactions: Sequence[Transaction]) -> Optional[BehavioralInsight]:
        totals = [0.0] * 31
        counts = [0] * 31
        for txn in transactions:
            totals[txn.date.day - 1] += txn.spend
            counts[txn.date.day - 1] += 1
        averages = [totals[i] / counts[i] if counts[i] else 0.0 for i in range(31)]

        first_week_avg = mean(averages[:7])
        last_week_avg = mean(averages[-7:])
        if last_week_avg <= first_week_avg * 1.4:
            return None

        return BehavioralInsight(
            pattern="End-of-Month Spending Spike",
            description="Spending increases significantly in the last week of the month",
            impact="negative",
            confidence=0.7,
            recommendation="Distribute monthly expenses more evenly to avoid budget strain at month-end",
        )

    @staticmethod
    def _category_concentration_insight(transactions: Sequence[Transaction]) -> Optional[BehavioralInsight]:
        totals: Dict[str, float] = defaultdict(float)
        for txn in transactions:
            totals[txn.category] += txn.spend
        total_spending = sum(totals.values())
        if total_spending <= 0:
            return None

        category, amount = max(totals.items(), key=lambda item: item[1])
        share = amount / total_spending
        if share <= 0.6:
            return None

        return BehavioralInsight(
            pattern="High Category Concentration",
            description=f"{category} represents {share * 100:.0f}% of your spending",
            impact="neutral",
            confidence=0.9,
            recommendation=(
                "Consider diversifying expenses or evaluating if this concentration aligns with your priorities"
            ),
        )

    @staticmethod
    def _impulse_spending_insight(transactions: Sequence[Transaction]) -> Optional[BehavioralInsight]:
        daily: Dict[date, float] = defaultdict(float)
        for txn in transactions:
            if any(name in txn.category.lower() for name in DISCRETIONARY_CATEGORIES):
                daily[txn.date] += txn.spend

        high_spending_days = [amount for amount in daily.values() if amount > 200]
        if len(high_spending_days) <= len(transactions) * 0.1:
            return None

        return BehavioralInsight(
            pattern="Frequent Impulse Spending",
            description=f"{len(high_spending_days)} days with high discretionary spending detected",
            impact="negative",
            confidence=0.6,
            recommendation="Implement a 24-hour waiting period for non-essential purchases over $100",
            potential_savings=mean(high_spending_days) * len(high_spending_days) * 0.2,
        )

    def _subscription_insight(self, transactions: Sequence[Transaction]) -> Optional[BehavioralInsight]:
        recurring = self.find_recurring_transactions(transactions)
        if len(recurring) <= 5:
            return None

        total_cost = sum(t.spend for t in recurring)
        return BehavioralInsight(
            pattern="Multiple Subscriptions",
            description=f"{len(recurring)} recurring charges detected totaling ${total_cost:.2f}/month",
            impact="neutral",
            confidence=0.7,
            recommendation="Review all subscriptions and cancel unused services to optimize spending",
            potential_savings=total_cost * 0.3,
        )

    @staticmethod
    def find_recurring_transactions(transactions: Sequence[Transaction]) -> List[Transaction]:
        """One representative per amount seen 3+ times at a steady ~monthly interval"""
        groups: Dict[str, List[Transaction]] = defaultdict(list)
        for txn in transactions:
            groups[f"{txn.spend:.2f}"].append(txn)

        recurring = []
        for group in groups.values():
            if len(group) < 3:
                continue
            dates = sorted(t.date for t in group)
            intervals = [(later - earlier).days for earlier, later in zip(dates, dates[1:])]
            if 25 < mean(intervals) < 35 and population_std(intervals) < 5:
                recurring.append(group[0])
        return recurring

    # =========================================================================
    # Five-factor risk
    # =========================================================================

    def assess_financial_risk(
        self,
        profile: FinancialProfile,
        transactions: Sequence[Transaction],
    ) -> FactorRiskAssessment:
        """
        Five weighted factors, each 0-100: income stability (0.25), debt burden
        (0.3), emergency preparedness (0.2), spending consistency (0.15) and
        credit management (0.1).
        """
        factors = []

        stability = profile.income_stability
        factors.append(
            RiskFactor(
                name="Income Stability",
                score=max(0.0, 10 - stability) * 10,
                weight=0.25,
                description=(
                    "Irregular income increases financial vulnerability"
                    if stability < 5
                    else "Stable income provides financial foundation"
                ),
            )
        )

        dti = profile.debt_to_income
        if dti > 0.4:
            debt_description = "High debt payments strain monthly budget"
        elif dti > 0.2:
            debt_description = "Moderate debt burden requires monitoring"
        else:
            debt_description = "Low debt burden provides financial flexibility"
        factors.append(RiskFactor(name="Debt Burden", score=min(100.0, dti * 200), weight=0.3, description=debt_description))

        emergency_fund = profile.liquid_savings / (profile.monthly_expenses or 1)
        if emergency_fund < 3:
            emergency_description = "Insufficient emergency fund creates vulnerability to unexpected expenses"
        elif emergency_fund < 6:
            emergency_description = "Emergency fund partially adequate but could be stronger"
        else:
            emergency_description = "Strong emergency fund provides excellent protection"
        factors.append(
            RiskFactor(
                name="Emergency Preparedness",
                score=max(0.0, min(100.0, (6 - emergency_fund) * 20)),
                weight=0.2,
                description=emergency_description,
            )
        )

        spending_volatility = self.calculate_spending_volatility(transactions)
        factors.append(
            RiskFactor(
                name="Spending Consistency",
                score=min(100.0, spending_volatility * 100),
                weight=0.15,
                description=(
                    "High spending volatility makes budgeting difficult"
                    if spending_volatility > 0.3
                    else "Consistent spending patterns support financial planning"
                ),
            )
        )

        utilization = profile.credit_utilization
        if utilization > 0.7:
            credit_description = "High credit utilization negatively impacts credit score"
        elif utilization > 0.3:
            credit_description = "Moderate credit utilization should be monitored"
        else:
            credit_description = "Low credit utilization supports healthy credit"
        factors.append(
            RiskFactor(name="Credit Management", score=min(100.0, utilization * 100), weight=0.1, description=credit_description)
        )

        overall = sum(f.score * f.weight for f in factors)
        if overall > 70:
            timeline = "immediate"
        elif overall > 40:
            timeline = "short_term"
        else:
            timeline = "long_term"

        return FactorRiskAssessment(
            overall=overall,
            factors=factors,
            recommendations=self._risk_recommendations(factors, overall),
            timeline=timeline,
        )

    @staticmethod
    def calculate_spending_volatility(transactions: Sequence[Transaction]) -> float:
        """CV of calendar-month totals; 0 with fewer than 4 records or 2 months"""
        if len(transactions) < 4:
            return 0.0
        monthly: Dict[tuple, float] = defaultdict(float)
        for txn in transactions:
            monthly[month_key(txn.date)] += txn.spend
        if len(monthly) < 2:
            return 0.0
        return coefficient_of_variation(list(monthly.values()))

    @staticmethod
    def _risk_recommendations(factors: Sequence[RiskFactor], overall: float) -> List[str]:
        advice = {
            "Income Stability": "Diversify income sources and build a larger emergency fund to mitigate income volatility",
            "Debt Burden": "Prioritize debt reduction using the avalanche or snowball method",
            "Emergency Preparedness": "Build emergency fund to 3-6 months of expenses as top priority",
            "Spending Consistency": "Create and stick to a detailed monthly budget to reduce spending volatility",
            "Credit Management": "Pay down credit card balances to reduce utilization below 30%",
        }
        worst = sorted((f for f in factors if f.score > 60), key=lambda f: f.score, reverse=True)
        recommendations = [advice[f.name] for f in worst]

        if overall > 70:
            recommendations.append("Consider consulting with a financial advisor for comprehensive risk management")
        elif overall > 40:
            recommendations.append("Focus on the top 2 risk factors to improve overall financial stability")
        else:
            recommendations.append("Maintain current financial discipline and consider opportunities for growth")

        return recommendations

"""Prometheus metrics for scoring outcomes, detected patterns and engine latency"""

from typing import Iterable

from prometheus_client import Counter, Histogram

# Scoring metrics
fhss_counter = Counter(
    "flowsight_fhss_computations_total",
    "Total FHSS computations",
    ["segment"],  # EarlyCareer | MidCareer | PreRetirement | DebtRecovery
)

fhss_score_histogram = Histogram(
    "flowsight_fhss_score",
    "Distribution of composite FHSS scores",
    buckets=[0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0],
)

# Behavioral metrics
pattern_counter = Counter(
    "flowsight_patterns_detected_total",
    "Behavioral patterns emitted by the detector",
    ["pattern_type"],
)

anomaly_counter = Counter(
    "flowsight_anomalies_total",
    "Transaction anomalies flagged",
    ["severity"],  # low | medium | high | critical
)

# Risk metrics
stress_test_counter = Counter(
    "flowsight_stress_tests_total",
    "Stress scenarios evaluated",
    ["scenario"],
)

# Engine health
computation_duration_histogram = Histogram(
    "flowsight_computation_duration_seconds",
    "Engine computation latency",
    ["operation"],
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)


def record_fhss(segment: str, score: float) -> None:
    """Record a completed FHSS computation"""
    fhss_counter.labels(segment=segment).inc()
    fhss_score_histogram.observe(score)


def record_patterns(pattern_types: Iterable[str]) -> None:
    """Count each emitted pattern by type"""
    for pattern_type in pattern_types:
        pattern_counter.labels(pattern_type=pattern_type).inc()


def record_anomalies(severities: Iterable[str]) -> None:
    """Count flagged anomalies by severity"""
    for severity in severities:
        anomaly_counter.labels(severity=severity).inc()


def record_stress_tests(scenarios: Iterable[str]) -> None:
    for scenario in scenarios:
        stress_test_counter.labels(scenario=scenario).inc()

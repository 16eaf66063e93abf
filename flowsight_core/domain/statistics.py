"""Numeric primitives: Gaussian sampling, simulation, forecasting, clustering and regression.

Every stochastic routine takes an injected ``numpy.random.Generator`` so callers
can seed it. Without one they share ``default_rng``, seeded once from settings.
"""

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from flowsight_core.config import settings
from flowsight_core.domain.exceptions import ComputationError, ValidationError
from flowsight_core.domain.models import FanChart


def make_rng(seed: Optional[int] = None) -> np.random.Generator:
    """Seeded generator, falling back to settings.random_seed, then OS entropy"""
    return np.random.default_rng(seed if seed is not None else settings.random_seed)


_shared_rng: Optional[np.random.Generator] = None


def default_rng() -> np.random.Generator:
    """Process-wide generator, created on first use and reused so successive draws differ"""
    global _shared_rng
    if _shared_rng is None:
        _shared_rng = make_rng()
    return _shared_rng


# =============================================================================
# Descriptive helpers (all return 0 instead of NaN on degenerate input)
# =============================================================================

def mean(values: Sequence[float]) -> float:
    return float(np.mean(values)) if len(values) > 0 else 0.0


def population_std(values: Sequence[float]) -> float:
    return float(np.std(values)) if len(values) > 0 else 0.0


def coefficient_of_variation(values: Sequence[float]) -> float:
    """stddev / mean, 0 when the mean is not positive"""
    mu = mean(values)
    return population_std(values) / mu if mu > 0 else 0.0


def z_score(value: float, mu: float, sigma: float) -> float:
    return 0.0 if sigma == 0 else (value - mu) / sigma


def round_half_up(value: float) -> int:
    """Nearest integer with .5 rounded toward +infinity (round() would round to even)"""
    return int(math.floor(value + 0.5))


def ensure_finite(value: float, what: str) -> float:
    if not math.isfinite(value):
        raise ComputationError(f"{what} is not finite: {value!r}")
    return value


# =============================================================================
# Gaussian sampling
# =============================================================================

def _standard_normals(rng: np.random.Generator, size) -> np.ndarray:
    """Box-Muller over independent uniform pairs; u is drawn from (0, 1] so log(u) is finite"""
    u = 1.0 - rng.random(size)
    v = rng.random(size)
    return np.sqrt(-2.0 * np.log(u)) * np.cos(2.0 * np.pi * v)


def normal_variate(mean: float = 0.0, stddev: float = 1.0, rng: Optional[np.random.Generator] = None) -> float:
    """Draw one Gaussian sample with the Box-Muller transform"""
    rng = rng if rng is not None else default_rng()
    return float(mean + stddev * _standard_normals(rng, None))


# =============================================================================
# Simulation and forecasting
# =============================================================================

def monte_carlo_forecast(
    initial_value: float,
    mean_return: float,
    stddev: float,
    years: int,
    n_sims: int = settings.monte_carlo_simulations,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """
    Terminal values of ``n_sims`` independently compounded paths.

    Each annual step multiplies the running value by ``1 + N(mean_return, stddev)``.
    With ``stddev == 0`` every path equals ``initial_value * (1 + mean_return) ** years``.
    """
    if n_sims <= 0:
        return np.empty(0)
    if years <= 0:
        return np.full(n_sims, float(initial_value))

    rng = rng if rng is not None else default_rng()
    returns = mean_return + stddev * _standard_normals(rng, (n_sims, years))
    return initial_value * np.prod(1.0 + returns, axis=1)


def monte_carlo_fan(
    initial_value: float,
    monthly_contribution: float,
    expected_return: float,
    volatility: float,
    months: int,
    simulations: int = 5000,
    rng: Optional[np.random.Generator] = None,
) -> FanChart:
    """
    Month-by-month p10/p50/p90 bands for a contributing portfolio.

    Monthly return is ``expected_return / 12 + volatility / sqrt(12) * Z``; the
    contribution is added after growth. Percentiles use the sorted value at
    index ``floor(simulations * q)``.
    """
    if simulations <= 0 or months < 0:
        return FanChart(p10=[], p50=[], p90=[])

    rng = rng if rng is not None else default_rng()
    shocks = _standard_normals(rng, (simulations, months))
    monthly_returns = expected_return / 12 + (volatility / math.sqrt(12)) * shocks

    paths = np.empty((simulations, months + 1))
    paths[:, 0] = initial_value
    for month in range(1, months + 1):
        paths[:, month] = paths[:, month - 1] * (1 + monthly_returns[:, month - 1]) + monthly_contribution

    ordered = np.sort(paths, axis=0)

    def band(q: float) -> List[float]:
        return ordered[min(int(math.floor(simulations * q)), simulations - 1)].tolist()

    return FanChart(p10=band(0.1), p50=band(0.5), p90=band(0.9))


def bsts_forecast(
    history: Sequence[float],
    steps: int = 12,
    rng: Optional[np.random.Generator] = None,
) -> List[float]:
    """
    Pseudo-BSTS: local trend plus Gaussian noise, damped by 0.9 each step.

    Not a structural time-series model; the name is kept for the consumers that
    label forecasts with it.
    """
    if len(history) == 0:
        return []

    rng = rng if rng is not None else default_rng()
    last = float(history[-1])
    trend = last - float(history[-2]) if len(history) > 1 else 0.0

    forecasts = []
    for _ in range(steps):
        noise = normal_variate(0.0, max(abs(trend), 1.0) * 0.1, rng)
        last = last + trend + noise
        forecasts.append(last)
        trend *= 0.9
    return forecasts


# =============================================================================
# Clustering
# =============================================================================

@dataclass(frozen=True)
class KMeansResult:
    centroids: np.ndarray
    labels: np.ndarray


def kmeans(data: Sequence[Sequence[float]], k: int, iterations: int = 10) -> KMeansResult:
    """
    Lloyd's algorithm seeded with the first ``k`` rows.

    Deterministic for a given row order. A cluster that loses all its points
    keeps its previous centroid.
    """
    points = np.asarray(data, dtype=float)
    if points.size == 0 or k <= 0:
        return KMeansResult(centroids=np.empty((0, 0)), labels=np.empty(0, dtype=int))
    if points.ndim == 1:
        points = points.reshape(-1, 1)

    centroids = points[:k].copy()
    labels = np.zeros(len(points), dtype=int)

    for _ in range(iterations):
        distances = np.linalg.norm(points[:, np.newaxis, :] - centroids[np.newaxis, :, :], axis=2)
        labels = np.argmin(distances, axis=1)

        for c in range(len(centroids)):
            members = points[labels == c]
            if len(members) == 0:
                continue
            centroids[c] = members.mean(axis=0)

    return KMeansResult(centroids=centroids, labels=labels)


def mean_intra_cluster_distance(data: Sequence[Sequence[float]], result: KMeansResult) -> float:
    """Average distance from each point to its assigned centroid"""
    points = np.asarray(data, dtype=float)
    if points.size == 0 or result.centroids.size == 0:
        return 0.0
    if points.ndim == 1:
        points = points.reshape(-1, 1)
    assigned = result.centroids[result.labels]
    return float(np.linalg.norm(points - assigned, axis=1).mean())


# =============================================================================
# Regression
# =============================================================================

@dataclass(frozen=True)
class ElasticNetResult:
    coefficients: np.ndarray
    intercept: float

    def predict(self, features: Sequence[Sequence[float]]) -> np.ndarray:
        return np.asarray(features, dtype=float) @ self.coefficients + self.intercept


def elastic_net(
    X: Sequence[Sequence[float]],
    y: Sequence[float],
    alpha: float = 1.0,
    l1_ratio: float = 0.5,
    iterations: int = 1000,
    lr: float = 0.01,
) -> ElasticNetResult:
    """
    Elastic-net linear regression by batch gradient descent.

    Squared-loss gradient plus ``(1 - l1_ratio) * alpha * coef`` (L2) and
    ``l1_ratio * alpha * sign(coef)`` (L1 subgradient). The intercept is not
    penalized. An empty feature matrix yields an empty model.
    """
    features = np.asarray(X, dtype=float)
    targets = np.asarray(y, dtype=float)
    if features.size == 0 or features.ndim != 2:
        return ElasticNetResult(coefficients=np.zeros(0), intercept=0.0)
    if len(targets) != len(features):
        raise ValidationError(
            f"Feature rows ({len(features)}) and targets ({len(targets)}) differ in length"
        )

    n_samples, n_features = features.shape
    coefficients = np.zeros(n_features)
    intercept = 0.0

    for _ in range(iterations):
        errors = features @ coefficients + intercept - targets
        intercept -= lr * errors.sum() / n_samples
        gradient = features.T @ errors / n_samples
        l2_penalty = (1 - l1_ratio) * alpha * coefficients
        l1_penalty = l1_ratio * alpha * np.sign(coefficients)
        coefficients = coefficients - lr * (gradient + l2_penalty + l1_penalty)

    return ElasticNetResult(coefficients=coefficients, intercept=float(intercept))

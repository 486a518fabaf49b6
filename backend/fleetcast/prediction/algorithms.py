"""
Forecast Algorithms

Four independent forecasting strategies producing N future values from a
chronologically ordered historical sample:

- Linear regression (ordinary least squares on value vs. index)
- Exponential moving average with per-step uncertainty decay
- Seasonal analysis (per-phase baseline blended with a perturbed trend)
- Ensemble (weighted blend of the three above)

Every algorithm returns exactly the requested number of values, clamped to
the metric bounds, and degrades to a zero- or single-value-filled result on
empty or single-point history instead of raising.
"""

import random
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np


Bounds = Tuple[float, float]

DEFAULT_BOUNDS: Bounds = (0.0, 100.0)


class ForecastAlgorithm(str, Enum):
    """Algorithm tags stored on every prediction"""
    LINEAR_REGRESSION = "linear_regression"
    EXPONENTIAL_MOVING_AVERAGE = "exponential_moving_average"
    SEASONAL_ANALYSIS = "seasonal_analysis"
    ENSEMBLE = "ensemble"


def _clamp(value: float, bounds: Bounds) -> float:
    low, high = bounds
    return float(max(low, min(high, value)))


def linear_regression(history: Sequence[float],
                      periods: int = 6,
                      bounds: Bounds = DEFAULT_BOUNDS) -> List[float]:
    """
    Ordinary least squares fit of value vs. index, extrapolated forward

    With fewer than 2 samples the index has zero variance, so the sole
    value (or 0 for an empty history) is repeated instead.
    """
    n = len(history)
    if n < 2:
        fill = history[0] if n == 1 else 0.0
        return [_clamp(fill, bounds)] * periods

    x = np.arange(n, dtype=float)
    y = np.asarray(history, dtype=float)

    sum_x = x.sum()
    sum_y = y.sum()
    sum_xy = (x * y).sum()
    sum_xx = (x * x).sum()

    slope = (n * sum_xy - sum_x * sum_y) / (n * sum_xx - sum_x * sum_x)
    intercept = (sum_y - slope * sum_x) / n

    return [_clamp(slope * (n + i) + intercept, bounds) for i in range(periods)]


def exponential_moving_average(history: Sequence[float],
                               periods: int = 6,
                               alpha: float = 0.3,
                               decay: float = 0.98,
                               bounds: Bounds = DEFAULT_BOUNDS) -> List[float]:
    """
    Exponential moving average seeded with the first sample

    Beyond the last known point the trailing EMA is multiplied by `decay`
    once per step.
    """
    if len(history) == 0:
        return [0.0] * periods

    ema = float(history[0])
    for value in history[1:]:
        ema = alpha * value + (1 - alpha) * ema

    predictions = []
    for _ in range(periods):
        predictions.append(_clamp(ema, bounds))
        ema *= decay

    return predictions


def seasonal_analysis(history: Sequence[float],
                      periods: int = 6,
                      season_length: int = 7,
                      rng: Optional[random.Random] = None,
                      bounds: Bounds = DEFAULT_BOUNDS) -> List[float]:
    """
    Per-phase seasonal baseline blended 70/30 with a perturbed trend

    The trend term is the last observed value scaled by a random factor in
    [0.95, 1.05), so the output is bounded but not deterministic unless a
    seeded `rng` is supplied. History shorter than one season repeats the
    last observed value.
    """
    if len(history) < season_length:
        fill = history[-1] if len(history) > 0 else 0.0
        return [_clamp(fill, bounds)] * periods

    rng = rng or random.Random()
    data = np.asarray(history, dtype=float)

    # Average of every sample sharing the same phase
    seasonal_pattern = [float(np.mean(data[phase::season_length])) for phase in range(season_length)]

    last = float(data[-1])
    predictions = []
    for i in range(periods):
        trend = last * (1 + (rng.random() - 0.5) * 0.1)
        value = seasonal_pattern[i % season_length] * 0.7 + trend * 0.3
        predictions.append(_clamp(value, bounds))

    return predictions


def ensemble(history: Sequence[float],
             periods: int = 6,
             rng: Optional[random.Random] = None,
             weights: Tuple[float, float, float] = (0.3, 0.4, 0.3),
             alpha: float = 0.3,
             decay: float = 0.98,
             season_length: int = 7,
             bounds: Bounds = DEFAULT_BOUNDS) -> List[float]:
    """
    Weighted blend, per step, of linear regression, EMA and seasonal analysis
    """
    linear_preds = linear_regression(history, periods, bounds)
    ema_preds = exponential_moving_average(history, periods, alpha, decay, bounds)
    seasonal_preds = seasonal_analysis(history, periods, season_length, rng, bounds)

    w_linear, w_ema, w_seasonal = weights
    return [
        _clamp(w_linear * linear_preds[i] + w_ema * ema_preds[i] + w_seasonal * seasonal_preds[i], bounds)
        for i in range(periods)
    ]


class ForecastAlgorithms:
    """
    Configured bundle of the four algorithms

    Holds the algorithm parameters and the random source so the lifecycle
    manager can dispatch by tag.

    Usage:
        algorithms = ForecastAlgorithms(rng=random.Random(42))
        values = algorithms.forecast('ensemble', history, periods=1)
    """

    def __init__(self, config: dict = None, rng: random.Random = None):
        """
        Initialize algorithm bundle

        Args:
            config: Options (alpha, decay, seasonLength, ensembleWeights, bounds)
            rng: Random source for the seasonal trend term
        """
        self.config = config or {}
        self.rng = rng or random.Random()

        self.alpha = self.config.get('alpha', 0.3)
        self.decay = self.config.get('decay', 0.98)
        self.season_length = self.config.get('seasonLength', 7)

        weights = self.config.get('ensembleWeights', {})
        self.weights = (
            weights.get('linear_regression', 0.3),
            weights.get('exponential_moving_average', 0.4),
            weights.get('seasonal_analysis', 0.3),
        )

        low, high = self.config.get('bounds', list(DEFAULT_BOUNDS))
        self.bounds: Bounds = (float(low), float(high))

        self._dispatch: Dict[ForecastAlgorithm, Callable[[Sequence[float], int], List[float]]] = {
            ForecastAlgorithm.LINEAR_REGRESSION: self.linear_regression,
            ForecastAlgorithm.EXPONENTIAL_MOVING_AVERAGE: self.exponential_moving_average,
            ForecastAlgorithm.SEASONAL_ANALYSIS: self.seasonal_analysis,
            ForecastAlgorithm.ENSEMBLE: self.ensemble,
        }

    @property
    def names(self) -> List[str]:
        return [algorithm.value for algorithm in self._dispatch]

    def linear_regression(self, history: Sequence[float], periods: int = 6) -> List[float]:
        return linear_regression(history, periods, self.bounds)

    def exponential_moving_average(self, history: Sequence[float], periods: int = 6) -> List[float]:
        return exponential_moving_average(history, periods, self.alpha, self.decay, self.bounds)

    def seasonal_analysis(self, history: Sequence[float], periods: int = 6) -> List[float]:
        return seasonal_analysis(history, periods, self.season_length, self.rng, self.bounds)

    def ensemble(self, history: Sequence[float], periods: int = 6) -> List[float]:
        return ensemble(
            history,
            periods,
            rng=self.rng,
            weights=self.weights,
            alpha=self.alpha,
            decay=self.decay,
            season_length=self.season_length,
            bounds=self.bounds
        )

    def forecast(self, algorithm, history: Sequence[float], periods: int = 6) -> List[float]:
        """
        Forecast with the algorithm named by `algorithm`

        Raises:
            ValueError: unknown algorithm tag
        """
        try:
            predictor = self._dispatch[ForecastAlgorithm(algorithm)]
        except ValueError:
            raise ValueError(f"Invalid algorithm: {algorithm}. Valid: {self.names}")
        return predictor(history, periods)

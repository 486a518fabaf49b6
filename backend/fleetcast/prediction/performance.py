"""
Performance Aggregator

Per-algorithm accuracy statistics over validated predictions.

Persisted statistics are always computed on demand from the store over a
trailing window. A small in-process rolling window of recent validations
is kept alongside for the live statistics endpoint.
"""

import logging
from collections import deque
from datetime import timedelta
from typing import Deque, Dict, List, Optional

import numpy as np

from fleetcast.models import PerformanceStat, Prediction
from fleetcast.prediction.algorithms import ForecastAlgorithm
from fleetcast.scheduling.clock import Clock, SystemClock


logger = logging.getLogger(__name__)


class PerformanceAggregator:
    """
    Rolling accuracy statistics per algorithm

    Usage:
        aggregator = PerformanceAggregator(store)
        stat = await aggregator.compute('ensemble', days=7)
        best = await aggregator.best_algorithm()
    """

    def __init__(self, store, clock: Clock = None, config: dict = None):
        """
        Args:
            store: Store to read validated predictions from
            clock: Time source
            config: Optional settings (windowDays, recentWindow)
        """
        config = config or {}
        self.store = store
        self.clock = clock or SystemClock()
        self.window_days = config.get('windowDays', 7)
        self.recent_window = config.get('recentWindow', 500)
        self.algorithms = [a.value for a in ForecastAlgorithm]

        self._recent: Dict[str, Deque[float]] = {
            name: deque(maxlen=self.recent_window) for name in self.algorithms
        }
        self.total_recorded = 0

    async def compute(self, algorithm: str, days: float = None) -> PerformanceStat:
        """
        Aggregate validated predictions of one algorithm

        Args:
            algorithm: Algorithm tag
            days: Trailing window in days (default: configured window)

        Returns:
            PerformanceStat, zeroed when nothing was validated in the window
        """
        days = self.window_days if days is None else days
        since = self.clock.now() - timedelta(days=days)
        validated = await self.store.find_validated(algorithm, since)
        return self.summarize(algorithm, validated, days)

    @staticmethod
    def summarize(algorithm: str, predictions: List[Prediction], days: float = 7) -> PerformanceStat:
        """Statistics over an already selected set of validated predictions"""
        accuracies = np.array([p.accuracy for p in predictions if p.accuracy is not None], dtype=float)
        if accuracies.size == 0:
            return PerformanceStat.zeroed(algorithm, days)

        confidences = np.array([p.confidence for p in predictions if p.accuracy is not None], dtype=float)
        return PerformanceStat(
            algorithm=algorithm,
            average_accuracy=float(np.mean(accuracies)),
            count=int(accuracies.size),
            average_confidence=float(np.mean(confidences)),
            min_accuracy=float(np.min(accuracies)),
            max_accuracy=float(np.max(accuracies)),
            window_days=days,
        )

    async def compute_all(self, days: float = None) -> Dict[str, PerformanceStat]:
        """Statistics for every algorithm"""
        return {name: await self.compute(name, days) for name in self.algorithms}

    async def best_algorithm(self, days: float = None) -> Optional[str]:
        """Algorithm with the highest average accuracy, None without samples"""
        stats = [s for s in (await self.compute_all(days)).values() if s.count > 0]
        if not stats:
            return None
        return max(stats, key=lambda s: s.average_accuracy).algorithm

    def record_validation(self, prediction: Prediction):
        """Feed one successful validation into the live window"""
        if prediction.accuracy is None:
            return
        window = self._recent.get(prediction.algorithm)
        if window is None:
            window = self._recent[prediction.algorithm] = deque(maxlen=self.recent_window)
        window.append(prediction.accuracy)
        self.total_recorded += 1

    def get_statistics(self) -> dict:
        """Live accuracy of recent validations (not the persisted stats)"""
        recent = {}
        for name, window in self._recent.items():
            values = np.array(window, dtype=float)
            recent[name] = {
                'count': int(values.size),
                'avgAccuracy': round(float(np.mean(values)), 2) if values.size else 0.0,
            }
        return {
            'totalRecorded': self.total_recorded,
            'recentWindow': self.recent_window,
            'algorithms': recent,
        }

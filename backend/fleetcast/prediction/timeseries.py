"""
Time-Series Providers

Supply a bounded, chronologically ordered historical sample of a metric
for one vehicle. The simulated provider stands in for a telemetry store.
"""

import math
import random
from abc import ABC, abstractmethod
from typing import List

from fleetcast.models import Vehicle


class TimeSeriesProvider(ABC):
    """Source of historical metric samples"""

    @abstractmethod
    async def get_history(self, vehicle: Vehicle, metric: str = "delay", points: int = 30) -> List[float]:
        """
        Return at most `points` samples, oldest first

        Args:
            vehicle: Subject vehicle
            metric: Metric name (e.g. 'delay')
            points: Maximum number of samples
        """


class SimulatedTimeSeriesProvider(TimeSeriesProvider):
    """
    Synthetic delay history: noise plus a slow sine wave, in minutes
    """

    def __init__(self, rng: random.Random = None):
        self.rng = rng or random.Random()

    async def get_history(self, vehicle: Vehicle, metric: str = "delay", points: int = 30) -> List[float]:
        return [
            self.rng.random() * 10 + math.sin(i * 0.1) * 3 + 2
            for i in range(max(0, points))
        ]

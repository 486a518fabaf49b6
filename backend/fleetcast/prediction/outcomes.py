"""
Outcome Providers

Supply the observed value a prediction is validated against.
"""

import random
from abc import ABC, abstractmethod

from fleetcast.models import Prediction


class OutcomeProvider(ABC):
    """Source of observed values for expired predictions"""

    @abstractmethod
    async def observe(self, prediction: Prediction) -> float:
        """Observed value for the prediction's subject at its expiry"""


class SimulatedOutcomeProvider(OutcomeProvider):
    """Predicted value plus uniform noise of +/- 2"""

    def __init__(self, rng: random.Random = None):
        self.rng = rng or random.Random()

    async def observe(self, prediction: Prediction) -> float:
        return prediction.predicted_value + (self.rng.random() - 0.5) * 4

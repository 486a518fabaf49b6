"""
External Condition Providers

Supply the weather / traffic / event snapshot used to adjust forecasts.
The static provider returns a fixed snapshot; a live deployment would
implement ConditionsProvider on top of weather and traffic feeds.
"""

from abc import ABC, abstractmethod
from typing import Optional

from fleetcast.models import ExternalConditions, Vehicle


DEFAULT_CONDITIONS = {
    'weather': {'condition': 'sunny', 'temperature': 20},
    'traffic': {'level': 'moderate'},
    'events': [],
}


class ConditionsProvider(ABC):
    """Source of external conditions for a vehicle"""

    @abstractmethod
    async def current_conditions(self, vehicle: Optional[Vehicle] = None) -> ExternalConditions:
        """Conditions currently affecting `vehicle`"""


class StaticConditionsProvider(ConditionsProvider):
    """Fixed snapshot, loaded from configuration"""

    def __init__(self, conditions: dict = None):
        self.conditions = ExternalConditions.model_validate(conditions or DEFAULT_CONDITIONS)

    async def current_conditions(self, vehicle: Optional[Vehicle] = None) -> ExternalConditions:
        return self.conditions.model_copy(deep=True)

"""
External Factor Model

Maps qualitative external conditions (weather, traffic, events) to a
multiplicative adjustment for raw forecasts, plus the list of named
factors that contributed to it.

The lookup table below is a compatibility contract: historical prediction
values were produced with these exact multipliers, impacts and
confidences (0-100 scale).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from fleetcast.models.prediction import (
    EventConditions,
    ExternalConditions,
    PredictionFactor,
    TrafficConditions,
    WeatherConditions,
)


class WeatherCondition(str, Enum):
    RAIN = "rain"
    SNOW = "snow"
    FOG = "fog"
    SUNNY = "sunny"


class TrafficLevel(str, Enum):
    HEAVY = "heavy"
    MODERATE = "moderate"
    LIGHT = "light"


class EventType(str, Enum):
    CONCERT = "concert"
    MATCH = "match"
    STRIKE = "strike"
    HOLIDAY = "holiday"


@dataclass(frozen=True)
class FactorRule:
    """One row of the factor table"""
    multiplier: float
    name: str
    impact: float
    confidence: float

    def to_factor(self) -> PredictionFactor:
        return PredictionFactor(name=self.name, impact=self.impact, confidence=self.confidence)


WEATHER_FACTORS: Dict[str, FactorRule] = {
    WeatherCondition.RAIN.value: FactorRule(1.3, "Rain", 0.3, 85),
    WeatherCondition.SNOW.value: FactorRule(1.8, "Snow", 0.8, 95),
    WeatherCondition.FOG.value: FactorRule(1.2, "Fog", 0.2, 75),
    WeatherCondition.SUNNY.value: FactorRule(0.95, "Sunny weather", -0.05, 70),
}

TRAFFIC_FACTORS: Dict[str, FactorRule] = {
    TrafficLevel.HEAVY.value: FactorRule(1.5, "Heavy traffic", 0.5, 90),
    TrafficLevel.MODERATE.value: FactorRule(1.2, "Moderate traffic", 0.2, 80),
    TrafficLevel.LIGHT.value: FactorRule(0.9, "Light traffic", -0.1, 85),
}

EVENT_FACTORS: Dict[str, FactorRule] = {
    EventType.CONCERT.value: FactorRule(1.4, "Concert", 0.4, 80),
    EventType.MATCH.value: FactorRule(1.3, "Sports match", 0.3, 85),
    EventType.STRIKE.value: FactorRule(2.0, "Strike", 1.0, 95),
    EventType.HOLIDAY.value: FactorRule(0.8, "Public holiday", -0.2, 90),
}


@dataclass
class ExternalAdjustment:
    """Result of evaluating external conditions"""
    multiplier: float = 1.0
    factors: List[PredictionFactor] = field(default_factory=list)

    def apply(self, value: float) -> float:
        return value * self.multiplier


def _key(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, Enum):
        value = value.value
    return str(value)


class ExternalFactorModel:
    """
    Pure function over a fixed lookup table

    Each recognized weather condition, traffic level and event type
    contributes one multiplicative term and one factor entry. Unknown or
    absent inputs contribute nothing.

    Usage:
        model = ExternalFactorModel()
        adjustment = model.calculate(weather='rain', traffic='heavy')
        adjustment.multiplier  # 1.95
    """

    def _lookup(self, weather, traffic, events) -> List[FactorRule]:
        rules = []

        rule = WEATHER_FACTORS.get(_key(weather))
        if rule:
            rules.append(rule)

        rule = TRAFFIC_FACTORS.get(_key(traffic))
        if rule:
            rules.append(rule)

        for event in events or []:
            rule = EVENT_FACTORS.get(_key(event))
            if rule:
                rules.append(rule)

        return rules

    def calculate(self,
                  weather=None,
                  traffic=None,
                  events: Iterable = None) -> ExternalAdjustment:
        """
        Evaluate raw condition values

        Args:
            weather: Weather condition (WeatherCondition or string)
            traffic: Traffic level (TrafficLevel or string)
            events: Event types (EventType or strings)

        Returns:
            ExternalAdjustment with the compounded multiplier
        """
        adjustment = ExternalAdjustment()
        for rule in self._lookup(weather, traffic, events):
            adjustment.multiplier *= rule.multiplier
            adjustment.factors.append(rule.to_factor())
        return adjustment

    def evaluate(self, conditions: Optional[ExternalConditions]) -> ExternalAdjustment:
        """Evaluate an ExternalConditions snapshot"""
        weather, traffic, events = self._unpack(conditions)
        return self.calculate(weather, traffic, events)

    def annotate(self, conditions: Optional[ExternalConditions]) -> ExternalConditions:
        """
        Copy of the snapshot with per-input impacts filled from the table

        Inputs the table does not know keep an empty impact.
        """
        conditions = conditions or ExternalConditions()

        weather = None
        if conditions.weather:
            rule = WEATHER_FACTORS.get(_key(conditions.weather.condition))
            weather = WeatherConditions(
                condition=conditions.weather.condition,
                temperature=conditions.weather.temperature,
                impact=rule.impact if rule else None
            )

        traffic = None
        if conditions.traffic:
            rule = TRAFFIC_FACTORS.get(_key(conditions.traffic.level))
            traffic = TrafficConditions(
                level=conditions.traffic.level,
                impact=rule.impact if rule else None
            )

        events = []
        for event in conditions.events:
            rule = EVENT_FACTORS.get(_key(event.type))
            events.append(EventConditions(type=event.type, impact=rule.impact if rule else None))

        return ExternalConditions(weather=weather, traffic=traffic, events=events)

    @staticmethod
    def _unpack(conditions: Optional[ExternalConditions]) -> Tuple[Optional[str], Optional[str], List[str]]:
        if conditions is None:
            return None, None, []
        weather = conditions.weather.condition if conditions.weather else None
        traffic = conditions.traffic.level if conditions.traffic else None
        events = [event.type for event in conditions.events]
        return weather, traffic, events

"""
Prediction Models

Forecast records produced by the prediction lifecycle manager, and the
per-algorithm performance statistics derived from validated records.

Confidence values are expressed on a 0-100 scale throughout.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .vehicle import utc_now


class PredictionKind(str, Enum):
    """What a prediction forecasts"""
    ARRIVAL = "arrival"
    DELAY = "delay"
    OCCUPANCY = "occupancy"
    DISRUPTION = "disruption"


class PredictionAlreadyValidated(ValueError):
    """Raised when validation fields are set a second time"""


class PredictionNotExpired(ValueError):
    """Raised when a prediction is validated before its expiry"""


class PredictionFactor(BaseModel):
    """Named contributing factor"""
    name: str
    impact: float                         # signed, -1 to 1
    confidence: float = Field(ge=0, le=100)


class WeatherConditions(BaseModel):
    condition: str
    temperature: Optional[float] = None
    impact: Optional[float] = None


class TrafficConditions(BaseModel):
    level: str
    impact: Optional[float] = None


class EventConditions(BaseModel):
    type: str
    impact: Optional[float] = None


class ExternalConditions(BaseModel):
    """
    Snapshot of the external conditions a prediction was adjusted with

    Condition, level and event type are free strings so that values the
    factor table does not know yet can still be recorded.
    """
    weather: Optional[WeatherConditions] = None
    traffic: Optional[TrafficConditions] = None
    events: List[EventConditions] = Field(default_factory=list)


VALIDATION_FIELDS = frozenset({'actual_value', 'accuracy', 'validated_at'})


def calculate_accuracy(predicted: float, actual: float) -> float:
    """
    Accuracy of a prediction in percent

    100 minus the absolute error relative to the larger magnitude of the
    two values (at least 1), floored at 0.
    """
    error = abs(predicted - actual)
    max_error = max(abs(predicted), abs(actual), 1.0)
    return max(0.0, 100.0 - (error / max_error) * 100.0)


class Prediction(BaseModel):
    """
    Forecast for one vehicle, algorithm and horizon

    Frozen after creation. The validation fields (actual_value, accuracy,
    validated_at) are set once after expiry on a copy returned by
    with_validation().
    """
    model_config = ConfigDict(frozen=True)

    prediction_id: str = Field(default_factory=lambda: f"pred-{uuid4().hex[:12]}")

    # Subject
    vehicle_id: str
    route_id: str
    stop_id: str
    kind: PredictionKind = PredictionKind.DELAY
    algorithm: str

    # Forecast
    predicted_value: float
    confidence: float = Field(ge=0, le=100)
    horizon: int = Field(gt=0)            # minutes
    factors: List[PredictionFactor] = Field(default_factory=list)
    external_conditions: ExternalConditions = Field(default_factory=ExternalConditions)

    # Lifetime
    created_at: datetime = Field(default_factory=utc_now)
    expires_at: Optional[datetime] = None

    # Validation
    actual_value: Optional[float] = None
    accuracy: Optional[float] = None
    validated_at: Optional[datetime] = None

    @model_validator(mode='after')
    def _derive_expiry(self):
        if self.expires_at is None:
            object.__setattr__(self, 'expires_at', self.created_at + timedelta(minutes=self.horizon))
        return self

    @property
    def id(self) -> str:
        return self.prediction_id

    @property
    def is_validated(self) -> bool:
        return self.actual_value is not None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

    def with_validation(self, actual_value: float, now: datetime) -> 'Prediction':
        """
        Return a validated copy of this prediction

        Raises:
            PredictionAlreadyValidated: validation fields are already set
            PredictionNotExpired: the prediction has not expired yet
        """
        if self.is_validated:
            raise PredictionAlreadyValidated(f"{self.prediction_id} already validated")
        if not self.is_expired(now):
            raise PredictionNotExpired(f"{self.prediction_id} expires at {self.expires_at.isoformat()}")

        return self.model_copy(update=self.validation_patch(actual_value, now))

    def validation_patch(self, actual_value: float, now: datetime) -> dict:
        """Fields written by validation"""
        return {
            'actual_value': actual_value,
            'accuracy': calculate_accuracy(self.predicted_value, actual_value),
            'validated_at': now,
        }

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses"""
        return {
            'predictionId': self.prediction_id,
            'vehicleId': self.vehicle_id,
            'routeId': self.route_id,
            'stopId': self.stop_id,
            'kind': self.kind.value,
            'algorithm': self.algorithm,
            'predictedValue': round(self.predicted_value, 2),
            'confidence': round(self.confidence, 2),
            'horizon': self.horizon,
            'factors': [f.model_dump() for f in self.factors],
            'createdAt': self.created_at.isoformat(),
            'expiresAt': self.expires_at.isoformat(),
            'actualValue': self.actual_value,
            'accuracy': round(self.accuracy, 2) if self.accuracy is not None else None,
            'validatedAt': self.validated_at.isoformat() if self.validated_at else None,
        }


class PerformanceStat(BaseModel):
    """Aggregate accuracy of one algorithm over a trailing window"""
    algorithm: str
    average_accuracy: float = 0.0
    count: int = 0
    average_confidence: float = 0.0
    min_accuracy: float = 0.0
    max_accuracy: float = 0.0
    window_days: float = 7

    @classmethod
    def zeroed(cls, algorithm: str, window_days: float = 7) -> 'PerformanceStat':
        return cls(algorithm=algorithm, window_days=window_days)

    def to_dict(self) -> dict:
        return {
            'algorithm': self.algorithm,
            'avgAccuracy': round(self.average_accuracy, 2),
            'count': self.count,
            'avgConfidence': round(self.average_confidence, 2),
            'minAccuracy': round(self.min_accuracy, 2),
            'maxAccuracy': round(self.max_accuracy, 2),
            'windowDays': self.window_days,
        }

"""
Pydantic Models Package

All data models for the fleet forecasting core.
Import from here for convenience.
"""

# Vehicle models
from .vehicle import (
    Location,
    Occupancy,
    Vehicle,
    VehicleStatus,
    utc_now,
)

# Route models
from .route import (
    Route,
    RouteStop,
)

# Prediction models
from .prediction import (
    EventConditions,
    ExternalConditions,
    PerformanceStat,
    Prediction,
    PredictionAlreadyValidated,
    PredictionFactor,
    PredictionKind,
    PredictionNotExpired,
    TrafficConditions,
    VALIDATION_FIELDS,
    WeatherConditions,
    calculate_accuracy,
)

__all__ = [
    # Vehicle
    "Location",
    "Occupancy",
    "Vehicle",
    "VehicleStatus",
    "utc_now",

    # Route
    "Route",
    "RouteStop",

    # Prediction
    "EventConditions",
    "ExternalConditions",
    "PerformanceStat",
    "Prediction",
    "PredictionAlreadyValidated",
    "PredictionFactor",
    "PredictionKind",
    "PredictionNotExpired",
    "TrafficConditions",
    "VALIDATION_FIELDS",
    "WeatherConditions",
    "calculate_accuracy",
]

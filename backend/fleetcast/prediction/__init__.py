"""
Fleet Prediction Module

Short-horizon delay forecasting for active fleet vehicles.

Components:
- ForecastAlgorithms: Four pure numeric forecasting strategies
- ExternalFactorModel: Weather / traffic / event adjustment table
- TimeSeriesProvider: Historical delay samples per vehicle
- ConditionsProvider: External-condition snapshot source
- OutcomeProvider: Observed values for validation
- PredictionLifecycleManager: Generation and validation ticks
- PerformanceAggregator: Per-algorithm accuracy statistics

Algorithms:
- Linear Regression
- Exponential Moving Average
- Seasonal Analysis
- Ensemble (weighted blend of the three)
"""

from fleetcast.prediction.algorithms import (
    DEFAULT_BOUNDS,
    ForecastAlgorithm,
    ForecastAlgorithms,
    ensemble,
    exponential_moving_average,
    linear_regression,
    seasonal_analysis,
)

from fleetcast.prediction.external_factors import (
    EVENT_FACTORS,
    TRAFFIC_FACTORS,
    WEATHER_FACTORS,
    EventType,
    ExternalAdjustment,
    ExternalFactorModel,
    FactorRule,
    TrafficLevel,
    WeatherCondition,
)

from fleetcast.prediction.timeseries import (
    SimulatedTimeSeriesProvider,
    TimeSeriesProvider,
)

from fleetcast.prediction.conditions import (
    DEFAULT_CONDITIONS,
    ConditionsProvider,
    StaticConditionsProvider,
)

from fleetcast.prediction.outcomes import (
    OutcomeProvider,
    SimulatedOutcomeProvider,
)

from fleetcast.prediction.performance import PerformanceAggregator

from fleetcast.prediction.lifecycle import (
    DEFAULT_HORIZONS,
    DELAY_BOUNDS,
    PredictionLifecycleManager,
    confidence_for_horizon,
)


__all__ = [
    # Algorithms
    'DEFAULT_BOUNDS',
    'ForecastAlgorithm',
    'ForecastAlgorithms',
    'ensemble',
    'exponential_moving_average',
    'linear_regression',
    'seasonal_analysis',

    # External factors
    'EVENT_FACTORS',
    'TRAFFIC_FACTORS',
    'WEATHER_FACTORS',
    'EventType',
    'ExternalAdjustment',
    'ExternalFactorModel',
    'FactorRule',
    'TrafficLevel',
    'WeatherCondition',

    # Providers
    'SimulatedTimeSeriesProvider',
    'TimeSeriesProvider',
    'DEFAULT_CONDITIONS',
    'ConditionsProvider',
    'StaticConditionsProvider',
    'OutcomeProvider',
    'SimulatedOutcomeProvider',

    # Lifecycle
    'PerformanceAggregator',
    'DEFAULT_HORIZONS',
    'DELAY_BOUNDS',
    'PredictionLifecycleManager',
    'confidence_for_horizon',
]

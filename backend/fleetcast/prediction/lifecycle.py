"""
Prediction Lifecycle Manager

Generates delay predictions for every active vehicle on a fixed cadence
and validates them against observed outcomes once they expire.

Generation tick:
    active vehicles x algorithms x horizons -> one Prediction each,
    all built before a single batch insert.

Validation tick:
    expired, unvalidated predictions -> observed value -> accuracy,
    persisted with an update conditioned on actual_value being unset.
"""

import logging
from typing import Dict, List

from fleetcast.models import (
    Prediction,
    PredictionAlreadyValidated,
    PredictionKind,
    PredictionNotExpired,
    PerformanceStat,
    Vehicle,
)
from fleetcast.prediction.algorithms import ForecastAlgorithms
from fleetcast.prediction.conditions import ConditionsProvider, StaticConditionsProvider
from fleetcast.prediction.external_factors import ExternalFactorModel
from fleetcast.prediction.outcomes import OutcomeProvider, SimulatedOutcomeProvider
from fleetcast.prediction.performance import PerformanceAggregator
from fleetcast.prediction.timeseries import SimulatedTimeSeriesProvider, TimeSeriesProvider
from fleetcast.scheduling.clock import Clock, SystemClock
from fleetcast.store.base import EntityType, Store


logger = logging.getLogger(__name__)


DEFAULT_HORIZONS = [15, 30, 60, 120]    # minutes
DELAY_BOUNDS = (0.0, 30.0)              # minutes


def confidence_for_horizon(horizon: float,
                           baseline: float = 95.0,
                           step: float = 5.0,
                           floor: float = 60.0) -> float:
    """Confidence lost linearly with horizon: `step` points per 15 minutes"""
    return max(floor, baseline - (horizon / 15) * step)


class PredictionLifecycleManager:
    """
    Orchestrates prediction generation and validation

    Holds no vehicle or prediction state between ticks; every tick reads
    what it needs from the store.

    Usage:
        manager = PredictionLifecycleManager(store)
        generated = await manager.generate_predictions()
        validated = await manager.validate_expired_predictions()
    """

    def __init__(self,
                 store: Store,
                 algorithms: ForecastAlgorithms = None,
                 factor_model: ExternalFactorModel = None,
                 history_provider: TimeSeriesProvider = None,
                 conditions_provider: ConditionsProvider = None,
                 outcome_provider: OutcomeProvider = None,
                 clock: Clock = None,
                 aggregator: PerformanceAggregator = None,
                 config: dict = None):
        """
        Initialize lifecycle manager

        Args:
            store: Persistence collaborator
            algorithms: Forecast algorithm bundle
            factor_model: External factor model
            history_provider: Source of delay history per vehicle
            conditions_provider: Source of the external-condition snapshot
            outcome_provider: Source of observed values for validation
            clock: Time source
            aggregator: Performance aggregator fed by validations
            config: Options (generation.*, validation.*, horizons, bounds)
        """
        config = config or {}
        generation = config.get('generation', {})
        validation = config.get('validation', {})

        self.store = store
        self.clock = clock or SystemClock()
        self.algorithms = algorithms or ForecastAlgorithms()
        self.factor_model = factor_model or ExternalFactorModel()
        self.history_provider = history_provider or SimulatedTimeSeriesProvider()
        self.conditions_provider = conditions_provider or StaticConditionsProvider()
        self.outcome_provider = outcome_provider or SimulatedOutcomeProvider()
        self.aggregator = aggregator or PerformanceAggregator(store, self.clock)

        self.vehicle_limit = generation.get('vehicleLimit', 100)
        self.history_points = generation.get('historyPoints', 30)
        self.horizons: List[int] = list(generation.get('horizons', DEFAULT_HORIZONS))
        low, high = generation.get('valueBounds', list(DELAY_BOUNDS))
        self.value_bounds = (float(low), float(high))
        self.batch_limit = validation.get('batchLimit', 500)

        # Statistics
        self.total_generated = 0
        self.total_validated = 0
        self.total_rejected = 0
        self.failed_vehicles = 0
        self.failed_inserts = 0

    # =========================================================================
    # Generation
    # =========================================================================

    async def generate_predictions(self) -> int:
        """
        Run one generation tick

        Returns:
            Number of predictions persisted (0 when the tick failed)
        """
        try:
            vehicles = await self.store.find_active(EntityType.VEHICLE, limit=self.vehicle_limit)
        except Exception:
            logger.exception("Generation tick aborted: could not list active vehicles")
            return 0

        predictions: List[Prediction] = []
        for vehicle in vehicles:
            try:
                predictions.extend(await self.build_predictions_for_vehicle(vehicle))
            except Exception:
                self.failed_vehicles += 1
                logger.warning("Skipping predictions for vehicle %s", vehicle.vehicle_id, exc_info=True)

        if not predictions:
            logger.info("Generation tick: no predictions for %d active vehicles", len(vehicles))
            return 0

        try:
            await self.store.insert_many(EntityType.PREDICTION, predictions)
        except Exception:
            self.failed_inserts += 1
            logger.exception("Generation tick: failed to persist %d predictions", len(predictions))
            return 0

        self.total_generated += len(predictions)
        logger.info("Generated %d predictions for %d vehicles", len(predictions), len(vehicles))
        return len(predictions)

    async def build_predictions_for_vehicle(self, vehicle: Vehicle) -> List[Prediction]:
        """Every algorithm x horizon prediction for one vehicle"""
        history = await self.history_provider.get_history(vehicle, "delay", self.history_points)
        conditions = await self.conditions_provider.current_conditions(vehicle)
        adjustment = self.factor_model.evaluate(conditions)
        snapshot = self.factor_model.annotate(conditions)
        now = self.clock.now()
        low, high = self.value_bounds

        predictions = []
        for algorithm in self.algorithms.names:
            for horizon in self.horizons:
                forecast = self.algorithms.forecast(algorithm, history, periods=1)
                value = min(high, max(low, adjustment.apply(forecast[0])))

                predictions.append(Prediction(
                    vehicle_id=vehicle.vehicle_id,
                    route_id=vehicle.route_id,
                    stop_id=vehicle.next_stop or vehicle.current_stop,
                    kind=PredictionKind.DELAY,
                    algorithm=algorithm,
                    predicted_value=value,
                    confidence=confidence_for_horizon(horizon),
                    horizon=horizon,
                    factors=[f.model_copy() for f in adjustment.factors],
                    external_conditions=snapshot.model_copy(deep=True),
                    created_at=now,
                ))

        return predictions

    # =========================================================================
    # Validation
    # =========================================================================

    async def validate_expired_predictions(self) -> int:
        """
        Run one validation tick

        Returns:
            Number of predictions validated by this tick
        """
        now = self.clock.now()
        try:
            expired = await self.store.find_expired_unvalidated(now, limit=self.batch_limit)
        except Exception:
            logger.exception("Validation tick aborted: could not query expired predictions")
            return 0

        validated = 0
        for prediction in expired:
            try:
                if await self._validate(prediction, now):
                    validated += 1
            except Exception:
                logger.warning("Failed to validate prediction %s", prediction.prediction_id, exc_info=True)

        if validated:
            self.total_validated += validated
            logger.info("Validated %d of %d expired predictions", validated, len(expired))
        return validated

    async def _validate(self, prediction: Prediction, now) -> bool:
        actual = await self.outcome_provider.observe(prediction)

        try:
            result = prediction.with_validation(actual, now)
        except (PredictionAlreadyValidated, PredictionNotExpired) as e:
            self.total_rejected += 1
            logger.debug("Validation rejected: %s", e)
            return False

        patch = prediction.validation_patch(actual, now)
        updated = await self.store.update_by_id(
            EntityType.PREDICTION,
            prediction.prediction_id,
            patch,
            where={'actual_value': None}
        )
        if not updated:
            self.total_rejected += 1
            logger.debug("Prediction %s already validated elsewhere", prediction.prediction_id)
            return False

        self.aggregator.record_validation(result)
        return True

    # =========================================================================
    # Queries
    # =========================================================================

    async def get_performance_stats(self, algorithm: str, days: float = None) -> PerformanceStat:
        return await self.aggregator.compute(algorithm, days)

    async def get_all_performance_stats(self, days: float = None) -> Dict[str, PerformanceStat]:
        return await self.aggregator.compute_all(days)

    async def get_vehicle_predictions(self, vehicle_id: str, limit: int = 50) -> List[Prediction]:
        """Latest predictions for one vehicle, newest first"""
        return await self.store.find_predictions_for_vehicle(vehicle_id, limit)

    def get_statistics(self) -> dict:
        """Get lifecycle statistics"""
        return {
            'totalGenerated': self.total_generated,
            'totalValidated': self.total_validated,
            'totalRejected': self.total_rejected,
            'failedVehicles': self.failed_vehicles,
            'failedInserts': self.failed_inserts,
            'horizons': self.horizons,
            'algorithms': self.algorithms.names,
        }

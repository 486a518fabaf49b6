"""
Forecast Runtime

Owns every long-lived service of the process and the three periodic
tasks driving them:

- prediction-generation  (default every 300 s)
- prediction-validation  (default every 60 s)
- simulation             (default every 5 s)

The tasks are independent: a slow tick of one never delays the others.
Nothing here is module-level state; the entry point builds one runtime
and starts / stops it explicitly.
"""

import asyncio
import logging
import random
import time
from typing import Optional

from fleetcast.config import ConfigManager
from fleetcast.prediction import (
    ExternalFactorModel,
    ForecastAlgorithms,
    PerformanceAggregator,
    PredictionLifecycleManager,
    SimulatedOutcomeProvider,
    SimulatedTimeSeriesProvider,
    StaticConditionsProvider,
)
from fleetcast.scheduling import Clock, PeriodicTask, SystemClock
from fleetcast.simulation import SimulationScheduler, seed_demo_fleet
from fleetcast.store import InMemoryStore, Store, create_store
from fleetcast.websocket import BroadcastGateway, ObserverChannel


logger = logging.getLogger(__name__)


class ForecastRuntime:
    """
    Wiring and lifecycle of the forecasting core

    Usage:
        runtime = ForecastRuntime.from_config(ConfigManager(), channel)
        await runtime.start()
        # ... later ...
        await runtime.stop()
    """

    def __init__(self,
                 store: Store,
                 lifecycle: PredictionLifecycleManager,
                 simulation: SimulationScheduler,
                 gateway: BroadcastGateway,
                 channel: ObserverChannel,
                 clock: Clock = None,
                 generation_interval: float = 300.0,
                 validation_interval: float = 60.0,
                 generate_on_start: bool = True,
                 simulation_enabled: bool = True,
                 seed_demo: bool = False,
                 shutdown_timeout: Optional[float] = 30.0):
        self.store = store
        self.lifecycle = lifecycle
        self.simulation = simulation
        self.gateway = gateway
        self.channel = channel
        self.clock = clock or SystemClock()

        self.simulation_enabled = simulation_enabled
        self.seed_demo = seed_demo
        self.shutdown_timeout = shutdown_timeout

        self.generation_task = PeriodicTask(
            "prediction-generation",
            lifecycle.generate_predictions,
            generation_interval,
            run_immediately=generate_on_start
        )
        self.validation_task = PeriodicTask(
            "prediction-validation",
            lifecycle.validate_expired_predictions,
            validation_interval
        )

        self._running = False
        self.started_at: Optional[float] = None

    @classmethod
    def from_config(cls,
                    config: ConfigManager,
                    channel: ObserverChannel,
                    clock: Clock = None,
                    rng: random.Random = None,
                    store: Store = None) -> 'ForecastRuntime':
        """
        Build the runtime from configuration

        Args:
            config: Loaded configuration
            channel: Observer transport
            clock: Time source (default: system clock)
            rng: Random source for all simulated inputs (default:
                seeded from system.randomSeed when set)
            store: Store to use instead of the configured backend
        """
        clock = clock or SystemClock()
        if rng is None:
            seed = config.get('system.randomSeed')
            rng = random.Random(seed) if seed is not None else random.Random()

        store = store or create_store(config.get('system.store', {}), now=clock.now)
        prediction = config.get_prediction_config()
        simulation = config.get_simulation_config()
        seed_demo = simulation.get('seedDemoFleet')
        if seed_demo is None:
            seed_demo = isinstance(store, InMemoryStore)

        algorithms = ForecastAlgorithms(prediction.get('algorithms', {}), rng=rng)
        aggregator = PerformanceAggregator(store, clock, prediction.get('performance', {}))
        lifecycle = PredictionLifecycleManager(
            store,
            algorithms=algorithms,
            factor_model=ExternalFactorModel(),
            history_provider=SimulatedTimeSeriesProvider(rng),
            conditions_provider=StaticConditionsProvider(prediction.get('conditions')),
            outcome_provider=SimulatedOutcomeProvider(rng),
            clock=clock,
            aggregator=aggregator,
            config=prediction
        )
        gateway = BroadcastGateway(store, channel, clock, config.get_broadcast_config())
        scheduler = SimulationScheduler(store, gateway, rng=rng, clock=clock, config=simulation)

        return cls(
            store,
            lifecycle,
            scheduler,
            gateway,
            channel,
            clock=clock,
            generation_interval=config.get('prediction.generation.interval', 300.0),
            validation_interval=config.get('prediction.validation.interval', 60.0),
            generate_on_start=config.get('prediction.generation.runOnStart', True),
            simulation_enabled=simulation.get('enabled', True),
            seed_demo=seed_demo,
            shutdown_timeout=config.get('system.shutdownTimeout', 30.0),
        )

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self):
        """Attach the gateway and start the periodic tasks"""
        if self._running:
            return

        if self.seed_demo:
            await seed_demo_fleet(self.store, self.clock)

        self.gateway.attach()
        await self.generation_task.start()
        await self.validation_task.start()
        if self.simulation_enabled:
            await self.simulation.start()

        self._running = True
        self.started_at = time.time()
        logger.info("Forecast runtime started")

    async def stop(self):
        """
        Stop scheduling, let in-flight ticks finish, close observer outboxes
        """
        if not self._running:
            return
        self._running = False

        await asyncio.gather(
            self.generation_task.stop(self.shutdown_timeout),
            self.validation_task.stop(self.shutdown_timeout),
            self.simulation.stop(self.shutdown_timeout),
        )
        await self.channel.close()

        close = getattr(self.store, 'close', None)
        if close:
            close()

        logger.info("Forecast runtime stopped")

    def get_status(self) -> dict:
        """Scheduler and service statistics"""
        return {
            'running': self._running,
            'uptime': round(time.time() - self.started_at, 1) if self.started_at else 0,
            'tasks': {
                task.name: task.get_statistics()
                for task in (self.generation_task, self.validation_task, self.simulation.task)
            },
            'lifecycle': self.lifecycle.get_statistics(),
            'simulation': self.simulation.get_statistics(),
            'gateway': self.gateway.get_stats(),
            'performance': self.lifecycle.aggregator.get_statistics(),
        }

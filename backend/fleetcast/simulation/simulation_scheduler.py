"""
Simulation Scheduler

Stands in for vehicle telemetry ingestion: every tick nudges each active
vehicle's position, speed, heading and delay by small random deltas,
persists the new state and publishes it to observers.
"""

import logging
import random
from typing import Optional

from fleetcast.models import Location, Vehicle
from fleetcast.scheduling.clock import Clock, SystemClock
from fleetcast.scheduling.periodic import PeriodicTask
from fleetcast.store.base import EntityType, Store


logger = logging.getLogger(__name__)


class SimulationScheduler:
    """
    Periodic fleet movement simulation

    Per tick and active vehicle:
    - latitude / longitude += (u - 0.5) * coordinateJitter (default 0.001)
    - speed += (u - 0.5) * speedJitter (default 5), floored at 0
    - heading re-rolled uniformly in [0, 360)
    - delay += one of -1, 0, +1 minutes, floored at 0

    Usage:
        scheduler = SimulationScheduler(store, gateway, rng=random.Random(7))
        await scheduler.start()
        # ... later ...
        await scheduler.stop()
    """

    def __init__(self,
                 store: Store,
                 gateway=None,
                 rng: random.Random = None,
                 clock: Clock = None,
                 config: dict = None):
        """
        Initialize simulation scheduler

        Args:
            store: Store holding the fleet
            gateway: BroadcastGateway receiving each updated vehicle
            rng: Random source for the perturbations
            clock: Time source for last_updated
            config: Options (interval, vehicleLimit, coordinateJitter, speedJitter)
        """
        config = config or {}
        self.store = store
        self.gateway = gateway
        self.rng = rng or random.Random()
        self.clock = clock or SystemClock()

        self.interval = config.get('interval', 5.0)
        self.vehicle_limit = config.get('vehicleLimit', 1000)
        self.coordinate_jitter = config.get('coordinateJitter', 0.001)
        self.speed_jitter = config.get('speedJitter', 5.0)

        self.task = PeriodicTask("simulation", self.run_tick, self.interval)

        # Statistics
        self.total_ticks = 0
        self.total_updates = 0
        self.failed_updates = 0

    async def start(self):
        await self.task.start()

    async def stop(self, timeout: Optional[float] = None):
        await self.task.stop(timeout)

    @property
    def is_running(self) -> bool:
        return self.task.is_running

    async def run_tick(self) -> int:
        """
        Advance every active vehicle once

        Returns:
            Number of vehicles updated and published
        """
        self.total_ticks += 1
        try:
            vehicles = await self.store.find_active(EntityType.VEHICLE, limit=self.vehicle_limit)
        except Exception:
            logger.exception("Simulation tick aborted: could not list active vehicles")
            return 0

        updated = 0
        for vehicle in vehicles:
            try:
                if await self._advance(vehicle):
                    updated += 1
            except Exception:
                self.failed_updates += 1
                logger.warning("Simulation update failed for vehicle %s", vehicle.vehicle_id, exc_info=True)

        self.total_updates += updated
        logger.debug("Simulation tick: %d/%d vehicles updated", updated, len(vehicles))
        return updated

    async def _advance(self, vehicle: Vehicle) -> bool:
        moved = self.perturb(vehicle)
        patch = {
            'location': moved.location,
            'speed': moved.speed,
            'heading': moved.heading,
            'delay': moved.delay,
            'last_updated': moved.last_updated,
        }

        if not await self.store.update_by_id(EntityType.VEHICLE, vehicle.vehicle_id, patch):
            logger.debug("Vehicle %s disappeared before update", vehicle.vehicle_id)
            return False

        if self.gateway is not None:
            await self.gateway.publish_vehicle_update(moved)
        return True

    def perturb(self, vehicle: Vehicle) -> Vehicle:
        """Copy of `vehicle` with one step of random movement applied"""
        rng = self.rng

        latitude = vehicle.location.latitude + (rng.random() - 0.5) * self.coordinate_jitter
        longitude = vehicle.location.longitude + (rng.random() - 0.5) * self.coordinate_jitter
        speed = max(0.0, vehicle.speed + (rng.random() - 0.5) * self.speed_jitter)
        heading = float(rng.randrange(360))
        delay = max(0.0, vehicle.delay + rng.randint(-1, 1))

        return vehicle.model_copy(update={
            'location': Location(
                latitude=min(90.0, max(-90.0, latitude)),
                longitude=min(180.0, max(-180.0, longitude))
            ),
            'speed': speed,
            'heading': heading,
            'delay': delay,
            'last_updated': self.clock.now(),
        })

    def get_statistics(self) -> dict:
        return {
            'totalTicks': self.total_ticks,
            'totalUpdates': self.total_updates,
            'failedUpdates': self.failed_updates,
            'task': self.task.get_statistics(),
        }

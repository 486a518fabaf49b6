"""
Simulation Scheduler Tests

Tests cover:
- One store update and one publish per active vehicle
- Perturbation bounds
- Per-vehicle failure isolation
- Demo fleet seeding
"""

import asyncio
import random
from unittest.mock import AsyncMock, MagicMock

import pytest

from fleetcast.models import VehicleStatus
from fleetcast.simulation import (
    SimulationScheduler,
    build_demo_routes,
    build_demo_vehicles,
    seed_demo_fleet,
)
from fleetcast.store import EntityType, StoreError


@pytest.fixture
def gateway():
    gateway = MagicMock()
    gateway.publish_vehicle_update = AsyncMock()
    return gateway


@pytest.fixture
def scheduler(fleet_store, gateway, clock):
    return SimulationScheduler(fleet_store, gateway, rng=random.Random(7), clock=clock)


# ============================================
# Tick Tests
# ============================================

class TestSimulationTick:

    @pytest.mark.asyncio
    async def test_updates_and_publishes_each_active_vehicle(self, scheduler, fleet_store, gateway, clock):
        clock.advance(seconds=5)

        updated = await scheduler.run_tick()

        assert updated == 2
        assert gateway.publish_vehicle_update.await_count == 2
        published = {call.args[0].vehicle_id for call in gateway.publish_vehicle_update.await_args_list}
        assert published == {"B001", "B002"}

        for vehicle_id in ("B001", "B002"):
            vehicle = await fleet_store.get_by_id(EntityType.VEHICLE, vehicle_id)
            assert vehicle.last_updated == clock.now()

        # Maintenance vehicle untouched
        idle = await fleet_store.get_by_id(EntityType.VEHICLE, "B003")
        assert idle.last_updated < clock.now()

    @pytest.mark.asyncio
    async def test_published_state_matches_store(self, scheduler, fleet_store, gateway):
        await scheduler.run_tick()

        for call in gateway.publish_vehicle_update.await_args_list:
            published = call.args[0]
            stored = await fleet_store.get_by_id(EntityType.VEHICLE, published.vehicle_id)
            assert stored.location == published.location
            assert stored.delay == published.delay
            assert stored.heading == published.heading

    @pytest.mark.asyncio
    async def test_perturbation_bounds(self, scheduler, make_vehicle):
        vehicle = make_vehicle(delay=0.0, speed=1.0)
        for _ in range(200):
            moved = scheduler.perturb(vehicle)
            assert abs(moved.location.latitude - vehicle.location.latitude) <= 0.0005 + 1e-9
            assert abs(moved.location.longitude - vehicle.location.longitude) <= 0.0005 + 1e-9
            assert moved.speed >= 0
            assert abs(moved.speed - vehicle.speed) <= 2.5 + 1e-9
            assert 0 <= moved.heading < 360
            assert moved.delay in (0.0, 1.0)

    def test_seeded_perturbation_is_reproducible(self, fleet_store, make_vehicle, clock):
        first = SimulationScheduler(fleet_store, rng=random.Random(3), clock=clock)
        second = SimulationScheduler(fleet_store, rng=random.Random(3), clock=clock)
        vehicle = make_vehicle()
        assert first.perturb(vehicle) == second.perturb(vehicle)

    def test_coordinates_clamped(self, fleet_store, make_vehicle, clock):
        scheduler = SimulationScheduler(fleet_store, rng=random.Random(1), clock=clock,
                                        config={'coordinateJitter': 10})
        vehicle = make_vehicle(location={'latitude': 89.9, 'longitude': 179.9})
        for _ in range(50):
            moved = scheduler.perturb(vehicle)
            assert -90 <= moved.location.latitude <= 90
            assert -180 <= moved.location.longitude <= 180

    @pytest.mark.asyncio
    async def test_failure_isolated_to_vehicle(self, scheduler, fleet_store, gateway):
        update = fleet_store.update_by_id

        async def flaky_update(entity_type, entity_id, patch, where=None):
            if entity_id == "B001":
                raise StoreError("write conflict")
            return await update(entity_type, entity_id, patch, where)

        fleet_store.update_by_id = flaky_update

        assert await scheduler.run_tick() == 1
        assert scheduler.failed_updates == 1
        gateway.publish_vehicle_update.assert_awaited_once()
        assert gateway.publish_vehicle_update.await_args.args[0].vehicle_id == "B002"

    @pytest.mark.asyncio
    async def test_vanished_vehicle_not_published(self, scheduler, fleet_store, gateway):
        fleet_store.update_by_id = AsyncMock(return_value=False)

        assert await scheduler.run_tick() == 0
        gateway.publish_vehicle_update.assert_not_called()

    @pytest.mark.asyncio
    async def test_listing_failure_tolerated(self, gateway, clock):
        store = MagicMock()
        store.find_active = AsyncMock(side_effect=StoreError("connection reset"))
        scheduler = SimulationScheduler(store, gateway, clock=clock)

        assert await scheduler.run_tick() == 0
        gateway.publish_vehicle_update.assert_not_called()

    @pytest.mark.asyncio
    async def test_without_gateway(self, fleet_store, clock):
        scheduler = SimulationScheduler(fleet_store, rng=random.Random(5), clock=clock)
        assert await scheduler.run_tick() == 2
        assert scheduler.get_statistics()['totalUpdates'] == 2

    @pytest.mark.asyncio
    async def test_runs_on_interval(self, fleet_store, gateway, clock):
        scheduler = SimulationScheduler(fleet_store, gateway, rng=random.Random(5), clock=clock,
                                        config={'interval': 0.01})
        await scheduler.start()
        assert scheduler.is_running
        await asyncio.sleep(0.1)
        await scheduler.stop()

        assert not scheduler.is_running
        assert scheduler.total_ticks >= 2


# ============================================
# Demo Fleet Tests
# ============================================

class TestDemoFleet:

    def test_routes(self):
        routes = build_demo_routes()
        assert [r.route_id for r in routes] == ["L1", "L2", "L3"]
        for route in routes:
            assert [s.stop_id for s in route.inbound] == [s.stop_id for s in reversed(route.outbound)]

    def test_vehicles_active_on_known_routes(self, clock):
        route_ids = {r.route_id for r in build_demo_routes()}
        vehicles = build_demo_vehicles(clock)

        assert [v.vehicle_id for v in vehicles] == ["B001", "B002", "B003", "B004"]
        assert all(v.status == VehicleStatus.ACTIVE for v in vehicles)
        assert all(v.route_id in route_ids for v in vehicles)
        assert all(v.last_updated == clock.now() for v in vehicles)

    @pytest.mark.asyncio
    async def test_seed(self, store, clock):
        assert await seed_demo_fleet(store, clock) == 4
        assert store.count(EntityType.ROUTE) == 3
        assert len(await store.find_active(EntityType.VEHICLE)) == 4

    @pytest.mark.asyncio
    async def test_seed_keeps_stored_vehicles(self, store, clock):
        await seed_demo_fleet(store, clock)
        await store.update_by_id(EntityType.VEHICLE, "B002", {'delay': 7.0})

        assert await seed_demo_fleet(store, clock) == 0
        assert (await store.get_by_id(EntityType.VEHICLE, "B002")).delay == 7.0
        assert store.count(EntityType.ROUTE) == 3

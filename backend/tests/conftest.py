"""
Shared fixtures: manual clock, recording channel, in-memory store and fleet builders
"""

from datetime import datetime, timedelta, timezone

import pytest

from fleetcast.models import (
    Location,
    Occupancy,
    Route,
    RouteStop,
    Vehicle,
    VehicleStatus,
)
from fleetcast.scheduling import Clock
from fleetcast.store import EntityType, InMemoryStore
from fleetcast.websocket import ObserverChannel


T0 = datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)


class ManualClock(Clock):
    """Clock that only moves when told to"""

    def __init__(self, start: datetime = T0):
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


class RecordingChannel(ObserverChannel):
    """In-process channel that records everything sent"""

    def __init__(self):
        super().__init__()
        self.broadcasts = []
        self.sent = []
        self.closed = False

    async def broadcast(self, event, data):
        self.broadcasts.append((event, data))

    async def send_to(self, observer_id, event, data):
        self.sent.append((observer_id, event, data))
        return True

    async def close(self):
        self.closed = True


# ============================================
# Fixtures
# ============================================

@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def store(clock):
    return InMemoryStore(now=clock.now)


@pytest.fixture
def make_vehicle(clock):
    """Factory for vehicles with sensible defaults"""
    def factory(vehicle_id: str = "B001", route_id: str = "L1", **overrides) -> Vehicle:
        data = dict(
            vehicle_id=vehicle_id,
            route_id=route_id,
            location=Location(latitude=48.867, longitude=2.36),
            speed=25.0,
            heading=90.0,
            delay=2.0,
            occupancy=Occupancy(level="medium", percentage=50, passenger_count=30),
            status=VehicleStatus.ACTIVE,
            current_stop="Place de la République",
            next_stop="Opéra",
            destination="Gare Centrale",
            last_updated=clock.now(),
            estimated_arrival=clock.now() + timedelta(minutes=2),
        )
        data.update(overrides)
        return Vehicle(**data)
    return factory


@pytest.fixture
def route():
    stops = [
        RouteStop(stop_id="S001", name="Gare Centrale", location=Location(latitude=48.8584, longitude=2.2945), order=1),
        RouteStop(stop_id="S003", name="Opéra", location=Location(latitude=48.8719, longitude=2.3314), order=2),
    ]
    return Route(
        route_id="L1",
        name="Ligne 1 - Centre Ville",
        short_name="Centre",
        color="#007bff",
        outbound=stops,
        inbound=list(reversed(stops)),
    )


@pytest.fixture
def fleet_store(store, route, make_vehicle):
    """Store with one route, two active vehicles and one in maintenance"""
    store.load(EntityType.ROUTE, [route])
    store.load(EntityType.VEHICLE, [
        make_vehicle("B001"),
        make_vehicle("B002", delay=4.0),
        make_vehicle("B003", status=VehicleStatus.MAINTENANCE),
    ])
    return store

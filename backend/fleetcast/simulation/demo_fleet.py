"""
Demo Fleet

Seed network for development: three routes and four vehicles around
central Paris. Loaded into the store at startup when
`simulation.seedDemoFleet` is enabled.
"""

import logging
from datetime import timedelta
from typing import List, Tuple

from fleetcast.models import Location, Occupancy, Route, RouteStop, Vehicle, VehicleStatus
from fleetcast.scheduling.clock import Clock, SystemClock
from fleetcast.store.base import EntityType, Store


logger = logging.getLogger(__name__)


# (route_id, name, short_name, color, description, [(stop_id, name, lat, lon), ...])
DEMO_ROUTES = [
    ("L1", "Ligne 1 - Centre Ville", "Centre", "#007bff", "Main line through the city centre", [
        ("S001", "Gare Centrale", 48.8584, 2.2945),
        ("S002", "Place de la République", 48.8679, 2.3658),
        ("S003", "Opéra", 48.8719, 2.3314),
    ]),
    ("L2", "Ligne 2 - Université", "Uni", "#28a745", "University campus line", [
        ("S004", "Campus Nord", 48.845, 2.31),
        ("S005", "Bibliothèque Municipale", 48.85, 2.32),
        ("S006", "Parc des Expositions", 48.855, 2.33),
    ]),
    ("L3", "Ligne 3 - Aéroport", "Aéro", "#dc3545", "Airport express line", [
        ("S007", "Centre Ville", 48.86, 2.35),
        ("S008", "Porte de Versailles", 48.83, 2.29),
        ("S009", "Aéroport Terminal 1", 48.9, 2.55),
    ]),
]

# (vehicle_id, route_id, current, next, destination, lat, lon, speed, heading, delay,
#  (level, percentage, passengers), minutes to arrival)
DEMO_VEHICLES = [
    ("B001", "L1", "Place de la République", "Opéra", "Gare Centrale",
     48.867, 2.36, 25, 90, 0, ("medium", 50, 30), 2),
    ("B002", "L2", "Campus Nord", "Bibliothèque Municipale", "Parc des Expositions",
     48.846, 2.311, 30, 180, 3, ("high", 80, 45), 5),
    ("B003", "L1", "Opéra", "Place de la République", "Gare Centrale",
     48.871, 2.332, 20, 270, -1, ("low", 20, 10), 1),
    ("B004", "L3", "Centre Ville", "Porte de Versailles", "Aéroport Terminal 1",
     48.861, 2.351, 40, 45, 5, ("full", 95, 55), 10),
]


def _stops(stops: List[Tuple]) -> List[RouteStop]:
    return [
        RouteStop(stop_id=stop_id, name=name, location=Location(latitude=lat, longitude=lon), order=i + 1)
        for i, (stop_id, name, lat, lon) in enumerate(stops)
    ]


def build_demo_routes() -> List[Route]:
    return [
        Route(
            route_id=route_id,
            name=name,
            short_name=short_name,
            color=color,
            description=description,
            outbound=_stops(stops),
            inbound=_stops(list(reversed(stops))),
        )
        for route_id, name, short_name, color, description, stops in DEMO_ROUTES
    ]


def build_demo_vehicles(clock: Clock = None) -> List[Vehicle]:
    now = (clock or SystemClock()).now()
    vehicles = []
    for (vehicle_id, route_id, current, next_stop, destination,
         lat, lon, speed, heading, delay, (level, percentage, passengers), eta) in DEMO_VEHICLES:
        vehicles.append(Vehicle(
            vehicle_id=vehicle_id,
            route_id=route_id,
            location=Location(latitude=lat, longitude=lon),
            speed=speed,
            heading=heading,
            delay=delay,
            occupancy=Occupancy(level=level, percentage=percentage, passenger_count=passengers),
            status=VehicleStatus.ACTIVE,
            current_stop=current,
            next_stop=next_stop,
            destination=destination,
            last_updated=now,
            estimated_arrival=now + timedelta(minutes=eta),
        ))
    return vehicles


async def _missing(store: Store, entity_type: EntityType, entities: list) -> list:
    stored = {entity.id for entity in await store.find(entity_type)}
    return [entity for entity in entities if entity.id not in stored]


async def seed_demo_fleet(store: Store, clock: Clock = None) -> int:
    """
    Insert the demo routes and vehicles the store does not hold yet

    Entities already stored keep their persisted state.

    Returns:
        Number of vehicles inserted
    """
    routes = await _missing(store, EntityType.ROUTE, build_demo_routes())
    vehicles = await _missing(store, EntityType.VEHICLE, build_demo_vehicles(clock))

    if routes:
        await store.insert_many(EntityType.ROUTE, routes)
    if vehicles:
        await store.insert_many(EntityType.VEHICLE, vehicles)

    logger.info("Seeded demo fleet: %d routes, %d vehicles", len(routes), len(vehicles))
    return len(vehicles)

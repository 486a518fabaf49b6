"""
Broadcast Gateway

Fans vehicle state out to observers:
- connection:success - greeting, once per new connection
- vehicles:snapshot  - all active vehicles, once per new connection
- vehicle:update     - every simulated change, to all observers
- vehicle:update     - reply to a vehicle:request, to the requester only

Route display fields are joined at event construction time through a
read-through lookup with a short-lived route cache.
"""

import logging
import time
from typing import Any, Dict, List, Optional, Tuple

from fleetcast import __version__
from fleetcast.models import Route, Vehicle
from fleetcast.scheduling.clock import Clock, SystemClock
from fleetcast.store.base import EntityType, Store

from .channel import ObserverChannel
from .events import (
    ClientEvent,
    ConnectionSuccessData,
    LocationData,
    OccupancyData,
    ServerEvent,
    VehicleRequest,
    VehicleUpdateData,
    VehiclesSnapshotData,
)


logger = logging.getLogger(__name__)


class BroadcastGateway:
    """
    Observer-facing side of the fleet core

    Usage:
        gateway = BroadcastGateway(store, channel)
        gateway.attach()
        await gateway.publish_vehicle_update(vehicle)
    """

    def __init__(self,
                 store: Store,
                 channel: ObserverChannel,
                 clock: Clock = None,
                 config: dict = None):
        """
        Args:
            store: Store to read vehicles and routes from
            channel: Observer transport
            clock: Time source for snapshot timestamps
            config: Options (routeCacheTtl seconds, snapshotLimit)
        """
        config = config or {}
        self.store = store
        self.channel = channel
        self.clock = clock or SystemClock()
        self.route_cache_ttl = config.get('routeCacheTtl', 30.0)
        self.snapshot_limit = config.get('snapshotLimit', 1000)

        self._route_cache: Dict[str, Tuple[float, Optional[Route]]] = {}
        self._attached = False

        # Statistics
        self.snapshots_sent = 0
        self.updates_published = 0
        self.requests_answered = 0

    def attach(self):
        """Register connection and request callbacks on the channel"""
        if self._attached:
            return
        self.channel.on_connect(self.handle_connect)
        self.channel.on_disconnect(self.handle_disconnect)
        self.channel.on_message(ClientEvent.VEHICLE_REQUEST.value, self.handle_vehicle_request)
        self._attached = True

    # ============================================
    # Observer Events
    # ============================================

    async def handle_connect(self, observer_id: str):
        """Greet a new observer, then send it the active-fleet snapshot"""
        welcome = ConnectionSuccessData(timestamp=self.clock.now().isoformat(), serverVersion=__version__)
        await self.channel.send_to(observer_id, ServerEvent.CONNECTION_SUCCESS.value, welcome.model_dump())

        vehicles = await self.store.find_active(EntityType.VEHICLE, limit=self.snapshot_limit)
        events = [await self.build_vehicle_event(v) for v in vehicles]

        snapshot = VehiclesSnapshotData(
            vehicles=events,
            count=len(events),
            timestamp=self.clock.now().isoformat()
        )
        await self.channel.send_to(observer_id, ServerEvent.VEHICLES_SNAPSHOT.value, snapshot.model_dump())
        self.snapshots_sent += 1

    async def handle_disconnect(self, observer_id: str):
        logger.debug("Observer %s left", observer_id)

    async def handle_vehicle_request(self, observer_id: str, data: Any):
        """
        Reply with one vehicle's current state

        Args:
            observer_id: Requesting observer
            data: Vehicle id, or {"vehicleId": ...}
        """
        if isinstance(data, dict):
            try:
                vehicle_id = VehicleRequest.model_validate(data).vehicleId
            except ValueError:
                logger.debug("Malformed vehicle request from %s: %s", observer_id, data)
                return
        else:
            vehicle_id = data
        if not vehicle_id:
            return

        vehicle = await self.store.get_by_id(EntityType.VEHICLE, str(vehicle_id))
        if vehicle is None:
            logger.debug("Vehicle %s requested by %s not found", vehicle_id, observer_id)
            return

        event = await self.build_vehicle_event(vehicle)
        await self.channel.send_to(observer_id, ServerEvent.VEHICLE_UPDATE.value, event.model_dump())
        self.requests_answered += 1

    # ============================================
    # Publishing
    # ============================================

    async def publish_vehicle_update(self, vehicle: Vehicle):
        """Broadcast one vehicle's state to all observers"""
        event = await self.build_vehicle_event(vehicle)
        await self.channel.broadcast(ServerEvent.VEHICLE_UPDATE.value, event.model_dump())
        self.updates_published += 1

    async def publish_vehicle_updates(self, vehicles: List[Vehicle]):
        for vehicle in vehicles:
            await self.publish_vehicle_update(vehicle)

    async def build_vehicle_event(self, vehicle: Vehicle) -> VehicleUpdateData:
        """Denormalized event payload for `vehicle`"""
        route = await self.get_route(vehicle.route_id)

        return VehicleUpdateData(
            vehicleId=vehicle.vehicle_id,
            routeId=vehicle.route_id,
            routeName=route.name if route else None,
            routeColor=route.color if route else None,
            location=LocationData(
                latitude=vehicle.location.latitude,
                longitude=vehicle.location.longitude
            ),
            speed=vehicle.speed,
            heading=vehicle.heading,
            delay=vehicle.delay,
            occupancy=OccupancyData(
                level=vehicle.occupancy.level,
                percentage=vehicle.occupancy.percentage,
                passengerCount=vehicle.occupancy.passenger_count
            ),
            currentStop=vehicle.current_stop,
            nextStop=vehicle.next_stop,
            destination=vehicle.destination,
            lastUpdated=vehicle.last_updated.isoformat(),
            estimatedArrival=vehicle.estimated_arrival.isoformat() if vehicle.estimated_arrival else None,
        )

    async def get_route(self, route_id: str) -> Optional[Route]:
        """Read-through route lookup; failures degrade to no route fields"""
        cached = self._route_cache.get(route_id)
        now = time.monotonic()
        if cached and now - cached[0] < self.route_cache_ttl:
            return cached[1]

        try:
            route = await self.store.get_by_id(EntityType.ROUTE, route_id)
        except Exception:
            logger.warning("Route lookup failed for %s", route_id, exc_info=True)
            return cached[1] if cached else None

        self._route_cache[route_id] = (now, route)
        return route

    def clear_route_cache(self):
        self._route_cache.clear()

    def get_stats(self) -> dict:
        return {
            'snapshotsSent': self.snapshots_sent,
            'updatesPublished': self.updates_published,
            'requestsAnswered': self.requests_answered,
            'cachedRoutes': len(self._route_cache),
        }

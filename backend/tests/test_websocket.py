"""
WebSocket Tests

Tests cover:
- Per-observer outbox overflow policies
- Socket.IO channel connection handling and fan-out
- Broadcast gateway snapshot, updates and vehicle requests
- Route cache
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import RecordingChannel
from fleetcast.store import EntityType, StoreError
from fleetcast.websocket import (
    DISCONNECT,
    DROP_OLDEST,
    BroadcastGateway,
    ObserverOutbox,
    SocketIOObserverChannel,
)


@pytest.fixture
def sio():
    sio = MagicMock()
    sio.emit = AsyncMock()
    sio.disconnect = AsyncMock()
    return sio


def _sio_handler(sio, event):
    for call in sio.on.call_args_list:
        if call.args[0] == event:
            return call.args[1]
    raise AssertionError(f"No handler registered for {event}")


# ============================================
# Outbox Tests
# ============================================

class TestObserverOutbox:

    def test_invalid_policy(self):
        with pytest.raises(ValueError):
            ObserverOutbox("sid1", AsyncMock(), policy="block")

    @pytest.mark.asyncio
    async def test_delivers_in_order(self):
        send = AsyncMock()
        outbox = ObserverOutbox("sid1", send)
        outbox.start()

        outbox.put("vehicle:update", 1)
        outbox.put("vehicle:update", 2)
        await asyncio.wait_for(outbox.join(), timeout=1)

        assert [call.args for call in send.await_args_list] == [("vehicle:update", 1), ("vehicle:update", 2)]
        assert outbox.sent == 2
        await outbox.close()

    @pytest.mark.asyncio
    async def test_drop_oldest(self):
        send = AsyncMock()
        outbox = ObserverOutbox("sid1", send, maxsize=2, policy=DROP_OLDEST)

        for i in range(1, 4):
            assert outbox.put("vehicle:update", i) is True

        assert outbox.dropped == 1
        assert outbox.pending == 2

        outbox.start()
        await asyncio.wait_for(outbox.join(), timeout=1)
        assert [call.args[1] for call in send.await_args_list] == [2, 3]
        await outbox.close()

    @pytest.mark.asyncio
    async def test_disconnect_policy(self):
        on_overflow = AsyncMock()
        outbox = ObserverOutbox("sid1", AsyncMock(), maxsize=1, policy=DISCONNECT, on_overflow=on_overflow)

        assert outbox.put("vehicle:update", 1) is True
        assert outbox.put("vehicle:update", 2) is False
        assert outbox.closed
        assert outbox.put("vehicle:update", 3) is False
        assert len(outbox._overflow_tasks) == 1

        await asyncio.sleep(0.01)
        on_overflow.assert_awaited_once_with("sid1")
        assert not outbox._overflow_tasks

    @pytest.mark.asyncio
    async def test_send_errors_counted(self):
        send = AsyncMock(side_effect=[RuntimeError("socket closed"), None])
        outbox = ObserverOutbox("sid1", send)
        outbox.start()

        outbox.put("vehicle:update", 1)
        outbox.put("vehicle:update", 2)
        await asyncio.wait_for(outbox.join(), timeout=1)

        assert outbox.errors == 1
        assert outbox.sent == 1
        await outbox.close()

    @pytest.mark.asyncio
    async def test_close_rejects_further_events(self):
        outbox = ObserverOutbox("sid1", AsyncMock())
        outbox.start()
        await outbox.close()

        assert outbox.put("vehicle:update", 1) is False
        assert outbox.get_stats()['pending'] == 0


# ============================================
# Socket.IO Channel Tests
# ============================================

class TestSocketIOObserverChannel:

    def test_registers_connection_handlers(self, sio):
        channel = SocketIOObserverChannel(sio)
        assert _sio_handler(sio, "connect") == channel.handle_connect
        assert _sio_handler(sio, "disconnect") == channel.handle_disconnect

    @pytest.mark.asyncio
    async def test_connect_creates_outbox(self, sio):
        channel = SocketIOObserverChannel(sio)
        on_connect = AsyncMock()
        channel.on_connect(on_connect)

        await channel.handle_connect("sid1", {"REMOTE_ADDR": "127.0.0.1"})

        assert channel.observer_ids == ["sid1"]
        on_connect.assert_awaited_once_with("sid1")
        await channel.close()

    @pytest.mark.asyncio
    async def test_send_to_single_observer(self, sio):
        channel = SocketIOObserverChannel(sio)
        await channel.handle_connect("sid1")
        await channel.handle_connect("sid2")

        assert await channel.send_to("sid1", "vehicle:update", {"vehicleId": "B001"}) is True
        await asyncio.wait_for(channel.get_outbox("sid1").join(), timeout=1)

        sio.emit.assert_awaited_once_with("vehicle:update", {"vehicleId": "B001"}, room="sid1")
        await channel.close()

    @pytest.mark.asyncio
    async def test_send_to_unknown_observer(self, sio):
        channel = SocketIOObserverChannel(sio)
        assert await channel.send_to("ghost", "vehicle:update", {}) is False
        sio.emit.assert_not_called()

    @pytest.mark.asyncio
    async def test_broadcast_reaches_every_observer(self, sio):
        channel = SocketIOObserverChannel(sio)
        await channel.handle_connect("sid1")
        await channel.handle_connect("sid2")

        await channel.broadcast("vehicle:update", {"vehicleId": "B001"})
        for sid in ("sid1", "sid2"):
            await asyncio.wait_for(channel.get_outbox(sid).join(), timeout=1)

        rooms = sorted(call.kwargs["room"] for call in sio.emit.await_args_list)
        assert rooms == ["sid1", "sid2"]
        assert channel.get_stats()['connectedObservers'] == 2
        await channel.close()

    @pytest.mark.asyncio
    async def test_disconnect_retains_nothing(self, sio):
        channel = SocketIOObserverChannel(sio)
        on_disconnect = AsyncMock()
        channel.on_disconnect(on_disconnect)
        await channel.handle_connect("sid1")

        await channel.handle_disconnect("sid1")

        assert channel.observer_ids == []
        assert channel.get_outbox("sid1") is None
        on_disconnect.assert_awaited_once_with("sid1")

        # Unknown sid is ignored
        await channel.handle_disconnect("sid1")
        assert on_disconnect.await_count == 1

    @pytest.mark.asyncio
    async def test_message_dispatch(self, sio):
        channel = SocketIOObserverChannel(sio)
        callback = AsyncMock()
        channel.on_message("vehicle:request", callback)
        channel.on_message("vehicle:request", callback)

        handlers = [call for call in sio.on.call_args_list if call.args[0] == "vehicle:request"]
        assert len(handlers) == 1

        await _sio_handler(sio, "vehicle:request")("sid1", {"vehicleId": "B001"})
        assert callback.await_count == 2
        callback.assert_awaited_with("sid1", {"vehicleId": "B001"})

    @pytest.mark.asyncio
    async def test_callback_errors_contained(self, sio):
        channel = SocketIOObserverChannel(sio)
        channel.on_connect(AsyncMock(side_effect=RuntimeError("snapshot failed")))

        await channel.handle_connect("sid1")

        assert channel.observer_ids == ["sid1"]
        await channel.close()

    @pytest.mark.asyncio
    async def test_slow_observer_disconnected(self, sio):
        channel = SocketIOObserverChannel(sio, outbox_size=1, overflow_policy=DISCONNECT)
        await channel.handle_connect("sid1")

        await channel.broadcast("vehicle:update", 1)
        await channel.broadcast("vehicle:update", 2)
        await asyncio.sleep(0.05)

        sio.disconnect.assert_awaited_once_with("sid1")
        assert channel.observer_ids == []


# ============================================
# Broadcast Gateway Tests
# ============================================

@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
def gateway(fleet_store, channel, clock):
    gateway = BroadcastGateway(fleet_store, channel, clock)
    gateway.attach()
    return gateway


class TestBroadcastGateway:

    def test_attach_is_idempotent(self, gateway, channel):
        gateway.attach()
        assert len(channel._connect_callbacks) == 1
        assert len(channel._message_callbacks["vehicle:request"]) == 1

    @pytest.mark.asyncio
    async def test_snapshot_on_connect(self, gateway, channel, clock):
        await channel._notify_connect("obs1")

        events = [event for _, event, _ in channel.sent]
        assert events == ["connection:success", "vehicles:snapshot"]

        observer_id, _, snapshot = channel.sent[1]
        assert observer_id == "obs1"
        assert snapshot["count"] == 2
        assert snapshot["timestamp"] == clock.now().isoformat()
        assert sorted(v["vehicleId"] for v in snapshot["vehicles"]) == ["B001", "B002"]
        assert channel.broadcasts == []

    @pytest.mark.asyncio
    async def test_event_payload(self, gateway, fleet_store, clock):
        vehicle = await fleet_store.get_by_id(EntityType.VEHICLE, "B001")

        event = (await gateway.build_vehicle_event(vehicle)).model_dump()

        assert event["vehicleId"] == "B001"
        assert event["routeId"] == "L1"
        assert event["routeName"] == "Ligne 1 - Centre Ville"
        assert event["routeColor"] == "#007bff"
        assert event["location"] == {"latitude": 48.867, "longitude": 2.36}
        assert event["occupancy"] == {"level": "medium", "percentage": 50, "passengerCount": 30}
        assert event["nextStop"] == "Opéra"
        assert event["lastUpdated"] == clock.now().isoformat()
        assert event["estimatedArrival"] is not None

    @pytest.mark.asyncio
    async def test_unknown_route_leaves_display_fields_empty(self, gateway, make_vehicle):
        event = await gateway.build_vehicle_event(make_vehicle(route_id="L9"))
        assert event.routeName is None
        assert event.routeColor is None

    @pytest.mark.asyncio
    async def test_publish_broadcasts(self, gateway, channel, make_vehicle):
        await gateway.publish_vehicle_updates([make_vehicle("B001"), make_vehicle("B002")])

        assert [event for event, _ in channel.broadcasts] == ["vehicle:update", "vehicle:update"]
        assert channel.sent == []
        assert gateway.get_stats()['updatesPublished'] == 2

    @pytest.mark.asyncio
    async def test_vehicle_request_replies_to_requester(self, gateway, channel):
        await channel._notify_message("vehicle:request", "obs1", {"vehicleId": "B002"})

        assert len(channel.sent) == 1
        observer_id, event, data = channel.sent[0]
        assert observer_id == "obs1"
        assert event == "vehicle:update"
        assert data["delay"] == 4.0
        assert channel.broadcasts == []

    @pytest.mark.asyncio
    async def test_vehicle_request_by_plain_id(self, gateway, channel):
        await gateway.handle_vehicle_request("obs1", "B001")
        assert channel.sent[0][2]["vehicleId"] == "B001"

    @pytest.mark.asyncio
    async def test_unknown_vehicle_sends_nothing(self, gateway, channel):
        await gateway.handle_vehicle_request("obs1", {"vehicleId": "B404"})
        await gateway.handle_vehicle_request("obs1", {"wrong": "shape"})
        await gateway.handle_vehicle_request("obs1", None)
        assert channel.sent == []


class TestRouteCache:

    @pytest.mark.asyncio
    async def test_lookups_cached(self, gateway, fleet_store):
        lookups = []
        get_by_id = fleet_store.get_by_id

        async def counting_get(entity_type, entity_id):
            lookups.append(entity_id)
            return await get_by_id(entity_type, entity_id)

        fleet_store.get_by_id = counting_get

        await gateway.get_route("L1")
        await gateway.get_route("L1")
        assert lookups == ["L1"]

        gateway.clear_route_cache()
        await gateway.get_route("L1")
        assert lookups == ["L1", "L1"]

    @pytest.mark.asyncio
    async def test_failure_falls_back_to_cached_route(self, fleet_store, channel, clock):
        gateway = BroadcastGateway(fleet_store, channel, clock, config={'routeCacheTtl': 0})
        assert (await gateway.get_route("L1")).name == "Ligne 1 - Centre Ville"

        fleet_store.get_by_id = AsyncMock(side_effect=StoreError("timeout"))
        assert (await gateway.get_route("L1")).name == "Ligne 1 - Centre Ville"
        assert await gateway.get_route("L2") is None

"""
WebSocket Package

Real-time fan-out of fleet state to observers using Socket.IO.

Components:
- events: Event names and payload models
- channel: Observer channel interface and bounded per-observer outbox
- emitter: python-socketio channel implementation
- gateway: Snapshot, update and request handling

Usage:
    from fleetcast.websocket import BroadcastGateway, SocketIOObserverChannel

    channel = SocketIOObserverChannel(sio)
    gateway = BroadcastGateway(store, channel)
    gateway.attach()
"""

from .events import ClientEvent, ServerEvent, VehicleUpdateData, VehiclesSnapshotData
from .channel import DISCONNECT, DROP_OLDEST, ObserverChannel, ObserverOutbox
from .emitter import SocketIOObserverChannel
from .gateway import BroadcastGateway

__all__ = [
    "ClientEvent",
    "ServerEvent",
    "VehicleUpdateData",
    "VehiclesSnapshotData",
    "DISCONNECT",
    "DROP_OLDEST",
    "ObserverChannel",
    "ObserverOutbox",
    "SocketIOObserverChannel",
    "BroadcastGateway",
]

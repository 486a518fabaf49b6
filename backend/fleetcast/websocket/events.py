"""
WebSocket Event Type Definitions

Event names and payload models exchanged with fleet observers.

Events are categorized as:
- Server → Client: Updates pushed from backend
- Client → Server: Requests from observers

Payload field names are camelCase on the wire and are a stable schema
for existing observers.
"""

from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel


# ============================================
# Event Name Constants
# ============================================

class ServerEvent(str, Enum):
    """Events emitted from server to client"""

    # Connection
    CONNECTION_SUCCESS = "connection:success"

    # Vehicle updates
    VEHICLES_SNAPSHOT = "vehicles:snapshot"
    VEHICLE_UPDATE = "vehicle:update"


class ClientEvent(str, Enum):
    """Events received from client"""

    # Connection
    CONNECT = "connect"
    DISCONNECT = "disconnect"

    # Vehicle requests
    VEHICLE_REQUEST = "vehicle:request"


# ============================================
# Server → Client Event Data Models
# ============================================

class ConnectionSuccessData(BaseModel):
    """Data for connection:success event"""
    message: str = "Connected to fleet updates"
    timestamp: str
    serverVersion: str = "1.0.0"


class LocationData(BaseModel):
    latitude: float
    longitude: float


class OccupancyData(BaseModel):
    level: Literal["low", "medium", "high", "full"]
    percentage: float
    passengerCount: int


class VehicleUpdateData(BaseModel):
    """
    Data for vehicle:update event

    Denormalized vehicle state: route display fields are joined in at
    event construction time.
    """
    vehicleId: str
    routeId: str
    routeName: Optional[str] = None
    routeColor: Optional[str] = None
    location: LocationData
    speed: float
    heading: float
    delay: float
    occupancy: OccupancyData
    currentStop: str
    nextStop: str
    destination: str
    lastUpdated: str                    # ISO-8601
    estimatedArrival: Optional[str] = None


class VehiclesSnapshotData(BaseModel):
    """Data for vehicles:snapshot event (sent once per connection)"""
    vehicles: List[VehicleUpdateData]
    count: int
    timestamp: str


# ============================================
# Client → Server Event Data Models
# ============================================

class VehicleRequest(BaseModel):
    """Data for vehicle:request event"""
    vehicleId: str

"""
Vehicle Data Models

Fleet vehicle model tracked by the simulation scheduler and broadcast
to observers. Vehicles are owned by the fleet-management collaborator;
the core only mutates position, speed, heading and delay.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class VehicleStatus(str, Enum):
    """Operational status"""
    ACTIVE = "active"
    INACTIVE = "inactive"
    MAINTENANCE = "maintenance"


class Location(BaseModel):
    """GPS position"""
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)

    class Config:
        json_schema_extra = {
            "example": {"latitude": 48.867, "longitude": 2.36}
        }


class Occupancy(BaseModel):
    """Passenger load"""
    level: Literal['low', 'medium', 'high', 'full'] = 'medium'
    percentage: float = Field(default=50, ge=0, le=100)
    passenger_count: int = Field(default=0, ge=0)


class Vehicle(BaseModel):
    """
    Fleet vehicle

    Represents one vehicle running on a route, with its live position,
    delay and load.
    """
    # Identity
    vehicle_id: str
    route_id: str

    # Position & Movement
    location: Location
    speed: float = Field(default=0.0, ge=0)     # km/h
    heading: float = 0.0                        # degrees 0-360
    delay: float = 0.0                          # minutes, signed

    # Load
    occupancy: Occupancy = Field(default_factory=Occupancy)

    # State
    status: VehicleStatus = VehicleStatus.ACTIVE

    # Stops
    current_stop: str = ""
    next_stop: str = ""
    destination: str = ""

    # Timestamps
    last_updated: datetime = Field(default_factory=utc_now)
    estimated_arrival: Optional[datetime] = None

    class Config:
        json_schema_extra = {
            "example": {
                "vehicle_id": "B001",
                "route_id": "L1",
                "location": {"latitude": 48.867, "longitude": 2.36},
                "speed": 25.0,
                "heading": 90.0,
                "delay": 0,
                "occupancy": {"level": "medium", "percentage": 50, "passenger_count": 30},
                "current_stop": "Place de la République",
                "next_stop": "Opéra",
                "destination": "Gare Centrale"
            }
        }

    @property
    def id(self) -> str:
        return self.vehicle_id

    @property
    def is_active(self) -> bool:
        return self.status == VehicleStatus.ACTIVE

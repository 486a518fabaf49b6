"""
Route Data Models

Routes are read-only from the core's point of view. They are only
consulted to denormalize display fields into vehicle events.
"""

from typing import List

from pydantic import BaseModel, Field

from .vehicle import Location


class RouteStop(BaseModel):
    """One stop of a directional stop sequence"""
    stop_id: str
    name: str
    location: Location
    order: int = 0


class Route(BaseModel):
    """
    Fixed route with two directional stop sequences
    """
    route_id: str
    name: str
    short_name: str = ""
    color: str = "#007bff"
    description: str = ""

    outbound: List[RouteStop] = Field(default_factory=list)
    inbound: List[RouteStop] = Field(default_factory=list)

    @property
    def id(self) -> str:
        return self.route_id

    def all_stops(self) -> List[RouteStop]:
        """Outbound stops followed by inbound stops"""
        return [*self.outbound, *self.inbound]

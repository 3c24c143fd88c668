"""Booking, flight and seat data models exchanged with the booking service."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ServiceKind(str, Enum):
    """Bookable add-ons handled by the agent."""
    SEAT = "seat"
    BAGGAGE = "baggage"
    PRIORITY = "priority"
    WHEELCHAIR = "wheelchair"
    PET = "pet"


class Flight(BaseModel):
    """Flight leg attached to a booking."""

    model_config = ConfigDict(populate_by_name=True)

    number: str
    origin_city: str = Field(alias="originCity")
    destination_city: str = Field(alias="destinationCity")
    date: str


class Passenger(BaseModel):
    """Passenger listed on a booking."""
    name: str
    seat: Optional[str] = None


class Booking(BaseModel):
    """Read-only booking snapshot fetched once per confirmed PNR."""

    model_config = ConfigDict(frozen=True)

    pnr: str
    flight: Flight
    passengers: list[Passenger] = Field(default_factory=list)

    @property
    def lead_passenger(self) -> Optional[str]:
        return self.passengers[0].name if self.passengers else None


class Seat(BaseModel):
    """A single available seat on a flight."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    seat_type: str = Field(alias="type")
    price: Optional[int] = None

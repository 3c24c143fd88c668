"""
In-memory booking backend used by the console demo and the test suite.

Holds three sample bookings and a small seat map per flight. Every
successful mutation is recorded so tests can assert on side effects.
"""

import logging
from copy import deepcopy
from datetime import datetime, timezone
from typing import Optional, TypedDict

from skywings.schemas.booking_schema import Booking, Seat
from skywings.tools.services import seat_price

logger = logging.getLogger(__name__)


class MutationRecord(TypedDict):
    """One accepted call to a mutating booking operation."""

    operation: str
    pnr: str
    details: dict
    recorded_at: str


BOOKINGS: dict[str, dict] = {
    "ABC123": {
        "pnr": "ABC123",
        "flight": {
            "number": "SW 501",
            "originCity": "Delhi",
            "destinationCity": "Mumbai",
            "date": "15th March 2025",
        },
        "passengers": [{"name": "Rahul Sharma", "seat": None}],
    },
    "XYZ789": {
        "pnr": "XYZ789",
        "flight": {
            "number": "SW 302",
            "originCity": "Bangalore",
            "destinationCity": "Kolkata",
            "date": "22nd March 2025",
        },
        "passengers": [
            {"name": "Priya Patel", "seat": None},
            {"name": "Kamla Patel", "seat": None},
        ],
    },
    "DEF456": {
        "pnr": "DEF456",
        "flight": {
            "number": "SW 118",
            "originCity": "Chennai",
            "destinationCity": "Hyderabad",
            "date": "2nd April 2025",
        },
        "passengers": [{"name": "Arjun Mehta", "seat": "7C"}],
    },
}


def _seat_map() -> list[dict]:
    return [
        {"id": "12A", "type": "extra-legroom", "available": True},
        {"id": "12F", "type": "extra-legroom", "available": True},
        {"id": "14A", "type": "window", "available": True},
        {"id": "14C", "type": "aisle", "available": True},
        {"id": "14D", "type": "aisle", "available": True},
        {"id": "14F", "type": "window", "available": True},
    ]


SEAT_MAPS: dict[str, list[dict]] = {
    flight["flight"]["number"]: _seat_map() for flight in BOOKINGS.values()
}

_bookings: dict[str, dict] = deepcopy(BOOKINGS)
_seats: dict[str, list[dict]] = deepcopy(SEAT_MAPS)
_mutations: list[MutationRecord] = []
_summaries: dict[str, list[str]] = {}


def _record(operation: str, pnr: str, **details) -> None:
    _mutations.append({
        "operation": operation,
        "pnr": pnr,
        "details": details,
        "recorded_at": datetime.now(timezone.utc).isoformat(),
    })
    logger.info("Mock backend %s for %s: %s", operation, pnr, details)


def get_mutations(operation: Optional[str] = None) -> list[MutationRecord]:
    """Return recorded mutations, optionally only those of one operation."""
    return [m for m in _mutations if operation is None or m["operation"] == operation]


def get_summaries(pnr: str) -> list[str]:
    """Return every summary text sent for a PNR."""
    return list(_summaries.get(pnr, []))


def reset() -> None:
    """Restore the sample data and forget recorded calls. Used by test fixtures for isolation."""
    _bookings.clear()
    _bookings.update(deepcopy(BOOKINGS))
    _seats.clear()
    _seats.update(deepcopy(SEAT_MAPS))
    _mutations.clear()
    _summaries.clear()


class MockBookingService:
    """``BookingService`` over the module-level sample data."""

    async def lookup_booking(self, pnr: str) -> Optional[Booking]:
        record = _bookings.get(pnr.upper())
        if record is None:
            logger.info("PNR %s not found", pnr)
            return None
        return Booking.model_validate(record)

    async def find_available_seat(self, flight_number: str, seat_type: str) -> Optional[Seat]:
        for seat in _seats.get(flight_number, []):
            if seat["type"] == seat_type and seat["available"]:
                return Seat(id=seat["id"], seat_type=seat["type"], price=seat_price(seat["type"]))
        return None

    async def book_seat(self, pnr: str, passenger_name: str, seat_id: str) -> bool:
        booking = _bookings.get(pnr)
        if booking is None:
            return False
        seats = _seats.get(booking["flight"]["number"], [])
        seat = next((s for s in seats if s["id"] == seat_id), None)
        if seat is None or not seat["available"]:
            return False
        seat["available"] = False
        for passenger in booking["passengers"]:
            if passenger["name"] == passenger_name:
                passenger["seat"] = seat_id
        _record("book_seat", pnr, passenger_name=passenger_name, seat_id=seat_id)
        return True

    async def add_baggage(self, pnr: str, kg: int) -> bool:
        if pnr not in _bookings or kg < 1:
            return False
        _record("add_baggage", pnr, kg=kg)
        return True

    async def enable_priority(self, pnr: str) -> bool:
        if pnr not in _bookings:
            return False
        _record("enable_priority", pnr)
        return True

    async def register_wheelchair(self, pnr: str, passenger_name: str, assistance_type: str) -> bool:
        if pnr not in _bookings:
            return False
        _record(
            "register_wheelchair", pnr,
            passenger_name=passenger_name, assistance_type=assistance_type,
        )
        return True

    async def send_summary(self, pnr: str, summary_text: str) -> bool:
        if pnr not in _bookings:
            return False
        _summaries.setdefault(pnr, []).append(summary_text)
        _record("send_summary", pnr, length=len(summary_text))
        return True

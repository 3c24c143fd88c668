"""Shared test fixtures and helpers."""

import asyncio
from typing import Optional

import pytest

from skywings.conversation.dialog_manager import DialogManager
from skywings.conversation.session_store import SessionStore
from skywings.conversation.state_machine import DialogStateMachine
from skywings.schemas.booking_schema import Booking, Seat
from skywings.schemas.conversation_schema import TurnResult
from skywings.tools import mock_booking
from skywings.tools.booking import BookingServiceError
from skywings.tools.mock_booking import MockBookingService


@pytest.fixture
def state_machine():
    return DialogStateMachine()


@pytest.fixture(autouse=True)
def reset_mock_backend():
    mock_booking.reset()
    yield
    mock_booking.reset()


@pytest.fixture
def booking_service():
    return MockBookingService()


@pytest.fixture
def store():
    return SessionStore()


@pytest.fixture
def manager(booking_service, store):
    return DialogManager(booking_service=booking_service, store=store)


class FlakyBookingService(MockBookingService):
    """Mock backend whose mutations (and optionally lookups) fail until ``healthy`` is set."""

    def __init__(self, mode: str = "raise", fail_lookups: bool = False) -> None:
        self.mode = mode
        self.fail_lookups = fail_lookups
        self.healthy = False
        self.attempts: list[str] = []

    async def _fail(self, operation: str) -> bool:
        self.attempts.append(operation)
        if self.mode == "raise":
            raise BookingServiceError("backend unavailable", operation)
        return False

    async def lookup_booking(self, pnr: str) -> Optional[Booking]:
        if self.fail_lookups and not self.healthy:
            self.attempts.append("lookup_booking")
            raise BookingServiceError("backend unavailable", "lookup_booking")
        return await super().lookup_booking(pnr)

    async def book_seat(self, pnr: str, passenger_name: str, seat_id: str) -> bool:
        if not self.healthy:
            return await self._fail("book_seat")
        return await super().book_seat(pnr, passenger_name, seat_id)

    async def add_baggage(self, pnr: str, kg: int) -> bool:
        if not self.healthy:
            return await self._fail("add_baggage")
        return await super().add_baggage(pnr, kg)

    async def send_summary(self, pnr: str, summary_text: str) -> bool:
        if not self.healthy:
            return await self._fail("send_summary")
        return await super().send_summary(pnr, summary_text)


class SlowBookingService(MockBookingService):
    """Mock backend whose booking lookup takes ``delay`` seconds."""

    def __init__(self, delay: float) -> None:
        self.delay = delay

    async def lookup_booking(self, pnr: str) -> Optional[Booking]:
        await asyncio.sleep(self.delay)
        return await super().lookup_booking(pnr)

    async def find_available_seat(self, flight_number: str, seat_type: str) -> Optional[Seat]:
        await asyncio.sleep(self.delay)
        return await super().find_available_seat(flight_number, seat_type)


async def play(manager: DialogManager, session_id: str, *utterances: str) -> TurnResult:
    """Start a session, feed it every utterance, and return the last turn result."""
    await manager.start_session(session_id)
    result = None
    for utterance in utterances:
        result = await manager.handle_turn(session_id, utterance)
    return result


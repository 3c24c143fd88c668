"""
Booking collaborator contract.

The dialog manager only ever talks to a ``BookingService``. Lookups return
``None`` when nothing matches; mutations return ``True``/``False``. Transport
problems (unreachable backend, bad responses) raise ``BookingServiceError``.
"""

import logging
from typing import Optional, Protocol

from skywings.config import AppConfig, settings
from skywings.schemas.booking_schema import Booking, Seat

logger = logging.getLogger(__name__)


class BookingServiceError(Exception):
    """The booking backend could not complete a call."""

    def __init__(self, message: str, operation: str = "", status_code: Optional[int] = None):
        self.message = message
        self.operation = operation
        self.status_code = status_code
        super().__init__(message)


class BookingService(Protocol):
    """Operations the dialog manager needs from the booking backend."""

    async def lookup_booking(self, pnr: str) -> Optional[Booking]: ...

    async def find_available_seat(self, flight_number: str, seat_type: str) -> Optional[Seat]: ...

    async def book_seat(self, pnr: str, passenger_name: str, seat_id: str) -> bool: ...

    async def add_baggage(self, pnr: str, kg: int) -> bool: ...

    async def enable_priority(self, pnr: str) -> bool: ...

    async def register_wheelchair(self, pnr: str, passenger_name: str, assistance_type: str) -> bool: ...

    async def send_summary(self, pnr: str, summary_text: str) -> bool: ...


def build_booking_service(config: Optional[AppConfig] = None) -> BookingService:
    """Create the booking collaborator selected by ``BOOKING_BACKEND``."""
    config = config or settings
    backend = config.booking_backend.backend
    if backend == "http":
        from skywings.tools.http_booking import HttpBookingService

        logger.info("Using HTTP booking backend at %s", config.booking_backend.base_url)
        return HttpBookingService(
            base_url=config.booking_backend.base_url,
            api_key=config.booking_backend.api_key,
            timeout=config.booking_backend.http_timeout_sec,
        )
    if backend == "mock":
        from skywings.tools.mock_booking import MockBookingService

        logger.info("Using in-memory mock booking backend")
        return MockBookingService()
    raise ValueError(f"Unknown booking backend: {backend!r}")

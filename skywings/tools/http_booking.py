"""
HTTP booking backend.

Talks to the airline booking API over REST. Every transport failure and
every non-2xx status other than a not-found lookup is raised as
``BookingServiceError`` so the dialog manager can answer with a retry prompt.
"""

import logging
from typing import Any, Optional

import httpx

from skywings.schemas.booking_schema import Booking, Seat
from skywings.tools.booking import BookingServiceError

logger = logging.getLogger(__name__)


class HttpBookingService:
    """``BookingService`` backed by the airline booking REST API."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self.client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers=headers,
            transport=transport,
        )

    async def _request(self, operation: str, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self.client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            logger.warning("Booking API %s failed: %s", operation, e)
            raise BookingServiceError(f"Connection error: {e}", operation) from e

    @staticmethod
    def _check(operation: str, response: httpx.Response) -> dict:
        if response.is_error:
            logger.warning("Booking API %s returned HTTP %d", operation, response.status_code)
            raise BookingServiceError(
                f"HTTP error: {response.status_code}", operation, response.status_code
            )
        try:
            return response.json()
        except ValueError as e:
            raise BookingServiceError("Invalid JSON in response", operation) from e

    async def _mutate(self, operation: str, url: str, payload: dict) -> bool:
        response = await self._request(operation, "POST", url, json=payload)
        data = self._check(operation, response)
        return bool(data.get("success", False))

    async def lookup_booking(self, pnr: str) -> Optional[Booking]:
        response = await self._request("lookup_booking", "POST", "/api/verify-pnr", json={"pnr": pnr})
        if response.status_code == 404:
            return None
        data = self._check("lookup_booking", response)
        if not data.get("valid", False):
            return None
        try:
            return Booking.model_validate(data["booking"])
        except (KeyError, ValueError) as e:
            raise BookingServiceError(f"Malformed booking for {pnr}", "lookup_booking") from e

    async def find_available_seat(self, flight_number: str, seat_type: str) -> Optional[Seat]:
        response = await self._request(
            "find_available_seat", "GET",
            f"/api/seats/{flight_number}/available/{seat_type}",
        )
        if response.status_code == 404:
            return None
        data = self._check("find_available_seat", response)
        seat = data.get("seat")
        if not seat:
            return None
        try:
            return Seat.model_validate(seat)
        except ValueError as e:
            raise BookingServiceError("Malformed seat record", "find_available_seat") from e

    async def book_seat(self, pnr: str, passenger_name: str, seat_id: str) -> bool:
        return await self._mutate(
            "book_seat", "/api/book-seat",
            {"pnr": pnr, "passengerName": passenger_name, "seatId": seat_id},
        )

    async def add_baggage(self, pnr: str, kg: int) -> bool:
        return await self._mutate("add_baggage", "/api/add-baggage", {"pnr": pnr, "weight": kg})

    async def enable_priority(self, pnr: str) -> bool:
        return await self._mutate("enable_priority", "/api/priority-service", {"pnr": pnr})

    async def register_wheelchair(self, pnr: str, passenger_name: str, assistance_type: str) -> bool:
        return await self._mutate(
            "register_wheelchair", "/api/wheelchair",
            {"pnr": pnr, "passengerName": passenger_name, "assistanceType": assistance_type},
        )

    async def send_summary(self, pnr: str, summary_text: str) -> bool:
        return await self._mutate(
            "send_summary", "/api/send-whatsapp", {"pnr": pnr, "message": summary_text}
        )

    async def aclose(self) -> None:
        await self.client.aclose()

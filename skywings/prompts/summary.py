"""WhatsApp booking summary text."""

from typing import Optional

from skywings.config import AppConfig, settings
from skywings.schemas.session_schema import Session


def build_booking_summary(session: Session, config: Optional[AppConfig] = None) -> str:
    """
    Format the summary sent to the customer's WhatsApp.

    Pure function: reads the session, never mutates it. The payment link is
    only included when something is due.
    """
    config = config or settings
    airline = config.airline
    currency = airline.currency_label

    lines = [f"{airline.name} Booking Summary", ""]
    lines.append(f"PNR: {session.pnr or '-'}")
    passenger = session.customer_name or (session.booking.lead_passenger if session.booking else None)
    lines.append(f"Passenger: {passenger or '-'}")

    if session.booking:
        flight = session.booking.flight
        lines.append(f"Flight: {flight.number}")
        lines.append(f"Route: {flight.origin_city} -> {flight.destination_city}")
        lines.append(f"Date: {flight.date}")

    if session.completed_services:
        lines.append("")
        lines.append("Services Added:")
        for service in session.completed_services:
            price = "FREE" if service.is_free else f"{currency} {service.price}"
            lines.append(f"- {service.detail} - {price}")

    forwarded: list[str] = []
    if session.pet_request is not None:
        forwarded.append(f"Pet travel: {session.pet_request.describe()}")
    forwarded.extend(f"Request: {text}" for text in session.unknown_requests)
    if forwarded:
        lines.append("")
        lines.append("Forwarded to our specialist team:")
        lines.extend(f"- {item}" for item in forwarded)

    total = session.total_due
    lines.append("")
    lines.append(f"Total: {currency} {total}")
    if total > 0 and session.pnr:
        lines.append(f"Pay at: {airline.payment_link_base}/{session.pnr}")

    return "\n".join(lines)

"""Add-on catalog and the pricing policy for each add-on."""

import math
from typing import Optional

from skywings.config import PricingConfig, settings
from skywings.schemas.booking_schema import ServiceKind
from skywings.utils import join_spoken

SERVICE_CATALOG: dict[ServiceKind, dict] = {
    ServiceKind.SEAT: {
        "name": "seat selection",
        "description": "Window, aisle or extra legroom seat on the booked flight.",
        "complimentary": False,
    },
    ServiceKind.BAGGAGE: {
        "name": "extra baggage",
        "description": "Additional checked baggage charged per started 5 kg block.",
        "complimentary": False,
    },
    ServiceKind.PRIORITY: {
        "name": "priority check-in",
        "description": "Priority check-in and boarding.",
        "complimentary": True,
    },
    ServiceKind.WHEELCHAIR: {
        "name": "wheelchair assistance",
        "description": "Wheelchair support from gate to gate, check-in to boarding, or all the way.",
        "complimentary": True,
    },
    ServiceKind.PET: {
        "name": "pet travel",
        "description": "Travelling with a pet. Completed by the specialist team.",
        "complimentary": False,
    },
}

SEAT_TYPE_LABELS: dict[str, str] = {
    "window": "window",
    "aisle": "aisle",
    "extra-legroom": "extra legroom",
}

WHEELCHAIR_LABELS: dict[str, str] = {
    "gate-to-gate": "gate-to-gate",
    "checkin-to-boarding": "check-in to boarding",
    "arrival-assistance": "arrival assistance",
    "full-assistance": "full assistance from check-in to destination",
}


def get_service_name(kind: ServiceKind) -> str:
    return SERVICE_CATALOG[kind]["name"]


def get_service_menu(conjunction: str = "or") -> str:
    """Spoken list of every add-on the agent can help with."""
    return join_spoken([info["name"] for info in SERVICE_CATALOG.values()], conjunction)


def seat_type_label(seat_type: str) -> str:
    return SEAT_TYPE_LABELS.get(seat_type, seat_type.replace("-", " "))


def wheelchair_label(level: str) -> str:
    return WHEELCHAIR_LABELS.get(level, level.replace("-", " "))


def seat_price(seat_type: str, pricing: Optional[PricingConfig] = None) -> Optional[int]:
    """Fixed price for a seat type, or None for a type that is not sold."""
    pricing = pricing or settings.pricing
    prices = {
        "window": pricing.window_seat_price,
        "aisle": pricing.aisle_seat_price,
        "extra-legroom": pricing.extra_legroom_seat_price,
    }
    return prices.get(seat_type)


def baggage_cost(kg: int, pricing: Optional[PricingConfig] = None) -> int:
    """Cost of extra baggage: every started block is charged in full.

    Examples:
        >>> baggage_cost(1), baggage_cost(5), baggage_cost(6), baggage_cost(11)
        (500, 500, 1000, 1500)
    """
    if kg < 1:
        raise ValueError(f"Baggage weight must be a positive number of kg, got {kg}")
    pricing = pricing or settings.pricing
    return math.ceil(kg / pricing.baggage_block_kg) * pricing.baggage_block_price

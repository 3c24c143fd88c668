"""Spoken lines for every step of the add-on call flow."""

from typing import Optional

from skywings.config import AirlineConfig, settings
from skywings.schemas.booking_schema import Booking, ServiceKind
from skywings.schemas.session_schema import PetPending
from skywings.tools.services import get_service_menu, get_service_name, seat_type_label, wheelchair_label
from skywings.utils import join_spoken

RETRY_PROMPT = "I encountered an error, let me try again."


def _join(*parts: Optional[str]) -> str:
    return " ".join(p.strip() for p in parts if p and p.strip())


def greeting(airline: Optional[AirlineConfig] = None) -> str:
    airline = airline or settings.airline
    return (
        f"Hello, welcome to {airline.name} Customer Service. "
        f"This is {airline.agent_persona} speaking. May I know your good name please?"
    )


def ask_name_again() -> str:
    return "I'm sorry, I couldn't catch your name. Could you please tell me your name?"


def welcome(name: str) -> str:
    return (
        f"Hello {name}! It's great to have you on the call. How may I assist you today? "
        f"I can help you with {get_service_menu()}. What would you like help with?"
    )


def list_services(name: Optional[str]) -> str:
    lead = f"{name}, I" if name else "I"
    return f"{lead} can help you with {get_service_menu()}. Which service would you like?"


def ask_pnr(name: Optional[str], services: list[ServiceKind]) -> str:
    wanted = join_spoken([get_service_name(s) for s in services]) if services else "your request"
    lead = f"Sure {name}," if name else "Sure,"
    return (
        f"{lead} I can help you with {wanted}. "
        "Could you please provide your PNR or booking reference number?"
    )


def ask_pnr_again() -> str:
    return "I couldn't catch the PNR number. Could you please spell it out? For example, A-B-C-1-2-3."


def pnr_not_found(pnr: str) -> str:
    return (
        f"I'm sorry, I couldn't find a booking with PNR {pnr}. "
        "Could you please check and provide the correct PNR?"
    )


def confirm_flight(booking: Booking) -> str:
    flight = booking.flight
    return (
        f"Let me help you step by step. First, just to confirm, your PNR is {booking.pnr}, "
        f"and your flight is from {flight.origin_city} to {flight.destination_city} "
        f"on {flight.date}. Is that correct?"
    )


def confirm_flight_again(booking: Booking) -> str:
    flight = booking.flight
    return (
        f"I didn't catch that. Is your flight from {flight.origin_city} to "
        f"{flight.destination_city} correct? Please say yes or no."
    )


def flight_disputed() -> str:
    return "Let me re-confirm the PNR number. Could you please provide your correct PNR?"


# --- Seat ---

def ask_seat_type(prefix: str = "") -> str:
    return _join(prefix, "For seat selection, would you prefer a window, aisle, or extra legroom seat?")


def ask_seat_type_again() -> str:
    return "I couldn't get that. Would you prefer a window seat, aisle seat, or extra legroom seat?"


def offer_seat(seat_type: str, seat_id: str, price: int, prefix: str = "",
               airline: Optional[AirlineConfig] = None) -> str:
    airline = airline or settings.airline
    return _join(
        prefix,
        f"Checking availability... I have {seat_type_label(seat_type)} seat {seat_id} "
        f"available for {airline.currency_label} {price}. Would you like me to book that?",
    )


def seat_unavailable(seat_type: str) -> str:
    return (
        f"I'm sorry, there are no {seat_type_label(seat_type)} seats left on this flight. "
        "Would you like a different seat type: window, aisle, or extra legroom?"
    )


def seat_booked(seat_type: str, seat_id: str) -> str:
    return f"Done! Your {seat_type_label(seat_type)} seat {seat_id} is confirmed."


def seat_declined() -> str:
    return "No problem. Would you like to choose a different seat type: window, aisle, or extra legroom?"


def confirm_seat_again() -> str:
    return "Would you like me to book this seat? Please say yes or no."


# --- Baggage ---

def ask_baggage_amount(prefix: str = "") -> str:
    return _join(prefix, "For extra baggage, how many extra kilograms do you need?")


def ask_baggage_amount_again() -> str:
    return "Could you please tell me how many extra kilograms you need? For example, 5 kg or 10 kg."


def quote_baggage(kg: int, cost: int, prefix: str = "", airline: Optional[AirlineConfig] = None) -> str:
    airline = airline or settings.airline
    pricing = settings.pricing
    return _join(
        prefix,
        f"Alright. For domestic flights, it's {airline.currency_label} {pricing.baggage_block_price} "
        f"per {pricing.baggage_block_kg} kg, so {airline.currency_label} {cost} for {kg} kg. "
        "Shall I add that to your booking?",
    )


def confirm_baggage_again() -> str:
    return "Would you like me to add the extra baggage? Please say yes or no."


def baggage_added(kg: int) -> str:
    return f"Added! {kg} kg of extra baggage is on your booking."


# --- Priority ---

def offer_priority(prefix: str = "") -> str:
    return _join(
        prefix,
        "Priority check-in and boarding is complimentary. Would you like me to activate it for you?",
    )


def confirm_priority_again() -> str:
    return "Would you like me to activate priority check-in? Please say yes or no."


def priority_enabled() -> str:
    return "All set! Priority check-in and boarding is now active."


# --- Wheelchair ---

def ask_wheelchair_passenger(prefix: str = "") -> str:
    return _join(prefix, "For wheelchair assistance, may I have the name of the passenger who needs it?")


def ask_wheelchair_passenger_again() -> str:
    return "Could you please tell me the full name of the passenger who needs wheelchair assistance?"


def ask_wheelchair_type(passenger_name: str) -> str:
    return (
        f"Thank you. What type of assistance does {passenger_name} need? Gate-to-gate, "
        "check-in to boarding, or full assistance from check-in to destination?"
    )


def wheelchair_arranged(name: Optional[str], passenger_name: str, level: str) -> str:
    lead = f"Got it, {name}." if name else "Got it."
    return (
        f"{lead} Wheelchair assistance for {passenger_name} with {wheelchair_label(level)} "
        "is arranged. This is a complimentary service."
    )


# --- Pet ---

def ask_pet_details(prefix: str = "") -> str:
    return _join(
        prefix,
        "For pet travel, could you please tell me your pet's breed and approximate weight in kilograms?",
    )


def ask_pet_details_again() -> str:
    return "Could you please tell me your pet's breed and approximate weight in kilograms?"


def pet_noted(pet: PetPending) -> str:
    return (
        "Got it. For pets on board, I'll need to connect you to our specialist team who will "
        f"complete the booking and documentation for your {pet.describe()}."
    )


# --- Wrap-up ---

def offer_summary(transfer_required: bool, has_other_requests: bool = False, prefix: str = "") -> str:
    if transfer_required:
        return _join(
            prefix,
            "I'll need to transfer you to a specialist for your other requests." if has_other_requests else "",
            "Before I transfer you, would you like me to send a summary of everything "
            "we've completed so far to your WhatsApp?",
        )
    return _join(
        prefix,
        "Is there anything else I can help you with, or would you like me to send a summary "
        "to your WhatsApp?",
    )


def confirm_summary_again() -> str:
    return "Would you like me to send a summary to your WhatsApp? Please say yes or no."


def ask_more_services() -> str:
    return "Sure! What else would you like help with?"


def summary_sent_and_transfer(details: list[str]) -> str:
    booked = f" including: {join_spoken(details)}" if details else ""
    return (
        f"Perfect! I'm sending you a WhatsApp message with your booking summary{booked}. "
        "Please check your phone for the message. Now, I'll transfer you to our specialist "
        "team. Please hold for a moment."
    )


def summary_sent_and_goodbye(name: Optional[str], airline: Optional[AirlineConfig] = None) -> str:
    airline = airline or settings.airline
    who = f", {name}" if name else ""
    return (
        "Perfect! I'm sending you a WhatsApp message with your booking summary. "
        f"Thank you for calling {airline.name}{who}! Have a wonderful flight!"
    )


def transfer_without_summary() -> str:
    return "Alright. I'll now transfer you to our specialist team. Please hold for a moment."


def goodbye(name: Optional[str], airline: Optional[AirlineConfig] = None) -> str:
    airline = airline or settings.airline
    who = f", {name}" if name else ""
    return f"Thank you for calling {airline.name}{who}! Have a wonderful flight!"


def call_closed(transferred: bool) -> str:
    if transferred:
        return "You're being transferred to our specialist team. Please hold for a moment."
    return "This call has ended. Please call again if you need anything else."

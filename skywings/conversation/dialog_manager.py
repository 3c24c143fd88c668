"""
Turn-by-turn orchestration of the add-on call.

``DialogManager`` is the only component with decision logic. For each
utterance it runs the extractor, dispatches to the handler owning the
session's current dialog state, calls the booking collaborator when the
customer confirms something, and returns what to say next together with a
snapshot of the session.

Collaborator calls always happen before any session field is touched, so a
failing call leaves the session exactly as it was and the customer's next
"yes" retries the same step.

Usage:
    manager = DialogManager()
    greeting = await manager.start_session("call-1")
    result = await manager.handle_turn("call-1", "This is Rahul")
    result.dialog_state  # 'waiting_service_choice'
"""

import asyncio
import re
from typing import Awaitable, Callable, Optional, TypeVar

from skywings.config import AppConfig, settings
from skywings.conversation.entities import (
    DEFAULT_WHEELCHAIR_LEVEL,
    EntityKind,
    extract_stated_weight,
    guess_passenger_name,
    guess_spoken_name,
)
from skywings.conversation.intents import (
    Confirmation,
    Extraction,
    IntentKind,
    asks_for_more,
    classify_confirmation,
    extract,
    strip_small_talk,
)
from skywings.conversation.session_store import SessionStore
from skywings.conversation.state_machine import DialogState, TransitionTrigger
from skywings.logging_context import get_session_logger, set_session_id
from skywings.prompts import responses
from skywings.prompts.summary import build_booking_summary
from skywings.schemas.booking_schema import Booking, ServiceKind
from skywings.schemas.conversation_schema import CompletedService, TurnResult
from skywings.schemas.session_schema import (
    BaggagePending,
    PetPending,
    SeatPending,
    Session,
    WheelchairPending,
)
from skywings.tools.booking import BookingService, BookingServiceError, build_booking_service
from skywings.tools.services import baggage_cost, seat_price, seat_type_label, wheelchair_label

logger = get_session_logger(__name__)

T = TypeVar("T")

Handler = Callable[[Session, Extraction], Awaitable[str]]

CARRIED_SEAT_TYPE = "seat_type"
CARRIED_WEIGHT_KG = "weight_kg"


class DialogManager:
    """Single authoritative state machine behind every transport (console, voice)."""

    def __init__(
        self,
        booking_service: Optional[BookingService] = None,
        store: Optional[SessionStore] = None,
        config: Optional[AppConfig] = None,
    ) -> None:
        self.config = config or settings
        self._owns_backend = booking_service is None
        self.booking_service = booking_service or build_booking_service(self.config)
        self.store = store or SessionStore()
        self._handlers: dict[DialogState, Handler] = {
            DialogState.WAITING_NAME: self._handle_name,
            DialogState.WAITING_SERVICE_CHOICE: self._handle_service_choice,
            DialogState.WAITING_PNR: self._handle_pnr,
            DialogState.CONFIRMING_FLIGHT: self._handle_flight_confirmation,
            DialogState.SEAT_TYPE: self._handle_seat_type,
            DialogState.SEAT_CONFIRM: self._handle_seat_confirm,
            DialogState.BAGGAGE_AMOUNT: self._handle_baggage_amount,
            DialogState.BAGGAGE_CONFIRM: self._handle_baggage_confirm,
            DialogState.PRIORITY_CONFIRM: self._handle_priority_confirm,
            DialogState.WHEELCHAIR_NAME: self._handle_wheelchair_name,
            DialogState.WHEELCHAIR_TYPE: self._handle_wheelchair_type,
            DialogState.PET_DETAILS: self._handle_pet_details,
            DialogState.WHATSAPP_CONFIRM: self._handle_whatsapp_confirm,
        }

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    async def start_session(self, session_id: str) -> str:
        """Open (or restart) a call and return the greeting."""
        set_session_id(session_id)
        self.store.create(session_id, fresh=True)
        return responses.greeting(self.config.airline)

    async def handle_turn(self, session_id: str, utterance: str) -> TurnResult:
        """
        Process one customer utterance.

        Raises:
            SessionNotFoundError: If the session was never started or was evicted.
        """
        set_session_id(session_id)
        async with self.store.lock(session_id):
            session = self.store.require(session_id)
            session.turn_count += 1
            text = (utterance or "").strip()[: self.config.dialog.max_input_length]
            logger.debug("Turn %d in %s: %r", session.turn_count, session.dialog_state.value, text)

            if session.machine.is_terminal():
                response = responses.call_closed(session.dialog_state == DialogState.TRANSFER)
            else:
                extraction = extract(text)
                handler = self._handlers[session.dialog_state]
                try:
                    response = await handler(session, extraction)
                except BookingServiceError as e:
                    logger.warning(
                        "Booking service failure in %s (%s): %s",
                        session.dialog_state.value, e.operation or "unknown", e.message,
                    )
                    response = responses.RETRY_PROMPT

            return self._snapshot(session, response)

    def end_session(self, session_id: str) -> bool:
        return self.store.evict(session_id)

    async def aclose(self) -> None:
        """Release the booking backend's connections if this manager created it."""
        close = getattr(self.booking_service, "aclose", None)
        if self._owns_backend and close is not None:
            await close()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _call(self, operation: str, call: Awaitable[T]) -> T:
        """Await a collaborator call, converting a timeout into a service failure."""
        try:
            return await asyncio.wait_for(call, timeout=self.config.dialog.collaborator_timeout_sec)
        except asyncio.TimeoutError as e:
            raise BookingServiceError(
                f"{operation} timed out after {self.config.dialog.collaborator_timeout_sec}s",
                operation,
            ) from e

    @staticmethod
    def _snapshot(session: Session, response: str) -> TurnResult:
        return TurnResult(
            session_id=session.session_id,
            response=response,
            dialog_state=session.dialog_state.value,
            booking=session.booking,
            customer_name=session.customer_name,
            completed_services=list(session.completed_services),
            transfer_required=session.transfer_required,
        )

    @staticmethod
    def _seat_passenger(session: Session) -> str:
        """Passenger the seat is booked for: the caller if listed, else the lead passenger."""
        passengers = session.booking.passengers if session.booking else []
        if session.customer_name:
            for passenger in passengers:
                if passenger.name.split()[0].lower() == session.customer_name.split()[0].lower():
                    return passenger.name
        if passengers:
            return passengers[0].name
        return session.customer_name or "Passenger"

    @staticmethod
    def _carry_entities(session: Session, extraction: Extraction, services: list[ServiceKind]) -> None:
        seat_type = extraction.entity(EntityKind.SEAT_TYPE)
        if ServiceKind.SEAT in services and seat_type:
            session.carried_entities[CARRIED_SEAT_TYPE] = seat_type
        weight = extract_stated_weight(extraction.text)
        if ServiceKind.BAGGAGE in services and weight:
            session.carried_entities[CARRIED_WEIGHT_KG] = weight

    def _log_unknown_request(self, session: Session, extraction: Extraction) -> bool:
        if extraction.requested_services() or extraction.entity(EntityKind.PNR):
            return False
        if extraction.has_intent(IntentKind.HELP):
            return False
        if len(strip_small_talk(extraction.text)) < self.config.dialog.min_unknown_request_length:
            return False
        session.unknown_requests.append(extraction.text)
        logger.info("Unrecognized request logged for specialist: %r", extraction.text)
        return True

    def _complete(self, session: Session, kind: ServiceKind, detail: str, price: int = 0) -> None:
        session.completed_services.append(CompletedService(kind=kind, detail=detail, price=price))
        session.advance_service()
        logger.info("Service completed: %s (%s)", detail, price or "free")

    # ------------------------------------------------------------------
    # Intake
    # ------------------------------------------------------------------

    async def _handle_name(self, session: Session, extraction: Extraction) -> str:
        wants_service = bool(extraction.requested_services() or extraction.entity(EntityKind.PNR))
        name = guess_spoken_name(extraction.text, with_request=wants_service)
        if not name and not wants_service:
            return responses.ask_name_again()

        lookup = await self._lookup_new_pnr(session, extraction.entity(EntityKind.PNR))

        if name:
            session.customer_name = name
            logger.info("Caller identified as %s", name)
        session.machine.transition(TransitionTrigger.NAME_CAPTURED)

        if wants_service:
            return await self._intake(session, extraction, lookup)
        return responses.welcome(name)

    async def _handle_service_choice(self, session: Session, extraction: Extraction) -> str:
        return await self._intake(session, extraction)

    async def _lookup_new_pnr(self, session: Session, pnr: Optional[str]) -> tuple[bool, Optional[Booking]]:
        """Look up a spoken PNR unless the session already holds a booking."""
        if not pnr or session.pnr is not None:
            return False, None
        booking = await self._call("lookup_booking", self.booking_service.lookup_booking(pnr))
        return True, booking

    async def _intake(
        self,
        session: Session,
        extraction: Extraction,
        lookup: Optional[tuple[bool, Optional[Booking]]] = None,
    ) -> str:
        """Queue requested services, resolve the PNR, and move towards the first service."""
        services = extraction.requested_services()
        pnr = extraction.entity(EntityKind.PNR)

        if lookup is None:
            lookup = await self._lookup_new_pnr(session, pnr)
        looked_up, booking = lookup

        added = session.request_services(services)
        self._carry_entities(session, extraction, added)
        unknown = False if added else self._log_unknown_request(session, extraction)
        if booking is not None:
            session.confirm_booking(booking)

        has_work = not session.services_exhausted or unknown
        if not has_work:
            if looked_up and booking is None:
                session.machine.transition(TransitionTrigger.PNR_REQUIRED)
                return responses.pnr_not_found(pnr)
            return responses.list_services(session.customer_name)

        if session.booking is None:
            session.machine.transition(TransitionTrigger.PNR_REQUIRED)
            if looked_up:
                return responses.pnr_not_found(pnr)
            pending = session.requested_services[session.current_service_index:]
            return responses.ask_pnr(session.customer_name, pending)

        if not session.flight_confirmed:
            session.machine.transition(TransitionTrigger.BOOKING_FOUND)
            return responses.confirm_flight(session.booking)

        return await self._start_next_service(session, "Sure!")

    async def _handle_pnr(self, session: Session, extraction: Extraction) -> str:
        pnr = extraction.entity(EntityKind.PNR)
        if not pnr:
            added = session.request_services(extraction.requested_services())
            if not added:
                return responses.ask_pnr_again()
            self._carry_entities(session, extraction, added)
            pending = session.requested_services[session.current_service_index:]
            return responses.ask_pnr(session.customer_name, pending)

        booking = await self._call("lookup_booking", self.booking_service.lookup_booking(pnr))
        if booking is None:
            return responses.pnr_not_found(pnr)

        added = session.request_services(extraction.requested_services())
        self._carry_entities(session, extraction, added)
        session.confirm_booking(booking)
        if session.services_exhausted and not session.unknown_requests:
            session.machine.transition(TransitionTrigger.BOOKING_STORED)
            return responses.list_services(session.customer_name)
        session.machine.transition(TransitionTrigger.BOOKING_FOUND)
        return responses.confirm_flight(booking)

    async def _handle_flight_confirmation(self, session: Session, extraction: Extraction) -> str:
        answer = classify_confirmation(extraction.text)
        if answer == Confirmation.YES:
            session.flight_confirmed = True
            return await self._start_next_service(session, "Great!")
        if answer == Confirmation.NO:
            logger.info("Flight for %s disputed, collecting PNR again", session.pnr)
            session.clear_booking()
            session.machine.transition(TransitionTrigger.FLIGHT_DISPUTED)
            return responses.flight_disputed()
        return responses.confirm_flight_again(session.booking)

    # ------------------------------------------------------------------
    # Service sequencing
    # ------------------------------------------------------------------

    async def _start_next_service(self, session: Session, prefix: str = "") -> str:
        """Dispatch to the sub-state owning the service at the cursor, or wrap up."""
        while True:
            kind = session.current_service
            if kind is None:
                session.machine.transition(TransitionTrigger.SERVICES_EXHAUSTED)
                return responses.offer_summary(
                    session.transfer_required, bool(session.unknown_requests), prefix
                )

            if kind == ServiceKind.SEAT:
                return await self._start_seat(session, prefix)

            if kind == ServiceKind.BAGGAGE:
                kg = session.carried_entities.pop(CARRIED_WEIGHT_KG, None)
                if kg:
                    return self._quote_baggage(session, kg, prefix)
                session.machine.transition(TransitionTrigger.START_BAGGAGE)
                return responses.ask_baggage_amount(prefix)

            if kind == ServiceKind.PRIORITY:
                session.machine.transition(TransitionTrigger.START_PRIORITY)
                return responses.offer_priority(prefix)

            if kind == ServiceKind.WHEELCHAIR:
                session.machine.transition(TransitionTrigger.START_WHEELCHAIR)
                return responses.ask_wheelchair_passenger(prefix)

            if kind == ServiceKind.PET:
                session.machine.transition(TransitionTrigger.START_PET)
                return responses.ask_pet_details(prefix)

            logger.warning("Skipping unsupported service kind %r", kind)
            session.advance_service()

    async def _start_seat(self, session: Session, prefix: str) -> str:
        seat_type = session.carried_entities.pop(CARRIED_SEAT_TYPE, None)
        if seat_type:
            try:
                offer = await self._offer_seat(session, seat_type, prefix)
            except BookingServiceError as e:
                logger.warning("Seat lookup for carried %s seat failed: %s", seat_type, e.message)
                offer = None
            if offer:
                return offer
        session.machine.transition(TransitionTrigger.START_SEAT)
        return responses.ask_seat_type(prefix)

    async def _offer_seat(self, session: Session, seat_type: str, prefix: str = "") -> Optional[str]:
        """Look up a seat of the given type and offer it. None when nothing is free."""
        seat = await self._call(
            "find_available_seat",
            self.booking_service.find_available_seat(session.booking.flight.number, seat_type),
        )
        price = seat_price(seat_type, self.config.pricing)
        if seat is None or price is None:
            return None
        session.pending = SeatPending(seat_type=seat_type, seat_id=seat.id, price=price)
        session.machine.transition(TransitionTrigger.SEAT_OFFERED)
        return responses.offer_seat(seat_type, seat.id, price, prefix, self.config.airline)

    def _quote_baggage(self, session: Session, kg: int, prefix: str = "") -> str:
        cost = baggage_cost(kg, self.config.pricing)
        session.pending = BaggagePending(kg=kg, cost=cost)
        session.machine.transition(TransitionTrigger.BAGGAGE_QUOTED)
        return responses.quote_baggage(kg, cost, prefix, self.config.airline)

    # ------------------------------------------------------------------
    # Seat
    # ------------------------------------------------------------------

    async def _handle_seat_type(self, session: Session, extraction: Extraction) -> str:
        seat_type = extraction.entity(EntityKind.SEAT_TYPE)
        if seat_type is None and re.search(r"\bextra\b", extraction.text, re.IGNORECASE):
            seat_type = "extra-legroom"
        if seat_type is None:
            return responses.ask_seat_type_again()

        offer = await self._offer_seat(session, seat_type)
        if offer is None:
            return responses.seat_unavailable(seat_type)
        return offer

    async def _handle_seat_confirm(self, session: Session, extraction: Extraction) -> str:
        pending = session.pending
        if not isinstance(pending, SeatPending):
            session.machine.transition(TransitionTrigger.SEAT_DECLINED)
            return responses.ask_seat_type()

        answer = classify_confirmation(extraction.text)
        if answer == Confirmation.YES:
            booked = await self._call(
                "book_seat",
                self.booking_service.book_seat(session.pnr, self._seat_passenger(session), pending.seat_id),
            )
            if not booked:
                logger.warning("Seat %s was not booked for %s", pending.seat_id, session.pnr)
                return responses.RETRY_PROMPT
            self._complete(
                session, ServiceKind.SEAT,
                f"Seat {pending.seat_id} ({seat_type_label(pending.seat_type)})", pending.price,
            )
            return await self._start_next_service(
                session, responses.seat_booked(pending.seat_type, pending.seat_id)
            )
        if answer == Confirmation.NO:
            session.pending = None
            session.machine.transition(TransitionTrigger.SEAT_DECLINED)
            return responses.seat_declined()
        return responses.confirm_seat_again()

    # ------------------------------------------------------------------
    # Baggage
    # ------------------------------------------------------------------

    async def _handle_baggage_amount(self, session: Session, extraction: Extraction) -> str:
        kg = extraction.entity(EntityKind.WEIGHT_KG)
        if kg is None:
            return responses.ask_baggage_amount_again()
        return self._quote_baggage(session, kg)

    async def _handle_baggage_confirm(self, session: Session, extraction: Extraction) -> str:
        pending = session.pending
        if not isinstance(pending, BaggagePending):
            session.advance_service()
            return await self._start_next_service(session)

        answer = classify_confirmation(extraction.text)
        kg = extraction.entity(EntityKind.WEIGHT_KG)
        if kg is not None and kg != pending.kg and answer != Confirmation.YES:
            return self._quote_baggage(session, kg)

        if answer == Confirmation.YES:
            added = await self._call(
                "add_baggage", self.booking_service.add_baggage(session.pnr, pending.kg)
            )
            if not added:
                logger.warning("Baggage was not added for %s", session.pnr)
                return responses.RETRY_PROMPT
            self._complete(session, ServiceKind.BAGGAGE, f"{pending.kg} kg extra baggage", pending.cost)
            return await self._start_next_service(session, responses.baggage_added(pending.kg))
        if answer == Confirmation.NO:
            session.advance_service()
            return await self._start_next_service(session, "No problem.")
        return responses.confirm_baggage_again()

    # ------------------------------------------------------------------
    # Priority
    # ------------------------------------------------------------------

    async def _handle_priority_confirm(self, session: Session, extraction: Extraction) -> str:
        answer = classify_confirmation(extraction.text)
        if answer == Confirmation.YES:
            enabled = await self._call("enable_priority", self.booking_service.enable_priority(session.pnr))
            if not enabled:
                logger.warning("Priority was not enabled for %s", session.pnr)
                return responses.RETRY_PROMPT
            self._complete(session, ServiceKind.PRIORITY, "Priority check-in and boarding")
            return await self._start_next_service(session, responses.priority_enabled())
        if answer == Confirmation.NO:
            session.advance_service()
            return await self._start_next_service(session, "No problem.")
        return responses.confirm_priority_again()

    # ------------------------------------------------------------------
    # Wheelchair
    # ------------------------------------------------------------------

    async def _handle_wheelchair_name(self, session: Session, extraction: Extraction) -> str:
        passengers = session.booking.passengers if session.booking else []
        passenger_name = guess_passenger_name(extraction.text, passengers)
        if not passenger_name:
            return responses.ask_wheelchair_passenger_again()
        session.pending = WheelchairPending(passenger_name=passenger_name)
        session.machine.transition(TransitionTrigger.PASSENGER_NAMED)
        return responses.ask_wheelchair_type(passenger_name)

    async def _handle_wheelchair_type(self, session: Session, extraction: Extraction) -> str:
        pending = session.pending
        passenger_name = pending.passenger_name if isinstance(pending, WheelchairPending) else (
            session.customer_name or "the passenger"
        )
        level = extraction.entity(EntityKind.WHEELCHAIR_TYPE) or DEFAULT_WHEELCHAIR_LEVEL

        registered = await self._call(
            "register_wheelchair",
            self.booking_service.register_wheelchair(session.pnr, passenger_name, level),
        )
        if not registered:
            logger.warning("Wheelchair was not registered for %s", session.pnr)
            return responses.RETRY_PROMPT
        self._complete(
            session, ServiceKind.WHEELCHAIR,
            f"Wheelchair for {passenger_name} ({wheelchair_label(level)})",
        )
        return await self._start_next_service(
            session, responses.wheelchair_arranged(session.customer_name, passenger_name, level)
        )

    # ------------------------------------------------------------------
    # Pet
    # ------------------------------------------------------------------

    async def _handle_pet_details(self, session: Session, extraction: Extraction) -> str:
        breed = extraction.entity(EntityKind.PET_BREED)
        weight = extraction.entity(EntityKind.WEIGHT_KG)
        if breed is None and weight is None:
            return responses.ask_pet_details_again()

        pet = PetPending(breed=breed, weight_kg=weight)
        session.pet_request = pet
        session.advance_service()
        logger.info("Pet travel requested (%s), specialist transfer required", pet.describe())
        return await self._start_next_service(session, responses.pet_noted(pet))

    # ------------------------------------------------------------------
    # Wrap-up
    # ------------------------------------------------------------------

    async def _handle_whatsapp_confirm(self, session: Session, extraction: Extraction) -> str:
        services = extraction.requested_services()
        if services or asks_for_more(extraction.text):
            added = session.request_services(services)
            self._carry_entities(session, extraction, added)
            session.machine.transition(TransitionTrigger.MORE_SERVICES)
            if added:
                return await self._start_next_service(session, "Sure!")
            return responses.ask_more_services()

        answer = classify_confirmation(extraction.text)
        if answer == Confirmation.YES or extraction.has_intent(IntentKind.WHATSAPP_SUMMARY):
            if session.pnr:
                summary = build_booking_summary(session, self.config)
                sent = await self._call(
                    "send_summary", self.booking_service.send_summary(session.pnr, summary)
                )
                if not sent:
                    logger.warning("Summary was not sent for %s", session.pnr)
                    return responses.RETRY_PROMPT
                logger.info("Summary sent for %s", session.pnr)
            return self._close_call(session, summary_sent=True)

        if answer == Confirmation.NO or extraction.has_intent(IntentKind.GOODBYE):
            return self._close_call(session, summary_sent=False)
        return responses.confirm_summary_again()

    def _close_call(self, session: Session, summary_sent: bool) -> str:
        if session.transfer_required:
            session.machine.transition(TransitionTrigger.HANDOFF)
            logger.info(
                "Transferring to specialist (pet: %s, other requests: %d)",
                session.pet_request is not None, len(session.unknown_requests),
            )
            if summary_sent:
                return responses.summary_sent_and_transfer(
                    [s.detail for s in session.completed_services]
                )
            return responses.transfer_without_summary()

        session.machine.transition(TransitionTrigger.CALL_COMPLETED)
        logger.info("Call completed with %d services", len(session.completed_services))
        if summary_sent:
            return responses.summary_sent_and_goodbye(session.customer_name, self.config.airline)
        return responses.goodbye(session.customer_name, self.config.airline)

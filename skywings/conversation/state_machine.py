"""
Finite state machine for the add-on booking call flow.

Defines the closed set of dialog states and the explicit transitions between
them. The dialog manager decides which trigger applies to a turn; this module
only guarantees the resulting move is one the call flow allows.

Usage:
    sm = DialogStateMachine()
    sm.transition(TransitionTrigger.NAME_CAPTURED)
    assert sm.current_state == DialogState.WAITING_SERVICE_CHOICE
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class DialogState(str, Enum):
    """What input the agent expects next."""
    WAITING_NAME = "waiting_name"
    WAITING_SERVICE_CHOICE = "waiting_service_choice"
    WAITING_PNR = "waiting_pnr"
    CONFIRMING_FLIGHT = "confirming_flight"
    SEAT_TYPE = "seat_type"
    SEAT_CONFIRM = "seat_confirm"
    BAGGAGE_AMOUNT = "baggage_amount"
    BAGGAGE_CONFIRM = "baggage_confirm"
    PRIORITY_CONFIRM = "priority_confirm"
    WHEELCHAIR_NAME = "wheelchair_name"
    WHEELCHAIR_TYPE = "wheelchair_type"
    PET_DETAILS = "pet_details"
    WHATSAPP_CONFIRM = "whatsapp_confirm"
    TRANSFER = "transfer"
    COMPLETED = "completed"


class TransitionTrigger(str, Enum):
    """Events that cause state transitions."""
    NAME_CAPTURED = "name_captured"
    PNR_REQUIRED = "pnr_required"
    BOOKING_FOUND = "booking_found"
    BOOKING_STORED = "booking_stored"
    FLIGHT_DISPUTED = "flight_disputed"
    START_SEAT = "start_seat"
    SEAT_OFFERED = "seat_offered"
    SEAT_DECLINED = "seat_declined"
    START_BAGGAGE = "start_baggage"
    BAGGAGE_QUOTED = "baggage_quoted"
    START_PRIORITY = "start_priority"
    START_WHEELCHAIR = "start_wheelchair"
    PASSENGER_NAMED = "passenger_named"
    START_PET = "start_pet"
    SERVICES_EXHAUSTED = "services_exhausted"
    MORE_SERVICES = "more_services"
    HANDOFF = "handoff"
    CALL_COMPLETED = "call_completed"


@dataclass
class Transition:
    """A single valid state transition."""
    from_state: DialogState
    to_state: DialogState
    trigger: TransitionTrigger


@dataclass
class StateEntry:
    """Recorded history entry for a state visit."""
    state: DialogState
    entered_at: datetime
    trigger: Optional[TransitionTrigger] = None


class InvalidTransitionError(Exception):
    """Raised when a transition is not valid from the current state."""


# States from which the next queued service may be started: right after the
# flight is confirmed, after each service finishes, and on re-entry from the
# service menu once the flight is already confirmed.
SERVICE_DISPATCH_STATES: tuple[DialogState, ...] = (
    DialogState.WAITING_SERVICE_CHOICE,
    DialogState.CONFIRMING_FLIGHT,
    DialogState.SEAT_CONFIRM,
    DialogState.BAGGAGE_CONFIRM,
    DialogState.PRIORITY_CONFIRM,
    DialogState.WHEELCHAIR_TYPE,
    DialogState.PET_DETAILS,
)

_SERVICE_ENTRY: list[tuple[TransitionTrigger, DialogState]] = [
    (TransitionTrigger.START_SEAT, DialogState.SEAT_TYPE),
    (TransitionTrigger.SEAT_OFFERED, DialogState.SEAT_CONFIRM),
    (TransitionTrigger.START_BAGGAGE, DialogState.BAGGAGE_AMOUNT),
    (TransitionTrigger.BAGGAGE_QUOTED, DialogState.BAGGAGE_CONFIRM),
    (TransitionTrigger.START_PRIORITY, DialogState.PRIORITY_CONFIRM),
    (TransitionTrigger.START_WHEELCHAIR, DialogState.WHEELCHAIR_NAME),
    (TransitionTrigger.START_PET, DialogState.PET_DETAILS),
    (TransitionTrigger.SERVICES_EXHAUSTED, DialogState.WHATSAPP_CONFIRM),
]

TERMINAL_STATES: frozenset[DialogState] = frozenset(
    {DialogState.TRANSFER, DialogState.COMPLETED}
)


class DialogStateMachine:
    """
    Deterministic state machine controlling the call flow.

    Every transition must be explicitly defined. A handler asking for a
    move the table does not allow is a bug and fails loudly instead of
    leaving the conversation in an inconsistent state.
    """

    TRANSITIONS: list[Transition] = [
        # --- Intake ---
        Transition(DialogState.WAITING_NAME, DialogState.WAITING_SERVICE_CHOICE,
                   TransitionTrigger.NAME_CAPTURED),
        Transition(DialogState.WAITING_SERVICE_CHOICE, DialogState.WAITING_PNR,
                   TransitionTrigger.PNR_REQUIRED),

        # --- Booking lookup ---
        Transition(DialogState.WAITING_SERVICE_CHOICE, DialogState.CONFIRMING_FLIGHT,
                   TransitionTrigger.BOOKING_FOUND),
        Transition(DialogState.WAITING_PNR, DialogState.CONFIRMING_FLIGHT,
                   TransitionTrigger.BOOKING_FOUND),
        Transition(DialogState.WAITING_PNR, DialogState.WAITING_SERVICE_CHOICE,
                   TransitionTrigger.BOOKING_STORED),
        Transition(DialogState.CONFIRMING_FLIGHT, DialogState.WAITING_PNR,
                   TransitionTrigger.FLIGHT_DISPUTED),

        # --- Service dispatch ---
        *[
            Transition(source, target, trigger)
            for source in SERVICE_DISPATCH_STATES
            for trigger, target in _SERVICE_ENTRY
        ],

        # --- Within a service ---
        Transition(DialogState.SEAT_TYPE, DialogState.SEAT_CONFIRM,
                   TransitionTrigger.SEAT_OFFERED),
        Transition(DialogState.SEAT_CONFIRM, DialogState.SEAT_TYPE,
                   TransitionTrigger.SEAT_DECLINED),
        Transition(DialogState.BAGGAGE_AMOUNT, DialogState.BAGGAGE_CONFIRM,
                   TransitionTrigger.BAGGAGE_QUOTED),
        Transition(DialogState.BAGGAGE_CONFIRM, DialogState.BAGGAGE_CONFIRM,
                   TransitionTrigger.BAGGAGE_QUOTED),
        Transition(DialogState.WHEELCHAIR_NAME, DialogState.WHEELCHAIR_TYPE,
                   TransitionTrigger.PASSENGER_NAMED),

        # --- Wrap-up ---
        Transition(DialogState.WHATSAPP_CONFIRM, DialogState.WAITING_SERVICE_CHOICE,
                   TransitionTrigger.MORE_SERVICES),
        Transition(DialogState.WHATSAPP_CONFIRM, DialogState.TRANSFER,
                   TransitionTrigger.HANDOFF),
        Transition(DialogState.WHATSAPP_CONFIRM, DialogState.COMPLETED,
                   TransitionTrigger.CALL_COMPLETED),
    ]

    def __init__(self, initial_state: DialogState = DialogState.WAITING_NAME) -> None:
        self._current_state = initial_state
        self._history: list[StateEntry] = [
            StateEntry(state=initial_state, entered_at=datetime.now(timezone.utc))
        ]

    @property
    def current_state(self) -> DialogState:
        return self._current_state

    def transition(self, trigger: TransitionTrigger) -> DialogState:
        """
        Execute a state transition.

        Args:
            trigger: The event triggering the transition.

        Returns:
            The new dialog state.

        Raises:
            InvalidTransitionError: If no valid transition exists.
        """
        for t in self.TRANSITIONS:
            if t.from_state == self._current_state and t.trigger == trigger:
                old_state = self._current_state
                self._current_state = t.to_state

                self._history.append(StateEntry(
                    state=self._current_state,
                    entered_at=datetime.now(timezone.utc),
                    trigger=trigger,
                ))

                logger.debug(
                    "State transition: %s -> %s (trigger: %s)",
                    old_state.value, self._current_state.value, trigger.value,
                )
                return self._current_state

        valid = [t.value for t in self.get_valid_triggers()]
        raise InvalidTransitionError(
            f"No valid transition from '{self._current_state.value}' "
            f"with trigger '{trigger.value}'. Valid triggers: {valid}"
        )

    def get_valid_triggers(self) -> list[TransitionTrigger]:
        """Return all triggers valid from the current state."""
        return [t.trigger for t in self.TRANSITIONS if t.from_state == self._current_state]

    def get_history(self) -> list[StateEntry]:
        """Return the full state transition history."""
        return list(self._history)

    def get_state_trace(self) -> list[str]:
        """Return ordered list of state names visited."""
        return [entry.state.value for entry in self._history]

    def is_terminal(self) -> bool:
        """Check if the call has been handed off or completed."""
        return self._current_state in TERMINAL_STATES

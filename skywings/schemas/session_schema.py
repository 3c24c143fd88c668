"""Per-call session state and the data collected for the add-on in progress."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Union

from skywings.conversation.state_machine import DialogState, DialogStateMachine
from skywings.schemas.booking_schema import Booking, ServiceKind
from skywings.schemas.conversation_schema import CompletedService


@dataclass
class SeatPending:
    """Seat offer awaiting the customer's yes/no."""
    seat_type: str
    seat_id: str
    price: int
    kind: ServiceKind = field(default=ServiceKind.SEAT, init=False)


@dataclass
class BaggagePending:
    """Baggage quote awaiting the customer's yes/no."""
    kg: int
    cost: int
    kind: ServiceKind = field(default=ServiceKind.BAGGAGE, init=False)


@dataclass
class WheelchairPending:
    """Passenger who needs wheelchair assistance, before the level is chosen."""
    passenger_name: str
    kind: ServiceKind = field(default=ServiceKind.WHEELCHAIR, init=False)


@dataclass
class PetPending:
    """Pet details handed over to the specialist team."""
    breed: Optional[str] = None
    weight_kg: Optional[int] = None
    kind: ServiceKind = field(default=ServiceKind.PET, init=False)

    def describe(self) -> str:
        breed = self.breed or "pet"
        if self.weight_kg is None:
            return breed
        return f"{breed} weighing {self.weight_kg} kg"


PendingData = Union[SeatPending, BaggagePending, WheelchairPending, PetPending]


@dataclass
class Session:
    """Everything known about one active call.

    The state machine is the single source of truth for the dialog state.
    ``pnr`` and ``booking`` are only ever set or cleared together through
    :meth:`confirm_booking` and :meth:`clear_booking`.
    """

    session_id: str
    machine: DialogStateMachine = field(default_factory=DialogStateMachine)
    customer_name: Optional[str] = None
    pnr: Optional[str] = None
    booking: Optional[Booking] = None
    flight_confirmed: bool = False
    requested_services: list[ServiceKind] = field(default_factory=list)
    current_service_index: int = 0
    pending: Optional[PendingData] = None
    completed_services: list[CompletedService] = field(default_factory=list)
    unknown_requests: list[str] = field(default_factory=list)
    carried_entities: dict[str, object] = field(default_factory=dict)
    pet_request: Optional[PetPending] = None
    turn_count: int = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def dialog_state(self) -> DialogState:
        return self.machine.current_state

    @property
    def transfer_required(self) -> bool:
        """Pet travel and unrecognized requests always go to a specialist."""
        return self.pet_request is not None or bool(self.unknown_requests)

    @property
    def current_service(self) -> Optional[ServiceKind]:
        if self.current_service_index < len(self.requested_services):
            return self.requested_services[self.current_service_index]
        return None

    @property
    def services_exhausted(self) -> bool:
        return self.current_service_index >= len(self.requested_services)

    @property
    def total_due(self) -> int:
        return sum(service.price for service in self.completed_services)

    def confirm_booking(self, booking: Booking) -> None:
        self.pnr = booking.pnr
        self.booking = booking
        self.flight_confirmed = False

    def clear_booking(self) -> None:
        self.pnr = None
        self.booking = None
        self.flight_confirmed = False

    def request_services(self, services: list[ServiceKind]) -> list[ServiceKind]:
        """Queue services not already requested. Returns the newly added ones."""
        added = [s for s in dict.fromkeys(services) if s not in self.requested_services]
        self.requested_services.extend(added)
        return added

    def advance_service(self) -> None:
        """Finish the service at the cursor, whether confirmed or declined."""
        self.pending = None
        if self.current_service_index < len(self.requested_services):
            self.current_service_index += 1

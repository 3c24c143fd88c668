"""Turn results returned to transport layers (console, voice worker)."""

from typing import Optional

from pydantic import BaseModel, Field

from skywings.schemas.booking_schema import Booking, ServiceKind


class CompletedService(BaseModel):
    """An add-on the customer confirmed and the booking service accepted."""

    kind: ServiceKind
    detail: str
    price: int = 0

    @property
    def is_free(self) -> bool:
        return self.price == 0


class TurnResult(BaseModel):
    """What the agent says after one customer utterance, plus a context snapshot."""

    session_id: str
    response: str
    dialog_state: str
    booking: Optional[Booking] = None
    customer_name: Optional[str] = None
    completed_services: list[CompletedService] = Field(default_factory=list)
    transfer_required: bool = False

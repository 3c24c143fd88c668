from skywings.conversation.state_machine import (
    DialogState,
    DialogStateMachine,
    InvalidTransitionError,
    TransitionTrigger,
)
from skywings.conversation.entities import EntityKind, extract_entities
from skywings.conversation.intents import (
    Confirmation,
    Extraction,
    IntentKind,
    classify_confirmation,
    extract,
)

__all__ = [
    "DialogState",
    "DialogStateMachine",
    "TransitionTrigger",
    "InvalidTransitionError",
    "Extraction",
    "IntentKind",
    "EntityKind",
    "Confirmation",
    "extract",
    "extract_entities",
    "classify_confirmation",
]

"""
Pattern-based intent recognition for customer utterances.

A declarative rule table maps each intent kind to a fixed priority and one or
more regular expressions. Every kind fires at most once per utterance, and the
result is ranked by priority first and confidence second, so an explicit PNR
always outranks a vague "okay" in the same sentence.

Usage:
    extraction = extract("Yes, and I also need a window seat")
    extraction.primary_intent.kind       # IntentKind.SEAT
    extraction.requested_services()      # [ServiceKind.SEAT]
    classify_confirmation("yes please")  # Confirmation.YES
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from skywings.conversation.entities import EntityKind, extract_entities
from skywings.schemas.booking_schema import ServiceKind

logger = logging.getLogger(__name__)


class IntentKind(str, Enum):
    """What the customer is trying to do with an utterance."""
    PNR = "pnr"
    PET_TRAVEL = "pet_travel"
    SEAT = "seat"
    BAGGAGE = "baggage"
    WHEELCHAIR = "wheelchair"
    PRIORITY = "priority"
    WHATSAPP_SUMMARY = "whatsapp_summary"
    CONFIRM_YES = "confirm_yes"
    CONFIRM_NO = "confirm_no"
    HELP = "help"
    GREETING = "greeting"
    GOODBYE = "goodbye"


class Confirmation(str, Enum):
    """Outcome of the utterance-initial yes/no classifier."""
    YES = "yes"
    NO = "no"
    UNCLEAR = "unclear"


SERVICE_INTENTS: dict[IntentKind, ServiceKind] = {
    IntentKind.SEAT: ServiceKind.SEAT,
    IntentKind.BAGGAGE: ServiceKind.BAGGAGE,
    IntentKind.PRIORITY: ServiceKind.PRIORITY,
    IntentKind.WHEELCHAIR: ServiceKind.WHEELCHAIR,
    IntentKind.PET_TRAVEL: ServiceKind.PET,
}


@dataclass(frozen=True)
class IntentRule:
    """Priority and match patterns for one intent kind."""

    kind: IntentKind
    priority: int
    patterns: tuple[re.Pattern, ...]


def _rule(kind: IntentKind, priority: int, *patterns: str) -> IntentRule:
    return IntentRule(kind, priority, tuple(re.compile(p) for p in patterns))


_AFFIRMATIVE = (
    r"yes|yeah|yep|yup|sure|okay|ok|please|go\s+ahead|correct|right|"
    r"that'?s\s+(?:right|correct|fine)|fine|absolutely|definitely|"
    r"of\s+course|alright|all\s+right"
)
_NEGATIVE = (
    r"no|nope|nah|cancel|wrong|incorrect|not\s+(?:right|now|really|correct)|"
    r"never\s*mind|don'?t|do\s+not|nothing"
)
_FILLER = r"(?:(?:um+|uh+|oh|well|hmm+|so|please)[,\s]+)*"

# Patterns run against the lowercased utterance.
INTENT_RULES: list[IntentRule] = [
    _rule(
        IntentKind.PNR, 10,
        r"\bpnr\b",
        r"\bbooking\s+(?:reference|number|id)\b",
        r"\b[a-z]{3}\d{3}\b",
    ),
    _rule(
        IntentKind.PET_TRAVEL, 9,
        r"\bpets?\b",
        r"\b(?:dog|cat|puppy|kitten)s?\b",
        r"\b(?:labrador|retriever|german\s*shepherd|poodle|beagle|bulldog|husky)\b",
    ),
    _rule(
        IntentKind.SEAT, 8,
        r"\bseats?\b",
        r"\b(?:window|aisle)\b",
        r"\bleg\s*room\b",
    ),
    _rule(
        IntentKind.BAGGAGE, 8,
        r"\b(?:baggage|luggage|bags?|suitcases?)\b",
        r"\bextra\s+(?:kg|kgs|kilos?)\b",
    ),
    _rule(
        IntentKind.WHEELCHAIR, 8,
        r"\bwheel\s*chair\b",
        r"\b(?:special|mobility)\s+assistance\b",
    ),
    _rule(
        IntentKind.PRIORITY, 7,
        r"\bpriority\b",
        r"\bfast\s*track\b",
    ),
    _rule(
        IntentKind.WHATSAPP_SUMMARY, 6,
        r"\bwhats\s*app\b",
        r"\bsend\s+(?:me\s+)?(?:a\s+|the\s+)?summary\b",
    ),
    _rule(
        IntentKind.CONFIRM_YES, 3,
        rf"^{_FILLER}(?:{_AFFIRMATIVE})\b",
        r"\bplease\s+do\b",
    ),
    _rule(
        IntentKind.CONFIRM_NO, 3,
        rf"^{_FILLER}(?:{_NEGATIVE})\b",
        r"\bnever\s*mind\b",
    ),
    _rule(
        IntentKind.HELP, 2,
        r"^help\b",
        r"\bwhat\s+can\s+you\s+(?:do|help)",
        r"\bwhat\s+(?:are\s+)?(?:the|your)\s+(?:options|services)\b",
        r"^(?:can|could)\s+you\s+help(?:\s+me)?[?.!]*$",
    ),
    _rule(
        IntentKind.GREETING, 1,
        r"^(?:hi|hello|hey|namaste|good\s+(?:morning|afternoon|evening))\b",
    ),
    _rule(
        IntentKind.GOODBYE, 1,
        r"\b(?:bye|goodbye)\b",
        r"\bthank\s*(?:you|s)\b",
        r"\bthat'?s\s+(?:all|it)\b",
        r"\bnothing\s+else\b",
    ),
]

_MORE_REQUESTS = re.compile(
    r"\bsomething\s+else\b|\bone\s+more\b|\banother\s+(?:thing|service|request)\b"
    r"|\bmore\s+(?:help|services?)\b"
)
_AFFIRMATIVE_START = re.compile(rf"^{_FILLER}(?:{_AFFIRMATIVE})\b")
_NEGATIVE_START = re.compile(rf"^{_FILLER}(?:{_NEGATIVE})\b")
_SMALL_TALK = re.compile(
    r"\b(?:hi|hello|hey|namaste|good\s+(?:morning|afternoon|evening)|please|thanks|"
    r"thank\s+you|yes|yeah|yep|ok(?:ay)?|sure|no|nope|bye|goodbye|um+|uh+|hmm+|oh|well|"
    r"that'?s\s+(?:all|it))\b"
)


@dataclass(frozen=True)
class Intent:
    """One recognized intent with its score and where it was first heard."""

    kind: IntentKind
    confidence: float
    priority: int
    matched_text: str
    position: int


@dataclass
class Extraction:
    """Ranked intents plus entities recognized in one utterance."""

    text: str
    intents: list[Intent] = field(default_factory=list)
    entities: dict[EntityKind, Any] = field(default_factory=dict)

    @property
    def primary_intent(self) -> Optional[Intent]:
        return self.intents[0] if self.intents else None

    def has_intent(self, kind: IntentKind) -> bool:
        return any(intent.kind == kind for intent in self.intents)

    def entity(self, kind: EntityKind) -> Optional[Any]:
        return self.entities.get(kind)

    def requested_services(self) -> list[ServiceKind]:
        """Service kinds asked for, in the order the customer mentioned them."""
        mentioned = sorted(
            (i for i in self.intents if i.kind in SERVICE_INTENTS),
            key=lambda i: i.position,
        )
        return [SERVICE_INTENTS[i.kind] for i in mentioned]

    @property
    def is_empty(self) -> bool:
        return not self.intents and not self.entities


def _confidence(span: str, text: str) -> float:
    if not text:
        return 0.0
    return min(0.5 + 0.5 * len(span) / len(text), 1.0)


def _match_rule(rule: IntentRule, text: str) -> Optional[Intent]:
    best: Optional[re.Match] = None
    position: Optional[int] = None
    for pattern in rule.patterns:
        for match in pattern.finditer(text):
            if position is None or match.start() < position:
                position = match.start()
            if best is None or len(match.group(0)) > len(best.group(0)):
                best = match
    if best is None or position is None:
        return None
    return Intent(
        kind=rule.kind,
        confidence=_confidence(best.group(0), text),
        priority=rule.priority,
        matched_text=best.group(0),
        position=position,
    )


def extract(text: str) -> Extraction:
    """
    Recognize intents and entities in one customer utterance.

    Never raises. An utterance with nothing recognizable yields an
    Extraction with no intents and no entities.
    """
    normalized = re.sub(r"\s+", " ", (text or "").strip())
    lower = normalized.lower()

    intents = [
        intent for intent in (_match_rule(rule, lower) for rule in INTENT_RULES)
        if intent is not None
    ]
    intents.sort(key=lambda i: (-i.priority, -i.confidence))

    extraction = Extraction(
        text=normalized,
        intents=intents,
        entities=extract_entities(normalized) if normalized else {},
    )
    if intents:
        logger.debug(
            "Intents: %s",
            ", ".join(f"{i.kind.value}({i.confidence:.2f})" for i in intents),
        )
    return extraction


def classify_confirmation(text: str) -> Confirmation:
    """Classify a yes/no answer by its first words only.

    Examples:
        >>> classify_confirmation("Yes, book it")
        <Confirmation.YES: 'yes'>
        >>> classify_confirmation("nope")
        <Confirmation.NO: 'no'>
        >>> classify_confirmation("I know a window seat is nice")
        <Confirmation.UNCLEAR: 'unclear'>
    """
    lower = re.sub(r"^[\s,.!?]+", "", (text or "").lower())
    if _NEGATIVE_START.search(lower):
        return Confirmation.NO
    if _AFFIRMATIVE_START.search(lower):
        return Confirmation.YES
    return Confirmation.UNCLEAR


def asks_for_more(text: str) -> bool:
    """Whether the customer wants help with something beyond the current list."""
    return bool(_MORE_REQUESTS.search((text or "").lower()))


def strip_small_talk(text: str) -> str:
    """Drop greetings, politeness and yes/no words, leaving what was asked for.

    Examples:
        >>> strip_small_talk("Hi, I want to upgrade to business class")
        'i want to upgrade to business class'
        >>> strip_small_talk("ok, thank you")
        ''
    """
    remainder = _SMALL_TALK.sub(" ", (text or "").lower())
    return re.sub(r"\s+", " ", remainder).strip(" ,.!?")

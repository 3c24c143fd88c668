"""
Entity extraction: structured values pulled out of free speech.

Each entity kind owns an ordered list of patterns and exactly one
canonicalization rule. The first pattern whose normalized value is accepted
wins. Extraction never raises; an utterance with nothing recognizable simply
produces an empty mapping.

Usage:
    entities = extract_entities("My PNR is abc123 and I need a window seat")
    entities[EntityKind.PNR]        # 'ABC123'
    entities[EntityKind.SEAT_TYPE]  # 'window'
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Sequence

from skywings.schemas.booking_schema import Passenger
from skywings.utils import title_name

logger = logging.getLogger(__name__)

MAX_BAGGAGE_KG = 200

WHEELCHAIR_LEVELS = (
    "gate-to-gate",
    "checkin-to-boarding",
    "arrival-assistance",
    "full-assistance",
)
DEFAULT_WHEELCHAIR_LEVEL = "full-assistance"

# Words that follow "I am" / "this is" without being a name.
NOT_NAMES = frozenset({
    "a", "an", "the", "here", "not", "just", "also", "calling", "looking",
    "trying", "travelling", "traveling", "flying", "going", "having", "fine",
    "good", "okay", "ok", "yes", "yeah", "no", "nope", "sure", "hello", "hi",
    "hey", "sorry", "interested", "wondering", "booking", "with", "for", "morning",
    "thanks", "thank", "please", "myself", "me", "it", "is", "and", "i", "my",
    "need", "want", "can", "could", "would", "what", "who", "um", "umm", "uh",
    "hmm", "well", "so", "namaste", "book", "add", "seat", "seats", "window", "aisle",
    "extra", "baggage", "luggage", "bag", "bags", "priority", "wheelchair", "pet", "pnr",
})


class EntityKind(str, Enum):
    """Structured values recognized in an utterance."""
    PNR = "pnr"
    SEAT_TYPE = "seat_type"
    WEIGHT_KG = "weight_kg"
    PERSON_NAME = "person_name"
    PET_BREED = "pet_breed"
    WHEELCHAIR_TYPE = "wheelchair_type"


def _normalize_pnr(value: str) -> Optional[str]:
    compact = re.sub(r"[\s.\-]", "", value).upper()
    if len(compact) != 6 or not compact.isalnum():
        return None
    if not (re.search(r"[A-Z]", compact) and re.search(r"\d", compact)):
        return None
    return compact


def _normalize_seat_type(value: str) -> Optional[str]:
    hyphenated = re.sub(r"\s+", "-", value.strip().lower())
    if hyphenated.replace("-", "").endswith("legroom"):
        return "extra-legroom"
    return hyphenated


def _normalize_weight(value: str) -> Optional[int]:
    kg = int(value)
    if not 0 < kg <= MAX_BAGGAGE_KG:
        return None
    return kg


def _normalize_person_name(value: str) -> Optional[str]:
    words = value.split()
    if not words or any(w.lower() in NOT_NAMES for w in words):
        return None
    return title_name(value)


def _normalize_breed(value: str) -> Optional[str]:
    return re.sub(r"\s+", " ", value.strip().lower())


def _normalize_wheelchair(value: str) -> Optional[str]:
    lower = value.lower()
    if lower.count("gate") >= 2:
        return "gate-to-gate"
    if "board" in lower:
        return "checkin-to-boarding"
    if "arrival" in lower:
        return "arrival-assistance"
    return DEFAULT_WHEELCHAIR_LEVEL


@dataclass(frozen=True)
class EntityDefinition:
    """Patterns and canonicalization for one entity kind."""

    kind: EntityKind
    patterns: tuple[re.Pattern, ...]
    normalizer: Callable[[str], Any]


_NAME_LEAD = r"(?i:my\s+name\s+is|name\s+is|this\s+is|i\s+am|i'm|call\s+me)"

ENTITY_DEFINITIONS: list[EntityDefinition] = [
    EntityDefinition(
        kind=EntityKind.PNR,
        patterns=(
            re.compile(r"\b([a-z]{3}\d{3})\b", re.IGNORECASE),
            re.compile(r"\b([a-z0-9]{6})\b", re.IGNORECASE),
            re.compile(
                r"(?<![a-z0-9])((?:[a-z0-9][\s.\-]+){5}[a-z0-9])(?![a-z0-9])",
                re.IGNORECASE,
            ),
        ),
        normalizer=_normalize_pnr,
    ),
    EntityDefinition(
        kind=EntityKind.SEAT_TYPE,
        patterns=(
            re.compile(r"\b(window|aisle|(?:extra\s*)?leg\s*room)\b", re.IGNORECASE),
        ),
        normalizer=_normalize_seat_type,
    ),
    EntityDefinition(
        kind=EntityKind.WEIGHT_KG,
        patterns=(
            re.compile(r"\b(\d{1,3})\s*(?:kgs?|kilos?|kilograms?)\b", re.IGNORECASE),
            re.compile(r"\b(\d{1,3})\b"),
        ),
        normalizer=_normalize_weight,
    ),
    EntityDefinition(
        kind=EntityKind.PERSON_NAME,
        patterns=(
            re.compile(_NAME_LEAD + r"\s+([a-z]+)\b", re.IGNORECASE),
            re.compile(r"(?i:\b(?:mr|mrs|ms|miss|dr))\.?\s+([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)"),
            re.compile(r"(?i:\bfor)\s+([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)"),
        ),
        normalizer=_normalize_person_name,
    ),
    EntityDefinition(
        kind=EntityKind.PET_BREED,
        patterns=(
            re.compile(
                r"\b(labrador|golden\s+retriever|retriever|german\s*shepherd|poodle|"
                r"beagle|bulldog|husky|pug|dachshund|shih\s*tzu|golden|persian|"
                r"siamese|maine\s*coon|puppy|kitten|dog|cat)s?\b",
                re.IGNORECASE,
            ),
        ),
        normalizer=_normalize_breed,
    ),
    EntityDefinition(
        kind=EntityKind.WHEELCHAIR_TYPE,
        patterns=(
            re.compile(
                r"(gate[\s\-]*to[\s\-]*gate|check[\s\-]*in\b.*?\bboard\w*|board\w*|"
                r"arrival|full|complete|entire|all\s+the\s+way)",
                re.IGNORECASE,
            ),
        ),
        normalizer=_normalize_wheelchair,
    ),
]


def _extract_one(defn: EntityDefinition, text: str) -> Optional[Any]:
    for pattern in defn.patterns:
        for match in pattern.finditer(text):
            value = defn.normalizer(match.group(1))
            if value is not None:
                return value
    return None


def extract_entities(text: str) -> dict[EntityKind, Any]:
    """Extract every recognizable entity from an utterance."""
    entities: dict[EntityKind, Any] = {}
    for defn in ENTITY_DEFINITIONS:
        value = _extract_one(defn, text)
        if value is not None:
            entities[defn.kind] = value
    if entities:
        logger.debug("Entities extracted: %s", {k.value: v for k, v in entities.items()})
    return entities


def extract_entity(kind: EntityKind, text: str) -> Optional[Any]:
    """Extract a single entity kind from an utterance."""
    for defn in ENTITY_DEFINITIONS:
        if defn.kind == kind:
            return _extract_one(defn, text)
    raise ValueError(f"Unknown entity kind: {kind}")


_SELF_INTRO = re.compile(r"^([a-z]+)\s+(?:here|speaking|this\s+side)\b", re.IGNORECASE)
_LEADING_NAME_COMMA = re.compile(r"^([A-Z][a-z]+)\s*,")
_BARE_NAME_PATTERNS = (
    re.compile(r"^([a-z]{2,})$", re.IGNORECASE),
    re.compile(r"^([a-z]{2,})\s+[a-z]{2,}$", re.IGNORECASE),
    re.compile(r"^([A-Z][a-z]+)\b"),
)


def guess_spoken_name(text: str, with_request: bool = False) -> Optional[str]:
    """Find the caller's name in an answer to "may I know your name?".

    Tries the explicit "this is / my name is" forms first, then
    "Rahul here" / "Rahul speaking", a bare single word, and finally a
    leading capitalized word. When the utterance also carries a request
    (a service or a PNR), bare words are not taken as a name; only
    "Meera, ..." style openings are.
    """
    explicit = extract_entity(EntityKind.PERSON_NAME, text)
    if explicit:
        return explicit.split()[0]

    cleaned = text.strip().strip(".!?,")
    patterns = (_SELF_INTRO, _LEADING_NAME_COMMA) if with_request else (
        _SELF_INTRO, *_BARE_NAME_PATTERNS
    )
    for pattern in patterns:
        match = pattern.search(cleaned)
        if match:
            name = _normalize_person_name(match.group(1))
            if name:
                return name
    return None


def guess_passenger_name(text: str, passengers: Sequence[Passenger] = ()) -> Optional[str]:
    """Find which passenger an answer refers to.

    A passenger on the booking mentioned by first name wins; otherwise an
    explicit name form, or a short answer made only of name-like words.
    """
    lower = text.lower()
    for passenger in passengers:
        first = passenger.name.split()[0].lower()
        if re.search(rf"\b{re.escape(first)}\b", lower):
            return passenger.name

    explicit = extract_entity(EntityKind.PERSON_NAME, text)
    if explicit:
        return explicit

    cleaned = re.sub(
        r"^(?:it'?s\s+)?(?:for\s+)?(?:the\s+passenger\s+(?:is\s+)?)?"
        r"(?:(?:mr|mrs|ms|miss|dr)\b\.?\s*)?",
        "",
        text.strip().strip(".!?,"),
        flags=re.IGNORECASE,
    )
    if re.fullmatch(r"[A-Za-z]+(?:\s+[A-Za-z]+){0,2}", cleaned):
        return _normalize_person_name(cleaned)
    return None


def extract_stated_weight(text: str) -> Optional[int]:
    """Weight only when spoken with a unit ("10 kg"), never a bare number."""
    unit_pattern = next(d for d in ENTITY_DEFINITIONS if d.kind == EntityKind.WEIGHT_KG).patterns[0]
    for match in unit_pattern.finditer(text):
        kg = _normalize_weight(match.group(1))
        if kg is not None:
            return kg
    return None

"""
Centralized configuration with environment variable overrides.

Airline branding, add-on pricing, dialog limits and the booking backend are
all configurable here. Nothing is hardcoded in dialog or collaborator logic.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from skywings.logging_context import SessionIdFilter

load_dotenv()

logger = logging.getLogger(__name__)

BOOKING_BACKENDS = ("mock", "http")


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class AirlineConfig:
    """Airline branding used in spoken lines and the summary message."""

    name: str = os.getenv("AIRLINE_NAME", "SkyWings Airlines")
    agent_persona: str = os.getenv("AGENT_PERSONA", "Isha")
    currency_label: str = os.getenv("CURRENCY_LABEL", "Rs.")
    payment_link_base: str = os.getenv("PAYMENT_LINK_BASE", "pay.skywings.com")


@dataclass(frozen=True)
class PricingConfig:
    """Add-on prices. Priority and wheelchair assistance are always free."""

    window_seat_price: int = _safe_int("WINDOW_SEAT_PRICE", "200")
    aisle_seat_price: int = _safe_int("AISLE_SEAT_PRICE", "150")
    extra_legroom_seat_price: int = _safe_int("EXTRA_LEGROOM_SEAT_PRICE", "800")
    baggage_block_kg: int = _safe_int("BAGGAGE_BLOCK_KG", "5")
    baggage_block_price: int = _safe_int("BAGGAGE_BLOCK_PRICE", "500")


@dataclass(frozen=True)
class DialogConfig:
    """Per-turn limits for the dialog manager."""

    collaborator_timeout_sec: float = _safe_float("COLLABORATOR_TIMEOUT", "5.0")
    min_unknown_request_length: int = _safe_int("MIN_UNKNOWN_REQUEST_LENGTH", "6")
    max_input_length: int = _safe_int("MAX_INPUT_LENGTH", "500")


@dataclass(frozen=True)
class BookingBackendConfig:
    """Which booking collaborator to use and how to reach it."""

    backend: str = os.getenv("BOOKING_BACKEND", "mock")
    base_url: str = os.getenv("BOOKING_API_URL", "http://localhost:3000")
    api_key: str = os.getenv("BOOKING_API_KEY", "")
    http_timeout_sec: float = _safe_float("BOOKING_API_TIMEOUT", "10.0")


@dataclass(frozen=True)
class VoiceConfig:
    """Speech pipeline model settings for the LiveKit worker."""

    stt_model: str = os.getenv("STT_MODEL", "nova-3")
    stt_language: str = os.getenv("STT_LANGUAGE", "en-IN")
    tts_model: str = os.getenv("TTS_MODEL", "sonic-2")
    tts_voice_id: str = os.getenv("TTS_VOICE_ID", "79a125e8-cd45-4c13-8a67-188112f4dd22")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    airline: AirlineConfig = field(default_factory=AirlineConfig)
    pricing: PricingConfig = field(default_factory=PricingConfig)
    dialog: DialogConfig = field(default_factory=DialogConfig)
    booking_backend: BookingBackendConfig = field(default_factory=BookingBackendConfig)
    voice: VoiceConfig = field(default_factory=VoiceConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    agent_name: str = os.getenv("AGENT_NAME", "skywings-addons")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    for price_name, price_value in [
        ("WINDOW_SEAT_PRICE", config.pricing.window_seat_price),
        ("AISLE_SEAT_PRICE", config.pricing.aisle_seat_price),
        ("EXTRA_LEGROOM_SEAT_PRICE", config.pricing.extra_legroom_seat_price),
        ("BAGGAGE_BLOCK_PRICE", config.pricing.baggage_block_price),
    ]:
        if price_value < 0:
            raise ValueError(f"{price_name} must be >= 0, got {price_value}")

    if config.pricing.baggage_block_kg < 1:
        raise ValueError(
            f"BAGGAGE_BLOCK_KG must be >= 1, got {config.pricing.baggage_block_kg}"
        )
    if config.dialog.collaborator_timeout_sec <= 0:
        raise ValueError(
            "COLLABORATOR_TIMEOUT must be > 0, "
            f"got {config.dialog.collaborator_timeout_sec}"
        )
    if config.dialog.min_unknown_request_length < 1:
        raise ValueError(
            "MIN_UNKNOWN_REQUEST_LENGTH must be >= 1, "
            f"got {config.dialog.min_unknown_request_length}"
        )
    if config.dialog.max_input_length < 1:
        raise ValueError(
            f"MAX_INPUT_LENGTH must be >= 1, got {config.dialog.max_input_length}"
        )
    if config.booking_backend.backend not in BOOKING_BACKENDS:
        raise ValueError(
            f"BOOKING_BACKEND must be one of {BOOKING_BACKENDS}, "
            f"got {config.booking_backend.backend!r}"
        )
    if config.booking_backend.http_timeout_sec <= 0:
        raise ValueError(
            "BOOKING_API_TIMEOUT must be > 0, "
            f"got {config.booking_backend.http_timeout_sec}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] [%(session_id)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, SessionIdFilter) for f in handler.filters):
            handler.addFilter(SessionIdFilter())
    logger.info("Configuration loaded for '%s'", config.airline.name)
    return config


# Singleton instance
settings = load_config()

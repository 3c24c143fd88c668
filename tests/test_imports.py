"""Tests for import chains and module integrity.

Ensures all public modules can be imported without errors, that re-exports
from __init__.py files work correctly, and that the console scenarios still
play through to a final state.
"""

import pytest


class TestSchemaImports:
    def test_import_booking_schema(self):
        from skywings.schemas.booking_schema import Booking, Flight, Passenger, Seat, ServiceKind
        assert ServiceKind.SEAT == "seat"
        seat = Seat.model_validate({"id": "14A", "type": "window"})
        assert seat.seat_type == "window"
        assert Booking and Flight and Passenger

    def test_flight_accepts_backend_field_names(self):
        from skywings.schemas.booking_schema import Flight
        flight = Flight.model_validate({
            "number": "SW 501", "originCity": "Delhi", "destinationCity": "Mumbai", "date": "15th March",
        })
        assert flight.origin_city == "Delhi"

    def test_import_conversation_schema(self):
        from skywings.schemas.conversation_schema import CompletedService, TurnResult
        from skywings.schemas.booking_schema import ServiceKind
        assert CompletedService(kind=ServiceKind.PRIORITY, detail="Priority").is_free
        assert TurnResult is not None

    def test_import_session_schema(self):
        from skywings.schemas.session_schema import Session
        session = Session(session_id="s")
        assert session.customer_name is None
        assert session.turn_count == 0


class TestConversationImports:
    def test_package_reexports(self):
        from skywings.conversation import DialogState, DialogStateMachine, extract
        sm = DialogStateMachine()
        assert sm.current_state == DialogState.WAITING_NAME
        assert callable(extract)

    def test_session_schema_imports_first(self):
        from skywings.schemas.session_schema import Session
        from skywings.conversation.dialog_manager import DialogManager
        from skywings.conversation.session_store import SessionStore
        assert Session and DialogManager and SessionStore


class TestToolImports:
    def test_import_services(self):
        from skywings.tools.services import SERVICE_CATALOG, baggage_cost
        assert len(SERVICE_CATALOG) == 5
        assert callable(baggage_cost)

    def test_import_booking(self):
        from skywings.tools.booking import BookingService, BookingServiceError, build_booking_service
        assert callable(build_booking_service)
        assert issubclass(BookingServiceError, Exception)
        assert BookingService is not None


class TestPromptImports:
    def test_import_responses(self):
        from skywings.prompts.responses import RETRY_PROMPT, greeting
        assert RETRY_PROMPT == "I encountered an error, let me try again."
        assert "SkyWings Airlines" in greeting()

    def test_import_summary(self):
        from skywings.prompts.summary import build_booking_summary
        assert callable(build_booking_summary)


class TestConfigImport:
    def test_import_config(self):
        from skywings.config import settings
        assert settings.airline.name is not None
        assert settings.pricing.baggage_block_kg >= 1
        assert settings.dialog.collaborator_timeout_sec > 0


class TestVoiceAgent:
    def test_agent_constructs_without_session(self):
        pytest.importorskip("livekit.agents")
        from skywings.agents import AddOnVoiceAgent
        from skywings.conversation.dialog_manager import DialogManager

        agent = AddOnVoiceAgent(manager=DialogManager(), session_id="room-1")
        assert "SkyWings Airlines" in agent.instructions

    @pytest.mark.asyncio
    async def test_empty_transcript_is_ignored(self):
        pytest.importorskip("livekit.agents")
        from livekit.agents import ChatContext, ChatMessage, StopResponse

        from skywings.agents import AddOnVoiceAgent
        from skywings.conversation.dialog_manager import DialogManager

        manager = DialogManager()
        agent = AddOnVoiceAgent(manager=manager, session_id="room-1")
        with pytest.raises(StopResponse):
            await agent.on_user_turn_completed(
                ChatContext.empty(), ChatMessage(role="user", content=["   "])
            )


class TestConsoleDemo:
    def test_console_session_imports(self):
        from console_demo import ConsoleSession
        session = ConsoleSession()
        assert session.state == "waiting_name"
        assert session.session_id.startswith("console-")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("scenario,final_state", [
        ("seat", "completed"),
        ("multi", "completed"),
        ("wheelchair", "completed"),
        ("pet", "transfer"),
        ("unknown", "transfer"),
    ])
    async def test_scenarios_reach_final_state(self, scenario, final_state):
        from console_demo import ConsoleSession
        session = ConsoleSession()
        await session._play(ConsoleSession.SCENARIOS[scenario])
        assert session.state == final_state

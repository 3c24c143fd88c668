"""End-to-end conversation tests driving DialogManager against the mock backend."""

import asyncio

import pytest

from skywings.config import AppConfig, DialogConfig
from skywings.conversation.dialog_manager import DialogManager
from skywings.conversation.session_store import SessionNotFoundError, SessionStore
from skywings.conversation.state_machine import DialogState
from skywings.prompts.responses import RETRY_PROMPT
from skywings.schemas.booking_schema import ServiceKind
from skywings.tools import mock_booking
from tests.conftest import FlakyBookingService, SlowBookingService, play


def _session(manager: DialogManager, session_id: str):
    return manager.store.get(session_id)


class TestSessionLifecycle:
    @pytest.mark.asyncio
    async def test_start_session_greets_and_waits_for_name(self, manager):
        greeting = await manager.start_session("call-1")
        assert "SkyWings Airlines" in greeting
        assert "name" in greeting
        assert _session(manager, "call-1").dialog_state == DialogState.WAITING_NAME

    @pytest.mark.asyncio
    async def test_turn_before_start_raises(self, manager):
        with pytest.raises(SessionNotFoundError):
            await manager.handle_turn("never-started", "hello")

    @pytest.mark.asyncio
    async def test_turn_after_eviction_raises(self, manager):
        await play(manager, "call-1", "This is Rahul")
        manager.end_session("call-1")
        with pytest.raises(SessionNotFoundError):
            await manager.handle_turn("call-1", "seat please")

    @pytest.mark.asyncio
    async def test_restart_resets_session(self, manager):
        await play(manager, "call-1", "This is Rahul", "window seat, PNR ABC123")
        await manager.start_session("call-1")
        session = _session(manager, "call-1")
        assert session.dialog_state == DialogState.WAITING_NAME
        assert session.pnr is None
        assert session.requested_services == []


class TestNameCapture:
    @pytest.mark.asyncio
    async def test_unrecognized_name_reprompts(self, manager):
        result = await play(manager, "s", "umm")
        assert result.dialog_state == "waiting_name"
        assert "couldn't catch your name" in result.response

    @pytest.mark.asyncio
    async def test_name_and_request_in_one_utterance(self, manager):
        result = await play(manager, "s", "Hi this is Meera, I need a window seat, PNR ABC123")
        assert result.customer_name == "Meera"
        assert result.dialog_state == "confirming_flight"
        assert result.booking.pnr == "ABC123"

    @pytest.mark.asyncio
    async def test_request_words_are_not_taken_as_names(self, manager):
        result = await play(manager, "s", "Book a window seat, PNR ABC123")
        assert result.customer_name is None
        assert result.dialog_state == "confirming_flight"

        result = await play(manager, "t", "Baggage please")
        assert result.customer_name is None
        assert result.dialog_state == "waiting_pnr"

    @pytest.mark.asyncio
    async def test_greeting_word_is_not_a_name(self, manager):
        result = await play(manager, "s", "Namaste")
        assert result.customer_name is None
        assert result.dialog_state == "waiting_name"

    @pytest.mark.asyncio
    async def test_leading_name_before_request(self, manager):
        result = await play(manager, "s", "Meera, I need a window seat")
        assert result.customer_name == "Meera"
        assert result.dialog_state == "waiting_pnr"


class TestScenarioWindowSeat:
    @pytest.mark.asyncio
    async def test_window_seat_end_to_end(self, manager):
        result = await play(manager, "a", "This is Rahul")
        assert result.customer_name == "Rahul"
        assert result.dialog_state == "waiting_service_choice"

        result = await manager.handle_turn("a", "I need a window seat, PNR ABC123")
        session = _session(manager, "a")
        assert session.requested_services == [ServiceKind.SEAT]
        assert session.pnr == "ABC123"
        assert result.dialog_state == "confirming_flight"
        assert "Delhi" in result.response and "Mumbai" in result.response

        result = await manager.handle_turn("a", "yes")
        assert result.dialog_state == "seat_confirm"
        assert "14A" in result.response
        assert "Rs. 200" in result.response

        result = await manager.handle_turn("a", "yes")
        assert result.dialog_state == "whatsapp_confirm"
        assert [(s.kind, s.price) for s in result.completed_services] == [(ServiceKind.SEAT, 200)]
        assert mock_booking.get_mutations("book_seat")[0]["details"] == {
            "passenger_name": "Rahul Sharma", "seat_id": "14A",
        }

        result = await manager.handle_turn("a", "yes please")
        assert result.dialog_state == "completed"
        assert not result.transfer_required
        summaries = mock_booking.get_summaries("ABC123")
        assert len(summaries) == 1
        assert "Seat 14A (window) - Rs. 200" in summaries[0]

    @pytest.mark.asyncio
    async def test_seat_type_asked_when_not_given(self, manager):
        result = await play(manager, "s", "This is Rahul", "I need seat selection", "ABC123", "yes")
        assert result.dialog_state == "seat_type"
        assert "window, aisle, or extra legroom" in result.response

    @pytest.mark.asyncio
    async def test_declined_seat_returns_to_seat_type(self, manager):
        result = await play(
            manager, "s", "This is Rahul", "I need seat selection", "ABC123", "yes", "aisle",
        )
        assert result.dialog_state == "seat_confirm"
        assert "14C" in result.response

        result = await manager.handle_turn("s", "no")
        assert result.dialog_state == "seat_type"
        assert _session(manager, "s").pending is None

        await manager.handle_turn("s", "extra legroom")
        result = await manager.handle_turn("s", "yes")
        assert result.completed_services[0].detail == "Seat 12A (extra legroom)"
        assert result.completed_services[0].price == 800

    @pytest.mark.asyncio
    async def test_unclear_seat_type_reprompts(self, manager):
        result = await play(
            manager, "s", "This is Rahul", "I need seat selection", "ABC123", "yes", "the middle one",
        )
        assert result.dialog_state == "seat_type"
        assert "couldn't get that" in result.response

    @pytest.mark.asyncio
    async def test_no_seat_left_of_requested_type(self, manager):
        for seat in mock_booking._seats["SW 501"]:
            if seat["type"] == "extra-legroom":
                seat["available"] = False
        result = await play(
            manager, "s", "This is Rahul", "I need seat selection", "ABC123", "yes", "extra legroom",
        )
        assert result.dialog_state == "seat_type"
        assert "no extra legroom seats left" in result.response


class TestScenarioBaggage:
    async def _at_baggage_amount(self, manager):
        return await play(manager, "b", "This is Rahul", "I need extra baggage", "ABC123", "yes")

    @pytest.mark.asyncio
    async def test_quote_then_decline(self, manager):
        result = await self._at_baggage_amount(manager)
        assert result.dialog_state == "baggage_amount"

        result = await manager.handle_turn("b", "10 kg extra baggage")
        assert result.dialog_state == "baggage_confirm"
        assert "Rs. 1000 for 10 kg" in result.response

        result = await manager.handle_turn("b", "no")
        session = _session(manager, "b")
        assert result.completed_services == []
        assert session.current_service_index == 1
        assert result.dialog_state == "whatsapp_confirm"
        assert mock_booking.get_mutations("add_baggage") == []

    @pytest.mark.asyncio
    async def test_new_weight_requotes(self, manager):
        await self._at_baggage_amount(manager)
        await manager.handle_turn("b", "10 kg")
        result = await manager.handle_turn("b", "make it 15 kg")
        assert result.dialog_state == "baggage_confirm"
        assert "Rs. 1500 for 15 kg" in result.response

        result = await manager.handle_turn("b", "yes")
        assert result.completed_services[0].detail == "15 kg extra baggage"
        assert result.completed_services[0].price == 1500
        assert mock_booking.get_mutations("add_baggage")[0]["details"] == {"kg": 15}

    @pytest.mark.asyncio
    async def test_amount_without_number_reprompts(self, manager):
        await self._at_baggage_amount(manager)
        result = await manager.handle_turn("b", "quite a lot")
        assert result.dialog_state == "baggage_amount"

    @pytest.mark.asyncio
    async def test_weight_spoken_at_intake_is_quoted_directly(self, manager):
        result = await play(manager, "b", "This is Rahul", "I need 12 kg extra baggage, PNR ABC123", "yes")
        assert result.dialog_state == "baggage_confirm"
        assert "Rs. 1500 for 12 kg" in result.response


class TestServiceSequencing:
    @pytest.mark.asyncio
    async def test_baggage_then_seat_then_priority(self, manager):
        result = await play(
            manager, "q",
            "This is Rahul",
            "I need extra baggage, a seat and priority check-in",
        )
        assert _session(manager, "q").requested_services == [
            ServiceKind.BAGGAGE, ServiceKind.SEAT, ServiceKind.PRIORITY,
        ]
        assert result.dialog_state == "waiting_pnr"

        await manager.handle_turn("q", "ABC123")
        result = await manager.handle_turn("q", "yes")
        assert result.dialog_state == "baggage_amount"
        result = await manager.handle_turn("q", "5 kg")
        assert result.dialog_state == "baggage_confirm"
        result = await manager.handle_turn("q", "yes")
        assert result.dialog_state == "seat_type"
        result = await manager.handle_turn("q", "window")
        assert result.dialog_state == "seat_confirm"
        result = await manager.handle_turn("q", "yes")
        assert result.dialog_state == "priority_confirm"
        result = await manager.handle_turn("q", "yes")
        assert result.dialog_state == "whatsapp_confirm"

        assert [s.kind for s in result.completed_services] == [
            ServiceKind.BAGGAGE, ServiceKind.SEAT, ServiceKind.PRIORITY,
        ]
        assert [s.price for s in result.completed_services] == [500, 200, 0]

    @pytest.mark.asyncio
    async def test_declined_priority_adds_nothing(self, manager):
        result = await play(
            manager, "q", "This is Rahul", "priority check-in please, PNR ABC123", "yes", "no thanks",
        )
        assert result.dialog_state == "whatsapp_confirm"
        assert result.completed_services == []
        assert mock_booking.get_mutations("enable_priority") == []


class TestFlightReconfirmation:
    @pytest.mark.asyncio
    async def test_no_clears_booking_and_keeps_services(self, manager):
        result = await play(
            manager, "f", "This is Rahul", "I need a window seat and priority, PNR ABC123", "no",
        )
        session = _session(manager, "f")
        assert result.dialog_state == "waiting_pnr"
        assert result.booking is None
        assert session.pnr is None
        assert session.requested_services == [ServiceKind.SEAT, ServiceKind.PRIORITY]

        result = await manager.handle_turn("f", "XYZ789")
        assert result.dialog_state == "confirming_flight"
        assert "Bangalore" in result.response
        result = await manager.handle_turn("f", "yes")
        assert result.dialog_state == "seat_confirm"

    @pytest.mark.asyncio
    async def test_unclear_answer_asks_again(self, manager):
        result = await play(manager, "f", "This is Rahul", "window seat, PNR ABC123", "hmm maybe")
        assert result.dialog_state == "confirming_flight"
        assert "Please say yes or no" in result.response


class TestPnrCollection:
    @pytest.mark.asyncio
    async def test_not_found_then_found(self, manager):
        result = await play(manager, "p", "This is Rahul", "window seat please, PNR ZZZ999")
        assert result.dialog_state == "waiting_pnr"
        assert "couldn't find a booking with PNR ZZZ999" in result.response

        result = await manager.handle_turn("p", "no idea")
        assert result.dialog_state == "waiting_pnr"
        assert "spell it out" in result.response

        result = await manager.handle_turn("p", "A-B-C-1-2-3")
        assert result.dialog_state == "confirming_flight"

    @pytest.mark.asyncio
    async def test_unknown_pnr_without_service_moves_to_pnr_collection(self, manager):
        result = await play(manager, "p", "This is Rahul", "my PNR is ZZZ999")
        assert result.dialog_state == "waiting_pnr"
        assert "couldn't find a booking with PNR ZZZ999" in result.response

        result = await manager.handle_turn("p", "ABC123")
        assert result.dialog_state == "waiting_service_choice"
        assert result.booking.pnr == "ABC123"
        assert "seat selection" in result.response

        result = await manager.handle_turn("p", "extra baggage please")
        assert result.dialog_state == "confirming_flight"

    @pytest.mark.asyncio
    async def test_service_named_while_waiting_for_pnr_is_queued(self, manager):
        result = await play(manager, "p", "This is Rahul", "my PNR is ZZZ999", "I need a window seat")
        assert result.dialog_state == "waiting_pnr"
        assert _session(manager, "p").requested_services == [ServiceKind.SEAT]
        assert "seat selection" in result.response

        await manager.handle_turn("p", "ABC123")
        result = await manager.handle_turn("p", "yes")
        assert result.dialog_state == "seat_confirm"

    @pytest.mark.asyncio
    async def test_pnr_before_services(self, manager):
        result = await play(manager, "p", "This is Rahul", "my PNR is ABC123")
        assert result.dialog_state == "waiting_service_choice"
        assert result.booking.pnr == "ABC123"

        result = await manager.handle_turn("p", "extra baggage please")
        assert result.dialog_state == "confirming_flight"

    @pytest.mark.asyncio
    async def test_no_service_relists_menu(self, manager):
        result = await play(manager, "p", "This is Rahul", "hmm ok")
        assert result.dialog_state == "waiting_service_choice"
        assert "seat selection" in result.response
        assert _session(manager, "p").unknown_requests == []


class TestWheelchair:
    @pytest.mark.asyncio
    async def test_wheelchair_for_booking_passenger(self, manager):
        result = await play(
            manager, "w", "Priya here", "wheelchair assistance please", "XYZ789", "yes",
        )
        assert result.dialog_state == "wheelchair_name"

        result = await manager.handle_turn("w", "for Kamla")
        assert result.dialog_state == "wheelchair_type"
        assert "Kamla Patel" in result.response

        result = await manager.handle_turn("w", "gate to gate")
        assert result.dialog_state == "whatsapp_confirm"
        assert result.completed_services[0].detail == "Wheelchair for Kamla Patel (gate-to-gate)"
        assert result.completed_services[0].is_free
        assert mock_booking.get_mutations("register_wheelchair")[0]["details"] == {
            "passenger_name": "Kamla Patel", "assistance_type": "gate-to-gate",
        }

    @pytest.mark.asyncio
    async def test_unclear_level_defaults_to_full_assistance(self, manager):
        result = await play(
            manager, "w", "Priya here", "wheelchair please", "XYZ789", "yes", "Priya", "whatever works",
        )
        assert result.completed_services[0].detail.endswith(
            "(full assistance from check-in to destination)"
        )

    @pytest.mark.asyncio
    async def test_missing_passenger_name_reprompts(self, manager):
        result = await play(
            manager, "w", "Priya here", "wheelchair please", "XYZ789", "yes", "I'm not sure",
        )
        assert result.dialog_state == "wheelchair_name"


class TestPetTransfer:
    @pytest.mark.asyncio
    async def test_pet_details_then_summary_transfers(self, manager):
        result = await play(
            manager, "c", "This is Rahul", "I want to bring my pet, PNR ABC123", "yes",
        )
        assert result.dialog_state == "pet_details"

        result = await manager.handle_turn("c", "labrador, 12 kg")
        assert result.dialog_state == "whatsapp_confirm"
        assert result.transfer_required
        assert "labrador weighing 12 kg" in result.response

        result = await manager.handle_turn("c", "yes")
        assert result.dialog_state == "transfer"
        assert "Pet travel: labrador weighing 12 kg" in mock_booking.get_summaries("ABC123")[0]

    @pytest.mark.asyncio
    async def test_pet_never_completes_even_with_other_services(self, manager):
        result = await play(
            manager, "c",
            "This is Rahul",
            "I need priority check-in and pet travel, PNR ABC123",
            "yes", "yes", "a beagle", "no",
        )
        assert result.dialog_state == "transfer"
        assert [s.kind for s in result.completed_services] == [ServiceKind.PRIORITY]

    @pytest.mark.asyncio
    async def test_services_after_pet_are_not_skipped(self, manager):
        result = await play(
            manager, "c",
            "This is Rahul",
            "I have a cat and also need extra baggage, PNR ABC123",
            "yes", "a cat of 4 kg",
        )
        assert result.dialog_state == "baggage_amount"
        assert "specialist" in result.response

    @pytest.mark.asyncio
    async def test_pet_details_reprompt(self, manager):
        result = await play(manager, "c", "This is Rahul", "pet travel, PNR ABC123", "yes", "not sure")
        assert result.dialog_state == "pet_details"
        assert _session(manager, "c").pet_request is None


class TestUnknownRequests:
    @pytest.mark.asyncio
    async def test_unknown_request_forces_transfer(self, manager):
        result = await play(manager, "u", "Vikram", "I want to upgrade to business class")
        assert result.dialog_state == "waiting_pnr"
        assert result.transfer_required
        assert _session(manager, "u").unknown_requests == ["I want to upgrade to business class"]

        await manager.handle_turn("u", "ABC123")
        result = await manager.handle_turn("u", "correct")
        assert result.dialog_state == "whatsapp_confirm"
        assert "specialist for your other requests" in result.response

        result = await manager.handle_turn("u", "no")
        assert result.dialog_state == "transfer"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", [
        "Hi, I want to upgrade to business class",
        "Please change my meal preference to vegetarian",
        "Thank you, I also want to change my flight date",
    ])
    async def test_polite_opening_still_counts_as_unknown(self, manager, text):
        result = await play(manager, "u", "This is Rahul", text)
        assert result.dialog_state == "waiting_pnr"
        assert result.transfer_required
        assert _session(manager, "u").unknown_requests == [text]

    @pytest.mark.asyncio
    async def test_short_noise_is_not_logged(self, manager):
        await play(manager, "u", "Vikram", "blah")
        assert _session(manager, "u").unknown_requests == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["thank you", "ok thanks", "what can you do for me"])
    async def test_small_talk_and_help_are_not_logged(self, manager, text):
        result = await play(manager, "u", "Vikram", text)
        assert result.dialog_state == "waiting_service_choice"
        assert not result.transfer_required
        assert _session(manager, "u").unknown_requests == []


class TestWrapUp:
    async def _at_wrap_up(self, manager):
        return await play(manager, "z", "This is Rahul", "window seat, PNR ABC123", "yes", "yes")

    @pytest.mark.asyncio
    async def test_something_else_reuses_pnr(self, manager):
        result = await self._at_wrap_up(manager)
        assert result.dialog_state == "whatsapp_confirm"

        result = await manager.handle_turn("z", "something else actually")
        assert result.dialog_state == "waiting_service_choice"

        result = await manager.handle_turn("z", "extra baggage 10 kg")
        assert result.dialog_state == "baggage_confirm"
        assert _session(manager, "z").pnr == "ABC123"

    @pytest.mark.asyncio
    async def test_naming_a_service_starts_it(self, manager):
        await self._at_wrap_up(manager)
        result = await manager.handle_turn("z", "can you also add priority check-in")
        assert result.dialog_state == "priority_confirm"

    @pytest.mark.asyncio
    async def test_no_completes_without_summary(self, manager):
        await self._at_wrap_up(manager)
        result = await manager.handle_turn("z", "no, that's all")
        assert result.dialog_state == "completed"
        assert mock_booking.get_summaries("ABC123") == []

    @pytest.mark.asyncio
    async def test_terminal_state_answers_with_closing_line(self, manager):
        await self._at_wrap_up(manager)
        await manager.handle_turn("z", "no")
        result = await manager.handle_turn("z", "hello?")
        assert result.dialog_state == "completed"
        assert "call has ended" in result.response


class TestCollaboratorFailures:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("mode", ["raise", "false"])
    async def test_failed_booking_holds_confirm_state(self, mode):
        backend = FlakyBookingService(mode=mode)
        manager = DialogManager(booking_service=backend, store=SessionStore())
        result = await play(manager, "e", "This is Rahul", "window seat, PNR ABC123", "yes", "yes")
        assert result.response == RETRY_PROMPT
        assert result.dialog_state == "seat_confirm"
        assert result.completed_services == []

        backend.healthy = True
        result = await manager.handle_turn("e", "yes")
        assert result.dialog_state == "whatsapp_confirm"
        assert len(result.completed_services) == 1
        assert backend.attempts == ["book_seat"]

    @pytest.mark.asyncio
    async def test_failed_summary_holds_wrap_up(self):
        backend = FlakyBookingService(mode="raise")
        manager = DialogManager(booking_service=backend, store=SessionStore())
        result = await play(manager, "e", "This is Rahul", "priority please, PNR ABC123", "yes", "no", "yes")
        assert result.response == RETRY_PROMPT
        assert result.dialog_state == "whatsapp_confirm"

    @pytest.mark.asyncio
    async def test_lookup_failure_at_name_step_changes_nothing(self):
        backend = FlakyBookingService(fail_lookups=True)
        manager = DialogManager(booking_service=backend, store=SessionStore())
        text = "This is Rahul, I need a window seat, PNR ABC123"

        result = await play(manager, "e", text)
        session = _session(manager, "e")
        assert result.response == RETRY_PROMPT
        assert result.dialog_state == "waiting_name"
        assert result.customer_name is None
        assert session.requested_services == []

        backend.healthy = True
        result = await manager.handle_turn("e", text)
        assert result.dialog_state == "confirming_flight"
        assert result.customer_name == "Rahul"
        assert session.requested_services == [ServiceKind.SEAT]

    @pytest.mark.asyncio
    async def test_lookup_timeout_changes_nothing(self):
        config = AppConfig(dialog=DialogConfig(collaborator_timeout_sec=0.05))
        manager = DialogManager(
            booking_service=SlowBookingService(delay=0.5), store=SessionStore(), config=config,
        )
        result = await play(manager, "t", "This is Rahul", "window seat, PNR ABC123")
        session = _session(manager, "t")
        assert result.response == RETRY_PROMPT
        assert result.dialog_state == "waiting_service_choice"
        assert session.pnr is None
        assert session.requested_services == []


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_turns_for_one_session_are_serialized(self):
        manager = DialogManager(booking_service=SlowBookingService(delay=0.05), store=SessionStore())
        await play(manager, "s", "This is Rahul")
        first, second = await asyncio.gather(
            manager.handle_turn("s", "window seat, PNR ABC123"),
            manager.handle_turn("s", "yes"),
        )
        assert first.dialog_state == "confirming_flight"
        assert second.dialog_state == "seat_confirm"

    @pytest.mark.asyncio
    async def test_sessions_are_independent(self, manager):
        await manager.start_session("one")
        await manager.start_session("two")
        first, second = await asyncio.gather(
            manager.handle_turn("one", "This is Rahul"),
            manager.handle_turn("two", "Priya here"),
        )
        assert first.customer_name == "Rahul"
        assert second.customer_name == "Priya"

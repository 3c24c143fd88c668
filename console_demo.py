"""
Offline console demo: runs a full add-on call without any API keys.

Drives the real dialog manager against the in-memory booking backend. No
speech, no LiveKit, no network calls. Designed for live demo walkthroughs.

Usage:
    python console_demo.py
    python console_demo.py --scenario seat
    python console_demo.py --scenario pet
"""

import argparse
import asyncio
import uuid

from skywings.config import settings
from skywings.conversation.dialog_manager import DialogManager
from skywings.conversation.state_machine import TERMINAL_STATES, DialogState
from skywings.schemas.conversation_schema import TurnResult
from skywings.tools.mock_booking import MockBookingService, get_mutations

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

TERMINAL_VALUES = {state.value for state in TERMINAL_STATES}


class ConsoleSession:
    """Plays one call in the terminal."""

    # Pre-scripted scenarios for --scenario flag
    SCENARIOS: dict[str, list[str]] = {
        "seat": [
            "This is Rahul",
            "I need a window seat, PNR ABC123",
            "yes",
            "yes",
            "yes please",
        ],
        "multi": [
            "Hi, I'm Priya",
            "I need extra baggage, an aisle seat and priority check-in",
            "XYZ789",
            "yes",
            "10 kg",
            "no",
            "yes",
            "yes",
            "no thanks",
        ],
        "wheelchair": [
            "Arjun here",
            "I need wheelchair assistance for my mother",
            "my PNR is DEF456",
            "yes",
            "Mrs Kamla Mehta",
            "gate to gate please",
            "send it on whatsapp",
        ],
        "pet": [
            "My name is Sneha",
            "I want to travel with my dog, booking reference ABC123",
            "yes",
            "she is a labrador, around 12 kg",
            "yes",
        ],
        "unknown": [
            "Vikram",
            "I want to upgrade to business class",
            "ABC123",
            "correct",
            "no",
        ],
    }

    def __init__(self, manager: DialogManager = None) -> None:
        self.manager = manager or DialogManager(booking_service=MockBookingService())
        self.session_id = f"console-{uuid.uuid4().hex[:8]}"
        self.state = DialogState.WAITING_NAME.value

    def agent_say(self, text: str) -> None:
        print(f"{GREEN}{BOLD}[{settings.airline.agent_persona}]{RESET} {GREEN}{text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def _banner(self, title: str, *lines: str) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  {title}{RESET}")
        for line in lines:
            print(f"{BOLD}  {line}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        print()

    def _show(self, result: TurnResult) -> None:
        self.state = result.dialog_state
        self.agent_say(result.response)
        self.system_log(f"State: {result.dialog_state}")
        if result.transfer_required:
            self.system_log("Specialist transfer pending")

    def _report(self, label: str) -> None:
        session = self.manager.store.get(self.session_id)
        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  {label}{RESET}")
        if session is not None:
            print(f"{DIM}  State trace: {' -> '.join(session.machine.get_state_trace())}{RESET}")
            for service in session.completed_services:
                price = "FREE" if service.is_free else f"{settings.airline.currency_label} {service.price}"
                print(f"{DIM}  Completed: {service.detail} ({price}){RESET}")
        print(f"{DIM}  Backend calls: {len(get_mutations())}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

    async def _play(self, steps: list[str]) -> None:
        self.agent_say(await self.manager.start_session(self.session_id))
        self.system_log(f"State: {self.state}")
        for step in steps:
            if self.state in TERMINAL_VALUES:
                break
            print(f"\n{BLUE}[Caller] {RESET}{step}")
            self._show(await self.manager.handle_turn(self.session_id, step))

    async def _interactive(self) -> None:
        self.agent_say(await self.manager.start_session(self.session_id))
        self.system_log(f"State: {self.state}")
        while self.state not in TERMINAL_VALUES:
            user_input = (await asyncio.to_thread(input, f"\n{BLUE}[Caller] {RESET}")).strip()
            if not user_input:
                continue
            if user_input.lower() in ("quit", "exit", "q"):
                print(f"\n{DIM}Session ended.{RESET}")
                return
            self._show(await self.manager.handle_turn(self.session_id, user_input))

    def run_scenario(self, scenario: str) -> None:
        """Auto-play a pre-scripted scenario for demo purposes."""
        steps = self.SCENARIOS.get(scenario)
        if not steps:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return

        self._banner(
            f"SKYWINGS ADD-ON AGENT - Scenario: {scenario}",
            f"Airline: {settings.airline.name}",
        )
        asyncio.run(self._play(steps))
        self._report(f"Scenario '{scenario}' complete.")

    def run(self) -> None:
        self._banner(
            "SKYWINGS ADD-ON AGENT - Console Demo",
            f"Airline: {settings.airline.name}",
            "Sample PNRs: ABC123, XYZ789, DEF456",
            "Type 'quit' to exit",
        )
        asyncio.run(self._interactive())
        self._report("Conversation complete.")


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline console demo")
    parser.add_argument(
        "--scenario",
        choices=sorted(ConsoleSession.SCENARIOS),
        default=None,
        help="Auto-play a pre-scripted scenario instead of interactive mode",
    )
    args = parser.parse_args()

    session = ConsoleSession()
    if args.scenario:
        session.run_scenario(args.scenario)
    else:
        session.run()


if __name__ == "__main__":
    main()

"""
LiveKit voice agent for the add-on call.

The agent has no language model: each final transcript is handed to the
shared ``DialogManager`` and the returned line is spoken with TTS. Replies
are generated by the state machine only, so the pipeline's own reply step
is suppressed with ``StopResponse``.
"""

from livekit.agents import Agent, ChatContext, ChatMessage, StopResponse

from skywings.config import settings
from skywings.conversation.dialog_manager import DialogManager
from skywings.conversation.state_machine import TERMINAL_STATES
from skywings.logging_context import get_session_logger, set_session_id

logger = get_session_logger(__name__)

AGENT_INSTRUCTIONS = (
    f"You are {settings.airline.agent_persona}, the {settings.airline.name} add-on "
    "booking assistant. Replies are scripted by the dialog manager."
)


class AddOnVoiceAgent(Agent):
    """Speaks the dialog manager's replies for one call."""

    def __init__(self, manager: DialogManager, session_id: str) -> None:
        super().__init__(instructions=AGENT_INSTRUCTIONS)
        self._manager = manager
        self._session_id = session_id

    async def on_enter(self) -> None:
        set_session_id(self._session_id)
        greeting = await self._manager.start_session(self._session_id)
        logger.info("Call started")
        self.session.say(greeting)

    async def on_user_turn_completed(self, turn_ctx: ChatContext, new_message: ChatMessage) -> None:
        text = new_message.text_content or ""
        if not text.strip():
            raise StopResponse()

        result = await self._manager.handle_turn(self._session_id, text)
        self.session.say(result.response)
        if result.dialog_state in {state.value for state in TERMINAL_STATES}:
            logger.info("Call reached %s", result.dialog_state)
        raise StopResponse()

    async def on_exit(self) -> None:
        self._manager.end_session(self._session_id)

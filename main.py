"""
LiveKit voice agent entry point.

Configures the STT -> dialog manager -> TTS pipeline and launches the add-on
agent. Supports both live voice mode and console text mode for development.

Usage:
    Live voice:   python main.py dev
    Console mode: python main.py console
    Scenario:     python main.py console seat
"""

import logging
import sys

from skywings.config import settings

logger = logging.getLogger(__name__)


def _build_session():
    """Build a new AgentSession with the configured STT/TTS pipeline."""
    from livekit.agents import AgentSession
    from livekit.plugins import cartesia, deepgram, silero

    return AgentSession(
        stt=deepgram.STT(
            model=settings.voice.stt_model,
            language=settings.voice.stt_language,
        ),
        tts=cartesia.TTS(
            model=settings.voice.tts_model,
            voice=settings.voice.tts_voice_id,
        ),
        vad=silero.VAD.load(),
    )


async def entrypoint(ctx) -> None:
    """LiveKit agent entrypoint, module-level for worker process pickling."""
    from skywings.agents.voice_agent import AddOnVoiceAgent
    from skywings.conversation.dialog_manager import DialogManager

    await ctx.connect()
    manager = DialogManager()
    ctx.add_shutdown_callback(manager.aclose)
    session = _build_session()
    agent = AddOnVoiceAgent(manager=manager, session_id=ctx.room.name)
    await session.start(room=ctx.room, agent=agent)
    logger.info("Voice agent session started in room: %s", ctx.room.name)


def _run_voice_mode() -> None:
    """Start the full LiveKit voice pipeline (requires API keys)."""
    from livekit.agents import WorkerOptions, cli

    worker = WorkerOptions(
        entrypoint_fnc=entrypoint,
        agent_name=settings.agent_name,
    )
    cli.run_app(worker)


def _run_console_mode(scenario: str = "") -> None:
    """Start the offline console demo (no API keys required)."""
    from console_demo import ConsoleSession

    session = ConsoleSession()
    if scenario:
        session.run_scenario(scenario)
    else:
        session.run()


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "console":
        _run_console_mode(sys.argv[2] if len(sys.argv) > 2 else "")
    else:
        _run_voice_mode()

from skywings.agents.voice_agent import AddOnVoiceAgent

__all__ = ["AddOnVoiceAgent"]

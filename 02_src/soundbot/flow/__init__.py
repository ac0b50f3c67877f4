"""Conversation flow module."""

from .conversation import ConversationFlow, IConversationFlow
from .engine import SOUND_FILENAMES, FlowStep, Turn, audio_index, audio_url, decide

__all__ = [
    "ConversationFlow",
    "IConversationFlow",
    "SOUND_FILENAMES",
    "FlowStep",
    "Turn",
    "audio_index",
    "audio_url",
    "decide",
]

"""Conversation and speech data models."""

from talksync.models.conversation import (
    Conversation,
    ConversationEvent,
    ConversationEventType,
    Message,
    Sender,
)
from talksync.models.speech import RecognitionSession, SpeechEvent, SpeechEventType

__all__ = [
    "Conversation",
    "ConversationEvent",
    "ConversationEventType",
    "Message",
    "Sender",
    "RecognitionSession",
    "SpeechEvent",
    "SpeechEventType",
]

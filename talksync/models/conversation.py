"""Conversation data model: messages and the ordered chat history."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import Enum
from typing import Callable, Iterator, List, Optional

from talksync.core.logger import logger


class Sender(str, Enum):
    """Who authored a message."""

    USER = "user"
    BOT = "bot"


@dataclass(frozen=True)
class Message:
    """A single chat message. Immutable once created."""

    sender: Sender
    text: str
    is_audio: bool = False
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_user(cls, text: str, is_audio: bool = False) -> "Message":
        return cls(sender=Sender.USER, text=text, is_audio=is_audio)

    @classmethod
    def from_bot(cls, text: str) -> "Message":
        # Bot replies are never marked as audio, even when they get spoken.
        return cls(sender=Sender.BOT, text=text, is_audio=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sender": self.sender.value,
            "text": self.text,
            "is_audio": self.is_audio,
            "created_at": self.created_at.isoformat(),
        }


class ConversationEventType(str, Enum):
    MESSAGE_ADDED = "message_added"
    CLEARED = "cleared"


@dataclass(frozen=True)
class ConversationEvent:
    type: ConversationEventType
    message: Optional[Message] = None
    epoch: int = 0


ConversationListener = Callable[[ConversationEvent], None]


class Conversation:
    """Ordered message history, newest last.

    The epoch advances every time the conversation is cleared. Work that
    started under an older epoch must not append to the conversation; callers
    compare the epoch they captured against ``epoch`` before mutating.
    """

    def __init__(self):
        self._messages: List[Message] = []
        self._epoch = 0
        self._listeners: List[ConversationListener] = []

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def messages(self) -> List[Message]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(list(self._messages))

    def last(self) -> Optional[Message]:
        return self._messages[-1] if self._messages else None

    def get(self, message_id: str) -> Optional[Message]:
        for message in self._messages:
            if message.id == message_id:
                return message
        return None

    def add_listener(self, listener: ConversationListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: ConversationListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def append(self, message: Message) -> Message:
        self._messages.append(message)
        logger.debug(f"Appended {message.sender.value} message {message.id}")
        self._notify(ConversationEvent(ConversationEventType.MESSAGE_ADDED, message, self._epoch))
        return message

    def clear(self) -> None:
        self._messages.clear()
        self._epoch += 1
        logger.info(f"Conversation cleared (epoch {self._epoch})")
        self._notify(ConversationEvent(ConversationEventType.CLEARED, None, self._epoch))

    def transcript(self) -> str:
        return "\n\n".join(
            f"{message.sender.value.upper()}: {message.text}" for message in self._messages
        )

    def _notify(self, event: ConversationEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Conversation listener failed: {e}", exc_info=True)

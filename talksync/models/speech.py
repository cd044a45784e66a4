"""Common types for speech capture and synthesis."""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from talksync.core.logger import logger


TextListener = Callable[[str], None]


class RecognitionSession:
    """Live state of speech capture.

    Attributes:
        is_recording: Whether the capture source is currently listening
        recognized_text: Transcript so far, grows as speech is recognized
        generation: Incremented on every new recording, used to tell
            sessions apart when a delayed action fires
    """

    def __init__(self):
        self.is_recording = False
        self.recognized_text = ""
        self.generation = 0
        self._listeners: List[TextListener] = []

    def add_listener(self, listener: TextListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: TextListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def begin(self) -> int:
        self.generation += 1
        self.is_recording = True
        self.update_text("")
        logger.debug(f"Recognition session {self.generation} started")
        return self.generation

    def end(self) -> None:
        self.is_recording = False
        logger.debug(f"Recognition session {self.generation} ended")

    def update_text(self, text: str) -> None:
        if text == self.recognized_text:
            return
        self.recognized_text = text
        for listener in list(self._listeners):
            try:
                listener(text)
            except Exception as e:
                logger.error(f"Recognition listener failed: {e}", exc_info=True)

    def clear_text(self) -> None:
        self.update_text("")


class SpeechEventType(str, Enum):
    STARTED = "started"
    FINISHED = "finished"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class SpeechEvent:
    """Lifecycle notification for one utterance."""

    type: SpeechEventType
    utterance_id: str
    message_id: Optional[str] = None
    text: Optional[str] = None

"""Speech synthesis: engines and the single-slot synthesis session."""

import uuid
from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from talksync.core.logger import logger
from talksync.core.exceptions import SpeechError
from talksync.core.settings import settings
from talksync.models.speech import SpeechEvent, SpeechEventType


SpeechListener = Callable[[SpeechEvent], None]


class BaseSpeechEngine(ABC):
    """Abstract interface for text-to-speech engines.

    Engines may complete an utterance later and report it through
    ``SpeechSynthesisSession.handle_finished``, or play it synchronously and
    signal completion through the return value of ``speak``.
    """

    name: str = "base"

    @abstractmethod
    async def speak(self, text: str, utterance_id: str) -> bool:
        """Begin speaking ``text``.

        Args:
            text: Text to speak
            utterance_id: Identifier the engine must use when reporting
                completion or cancellation

        Returns:
            True if playback already completed, False if completion will be
            reported later
        """
        pass

    @abstractmethod
    async def stop(self) -> None:
        """Cancel the utterance in progress, if any."""
        pass


class LogSpeechEngine(BaseSpeechEngine):
    """Text-only engine: logs the utterance instead of playing audio."""

    name = "log"

    def __init__(self, voice_language: Optional[str] = None):
        self.voice_language = voice_language or settings.speech.TTS_VOICE_LANGUAGE
        self.spoken: List[str] = []

    async def speak(self, text: str, utterance_id: str) -> bool:
        logger.info(f"[TTS {self.voice_language}] {text}")
        self.spoken.append(text)
        return True

    async def stop(self) -> None:
        pass


class SpeechSynthesisSession:
    """Owns the "currently speaking" slot for one conversation.

    At most one utterance is active. A new ``speak`` call cancels the
    current utterance before starting, and completion reports for an
    utterance that is no longer current are ignored, so a preempted
    utterance only ever ends as cancelled.
    """

    def __init__(self, engine: Optional[BaseSpeechEngine] = None):
        self._engine = engine or LogSpeechEngine()
        self._utterance_id: Optional[str] = None
        self._message_id: Optional[str] = None
        self._listeners: List[SpeechListener] = []

    @property
    def engine(self) -> BaseSpeechEngine:
        return self._engine

    @property
    def currently_speaking_message_id(self) -> Optional[str]:
        return self._message_id

    @property
    def current_utterance_id(self) -> Optional[str]:
        return self._utterance_id

    @property
    def is_speaking(self) -> bool:
        return self._utterance_id is not None

    def add_listener(self, listener: SpeechListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: SpeechListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def speak(self, text: str, message_id: str) -> str:
        if not text or not text.strip():
            raise SpeechError("Empty text provided for speech synthesis")

        if self.is_speaking:
            await self.cancel()

        utterance_id = str(uuid.uuid4())
        self._utterance_id = utterance_id
        self._message_id = message_id
        self._emit(SpeechEvent(SpeechEventType.STARTED, utterance_id, message_id, text))

        try:
            completed = await self._engine.speak(text, utterance_id)
        except Exception as e:
            logger.error(f"Speech engine '{self._engine.name}' failed: {e}")
            self.handle_cancelled(utterance_id)
            raise SpeechError(f"Failed to speak message: {str(e)}") from e

        if completed:
            self.handle_finished(utterance_id)
        return utterance_id

    async def cancel(self) -> None:
        utterance_id = self._utterance_id
        if utterance_id is None:
            return
        try:
            await self._engine.stop()
        except Exception as e:
            logger.error(f"Speech engine '{self._engine.name}' failed to stop: {e}")
        self.handle_cancelled(utterance_id)

    def handle_finished(self, utterance_id: str) -> bool:
        return self._complete(utterance_id, SpeechEventType.FINISHED)

    def handle_cancelled(self, utterance_id: str) -> bool:
        return self._complete(utterance_id, SpeechEventType.CANCELLED)

    def _complete(self, utterance_id: str, event_type: SpeechEventType) -> bool:
        if utterance_id != self._utterance_id:
            logger.debug(f"Ignoring stale {event_type.value} report for utterance {utterance_id}")
            return False

        message_id = self._message_id
        self._utterance_id = None
        self._message_id = None
        self._emit(SpeechEvent(event_type, utterance_id, message_id))
        return True

    def _emit(self, event: SpeechEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Speech listener failed: {e}", exc_info=True)

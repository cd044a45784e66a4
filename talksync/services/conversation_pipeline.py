import asyncio
from dataclasses import dataclass
from typing import Callable, List, Optional, Set

from talksync.core.logger import logger
from talksync.core.exceptions import SpeechError
from talksync.models.conversation import Conversation, Message
from talksync.services.chat_backend_client import ChatBackendClient
from talksync.services.language_detector import LanguageDetector, UNDETERMINED
from talksync.services.speech_synthesis import SpeechSynthesisSession
from talksync.services.translation_client import TranslationClient


LanguageListener = Callable[[str], None]


@dataclass(frozen=True)
class Exchange:
    """The messages one submission appended, and the language it detected."""

    user_message: Message
    bot_message: Message
    detected_language: str

    @property
    def messages(self) -> List[Message]:
        return [self.user_message, self.bot_message]


class ConversationPipeline:
    """Detect, translate, send and (for spoken input) speak the reply.

    Submissions run one at a time in arrival order. Each submission remembers
    the conversation epoch it was accepted under and is dropped if the
    conversation is cleared before it gets to append.
    """

    def __init__(
        self,
        conversation: Conversation,
        translator: TranslationClient,
        backend: ChatBackendClient,
        detector: Optional[LanguageDetector] = None,
        synthesis: Optional[SpeechSynthesisSession] = None,
    ):
        self.conversation = conversation
        self._translator = translator
        self._backend = backend
        self._detector = detector or LanguageDetector()
        self._synthesis = synthesis
        self._lock = asyncio.Lock()
        self._tasks: Set[asyncio.Task] = set()
        self._language_listeners: List[LanguageListener] = []
        self.detected_language = ""

    def add_language_listener(self, listener: LanguageListener) -> None:
        self._language_listeners.append(listener)

    async def submit_text(self, text: str, is_audio: bool = False) -> Optional[Exchange]:
        """Run one exchange to completion.

        Returns:
            The exchange, or None if the input was empty or the
            conversation was cleared while the exchange was in flight.
        """
        trimmed = text.strip() if text else ""
        if not trimmed:
            logger.debug("Ignoring empty submission")
            return None

        epoch = self.conversation.epoch
        # Reported on arrival, even if an earlier exchange is still running.
        language = self._detector.detect(trimmed)
        self._set_detected_language(language)

        async with self._lock:
            if self._is_stale(epoch):
                return None

            translated = await self._translator.translate(trimmed)
            if self._is_stale(epoch):
                return None
            user_message = self.conversation.append(Message.from_user(translated, is_audio=is_audio))

            reply = await self._backend.send_message(translated)
            if self._is_stale(epoch):
                return None
            bot_message = self.conversation.append(Message.from_bot(reply))

            if is_audio and self._synthesis is not None:
                try:
                    await self._synthesis.speak(reply, bot_message.id)
                except SpeechError as e:
                    logger.error(f"Could not speak reply {bot_message.id}: {e}")

            return Exchange(user_message, bot_message, language)

    def submit(self, text: str, is_audio: bool = False) -> asyncio.Task:
        """Schedule ``submit_text`` without waiting for it."""
        task = asyncio.create_task(self.submit_text(text, is_audio))
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    async def drain(self) -> None:
        """Wait until every scheduled submission has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def clear(self) -> None:
        self.conversation.clear()
        self._set_detected_language("")
        if self._synthesis is not None:
            await self._synthesis.cancel()

    async def close(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        if self._synthesis is not None:
            await self._synthesis.cancel()

    def _is_stale(self, epoch: int) -> bool:
        if epoch != self.conversation.epoch:
            logger.info("Conversation was cleared, dropping in-flight submission")
            return True
        return False

    def _set_detected_language(self, language: str) -> None:
        self.detected_language = language
        if language == UNDETERMINED:
            logger.debug("Could not determine input language")
        for listener in list(self._language_listeners):
            try:
                listener(language)
            except Exception as e:
                logger.error(f"Language listener failed: {e}", exc_info=True)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Submission failed: {error}", exc_info=error)

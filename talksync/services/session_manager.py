import asyncio
import uuid
from datetime import datetime, UTC
from typing import Callable, Dict, Optional
from dataclasses import dataclass, field

from talksync.core.logger import logger
from talksync.core.exceptions import SessionError
from talksync.models.conversation import Conversation
from talksync.models.speech import RecognitionSession
from talksync.services.chat_backend_client import ChatBackendClient
from talksync.services.conversation_pipeline import ConversationPipeline
from talksync.services.debounce import DebouncedSpeechTrigger
from talksync.services.language_detector import LanguageDetector
from talksync.services.speech_capture import BaseSpeechCaptureSource
from talksync.services.speech_synthesis import BaseSpeechEngine, SpeechSynthesisSession
from talksync.services.translation_client import TranslationClient


CaptureFactory = Callable[[RecognitionSession], BaseSpeechCaptureSource]


@dataclass
class ChatSession:
    session_id: str
    conversation: Conversation
    recognition: RecognitionSession
    synthesis: SpeechSynthesisSession
    pipeline: ConversationPipeline
    trigger: Optional[DebouncedSpeechTrigger] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    last_active: datetime = field(default_factory=lambda: datetime.now(UTC))
    metadata: Dict = field(default_factory=dict)

    def touch(self) -> None:
        self.last_active = datetime.now(UTC)

    def is_expired(self, timeout_seconds: int = 3600) -> bool:
        return (datetime.now(UTC) - self.last_active).total_seconds() > timeout_seconds

    async def close(self) -> None:
        if self.trigger is not None:
            await self.trigger.close()
        await self.pipeline.close()


class SessionManager:
    def __init__(
        self,
        translator: TranslationClient,
        backend: ChatBackendClient,
        detector: Optional[LanguageDetector] = None,
        session_timeout: int = 3600,
    ):
        self._translator = translator
        self._backend = backend
        self._detector = detector or LanguageDetector()
        self._sessions: Dict[str, ChatSession] = {}
        self._session_timeout = session_timeout
        self._cleanup_task: Optional[asyncio.Task] = None

    def create_session(
        self,
        engine: Optional[BaseSpeechEngine] = None,
        capture_factory: Optional[CaptureFactory] = None,
        metadata: Optional[Dict] = None,
    ) -> ChatSession:
        session_id = str(uuid.uuid4())
        conversation = Conversation()
        recognition = RecognitionSession()
        synthesis = SpeechSynthesisSession(engine)
        pipeline = ConversationPipeline(
            conversation,
            translator=self._translator,
            backend=self._backend,
            detector=self._detector,
            synthesis=synthesis,
        )

        trigger = None
        if capture_factory is not None:
            trigger = DebouncedSpeechTrigger(
                recognition,
                capture_factory(recognition),
                lambda text: pipeline.submit(text, is_audio=True),
            )

        session = ChatSession(
            session_id=session_id,
            conversation=conversation,
            recognition=recognition,
            synthesis=synthesis,
            pipeline=pipeline,
            trigger=trigger,
            metadata=metadata or {},
        )
        self._sessions[session_id] = session
        logger.info(f"Created session: {session_id}")
        return session

    def get_session(self, session_id: str) -> Optional[ChatSession]:
        session = self._sessions.get(session_id)
        if session:
            session.touch()
        return session

    def require_session(self, session_id: str) -> ChatSession:
        session = self.get_session(session_id)
        if session is None:
            raise SessionError(f"Session not found: {session_id}")
        return session

    async def delete_session(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        await session.close()
        logger.info(f"Deleted session: {session_id}")
        return True

    async def cleanup_expired_sessions(self) -> int:
        expired_ids = [
            sid for sid, session in self._sessions.items()
            if session.is_expired(self._session_timeout)
        ]

        for sid in expired_ids:
            await self.delete_session(sid)

        if expired_ids:
            logger.info(f"Cleaned up {len(expired_ids)} expired sessions")

        return len(expired_ids)

    @property
    def cleanup_running(self) -> bool:
        return self._cleanup_task is not None and not self._cleanup_task.done()

    def start_cleanup(self, interval_seconds: float) -> None:
        """Expire idle sessions every ``interval_seconds`` until stopped."""
        if self.cleanup_running:
            return
        self._cleanup_task = asyncio.create_task(self._cleanup_loop(interval_seconds))
        logger.info(f"Session cleanup running every {interval_seconds}s")

    async def stop_cleanup(self) -> None:
        if self._cleanup_task is None:
            return
        self._cleanup_task.cancel()
        await asyncio.gather(self._cleanup_task, return_exceptions=True)
        self._cleanup_task = None

    async def _cleanup_loop(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                await self.cleanup_expired_sessions()
            except Exception as e:
                logger.error(f"Session cleanup failed: {e}", exc_info=True)

    def get_active_session_count(self) -> int:
        return len(self._sessions)

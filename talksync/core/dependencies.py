from typing import Optional

from talksync.core.logger import logger
from talksync.core.settings import settings
from talksync.services.arithmetic_client import ArithmeticServiceClient
from talksync.services.chat_backend_client import ChatBackendClient
from talksync.services.language_detector import LanguageDetector
from talksync.services.session_manager import SessionManager
from talksync.services.translation_client import TranslationClient


class DependencyContainer:
    _instance: Optional["DependencyContainer"] = None

    def __init__(self):
        self._session_manager: Optional[SessionManager] = None
        self._translation_client: Optional[TranslationClient] = None
        self._chat_backend_client: Optional[ChatBackendClient] = None
        self._arithmetic_client: Optional[ArithmeticServiceClient] = None
        self._language_detector: Optional[LanguageDetector] = None

    @classmethod
    def get_instance(cls) -> "DependencyContainer":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def get_translation_client(self) -> TranslationClient:
        if self._translation_client is None:
            self._translation_client = TranslationClient()
            logger.debug("TranslationClient initialized")
        return self._translation_client

    def get_chat_backend_client(self) -> ChatBackendClient:
        if self._chat_backend_client is None:
            self._chat_backend_client = ChatBackendClient()
            logger.debug("ChatBackendClient initialized")
        return self._chat_backend_client

    def get_arithmetic_client(self) -> ArithmeticServiceClient:
        if self._arithmetic_client is None:
            self._arithmetic_client = ArithmeticServiceClient()
            logger.debug("ArithmeticServiceClient initialized")
        return self._arithmetic_client

    def get_language_detector(self) -> LanguageDetector:
        if self._language_detector is None:
            self._language_detector = LanguageDetector()
        return self._language_detector

    def get_session_manager(self) -> SessionManager:
        if self._session_manager is None:
            self._session_manager = SessionManager(
                translator=self.get_translation_client(),
                backend=self.get_chat_backend_client(),
                detector=self.get_language_detector(),
                session_timeout=settings.api.SESSION_TIMEOUT_SECONDS,
            )
            logger.debug("SessionManager initialized")
        return self._session_manager

    def override(
        self,
        translation_client: Optional[TranslationClient] = None,
        chat_backend_client: Optional[ChatBackendClient] = None,
        arithmetic_client: Optional[ArithmeticServiceClient] = None,
    ) -> None:
        if translation_client is not None:
            self._translation_client = translation_client
        if chat_backend_client is not None:
            self._chat_backend_client = chat_backend_client
        if arithmetic_client is not None:
            self._arithmetic_client = arithmetic_client
        self._session_manager = None

    def reset(self) -> None:
        self._session_manager = None
        self._translation_client = None
        self._chat_backend_client = None
        self._arithmetic_client = None
        self._language_detector = None
        logger.debug("Dependency container reset")


def get_container() -> DependencyContainer:
    return DependencyContainer.get_instance()

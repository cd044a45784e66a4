import json
from typing import Callable, List

import httpx
import pytest
from unittest.mock import AsyncMock, Mock

from talksync.models.conversation import Conversation
from talksync.models.speech import RecognitionSession
from talksync.services.chat_backend_client import ChatBackendClient
from talksync.services.conversation_pipeline import ConversationPipeline
from talksync.services.language_detector import LanguageDetector
from talksync.services.session_manager import SessionManager
from talksync.services.speech_capture import BaseSpeechCaptureSource
from talksync.services.speech_synthesis import BaseSpeechEngine, SpeechSynthesisSession
from talksync.services.translation_client import TranslationClient


class RecordingSpeechEngine(BaseSpeechEngine):
    """Engine that never finishes on its own; tests report completion."""

    name = "recording"

    def __init__(self):
        self.spoken: List[tuple] = []
        self.stop_calls = 0

    async def speak(self, text: str, utterance_id: str) -> bool:
        self.spoken.append((text, utterance_id))
        return False

    async def stop(self) -> None:
        self.stop_calls += 1


class FakeCaptureSource(BaseSpeechCaptureSource):
    def __init__(self, recognition: RecognitionSession):
        super().__init__(recognition)
        self.start_calls = 0
        self.stop_calls = 0

    async def start(self) -> None:
        self._active = True
        self.start_calls += 1

    async def stop(self) -> None:
        self._active = False
        self.stop_calls += 1


def json_transport(
    payload=None,
    status_code: int = 200,
    content: bytes = None,
    requests: list = None,
) -> httpx.MockTransport:
    """MockTransport answering every request with the same response."""

    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        if content is not None:
            return httpx.Response(status_code, content=content)
        return httpx.Response(status_code, content=json.dumps(payload).encode("utf-8"),
                              headers={"content-type": "application/json"})

    return httpx.MockTransport(handler)


def failing_transport(exc_factory: Callable[[httpx.Request], Exception]) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        raise exc_factory(request)

    return httpx.MockTransport(handler)


@pytest.fixture
def mock_translator():
    translator = AsyncMock(spec=TranslationClient)
    translator.translate = AsyncMock(side_effect=lambda text: f"EN:{text}")
    return translator


@pytest.fixture
def mock_backend():
    backend = AsyncMock(spec=ChatBackendClient)
    backend.send_message = AsyncMock(return_value="Hello from the bot")
    return backend


@pytest.fixture
def mock_detector():
    detector = Mock(spec=LanguageDetector)
    detector.detect.return_value = "es"
    return detector


@pytest.fixture
def speech_engine():
    return RecordingSpeechEngine()


@pytest.fixture
def synthesis(speech_engine):
    return SpeechSynthesisSession(speech_engine)


@pytest.fixture
def conversation():
    return Conversation()


@pytest.fixture
def pipeline(conversation, mock_translator, mock_backend, mock_detector, synthesis):
    return ConversationPipeline(
        conversation,
        translator=mock_translator,
        backend=mock_backend,
        detector=mock_detector,
        synthesis=synthesis,
    )


@pytest.fixture
def session_manager(mock_translator, mock_backend, mock_detector):
    return SessionManager(
        translator=mock_translator,
        backend=mock_backend,
        detector=mock_detector,
        session_timeout=3600,
    )


@pytest.fixture
def recognition():
    return RecognitionSession()


@pytest.fixture
def capture(recognition):
    return FakeCaptureSource(recognition)


@pytest.fixture
def make_json_transport():
    return json_transport


@pytest.fixture
def make_failing_transport():
    return failing_transport


@pytest.fixture
def capture_factory():
    return FakeCaptureSource

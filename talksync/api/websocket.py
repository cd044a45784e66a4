import asyncio
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional, Set

from fastapi import WebSocket, WebSocketDisconnect

from talksync.core.logger import logger
from talksync.core.exceptions import SpeechError
from talksync.core.settings import settings
from talksync.models.conversation import ConversationEvent, ConversationEventType, Sender
from talksync.models.speech import RecognitionSession, SpeechEvent
from talksync.services.arithmetic_client import ArithmeticServiceClient
from talksync.services.debounce import DebouncedSpeechTrigger
from talksync.services.session_manager import ChatSession, SessionManager
from talksync.services.speech_capture import RemoteSpeechCaptureSource
from talksync.services.speech_synthesis import BaseSpeechEngine


EventSender = Callable[[dict], Awaitable[None]]


class WebSocketSpeechEngine(BaseSpeechEngine):
    """Speech played by the client's own TTS.

    The client acknowledges with ``speech_finished`` or ``speech_cancelled``
    carrying the utterance id it was given.
    """

    name = "client"

    def __init__(self, send_event: EventSender, voice_language: Optional[str] = None):
        self._send_event = send_event
        self.voice_language = voice_language or settings.speech.TTS_VOICE_LANGUAGE

    async def speak(self, text: str, utterance_id: str) -> bool:
        await self._send_event({
            "type": "speak",
            "utterance_id": utterance_id,
            "text": text,
            "language": self.voice_language,
        })
        return False

    async def stop(self) -> None:
        await self._send_event({"type": "cancel_speech"})


class BaseWebSocketHandler(ABC):
    """Accepts a connection and relays events through an ordered outbox."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self._outbox: asyncio.Queue = asyncio.Queue()
        self._sender_task: Optional[asyncio.Task] = None

    async def connect(self):
        await self.websocket.accept()
        logger.info("WebSocket connection accepted")
        self._sender_task = asyncio.create_task(self._drain_outbox())

    async def disconnect(self):
        if self._sender_task:
            self._sender_task.cancel()
            await asyncio.gather(self._sender_task, return_exceptions=True)

        logger.info("WebSocket connection closed")

    async def queue_event(self, data: dict) -> None:
        self._outbox.put_nowait(data)

    async def send_json(self, data: dict):
        try:
            await self.websocket.send_json(data)
        except Exception as e:
            logger.error(f"Error sending JSON: {e}")

    async def send_error(self, message: str):
        await self.queue_event({"type": "error", "message": message})

    async def handle_conversation(self):
        while True:
            data = await self.websocket.receive_json()
            try:
                await self.handle_event(data)
            except WebSocketDisconnect:
                raise
            except Exception as e:
                logger.error(f"Error handling client event: {e}", exc_info=True)
                await self.send_error(str(e))

    @abstractmethod
    async def handle_event(self, data: dict):
        pass

    async def _drain_outbox(self):
        while True:
            data = await self._outbox.get()
            await self.send_json(data)


class ChatWebSocketHandler(BaseWebSocketHandler):
    def __init__(self, websocket: WebSocket, session_manager: SessionManager):
        super().__init__(websocket)
        self._session_manager = session_manager
        self._session: Optional[ChatSession] = None
        self._capture: Optional[RemoteSpeechCaptureSource] = None

    @property
    def session(self) -> Optional[ChatSession]:
        return self._session

    async def connect(self):
        await super().connect()

        self._session = self._session_manager.create_session(
            engine=WebSocketSpeechEngine(self.queue_event),
            capture_factory=self._create_capture,
            metadata={"transport": "websocket"},
        )
        self._session.conversation.add_listener(self._on_conversation_event)
        self._session.recognition.add_listener(self._on_recognized_text)
        self._session.synthesis.add_listener(self._on_speech_event)
        self._session.pipeline.add_language_listener(self._on_detected_language)

        await self.queue_event({"type": "ready", "session_id": self._session.session_id})
        logger.info(f"Session created: {self._session.session_id}")

    async def disconnect(self):
        if self._session:
            await self._session_manager.delete_session(self._session.session_id)
        await super().disconnect()

    async def handle_event(self, data: dict):
        session = self._session
        session.touch()
        msg_type = data.get("type") if isinstance(data, dict) else None

        if msg_type == "send_text":
            text = data.get("text", "")
            if not str(text).strip():
                await self.send_error("Message is empty")
                return
            session.pipeline.submit(str(text), is_audio=False)

        elif msg_type == "start_recording":
            await session.trigger.start_recording()

        elif msg_type == "stop_recording":
            await session.trigger.stop_recording()

        elif msg_type == "toggle_recording":
            await session.trigger.toggle_recording()

        elif msg_type == "partial_transcript":
            self._capture.on_partial_result(str(data.get("text", "")))

        elif msg_type == "speech_finished":
            session.synthesis.handle_finished(str(data.get("utterance_id", "")))

        elif msg_type == "speech_cancelled":
            session.synthesis.handle_cancelled(str(data.get("utterance_id", "")))

        elif msg_type == "speak_message":
            await self._speak_message(str(data.get("message_id", "")))

        elif msg_type == "clear":
            await session.pipeline.clear()
            session.recognition.clear_text()

        else:
            logger.warning(f"Unknown message type: {msg_type}")
            await self.send_error(f"Unknown message type: {msg_type}")

    async def _speak_message(self, message_id: str):
        message = self._session.conversation.get(message_id)
        if message is None or message.sender != Sender.BOT:
            await self.send_error(f"No bot message with id {message_id}")
            return
        try:
            await self._session.synthesis.speak(message.text, message.id)
        except SpeechError as e:
            await self.send_error(str(e))

    def _create_capture(self, recognition: RecognitionSession) -> RemoteSpeechCaptureSource:
        self._capture = RemoteSpeechCaptureSource(recognition, self.queue_event)
        return self._capture

    def _on_conversation_event(self, event: ConversationEvent) -> None:
        if event.type == ConversationEventType.MESSAGE_ADDED:
            self._outbox.put_nowait({"type": "message", "message": event.message.to_dict()})
        elif event.type == ConversationEventType.CLEARED:
            self._outbox.put_nowait({"type": "cleared"})

    def _on_recognized_text(self, text: str) -> None:
        self._outbox.put_nowait({"type": "recognized_text", "text": text})

    def _on_detected_language(self, language: str) -> None:
        self._outbox.put_nowait({"type": "detected_language", "language": language})

    def _on_speech_event(self, event: SpeechEvent) -> None:
        self._outbox.put_nowait({
            "type": "speaking",
            "state": event.type.value,
            "utterance_id": event.utterance_id,
            "message_id": event.message_id,
        })


class ArithmeticWebSocketHandler(BaseWebSocketHandler):
    """Typed or spoken requests for the add/subtract/sendmessage service.

    Spoken input goes through the same debounce as the chat screen. Each
    request is answered with a ``response`` event carrying the service's
    reply.
    """

    def __init__(self, websocket: WebSocket, client: ArithmeticServiceClient):
        super().__init__(websocket)
        self._client = client
        self.recognition = RecognitionSession()
        self._capture = RemoteSpeechCaptureSource(self.recognition, self.queue_event)
        self._trigger = DebouncedSpeechTrigger(self.recognition, self._capture, self.submit)
        self._tasks: Set[asyncio.Task] = set()

    async def connect(self):
        await super().connect()
        self.recognition.add_listener(self._on_recognized_text)
        await self.queue_event({"type": "ready"})

    async def disconnect(self):
        await self._trigger.close()
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        await super().disconnect()

    def submit(self, text: str) -> Optional[asyncio.Task]:
        trimmed = text.strip() if text else ""
        if not trimmed:
            logger.debug("Ignoring empty test request")
            return None
        task = asyncio.create_task(self._send_request(trimmed))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def handle_event(self, data: dict):
        msg_type = data.get("type") if isinstance(data, dict) else None

        if msg_type == "send_text":
            text = str(data.get("text", ""))
            if not text.strip():
                await self.send_error("Message is empty")
                return
            self.submit(text)

        elif msg_type == "start_recording":
            await self._trigger.start_recording()

        elif msg_type == "stop_recording":
            await self._trigger.stop_recording()

        elif msg_type == "toggle_recording":
            await self._trigger.toggle_recording()

        elif msg_type == "partial_transcript":
            self._capture.on_partial_result(str(data.get("text", "")))

        else:
            logger.warning(f"Unknown message type: {msg_type}")
            await self.send_error(f"Unknown message type: {msg_type}")

    async def _send_request(self, text: str):
        response = await self._client.send(text)
        await self.queue_event({"type": "response", "request": text, "text": response})

    def _on_recognized_text(self, text: str) -> None:
        self._outbox.put_nowait({"type": "recognized_text", "text": text})

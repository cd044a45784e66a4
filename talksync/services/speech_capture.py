"""Speech capture sources feeding a RecognitionSession."""

from abc import ABC, abstractmethod
from typing import Awaitable, Callable

from talksync.core.logger import logger
from talksync.models.speech import RecognitionSession


CommandSender = Callable[[dict], Awaitable[None]]


class BaseSpeechCaptureSource(ABC):
    """Abstract interface for speech recognizers.

    A source pushes its growing transcript into the recognition session it
    was created with; it never decides on its own when an utterance is over.
    """

    def __init__(self, recognition: RecognitionSession):
        self.recognition = recognition
        self._active = False

    @abstractmethod
    async def start(self) -> None:
        """Begin listening."""
        pass

    @abstractmethod
    async def stop(self) -> None:
        """Stop listening. The last transcript stays in the session."""
        pass

    @property
    def is_active(self) -> bool:
        return self._active

    def on_partial_result(self, text: str) -> None:
        if not self._active:
            logger.debug("Dropping transcript received while capture is stopped")
            return
        self.recognition.update_text(text)


class RemoteSpeechCaptureSource(BaseSpeechCaptureSource):
    """Recognition performed by the connected client device.

    start/stop are forwarded to the client as commands; transcripts come
    back as ``partial_transcript`` events and are fed to
    ``on_partial_result``.
    """

    def __init__(self, recognition: RecognitionSession, send_command: CommandSender):
        super().__init__(recognition)
        self._send_command = send_command

    async def start(self) -> None:
        self._active = True
        await self._send_command({"type": "capture", "action": "start"})
        logger.debug("Remote capture started")

    async def stop(self) -> None:
        if not self._active:
            return
        self._active = False
        await self._send_command({"type": "capture", "action": "stop"})
        logger.debug("Remote capture stopped")

import asyncio
from typing import Any, Callable, Optional

from talksync.core.logger import logger
from talksync.core.settings import settings
from talksync.models.speech import RecognitionSession
from talksync.services.speech_capture import BaseSpeechCaptureSource


class DebouncedSpeechTrigger:
    """Turns a live transcript into submissions.

    Every change to the recognized text restarts a quiet-period timer. When
    the timer runs out while still recording with a non-empty transcript, the
    utterance is considered finished and handed to ``submit``. A manual
    stop skips the timer and sends whatever was recognized so far.
    """

    def __init__(
        self,
        recognition: RecognitionSession,
        capture: BaseSpeechCaptureSource,
        submit: Callable[[str], Any],
        debounce_seconds: Optional[float] = None,
        clear_delay_seconds: Optional[float] = None,
    ):
        self.recognition = recognition
        self._capture = capture
        self._submit = submit
        self._debounce_seconds = (
            debounce_seconds if debounce_seconds is not None
            else settings.speech.SPEECH_DEBOUNCE_SECONDS
        )
        self._clear_delay_seconds = (
            clear_delay_seconds if clear_delay_seconds is not None
            else settings.speech.SPEECH_CLEAR_DELAY_SECONDS
        )
        self._timer: Optional[asyncio.Task] = None
        self._clear_task: Optional[asyncio.Task] = None
        self.recognition.add_listener(self._on_text_changed)

    @property
    def is_recording(self) -> bool:
        return self.recognition.is_recording

    @property
    def has_pending_timer(self) -> bool:
        return self._timer is not None and not self._timer.done()

    async def start_recording(self) -> None:
        if self.recognition.is_recording:
            logger.debug("Already recording")
            return
        self._cancel_timer()
        self._cancel_clear()
        generation = self.recognition.begin()
        # Resetting the transcript counts as a change; an empty one never fires.
        self._cancel_timer()
        await self._capture.start()
        logger.info(f"Recording started (session {generation})")

    async def stop_recording(self) -> None:
        """Manual stop: send immediately, clear the transcript after a delay."""
        if not self.recognition.is_recording:
            return
        self._cancel_timer()
        await self._capture.stop()
        self.recognition.end()

        final_text = self.recognition.recognized_text
        logger.info(f"Recording stopped manually with {len(final_text)} chars")
        self._submit(final_text)

        self._cancel_clear()
        self._clear_task = asyncio.create_task(
            self._clear_after_delay(self.recognition.generation)
        )

    async def toggle_recording(self) -> None:
        if self.recognition.is_recording:
            await self.stop_recording()
        else:
            await self.start_recording()

    async def close(self) -> None:
        self._cancel_timer()
        self._cancel_clear()
        self.recognition.remove_listener(self._on_text_changed)
        if self.recognition.is_recording:
            await self._capture.stop()
            self.recognition.end()

    def _on_text_changed(self, text: str) -> None:
        self._cancel_timer()
        if not self.recognition.is_recording:
            return
        self._timer = asyncio.create_task(self._fire_after_quiet_period())

    async def _fire_after_quiet_period(self) -> None:
        await asyncio.sleep(self._debounce_seconds)
        self._timer = None

        text = self.recognition.recognized_text
        if not self.recognition.is_recording or not text:
            return

        logger.info("Speech paused, sending utterance")
        await self._capture.stop()
        self.recognition.end()
        self._submit(text)
        self.recognition.clear_text()

    async def _clear_after_delay(self, generation: int) -> None:
        await asyncio.sleep(self._clear_delay_seconds)
        if self.recognition.generation == generation and not self.recognition.is_recording:
            self.recognition.clear_text()

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    def _cancel_clear(self) -> None:
        if self._clear_task is not None and not self._clear_task.done():
            self._clear_task.cancel()
        self._clear_task = None

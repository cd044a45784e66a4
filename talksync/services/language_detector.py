from langdetect import DetectorFactory, detect
from langdetect.lang_detect_exception import LangDetectException

from talksync.core.logger import logger

# Deterministic results for identical input.
DetectorFactory.seed = 0

UNDETERMINED = "und"


class LanguageDetector:
    """Best-guess language identification. Never raises."""

    def detect(self, text: str) -> str:
        if not text or not text.strip():
            return UNDETERMINED

        try:
            language = detect(text)
        except LangDetectException as e:
            logger.debug(f"Language detection failed: {e}")
            return UNDETERMINED
        except Exception as e:
            logger.warning(f"Unexpected language detection error: {e}")
            return UNDETERMINED

        return language or UNDETERMINED

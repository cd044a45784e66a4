from typing import Any, Optional

import httpx

from talksync.core.logger import logger
from talksync.core.exceptions import TranslationError
from talksync.core.settings import settings


class TranslationClient:
    """Google Cloud Translation v2 client that always translates to English.

    ``translate`` never raises: on any failure the original text is returned,
    so a translation outage degrades to sending the untranslated message.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        target_language: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._url = url or settings.translation.TRANSLATION_URL
        self._api_key = api_key if api_key is not None else settings.translation.TRANSLATION_API_KEY
        self._target_language = target_language or settings.translation.TRANSLATION_TARGET_LANGUAGE
        self._timeout = timeout or settings.translation.TRANSLATION_TIMEOUT
        self._transport = transport
        self._warned_missing_key = False

    async def translate(self, text: str) -> str:
        try:
            return await self._request_translation(text)
        except TranslationError as e:
            logger.warning(f"Translation failed, using original text: {e}")
            return text

    async def _request_translation(self, text: str) -> str:
        if not self._api_key:
            if not self._warned_missing_key:
                logger.warning("TRANSLATION_API_KEY is not set; messages will be sent untranslated")
                self._warned_missing_key = True
            raise TranslationError("translation API key not configured")

        payload = {
            "q": text,
            "target": self._target_language,
            "format": "text",
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(
                    self._url,
                    params={"key": self._api_key},
                    json=payload,
                )
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPStatusError as e:
            raise TranslationError(f"HTTP {e.response.status_code}") from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise TranslationError(f"transport error: {e}") from e
        except ValueError as e:
            raise TranslationError(f"JSON parse error: {e}") from e

        translated = self._extract_translation(body)
        if translated is None:
            raise TranslationError("unexpected response shape")

        logger.debug(f"Translated {text[:50]!r} -> {translated[:50]!r}")
        return translated

    @staticmethod
    def _extract_translation(body: Any) -> Optional[str]:
        if not isinstance(body, dict):
            return None
        data = body.get("data")
        if not isinstance(data, dict):
            return None
        translations = data.get("translations")
        if not isinstance(translations, list) or not translations:
            return None
        first = translations[0]
        if not isinstance(first, dict):
            return None
        translated = first.get("translatedText")
        return translated if isinstance(translated, str) else None

from typing import Optional

import httpx

from talksync.core.logger import logger
from talksync.core.exceptions import ChatBackendError
from talksync.core.settings import settings

NO_DATA_REPLY = "No data from server"
INVALID_RESPONSE_REPLY = "Invalid response from server"
PARSE_ERROR_REPLY = "JSON parsing error"


class ChatBackendClient:
    """Posts English text to the chat backend and returns the bot reply.

    Failures come back as a readable reply string instead of an exception, so
    they show up in the conversation like any other bot message.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._url = url or settings.backend.CHAT_BACKEND_URL
        self._timeout = timeout or settings.backend.CHAT_BACKEND_TIMEOUT
        self._transport = transport

    async def send_message(self, text: str) -> str:
        try:
            return await self._post_message(text)
        except ChatBackendError as e:
            logger.error(f"Chat backend error: {e}")
            return str(e)

    async def _post_message(self, text: str) -> str:
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self._url, json={"message": text})
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            description = str(e) or type(e).__name__
            raise ChatBackendError(f"Error: {description}") from e

        if response.is_error:
            raise ChatBackendError(f"Error: server returned {response.status_code}")

        if not response.content:
            raise ChatBackendError(NO_DATA_REPLY)

        try:
            body = response.json()
        except ValueError as e:
            raise ChatBackendError(PARSE_ERROR_REPLY) from e

        reply = body.get("reply") if isinstance(body, dict) else None
        if not isinstance(reply, str):
            raise ChatBackendError(INVALID_RESPONSE_REPLY)

        logger.debug(f"Backend reply: {reply[:50]}...")
        return reply

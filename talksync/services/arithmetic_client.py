"""Client for the auxiliary add/subtract/sendmessage test service.

Typed input is parsed into one request variant, and each variant maps to
exactly one endpoint:

    "3+5"   -> GET /add?i=3&j=5
    "65-60" -> GET /subtract?i=65&j=60
    "hola"  -> GET /sendmessage?message=hola
"""

import re
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Type, Union
from urllib.parse import quote, urlencode

import httpx

from talksync.core.logger import logger
from talksync.core.exceptions import ArithmeticServiceError
from talksync.core.settings import settings

ADD_PATTERN = re.compile(r"^\s*(-?\d+)\s*\+\s*(-?\d+)\s*$")
SUBTRACT_PATTERN = re.compile(r"^\s*(-?\d+)\s*-\s*(-?\d+)\s*$")


@dataclass(frozen=True)
class AddRequest:
    i: int
    j: int


@dataclass(frozen=True)
class SubtractRequest:
    i: int
    j: int


@dataclass(frozen=True)
class FreeTextRequest:
    message: str


@dataclass(frozen=True)
class InvalidRequest:
    reason: str


ServiceRequest = Union[AddRequest, SubtractRequest, FreeTextRequest, InvalidRequest]


def parse_request(text: str) -> ServiceRequest:
    trimmed = text.strip() if text else ""
    if not trimmed:
        return InvalidRequest("empty input")

    # Any '+' means the user meant addition, even if it is malformed.
    if "+" in trimmed:
        match = ADD_PATTERN.match(trimmed)
        if not match:
            return InvalidRequest("Invalid format for addition. Use e.g. 3+5.")
        return AddRequest(int(match.group(1)), int(match.group(2)))

    if "-" in trimmed:
        match = SUBTRACT_PATTERN.match(trimmed)
        if not match:
            return InvalidRequest("Invalid format for subtraction. Use e.g. 65-60.")
        return SubtractRequest(int(match.group(1)), int(match.group(2)))

    return FreeTextRequest(trimmed)


def _query(**params) -> str:
    # Percent-encode spaces as %20, not '+'.
    return urlencode(params, quote_via=quote)


_ROUTES: Dict[Type, Callable[..., str]] = {
    AddRequest: lambda r: f"/add?{_query(i=r.i, j=r.j)}",
    SubtractRequest: lambda r: f"/subtract?{_query(i=r.i, j=r.j)}",
    FreeTextRequest: lambda r: f"/sendmessage?{_query(message=r.message)}",
}


def build_url(request: ServiceRequest, base_url: str) -> str:
    route = _ROUTES.get(type(request))
    if route is None:
        raise ArithmeticServiceError(f"No endpoint for request: {request}")
    return f"{base_url.rstrip('/')}{route(request)}"


class ArithmeticServiceClient:
    """Sends typed input to the test service and returns its raw text body."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url or settings.arithmetic.ARITHMETIC_SERVICE_URL
        self._timeout = timeout or settings.arithmetic.ARITHMETIC_SERVICE_TIMEOUT
        self._transport = transport

    async def send(self, text: str) -> str:
        request = parse_request(text)
        if isinstance(request, InvalidRequest):
            logger.info(f"Rejected test service input: {request.reason}")
            return request.reason

        url = build_url(request, self._base_url)
        logger.debug(f"Test service request: {url}")

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            description = str(e) or type(e).__name__
            logger.error(f"Test service error: {description}")
            return f"Error: {description}"

        return response.text

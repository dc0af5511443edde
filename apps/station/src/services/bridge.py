"""Client for the upstream sensor bridge and classification of its replies."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

import httpx

logger = logging.getLogger("weatherstation.hub.bridge")

STALE_DATA_ERROR = "stale_data"
NO_DATA_ERROR = "no_data"


@dataclass(frozen=True, slots=True)
class BridgeOutcome:
    """Result of one poll; subclasses form the closed set of classifications."""

    http_status: int = 0
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def bridge_reachable(self) -> bool:
        return True

    @property
    def stream_healthy(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class SampleReceived(BridgeOutcome):
    payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def stream_healthy(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class TransportError(BridgeOutcome):
    """The bridge could not be reached at all (refused, timed out, DNS...)."""

    @property
    def bridge_reachable(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class GarbledPayload(BridgeOutcome):
    """HTTP worked but the body was not a telemetry object."""


@dataclass(frozen=True, slots=True)
class StreamStale(BridgeOutcome):
    """The bridge answers but its radio stream has stalled."""


@dataclass(frozen=True, slots=True)
class NoDataYet(BridgeOutcome):
    """The bridge has not received its first sample since starting."""


@dataclass(frozen=True, slots=True)
class Unclassified(BridgeOutcome):
    pass


def _decode_error_body(body: bytes) -> Tuple[Optional[str], Optional[str]]:
    if not body:
        return None, None
    try:
        decoded = json.loads(body)
    except ValueError:
        return None, "non-200 from bridge with non-JSON body"
    if not isinstance(decoded, dict):
        return None, None
    code = decoded.get("error")
    message = decoded.get("message")
    return (
        code if isinstance(code, str) and code else None,
        message if isinstance(message, str) and message else None,
    )


def classify_response(status_code: int, body: bytes) -> BridgeOutcome:
    """Map a bridge HTTP reply onto a :class:`BridgeOutcome`."""
    if status_code == 200 and body:
        try:
            payload = json.loads(body)
        except ValueError:
            return GarbledPayload(http_status=status_code, error_code="parse_error", error_message="invalid JSON from bridge")
        if not isinstance(payload, dict):
            return GarbledPayload(
                http_status=status_code,
                error_code="parse_error",
                error_message="bridge payload is not a JSON object",
            )
        return SampleReceived(http_status=status_code, payload=payload)

    code, message = _decode_error_body(body)
    if status_code == 503 and code == STALE_DATA_ERROR:
        return StreamStale(http_status=status_code, error_code=code, error_message=message)
    if status_code == 503 and code == NO_DATA_ERROR:
        return NoDataYet(http_status=status_code, error_code=code, error_message=message)
    return Unclassified(http_status=status_code, error_code=code or f"http_{status_code}", error_message=message)


class BridgeClient:
    def __init__(
        self,
        url: str,
        *,
        timeout: float = 5.0,
        max_body_bytes: int = 8192,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._max_body_bytes = max(1, max_body_bytes)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def url(self) -> str:
        return self._url

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                follow_redirects=False,
                headers={"Accept": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def fetch(self) -> BridgeOutcome:
        client = await self._get_client()
        try:
            async with client.stream("GET", self._url) as response:
                body = await self._read_capped(response)
        except httpx.HTTPError as exc:
            logger.debug("Bridge request to %s failed: %s", self._url, exc)
            return TransportError(error_code="transport_error", error_message=str(exc) or exc.__class__.__name__)
        return classify_response(response.status_code, body)

    async def _read_capped(self, response: httpx.Response) -> bytes:
        """Read at most ``max_body_bytes``; the rest of the stream is never pulled."""
        buffer = bytearray()
        async for chunk in response.aiter_bytes():
            buffer.extend(chunk)
            if len(buffer) >= self._max_body_bytes:
                logger.debug("Bridge body from %s reached the %d byte cap; truncating", self._url, self._max_body_bytes)
                break
        return bytes(buffer[: self._max_body_bytes])

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None


__all__ = [
    "BridgeClient",
    "BridgeOutcome",
    "GarbledPayload",
    "NoDataYet",
    "SampleReceived",
    "StreamStale",
    "TransportError",
    "Unclassified",
    "classify_response",
]

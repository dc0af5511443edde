import json
from typing import List

import httpx
import pytest

from services.bridge import (
    BridgeClient,
    GarbledPayload,
    NoDataYet,
    SampleReceived,
    StreamStale,
    TransportError,
    Unclassified,
    classify_response,
)

BRIDGE_URL = "http://bridge.test/ws90"


def test_classify_valid_sample():
    outcome = classify_response(200, b'{"temperature_C": 12.5}')
    assert isinstance(outcome, SampleReceived)
    assert outcome.payload == {"temperature_C": 12.5}
    assert outcome.bridge_reachable and outcome.stream_healthy
    assert outcome.error_code is None


@pytest.mark.parametrize("body", [b"{truncated", b"[1, 2]"])
def test_classify_garbled_payload(body):
    outcome = classify_response(200, body)
    assert isinstance(outcome, GarbledPayload)
    assert outcome.error_code == "parse_error"
    assert outcome.bridge_reachable
    assert not outcome.stream_healthy


def test_classify_stale_and_no_data():
    stale = classify_response(503, b'{"error": "stale_data", "message": "no packets for 90s"}')
    assert isinstance(stale, StreamStale)
    assert stale.error_code == "stale_data"
    assert stale.error_message == "no packets for 90s"

    empty = classify_response(503, b'{"error": "no_data"}')
    assert isinstance(empty, NoDataYet)
    assert empty.http_status == 503
    assert not empty.stream_healthy


def test_classify_other_status_codes():
    outcome = classify_response(500, b"Internal Server Error")
    assert isinstance(outcome, Unclassified)
    assert outcome.error_code == "http_500"
    assert outcome.bridge_reachable

    coded = classify_response(503, b'{"error": "radio_offline"}')
    assert coded.error_code == "radio_offline"

    empty_ok = classify_response(200, b"")
    assert empty_ok.error_code == "http_200"
    assert not empty_ok.stream_healthy


@pytest.mark.anyio
async def test_client_fetches_and_classifies():
    def handler(request: httpx.Request) -> httpx.Response:
        assert str(request.url) == BRIDGE_URL
        return httpx.Response(200, json={"rain_mm": 104.6})

    client = BridgeClient(BRIDGE_URL, transport=httpx.MockTransport(handler))
    try:
        outcome = await client.fetch()
    finally:
        await client.close()
    assert isinstance(outcome, SampleReceived)
    assert outcome.http_status == 200
    assert outcome.payload["rain_mm"] == 104.6


@pytest.mark.anyio
async def test_client_reports_transport_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = BridgeClient(BRIDGE_URL, transport=httpx.MockTransport(handler))
    outcome = await client.fetch()
    await client.close()
    assert isinstance(outcome, TransportError)
    assert outcome.error_code == "transport_error"
    assert "refused" in outcome.error_message
    assert not outcome.bridge_reachable
    assert not outcome.stream_healthy
    assert outcome.http_status == 0


@pytest.mark.anyio
async def test_client_truncates_oversized_bodies():
    big = json.dumps({"model": "x" * 10_000}).encode()

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=big)

    client = BridgeClient(BRIDGE_URL, max_body_bytes=512, transport=httpx.MockTransport(handler))
    outcome = await client.fetch()
    await client.close()
    assert isinstance(outcome, GarbledPayload)


@pytest.mark.anyio
async def test_client_does_not_follow_redirects():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(302, headers={"Location": "http://elsewhere.test/"})

    client = BridgeClient(BRIDGE_URL, transport=httpx.MockTransport(handler))
    outcome = await client.fetch()
    await client.close()
    assert outcome.error_code == "http_302"


class _ChunkedBody(httpx.AsyncByteStream):
    def __init__(self, chunks: List[bytes]) -> None:
        self._chunks = chunks
        self.sent = 0

    async def __aiter__(self):
        for chunk in self._chunks:
            self.sent += 1
            yield chunk


@pytest.mark.anyio
async def test_client_stops_reading_at_body_cap():
    body = _ChunkedBody([b"x" * 8192] * 1000)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, stream=body)

    client = BridgeClient(BRIDGE_URL, max_body_bytes=8192, transport=httpx.MockTransport(handler))
    outcome = await client.fetch()
    await client.close()

    assert isinstance(outcome, GarbledPayload)
    assert body.sent <= 2


@pytest.mark.anyio
async def test_client_joins_chunked_bodies_under_the_cap():
    payload = json.dumps({"temperature_C": 12.5, "model": "m" * 300}).encode()
    body = _ChunkedBody([payload[:100], payload[100:]])

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, stream=body)

    client = BridgeClient(BRIDGE_URL, max_body_bytes=8192, transport=httpx.MockTransport(handler))
    outcome = await client.fetch()
    await client.close()

    assert isinstance(outcome, SampleReceived)
    assert outcome.payload["temperature_C"] == 12.5
    assert body.sent == 2

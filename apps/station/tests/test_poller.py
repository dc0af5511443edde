import asyncio
from datetime import timezone

import httpx
import pytest

from services.bridge import BridgeClient, SampleReceived, TransportError
from services.poller import StationPoller
from services.station import WeatherStation

JAN_1 = 1_704_067_200


class _FlakyClient:
    url = "http://bridge.test/ws90"

    def __init__(self) -> None:
        self.calls = 0

    async def fetch(self):
        self.calls += 1
        if self.calls == 1:
            raise RuntimeError("boom")
        return SampleReceived(http_status=200, payload={"temperature_C": 21.0})


def _station() -> WeatherStation:
    return WeatherStation.in_memory(tz=timezone.utc, clock=lambda: JAN_1)


@pytest.mark.anyio
async def test_poll_once_feeds_station():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"temperature_C": 15.0, "rain_mm": 3.2})

    station = _station()
    client = BridgeClient("http://bridge.test/ws90", transport=httpx.MockTransport(handler))
    poller = StationPoller(station, client, interval=10.0)

    outcome = await poller.poll_once()
    await client.close()

    assert isinstance(outcome, SampleReceived)
    health = await station.health_copy()
    assert health.stream_healthy
    assert health.last_poll_ts == JAN_1
    state = await station.state_copy()
    assert state.temperature_c == 15.0
    assert state.last_rain_mm == 3.2


@pytest.mark.anyio
async def test_poll_once_records_unreachable_bridge():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    station = _station()
    client = BridgeClient("http://bridge.test/ws90", transport=httpx.MockTransport(handler))
    outcome = await StationPoller(station, client).poll_once()
    await client.close()

    assert isinstance(outcome, TransportError)
    health = await station.health_copy()
    assert health.bridge_reachable is False
    assert health.error_code == "transport_error"


@pytest.mark.anyio
async def test_loop_survives_errors_and_stops_promptly():
    station = _station()
    client = _FlakyClient()
    poller = StationPoller(station, client, interval=0.1)

    await poller.start()
    assert poller.running
    for _ in range(100):
        if client.calls >= 2:
            break
        await asyncio.sleep(0.02)
    await asyncio.wait_for(poller.stop(), timeout=1.0)

    assert client.calls >= 2
    assert not poller.running
    assert (await station.health_copy()).stream_healthy
    assert (await station.state_copy()).temperature_c == 21.0


@pytest.mark.anyio
async def test_stop_without_start_is_noop():
    poller = StationPoller(_station(), _FlakyClient())
    await poller.stop()
    assert not poller.running


@pytest.mark.anyio
async def test_poller_restarts_with_a_fresh_stop_signal():
    client = _FlakyClient()
    poller = StationPoller(_station(), client, interval=0.1)

    await poller.start()
    await asyncio.wait_for(poller.stop(), timeout=1.0)
    calls_after_first_run = client.calls

    await poller.start()
    assert poller.running
    for _ in range(100):
        if client.calls > calls_after_first_run:
            break
        await asyncio.sleep(0.02)
    await asyncio.wait_for(poller.stop(), timeout=1.0)

    assert client.calls > calls_after_first_run
    assert not poller.running

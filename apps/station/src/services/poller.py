"""Background task that polls the sensor bridge on a fixed interval."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .bridge import BridgeClient, BridgeOutcome
from .station import WeatherStation

LOGGER = logging.getLogger("weatherstation.hub.poller")


class StationPoller:
    """Feeds every bridge reply into the station until stopped."""

    def __init__(self, station: WeatherStation, client: BridgeClient, *, interval: float = 10.0) -> None:
        self._station = station
        self._client = client
        self._interval = max(interval, 0.1)
        self._task: Optional[asyncio.Task[None]] = None
        self._stop_event: Optional[asyncio.Event] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self._task is not None:
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._loop(self._stop_event), name="station-poller")
        LOGGER.info("Bridge poller started (%s every %.1fs)", self._client.url, self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        if self._stop_event is not None:
            self._stop_event.set()
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        except Exception as exc:  # pragma: no cover - logged on shutdown only
            LOGGER.warning("Bridge poller stopped with error: %s", exc)
        finally:
            self._task = None
            self._stop_event = None
            LOGGER.info("Bridge poller stopped")

    async def poll_once(self) -> BridgeOutcome:
        outcome = await self._client.fetch()
        await self._station.record_poll(outcome)
        return outcome

    async def _loop(self, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                LOGGER.exception("Bridge poll failed: %s", exc)
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                continue


__all__ = ["StationPoller"]

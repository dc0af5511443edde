from __future__ import annotations

import json
import logging
from datetime import tzinfo
from pathlib import Path

from .weather_state import HistoricalBaseline, WeatherState, new_state

logger = logging.getLogger("weatherstation.hub.snapshot")


class StateSnapshotStore:
    """Persists the full :class:`WeatherState` as a JSON document."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def load(self, *, now: float, tz: tzinfo, baseline: HistoricalBaseline | None = None) -> WeatherState:
        """Restore the saved state, or fresh defaults when the file is absent or unreadable."""
        defaults = new_state(now, tz, baseline)
        if not self._path.exists():
            logger.info("No saved state at %s; starting fresh", self._path)
            return defaults
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning("Failed to load saved state from %s: %s", self._path, exc)
            return new_state(now, tz, baseline)
        if not isinstance(raw, dict):
            logger.warning("Ignoring saved state at %s: expected a JSON object", self._path)
            return defaults

        state = WeatherState.from_dict(raw, defaults=defaults)
        state.seed_historical(baseline or HistoricalBaseline())
        return state

    def save(self, state: WeatherState) -> bool:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.warning("Failed to create state directory %s: %s", self._path.parent, exc)
            return False
        payload = json.dumps(state.to_dict(), indent=2, ensure_ascii=True)
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            tmp_path.write_text(payload, encoding="utf-8")
            tmp_path.replace(self._path)
        except OSError as exc:
            logger.warning("Failed to save state to %s: %s", self._path, exc)
            return False
        return True


__all__ = ["StateSnapshotStore"]

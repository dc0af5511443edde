import sys
from pathlib import Path
from typing import Any, Callable, Dict

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from fastapi.testclient import TestClient  # noqa: E402

from config import settings  # noqa: E402
from main import create_app  # noqa: E402


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def settings_override() -> Callable[..., None]:
    original: Dict[str, Any] = {}

    def _apply(**overrides: Any) -> None:
        for key, value in overrides.items():
            if key not in original:
                original[key] = getattr(settings, key)
            setattr(settings, key, value)

    yield _apply

    for key, value in original.items():
        setattr(settings, key, value)


@pytest.fixture
def isolated_storage(tmp_path: Path, settings_override: Callable[..., None]) -> Path:
    settings_override(
        state_path=str(tmp_path / "state.json"),
        history_db=str(tmp_path / "history.sqlite3"),
        poller_enabled=False,
        station_timezone="UTC",
    )
    return tmp_path


@pytest.fixture
def client(isolated_storage: Path) -> TestClient:
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client

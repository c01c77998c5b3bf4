from datetime import datetime, timezone

import pytest

from termlevel.domain.models import Term
from termlevel.infrastructure.adapters.json_store import JsonFileStore

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_term(now):
    """Factory for terms with sensible defaults."""

    def _make(name="Idempotence", level=0, **kwargs):
        kwargs.setdefault("description", f"Definition of {name}")
        kwargs.setdefault("created_at", now)
        return Term(name=name, level=level, **kwargs)

    return _make


@pytest.fixture
def store(tmp_path):
    return JsonFileStore(tmp_path / "data.json")


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config/data
    monkeypatch.setenv("HOME", str(home))
    for var in ("OPENAI_API_KEY", "TERMLEVEL_OPENAI_API_KEY", "TERMLEVEL_DATA_FILE"):
        monkeypatch.delenv(var, raising=False)
    return home

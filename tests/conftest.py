"""Shared test fixtures."""

import os
import tempfile
from datetime import datetime

import pytest

# The module-level storage instance is created on import; keep it out of the repo
os.environ.setdefault("AUTODASH_DATA_DIR", tempfile.mkdtemp(prefix="autodash-tests-"))


class MemoryStore:
    """Dict-backed key-value store standing in for persisted app state."""

    def __init__(self):
        self.values = {}
        self.writes = 0

    def get_value(self, key):
        return self.values.get(key)

    def set_value(self, key, value):
        self.writes += 1
        self.values[key] = dict(value)


class FakeClock:
    """Settable wall clock."""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 3, 15, 12, 0))


@pytest.fixture
def temp_storage(tmp_path, monkeypatch):
    from routers import dashboards, upload
    from services.storage import TempStorage

    store = TempStorage(tmp_path / "data")
    monkeypatch.setattr(upload, "storage", store)
    monkeypatch.setattr(dashboards, "storage", store)
    return store


@pytest.fixture
def client(temp_storage, clock):
    from fastapi.testclient import TestClient

    from main import app
    from routers.usage import get_usage_meter
    from services.usage_meter import UsageMeter

    meter = UsageMeter(temp_storage, clock=clock)
    app.dependency_overrides[get_usage_meter] = lambda: meter
    yield TestClient(app)
    app.dependency_overrides.clear()

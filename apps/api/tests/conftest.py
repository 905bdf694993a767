from __future__ import annotations

import json
import sqlite3
from typing import Callable, Iterable, Iterator, List

import pytest
from fastapi.testclient import TestClient

from fluidlog.db import SQLiteEventStore
from fluidlog.deps import get_store
from fluidlog.main import app
from fluidlog.settings import SettingsProvider


@pytest.fixture
def store(tmp_path) -> SQLiteEventStore:
    return SQLiteEventStore(tmp_path / "fluidlog.db")


@pytest.fixture
def provider(store: SQLiteEventStore) -> SettingsProvider:
    return SettingsProvider(store)


@pytest.fixture
def client(store: SQLiteEventStore) -> Iterator[TestClient]:
    app.dependency_overrides[get_store] = lambda: store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def fake_completion(monkeypatch) -> Callable[..., List[str]]:
    """Replace the completion service with canned JSON responses.

    Returns a function that installs a payload and gives back the list of
    messages the fake received.
    """

    def install(payload: object) -> List[str]:
        seen: List[str] = []

        def complete(message: str) -> str:
            seen.append(message)
            return payload if isinstance(payload, str) else json.dumps(payload)

        monkeypatch.setattr("fluidlog.openai_client.request_completion", complete)
        return seen

    return install


class FlakyStore:
    """Delegates to a real store but fails chosen fluid inserts and day reads."""

    def __init__(self, inner: SQLiteEventStore, failing_inserts: Iterable[str] = (), failing_reads: bool = False):
        self.inner = inner
        self.failing_inserts = set(failing_inserts)
        self.failing_reads = failing_reads

    def insert_fluid_log(self, entry):
        if entry.fluid_type in self.failing_inserts:
            raise sqlite3.OperationalError("disk I/O error")
        return self.inner.insert_fluid_log(entry)

    def query_by_day_key(self, kind: str, day_key: str):
        if self.failing_reads:
            raise sqlite3.OperationalError("database disk image is malformed")
        return self.inner.query_by_day_key(kind, day_key)

    def __getattr__(self, name):
        return getattr(self.inner, name)


@pytest.fixture
def flaky_store(store: SQLiteEventStore) -> Callable[..., FlakyStore]:
    def build(failing_inserts: Iterable[str] = (), failing_reads: bool = False) -> FlakyStore:
        return FlakyStore(store, failing_inserts, failing_reads)

    return build

# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from stardust.core.state import AppState
from stardust.storage.kv_store import KvStore
from stardust.tasks.task_store import TaskStore
from stardust.web.app import create_app
from stardust.web.origin_gate import OriginGate

SECRET = "s3cret"


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the developer's environment and .env.
    """
    return SimpleNamespace(
        app_name="stardust-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        secret_password=SECRET,
        allowed_origins=["https://stardust.example.org", ".c.websim.com"],
        default_origin=None,
        host="127.0.0.1",
        port=0,
    )


@pytest.fixture()
def kv(settings: SimpleNamespace) -> KvStore:
    return KvStore(settings.tasks_db_path)


@pytest.fixture()
def task_store(kv: KvStore) -> TaskStore:
    return TaskStore(kv)


@pytest.fixture()
def state(settings: SimpleNamespace, task_store: TaskStore) -> AppState:
    """
    AppState wired with a real SQLite-backed store.

    The storage layer's correctness is part of what we want to test, so no
    fakes here.
    """
    return AppState(
        settings=settings,
        task_store=task_store,
        origin_gate=OriginGate(settings.allowed_origins, settings.default_origin),
        secret_password=settings.secret_password,
    )


@pytest.fixture()
def client(state: AppState):
    app = create_app(state)
    app.testing = True
    return app.test_client()


@pytest.fixture()
def auth() -> dict[str, str]:
    return {"Authorization": SECRET}

# src/stardust/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (KV storage, tasks, origin gate),
- moves task snapshots between the store and JSON files (export/import).
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
from pathlib import Path

from ..config import Settings, get_settings
from ..core.errors import InvalidArgument
from ..core.state import AppState
from ..storage.kv_store import KvStore
from ..tasks import task_api
from ..tasks.task_models import Task
from ..tasks.task_store import TaskStore
from ..web.origin_gate import OriginGate

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)


def _warn_missing_access_config(settings) -> None:
    if not settings.secret_password:
        logger.error(
            "SECRET_PASSWORD is not configured (set STARDUST_SECRET_PASSWORD); "
            "every create/update/delete will be refused."
        )
    if not settings.allowed_origins:
        logger.error(
            "No allowed origins configured (set STARDUST_ALLOWED_ORIGINS); "
            "browsers will not receive a trusted CORS origin."
        )


def create_initial_state(*, settings: Settings | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)
    _warn_missing_access_config(settings)

    kv = KvStore(settings.tasks_db_path)
    return AppState(
        settings=settings,
        task_store=TaskStore(kv),
        origin_gate=OriginGate(settings.allowed_origins, settings.default_origin),
        secret_password=settings.secret_password,
    )


def export_tasks(state: AppState, path: Path) -> list[Task]:
    """Write the current collection to `path` as a JSON array (atomic replace)."""
    tasks = task_api.list_tasks(state.task_store)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(
        json.dumps([t.to_dict() for t in tasks], ensure_ascii=False, indent=2),
        "utf-8",
    )
    os.replace(tmp, path)
    with contextlib.suppress(OSError):
        # Notes may be personal, keep the export private on disk.
        os.chmod(path, 0o600)
    logger.info("Exported %d task(s) to %s", len(tasks), path)
    return tasks


def import_tasks(state: AppState, path: Path) -> list[Task]:
    """Replace the whole collection with the JSON array stored in `path`."""
    try:
        raw = path.read_text("utf-8")
    except OSError as exc:
        raise InvalidArgument(f"cannot read {path}: {exc}") from exc
    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise InvalidArgument(f"{path} is not valid JSON: {exc}") from exc
    tasks = task_api.replace_tasks(state.task_store, data)
    logger.info("Imported %d task(s) from %s", len(tasks), path)
    return tasks

# src/stardust/tasks/task_api.py

"""
Caller-side create/update protocol on top of TaskStore.

The store does not know "create" from "update"; these helpers do:
- create: fresh id, defaults applied, single upsert,
- update: read, field-level merge, upsert of the merged record,
- replace: parse a full snapshot and hand it to replace_all.
"""

from __future__ import annotations

import logging
from typing import Any

from ..core.errors import InvalidArgument, NotFound
from ..core.ports import TaskRepo
from .task_models import Task, new_task_id

logger = logging.getLogger(__name__)


def list_tasks(store: TaskRepo) -> list[Task]:
    """Every task, sorted by id (ids sort by creation time)."""
    return sorted(store.list(), key=lambda t: t.id)


def create_task(store: TaskRepo, payload: Any) -> Task:
    task = Task.from_payload(payload, task_id=new_task_id())
    store.upsert(task)
    logger.info("Task created id=%s", task.id)
    return task


def update_task(store: TaskRepo, task_id: str, payload: Any) -> Task:
    existing = store.get(task_id, strict=True)
    if existing is None:
        raise NotFound(f"task {task_id} not found")
    updated = existing.merged(payload)
    store.upsert(updated)
    logger.info("Task updated id=%s", task_id)
    return updated


def delete_task(store: TaskRepo, task_id: str) -> None:
    store.delete(task_id)
    logger.info("Task deleted id=%s", task_id)


def replace_tasks(store: TaskRepo, payload: Any) -> list[Task]:
    """
    Replace the whole collection with a client snapshot.

    Unlike create, ids in the snapshot are kept (that is how existing tasks
    survive a replace); entries without one get a fresh id.
    """
    if not isinstance(payload, list):
        raise InvalidArgument("task snapshot must be a JSON array")

    tasks: list[Task] = []
    for item in payload:
        if not isinstance(item, dict):
            raise InvalidArgument("task snapshot entries must be JSON objects")
        raw_id = item.get("id")
        if isinstance(raw_id, bool) or not isinstance(raw_id, (str, int)):
            raw_id = ""
        task_id = str(raw_id)
        tasks.append(Task.from_payload(item, task_id=task_id))

    return store.replace_all(tasks)

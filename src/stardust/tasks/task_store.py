# src/stardust/tasks/task_store.py

from __future__ import annotations

import logging
from collections.abc import Iterable

from ..core.errors import CommitConflict, InvalidArgument, StardustError, StorageUnavailable
from ..storage.kv_store import KvEntry, KvKey, KvStore
from .task_models import Task, new_task_id

logger = logging.getLogger(__name__)

TASKS_PREFIX: KvKey = ("tasks",)


class TaskStore:
    """
    Task collection stored one record per key under a dedicated prefix.

    Single-key writes (upsert/delete) are atomic per key, last-write-wins.
    `replace_all` is the only multi-key mutation and commits all-or-nothing
    with optimistic conflict checks.

    Reads degrade to "empty" when storage is unavailable; writes raise.
    """

    def __init__(self, kv: KvStore, prefix: KvKey = TASKS_PREFIX) -> None:
        self._kv = kv
        self._prefix = tuple(prefix)
        try:
            total = self.count_tasks()
        except StardustError:
            total = -1
        logger.info("TaskStore ready prefix=%s total=%s", "/".join(self._prefix), total)

    def close(self) -> None:
        self._kv.close()

    # ---- low-level helpers ----

    def _key(self, task_id: str) -> KvKey:
        return (*self._prefix, task_id)

    def _entry_to_task(self, entry: KvEntry) -> Task | None:
        if not isinstance(entry.value, dict):
            logger.warning("Skipping malformed task record key=%r", entry.key)
            return None
        try:
            return Task.from_record({**entry.value, "id": entry.key[-1]})
        except InvalidArgument:
            logger.warning("Skipping invalid task record key=%r", entry.key, exc_info=True)
            return None

    # ---- public API ----

    def ping(self) -> bool:
        return self._kv.ping()

    def count_tasks(self) -> int:
        return len(self._kv.list(self._prefix))

    def list(self) -> list[Task]:
        """All stored tasks, in no particular order. Empty if storage is down."""
        try:
            entries = self._kv.list(self._prefix)
        except StorageUnavailable:
            logger.exception("Task list failed; returning empty collection")
            return []
        tasks = (self._entry_to_task(e) for e in entries)
        return [t for t in tasks if t is not None]

    def get(self, task_id: str, *, strict: bool = False) -> Task | None:
        """
        Single-key lookup; absent is not an error.

        Storage failures read as "absent" (logged) unless `strict` is set, in
        which case they propagate. Read-modify-write callers need `strict` so
        an outage is not mistaken for an unknown id.
        """
        if not task_id:
            return None
        try:
            entry = self._kv.get(self._key(task_id))
        except StorageUnavailable:
            if strict:
                raise
            logger.exception("Task get failed id=%s; treating as absent", task_id)
            return None
        return self._entry_to_task(entry) if entry else None

    def upsert(self, task: Task) -> Task:
        if not task.id:
            raise InvalidArgument("task id is required")
        stamp = self._kv.set(self._key(task.id), task.to_dict())
        logger.debug("Task upserted id=%s status=%s versionstamp=%s", task.id, task.status, stamp)
        return task

    def delete(self, task_id: str) -> None:
        if not task_id:
            return
        self._kv.delete(self._key(task_id))
        logger.debug("Task deleted id=%s", task_id)

    def replace_all(self, tasks: Iterable[Task]) -> list[Task]:
        """
        Atomically swap the whole collection for `tasks`.

        Tasks without an id get a fresh one. Raises CommitConflict (nothing
        applied) if any task key changed after the snapshot was taken.
        """
        incoming = [t if t.id else t.with_id(new_task_id()) for t in tasks]

        seen: set[str] = set()
        for t in incoming:
            if t.id in seen:
                raise InvalidArgument(f"duplicate task id: {t.id}")
            seen.add(t.id)

        existing, stamp = self._kv.snapshot(self._prefix)

        op = self._kv.atomic().check_prefix(self._prefix, stamp)
        for entry in existing:
            op.check(entry.key, entry.versionstamp)
            op.delete(entry.key)
        for t in incoming:
            op.set(self._key(t.id), t.to_dict())

        result = op.commit()
        if not result.ok:
            logger.warning("Task replace_all lost a race; nothing applied (old=%d new=%d)",
                           len(existing), len(incoming))
            raise CommitConflict("task collection changed concurrently; retry")

        logger.info(
            "Task collection replaced: removed=%d stored=%d versionstamp=%s",
            len(existing),
            len(incoming),
            result.versionstamp,
        )
        return incoming

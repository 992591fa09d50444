# src/stardust/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the task API and the web layer.

The HTTP handlers depend on Protocols instead of concrete implementations,
so tests can swap in fakes (e.g. a store whose storage is down).
"""

from typing import TYPE_CHECKING, Iterable, Protocol

if TYPE_CHECKING:
    from ..tasks.task_models import Task


class TaskRepo(Protocol):
    def list(self) -> list[Task]: ...
    def get(self, task_id: str, *, strict: bool = False) -> Task | None: ...
    def upsert(self, task: Task) -> Task: ...
    def delete(self, task_id: str) -> None: ...
    def replace_all(self, tasks: Iterable[Task]) -> list[Task]: ...

    # Health
    def ping(self) -> bool: ...
    def count_tasks(self) -> int: ...

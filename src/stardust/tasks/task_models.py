# src/stardust/tasks/task_models.py

from __future__ import annotations

import secrets
import time
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any

from ..core.errors import InvalidArgument


class TaskStatus(StrEnum):
    """Task lifecycle status."""

    PENDING = "pending"
    COMPLETED = "completed"

    @classmethod
    def from_raw(cls, raw: Any) -> TaskStatus:
        if not raw or not isinstance(raw, str):
            return cls.PENDING
        try:
            return cls(raw)
        except ValueError:
            return cls.PENDING


def new_task_id() -> str:
    """
    Millisecond timestamp + 32 random bits, e.g. "1760680000123a1b2c3d4".

    Sorts roughly by creation time; two creates in the same millisecond
    still get distinct ids.
    """
    return f"{time.time_ns() // 1_000_000:013d}{secrets.token_hex(4)}"


def _clean_tags(raw: Any) -> list[str]:
    if not isinstance(raw, (list, tuple)):
        return []
    return [t for t in raw if isinstance(t, str)]


def _clean_content(raw: Any) -> str:
    if not isinstance(raw, str):
        raise InvalidArgument("content must be a string")
    return raw


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    content: str
    status: TaskStatus = TaskStatus.PENDING
    notes: str = ""
    tags: list[str] = field(default_factory=list)

    # "note" and friends; passed through untouched.
    type: str | None = None

    @classmethod
    def from_payload(cls, data: Any, *, task_id: str = "") -> Task:
        """
        Build a Task from a client payload, applying the defaulting rules.

        `id` in the payload is ignored; the caller decides the id.
        """
        if not isinstance(data, Mapping):
            raise InvalidArgument("task payload must be a JSON object")
        if "content" not in data:
            raise InvalidArgument("content is required")

        raw_type = data.get("type")
        return cls(
            id=task_id,
            content=_clean_content(data["content"]),
            status=TaskStatus.from_raw(data.get("status")),
            notes=data.get("notes") if isinstance(data.get("notes"), str) else "",
            tags=_clean_tags(data.get("tags")),
            type=raw_type if isinstance(raw_type, str) else None,
        )

    @classmethod
    def from_record(cls, data: Mapping[str, Any]) -> Task:
        """Rebuild a Task from a stored record (id included)."""
        return cls.from_payload(data, task_id=str(data.get("id") or ""))

    def merged(self, patch: Any) -> Task:
        """
        Field-level merge for updates.

        Every known field present in `patch` replaces the stored value (after
        the same normalization as create); absent fields are kept. `id` is
        never taken from the patch.
        """
        if not isinstance(patch, Mapping):
            raise InvalidArgument("task payload must be a JSON object")

        changes: dict[str, Any] = {}
        if "content" in patch:
            changes["content"] = _clean_content(patch["content"])
        if "status" in patch:
            changes["status"] = TaskStatus.from_raw(patch["status"])
        if "notes" in patch:
            changes["notes"] = patch["notes"] if isinstance(patch["notes"], str) else ""
        if "tags" in patch:
            changes["tags"] = _clean_tags(patch["tags"])
        if "type" in patch:
            changes["type"] = patch["type"] if isinstance(patch["type"], str) else None

        return replace(self, **changes) if changes else self

    def with_id(self, task_id: str) -> Task:
        return replace(self, id=task_id)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "content": self.content,
            "status": self.status.value,
            "notes": self.notes,
            "tags": list(self.tags),
        }
        if self.type is not None:
            out["type"] = self.type
        return out

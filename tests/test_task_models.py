# tests/test_task_models.py

from __future__ import annotations

import pytest

from stardust.core.errors import InvalidArgument
from stardust.tasks.task_models import Task, TaskStatus, new_task_id


def test_payload_defaults() -> None:
    task = Task.from_payload({"content": "buy milk", "id": "client-id", "extra": 1}, task_id="t1")

    assert task.id == "t1"
    assert task.content == "buy milk"
    assert task.status is TaskStatus.PENDING
    assert task.notes == ""
    assert task.tags == []
    assert task.type is None
    assert task.to_dict() == {
        "id": "t1",
        "content": "buy milk",
        "status": "pending",
        "notes": "",
        "tags": [],
    }


def test_payload_normalization() -> None:
    task = Task.from_payload(
        {
            "content": "read",
            "status": "archived",
            "notes": 42,
            "tags": ["a", 1, None, "b"],
            "type": "note",
        },
        task_id="t1",
    )
    assert task.status is TaskStatus.PENDING
    assert task.notes == ""
    assert task.tags == ["a", "b"]
    assert task.to_dict()["type"] == "note"


@pytest.mark.parametrize("payload", [{}, {"content": 5}, {"content": None}, ["content"], "x"])
def test_payload_requires_string_content(payload) -> None:
    with pytest.raises(InvalidArgument):
        Task.from_payload(payload, task_id="t1")


def test_merge_keeps_unsent_fields_and_id() -> None:
    task = Task.from_payload(
        {"content": "buy milk", "notes": "2L", "tags": ["home"]}, task_id="t1"
    )
    updated = task.merged({"status": "completed", "id": "hijack"})

    assert updated.id == "t1"
    assert updated.content == "buy milk"
    assert updated.notes == "2L"
    assert updated.tags == ["home"]
    assert updated.status is TaskStatus.COMPLETED


def test_merge_validates_content() -> None:
    task = Task.from_payload({"content": "x"}, task_id="t1")
    with pytest.raises(InvalidArgument):
        task.merged({"content": ["not", "a", "string"]})
    assert task.merged({}) is task


def test_new_task_ids_are_unique_and_time_prefixed() -> None:
    ids = {new_task_id() for _ in range(1000)}
    assert len(ids) == 1000
    for task_id in ids:
        assert len(task_id) == 21
        assert task_id[:13].isdigit()

# tests/test_kv_store.py

from __future__ import annotations

from pathlib import Path

import pytest

from stardust.core.errors import InvalidArgument, StorageUnavailable
from stardust.storage.kv_store import KvStore

from .fakes import UnavailableKvStore


def test_set_get_delete(kv: KvStore) -> None:
    vs1 = kv.set(("tasks", "a"), {"content": "x"})
    entry = kv.get(("tasks", "a"))
    assert entry is not None
    assert entry.key == ("tasks", "a")
    assert entry.value == {"content": "x"}
    assert entry.versionstamp == vs1

    vs2 = kv.set(("tasks", "a"), {"content": "y"})
    assert vs2 > vs1
    assert kv.get(("tasks", "a")).value == {"content": "y"}

    kv.delete(("tasks", "a"))
    assert kv.get(("tasks", "a")) is None

    # deleting a missing key is fine
    kv.delete(("tasks", "a"))
    assert kv.get(("tasks", "missing")) is None


def test_list_is_scoped_to_prefix(kv: KvStore) -> None:
    kv.set(("tasks", "1"), 1)
    kv.set(("tasks", "2"), 2)
    kv.set(("tasksx", "3"), 3)
    kv.set(("notes", "4"), 4)

    keys = {e.key for e in kv.list(("tasks",))}
    assert keys == {("tasks", "1"), ("tasks", "2")}
    assert len(kv.list(())) == 4


def test_data_survives_a_new_instance(tmp_path: Path) -> None:
    db = tmp_path / "kv.sqlite3"
    KvStore(db).set(("tasks", "keep"), {"content": "still here"})

    entry = KvStore(db).get(("tasks", "keep"))
    assert entry is not None
    assert entry.value == {"content": "still here"}


def test_atomic_commit_applies_everything(kv: KvStore) -> None:
    kv.set(("tasks", "old"), "old")
    result = (
        kv.atomic()
        .delete(("tasks", "old"))
        .set(("tasks", "n1"), "a")
        .set(("tasks", "n2"), "b")
        .commit()
    )
    assert result.ok
    assert {e.key[-1] for e in kv.list(("tasks",))} == {"n1", "n2"}
    # one transaction, one versionstamp
    assert {e.versionstamp for e in kv.list(("tasks",))} == {result.versionstamp}


def test_failed_check_applies_nothing(kv: KvStore) -> None:
    stale = kv.set(("tasks", "a"), "v1")
    kv.set(("tasks", "a"), "v2")

    result = kv.atomic().check(("tasks", "a"), stale).set(("tasks", "b"), "new").commit()

    assert result.ok is False
    assert result.versionstamp is None
    assert kv.get(("tasks", "b")) is None
    assert kv.get(("tasks", "a")).value == "v2"


def test_check_none_means_key_absent(kv: KvStore) -> None:
    assert kv.atomic().check(("tasks", "a"), None).set(("tasks", "a"), 1).commit().ok
    assert not kv.atomic().check(("tasks", "a"), None).set(("tasks", "a"), 2).commit().ok
    assert kv.get(("tasks", "a")).value == 1


def test_check_prefix_detects_new_keys(kv: KvStore) -> None:
    kv.set(("tasks", "a"), 1)
    _, stamp = kv.snapshot(("tasks",))

    kv.set(("other", "x"), 1)  # outside the prefix: not a conflict
    assert kv.atomic().check_prefix(("tasks",), stamp).set(("tasks", "b"), 2).commit().ok

    _, stamp = kv.snapshot(("tasks",))
    kv.set(("tasks", "c"), 3)
    assert not kv.atomic().check_prefix(("tasks",), stamp).delete(("tasks", "a")).commit().ok
    assert kv.get(("tasks", "a")) is not None


@pytest.mark.parametrize("key", [(), ("tasks", ""), ("tasks", "a\x1fb")])
def test_bad_keys_are_rejected(kv: KvStore, key) -> None:
    with pytest.raises(InvalidArgument):
        kv.set(key, 1)


def test_unserializable_value_is_rejected_before_writing(kv: KvStore) -> None:
    with pytest.raises(InvalidArgument):
        kv.atomic().set(("tasks", "a"), 1).set(("tasks", "b"), object()).commit()
    assert kv.get(("tasks", "a")) is None


def test_unavailable_storage(tmp_path: Path) -> None:
    kv = UnavailableKvStore(tmp_path / "nope.sqlite3")

    assert kv.ping() is False
    with pytest.raises(StorageUnavailable):
        kv.get(("tasks", "a"))
    with pytest.raises(StorageUnavailable):
        kv.set(("tasks", "a"), 1)

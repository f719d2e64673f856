import pytest

from campus_booking.errors import StorageError
from campus_booking.storage import FileStorage, MemoryStorage, NamespacedStorage, build_storage, read_json, write_json


def test_file_storage_persists_across_instances(tmp_path):
    path = tmp_path / "state" / "booking.json"
    FileStorage(path).set_item("appointments", "[]")
    FileStorage(path).set_item("token", "abc")

    reopened = FileStorage(path)
    assert reopened.get_item("appointments") == "[]"
    assert reopened.get_item("token") == "abc"

    reopened.remove_item("token")
    assert FileStorage(path).get_item("token") is None
    assert list(tmp_path.joinpath("state").glob("*.tmp")) == []


def test_file_storage_corrupt_file_reads_empty(tmp_path):
    path = tmp_path / "booking.json"
    path.write_text("not json at all")

    storage = FileStorage(path)
    assert storage.get_item("appointments") is None
    storage.set_item("appointments", "[]")
    assert FileStorage(path).get_item("appointments") == "[]"


def test_file_storage_write_failure_raises(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    # parent "directory" is a regular file
    with pytest.raises(StorageError):
        FileStorage(blocker / "booking.json").set_item("token", "x")


def test_namespaced_storage_isolates_keys():
    base = MemoryStorage()
    one, two = NamespacedStorage(base, "session:1:"), NamespacedStorage(base, "session:2:")
    one.set_item("user", "a")
    two.set_item("user", "b")

    assert one.get_item("user") == "a"
    assert two.get_item("user") == "b"
    assert sorted(base.keys()) == ["session:1:user", "session:2:user"]

    one.remove_item("user")
    assert one.get_item("user") is None
    assert two.get_item("user") == "b"


def test_read_json_defaults():
    storage = MemoryStorage({"broken": "{", "ok": '{"a": 1}'})
    assert read_json(storage, "missing", default=[]) == []
    assert read_json(storage, "broken", default=[]) == []
    assert read_json(storage, "ok") == {"a": 1}

    write_json(storage, "list", [1, 2])
    assert storage.get_item("list") == "[1, 2]"


def test_build_storage(tmp_path):
    assert isinstance(build_storage(""), MemoryStorage)
    assert isinstance(build_storage(str(tmp_path / "x.json")), FileStorage)


def test_file_storage_failed_replace_leaves_no_temp_file(tmp_path, monkeypatch):
    def fail_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr("campus_booking.storage.os.replace", fail_replace)
    with pytest.raises(StorageError):
        FileStorage(tmp_path / "booking.json").set_item("token", "x")
    assert list(tmp_path.iterdir()) == []

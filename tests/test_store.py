"""Tests for daybook.store: atomic JSON documents with locking.

Covers:
- atomic_write_text: replace-in-place and permission bits
- JsonStore.load: default seeding and corrupt-file detection
- JsonStore.transaction: save on success, untouched file on failure
- next_id: monotonically increasing counters
- concurrent processes: no lost updates under the file lock
"""

import json
import os
import stat
import subprocess
import sys
from pathlib import Path

import pytest

from daybook.errors import StoreError, ValidationError
from daybook.store import JsonStore, atomic_write_text, next_id


@pytest.fixture
def store(tmp_path):
    return JsonStore(tmp_path / "docs" / "items.json", {"items": [], "next_id": 1})


class TestAtomicWrite:

    def test_creates_parent_dirs(self, tmp_path):
        path = tmp_path / "a" / "b" / "file.txt"
        atomic_write_text(path, "hello")
        assert path.read_text() == "hello"

    def test_replaces_existing_content(self, tmp_path):
        path = tmp_path / "file.txt"
        path.write_text("old content that is longer")
        atomic_write_text(path, "new")
        assert path.read_text() == "new"

    def test_leaves_no_temp_files(self, tmp_path):
        atomic_write_text(tmp_path / "file.txt", "x")
        assert [p.name for p in tmp_path.iterdir()] == ["file.txt"]

    def test_applies_mode(self, tmp_path):
        path = tmp_path / "secret.txt"
        atomic_write_text(path, "s3cret", mode=0o600)
        assert stat.S_IMODE(path.stat().st_mode) == 0o600


class TestLoad:

    def test_seeds_default_when_missing(self, store):
        assert not store.exists()
        data = store.load()
        assert data == {"items": [], "next_id": 1}
        assert store.exists()

    def test_default_is_not_shared(self, store):
        data = store.load()
        data["items"].append("x")
        assert store.default["items"] == []

    def test_corrupt_file_raises(self, store):
        store.path.parent.mkdir(parents=True)
        store.path.write_text("{not json")
        with pytest.raises(StoreError, match="corrupt"):
            store.load()

    def test_non_object_raises(self, store):
        store.path.parent.mkdir(parents=True)
        store.path.write_text("[1, 2, 3]")
        with pytest.raises(StoreError):
            store.load()


class TestTransaction:

    def test_saves_changes(self, store):
        with store.transaction() as data:
            data["items"].append({"id": next_id(data), "text": "one"})
        saved = json.loads(store.path.read_text())
        assert saved["items"] == [{"id": 1, "text": "one"}]
        assert saved["next_id"] == 2

    def test_failure_leaves_file_untouched(self, store):
        with store.transaction() as data:
            data["items"].append("kept")
        before = store.path.read_text()

        with pytest.raises(ValidationError):
            with store.transaction() as data:
                data["items"].append("discarded")
                raise ValidationError("nope")

        assert store.path.read_text() == before

    def test_read_sees_committed_data(self, store):
        with store.transaction() as data:
            data["items"].append("x")
        with store.read() as data:
            assert data["items"] == ["x"]


class TestNextId:

    def test_counts_up(self):
        data = {"next_id": 5}
        assert next_id(data) == 5
        assert next_id(data) == 6
        assert data["next_id"] == 7

    def test_missing_counter_starts_at_one(self):
        data = {}
        assert next_id(data, "action_next_id") == 1
        assert data["action_next_id"] == 2


class TestConcurrency:

    def test_parallel_processes_get_distinct_ids(self, isolated_data):
        root = Path(__file__).resolve().parent.parent
        env = dict(os.environ, PYTHONPATH=os.pathsep.join(filter(None, [str(root), os.environ.get("PYTHONPATH")])))
        procs = [
            subprocess.Popen(
                [sys.executable, "-m", "daybook", "tasks", "add", f"t{n}"],
                env=env, stdout=subprocess.DEVNULL, stderr=subprocess.PIPE,
            )
            for n in range(12)
        ]
        for proc in procs:
            _, err = proc.communicate(timeout=60)
            assert proc.returncode == 0, err.decode()

        data = json.loads((isolated_data / "tasks" / "tasks.json").read_text())
        assert sorted(t["id"] for t in data["tasks"]) == list(range(1, 13))
        assert sorted(t["description"] for t in data["tasks"]) == sorted(f"t{n}" for n in range(12))
        assert data["next_id"] == 13

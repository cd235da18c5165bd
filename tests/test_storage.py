from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from trialreview.config import ReviewConfig
from trialreview.storage import JSONFileStorage, MemoryStorage, SQLiteStorage, build_storage


@pytest.mark.parametrize("backend", ["memory", "json", "sqlite"])
def test_backends_store_and_read_values(tmp_path: Path, backend: str) -> None:
    storage = build_storage(ReviewConfig(state_dir=tmp_path / "state", storage_backend=backend))

    missing = storage.read("reviewDrafts")
    written = storage.write("reviewDrafts", {"NCT1::Q": {"human_grade": "A"}})
    found = storage.read("reviewDrafts")

    assert missing.ok and not missing.found
    assert written.ok
    assert found.found
    assert found.value == {"NCT1::Q": {"human_grade": "A"}}


def test_build_storage_types(tmp_path: Path) -> None:
    assert isinstance(build_storage(ReviewConfig(state_dir=tmp_path, storage_backend="memory")), MemoryStorage)
    assert isinstance(build_storage(ReviewConfig(state_dir=tmp_path, storage_backend="json")), JSONFileStorage)
    assert isinstance(build_storage(ReviewConfig(state_dir=tmp_path, storage_backend="sqlite")), SQLiteStorage)


def test_json_storage_overwrites_atomically(tmp_path: Path) -> None:
    storage = JSONFileStorage(tmp_path)
    storage.write("reviewedTrials", [1])
    storage.write("reviewedTrials", [1, 2])

    assert storage.read("reviewedTrials").value == [1, 2]
    assert not (tmp_path / "reviewedTrials.json.tmp").exists()


def test_json_storage_corrupt_file_reports_failure(tmp_path: Path) -> None:
    (tmp_path / "reviewedTrials.json").write_text("[oops", encoding="utf-8")

    result = JSONFileStorage(tmp_path).read("reviewedTrials")

    assert result.ok is False
    assert result.error


def test_json_storage_unwritable_location_reports_failure(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")

    result = JSONFileStorage(blocker / "state").write("reviewedTrials", [])

    assert result.ok is False


def test_unserializable_value_reports_failure() -> None:
    result = MemoryStorage().write("reviewedTrials", {"bad": object()})

    assert result.ok is False
    assert "TypeError" in result.error


def test_sqlite_storage_keeps_keys_separate(tmp_path: Path) -> None:
    path = tmp_path / "state.db"
    storage = SQLiteStorage(path)
    storage.write("reviewedTrials", [{"nct_id": "NCT1"}])
    storage.write("reviewDrafts", {})

    with sqlite3.connect(path) as conn:
        keys = sorted(row[0] for row in conn.execute("SELECT key FROM kv"))

    assert keys == ["reviewDrafts", "reviewedTrials"]
    assert SQLiteStorage(path).read("reviewedTrials").value == [{"nct_id": "NCT1"}]


def test_sqlite_storage_unusable_state_dir_reports_failure(tmp_path: Path) -> None:
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("", encoding="utf-8")
    storage = SQLiteStorage(blocker / "state" / "review_state.db")

    read = storage.read("reviewedTrials")
    written = storage.write("reviewedTrials", [])

    assert read.ok is False
    assert written.ok is False
    assert "NotADirectoryError" in written.error

"""Tests for lock file persistence and the ledger model."""

import json

import pytest

from fakes import commit
from revenant.core.lockfile import read_lock_file, write_lock_file
from revenant.lib.errors import ConfigError
from revenant.models.ledger import LOCK_FILE_VERSION, Ledger
from revenant.models.plugin import InstalledRecord


def record(name, installed_at="2026-10-17T12:00:00+00:00"):
    return InstalledRecord(
        name=name,
        repo=f"https://github.com/owner/{name}",
        commit=commit(name),
        installed_at=installed_at,
        path=f"/plugins/{name}",
    )


class TestReadLockFile:
    def test_missing_file_is_empty_ledger(self, tmp_path):
        ledger = read_lock_file(tmp_path / "plugins.lock")
        assert ledger.plugins == []
        assert ledger.version == LOCK_FILE_VERSION

    def test_reads_camel_case_fields(self, tmp_path):
        path = tmp_path / "plugins.lock"
        path.write_text(
            json.dumps(
                {
                    "version": "1",
                    "generated": "2026-10-17T12:00:00+00:00",
                    "plugins": [
                        {
                            "name": "plenary.nvim",
                            "repo": "https://github.com/nvim-lua/plenary.nvim",
                            "commit": commit("p"),
                            "installedAt": "2026-10-16T08:00:00+00:00",
                            "path": "/plugins/plenary.nvim",
                        }
                    ],
                }
            )
        )
        ledger = read_lock_file(path)
        assert ledger.get("plenary.nvim").installed_at == "2026-10-16T08:00:00+00:00"

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "plugins.lock"
        path.write_text("{")
        with pytest.raises(ConfigError, match="Invalid JSON in lock file"):
            read_lock_file(path)

    def test_unsupported_version(self, tmp_path):
        path = tmp_path / "plugins.lock"
        path.write_text(json.dumps({"version": "2", "generated": "x", "plugins": []}))
        with pytest.raises(ConfigError, match="Unsupported lock file version: 2. Expected: 1"):
            read_lock_file(path)

    def test_duplicate_records_rejected(self, tmp_path):
        path = tmp_path / "plugins.lock"
        data = Ledger(plugins=[record("a")]).model_dump(mode="json", by_alias=True)
        data["plugins"].append(dict(data["plugins"][0]))
        path.write_text(json.dumps(data))
        with pytest.raises(ConfigError, match="Invalid lock file"):
            read_lock_file(path)

    def test_not_an_object(self, tmp_path):
        path = tmp_path / "plugins.lock"
        path.write_text("[]")
        with pytest.raises(ConfigError):
            read_lock_file(path)


class TestWriteLockFile:
    def test_round_trip(self, tmp_path):
        ledger = Ledger(generated="2026-10-17T12:00:00+00:00", plugins=[record("a"), record("b")])
        path = tmp_path / "nested" / "plugins.lock"

        write_lock_file(path, ledger)

        assert read_lock_file(path) == ledger

    def test_on_disk_shape(self, tmp_path):
        path = tmp_path / "plugins.lock"
        write_lock_file(path, Ledger(plugins=[record("a")]))
        data = json.loads(path.read_text())
        assert set(data) == {"version", "generated", "plugins"}
        assert set(data["plugins"][0]) == {"name", "repo", "commit", "installedAt", "path"}

    def test_no_temp_files_left(self, tmp_path):
        path = tmp_path / "plugins.lock"
        write_lock_file(path, Ledger(plugins=[record("a")]))
        write_lock_file(path, Ledger(plugins=[record("b")]))
        assert [p.name for p in tmp_path.iterdir()] == ["plugins.lock"]
        assert read_lock_file(path).names() == ["b"]

    def test_write_failure(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("")
        with pytest.raises(ConfigError, match="Failed to write lock file"):
            write_lock_file(blocker / "plugins.lock", Ledger())


class TestLedger:
    def test_upsert_replaces_in_place(self):
        ledger = Ledger(plugins=[record("a"), record("b")])
        ledger.upsert(record("a", installed_at="later"))
        assert ledger.names() == ["a", "b"]
        assert ledger.get("a").installed_at == "later"

    def test_upsert_appends(self):
        ledger = Ledger.empty()
        ledger.upsert(record("a"))
        assert ledger.names() == ["a"]

    def test_remove(self):
        ledger = Ledger(plugins=[record("a"), record("b")])
        removed = ledger.remove("a")
        assert removed.name == "a"
        assert ledger.names() == ["b"]
        assert ledger.remove("a") is None

    def test_orphans(self):
        ledger = Ledger(plugins=[record("a"), record("b"), record("c")])
        assert [r.name for r in ledger.orphans(["b"])] == ["a", "c"]

    def test_snapshot_is_independent(self):
        ledger = Ledger(plugins=[record("a")])
        copy = ledger.snapshot()
        copy.upsert(record("b"))
        copy.remove("a")
        assert ledger.names() == ["a"]

    def test_record_matches_commit_case_insensitively(self):
        rec = record("a")
        spec = rec.to_spec().model_copy(update={"commit": rec.commit.upper()})
        assert rec.matches(spec)
        assert not rec.matches(spec.model_copy(update={"repo": "https://github.com/x/a"}))

import os
import stat

import pytest

from paddock.core.errors import MalformedRecord, StoreUnavailable
from paddock.schemas.entities import Driver, Participant
from paddock.store.tables import JOURNAL_NAME, EntityStore


def leftovers(store):
    return sorted(p.name for p in store.data_dir.iterdir() if not p.name.endswith(".csv"))


def test_ensure_tables_creates_empty_files(tmp_path):
    store = EntityStore(tmp_path / "data")
    assert store.ensure_tables() == ["users", "bets", "race_results", "drivers"]
    assert store.ensure_tables() == []
    assert store.load("users") == []


def test_load_missing_table(tmp_path):
    store = EntityStore(tmp_path)
    with pytest.raises(StoreUnavailable):
        store.load("users")


def test_load_unknown_table(store):
    with pytest.raises(ValueError):
        store.load("quotes")


def test_load_keeps_file_order_and_skips_blank_lines(store, write_rows):
    write_rows("drivers", "44,HAM,3", "", "1,VER,2\r", "16,LEC,5")
    assert [d.code for d in store.load("drivers")] == ["HAM", "VER", "LEC"]


def test_load_reports_malformed_line(store, write_rows):
    write_rows("users", "vtnw,Europe/Berlin,0,", "broken,row")
    with pytest.raises(MalformedRecord) as exc:
        store.load("users")
    assert "users.csv:2" in str(exc.value)


def test_save_replaces_whole_table(store, read_table):
    store.save("drivers", [Driver(number=44, code="HAM", odds=3), Driver(number=1, code="VER", odds=2)])
    store.save("drivers", [Driver(number=16, code="LEC", odds=5)])
    assert read_table("drivers") == b"16,LEC,5\n"
    assert leftovers(store) == []


def test_save_rejects_wrong_entity_kind(store):
    with pytest.raises(TypeError):
        store.save("drivers", [Participant(handle="vtnw", time_zone="UTC")])


def test_failed_save_leaves_table_untouched(store, write_rows, read_table, monkeypatch):
    write_rows("users", "vtnw,Europe/Berlin,7,")
    before = read_table("users")

    def boom(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", boom)
    with pytest.raises(StoreUnavailable):
        store.save("users", [Participant(handle="other", time_zone="UTC")])
    assert read_table("users") == before
    assert leftovers(store) == []


def test_save_into_missing_directory(tmp_path):
    store = EntityStore(tmp_path / "nope")
    with pytest.raises(StoreUnavailable):
        store.save("drivers", [])


def test_transaction_commits_every_table(store, read_table):
    with store.transaction() as batch:
        batch.save("users", [Participant(handle="vtnw", time_zone="UTC", total_points=3)])
        batch.save("drivers", [Driver(number=44, code="HAM", odds=3)])
        # nothing is visible until the block exits
        assert read_table("users") == b""
    assert read_table("users") == b"vtnw,UTC,3,\n"
    assert read_table("drivers") == b"44,HAM,3\n"
    assert leftovers(store) == []


def test_transaction_aborted_by_exception(store, read_table):
    with pytest.raises(RuntimeError):
        with store.transaction() as batch:
            batch.save("users", [Participant(handle="vtnw", time_zone="UTC")])
            raise RuntimeError("scoring blew up")
    assert read_table("users") == b""
    assert leftovers(store) == []


def test_transaction_failing_before_journal_changes_nothing(store, read_table, monkeypatch):
    real_write_atomic = EntityStore._write_atomic

    def fail_on_journal(self, path, data):
        if path.name == JOURNAL_NAME:
            raise StoreUnavailable("journal write failed")
        return real_write_atomic(self, path, data)

    monkeypatch.setattr(EntityStore, "_write_atomic", fail_on_journal)
    with pytest.raises(StoreUnavailable):
        with store.transaction() as batch:
            batch.save("users", [Participant(handle="vtnw", time_zone="UTC")])
            batch.save("drivers", [Driver(number=44, code="HAM", odds=3)])
    assert read_table("users") == b""
    assert read_table("drivers") == b""
    assert leftovers(store) == []


def test_interrupted_commit_is_completed_by_recover(store, read_table, monkeypatch):
    real_replace = os.replace
    calls = []

    def crash_on_second_rename(src, dst):
        calls.append(src)
        if len(calls) == 3:  # journal, users, then crash on drivers
            raise OSError("power cut")
        return real_replace(src, dst)

    monkeypatch.setattr(os, "replace", crash_on_second_rename)
    with pytest.raises(StoreUnavailable):
        with store.transaction() as batch:
            batch.save("users", [Participant(handle="vtnw", time_zone="UTC", total_points=5)])
            batch.save("drivers", [Driver(number=44, code="HAM", odds=3)])
    monkeypatch.setattr(os, "replace", real_replace)

    assert (store.data_dir / JOURNAL_NAME).exists()
    assert read_table("users") == b"vtnw,UTC,5,\n"
    assert read_table("drivers") == b""

    store.recover()
    assert read_table("drivers") == b"44,HAM,3\n"
    assert leftovers(store) == []


def test_recover_discards_staged_files_without_journal(store, read_table):
    (store.data_dir / "users.csv.staged").write_text("ghost,UTC,99,\n")
    store.recover()
    assert read_table("users") == b""
    assert leftovers(store) == []


def test_recover_without_anything_pending(store):
    store.recover()
    assert leftovers(store) == []


def test_undecodable_table_is_unavailable(store, read_table):
    store.path_for("bets").write_bytes(b"Monaco,vt\xffnw,HAM,VER,LEC,HAM,0\n")
    with pytest.raises(StoreUnavailable):
        store.load("bets")


def test_unencodable_save_leaves_table_and_no_temp_files(store, write_rows, read_table):
    write_rows("users", "vtnw,Europe/Berlin,7,")
    before = read_table("users")
    with pytest.raises(StoreUnavailable):
        store.save("users", [Participant(handle="bad\udcffnick", time_zone="UTC")])
    assert read_table("users") == before
    assert leftovers(store) == []


def test_unencodable_transaction_commits_nothing(store, read_table):
    with pytest.raises(StoreUnavailable):
        with store.transaction() as batch:
            batch.save("drivers", [Driver(number=44, code="HAM", odds=3)])
            batch.save("users", [Participant(handle="bad\udcffnick", time_zone="UTC")])
    assert read_table("drivers") == b""
    assert read_table("users") == b""
    assert leftovers(store) == []


def test_save_keeps_table_permissions(store):
    path = store.path_for("drivers")
    os.chmod(path, 0o640)
    store.save("drivers", [Driver(number=44, code="HAM", odds=3)])
    assert stat.S_IMODE(os.stat(path).st_mode) == 0o640


def test_commit_keeps_table_permissions(store):
    path = store.path_for("users")
    os.chmod(path, 0o640)
    with store.transaction() as batch:
        batch.save("users", [Participant(handle="vtnw", time_zone="UTC")])
    assert stat.S_IMODE(os.stat(path).st_mode) == 0o640


def test_commit_syncs_directory_before_dropping_journal(store, monkeypatch):
    journal_present = []

    def record(directory):
        journal_present.append((store.data_dir / JOURNAL_NAME).exists())

    monkeypatch.setattr(EntityStore, "_fsync_dir", staticmethod(record))
    with store.transaction() as batch:
        batch.save("users", [Participant(handle="vtnw", time_zone="UTC")])
    # once after the journal rename, once after the table renames
    assert journal_present == [True, True]
    assert not (store.data_dir / JOURNAL_NAME).exists()

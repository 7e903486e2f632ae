"""
Shared fixtures: a throwaway data directory with the four tables and an
injected Settings pointing at it.
"""

import pytest

from paddock.core.config import Settings
from paddock.store.tables import EntityStore


@pytest.fixture
def settings(tmp_path):
    return Settings(_env_file=None, data_dir=tmp_path, admin_nick="gluon")


@pytest.fixture
def store(settings):
    store = EntityStore.from_settings(settings)
    store.ensure_tables()
    return store


@pytest.fixture
def write_rows(store):
    """Write raw text rows straight into a table file."""

    def _write(table, *rows):
        store.path_for(table).write_text("".join(f"{row}\n" for row in rows), encoding="utf-8")

    return _write


@pytest.fixture
def read_table(store):
    def _read(table):
        return store.path_for(table).read_bytes()

    return _read


@pytest.fixture
def monaco(write_rows):
    """One participant, one bet and a pending Monaco result."""
    write_rows("users", "vtnw,Europe/Berlin,0,")
    write_rows("bets", "Monaco,vtnw,HAM,VER,LEC,HAM,0")
    write_rows("race_results", "Monaco,HAM,VER,LEC,HAM,")
    write_rows("drivers", "44,HAM,3", "1,VER,2", "16,LEC,5", "4,NOR,8")

"""
Entity Store - loads and saves whole tables of typed records.

Each table is one delimited text file (no header, one record per line).
A save is a full snapshot: the new contents are written to a temporary
file and renamed over the table, so a reader sees either the old file or
the new one, never a truncated mix.

Several tables can be committed together with ``transaction()``. Staged
files are written first, then a journal naming them; the journal is the
commit point. ``recover()`` rolls a journaled commit forward and discards
staged files that never made it into a journal.
"""

import contextlib
import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Type

from pydantic import BaseModel

from paddock.core.config import Settings
from paddock.core.errors import MalformedRecord, StoreUnavailable
from paddock.store.codec import TABLES, decode_line, encode_line

logger = logging.getLogger(__name__)

JOURNAL_NAME = "commit.journal"
STAGED_SUFFIX = ".staged"


class Batch:
    """Tables saved inside a ``transaction()`` block, held until commit."""

    def __init__(self, store: "EntityStore"):
        self._store = store
        self.staged: Dict[str, str] = {}

    def save(self, table: str, entities: Iterable[BaseModel]) -> None:
        self.staged[table] = self._store.render(table, entities)


class EntityStore:
    def __init__(self, data_dir: Path, delimiter: str = ",", suffix: str = ".csv"):
        self.data_dir = Path(data_dir)
        self.delimiter = delimiter
        self.suffix = suffix

    @classmethod
    def from_settings(cls, settings: Settings) -> "EntityStore":
        return cls(settings.data_dir, delimiter=settings.delimiter, suffix=settings.table_suffix)

    @property
    def journal_path(self) -> Path:
        return self.data_dir / JOURNAL_NAME

    def path_for(self, table: str) -> Path:
        return self.data_dir / f"{table}{self.suffix}"

    def _staged_path(self, table: str) -> Path:
        return self.data_dir / f"{table}{self.suffix}{STAGED_SUFFIX}"

    @staticmethod
    def model_for(table: str) -> Type[BaseModel]:
        try:
            return TABLES[table]
        except KeyError:
            raise ValueError(f"Unknown table {table!r}") from None

    # -----------------------
    # Reading
    # -----------------------
    def load(self, table: str) -> List[BaseModel]:
        """Return every record of ``table`` in file order."""
        model = self.model_for(table)
        path = self.path_for(table)
        try:
            with open(path, "r", encoding="utf-8", newline="") as f:
                text = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise StoreUnavailable(f"Cannot read {path}: {e}") from e

        records = []
        for lineno, line in enumerate(text.split("\n"), start=1):
            line = line.rstrip("\r")
            if not line:
                continue
            try:
                records.append(decode_line(model, line, self.delimiter))
            except MalformedRecord as e:
                raise MalformedRecord(f"{path}:{lineno}: {e}") from e
        logger.debug("Loaded %d %s record(s) from %s", len(records), table, path)
        return records

    # -----------------------
    # Writing
    # -----------------------
    def render(self, table: str, entities: Iterable[BaseModel]) -> str:
        model = self.model_for(table)
        lines = []
        for entity in entities:
            if not isinstance(entity, model):
                raise TypeError(f"Table {table!r} stores {model.__name__}, got {type(entity).__name__}")
            lines.append(encode_line(entity, self.delimiter) + "\n")
        return "".join(lines)

    def save(self, table: str, entities: Iterable[BaseModel]) -> None:
        """Replace the whole table with ``entities``."""
        data = self.render(table, entities)
        path = self.path_for(table)
        self._write_atomic(path, data)
        logger.debug("Saved %s to %s", table, path)

    @staticmethod
    def _encode(path: Path, data: str) -> bytes:
        # Nicks from argv may carry surrogates; fail before any file is opened.
        try:
            return data.encode("utf-8")
        except UnicodeEncodeError as e:
            raise StoreUnavailable(f"Cannot encode {path}: {e}") from e

    @staticmethod
    def _mode_for(path: Path) -> int:
        """Permission bits for a new version of ``path``: the current ones if it exists."""
        try:
            return stat.S_IMODE(os.stat(path).st_mode)
        except FileNotFoundError:
            umask = os.umask(0)
            os.umask(umask)
            return 0o666 & ~umask

    @staticmethod
    def _fsync_dir(directory: Path) -> None:
        if os.name != "posix":
            return
        fd = os.open(directory, os.O_RDONLY)
        try:
            os.fsync(fd)
        finally:
            os.close(fd)

    def _write_file(self, path: Path, data: str, like: Path) -> None:
        payload = self._encode(path, data)
        try:
            with open(path, "wb") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(path, self._mode_for(like))
        except OSError as e:
            raise StoreUnavailable(f"Cannot write {path}: {e}") from e

    def _write_atomic(self, path: Path, data: str) -> None:
        payload = self._encode(path, data)
        try:
            fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        except OSError as e:
            raise StoreUnavailable(f"Cannot write {path}: {e}") from e
        replaced = False
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp, self._mode_for(path))
            os.replace(tmp, path)
            replaced = True
            self._fsync_dir(path.parent)
        except OSError as e:
            raise StoreUnavailable(f"Cannot write {path}: {e}") from e
        finally:
            if not replaced:
                with contextlib.suppress(OSError):
                    os.unlink(tmp)

    # -----------------------
    # Multi-table commit
    # -----------------------
    @contextlib.contextmanager
    def transaction(self) -> Iterator[Batch]:
        """Commit every table saved in the block together, or none of them.

        Usage:
            with store.transaction() as batch:
                batch.save("users", users)
                batch.save("bets", bets)
            # all staged tables are in place here
        """
        batch = Batch(self)
        try:
            yield batch
        except Exception:
            logger.info("Transaction aborted, discarding %d staged table(s)", len(batch.staged))
            raise
        self._commit(batch.staged)

    def _commit(self, staged: Dict[str, str]) -> None:
        if not staged:
            return
        written: List[Path] = []
        try:
            for table, data in staged.items():
                path = self._staged_path(table)
                written.append(path)
                self._write_file(path, data, like=self.path_for(table))
            self._write_atomic(self.journal_path, "".join(f"{table}\n" for table in staged))
        except StoreUnavailable:
            for path in written:
                with contextlib.suppress(OSError):
                    path.unlink()
            raise
        logger.info("Committing %s", ", ".join(staged))
        self._roll_forward(list(staged))

    def _roll_forward(self, tables: List[str]) -> None:
        try:
            for table in tables:
                staged = self._staged_path(table)
                if staged.exists():
                    os.replace(staged, self.path_for(table))
            self._fsync_dir(self.data_dir)
            self.journal_path.unlink()
        except OSError as e:
            # The journal is still on disk, so recover() finishes the job.
            raise StoreUnavailable(f"Commit of {tables} interrupted: {e}") from e

    def recover(self) -> None:
        """Finish a journaled commit and drop leftovers from an aborted one."""
        try:
            if self.journal_path.exists():
                tables = [t for t in self.journal_path.read_text(encoding="utf-8").split("\n") if t]
                logger.info("Completing interrupted commit of %s", ", ".join(tables))
                self._roll_forward(tables)
            for stray in self.data_dir.glob(f"*{self.suffix}{STAGED_SUFFIX}"):
                logger.warning("Discarding uncommitted staged file %s", stray)
                stray.unlink()
            for stray in self.data_dir.glob(".*.tmp"):
                stray.unlink()
        except (OSError, UnicodeDecodeError) as e:
            raise StoreUnavailable(f"Recovery of {self.data_dir} failed: {e}") from e

    def ensure_tables(self) -> List[str]:
        """Create an empty file for every table that does not exist yet."""
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreUnavailable(f"Cannot create {self.data_dir}: {e}") from e
        created = []
        for table in TABLES:
            if not self.path_for(table).exists():
                self.save(table, [])
                created.append(table)
        return created

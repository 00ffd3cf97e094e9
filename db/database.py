import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Optional, Union

from loguru import logger

from utils.clock import Clock, system_now
from .populate import Populator
from .errors import MissingSchemaError, SchemaError, SchemaVersionError, StoreExistsError
from .schema import INDEX_STATEMENTS, SCHEMA_STATEMENTS, SCHEMA_VERSION

PathLike = Union[str, Path]


def connect(path: PathLike) -> sqlite3.Connection:
    """Open a SQLite connection in autocommit mode; transactions are explicit."""
    conn = sqlite3.connect(str(path), isolation_level=None)
    conn.row_factory = sqlite3.Row
    try:
        conn.execute("PRAGMA foreign_keys = ON")
    except sqlite3.Error:
        conn.close()
        raise
    return conn


class Store:
    """A single database file of problems, their schedules and the grading log.

    Use :meth:`create` or :meth:`open` rather than the constructor. ``clock``
    is the time source for everything that reads or writes schedules and may
    be replaced, e.g. with a :class:`utils.clock.FixedClock` in tests.
    """

    def __init__(self, conn: sqlite3.Connection, path: Path, kind: str, clock: Optional[Clock] = None):
        self.conn = conn
        self.path = path
        self._kind = kind
        self.clock = clock or system_now

    @classmethod
    def create(cls, path: PathLike, kind: str, clock: Optional[Clock] = None) -> "Store":
        """Create a new store at ``path``. Fails if anything is already there."""
        path = Path(path)
        if path.exists():
            raise StoreExistsError(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        conn = connect(path)
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                for statement in SCHEMA_STATEMENTS + INDEX_STATEMENTS:
                    conn.execute(statement)
                conn.execute("INSERT INTO config (key, value) VALUES ('kind', ?)", (kind,))
                conn.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        except BaseException:
            conn.close()
            path.unlink(missing_ok=True)
            raise
        logger.info(f"Created store at {path} (kind={kind!r})")
        return cls(conn, path, kind, clock)

    @classmethod
    def open(cls, path: PathLike, clock: Optional[Clock] = None) -> "Store":
        """Open an existing store, checking its schema version."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"No store at {path}")
        conn = connect(path)
        try:
            check_schema_version(conn)
            kind = read_kind(conn)
        except BaseException:
            conn.close()
            raise
        logger.info(f"Opened store at {path} (kind={kind!r})")
        return cls(conn, path, kind, clock)

    @property
    def kind(self) -> str:
        """How the problems are meant to be interpreted by the presentation layer."""
        return self._kind

    def now(self):
        return self.clock()

    def close(self) -> None:
        self.conn.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @contextmanager
    def transaction(self):
        """Scoped write transaction: commit on success, roll back on any exception."""
        self.conn.execute("BEGIN IMMEDIATE")
        try:
            yield self.conn
        except BaseException:
            self.conn.execute("ROLLBACK")
            raise
        self.conn.execute("COMMIT")

    @contextmanager
    def snapshot(self):
        """Read transaction so several queries observe the same state."""
        self.conn.execute("BEGIN")
        try:
            yield self.conn
        finally:
            self.conn.execute("COMMIT")

    def begin(self) -> Populator:
        """Start a bulk load; see :class:`db.populate.Populator`."""
        return Populator(self)


def check_schema_version(conn: sqlite3.Connection) -> str:
    """Read the version stamp and require an exact match."""
    try:
        rows = conn.execute("SELECT version FROM schema_version").fetchall()
    except sqlite3.OperationalError as exc:
        if "no such table" in str(exc):
            raise MissingSchemaError("No schema present") from exc
        raise
    if not rows:
        raise MissingSchemaError("No schema version recorded")
    if len(rows) > 1:
        raise SchemaError("Multiple rows in schema_version")
    version = rows[0]["version"]
    if version != SCHEMA_VERSION:
        raise SchemaVersionError(version, SCHEMA_VERSION)
    return version


def read_kind(conn: sqlite3.Connection) -> str:
    row = conn.execute("SELECT value FROM config WHERE key = 'kind'").fetchone()
    if row is None:
        raise SchemaError("No kind present")
    return row["value"]

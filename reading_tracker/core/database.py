"""Database initialization, schema versioning and connection management."""
import asyncio
import enum
import logging
from pathlib import Path
from typing import Iterable, List, Optional

import aiosqlite

from reading_tracker.config import settings
from reading_tracker.core.exceptions import NotReadyError, StorageError

logger = logging.getLogger(__name__)

# Schema version the code expects; stored in PRAGMA user_version
SCHEMA_VERSION = 2

MIGRATIONS_DIR = Path(__file__).parent.parent / "database" / "migrations"


class DatabaseState(enum.Enum):
    """Lifecycle of a database handle."""

    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


class Database:
    """Database connection handle.

    Every CRUD operation receives a handle explicitly and calls
    require_ready() first. A handle that failed to open stays failed.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._conn: Optional[aiosqlite.Connection] = None
        self._state = DatabaseState.PENDING
        self.error: Optional[BaseException] = None
        self._open_lock = asyncio.Lock()

    @property
    def state(self) -> DatabaseState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is DatabaseState.READY

    async def open(self) -> aiosqlite.Connection:
        """
        Open the connection and bring the schema up to SCHEMA_VERSION.

        Concurrent calls on one handle share a single open.

        Raises:
            NotReadyError: If this handle already failed to open
            StorageError: If the database cannot be opened or migrated
        """
        async with self._open_lock:
            if self._state is DatabaseState.FAILED:
                raise NotReadyError("storage not ready")
            if self._conn is not None:
                return self._conn

            conn = None
            try:
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
                conn = await aiosqlite.connect(self.db_path)
                conn.row_factory = aiosqlite.Row
                version = await _run_migrations(conn)
            except (aiosqlite.Error, OSError, StorageError) as e:
                logger.error("Database failed to open at %s: %s", self.db_path, e)
                self._state = DatabaseState.FAILED
                self.error = e
                if conn is not None:
                    await conn.close()
                if isinstance(e, StorageError):
                    raise
                raise StorageError(f"failed to open database: {e}") from e

            self._conn = conn
            self._state = DatabaseState.READY
            logger.info("Database ready at %s (schema version %d)", self.db_path, version)
            return conn

    async def close(self):
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None
        if self._state is DatabaseState.READY:
            self._state = DatabaseState.PENDING

    def require_ready(self) -> aiosqlite.Connection:
        """Return the open connection or fail fast."""
        if self._state is not DatabaseState.READY or self._conn is None:
            raise NotReadyError("storage not ready")
        return self._conn

    async def execute(self, query: str, params: tuple = ()) -> aiosqlite.Cursor:
        """
        Execute a write query in its own transaction.

        Integrity errors are re-raised as is so callers can map them
        (duplicate username, account number collision).

        Returns:
            Cursor with lastrowid / rowcount of the statement
        """
        conn = self.require_ready()
        try:
            cursor = await conn.execute(query, params)
            await conn.commit()
        except aiosqlite.IntegrityError:
            await conn.rollback()
            raise
        except aiosqlite.Error as e:
            await conn.rollback()
            logger.error("Write failed: %s", e)
            raise StorageError(f"write failed: {e}") from e
        return cursor

    async def fetchone(self, query: str, params: tuple = ()) -> Optional[aiosqlite.Row]:
        """Fetch one result."""
        conn = self.require_ready()
        try:
            async with conn.execute(query, params) as cursor:
                return await cursor.fetchone()
        except aiosqlite.Error as e:
            logger.error("Read failed: %s", e)
            raise StorageError(f"read failed: {e}") from e

    async def fetchall(self, query: str, params: tuple = ()) -> List[aiosqlite.Row]:
        """Fetch all results."""
        conn = self.require_ready()
        try:
            async with conn.execute(query, params) as cursor:
                return list(await cursor.fetchall())
        except aiosqlite.Error as e:
            logger.error("Read failed: %s", e)
            raise StorageError(f"read failed: {e}") from e


async def init_database(db_path: Optional[str] = None) -> Database:
    """Open a database handle at db_path (settings.DATABASE_PATH by default)."""
    db = Database(db_path or settings.DATABASE_PATH)
    await db.open()
    return db


def _migration_file(version: int) -> Path:
    matches = sorted(MIGRATIONS_DIR.glob(f"{version:03d}_*.sql"))
    if not matches:
        raise FileNotFoundError(f"Migration file not found for version {version} in {MIGRATIONS_DIR}")
    return matches[0]


def _split_statements(sql: str) -> Iterable[str]:
    """Split a migration script into statements, dropping comment lines."""
    lines = [line for line in sql.splitlines() if not line.strip().startswith("--")]
    for statement in "\n".join(lines).split(";"):
        statement = statement.strip()
        if statement:
            yield statement


async def _run_migrations(conn: aiosqlite.Connection) -> int:
    """
    Apply every migration newer than the stored schema version.

    The version is read and all pending migrations are applied inside one
    BEGIN IMMEDIATE transaction, so a second connection opening the same
    file waits for the first and then finds nothing left to do.
    Rows created before a version are not backfilled with its new columns.

    Returns:
        Schema version after migrating
    """
    await conn.execute("BEGIN IMMEDIATE")
    try:
        async with conn.execute("PRAGMA user_version") as cursor:
            row = await cursor.fetchone()
        current = row[0] if row else 0

        if current > SCHEMA_VERSION:
            raise StorageError(
                f"database schema version {current} is newer than supported version {SCHEMA_VERSION}"
            )

        for version in range(current + 1, SCHEMA_VERSION + 1):
            migration_file = _migration_file(version)
            with open(migration_file, "r", encoding="utf-8") as f:
                sql = f.read()

            logger.info("Upgrading schema %d -> %d (%s)", version - 1, version, migration_file.name)
            for statement in _split_statements(sql):
                await conn.execute(statement)
            await conn.execute(f"PRAGMA user_version = {version}")

        await conn.commit()
    except (aiosqlite.Error, OSError, StorageError):
        await conn.rollback()
        raise

    return max(current, SCHEMA_VERSION)

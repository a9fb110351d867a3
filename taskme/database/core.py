import aiosqlite
import asyncio
import json
import sqlite3
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional, Any, AsyncIterator, Union

from config import DB_PATH
from database.helpers import DatabaseError

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 2

# Each step upgrades from the version at its index to the next one.
_SCHEMA_STEPS = (
    """
    CREATE TABLE IF NOT EXISTS tasks (
        id TEXT PRIMARY KEY NOT NULL,
        title TEXT NOT NULL,
        duration TEXT NOT NULL,
        importance TEXT NOT NULL,
        category TEXT NOT NULL,
        start_time TEXT NOT NULL,
        created_at TEXT NOT NULL
    );
    CREATE TABLE IF NOT EXISTS settings (key TEXT PRIMARY KEY, value TEXT NOT NULL);
    CREATE TABLE IF NOT EXISTS alarms (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        task_id TEXT NOT NULL,
        ntype TEXT NOT NULL,
        trigger_at INTEGER NOT NULL,
        title TEXT NOT NULL,
        body TEXT NOT NULL,
        data TEXT NOT NULL DEFAULT '{}',
        state TEXT NOT NULL DEFAULT 'pending'
    );
    CREATE INDEX IF NOT EXISTS idx_tasks_created ON tasks(created_at);
    CREATE INDEX IF NOT EXISTS idx_alarms_due ON alarms(state, trigger_at);
    """,
    # Reminder tasks gained a repeat interval
    "ALTER TABLE tasks ADD COLUMN reminder_every_mins INTEGER;",
)


class DatabaseCore:
    """Async SQLite database with one persistent connection.

    Every statement goes through _get_connection(), which serializes access
    with an asyncio.Lock. The connection opens on first use and stays open
    until close().
    """

    def __init__(self, db_path: Union[Path, str, None] = None) -> None:
        self.db_path = Path(db_path) if db_path is not None else DB_PATH
        self._initialized = False
        self._init_lock: Optional[asyncio.Lock] = None
        self._conn: Optional[aiosqlite.Connection] = None
        self._conn_lock: Optional[asyncio.Lock] = None

    async def _ensure_connection(self) -> aiosqlite.Connection:
        if self._conn is not None:
            return self._conn
        try:
            conn = await aiosqlite.connect(self.db_path)
            conn.row_factory = aiosqlite.Row
            await conn.execute("PRAGMA journal_mode=WAL")
            await conn.execute("PRAGMA busy_timeout=5000")
        except (sqlite3.Error, OSError) as e:
            raise DatabaseError(f"Cannot open database at {self.db_path}: {e}") from e
        self._conn = conn
        return conn

    @asynccontextmanager
    async def _get_connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield the shared connection while holding the connection lock."""
        if self._conn_lock is None:
            self._conn_lock = asyncio.Lock()
        async with self._conn_lock:
            yield await self._ensure_connection()

    async def close(self) -> None:
        if self._conn is None:
            return
        try:
            await self._conn.close()
        except (sqlite3.Error, OSError) as e:
            logger.warning(f"Error closing database {self.db_path}: {e}")
        finally:
            self._conn = None
            self._initialized = False

    async def init_db(self) -> None:
        """Create or upgrade the schema. Safe to call more than once."""
        if self._init_lock is None:
            self._init_lock = asyncio.Lock()
        async with self._init_lock:
            if self._initialized:
                return
            async with self._get_connection() as conn:
                await self._upgrade_schema(conn)
            self._initialized = True

    async def _upgrade_schema(self, conn: aiosqlite.Connection) -> None:
        try:
            async with conn.execute("PRAGMA user_version") as cursor:
                version = (await cursor.fetchone())[0]
            for step in range(version, SCHEMA_VERSION):
                await conn.executescript(_SCHEMA_STEPS[step])
            if version != SCHEMA_VERSION:
                await conn.execute(f"PRAGMA user_version={SCHEMA_VERSION}")
                logger.info(f"Database schema upgraded from v{version} to v{SCHEMA_VERSION}")
            await conn.commit()
        except (sqlite3.Error, IndexError, TypeError) as e:
            logger.error(f"Error preparing database schema: {e}")
            raise DatabaseError(f"Failed to prepare schema: {e}") from e

    async def get_setting(self, key: str, default: Any = None) -> Any:
        """Read a JSON setting.

        A missing key or a value that is not valid JSON yields default.

        Raises:
            DatabaseError: If the settings table cannot be read.
        """
        try:
            async with self._get_connection() as conn:
                async with conn.execute("SELECT value FROM settings WHERE key=?", (key,)) as cursor:
                    row = await cursor.fetchone()
        except sqlite3.Error as e:
            logger.error(f"Error reading setting {key}: {e}")
            raise DatabaseError(f"Failed to read setting {key}: {e}") from e

        if row is None:
            return default
        try:
            return json.loads(row["value"])
        except ValueError as e:
            logger.warning(f"Setting {key} is not valid JSON, using default: {e}")
            return default

    async def set_setting(self, key: str, value: Any) -> None:
        try:
            encoded = json.dumps(value)
            async with self._get_connection() as conn:
                await conn.execute(
                    "INSERT OR REPLACE INTO settings (key,value) VALUES (?,?)",
                    (key, encoded),
                )
                await conn.commit()
        except (sqlite3.Error, ValueError, TypeError) as e:
            logger.error(f"Error writing setting {key}: {e}")
            raise DatabaseError(f"Failed to save setting {key}: {e}") from e

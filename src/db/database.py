# terminal-local SQLite store: catalog mirror, customers, pending sales, settings
import asyncio
import os.path
from contextlib import asynccontextmanager
from sqlite3 import Row

import aiosqlite

from utils.logger import get_logger

_logger = get_logger(__name__)

_DB_DIR = os.path.dirname(os.path.abspath(__file__))

DB_PATH = os.getenv("POS_DB_PATH", "data/pos.sqlite")
SCHEMA_SCRIPT = os.path.join(_DB_DIR, "schema.sql")
SEED_SCRIPT = os.path.join(_DB_DIR, "seed.sql")
# bump when schema.sql changes; stored in PRAGMA user_version
SCHEMA_VERSION = 1
# seconds a writer waits on a lock held by a catalog poll
BUSY_TIMEOUT = 5

_initialized = False
_init_lock = asyncio.Lock()


async def _run_script(conn: aiosqlite.Connection, path: str) -> None:
    _logger.info(f"Running {os.path.basename(path)}...")
    with open(path, "r", encoding="utf-8") as f:
        await conn.executescript(f.read())


async def _schema_version(conn: aiosqlite.Connection) -> int:
    cur = await conn.execute("PRAGMA user_version;")
    row = await cur.fetchone()
    await cur.close()
    return row[0]


async def _is_empty(conn: aiosqlite.Connection, table: str) -> bool:
    cur = await conn.execute(f"SELECT 1 FROM {table} LIMIT 1;")
    row = await cur.fetchone()
    await cur.close()
    return row is None


async def _migrate(conn: aiosqlite.Connection) -> None:
    """
    Create missing tables and, on a brand new store, load the demo catalog.
    Existing rows are never touched.
    """
    version = await _schema_version(conn)
    if version >= SCHEMA_VERSION:
        return
    _logger.info(f"Upgrading store schema {version} -> {SCHEMA_VERSION}")
    await _run_script(conn, SCHEMA_SCRIPT)
    if version == 0 and await _is_empty(conn, "employees"):
        await _run_script(conn, SEED_SCRIPT)
    await conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION};")
    await conn.commit()


@asynccontextmanager
async def connect() -> aiosqlite.Connection:
    """Async context manager yielding an aiosqlite connection.

    The first connection of the process brings the schema up to date.
    WAL mode lets catalog polls read while a sale is being written.
    """
    global _initialized
    db_dir = os.path.dirname(DB_PATH)
    if db_dir:
        os.makedirs(db_dir, exist_ok=True)
    conn = await aiosqlite.connect(DB_PATH, timeout=BUSY_TIMEOUT)
    conn.row_factory = Row

    try:
        if not _initialized:
            async with _init_lock:
                if not _initialized:
                    cur = await conn.execute("PRAGMA journal_mode = WAL;")
                    await cur.close()
                    await _migrate(conn)
                    _initialized = True
        yield conn
    finally:
        await conn.close()

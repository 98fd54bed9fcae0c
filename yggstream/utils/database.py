import asyncio
import os
import time
import uuid
from typing import Optional

from databases import Database

from yggstream.config.settings import settings
from yggstream.utils.logger import database_logger

# ===========================
# Database Instance
# ===========================
database = Database(settings.get_database_url())


# ===========================
# Dialect Helper
# ===========================
def is_sqlite(db: Database) -> bool:
    return db.url.dialect == "sqlite"


# ===========================
# Schema Creation
# ===========================
async def create_tables(db: Database):
    await db.execute(
        """CREATE TABLE IF NOT EXISTS metadata_cache (
               imdb_id TEXT PRIMARY KEY,
               media_type TEXT,
               title TEXT,
               french_title TEXT,
               created_at INTEGER
           )"""
    )
    await db.execute(
        """CREATE TABLE IF NOT EXISTS streams_cache (
               imdb_id TEXT NOT NULL,
               season TEXT NOT NULL,
               episode TEXT NOT NULL,
               streams_json TEXT NOT NULL,
               created_at INTEGER,
               PRIMARY KEY (imdb_id, season, episode)
           )"""
    )
    await db.execute("CREATE TABLE IF NOT EXISTS request_lock (lock_key TEXT PRIMARY KEY, instance_id TEXT, expires_at INTEGER)")
    await db.execute("CREATE INDEX IF NOT EXISTS idx_request_lock_expires ON request_lock(expires_at)")


# ===========================
# Database Setup
# ===========================
async def setup_database(db: Database = database):
    try:
        database_logger.info(f"Setup {settings.DATABASE_TYPE} database")
        if settings.DATABASE_TYPE == "sqlite":
            os.makedirs(os.path.dirname(settings.DATABASE_PATH), exist_ok=True)
            if not os.path.exists(settings.DATABASE_PATH):
                open(settings.DATABASE_PATH, "a").close()

        await db.connect()
        database_logger.info("Connected")

        await db.execute("CREATE TABLE IF NOT EXISTS db_version (id INTEGER PRIMARY KEY CHECK (id = 1), version TEXT)")
        current_version = await db.fetch_val("SELECT version FROM db_version WHERE id = 1")

        if current_version != settings.DATABASE_VERSION:
            database_logger.info(f"Schema version {current_version} -> {settings.DATABASE_VERSION}")
            if is_sqlite(db):
                await db.execute("DROP TABLE IF EXISTS request_lock")
                await db.execute("DROP TABLE IF EXISTS streams_cache")
                await db.execute("DROP TABLE IF EXISTS metadata_cache")
                await db.execute("INSERT OR REPLACE INTO db_version VALUES (1, :version)", {"version": settings.DATABASE_VERSION})
            else:
                await db.execute("DROP TABLE IF EXISTS request_lock CASCADE")
                await db.execute("DROP TABLE IF EXISTS streams_cache CASCADE")
                await db.execute("DROP TABLE IF EXISTS metadata_cache CASCADE")
                await db.execute(
                    "INSERT INTO db_version VALUES (1, :version) ON CONFLICT (id) DO UPDATE SET version = :version",
                    {"version": settings.DATABASE_VERSION}
                )

        await create_tables(db)

        if is_sqlite(db):
            await db.execute("PRAGMA busy_timeout=30000")
            await db.execute("PRAGMA journal_mode=WAL")
            await db.execute("PRAGMA synchronous=NORMAL")
            await db.execute("PRAGMA temp_store=MEMORY")

        database_logger.info("Setup completed")

    except Exception as e:
        database_logger.error(f"Setup failed: {type(e).__name__}")
        raise


# ===========================
# Cleanup Expired Locks
# ===========================
async def cleanup_expired_locks(db: Database = database):
    while True:
        try:
            deleted_locks = await db.execute(
                "DELETE FROM request_lock WHERE expires_at < :current_time",
                {"current_time": int(time.time())}
            )
            if deleted_locks:
                database_logger.debug(f"Cleanup: {deleted_locks} locks")

        except Exception as e:
            database_logger.error(f"Cleanup error: {type(e).__name__}")

        await asyncio.sleep(settings.CLEANUP_INTERVAL)


# ===========================
# Lock Acquisition
# ===========================
async def acquire_lock(db: Database, lock_key: str, instance_id: str, duration: int) -> bool:
    try:
        current_time = int(time.time())
        expires_at = current_time + duration

        await db.execute(
            "DELETE FROM request_lock WHERE expires_at < :current_time",
            {"current_time": current_time}
        )

        if is_sqlite(db):
            query = "INSERT OR IGNORE INTO request_lock (lock_key, instance_id, expires_at) VALUES (:lock_key, :instance_id, :expires_at)"
        else:
            query = """INSERT INTO request_lock (lock_key, instance_id, expires_at)
                       VALUES (:lock_key, :instance_id, :expires_at) ON CONFLICT (lock_key) DO NOTHING"""

        await db.execute(query, {
            "lock_key": lock_key,
            "instance_id": instance_id,
            "expires_at": expires_at
        })

        existing_lock = await db.fetch_one(
            "SELECT instance_id FROM request_lock WHERE lock_key = :lock_key",
            {"lock_key": lock_key}
        )

        return existing_lock is not None and existing_lock["instance_id"] == instance_id

    except Exception as e:
        database_logger.error(f"Lock attempt failed: {type(e).__name__}")
        return False


# ===========================
# Lock Release
# ===========================
async def release_lock(db: Database, lock_key: str, instance_id: str):
    try:
        await db.execute(
            "DELETE FROM request_lock WHERE lock_key = :lock_key AND instance_id = :instance_id",
            {"lock_key": lock_key, "instance_id": instance_id}
        )
    except Exception as e:
        database_logger.error(f"Failed to release lock: {type(e).__name__}")


# ===========================
# Request Lock Context Manager
# ===========================
class RequestLock:
    """Serializes the compute-then-store sequence of one stream cache key.

    Holders of the same key wait for each other, across processes sharing the
    database. On timeout the caller proceeds unlocked.
    """

    def __init__(self, db: Database, imdb_id: str, season: Optional[str] = None,
                 episode: Optional[str] = None, timeout: Optional[int] = None,
                 retry_interval: float = 1.0):
        self.db = db
        self.lock_key = f"streams:{imdb_id}:{season or ''}:{episode or ''}"
        self.instance_id = f"{uuid.uuid4()}_{os.getpid()}"
        self.duration = settings.REQUEST_LOCK_TTL
        self.timeout = timeout if timeout is not None else settings.REQUEST_LOCK_TIMEOUT
        self.retry_interval = retry_interval
        self.acquired = False

    async def __aenter__(self):
        start_time = time.time()
        attempt = 0

        while time.time() - start_time < self.timeout:
            attempt += 1
            self.acquired = await acquire_lock(self.db, self.lock_key, self.instance_id, self.duration)

            if self.acquired:
                elapsed_ms = int((time.time() - start_time) * 1000)
                database_logger.debug(f"Lock acquired: {self.lock_key} ({elapsed_ms}ms, attempt {attempt})")
                return self

            database_logger.debug(f"Lock busy: {self.lock_key} (retry in {self.retry_interval}s)")
            await asyncio.sleep(self.retry_interval)

        elapsed_ms = int((time.time() - start_time) * 1000)
        database_logger.warning(f"Lock timeout: {self.lock_key} ({elapsed_ms}ms, {attempt} attempts)")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.acquired:
            await release_lock(self.db, self.lock_key, self.instance_id)
            database_logger.debug(f"Lock released: {self.lock_key}")


# ===========================
# Database Teardown
# ===========================
async def teardown_database(db: Database = database):
    try:
        await db.disconnect()
        database_logger.info("Disconnected")
    except Exception as e:
        database_logger.error(f"Failed to disconnect: {type(e).__name__}")

import json
import time
from typing import Optional, List

from databases import Database
from pydantic import ValidationError

from yggstream.core.errors import CacheError
from yggstream.core.models import CatalogInfo, StreamEntry
from yggstream.utils.database import is_sqlite
from yggstream.utils.logger import cache_logger

# ===========================
# Key Constants
# ===========================
# Stored in place of NULL season/episode: primary key columns cannot hold NULL
# on every backend. Never visible outside this module.
NULL_KEY_PART = ""


def _key_part(value: Optional[str]) -> str:
    return NULL_KEY_PART if value is None else str(value)


def _label(imdb_id: str, season: Optional[str], episode: Optional[str]) -> str:
    return f"{imdb_id} S{season or ''}E{episode or ''}"


# ===========================
# Cache Store Class
# ===========================
class CacheStore:

    def __init__(self, db: Database):
        self.database = db

    # ===========================
    # Metadata Cache
    # ===========================
    async def get_metadata(self, imdb_id: str) -> Optional[CatalogInfo]:
        try:
            row = await self.database.fetch_one(
                "SELECT media_type, title, french_title FROM metadata_cache WHERE imdb_id = :imdb_id",
                {"imdb_id": imdb_id}
            )
        except Exception as e:
            cache_logger.error(f"Metadata read failed: {type(e).__name__}")
            raise CacheError(f"Metadata read failed for {imdb_id}") from e

        if not row:
            cache_logger.debug(f"Metadata miss: {imdb_id}")
            return None

        cache_logger.debug(f"Metadata hit: {imdb_id}")
        return CatalogInfo(title=row["title"], french_title=row["french_title"], media_type=row["media_type"])

    async def put_metadata(self, imdb_id: str, info: CatalogInfo):
        if is_sqlite(self.database):
            query = """INSERT OR REPLACE INTO metadata_cache (imdb_id, media_type, title, french_title, created_at)
                       VALUES (:imdb_id, :media_type, :title, :french_title, :created_at)"""
        else:
            query = """INSERT INTO metadata_cache (imdb_id, media_type, title, french_title, created_at)
                       VALUES (:imdb_id, :media_type, :title, :french_title, :created_at)
                       ON CONFLICT (imdb_id) DO UPDATE
                       SET media_type = :media_type, title = :title, french_title = :french_title, created_at = :created_at"""

        try:
            await self.database.execute(query, {
                "imdb_id": imdb_id,
                "media_type": info.media_type.value,
                "title": info.title,
                "french_title": info.french_title,
                "created_at": int(time.time())
            })
        except Exception as e:
            cache_logger.error(f"Metadata save failed: {type(e).__name__}")
            raise CacheError(f"Metadata save failed for {imdb_id}") from e

        cache_logger.debug(f"Metadata saved: {imdb_id} ({info.title})")

    # ===========================
    # Streams Cache
    # ===========================
    async def get_streams(self, imdb_id: str, season: Optional[str] = None,
                          episode: Optional[str] = None) -> Optional[List[StreamEntry]]:
        try:
            row = await self.database.fetch_one(
                """SELECT streams_json FROM streams_cache
                   WHERE imdb_id = :imdb_id AND season = :season AND episode = :episode""",
                {"imdb_id": imdb_id, "season": _key_part(season), "episode": _key_part(episode)}
            )
        except Exception as e:
            cache_logger.error(f"Streams read failed: {type(e).__name__}")
            raise CacheError(f"Streams read failed for {_label(imdb_id, season, episode)}") from e

        if not row or not row["streams_json"]:
            cache_logger.debug(f"Miss: {_label(imdb_id, season, episode)}")
            return None

        try:
            streams = [StreamEntry.model_validate(item) for item in json.loads(row["streams_json"])]
        except (json.JSONDecodeError, TypeError, ValidationError) as e:
            cache_logger.error(f"Corrupted cache: {type(e).__name__}")
            return None

        cache_logger.debug(f"Hit: {_label(imdb_id, season, episode)} - {len(streams)} streams")
        return streams

    async def put_streams(self, imdb_id: str, season: Optional[str], episode: Optional[str],
                          streams: List[StreamEntry]):
        content = json.dumps([stream.model_dump() for stream in streams])

        if is_sqlite(self.database):
            query = """INSERT OR REPLACE INTO streams_cache (imdb_id, season, episode, streams_json, created_at)
                       VALUES (:imdb_id, :season, :episode, :streams_json, :created_at)"""
        else:
            query = """INSERT INTO streams_cache (imdb_id, season, episode, streams_json, created_at)
                       VALUES (:imdb_id, :season, :episode, :streams_json, :created_at)
                       ON CONFLICT (imdb_id, season, episode) DO UPDATE
                       SET streams_json = :streams_json, created_at = :created_at"""

        try:
            await self.database.execute(query, {
                "imdb_id": imdb_id,
                "season": _key_part(season),
                "episode": _key_part(episode),
                "streams_json": content,
                "created_at": int(time.time())
            })
        except Exception as e:
            cache_logger.error(f"Streams save failed: {type(e).__name__}")
            raise CacheError(f"Streams save failed for {_label(imdb_id, season, episode)}") from e

        cache_logger.debug(f"Saved: {_label(imdb_id, season, episode)} - {len(streams)} streams")

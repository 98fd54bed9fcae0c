from typing import List

from yggstream.config.settings import settings
from yggstream.core.models import CandidateTorrent, MediaType, UserConfig
from yggstream.scrapers.base import BaseTorrentSource
from yggstream.utils.http_client import http_client
from yggstream.utils.logger import scraper_logger


# ===========================
# Sharewood Source Class
# ===========================
class SharewoodSource(BaseTorrentSource):

    name = "Sharewood"

    def is_enabled(self, config: UserConfig) -> bool:
        return bool(config.SHAREWOOD_PASSKEY)

    async def fetch_torrents(self, query: str, media_type: MediaType, config: UserConfig) -> List[CandidateTorrent]:
        subcategory = (
            settings.SHAREWOOD_SERIES_SUBCATEGORY if media_type == MediaType.series
            else settings.SHAREWOOD_MOVIE_SUBCATEGORY
        )
        params = {"name": query, "category": 1, "subcategory": subcategory}

        data = await http_client.get_json(
            self.name, f"{settings.SHAREWOOD_API_URL}/{config.SHAREWOOD_PASSKEY}/search", params=params
        )
        if not isinstance(data, list):
            scraper_logger.error(f"[{self.name}] Unexpected search payload: {type(data).__name__}")
            return []

        torrents = []
        for item in data:
            if not isinstance(item, dict) or not item.get("name"):
                continue
            torrent = self.to_candidate(
                item,
                title=item["name"],
                id=item.get("id"),
                hash=item.get("info_hash"),
                size=item.get("size"),
            )
            if torrent:
                torrents.append(torrent)

        scraper_logger.debug(f"[{self.name}] '{query}': {len(torrents)} results")
        return torrents


# ===========================
# Singleton Instance
# ===========================
sharewood_source = SharewoodSource()

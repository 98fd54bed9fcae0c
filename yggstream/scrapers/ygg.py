from typing import List, Optional

from yggstream.config.settings import settings
from yggstream.core.models import CandidateTorrent, MediaType, UserConfig
from yggstream.scrapers.base import BaseTorrentSource
from yggstream.utils.http_client import http_client
from yggstream.utils.logger import scraper_logger


# ===========================
# YggTorrent Source Class
# ===========================
class YggSource(BaseTorrentSource):
    """YggTorrent through the public yggapi.eu JSON API.

    Search results carry no info hash; it is fetched per torrent id on demand.
    """

    name = "YggTorrent"
    searches_french_title = True

    async def fetch_torrents(self, query: str, media_type: MediaType, config: UserConfig) -> List[CandidateTorrent]:
        category = settings.YGG_SERIES_CATEGORY if media_type == MediaType.series else settings.YGG_MOVIE_CATEGORY
        params = {
            "q": query,
            "category_id": category,
            "per_page": settings.YGG_MAX_RESULTS,
            "order_by": "seeders",
        }

        data = await http_client.get_json(self.name, f"{settings.YGG_API_URL}/torrents", params=params)
        if not isinstance(data, list):
            scraper_logger.error(f"[{self.name}] Unexpected search payload: {type(data).__name__}")
            return []

        torrents = []
        for item in data:
            if not isinstance(item, dict) or not item.get("title"):
                continue
            torrent = self.to_candidate(
                item,
                title=item["title"],
                id=item.get("id"),
                hash=item.get("hash"),
                size=item.get("size"),
            )
            if torrent:
                torrents.append(torrent)

        scraper_logger.debug(f"[{self.name}] '{query}': {len(torrents)} results")
        return torrents

    async def resolve_hash(self, source_id: str) -> Optional[str]:
        data = await http_client.get_json(self.name, f"{settings.YGG_API_URL}/torrent/{source_id}")
        torrent_hash = data.get("hash") if isinstance(data, dict) else None

        if not torrent_hash:
            scraper_logger.debug(f"[{self.name}] No hash for torrent {source_id}")
            return None

        return torrent_hash


# ===========================
# Singleton Instance
# ===========================
ygg_source = YggSource()

import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from yggstream.core.models import CandidateTorrent, MediaType, SourceResults, UserConfig
from yggstream.utils.logger import scraper_logger

# ===========================
# Title Patterns
# ===========================
SEASON_EPISODE_PATTERN = re.compile(r"\bS(\d{1,2})[ .]?E(\d{1,3})", re.IGNORECASE)
SEASON_RANGE_PATTERN = re.compile(r"\bS(\d{1,2})\s*(?:-|à|a)\s*S?(\d{1,2})\b", re.IGNORECASE)
SEASON_PATTERN = re.compile(r"\b(?:S|Saison\s*)(\d{1,2})\b", re.IGNORECASE)
COMPLETE_PATTERN = re.compile(r"\b(?:COMPLETE|INT[ÉE]GRALE)\b", re.IGNORECASE)


# ===========================
# Title Classification
# ===========================
def classify_title(title: str, media_type: MediaType, season: Optional[str] = None) -> Optional[str]:
    """Return the granularity bucket of a torrent title, or None to drop it.

    Season packs of another season and season ranges not covering the
    requested season are dropped.
    """
    if media_type == MediaType.movie:
        return "movie_torrents"

    if SEASON_EPISODE_PATTERN.search(title):
        return "episode_torrents"

    requested = int(season) if season and season.isdigit() else None

    season_range = SEASON_RANGE_PATTERN.search(title)
    if season_range:
        first, last = int(season_range.group(1)), int(season_range.group(2))
        if requested is None or first <= requested <= last:
            return "complete_series_torrents"
        return None

    season_match = SEASON_PATTERN.search(title)
    if season_match:
        if requested is None or int(season_match.group(1)) == requested:
            return "complete_season_torrents"
        return None

    if COMPLETE_PATTERN.search(title):
        return "complete_series_torrents"

    return None


# ===========================
# Base Torrent Source Class
# ===========================
class BaseTorrentSource(ABC):

    name: str = "Unknown"
    searches_french_title: bool = False

    @abstractmethod
    async def fetch_torrents(self, query: str, media_type: MediaType, config: UserConfig) -> List[CandidateTorrent]:
        pass

    async def resolve_hash(self, source_id: str) -> Optional[str]:
        return None

    def is_enabled(self, config: UserConfig) -> bool:
        return True

    def to_candidate(self, item: Dict[str, Any], **fields) -> Optional[CandidateTorrent]:
        try:
            return CandidateTorrent(source=self.name, **fields)
        except ValidationError as e:
            scraper_logger.debug(f"[{self.name}] Invalid result skipped ({e.error_count()} errors): {item.get('id')}")
            return None

    async def search(self, title: str, media_type: MediaType, season: Optional[str] = None,
                     episode: Optional[str] = None, config: Optional[UserConfig] = None,
                     french_title: Optional[str] = None) -> SourceResults:
        results = SourceResults()

        if config is not None and not self.is_enabled(config):
            scraper_logger.debug(f"[{self.name}] Disabled for this configuration")
            return results

        queries = [title]
        if self.searches_french_title and french_title and french_title.lower() != title.lower():
            queries.append(french_title)

        seen = set()
        for query in queries:
            scraper_logger.debug(f"[{self.name}] Searching {media_type.value}: '{query}'")
            for torrent in await self.fetch_torrents(query, media_type, config):
                torrent_key = torrent.id or torrent.hash or torrent.title
                if torrent_key in seen:
                    continue
                seen.add(torrent_key)

                bucket = classify_title(torrent.title, media_type, season)
                if bucket:
                    getattr(results, bucket).append(torrent)

        scraper_logger.info(f"[{self.name}] Found {results.total()} torrents for \"{title}\"")
        return results

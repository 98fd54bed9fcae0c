import asyncio
from typing import List, Optional

from yggstream.core.errors import AdapterError
from yggstream.core.events import EventBus, event_bus
from yggstream.core.models import (
    CandidateTorrent, CatalogInfo, MediaRequest, MediaType, SourceResults,
    StreamEntry, StreamResponse, UserConfig
)
from yggstream.debrid.alldebrid import alldebrid_service
from yggstream.debrid.base import BaseDebridService
from yggstream.scrapers.base import BaseTorrentSource
from yggstream.scrapers.sharewood import sharewood_source
from yggstream.scrapers.ygg import ygg_source
from yggstream.services.aggregator import build_candidates, is_empty, merge_results
from yggstream.services.resolver import LinkResolver, resolve_hashes
from yggstream.services.tmdb import TMDBService, tmdb_service
from yggstream.utils.cache import CacheStore
from yggstream.utils.database import RequestLock, database
from yggstream.utils.validators import parse_media_id


# ===========================
# Stream Service Class
# ===========================
class StreamService:
    """Turns one Stremio stream request into cached, unlocked streams.

    Steps: cache check, catalog lookup, source search, merge and
    classification, hash resolution, debrid upload, ready filtering, link
    resolution. Every step that finds nothing ends the request with an empty
    stream list.
    """

    def __init__(self, cache: CacheStore, catalog: TMDBService, sources: List[BaseTorrentSource],
                 debrid: BaseDebridService, events: EventBus = event_bus):
        self.cache = cache
        self.catalog = catalog
        self.sources = sources
        self.debrid = debrid
        self.events = events
        self.resolver = LinkResolver(cache, debrid, events)
        self._sources_by_name = {source.name: source for source in sources}

    async def handle_stream_request(self, media_id: str, media_type: MediaType,
                                    config: UserConfig) -> StreamResponse:
        request = parse_media_id(media_id, media_type)
        self.events.emit("request_received", f"Stream request received for ID: {media_id}", level="INFO")

        cached = await self.cache.get_streams(request.imdb_id, request.season, request.episode)
        if cached is not None:
            self.events.emit("cache_hit", f"Stream found in cache for {request.label}", level="INFO", context="CACHE")
            return StreamResponse(streams=cached)

        async with RequestLock(self.cache.database, request.imdb_id, request.season, request.episode):
            cached = await self.cache.get_streams(request.imdb_id, request.season, request.episode)
            if cached is not None:
                self.events.emit("cache_hit", f"Stream cached meanwhile for {request.label}", level="INFO", context="CACHE")
                return StreamResponse(streams=cached)

            streams = await self._resolve_streams(request, config)

        return StreamResponse(streams=streams)

    async def _resolve_streams(self, request: MediaRequest, config: UserConfig) -> List[StreamEntry]:
        catalog = await self._get_catalog(request.imdb_id, config)
        if not catalog:
            self.events.emit("catalog_missing", f"Unable to retrieve TMDB info for {request.imdb_id}",
                             level="WARNING", context="METADATA")
            return []

        merged = await self._search_sources(request, catalog, config)
        if merged is None or is_empty(merged):
            self.events.emit("no_torrents", "No torrents found for the requested content.", level="WARNING")
            return []

        candidates = build_candidates(merged, request, config.FILES_TO_SHOW, self.events)

        magnets = await resolve_hashes(candidates, self._lookup_hash, self.events)
        if not magnets:
            self.events.emit("no_magnets", "No magnets available for upload.", level="WARNING")
            return []

        try:
            statuses = await self.debrid.upload_batch(magnets, config)
        except AdapterError as e:
            self.events.emit("upload_failed", f"Upload failed: {e}", level="ERROR", context="DEBRID")
            return []

        ready_torrents = [status for status in statuses if status.ready]
        self.events.emit("ready_torrents", f"{len(ready_torrents)} ready torrents found.",
                         level="INFO", context="DEBRID", count=len(ready_torrents))
        if not ready_torrents:
            return []

        return await self.resolver.resolve(request, catalog, ready_torrents, config)

    async def _get_catalog(self, imdb_id: str, config: UserConfig) -> Optional[CatalogInfo]:
        catalog = await self.cache.get_metadata(imdb_id)
        if catalog:
            return catalog

        try:
            catalog = await self.catalog.fetch_catalog_info(imdb_id, config)
        except AdapterError as e:
            self.events.emit("catalog_failed", f"Catalog lookup failed: {e}", level="ERROR", context="METADATA")
            return None

        if catalog:
            await self.cache.put_metadata(imdb_id, catalog)
        return catalog

    async def _search_sources(self, request: MediaRequest, catalog: CatalogInfo,
                              config: UserConfig) -> Optional[SourceResults]:
        tasks = [
            source.search(
                catalog.title, request.media_type, request.season, request.episode,
                config, catalog.french_title
            )
            for source in self.sources
        ]
        results_list = await asyncio.gather(*tasks, return_exceptions=True)

        collected = []
        for source, result in zip(self.sources, results_list):
            if isinstance(result, Exception):
                self.events.emit("source_failed", f"{source.name} search failed: {result}",
                                 level="ERROR", context="SCRAPER", source=source.name)
                continue

            self.events.emit("source_results", f"Found {result.total()} torrents on {source.name} for \"{catalog.title}\".",
                             level="INFO", context="SCRAPER", source=source.name, count=result.total())
            collected.append(result)

        if not collected:
            self.events.emit("sources_failed", "Every torrent source failed.", level="ERROR", context="SCRAPER")
            return None

        return merge_results(collected)

    async def _lookup_hash(self, torrent: CandidateTorrent) -> Optional[str]:
        source = self._sources_by_name.get(torrent.source)
        if source is None:
            return None
        return await source.resolve_hash(torrent.id)


# ===========================
# Singleton Instance
# ===========================
stream_service = StreamService(
    cache=CacheStore(database),
    catalog=tmdb_service,
    sources=[ygg_source, sharewood_source],
    debrid=alldebrid_service
)

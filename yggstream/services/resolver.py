import re
from typing import Awaitable, Callable, List, NamedTuple, Optional

from yggstream.core.errors import AdapterError
from yggstream.core.events import EventBus, event_bus
from yggstream.core.models import (
    CandidateTorrent, CatalogInfo, Magnet, MediaRequest, MediaType,
    StreamEntry, UploadStatus, UserConfig, VideoFile
)
from yggstream.debrid.base import BaseDebridService
from yggstream.utils.cache import CacheStore
from yggstream.utils.parser import format_size, parse_file_name

# ===========================
# Episode Detection
# ===========================
EPISODE_PATTERN = re.compile(r"s(\d{2})e(\d{2})", re.IGNORECASE)


class EpisodeMatch(NamedTuple):
    season: str
    episode: str


def detect_episode(file_name: str) -> Optional[EpisodeMatch]:
    match = EPISODE_PATTERN.search(file_name or "")
    if not match:
        return None
    return EpisodeMatch(season=match.group(1), episode=match.group(2))


# ===========================
# Hash Resolution
# ===========================
HashLookup = Callable[[CandidateTorrent], Awaitable[Optional[str]]]


async def resolve_hashes(candidates: List[CandidateTorrent], hash_lookup: HashLookup,
                         events: EventBus = event_bus) -> List[Magnet]:
    """Give every candidate an info hash, in order.

    Candidates that already carry one never trigger a lookup; candidates whose
    lookup fails are dropped.
    """
    magnets = []

    for torrent in candidates:
        torrent_hash = torrent.hash

        if not torrent_hash and torrent.id:
            try:
                torrent_hash = await hash_lookup(torrent)
            except AdapterError as e:
                events.emit("hash_lookup_failed", f"Hash lookup failed for {torrent.title}: {e}",
                            level="WARNING", context="SCRAPER", title=torrent.title)
                torrent_hash = None

        if not torrent_hash:
            events.emit("hash_missing", f"Skipping torrent: {torrent.title} (no hash found)",
                        level="WARNING", title=torrent.title)
            continue

        magnets.append(Magnet(hash=torrent_hash.lower(), title=torrent.title, source=torrent.source))

    events.emit("hashes_resolved", f"Processed {len(magnets)} torrents (from {len(candidates)} candidates)",
                level="INFO", count=len(magnets))
    return magnets


# ===========================
# Link Resolver Class
# ===========================
class LinkResolver:

    def __init__(self, cache: CacheStore, debrid: BaseDebridService, events: EventBus = event_bus):
        self.cache = cache
        self.debrid = debrid
        self.events = events

    def build_stream(self, torrent: UploadStatus, file: VideoFile, catalog: CatalogInfo, url: str) -> StreamEntry:
        info = parse_file_name(file.name)
        return StreamEntry(
            name=f"❤️ {torrent.source} + {self.debrid.abbreviation} | 🖥️ {info.resolution} | 🎞️ {info.codec}",
            title=f"{catalog.title}\n{file.name}\n🎬 {info.source} | 💾 {format_size(file.size)}",
            url=url
        )

    async def _list_files(self, torrent: UploadStatus, config: UserConfig) -> List[VideoFile]:
        try:
            return await self.debrid.list_files(torrent.id, torrent.source, config)
        except AdapterError as e:
            self.events.emit("files_failed", f"File listing failed for {torrent.hash}: {e}",
                             level="WARNING", context="DEBRID", hash=torrent.hash)
            return []

    async def _unlock(self, file: VideoFile, config: UserConfig) -> Optional[str]:
        try:
            return await self.debrid.unlock_link(file.link, config)
        except AdapterError as e:
            self.events.emit("unlock_failed", f"Unlock failed for {file.name}: {e}",
                             level="WARNING", context="DEBRID", file=file.name)
            return None

    async def _cached_or_unlocked(self, imdb_id: str, season: Optional[str], episode: Optional[str],
                                  torrent: UploadStatus, file: VideoFile, catalog: CatalogInfo,
                                  config: UserConfig) -> Optional[StreamEntry]:
        label = f"{imdb_id} S{season}E{episode}" if season is not None else f"{imdb_id} (movie)"

        cached = await self.cache.get_streams(imdb_id, season, episode)
        if cached:
            self.events.emit("stream_reused", f"Stream loaded from cache for {label}", context="CACHE")
            return cached[0]

        url = await self._unlock(file, config)
        if not url:
            self.events.emit("unlock_skipped", f"No unlocked link for {file.name}", file=file.name)
            return None

        stream = self.build_stream(torrent, file, catalog, url)
        await self.cache.put_streams(imdb_id, season, episode, [stream])
        self.events.emit("stream_cached", f"Stream cached for {label}", context="CACHE")
        return stream

    async def resolve(self, request: MediaRequest, catalog: CatalogInfo,
                      ready_torrents: List[UploadStatus], config: UserConfig) -> List[StreamEntry]:
        streams: List[StreamEntry] = []
        max_streams = config.FILES_TO_SHOW

        for torrent in ready_torrents:
            if len(streams) >= max_streams:
                self.events.emit("max_streams_reached",
                                 f"Reached the maximum number of streams ({max_streams}). Stopping.",
                                 level="INFO")
                break

            torrent_streams: List[StreamEntry] = []

            for file in await self._list_files(torrent, config):
                if request.media_type == MediaType.series:
                    # Files of sibling episodes are still unlocked and cached under their own slot.
                    detected = detect_episode(file.name)
                    if not detected:
                        continue

                    stream = await self._cached_or_unlocked(
                        request.imdb_id, detected.season, detected.episode, torrent, file, catalog, config
                    )
                    if stream is None:
                        continue

                    is_requested = (
                        detected.season == request.padded_season
                        and detected.episode == request.padded_episode
                    )
                    if is_requested and len(streams) + len(torrent_streams) < max_streams:
                        torrent_streams.append(stream)
                        self.events.emit("stream_added", f"Unlocked video: {file.name}", level="INFO")
                else:
                    stream = await self._cached_or_unlocked(
                        request.imdb_id, None, None, torrent, file, catalog, config
                    )
                    if stream is None:
                        continue

                    if len(streams) + len(torrent_streams) < max_streams:
                        torrent_streams.append(stream)
                        self.events.emit("stream_added", f"Unlocked video: {file.name}", level="INFO")

            streams.extend(torrent_streams)

            if not torrent_streams:
                self.events.emit("torrent_empty",
                                 f"No files matched the requested content for torrent {torrent.hash}",
                                 level="WARNING", hash=torrent.hash)

        if streams:
            await self.cache.put_streams(request.imdb_id, request.season, request.episode, streams)
            self.events.emit("streams_cached", f"Streams cached for {request.label}", level="INFO", context="CACHE")

        self.events.emit("streams_obtained", f"{len(streams)} stream(s) obtained", level="INFO", count=len(streams))
        return streams

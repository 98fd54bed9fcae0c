from typing import List, Optional, Sequence

from yggstream.core.events import EventBus, event_bus
from yggstream.core.models import CandidateTorrent, MediaRequest, MediaType, SourceResults

# ===========================
# Bucket Names
# ===========================
BUCKETS = (
    "complete_series_torrents",
    "complete_season_torrents",
    "episode_torrents",
    "movie_torrents",
)


# ===========================
# Results Merging
# ===========================
def merge_results(results: Sequence[SourceResults]) -> SourceResults:
    """Concatenate each bucket across sources, earlier sources first."""
    merged = SourceResults()
    for source_results in results:
        for bucket in BUCKETS:
            getattr(merged, bucket).extend(getattr(source_results, bucket))
    return merged


def is_empty(results: SourceResults) -> bool:
    return all(not getattr(results, bucket) for bucket in BUCKETS)


# ===========================
# Episode Title Matching
# ===========================
def episode_patterns(season: str, episode: str) -> List[str]:
    season_padded = str(season).zfill(2)
    episode_padded = str(episode).zfill(2)
    return [
        f"s{season_padded}e{episode_padded}",
        f"s{season_padded}.e{episode_padded}",
    ]


def matches_episode(title: str, season: Optional[str], episode: Optional[str]) -> bool:
    if not title or season is None or episode is None:
        return False

    title_lower = title.lower()
    return any(pattern in title_lower for pattern in episode_patterns(season, episode))


# ===========================
# Candidate Ordering
# ===========================
def build_candidates(merged: SourceResults, request: MediaRequest, files_to_show: int,
                     events: EventBus = event_bus) -> List[CandidateTorrent]:
    if request.media_type == MediaType.series:
        filtered_episodes = []
        for torrent in merged.episode_torrents:
            matches = matches_episode(torrent.title, request.season, request.episode)
            events.emit(
                "episode_checked",
                f"Episode torrent \"{torrent.title}\" matches S{request.season}E{request.episode}: {matches}",
                title=torrent.title, matches=matches
            )
            if matches:
                filtered_episodes.append(torrent)

        candidates = merged.complete_series_torrents + merged.complete_season_torrents + filtered_episodes
        events.emit(
            "candidates_ordered",
            f"Series candidates: {len(merged.complete_series_torrents)} complete series, "
            f"{len(merged.complete_season_torrents)} complete seasons, {len(filtered_episodes)} episodes",
            count=len(candidates)
        )
    else:
        candidates = list(merged.movie_torrents)
        events.emit("candidates_ordered", f"Movie candidates: {len(candidates)}", count=len(candidates))

    max_candidates = files_to_show * 2
    if len(candidates) > max_candidates:
        events.emit(
            "candidates_truncated",
            f"Candidates limited to {max_candidates} (from {len(candidates)})",
            limit=max_candidates, count=len(candidates)
        )
    return candidates[:max_candidates]

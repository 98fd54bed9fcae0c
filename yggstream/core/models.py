from enum import Enum
from typing import List, Optional, NamedTuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from yggstream.config.settings import settings


# ===========================
# Media Type Enum
# ===========================
class MediaType(str, Enum):
    movie = "movie"
    series = "series"


# ===========================
# Request Models
# ===========================
class MediaRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    imdb_id: str
    season: Optional[str] = None
    episode: Optional[str] = None
    media_type: MediaType

    @property
    def padded_season(self) -> Optional[str]:
        return self.season.zfill(2) if self.season is not None else None

    @property
    def padded_episode(self) -> Optional[str]:
        return self.episode.zfill(2) if self.episode is not None else None

    @property
    def label(self) -> str:
        return f"{self.imdb_id} S{self.season or ''}E{self.episode or ''}"


class UserConfig(BaseModel):
    """Per-user settings carried base64-encoded in the addon URL."""

    model_config = ConfigDict(extra="ignore")

    TMDB_API_KEY: str = Field(min_length=1)
    ALLDEBRID_API_KEY: str = Field(min_length=1)
    SHAREWOOD_PASSKEY: Optional[str] = None
    FILES_TO_SHOW: int = Field(default_factory=lambda: settings.DEFAULT_FILES_TO_SHOW, ge=1)

    @field_validator("TMDB_API_KEY", "ALLDEBRID_API_KEY", "SHAREWOOD_PASSKEY", mode="before")
    @classmethod
    def strip_keys(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v


# ===========================
# Catalog Models
# ===========================
class CatalogInfo(BaseModel):
    title: str
    french_title: Optional[str] = None
    media_type: MediaType


# ===========================
# Torrent Models
# ===========================
class CandidateTorrent(BaseModel):
    title: str
    hash: Optional[str] = None
    id: Optional[str] = None
    source: str = "Unknown"
    size: Optional[int] = None

    @field_validator("hash", mode="before")
    @classmethod
    def normalize_hash(cls, v):
        if isinstance(v, str):
            v = v.strip().lower()
            return v or None
        return v

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, v):
        if isinstance(v, int):
            return str(v)
        return v

    @field_validator("size", mode="before")
    @classmethod
    def coerce_size(cls, v):
        if isinstance(v, bool):
            return None
        if isinstance(v, (int, float)):
            return int(v)
        if isinstance(v, str) and v.isdigit():
            return int(v)
        return None


class SourceResults(BaseModel):
    complete_series_torrents: List[CandidateTorrent] = Field(default_factory=list)
    complete_season_torrents: List[CandidateTorrent] = Field(default_factory=list)
    episode_torrents: List[CandidateTorrent] = Field(default_factory=list)
    movie_torrents: List[CandidateTorrent] = Field(default_factory=list)

    def total(self) -> int:
        return (
            len(self.complete_series_torrents)
            + len(self.complete_season_torrents)
            + len(self.episode_torrents)
            + len(self.movie_torrents)
        )


class Magnet(BaseModel):
    hash: str
    title: str
    source: str = "Unknown"


# ===========================
# Debrid Models
# ===========================
class UploadStatus(BaseModel):
    hash: str
    id: str
    name: str
    source: str = "Unknown"
    ready: bool = False

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, v):
        if isinstance(v, int):
            return str(v)
        return v


class VideoFile(BaseModel):
    name: str
    link: str
    size: Optional[int] = None


# ===========================
# Stream Models
# ===========================
class FileInfo(NamedTuple):
    resolution: str
    codec: str
    source: str


class StreamEntry(BaseModel):
    name: str
    title: str
    url: str


class StreamResponse(BaseModel):
    streams: List[StreamEntry] = Field(default_factory=list)

from typing import Dict, Iterable, List, Optional

import pytest
from databases import Database

from yggstream.core.events import EventBus, EventRecorder
from yggstream.core.models import (
    CatalogInfo, MediaType, SourceResults, UploadStatus, UserConfig, VideoFile
)
from yggstream.debrid.base import BaseDebridService
from yggstream.scrapers.base import BaseTorrentSource
from yggstream.utils.cache import CacheStore
from yggstream.utils.database import create_tables


# ===========================
# Fake Collaborators
# ===========================
class FakeSource(BaseTorrentSource):

    def __init__(self, name: str, results: Optional[SourceResults] = None,
                 hashes: Optional[Dict[str, str]] = None, error: Optional[Exception] = None):
        self.name = name
        self.results = results or SourceResults()
        self.hashes = hashes or {}
        self.error = error
        self.search_calls = 0
        self.hash_calls: List[str] = []

    async def fetch_torrents(self, query, media_type, config):
        return []

    async def search(self, title, media_type, season=None, episode=None, config=None, french_title=None):
        self.search_calls += 1
        if self.error:
            raise self.error
        return self.results

    async def resolve_hash(self, source_id):
        self.hash_calls.append(source_id)
        return self.hashes.get(source_id)


class FakeDebrid(BaseDebridService):

    def __init__(self, files: Optional[Dict[str, List[VideoFile]]] = None,
                 failed_links: Iterable[str] = (), not_ready: Iterable[str] = ()):
        self.files = files or {}
        self.failed_links = set(failed_links)
        self.not_ready = set(not_ready)
        self.upload_calls = []
        self.list_calls: List[str] = []
        self.unlock_calls: List[str] = []

    def get_service_name(self) -> str:
        return "AllDebrid"

    async def upload_batch(self, magnets, config):
        self.upload_calls.append(list(magnets))
        return [
            UploadStatus(hash=m.hash, id=f"id-{m.hash}", name=m.title, source=m.source,
                         ready=m.hash not in self.not_ready)
            for m in magnets
        ]

    async def list_files(self, upload_id, source, config):
        self.list_calls.append(upload_id)
        return self.files.get(upload_id, [])

    async def unlock_link(self, link, config):
        self.unlock_calls.append(link)
        if link in self.failed_links:
            return None
        return f"https://cdn.example/{link}"


class FakeCatalog:

    def __init__(self, info: Optional[CatalogInfo]):
        self.info = info
        self.calls = 0

    async def fetch_catalog_info(self, imdb_id, config):
        self.calls += 1
        return self.info


# ===========================
# Fixtures
# ===========================
@pytest.fixture
async def database(tmp_path):
    db = Database(f"sqlite:///{tmp_path / 'streams.db'}")
    await db.connect()
    await create_tables(db)
    yield db
    await db.disconnect()


@pytest.fixture
def cache(database):
    return CacheStore(database)


@pytest.fixture
def recorder():
    return EventRecorder()


@pytest.fixture
def events(recorder):
    bus = EventBus()
    bus.subscribe(recorder)
    return bus


@pytest.fixture
def config():
    return UserConfig(TMDB_API_KEY="tmdb-key", ALLDEBRID_API_KEY="ad-key", FILES_TO_SHOW=2)


@pytest.fixture
def series_catalog():
    return CatalogInfo(title="The Show", french_title="La Série", media_type=MediaType.series)


@pytest.fixture
def movie_catalog():
    return CatalogInfo(title="The Movie", french_title="Le Film", media_type=MediaType.movie)

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from yggstream.core.errors import AdapterError
from yggstream.core.models import Magnet
from yggstream.debrid.alldebrid import AllDebridService
from yggstream.utils.http_client import http_client


@pytest.fixture
def service():
    return AllDebridService()


def test_abbreviation(service):
    assert service.abbreviation == "AD"


async def test_upload_batch_maps_sources(service, config):
    payload = {"status": "success", "data": {"magnets": [
        {"magnet": "aaa", "hash": "AAA", "name": "Show S01", "id": 11, "ready": True},
        {"magnet": "bbb", "hash": "bbb", "name": "Show S01E02", "id": 12, "ready": False},
        {"magnet": "ccc", "error": {"code": "MAGNET_INVALID_ID"}},
    ]}}
    post = AsyncMock(return_value=httpx.Response(200, json=payload))
    magnets = [
        Magnet(hash="aaa", title="Show S01", source="YggTorrent"),
        Magnet(hash="bbb", title="Show S01E02", source="Sharewood"),
        Magnet(hash="ccc", title="Broken", source="YggTorrent"),
    ]

    with patch.object(http_client, "post", post):
        statuses = await service.upload_batch(magnets, config)

    assert [(s.hash, s.id, s.source, s.ready) for s in statuses] == [
        ("aaa", "11", "YggTorrent", True),
        ("bbb", "12", "Sharewood", False),
    ]
    assert post.await_args.kwargs["data"] == {"magnets[]": ["aaa", "bbb", "ccc"]}
    assert post.await_args.kwargs["params"]["apikey"] == "ad-key"


async def test_upload_error_payload_raises(service, config):
    post = AsyncMock(return_value=httpx.Response(200, json={"status": "error", "error": {"code": "AUTH_BAD_APIKEY"}}))

    with patch.object(http_client, "post", post):
        with pytest.raises(AdapterError):
            await service.upload_batch([Magnet(hash="aaa", title="A")], config)


async def test_list_files_keeps_video_links(service, config):
    payload = {"status": "success", "data": {"magnets": {"id": 11, "links": [
        {"filename": "Show.S01E01.mkv", "link": "https://alldebrid.com/f/1", "size": 100},
        {"filename": "Show.nfo", "link": "https://alldebrid.com/f/2", "size": 1},
        {"filename": "Show.S01E02.mp4", "link": "https://alldebrid.com/f/3", "size": 200},
    ]}}}
    get = AsyncMock(return_value=httpx.Response(200, json=payload))

    with patch.object(http_client, "get", get):
        files = await service.list_files("11", "YggTorrent", config)

    assert [(f.name, f.size) for f in files] == [("Show.S01E01.mkv", 100), ("Show.S01E02.mp4", 200)]


async def test_unlock_link(service, config):
    payload = {"status": "success", "data": {"link": "https://cdn.alldebrid.com/dl/1"}}
    get = AsyncMock(return_value=httpx.Response(200, json=payload))

    with patch.object(http_client, "get", get):
        assert await service.unlock_link("https://alldebrid.com/f/1", config) == "https://cdn.alldebrid.com/dl/1"


@pytest.mark.parametrize(
    "payload",
    [
        {"status": "error", "error": {"code": "LINK_DOWN"}},
        {"status": "success", "data": {"delayed": 42}},
    ],
)
async def test_unlock_link_unavailable(service, config, payload):
    get = AsyncMock(return_value=httpx.Response(200, json=payload))

    with patch.object(http_client, "get", get):
        assert await service.unlock_link("https://alldebrid.com/f/1", config) is None


async def test_transient_http_errors_are_retried(service, config):
    payload = {"status": "success", "data": {"link": "https://cdn.alldebrid.com/dl/1"}}
    get = AsyncMock(side_effect=[httpx.Response(503), httpx.Response(200, json=payload)])

    with patch.object(http_client, "get", get), patch("yggstream.debrid.base.sleep", AsyncMock()):
        assert await service.unlock_link("https://alldebrid.com/f/1", config) == "https://cdn.alldebrid.com/dl/1"

    assert get.await_count == 2


async def test_persistent_http_errors_raise(service, config):
    get = AsyncMock(return_value=httpx.Response(502))

    with patch.object(http_client, "get", get), patch("yggstream.debrid.base.sleep", AsyncMock()):
        with pytest.raises(AdapterError):
            await service.list_files("11", "YggTorrent", config)

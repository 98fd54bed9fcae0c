import asyncio

import pytest

from yggstream.core.errors import AdapterError, CacheError
from yggstream.core.models import CandidateTorrent, MediaType, SourceResults, VideoFile
from yggstream.services.stream import StreamService
from tests.conftest import FakeCatalog, FakeDebrid, FakeSource


def season_pack_source(name="YggTorrent", torrent_id="1", torrent_hash="aaa"):
    results = SourceResults(complete_season_torrents=[
        CandidateTorrent(title=f"The Show S01 FRENCH {name}", id=torrent_id, source=name)
    ])
    return FakeSource(name, results=results, hashes={torrent_id: torrent_hash})


def episode_file(name="The.Show.S01E02.1080p.mkv"):
    return VideoFile(name=name, link=f"https://alldebrid.example/{name}", size=2 * 1024 ** 3)


def make_service(cache, events, catalog, sources, debrid):
    return StreamService(cache=cache, catalog=catalog, sources=sources, debrid=debrid, events=events)


async def test_second_request_is_served_from_cache(cache, events, config, series_catalog):
    source = season_pack_source()
    catalog = FakeCatalog(series_catalog)
    debrid = FakeDebrid(files={"id-aaa": [episode_file()]})
    service = make_service(cache, events, catalog, [source], debrid)

    first = await service.handle_stream_request("tt1234567:1:2", MediaType.series, config)
    second = await service.handle_stream_request("tt1234567:1:2", MediaType.series, config)

    assert len(first.streams) == 1
    assert second == first
    assert source.search_calls == 1
    assert len(debrid.upload_calls) == 1
    assert catalog.calls == 1


async def test_catalog_info_is_cached(cache, events, config, series_catalog):
    service = make_service(cache, events, FakeCatalog(series_catalog), [FakeSource("YggTorrent")], FakeDebrid())

    await service.handle_stream_request("tt1234567:1:2", MediaType.series, config)

    assert await cache.get_metadata("tt1234567") == series_catalog


async def test_missing_catalog_returns_no_streams(cache, events, recorder, config):
    source = season_pack_source()
    service = make_service(cache, events, FakeCatalog(None), [source], FakeDebrid())

    response = await service.handle_stream_request("tt1234567:1:2", MediaType.series, config)

    assert response.streams == []
    assert source.search_calls == 0
    assert "catalog_missing" in recorder.names()


async def test_no_torrents_skips_upload(cache, events, config, series_catalog):
    debrid = FakeDebrid()
    sources = [FakeSource("YggTorrent"), FakeSource("Sharewood")]
    service = make_service(cache, events, FakeCatalog(series_catalog), sources, debrid)

    response = await service.handle_stream_request("tt1234567:1:2", MediaType.series, config)

    assert response.streams == []
    assert debrid.upload_calls == []


async def test_failing_source_does_not_hide_other_results(cache, events, recorder, config, series_catalog):
    broken = FakeSource("Sharewood", error=AdapterError("Sharewood", "HTTP 503"))
    debrid = FakeDebrid(files={"id-aaa": [episode_file()]})
    service = make_service(cache, events, FakeCatalog(series_catalog), [season_pack_source(), broken], debrid)

    response = await service.handle_stream_request("tt1234567:1:2", MediaType.series, config)

    assert len(response.streams) == 1
    assert "source_failed" in recorder.names()


async def test_every_source_failing_returns_no_streams(cache, events, config, series_catalog):
    sources = [
        FakeSource("YggTorrent", error=AdapterError("YggTorrent", "timeout")),
        FakeSource("Sharewood", error=AdapterError("Sharewood", "timeout")),
    ]
    debrid = FakeDebrid()
    service = make_service(cache, events, FakeCatalog(series_catalog), sources, debrid)

    response = await service.handle_stream_request("tt1234567:1:2", MediaType.series, config)

    assert response.streams == []
    assert debrid.upload_calls == []


async def test_unready_torrents_are_not_listed(cache, events, config, series_catalog):
    debrid = FakeDebrid(files={"id-aaa": [episode_file()]}, not_ready=["aaa"])
    service = make_service(cache, events, FakeCatalog(series_catalog), [season_pack_source()], debrid)

    response = await service.handle_stream_request("tt1234567:1:2", MediaType.series, config)

    assert response.streams == []
    assert debrid.list_calls == []


async def test_movie_with_known_hash_needs_no_lookup(cache, events, config, movie_catalog):
    source = FakeSource("Sharewood", results=SourceResults(movie_torrents=[
        CandidateTorrent(title="The.Movie.2021.1080p", id="9", hash="BBB", source="Sharewood")
    ]))
    debrid = FakeDebrid(files={"id-bbb": [VideoFile(name="The.Movie.2021.1080p.mkv", link="https://ad/1", size=10)]})
    service = make_service(cache, events, FakeCatalog(movie_catalog), [source], debrid)

    response = await service.handle_stream_request("tt7654321", MediaType.movie, config)

    assert source.hash_calls == []
    assert [m.hash for m in debrid.upload_calls[0]] == ["bbb"]
    assert len(response.streams) == 1
    assert await cache.get_streams("tt7654321") == response.streams


async def test_upload_failure_returns_no_streams(cache, events, recorder, config, series_catalog):
    class BrokenDebrid(FakeDebrid):
        async def upload_batch(self, magnets, config):
            raise AdapterError("AllDebrid", "HTTP 500")

    service = make_service(cache, events, FakeCatalog(series_catalog), [season_pack_source()], BrokenDebrid())

    response = await service.handle_stream_request("tt1234567:1:2", MediaType.series, config)

    assert response.streams == []
    assert "upload_failed" in recorder.names()


async def test_concurrent_requests_compute_once(cache, events, config, series_catalog):
    class SlowDebrid(FakeDebrid):
        async def upload_batch(self, magnets, config):
            await asyncio.sleep(0.3)
            return await super().upload_batch(magnets, config)

    source = season_pack_source()
    debrid = SlowDebrid(files={"id-aaa": [episode_file()]})
    service = make_service(cache, events, FakeCatalog(series_catalog), [source], debrid)

    first, second = await asyncio.gather(
        service.handle_stream_request("tt1234567:1:2", MediaType.series, config),
        service.handle_stream_request("tt1234567:1:2", MediaType.series, config),
    )

    assert len(first.streams) == 1
    assert second == first
    assert len(debrid.upload_calls) == 1
    assert source.search_calls == 1


async def test_cache_failure_aborts_before_external_calls(cache, database, events, config, series_catalog):
    await database.execute("DROP TABLE streams_cache")
    source = season_pack_source()
    catalog = FakeCatalog(series_catalog)
    debrid = FakeDebrid()
    service = make_service(cache, events, catalog, [source], debrid)

    with pytest.raises(CacheError):
        await service.handle_stream_request("tt1234567:1:2", MediaType.series, config)

    assert catalog.calls == 0
    assert source.search_calls == 0
    assert debrid.upload_calls == []

import pytest

from yggstream.core.errors import CacheError
from yggstream.core.models import CatalogInfo, MediaType, StreamEntry


def stream(url="https://cdn.example/file"):
    return StreamEntry(name="❤️ YggTorrent + AD | 🖥️ 1080p | 🎞️ H.264", title="The Show\nfile.mkv", url=url)


async def test_streams_round_trip(cache):
    await cache.put_streams("tt1234567", "1", "2", [stream()])

    cached = await cache.get_streams("tt1234567", "1", "2")

    assert cached == [stream()]


async def test_other_episode_is_a_miss(cache):
    await cache.put_streams("tt1234567", "1", "2", [stream()])

    assert await cache.get_streams("tt1234567", "1", "3") is None
    assert await cache.get_streams("tt1234567", "01", "02") is None


async def test_movie_slot_uses_null_season_and_episode(cache):
    await cache.put_streams("tt7654321", None, None, [stream()])

    assert await cache.get_streams("tt7654321") == [stream()]
    assert await cache.get_streams("tt7654321", "1", "1") is None


async def test_put_streams_overwrites_slot(cache):
    await cache.put_streams("tt1234567", "1", "2", [stream("https://old")])
    await cache.put_streams("tt1234567", "1", "2", [stream("https://new"), stream("https://other")])

    cached = await cache.get_streams("tt1234567", "1", "2")

    assert [s.url for s in cached] == ["https://new", "https://other"]


async def test_empty_stream_list_is_cached(cache):
    await cache.put_streams("tt1234567", "1", "2", [])

    assert await cache.get_streams("tt1234567", "1", "2") == []


async def test_corrupted_entry_reads_as_miss(cache, database):
    await database.execute(
        "INSERT INTO streams_cache (imdb_id, season, episode, streams_json, created_at) VALUES ('tt1', '', '', '{broken', 0)"
    )

    assert await cache.get_streams("tt1") is None


async def test_metadata_upsert(cache):
    await cache.put_metadata("tt1234567", CatalogInfo(title="Old", media_type=MediaType.series))
    await cache.put_metadata(
        "tt1234567", CatalogInfo(title="The Show", french_title="La Série", media_type=MediaType.series)
    )

    info = await cache.get_metadata("tt1234567")

    assert info == CatalogInfo(title="The Show", french_title="La Série", media_type=MediaType.series)
    assert await cache.get_metadata("tt0000000") is None


async def test_storage_failure_raises_cache_error(cache, database):
    await database.execute("DROP TABLE streams_cache")

    with pytest.raises(CacheError):
        await cache.get_streams("tt1234567", "1", "2")

    with pytest.raises(CacheError):
        await cache.put_streams("tt1234567", "1", "2", [stream()])

import base64
import json

import pytest

from yggstream.core.errors import ConfigError
from yggstream.core.models import MediaType
from yggstream.utils.validators import parse_media_id, validate_config


def encode(payload, urlsafe=False, strip_padding=False):
    raw = json.dumps(payload).encode("utf-8")
    encoded = (base64.urlsafe_b64encode(raw) if urlsafe else base64.b64encode(raw)).decode("ascii")
    return encoded.rstrip("=") if strip_padding else encoded


VALID = {"TMDB_API_KEY": "tmdb", "ALLDEBRID_API_KEY": "ad", "FILES_TO_SHOW": 3}


def test_valid_config():
    config = validate_config(encode(VALID))

    assert config.TMDB_API_KEY == "tmdb"
    assert config.ALLDEBRID_API_KEY == "ad"
    assert config.FILES_TO_SHOW == 3
    assert config.SHAREWOOD_PASSKEY is None


def test_unpadded_urlsafe_config():
    config = validate_config(encode({**VALID, "SHAREWOOD_PASSKEY": "??>>"}, urlsafe=True, strip_padding=True))

    assert config.SHAREWOOD_PASSKEY == "??>>"


def test_files_to_show_defaults():
    config = validate_config(encode({"TMDB_API_KEY": "tmdb", "ALLDEBRID_API_KEY": "ad"}))

    assert config.FILES_TO_SHOW >= 1


@pytest.mark.parametrize(
    "value",
    [
        None,
        "",
        "not base64 at all!",
        base64.b64encode(b"[1, 2]").decode(),
        encode({"TMDB_API_KEY": "tmdb"}),
        encode({**VALID, "ALLDEBRID_API_KEY": "  "}),
        encode({**VALID, "FILES_TO_SHOW": 0}),
    ],
)
def test_invalid_config(value):
    with pytest.raises(ConfigError):
        validate_config(value)


@pytest.mark.parametrize(
    "content_id, media_type, expected",
    [
        ("tt1234567:1:2", MediaType.series, ("tt1234567", "1", "2")),
        ("tt1234567:1:2.json", MediaType.series, ("tt1234567", "1", "2")),
        ("tt7654321", MediaType.movie, ("tt7654321", None, None)),
        ("tt7654321::", MediaType.movie, ("tt7654321", None, None)),
    ],
)
def test_parse_media_id(content_id, media_type, expected):
    request = parse_media_id(content_id, media_type)

    assert (request.imdb_id, request.season, request.episode) == expected
    assert request.media_type == media_type


def test_padded_season_and_episode():
    request = parse_media_id("tt1234567:1:2", MediaType.series)

    assert (request.padded_season, request.padded_episode) == ("01", "02")

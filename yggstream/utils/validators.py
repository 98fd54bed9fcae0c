import binascii
import json
from base64 import b64decode, urlsafe_b64decode
from typing import Optional

from pydantic import ValidationError

from yggstream.core.errors import ConfigError
from yggstream.core.models import MediaRequest, MediaType, UserConfig
from yggstream.utils.logger import api_logger

# ===========================
# Configuration Validation
# ===========================
def validate_config(config_base64: Optional[str]) -> UserConfig:
    if not config_base64:
        raise ConfigError("Missing configuration")

    try:
        api_logger.debug("Validating configuration")
        padded = config_base64 + "=" * (-len(config_base64) % 4)
        if "-" in padded or "_" in padded:
            decoded_bytes = urlsafe_b64decode(padded)
        else:
            decoded_bytes = b64decode(padded, validate=True)
        config_dict = json.loads(decoded_bytes.decode("utf-8"))

    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as e:
        api_logger.debug(f"Config decoding failed: {type(e).__name__}")
        raise ConfigError("Configuration is not valid base64 JSON") from e

    if not isinstance(config_dict, dict):
        raise ConfigError("Configuration must be a JSON object")

    try:
        config = UserConfig.model_validate(config_dict)
    except ValidationError as e:
        fields = ", ".join(str(error["loc"][0]) for error in e.errors() if error.get("loc"))
        api_logger.debug(f"Config validation failed: {fields}")
        raise ConfigError(f"Invalid configuration fields: {fields}") from e

    api_logger.debug("Configuration validated successfully")
    return config

# ===========================
# Media Info Extraction
# ===========================
def parse_media_id(content_id: str, media_type: MediaType) -> MediaRequest:
    parts = content_id.replace(".json", "").split(":")

    return MediaRequest(
        imdb_id=parts[0],
        season=parts[1] if len(parts) > 1 and parts[1] else None,
        episode=parts[2] if len(parts) > 2 and parts[2] else None,
        media_type=media_type
    )

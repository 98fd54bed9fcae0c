from typing import Optional, Dict, Any, Tuple

from yggstream.config.settings import settings
from yggstream.core.models import CatalogInfo, MediaType, UserConfig
from yggstream.utils.http_client import http_client
from yggstream.utils.logger import metadata_logger

# ===========================
# TMDB Service Class
# ===========================
class TMDBService:

    SERVICE_NAME = "TMDB"

    @property
    def base_url(self) -> str:
        return settings.TMDB_API_URL

    @staticmethod
    def _auth(api_key: str) -> Tuple[Dict[str, str], Dict[str, str]]:
        # v4 read access tokens are JWTs, v3 keys are short hex strings
        if api_key.startswith("eyJ"):
            return {"Authorization": f"Bearer {api_key}"}, {}
        return {}, {"api_key": api_key}

    @staticmethod
    def _french_title(details: Any, field: str) -> Optional[str]:
        if not isinstance(details, dict):
            return None
        translations = details.get("translations")
        if not isinstance(translations, dict):
            return None
        for trans in translations.get("translations") or []:
            if not isinstance(trans, dict) or trans.get("iso_639_1") != "fr":
                continue
            data = trans.get("data")
            if isinstance(data, dict) and data.get(field):
                return data[field]
        return None

    async def fetch_catalog_info(self, imdb_id: str, config: UserConfig) -> Optional[CatalogInfo]:
        """Title, French title and type of an IMDb id. Raises AdapterError on HTTP failure."""
        metadata_logger.debug(f"Fetching TMDB: {imdb_id}")

        headers, params = self._auth(config.TMDB_API_KEY)

        data = await http_client.get_json(
            self.SERVICE_NAME,
            f"{self.base_url}/find/{imdb_id}",
            headers=headers,
            params={**params, "external_source": "imdb_id", "language": "en-US"},
            timeout=settings.METADATA_TIMEOUT
        )
        if not isinstance(data, dict):
            metadata_logger.error(f"Unexpected TMDB payload: {type(data).__name__}")
            return None

        if data.get("movie_results"):
            item = data["movie_results"][0]
            media_type, endpoint, field = MediaType.movie, "movie", "title"
        elif data.get("tv_results"):
            item = data["tv_results"][0]
            media_type, endpoint, field = MediaType.series, "tv", "name"
        else:
            metadata_logger.debug(f"No TMDB metadata: {imdb_id}")
            return None

        title = item.get(field) or item.get(f"original_{field}")
        if not title:
            metadata_logger.debug(f"TMDB result without title: {imdb_id}")
            return None

        details = await http_client.get_json(
            self.SERVICE_NAME,
            f"{self.base_url}/{endpoint}/{item['id']}",
            headers=headers,
            params={**params, "append_to_response": "translations"},
            timeout=settings.METADATA_TIMEOUT
        )
        french_title = self._french_title(details, field)

        metadata_logger.info(f"TMDB {media_type.value}: {title}" + (f" / {french_title}" if french_title else ""))
        return CatalogInfo(title=title, french_title=french_title, media_type=media_type)

# ===========================
# Singleton Instance
# ===========================
tmdb_service = TMDBService()

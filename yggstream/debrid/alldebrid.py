from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from yggstream.config.settings import settings
from yggstream.core.errors import AdapterError
from yggstream.core.models import Magnet, UploadStatus, UserConfig, VideoFile
from yggstream.debrid.base import BaseDebridService
from yggstream.utils.http_client import http_client
from yggstream.utils.logger import debrid_logger

# ===========================
# AllDebrid Error Constants
# ===========================
UNAVAILABLE_LINK_ERRORS = [
    "LINK_DOWN",
    "LINK_HOST_UNAVAILABLE",
    "LINK_TEMPORARY_UNAVAILABLE",
    "LINK_TOO_MANY_DOWNLOADS",
    "LINK_HOST_FULL",
    "LINK_HOST_LIMIT_REACHED",
]

# ===========================
# AllDebrid Service Class
# ===========================
class AllDebridService(BaseDebridService):
    def get_service_name(self) -> str:
        return "AllDebrid"

    async def _request(self, method: str, endpoint: str, api_key: str,
                       params: Optional[Dict[str, Any]] = None, **kwargs) -> Dict[str, Any]:
        url = f"{settings.ALLDEBRID_API_URL}/{endpoint}"
        query = {"agent": settings.ADDON_NAME, "apikey": api_key, **(params or {})}
        http_error_count = 0

        while True:
            try:
                if method == "post":
                    response = await http_client.post(url, params=query, **kwargs)
                else:
                    response = await http_client.get(url, params=query, **kwargs)
            except httpx.HTTPError as e:
                raise AdapterError(self.get_service_name(), f"{endpoint} request failed ({type(e).__name__})") from e

            should_retry, http_error_count = await self._handle_http_retry_error(
                response, http_error_count,
                settings.DEBRID_HTTP_ERROR_RETRY_DELAY, settings.DEBRID_HTTP_ERROR_MAX_RETRIES
            )
            if should_retry:
                continue

            if response.status_code != 200:
                raise AdapterError(self.get_service_name(), f"{endpoint} HTTP {response.status_code}")

            try:
                return response.json()
            except ValueError as e:
                raise AdapterError(self.get_service_name(), f"{endpoint} invalid JSON") from e

    @staticmethod
    def _error_code(payload: Dict[str, Any]) -> str:
        error = payload.get("error") or {}
        return error.get("code", "UNKNOWN") if isinstance(error, dict) else str(error)

    async def upload_batch(self, magnets: List[Magnet], config: UserConfig) -> List[UploadStatus]:
        if not magnets:
            return []

        debrid_logger.info(f"Uploading {len(magnets)} magnets")
        payload = await self._request(
            "post", "magnet/upload", config.ALLDEBRID_API_KEY,
            data={"magnets[]": [magnet.hash for magnet in magnets]}
        )

        if payload.get("status") != "success":
            raise AdapterError(self.get_service_name(), f"upload failed: {self._error_code(payload)}")

        magnets_by_hash = {magnet.hash.lower(): magnet for magnet in magnets}
        statuses = []

        for item in payload.get("data", {}).get("magnets", []):
            if item.get("error"):
                debrid_logger.debug(f"Upload rejected: {item.get('magnet')} ({self._error_code(item)})")
                continue

            magnet_hash = str(item.get("hash", "")).lower()
            magnet = magnets_by_hash.get(magnet_hash)

            try:
                statuses.append(UploadStatus(
                    hash=magnet_hash,
                    id=item.get("id"),
                    name=item.get("name") or (magnet.title if magnet else magnet_hash),
                    source=magnet.source if magnet else "Unknown",
                    ready=bool(item.get("ready"))
                ))
            except ValidationError:
                debrid_logger.debug(f"Invalid upload status skipped: {magnet_hash}")

        debrid_logger.debug(f"Uploaded {len(statuses)}/{len(magnets)} magnets")
        return statuses

    async def list_files(self, upload_id: str, source: str, config: UserConfig) -> List[VideoFile]:
        payload = await self._request(
            "get", "magnet/status", config.ALLDEBRID_API_KEY, params={"id": upload_id}
        )

        if payload.get("status") != "success":
            raise AdapterError(self.get_service_name(), f"status failed: {self._error_code(payload)}")

        magnet = payload.get("data", {}).get("magnets", {})
        if isinstance(magnet, list):
            magnet = magnet[0] if magnet else {}

        files = []
        for link in magnet.get("links", []):
            name = link.get("filename", "")
            if not self.is_video_file(name) or not link.get("link"):
                continue
            files.append(VideoFile(name=name, link=link["link"], size=link.get("size")))

        debrid_logger.debug(f"{len(files)} video files in magnet {upload_id} ({source})")
        return files

    async def unlock_link(self, link: str, config: UserConfig) -> Optional[str]:
        payload = await self._request(
            "get", "link/unlock", config.ALLDEBRID_API_KEY, params={"link": link}
        )

        if payload.get("status") != "success":
            error_code = self._error_code(payload)
            if error_code in UNAVAILABLE_LINK_ERRORS:
                debrid_logger.debug(f"{error_code}")
            else:
                debrid_logger.error(f"Unlock error: {error_code}")
            return None

        result = payload.get("data", {})
        if "delayed" in result:
            debrid_logger.debug("Delayed - not unlockable now")
            return None

        direct_link = result.get("link")
        if direct_link:
            debrid_logger.debug("Unlocked")
        return direct_link

# ===========================
# Singleton Instance
# ===========================
alldebrid_service = AllDebridService()

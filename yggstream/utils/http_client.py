import time
from typing import Optional, Any

import httpx

from yggstream.config.settings import settings
from yggstream.core.errors import AdapterError
from yggstream.utils.logger import addon_logger

# ===========================
# HTTP Client Singleton
# ===========================
class HTTPClient:
    """Process-wide httpx client shared by the sources, TMDB and AllDebrid."""

    _instance: Optional['HTTPClient'] = None
    _client: Optional[httpx.AsyncClient] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    async def get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            client_args = {
                "timeout": httpx.Timeout(float(settings.HTTP_TIMEOUT)),
                "follow_redirects": True,
                "headers": {"User-Agent": f"{settings.ADDON_NAME}/{settings.ADDON_MANIFEST['version']}"},
            }
            if settings.PROXY_URL:
                client_args["proxy"] = settings.PROXY_URL
            self._client = httpx.AsyncClient(**client_args)
        return self._client

    async def get(self, url: str, **kwargs) -> httpx.Response:
        client = await self.get_client()
        return await client.get(url, **kwargs)

    async def post(self, url: str, **kwargs) -> httpx.Response:
        client = await self.get_client()
        return await client.post(url, **kwargs)

    # ===========================
    # JSON Requests
    # ===========================
    async def request_json(self, service: str, method: str, url: str, **kwargs) -> Any:
        """Send a request and decode its JSON body.

        Transport errors, non-200 answers and undecodable bodies all raise
        AdapterError tagged with ``service``.
        """
        start_time = time.time()
        try:
            if method == "post":
                response = await self.post(url, **kwargs)
            else:
                response = await self.get(url, **kwargs)
        except httpx.HTTPError as e:
            raise AdapterError(service, f"request failed ({type(e).__name__})") from e

        addon_logger.debug(f"{service}: HTTP {response.status_code} in {time.time() - start_time:.2f}s")

        if response.status_code != 200:
            raise AdapterError(service, f"HTTP {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            raise AdapterError(service, "invalid JSON response") from e

    async def get_json(self, service: str, url: str, **kwargs) -> Any:
        return await self.request_json(service, "get", url, **kwargs)

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None

# ===========================
# Global HTTP Client Instance
# ===========================
http_client = HTTPClient()

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple
from asyncio import sleep

from yggstream.core.models import Magnet, UploadStatus, UserConfig, VideoFile
from yggstream.utils.logger import debrid_logger

# ===========================
# Constants
# ===========================
HTTP_RETRY_ERRORS = [429, 500, 502, 503, 504]

VIDEO_EXTENSIONS = (".mkv", ".mp4", ".avi", ".mov", ".m4v", ".ts", ".wmv", ".webm")

# ===========================
# Base Debrid Service Class
# ===========================
class BaseDebridService(ABC):

    @abstractmethod
    async def upload_batch(self, magnets: List[Magnet], config: UserConfig) -> List[UploadStatus]:
        pass

    @abstractmethod
    async def list_files(self, upload_id: str, source: str, config: UserConfig) -> List[VideoFile]:
        pass

    @abstractmethod
    async def unlock_link(self, link: str, config: UserConfig) -> Optional[str]:
        pass

    @abstractmethod
    def get_service_name(self) -> str:
        pass

    @property
    def abbreviation(self) -> str:
        return "".join(c for c in self.get_service_name() if c.isupper())

    @staticmethod
    def is_video_file(name: str) -> bool:
        return bool(name) and name.lower().endswith(VIDEO_EXTENSIONS)

    async def _handle_http_retry_error(
        self,
        response,
        http_error_count: int,
        retry_delay: int,
        max_retries: int
    ) -> Tuple[bool, int]:
        if response.status_code not in HTTP_RETRY_ERRORS:
            return (False, http_error_count)

        http_error_count += 1
        if http_error_count >= max_retries:
            debrid_logger.error(f"HTTP {response.status_code} - Max retries")
            return (False, http_error_count)

        debrid_logger.debug(f"HTTP {response.status_code} - Retry {http_error_count}/{max_retries}")
        await sleep(retry_delay)
        return (True, http_error_count)

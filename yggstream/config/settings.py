from typing import Optional, Dict, Any
from pydantic import computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False
    )

    # ===========================
    # Addon Customization
    # ===========================
    ADDON_ID: Optional[str] = "community.yggstream"
    ADDON_NAME: Optional[str] = "YGGStream"

    # ===========================
    # Server Configuration
    # ===========================
    PORT: Optional[int] = 5000

    # ===========================
    # Source Configuration
    # ===========================
    YGG_API_URL: Optional[str] = "https://yggapi.eu"
    YGG_MOVIE_CATEGORY: int = 2183
    YGG_SERIES_CATEGORY: int = 2184
    YGG_MAX_RESULTS: int = 100
    SHAREWOOD_API_URL: Optional[str] = "https://www.sharewood.tv/api"
    SHAREWOOD_MOVIE_SUBCATEGORY: int = 9
    SHAREWOOD_SERIES_SUBCATEGORY: int = 10

    # ===========================
    # Database Configuration
    # ===========================
    DATABASE_VERSION: str = "1.0"
    DATABASE_TYPE: Optional[str] = "sqlite"
    DATABASE_PATH: Optional[str] = "/data/streams.db"
    DATABASE_URL: Optional[str] = ""

    # ===========================
    # Lock Configuration
    # ===========================
    REQUEST_LOCK_TTL: Optional[int] = 300
    REQUEST_LOCK_TIMEOUT: Optional[int] = 30

    # ===========================
    # HTTP Timeout Configuration
    # ===========================
    HTTP_TIMEOUT: Optional[int] = 15
    METADATA_TIMEOUT: Optional[int] = 10
    HEALTH_CHECK_TIMEOUT: Optional[int] = 5

    # ===========================
    # AllDebrid Configuration
    # ===========================
    ALLDEBRID_API_URL: str = "https://api.alldebrid.com/v4"
    DEBRID_HTTP_ERROR_MAX_RETRIES: Optional[int] = 5
    DEBRID_HTTP_ERROR_RETRY_DELAY: Optional[int] = 1

    # ===========================
    # TMDB Configuration
    # ===========================
    TMDB_API_URL: str = "https://api.themoviedb.org/3"

    # ===========================
    # Stream Output Configuration
    # ===========================
    DEFAULT_FILES_TO_SHOW: int = 5

    # ===========================
    # Proxy Configuration
    # ===========================
    PROXY_URL: Optional[str] = None

    # ===========================
    # Logging Configuration
    # ===========================
    LOG_LEVEL: Optional[str] = "INFO"
    LOG_FILE: Optional[str] = None
    LOG_ROTATION: Optional[str] = "10 MB"
    LOG_RETENTION: Optional[str] = "7 days"

    # ===========================
    # Internal Configuration
    # ===========================
    CLEANUP_INTERVAL: int = 60

    # ===========================
    # Field Validators
    # ===========================
    @field_validator("YGG_API_URL", "SHAREWOOD_API_URL", "ALLDEBRID_API_URL", "TMDB_API_URL", "PROXY_URL")
    @classmethod
    def normalize_urls(cls, v):
        if isinstance(v, str):
            return v.rstrip("/")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_log_level(cls, v):
        if isinstance(v, str):
            return v.upper()
        return v

    @field_validator("DATABASE_TYPE")
    @classmethod
    def normalize_database_type(cls, v):
        if isinstance(v, str):
            return v.lower()
        return v

    # ===========================
    # Computed Properties
    # ===========================
    @computed_field
    @property
    def ADDON_MANIFEST(self) -> Dict[str, Any]:
        return {
            "id": self.ADDON_ID,
            "name": self.ADDON_NAME,
            "version": "1.0.0",
            "description": "Streams YggTorrent & Sharewood torrents through AllDebrid (non officiel)",
            "catalogs": [],
            "resources": ["stream"],
            "types": ["movie", "series"],
            "idPrefixes": ["tt"],
            "behaviorHints": {
                "configurable": True,
                "configurationRequired": True
            }
        }

    def get_database_url(self) -> str:
        if self.DATABASE_TYPE == "sqlite":
            return f"sqlite:///{self.DATABASE_PATH}"
        return f"postgresql://{self.DATABASE_URL}"


# ===========================
# Settings Instance
# ===========================
settings = Settings()

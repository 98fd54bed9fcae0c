# ===========================
# Base Error
# ===========================
class YggStreamError(Exception):
    pass


# ===========================
# Configuration Errors
# ===========================
class ConfigError(YggStreamError):
    """Malformed or incomplete user configuration. Rendered as HTTP 400."""


# ===========================
# Cache Errors
# ===========================
class CacheError(YggStreamError):
    """The cache storage could not be read or written.

    Never treated as a cache miss: the request is aborted instead.
    """


# ===========================
# Adapter Errors
# ===========================
class AdapterError(YggStreamError):
    """An external catalog, torrent source or debrid call failed."""

    def __init__(self, service: str, message: str):
        super().__init__(f"{service}: {message}")
        self.service = service
        self.message = message

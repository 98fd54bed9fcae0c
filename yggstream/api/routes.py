import asyncio
import time

from fastapi import APIRouter, Path
from fastapi.responses import JSONResponse, RedirectResponse

from yggstream.config.settings import settings
from yggstream.core.errors import CacheError, ConfigError
from yggstream.core.models import MediaType
from yggstream.services.stream import stream_service
from yggstream.utils.logger import api_logger
from yggstream.utils.validators import validate_config


# ===========================
# Router Instance
# ===========================
router = APIRouter()


# ===========================
# Stremio Addon Endpoints
# ===========================
@router.get("/", summary="Home", description="Redirects to the addon manifest")
async def root():
    return RedirectResponse("/manifest.json")


@router.get("/manifest.json", summary="Stremio Manifest", description="Returns addon metadata for installation")
async def get_default_manifest():
    return JSONResponse(content=settings.ADDON_MANIFEST)


@router.get("/{b64config}/manifest.json", summary="Configured Manifest", description="Returns addon metadata for a configured install")
async def get_manifest(
    b64config: str = Path(..., description="Base64 encoded configuration")
):
    manifest = settings.ADDON_MANIFEST.copy()

    try:
        validate_config(b64config)
    except ConfigError as e:
        api_logger.debug(f"Manifest for invalid config: {e}")
        return JSONResponse(content=manifest)

    manifest["behaviorHints"] = {**manifest["behaviorHints"], "configurationRequired": False}
    return JSONResponse(content=manifest)


@router.get("/{b64config}/stream/{content_type}/{content_id}",
            summary="Get streams",
            description="Returns available streams for the requested content")
async def get_streams(
    b64config: str = Path(..., description="Base64 encoded configuration"),
    content_type: MediaType = Path(..., description="Content type"),
    content_id: str = Path(..., description="Content identifier")
):
    try:
        config = validate_config(b64config)
    except ConfigError as e:
        api_logger.error(f"Invalid configuration in request: {e}")
        return JSONResponse(status_code=400, content={"error": str(e)})

    content_id_formatted = content_id.replace(".json", "")
    api_logger.debug(f"Stream: {content_type.value}/{content_id_formatted}")

    try:
        response = await stream_service.handle_stream_request(content_id_formatted, content_type, config)
    except CacheError as e:
        api_logger.error(f"Cache unavailable: {e}")
        return JSONResponse(content={"streams": []})
    except Exception as e:
        api_logger.error(f"Stream failed: {type(e).__name__}")
        return JSONResponse(content={"streams": []})

    return JSONResponse(content=response.model_dump())


# ===========================
# Health Check Endpoint
# ===========================
@router.get("/health",
            summary="Health check",
            description="Returns the current health status of the service")
async def health_check():
    start_time = time.time()
    health_status = {
        "status": "healthy",
        "version": settings.ADDON_MANIFEST["version"],
        "timestamp": int(time.time()),
        "checks": {
            "server": {
                "status": "ok",
                "message": "Addon server running"
            }
        }
    }

    try:
        await asyncio.wait_for(
            stream_service.cache.database.fetch_val("SELECT 1"),
            timeout=settings.HEALTH_CHECK_TIMEOUT
        )
        health_status["checks"]["database"] = {
            "status": "ok",
            "message": "Database connection active"
        }
    except Exception as e:
        health_status["checks"]["database"] = {
            "status": "error",
            "message": f"Database error: {type(e).__name__}"
        }
        health_status["status"] = "degraded"

    health_status["total_response_time_ms"] = round((time.time() - start_time) * 1000)
    return health_status

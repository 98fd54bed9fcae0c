import asyncio
import re
import time
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from yggstream.api.routes import router
from yggstream.config.settings import settings
from yggstream.core.errors import YggStreamError
from yggstream.core.events import event_bus
from yggstream.utils.database import setup_database, teardown_database, cleanup_expired_locks
from yggstream.utils.http_client import http_client
from yggstream.utils.logger import setup_logger, log_event, addon_logger, api_logger


# ===========================
# Logger Setup
# ===========================
setup_logger(settings.LOG_LEVEL, settings.LOG_FILE, settings.LOG_ROTATION, settings.LOG_RETENTION)
event_bus.subscribe(log_event)


# ===========================
# Request Logging Middleware
# ===========================
# First path segment of configured routes is the base64 user config (API keys)
CONFIG_SEGMENT = re.compile(r"^/[^/]+/(manifest\.json|stream/)")


def mask_path(path: str) -> str:
    if CONFIG_SEGMENT.match(path):
        return "/<config>" + path[path.index("/", 1):]
    return path


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        if request.url.path == "/health":
            return await call_next(request)

        start_time = time.time()
        path = mask_path(request.url.path)
        try:
            response = await call_next(request)
        except Exception as e:
            api_logger.error(f"{request.method} {path} - {type(e).__name__}")
            raise

        api_logger.debug(f"{request.method} {path} - {response.status_code} - {time.time() - start_time:.2f}s")
        return response


# ===========================
# Application Lifecycle
# ===========================
def log_startup():
    addon_logger.info(f"Starting {settings.ADDON_NAME} v{settings.ADDON_MANIFEST['version']} ({settings.ADDON_ID})")
    addon_logger.info(f"YggTorrent API: {settings.YGG_API_URL}")
    addon_logger.info(f"Sharewood API: {settings.SHAREWOOD_API_URL}")
    addon_logger.info(f"Database: {settings.DATABASE_TYPE} v{settings.DATABASE_VERSION}")
    addon_logger.info(f"Proxy: {'enabled' if settings.PROXY_URL else 'disabled'}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    log_startup()
    await setup_database()
    cleanup_task = asyncio.create_task(cleanup_expired_locks())

    yield

    cleanup_task.cancel()
    try:
        await cleanup_task
    except asyncio.CancelledError:
        pass

    await http_client.close()
    await teardown_database()
    addon_logger.info("Shutdown complete")


# ===========================
# FastAPI Application Setup
# ===========================
app = FastAPI(
    title=settings.ADDON_NAME,
    version=settings.ADDON_MANIFEST["version"],
    lifespan=lifespan
)

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
)


@app.exception_handler(YggStreamError)
async def addon_error_handler(request: Request, exc: YggStreamError):
    api_logger.error(f"Unhandled {type(exc).__name__}: {exc}")
    return JSONResponse(status_code=500, content={"error": str(exc)})


app.include_router(router)


# ===========================
# Application Entry Point
# ===========================
if __name__ == "__main__":
    addon_logger.info(f"Server: http://localhost:{settings.PORT}/ (log level {settings.LOG_LEVEL})")

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=settings.PORT,
        log_config=None
    )

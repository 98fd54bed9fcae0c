import sys
import logging
from typing import Optional

from loguru import logger


# ===========================
# Log Contexts Configuration
# ===========================
CONTEXTS = {
    "ADDON": {"color": "green", "icon": "🚀"},
    "API": {"color": "cyan", "icon": "🔗"},
    "STREAM": {"color": "yellow", "icon": "🎬"},
    "SCRAPER": {"color": "blue", "icon": "🧲"},
    "DEBRID": {"color": "magenta", "icon": "☁️"},
    "METADATA": {"color": "white", "icon": "🎭"},
    "CACHE": {"color": "white", "icon": "💾"},
    "DATABASE": {"color": "yellow", "icon": "🗄️"},
}

DEFAULT_CONTEXT = "ADDON"


# ===========================
# Log Level Icons
# ===========================
LEVEL_ICONS = {
    "DEBUG": "🔍",
    "INFO": "ℹ️ ",
    "WARNING": "⚠️ ",
    "ERROR": "❌",
}


# ===========================
# Log Formatters
# ===========================
def format_log(record):
    context = record["extra"].get("context", DEFAULT_CONTEXT)
    context_data = CONTEXTS.get(context, {"color": "white", "icon": "📦"})
    context_color = context_data["color"]
    level_icon = LEVEL_ICONS.get(record["level"].name, "")

    return (
        "<white>{time:YYYY-MM-DD}</white> "
        "<magenta>{time:HH:mm:ss}</magenta> | "
        f"<level>{level_icon} {{level: <8}}</level> | "
        f"<{context_color}>{context_data['icon']} {{extra[context]: <10}}</{context_color}> | "
        "<level>{message}</level>\n"
    )


def format_file_log(record):
    return "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[context]: <10} | {message}\n"


# ===========================
# Logger Setup Function
# ===========================
def setup_logger(level: str = "INFO", log_file: Optional[str] = None,
                 rotation: Optional[str] = None, retention: Optional[str] = None):
    logger.remove()
    logger.configure(extra={"context": DEFAULT_CONTEXT})

    # Variable values in tracebacks would expose the user's API keys
    debug = level == "DEBUG"

    logger.add(
        sys.stderr,
        level=level,
        format=format_log,
        colorize=True,
        backtrace=debug,
        diagnose=debug,
    )

    if log_file:
        logger.add(
            log_file,
            level=level,
            format=format_file_log,
            rotation=rotation,
            retention=retention,
            enqueue=True,
            diagnose=False,
        )


# ===========================
# Logger Factory
# ===========================
def get_logger(context: str):
    return logger.bind(context=context if context in CONTEXTS else DEFAULT_CONTEXT)


# ===========================
# Logger Instances
# ===========================
addon_logger = get_logger("ADDON")
api_logger = get_logger("API")
scraper_logger = get_logger("SCRAPER")
debrid_logger = get_logger("DEBRID")
metadata_logger = get_logger("METADATA")
cache_logger = get_logger("CACHE")
database_logger = get_logger("DATABASE")


# ===========================
# Pipeline Event Sink
# ===========================
def log_event(event):
    """Event bus subscriber writing each pipeline event to its context's log."""
    get_logger(event.context).bind(event=event.name, **event.data).log(event.level, event.message)


# ===========================
# External Loggers Suppression
# ===========================
logging.getLogger("uvicorn.access").disabled = True
logging.getLogger("uvicorn.error").setLevel(logging.CRITICAL)
logging.getLogger("fastapi").setLevel(logging.CRITICAL)
logging.getLogger("databases").setLevel(logging.WARNING)

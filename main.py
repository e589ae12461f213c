"""
URL Shortener Design Showcase Backend
Entry point for the FastAPI application
"""

import uvicorn
from shortener_design.api import app
from shortener_design.utils.logging_config import setup_logging, get_logger
from shortener_design.config import get_settings

# Get configuration
settings = get_settings()

# Setup logging before starting the app
setup_logging(
    level=settings.log_level,
    json_format=settings.log_format_json,
    log_file=settings.log_file,
    max_bytes=settings.log_max_bytes,
    backup_count=settings.log_backup_count,
)

logger = get_logger(__name__)

if __name__ == "__main__":
    logger.info("Starting URL Shortener Design Showcase Backend")
    logger.info(
        f"Environment: {settings.env}, "
        f"Log level: {settings.log_level}, "
        f"Format: {'JSON' if settings.log_format_json else 'Human-readable'}"
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)

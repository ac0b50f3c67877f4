"""Main entry point for the ambient sound bot."""

import os
import sys
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from soundbot.api import create_fastapi_app
from soundbot.app import Application
from soundbot.config import ConfigError, Settings
from soundbot.logging_config import get_logger, setup_logging

logger = get_logger(__name__)


def main():
    """Run the webhook server."""
    project_root = Path(__file__).resolve().parent.parent
    load_dotenv(project_root / ".env")
    setup_logging()

    settings = Settings.from_env()
    try:
        settings.validate()
    except ConfigError as e:
        logger.error("%s", e)
        sys.exit(1)

    api_host = os.getenv("API_HOST", "0.0.0.0")
    api_port = int(os.getenv("API_PORT", os.getenv("PORT", "5000")))

    app = create_fastapi_app(Application(settings=settings))

    logger.info("Webhook server listening on port %s", api_port)
    uvicorn.run(
        app,
        host=api_host,
        port=api_port,
        log_level="info",
    )


if __name__ == "__main__":
    main()

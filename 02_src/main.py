"""Main entry point for the Collab service."""

import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from collab.api import create_fastapi_app
from collab.app import Application
from collab.config import Settings
from collab.logging_config import setup_logging


def main():
    """Run the application."""
    project_root = Path(__file__).resolve().parent.parent
    load_dotenv(project_root / ".env")

    settings = Settings.from_env()
    setup_logging(log_level=settings.log_level)

    api_host = os.getenv("API_HOST", "localhost")
    api_port = int(os.getenv("API_PORT", "8000"))

    app = create_fastapi_app(Application(settings))

    uvicorn.run(
        app,
        host=api_host,
        port=api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()

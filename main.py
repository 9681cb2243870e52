#!/usr/bin/env python3
"""
Main entry point for the Finn Registry server.
"""

import uvicorn
from dotenv import load_dotenv

# Load environment variables before settings are read
load_dotenv()

from finn_registry.core import get_settings  # noqa: E402


if __name__ == "__main__":
    settings = get_settings()

    print(f"Starting Finn Registry on {settings.server.host}:{settings.server.port}")
    if settings.debug:
        print(f"API documentation available at http://{settings.server.host}:{settings.server.port}/docs")

    uvicorn.run(
        "finn_registry.main:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=settings.server.reload,
        workers=settings.server.workers if not settings.server.reload else 1,
        log_level=settings.logging.level.lower(),
        access_log=False,
    )

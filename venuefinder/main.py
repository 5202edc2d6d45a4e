"""
Venuefinder - Main entry point.

    python -m venuefinder.main

Serves the API on API_HOST:API_PORT (0.0.0.0:5000 by default).
"""

from __future__ import annotations

import uvicorn

from venuefinder.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "venuefinder.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug and not settings.is_production,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()

"""
Run the API with uvicorn: `python -m parkguide`.
"""

from __future__ import annotations

import uvicorn

from parkguide.app import configure_logging, create_app
from parkguide.config import get_settings


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    uvicorn.run(
        create_app(),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()

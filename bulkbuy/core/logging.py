import logging
import os
from typing import Optional


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging for the API process and the seeder script."""
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    # Failed requests are logged by the ingress middleware.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

"""
Logging Configuration
"""

import logging
import os
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure the root logger from LOG_LEVEL (default INFO)."""
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=LOG_FORMAT,
        force=True,
    )
    # werkzeug request lines drown out job logs
    logging.getLogger("werkzeug").setLevel(logging.WARNING)

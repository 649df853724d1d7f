# ojt_platform/core/logger.py
import logging
import sys

from ojt_platform.core.config import get_settings

settings = get_settings()

# Application-wide logger; modules import `logger` from here.
logger = logging.getLogger("ojt_platform")

# Fall back to INFO if the configured level name is unknown.
log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
logger.setLevel(log_level)

# Avoid duplicate handlers on hot-reload.
if logger.hasHandlers():
    logger.handlers.clear()

handler = logging.StreamHandler(sys.stdout)
formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
handler.setFormatter(formatter)
logger.addHandler(handler)

logger.propagate = False

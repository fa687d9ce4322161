"""
Configuration for the client IP API, read from environment variables.
"""

import os
import logging
from dotenv import load_dotenv

from app.utils.helpers import DEFAULT_HEADER_PRIORITY, build_header_priority

# Ensure environment variables are loaded
load_dotenv()

logger = logging.getLogger(__name__)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))

CLIENT_IP_STRIP_REMOTE_PORT = os.getenv("CLIENT_IP_STRIP_REMOTE_PORT", "false").lower() == "true"


def get_header_priority():
    """Get the header priority from CLIENT_IP_HEADERS, or the default order."""
    headers_str = os.getenv("CLIENT_IP_HEADERS", "")
    if not headers_str.strip():
        return DEFAULT_HEADER_PRIORITY

    priority = build_header_priority(headers_str.split(","))
    if priority is DEFAULT_HEADER_PRIORITY:
        logger.warning("CLIENT_IP_HEADERS has no usable header names, using default order")
    else:
        logger.info(f"Loaded {len(priority)} client IP headers from CLIENT_IP_HEADERS")
    return priority


CLIENT_IP_HEADER_PRIORITY = get_header_priority()


def get_log_level() -> int:
    """Get the numeric level for LOG_LEVEL, INFO if it is not a level name."""
    level = logging.getLevelName(LOG_LEVEL)
    if not isinstance(level, int):
        logger.warning(f"Unknown LOG_LEVEL {LOG_LEVEL!r}, using INFO")
        return logging.INFO
    return level

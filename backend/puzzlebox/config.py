"""
Runtime configuration - environment-driven settings for puzzlebox
"""

import os
import logging
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

# Project root holds the bundled experiences/ directory
PROJECT_ROOT = Path(__file__).parent.parent.parent

DEFAULT_HISTORY_SIZE = 100


def get_experiences_dir() -> Path:
    """Get the directory experience documents are loaded from"""
    configured = os.getenv("PUZZLEBOX_EXPERIENCES_DIR")
    if configured:
        return Path(configured)
    return PROJECT_ROOT / "experiences"


def get_log_level() -> str:
    """Get configured log level name"""
    return os.getenv("PUZZLEBOX_LOG_LEVEL", "WARNING").upper()


def get_max_passes() -> int | None:
    """
    Get an explicit ceiling for validator passes.

    Returns None when unset, in which case the validator derives its bound
    from the size of the dependency graph.
    """
    raw = os.getenv("PUZZLEBOX_MAX_PASSES")
    if not raw:
        return None
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-integer PUZZLEBOX_MAX_PASSES: {raw!r}")
        return None
    if value < 1:
        logger.warning(f"Ignoring PUZZLEBOX_MAX_PASSES below 1: {value}")
        return None
    return value


def get_history_size() -> int:
    """Get how many state changes the runtime keeps in its history"""
    raw = os.getenv("PUZZLEBOX_HISTORY_SIZE")
    if not raw:
        return DEFAULT_HISTORY_SIZE
    try:
        return max(1, int(raw))
    except ValueError:
        logger.warning(f"Ignoring non-integer PUZZLEBOX_HISTORY_SIZE: {raw!r}")
        return DEFAULT_HISTORY_SIZE

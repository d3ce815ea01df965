"""Application configuration and constants."""
import logging
import os
from pathlib import Path


def _parse_int_env(name: str, default: int) -> int:
    """Parse integer from environment variable."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _parse_float_env(name: str, default: float) -> float:
    """Parse float from environment variable."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _parse_log_level(name: str, default: int) -> int:
    """Parse a logging level name such as ``INFO``."""
    raw = os.environ.get(name)
    if not raw:
        return default
    level = logging.getLevelName(raw.strip().upper())
    return level if isinstance(level, int) else default


# Database
DB_DIR = Path(os.environ.get("DB_DIR", Path.cwd() / "data"))
DB_DIR.mkdir(parents=True, exist_ok=True)
DATABASE_URL = os.environ.get(
    "DATABASE_URL", f"sqlite:///{DB_DIR / 'learnhub.db'}"
)

# Logging
LOG_LEVEL = _parse_log_level("LOG_LEVEL", logging.INFO)

# Remote progress service, as seen by the session engine
API_BASE_URL = os.environ.get("API_BASE_URL", "http://127.0.0.1:8000")
HTTP_TIMEOUT_SECONDS = _parse_float_env("HTTP_TIMEOUT_SECONDS", 10.0)
USER_HEADER = "X-User-Id"

# Answer sync
SYNC_DEBOUNCE_SECONDS = _parse_float_env("SYNC_DEBOUNCE_SECONDS", 2.0)
SYNC_RETRY_BASE_SECONDS = _parse_float_env("SYNC_RETRY_BASE_SECONDS", 2.0)
SYNC_RETRY_MAX_SECONDS = _parse_float_env("SYNC_RETRY_MAX_SECONDS", 60.0)

# Assignments
DEFAULT_MAX_ATTEMPTS = _parse_int_env("DEFAULT_MAX_ATTEMPTS", 1)

# Countdown
URGENT_THRESHOLD_SECONDS = 48 * 60 * 60  # 48 hours

# Server
HOST = os.environ.get("HOST", "127.0.0.1")
PORT = _parse_int_env("PORT", 8000)

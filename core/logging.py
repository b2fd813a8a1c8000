"""
Logging configuration
"""

import logging
import sys
from typing import Optional
from core.config import settings


def setup_logging(level: Optional[str] = None, verbose: bool = False):
    """Configure application logging"""

    # Explicit level wins, then --verbose, then settings
    level_name = level or ("DEBUG" if verbose else settings.LOG_LEVEL)
    log_level = getattr(logging, level_name.upper(), logging.INFO)

    # Configure root logger
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout)
        ],
        force=True
    )

    # Set SQLAlchemy and HTTP client logging to WARNING to reduce noise
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured at {logging.getLevelName(log_level)} level")


def format_progress_bar(current: int, total: int, width: int = 20) -> str:
    """Render `[████░░░░] 40% (40/100)` for progress log lines."""
    percent = round(current / total * 100) if total > 0 else 0
    filled = min(width, percent * width // 100)
    bar = "█" * filled + "░" * (width - filled)
    return f"[{bar}] {percent}% ({current}/{total})"


def format_duration(seconds: float) -> str:
    """Format a duration as `1h 2m 3s`, `2m 3s` or `3s`."""
    total = int(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"

"""Environment-driven configuration for famledger.

Every setting can also be passed on the command line; the click options
declare the same variable names through ``envvar=``.
"""

import logging
import os
from typing import Optional

from famledger.domain.entities import BoxBaseline

DB_PATH_ENV = "FAMLEDGER_DB_PATH"
BOX_BASELINE_ENV = "FAMLEDGER_BOX_BASELINE"
LOG_LEVEL_ENV = "FAMLEDGER_LOG_LEVEL"

DEFAULT_BOX_BASELINE = BoxBaseline.ZERO
DEFAULT_LOG_LEVEL = "WARNING"


def db_path_from_env() -> Optional[str]:
    """Return the database path set in the environment, if any."""
    return os.environ.get(DB_PATH_ENV) or None


def parse_box_baseline(value: Optional[str]) -> BoxBaseline:
    """Parse a box baseline name ("zero" or "seeded").

    Raises:
        ValueError: If the name is not a known baseline
    """
    if value is None or not value.strip():
        return DEFAULT_BOX_BASELINE
    try:
        return BoxBaseline(value.strip().lower())
    except ValueError:
        choices = ", ".join(b.value for b in BoxBaseline)
        raise ValueError(f"Unknown box baseline '{value}'. Choose one of: {choices}")


def box_baseline_from_env() -> BoxBaseline:
    """Return the box baseline configured in the environment."""
    return parse_box_baseline(os.environ.get(BOX_BASELINE_ENV))


def parse_log_level(value: Optional[str]) -> int:
    """Translate a level name such as "info" into a logging level.

    Raises:
        ValueError: If the name is not a logging level
    """
    name = (value or DEFAULT_LOG_LEVEL).strip().upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level '{value}'")
    return level


def log_level_from_env() -> int:
    """Return the log level configured in the environment."""
    return parse_log_level(os.environ.get(LOG_LEVEL_ENV))

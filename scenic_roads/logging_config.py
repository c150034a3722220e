"""Console logging for the scenic-roads CLI (rich handler, `scenic.*` loggers)."""
import logging
from typing import Optional

from rich.logging import RichHandler

from . import LOG_LEVEL

# chatty third-party loggers kept at WARNING unless we run at DEBUG
_QUIET = ("urllib3", "requests")


def configure(level: Optional[str] = None) -> None:
    """
    Route every log record through one RichHandler.

    `level` falls back to SCENIC_LOG_LEVEL as read by the package.
    Replaces handlers installed by an earlier call.
    """
    level = (level or LOG_LEVEL).upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_time=False, show_path=False)],
        force=True,
    )
    logging.getLogger("scenic").setLevel(level)
    for name in _QUIET:
        logging.getLogger(name).setLevel(level if level == "DEBUG" else "WARNING")

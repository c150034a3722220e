"""
Scenic Roads – stitch fragmented road geometry and enrich it with elevation.
Top-level package.  Exposes a tiny public API and
configures logging early so every sub-module inherits it.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Final

__all__ = [
    "logger",
    "PROJECT_ROOT",
    "INPUT_DIR",
    "OUTPUT_DIR",
    "CACHE_DIR",
    "optimize_geometry",
    "enrich_elevation",
]

# ---------- paths ----------
PROJECT_ROOT: Final[Path] = Path(__file__).resolve().parent.parent
INPUT_DIR: Final[Path] = PROJECT_ROOT / "input"
OUTPUT_DIR: Final[Path] = PROJECT_ROOT / "output"
CACHE_DIR: Final[Path] = PROJECT_ROOT / "var" / "cache"

# ---------- logging ----------
LOG_LEVEL = os.getenv("SCENIC_LOG_LEVEL", "INFO").upper()

logger = logging.getLogger("scenic")
logger.setLevel(LOG_LEVEL)
logger.debug("Logging initialised (level=%s)", LOG_LEVEL)

from .geometry import optimize_geometry  # noqa: E402
from .elevation import enrich_elevation  # noqa: E402

"""
io.py – JSON load/save helpers for source files and pipeline output
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger("scenic.io")


def load_json(path: Path | str) -> Any:
    """Load a JSON file; an empty file yields an empty list."""
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Local source file missing: {path}")

    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return []
    return json.loads(text)


def save_json(data: Any, out_path: Path | str) -> Path:
    """Write `data` as pretty-printed UTF-8 JSON and log the result."""
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(data, indent=4, ensure_ascii=False), encoding="utf-8")
    logger.info("JSON written to %s (%d records)", out_path, len(data) if hasattr(data, "__len__") else 1)
    return out_path

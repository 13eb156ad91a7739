"""
Whole-file JSON persistence shared by the playlist store and the download index.

Documents are read with aiofiles and written atomically: the new content goes
to a temporary sibling which then replaces the live file.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles

from riffbox.core.errors import PersistenceFailure
from riffbox.utils.logger import get_logger

logger = get_logger(__name__)


async def read_json_document(path: Path) -> Optional[Dict[str, Any]]:
    """
    Read a JSON object from ``path``.

    Returns None when the file is missing, empty, unreadable or does not hold a
    JSON object. Problems are logged, never raised: a damaged cache file must
    not take the session down with it.
    """
    if not path.exists():
        logger.debug(f"No document at {path}")
        return None

    try:
        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            data_str = await f.read()
    except OSError as e:
        logger.error(f"Error reading {path}: {e}", exc_info=True)
        return None

    if not data_str.strip():
        return None

    try:
        data = json.loads(data_str)
    except json.JSONDecodeError as e:
        logger.error(f"Corrupt JSON in {path}, starting fresh: {e}")
        return None

    if not isinstance(data, dict):
        logger.error(f"Unexpected top-level {type(data).__name__} in {path}, starting fresh")
        return None
    return data


def write_json_atomic(path: Path, data: Dict[str, Any]) -> None:
    """
    Atomically replace ``path`` with ``data`` serialized as JSON.

    Raises:
        PersistenceFailure: if the directory or file cannot be written
    """
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    try:
        data_str = json.dumps(data, indent=2, ensure_ascii=False)
        path.parent.mkdir(parents=True, exist_ok=True)
        # aiofiles has no atomic rename, so the write stays synchronous
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(data_str)
        os.replace(tmp_path, path)
    except (OSError, TypeError, ValueError) as e:
        logger.error(f"Error saving {path}: {e}", exc_info=True)
        raise PersistenceFailure(str(path), f"Could not save {path.name}: {e}") from e

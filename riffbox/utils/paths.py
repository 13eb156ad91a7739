"""
Path utilities for Riffbox.

This module provides functions for managing the per-user directories used by
the application and for turning track names into safe file names.
"""

import os
import re
from pathlib import Path
from typing import List, Optional

from riffbox.utils.logger import get_logger

APP_DIR_NAME = ".riffbox"
HOME_ENV_VAR = "RIFFBOX_HOME"


def get_project_root() -> Path:
    """
    Get the directory the package is installed in.

    The bundled ffmpeg build is shipped next to the package, so this is the
    anchor for locating it.
    """
    return Path(__file__).resolve().parent.parent


def get_app_home() -> Path:
    """
    Get the root directory for configuration and data.

    ``RIFFBOX_HOME`` overrides the default of ``~/.riffbox``.
    """
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / APP_DIR_NAME


def get_config_dir() -> Path:
    """
    Get the configuration directory for the application.

    Returns:
        Path to the configuration directory
    """
    config_dir = get_app_home() / "config"
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_data_dir() -> Path:
    """
    Get the data directory for the application.

    Falls back to a directory in the user's home if the configured location
    cannot be created.

    Returns:
        Path to the data directory
    """
    logger = get_logger(__name__)
    data_dir = get_app_home() / "data"
    try:
        data_dir.mkdir(parents=True, exist_ok=True)
    except PermissionError:
        fallback_dir = Path.home() / ".riffbox_data"
        logger.error(f"Permission denied when creating data directory {data_dir}, using {fallback_dir}")
        fallback_dir.mkdir(parents=True, exist_ok=True)
        return fallback_dir
    return data_dir


def get_log_file() -> Path:
    """Get the path of the application log file."""
    return get_data_dir() / "riffbox.log"


def get_default_download_dir() -> Path:
    """
    Get the default download directory for the application.

    Returns:
        Path to the default download directory (``~/Music/Riffbox``)
    """
    download_dir = Path.home() / "Music" / "Riffbox"
    download_dir.mkdir(parents=True, exist_ok=True)
    return download_dir


def get_bundled_ffmpeg_dir() -> Path:
    """Get the directory holding the ffmpeg build shipped with the application."""
    return get_project_root() / "ffmpeg" / "bin"


def sanitize_filename(filename: str, max_length: int = 200) -> str:
    """
    Make a track name safe to use as a base file name.

    Characters that are illegal in paths on common filesystems are removed,
    whitespace runs are collapsed to one space and the result is truncated.

    Args:
        filename: The name to sanitize
        max_length: Maximum length of the result

    Returns:
        A sanitized file name (without extension)
    """
    filename = re.sub(r'[<>:"/\\|?*]', '', filename)
    # C0 and C1 control characters; tabs and newlines become spaces
    filename = re.sub(r'[\x00-\x1f\x7f-\x9f]', lambda m: ' ' if m.group().isspace() else '', filename)
    filename = re.sub(r'\s+', ' ', filename).strip()
    filename = filename[:max_length].rstrip()

    if not filename:
        filename = "unnamed"

    return filename


def list_matching_files(directory: Path, base_name: str, extensions: List[str]) -> List[Path]:
    """
    List regular files in ``directory`` whose name starts with ``base_name``
    and whose extension is one of ``extensions``.

    Args:
        directory: Directory to scan (not recursive)
        base_name: Required file name prefix
        extensions: Accepted extensions, lowercase and including the dot

    Returns:
        Matching paths, in directory order
    """
    if not directory.exists():
        return []
    return [
        entry for entry in directory.iterdir()
        if entry.is_file()
        and entry.name.startswith(base_name)
        and entry.suffix.lower() in extensions
    ]


def find_sibling(path: Path, extensions: List[str]) -> Optional[Path]:
    """
    Find a file next to ``path`` with the same stem and one of ``extensions``.

    Extensions are tried in order, so the list doubles as a preference order.
    """
    for ext in extensions:
        candidate = path.with_suffix(ext)
        if candidate.exists():
            return candidate
    return None

"""
Utils package for Riffbox.

This package provides utility functions for the application.
"""

from riffbox.utils.logger import setup_logger, get_logger
from riffbox.utils.paths import (
    get_config_dir, get_data_dir, get_default_download_dir, get_bundled_ffmpeg_dir,
    sanitize_filename, list_matching_files, find_sibling
)

__all__ = [
    'setup_logger',
    'get_logger',
    'get_config_dir',
    'get_data_dir',
    'get_default_download_dir',
    'get_bundled_ffmpeg_dir',
    'sanitize_filename',
    'list_matching_files',
    'find_sibling',
]

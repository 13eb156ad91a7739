"""
Core package for Riffbox.

This package provides core functionality for the application.
"""

from riffbox.core.settings import Settings, AudioFormat, load_settings, save_settings
from riffbox.core.playlist_store import PlaylistStore, LIKED_SONGS_ID, DOWNLOADS_ID
from riffbox.core.download_index import DownloadIndex
from riffbox.core.download_models import DownloadProgress, DownloadResult, DownloadStatus
from riffbox.core.downloader import DownloadManager
from riffbox.core.metadata_resolver import MetadataResolver, VideoMetadata
from riffbox.core.service import MusicService, Ok, Err

__all__ = [
    'Settings',
    'AudioFormat',
    'load_settings',
    'save_settings',
    'PlaylistStore',
    'LIKED_SONGS_ID',
    'DOWNLOADS_ID',
    'DownloadIndex',
    'DownloadProgress',
    'DownloadResult',
    'DownloadStatus',
    'DownloadManager',
    'MetadataResolver',
    'VideoMetadata',
    'MusicService',
    'Ok',
    'Err',
]

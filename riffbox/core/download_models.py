"""
Pydantic models for download progress, results and the download index.
"""
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from riffbox.api.models import Track, now_ms


class DownloadStatus(str, Enum):
    """Lifecycle states of an in-flight download."""
    FETCHING_INFO = "fetching_info"
    DOWNLOADING = "downloading"
    COMPLETE = "complete"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (DownloadStatus.COMPLETE, DownloadStatus.ERROR)


class DownloadProgress(BaseModel):
    """Progress event delivered to the caller's progress callback."""
    trackId: str
    progress: float = 0.0
    status: DownloadStatus = DownloadStatus.DOWNLOADING


class ActiveDownload(BaseModel):
    """An in-flight download. Lives only in memory."""
    track: Track
    process: Optional[Any] = None  # asyncio.subprocess.Process once spawned
    progress: float = 0.0
    status: DownloadStatus = DownloadStatus.DOWNLOADING
    cancelled: bool = False

    model_config = ConfigDict(arbitrary_types_allowed=True)


class DownloadResult(BaseModel):
    """Outcome of a successful download request."""
    track: Track
    file_path: Path
    skipped: bool = False
    message: str = "Download complete"


class DownloadIndexEntry(BaseModel):
    """Record of a completed download in ``downloads.json``."""
    filePath: str
    track: Optional[Track] = None
    downloadedAt: Optional[int] = Field(default_factory=now_ms)

"""
Exceptions raised by the Riffbox core.

Every exception carries an ``ErrorKind`` so the service layer can turn it into
a tagged result without inspecting messages.
"""

from enum import Enum
from typing import Any, Dict, List, Optional


YTDLP_INSTALL_HINT = (
    "yt-dlp not found. Please install yt-dlp: https://github.com/yt-dlp/yt-dlp "
    "(for example `pip install yt-dlp`) and make sure it is on your PATH."
)


class ErrorKind(str, Enum):
    """Failure categories reported to callers."""
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    FORBIDDEN = "forbidden"
    ALREADY_IN_PROGRESS = "already_in_progress"
    INVALID_SOURCE = "invalid_source"
    TOOL_NOT_FOUND = "tool_not_found"
    ACQUISITION_FAILED = "acquisition_failed"
    OUTPUT_MISSING = "output_missing"
    METADATA_UNAVAILABLE = "metadata_unavailable"
    PERSISTENCE_FAILURE = "persistence_failure"
    INVALID_INPUT = "invalid_input"
    UNEXPECTED = "unexpected"


class RiffboxError(Exception):
    """Base exception for Riffbox errors."""
    kind = ErrorKind.UNEXPECTED

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    @property
    def details(self) -> Dict[str, Any]:
        """Structured extra information for the caller."""
        return {}


class NotFound(RiffboxError):
    """Exception raised when a playlist, track or download entry does not exist."""
    kind = ErrorKind.NOT_FOUND


class AlreadyExists(RiffboxError):
    """Exception raised when a playlist name is already taken."""
    kind = ErrorKind.ALREADY_EXISTS


class Forbidden(RiffboxError):
    """Exception raised when mutating a default playlist in a disallowed way."""
    kind = ErrorKind.FORBIDDEN


class AlreadyInProgress(RiffboxError):
    """Exception raised when a track is already being downloaded."""
    kind = ErrorKind.ALREADY_IN_PROGRESS

    def __init__(self, track_id: str):
        self.track_id = track_id
        super().__init__("Download already in progress")

    @property
    def details(self) -> Dict[str, Any]:
        return {"trackId": self.track_id}


class InvalidSource(RiffboxError):
    """Exception raised for source URLs outside the supported shapes."""
    kind = ErrorKind.INVALID_SOURCE

    def __init__(self, url: str, message: str = "Invalid YouTube URL"):
        self.url = url
        super().__init__(message)

    @property
    def details(self) -> Dict[str, Any]:
        return {"url": self.url}


class ToolNotFound(RiffboxError):
    """Exception raised when the external downloader binary cannot be executed."""
    kind = ErrorKind.TOOL_NOT_FOUND

    def __init__(self, binary: str, install_hint: str = YTDLP_INSTALL_HINT):
        self.binary = binary
        self.install_hint = install_hint
        super().__init__(install_hint)

    @property
    def details(self) -> Dict[str, Any]:
        return {"binary": self.binary, "installHint": self.install_hint}


class AcquisitionFailed(RiffboxError):
    """Exception raised when the external downloader exits with an error."""
    kind = ErrorKind.ACQUISITION_FAILED

    def __init__(
        self,
        exit_code: Optional[int],
        message: Optional[str] = None,
        stderr_tail: Optional[List[str]] = None,
    ):
        self.exit_code = exit_code
        self.stderr_tail = stderr_tail or []
        super().__init__(message or f"Download failed with code {exit_code}")

    @property
    def details(self) -> Dict[str, Any]:
        return {"exitCode": self.exit_code, "stderr": self.stderr_tail}


class OutputMissing(RiffboxError):
    """Exception raised when the downloader succeeded but no audio file was found."""
    kind = ErrorKind.OUTPUT_MISSING

    def __init__(self, base_name: str):
        self.base_name = base_name
        super().__init__("Download completed but file not found")

    @property
    def details(self) -> Dict[str, Any]:
        return {"baseName": self.base_name}


class MetadataUnavailable(RiffboxError):
    """Exception raised when fetching video metadata fails or prints nothing."""
    kind = ErrorKind.METADATA_UNAVAILABLE

    def __init__(self, url: str, message: str = "Could not fetch video info"):
        self.url = url
        super().__init__(message)

    @property
    def details(self) -> Dict[str, Any]:
        return {"url": self.url}


class PersistenceFailure(RiffboxError):
    """Exception raised when a store cannot write its file."""
    kind = ErrorKind.PERSISTENCE_FAILURE

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(message)

    @property
    def details(self) -> Dict[str, Any]:
        return {"path": self.path}


class InvalidInput(RiffboxError):
    """Exception raised for malformed caller input, such as an unreadable track payload."""
    kind = ErrorKind.INVALID_INPUT

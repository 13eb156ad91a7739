"""
Metadata lookup for video URLs.

yt-dlp is run in dump-json mode, nothing is downloaded. The result is only
advisory: if yt-dlp prints something that is not JSON, a placeholder result is
returned instead of an error.
"""

import asyncio
import json
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel

from riffbox.core.errors import MetadataUnavailable, ToolNotFound
from riffbox.core.settings import Settings
from riffbox.core.ytdlp import build_metadata_args, match_youtube_url
from riffbox.utils.logger import get_logger, get_tool_logger

UNKNOWN_TITLE = "Unknown Title"
UNKNOWN_ARTIST = "Unknown Artist"


class VideoMetadata(BaseModel):
    """Metadata of a single video."""
    title: str = UNKNOWN_TITLE
    artist: str = UNKNOWN_ARTIST
    thumbnailUrl: Optional[str] = None
    durationSeconds: float = 0
    sourceId: Optional[str] = None
    description: str = ""


def conventional_thumbnail(source_id: str) -> str:
    return f"https://i.ytimg.com/vi/{source_id}/hqdefault.jpg"


def select_thumbnail(info: Dict[str, Any], source_id: Optional[str]) -> Optional[str]:
    """
    Pick a thumbnail URL from yt-dlp's info dict.

    The explicit ``thumbnail`` field wins, then the largest entry of
    ``thumbnails`` by pixel area, then the conventional URL for the id.
    """
    if info.get("thumbnail"):
        return info["thumbnail"]

    thumbnails: List[Dict[str, Any]] = [
        t for t in (info.get("thumbnails") or []) if isinstance(t, dict) and t.get("url")
    ]
    if thumbnails:
        best = max(thumbnails, key=lambda t: (t.get("width") or 0) * (t.get("height") or 0))
        return best["url"]

    if source_id:
        return conventional_thumbnail(source_id)
    return None


def select_artist(info: Dict[str, Any]) -> str:
    for key in ("uploader", "channel", "artist"):
        if info.get(key):
            return str(info[key])
    return UNKNOWN_ARTIST


def parse_metadata(output: str, url: str) -> VideoMetadata:
    """
    Build a VideoMetadata from yt-dlp's ``--dump-json`` output.

    Unparseable output degrades to placeholder values.
    """
    fallback_id = match_youtube_url(url)
    try:
        info = json.loads(output)
        if not isinstance(info, dict):
            raise ValueError(f"expected a JSON object, got {type(info).__name__}")
    except ValueError as e:
        get_logger(__name__).warning(f"Could not parse metadata for {url}: {e}")
        return VideoMetadata(
            sourceId=fallback_id,
            thumbnailUrl=conventional_thumbnail(fallback_id) if fallback_id else None,
        )

    source_id = info.get("id") or fallback_id
    try:
        duration = float(info.get("duration") or 0)
    except (TypeError, ValueError):
        duration = 0

    return VideoMetadata(
        title=info.get("title") or UNKNOWN_TITLE,
        artist=select_artist(info),
        thumbnailUrl=select_thumbnail(info, source_id),
        durationSeconds=duration,
        sourceId=source_id,
        description=info.get("description") or "",
    )


class MetadataResolver:
    """Runs yt-dlp in metadata-only mode."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.logger = get_logger(__name__)
        self.tool_logger = get_tool_logger()

    async def resolve(self, url: str, on_spawn: Optional[Callable[[Any], None]] = None) -> VideoMetadata:
        """
        Fetch metadata for ``url``.

        Args:
            url: Video URL
            on_spawn: Called with the yt-dlp process once it is running, so the
                caller can terminate it

        Raises:
            ToolNotFound: if yt-dlp is not installed
            MetadataUnavailable: if yt-dlp fails or prints nothing
        """
        binary = self.settings.ytdlp_binary
        self.logger.info(f"Fetching video info: {url}")
        try:
            process = await asyncio.create_subprocess_exec(
                binary, *build_metadata_args(url),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE
            )
        except FileNotFoundError as e:
            raise ToolNotFound(binary) from e
        except OSError as e:
            raise MetadataUnavailable(url, f"Could not start {binary}: {e}") from e

        if on_spawn is not None:
            on_spawn(process)

        stdout, stderr = await process.communicate()
        output = stdout.decode("utf-8", errors="replace").strip()
        err = stderr.decode("utf-8", errors="replace").strip()
        for line in err.splitlines():
            if line.strip():
                self.tool_logger.warning(line.rstrip())

        if process.returncode != 0 or not output:
            self.logger.error(f"Fetching info for {url} failed (code {process.returncode})")
            raise MetadataUnavailable(url)

        return parse_metadata(output, url)

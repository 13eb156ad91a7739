"""
Helpers for driving yt-dlp.

This module knows the command lines Riffbox passes to yt-dlp, the YouTube URL
shapes it accepts, how progress is read from yt-dlp's output and how the files
yt-dlp leaves behind are located.
"""

import random
import re
import string
import time
from pathlib import Path
from typing import List, Optional, Tuple

from riffbox.utils.paths import list_matching_files, find_sibling

# Preference order when several audio files match
AUDIO_EXTENSIONS = [".mp3", ".m4a", ".webm", ".opus", ".ogg", ".wav"]
IMAGE_EXTENSIONS = [".jpg", ".jpeg", ".png", ".webp"]

YOUTUBE_URL_RE = re.compile(
    r"^(?:https?://)?"
    r"(?:(?:www|m|music)\.)?"
    r"(?:"
    r"youtube\.com/(?:watch\?(?:[^#\s]*&)?v=|shorts/|embed/|live/|v/)"
    r"|youtu\.be/"
    r")"
    r"(?P<id>[A-Za-z0-9_-]{11})"
    r"(?:[?&#/][^\s]*)?$"
)

PERCENT_RE = re.compile(r"(\d+(?:\.\d+)?)%")


def match_youtube_url(url: str) -> Optional[str]:
    """
    Check ``url`` against the accepted YouTube URL shapes.

    Returns:
        The 11-character video id, or None if the URL is not accepted
    """
    if not url:
        return None
    match = YOUTUBE_URL_RE.match(url.strip())
    return match.group("id") if match else None


def generate_import_id() -> str:
    """Fresh id for an imported track: ``yt_<millis>_<9 random chars>``."""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"yt_{int(time.time() * 1000)}_{suffix}"


def build_search_query(name: str, artist_names: str, suffix: str = "audio") -> str:
    return " ".join(part for part in (name, artist_names, suffix) if part)


def build_download_args(
    source: str,
    output_template: Path,
    ffmpeg_location: Path,
    audio_format: str = "mp3",
    write_thumbnail: bool = False,
) -> List[str]:
    """
    Arguments for an audio download.

    Args:
        source: ``ytsearch1:<query>`` or a literal video URL
        output_template: Output path, ending in ``.%(ext)s``
        ffmpeg_location: Directory of the bundled ffmpeg build
        audio_format: Container to convert to
        write_thumbnail: Also keep the thumbnail as a jpg next to the audio
    """
    args = [
        source,
        "-x",
        "--audio-format", audio_format,
        "--audio-quality", "0",
        "-o", str(output_template),
        "--no-playlist",
        "--embed-thumbnail",
        "--add-metadata",
        "--ffmpeg-location", str(ffmpeg_location),
        "--progress",
        "--newline",
    ]
    if write_thumbnail:
        args += ["--write-thumbnail", "--convert-thumbnails", "jpg"]
    return args


def build_metadata_args(url: str) -> List[str]:
    """Arguments for a metadata-only run against ``url``."""
    return [url, "--dump-json", "--skip-download", "--no-playlist"]


class ProgressParser:
    """
    Extracts percentages from yt-dlp output.

    Repeated values are reported once, so callers only see changes.
    """

    def __init__(self):
        self.last_progress: Optional[float] = None

    def feed(self, chunk: str) -> Optional[float]:
        """
        Parse one chunk of output.

        Returns:
            The new percentage, or None if the chunk holds none or repeats the last one
        """
        match = PERCENT_RE.search(chunk)
        if not match:
            return None
        progress = min(float(match.group(1)), 100.0)
        if progress == self.last_progress:
            return None
        self.last_progress = progress
        return progress


def resolve_output(directory: Path, base_name: str) -> Tuple[Optional[Path], Optional[Path]]:
    """
    Locate the audio file (and thumbnail) yt-dlp produced for ``base_name``.

    yt-dlp may pick a different extension than requested, so any accepted
    audio extension counts. Exact stem matches win over longer names sharing
    the prefix, then the newest file, then extension preference.

    Returns:
        (audio path or None, sibling image path or None)
    """
    candidates = list_matching_files(directory, base_name, AUDIO_EXTENSIONS)
    if not candidates:
        return None, None

    def sort_key(path: Path):
        return (
            path.stem != base_name,
            -path.stat().st_mtime,
            AUDIO_EXTENSIONS.index(path.suffix.lower()),
        )

    audio = sorted(candidates, key=sort_key)[0]
    thumbnail = find_sibling(audio, IMAGE_EXTENSIONS)
    return audio, thumbnail

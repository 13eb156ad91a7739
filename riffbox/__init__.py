"""
Riffbox - a local music library that fetches audio with yt-dlp.

This package provides functionality for:
- Downloading audio for catalog tracks by searching YouTube
- Importing tracks directly from YouTube URLs
- Keeping an index of downloaded files
- Managing playlists, including "Liked Songs" and "Downloads"
"""

__version__ = "1.0.0"
__license__ = "MIT"

# Package metadata
__all__ = ["__version__", "__license__"]

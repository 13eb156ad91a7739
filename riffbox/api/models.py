"""
Data models for Riffbox.

This module defines Pydantic models for tracks as delivered by the catalog
client or the metadata resolver, and for the locally stored playlists.
Field names follow the camelCase keys of the persisted JSON documents.
"""

import time
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class AlbumImage(BaseModel):
    """Album artwork entry."""
    url: str
    width: Optional[int] = None
    height: Optional[int] = None


class Album(BaseModel):
    """Album reference attached to a catalog track."""
    id: Optional[str] = None
    name: Optional[str] = None
    images: List[AlbumImage] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")

    @field_validator("id", mode='before')
    def validate_id(cls, v):
        """Convert integer ID to string."""
        return str(v) if v is not None else None


class Track(BaseModel):
    """
    Track model.

    Catalog tracks and tracks imported from a video URL share this shape.
    Unknown keys from the catalog payload are kept so that a track stored in
    a playlist round-trips without losing data.
    """
    id: str
    name: str
    artistNames: str = "Unknown Artist"
    album: Optional[Album] = None
    durationMs: int = 0
    previewUrl: Optional[str] = None
    filePath: Optional[str] = None
    thumbnailUrl: Optional[str] = None
    thumbnailPath: Optional[str] = None
    isDownloaded: bool = False
    isLiked: bool = False
    isYouTubeImport: bool = False
    sourceUrl: Optional[str] = None
    youtubeId: Optional[str] = None
    addedAt: Optional[int] = None
    downloadedAt: Optional[int] = None

    model_config = ConfigDict(extra="allow")

    @field_validator("id", mode='before')
    def validate_id(cls, v):
        """Convert integer ID to string."""
        return str(v) if v is not None else None

    @field_validator("album", mode='before')
    def validate_album(cls, v):
        """Convert empty album object to None."""
        if isinstance(v, dict) and not v:
            return None
        return v

    @property
    def cover_image(self) -> Optional[str]:
        """Best available artwork: album art, then local thumbnail, then remote thumbnail."""
        if self.album and self.album.images:
            return self.album.images[0].url
        return self.thumbnailPath or self.thumbnailUrl

    @property
    def duration_formatted(self) -> str:
        """Format the duration as MM:SS."""
        seconds = self.durationMs // 1000
        minutes, seconds = divmod(seconds, 60)
        return f"{minutes:02d}:{seconds:02d}"

    @property
    def display_name(self) -> str:
        return f"{self.artistNames} - {self.name}"


class Playlist(BaseModel):
    """A named, ordered collection of tracks."""
    id: str
    name: str
    tracks: List[Track] = Field(default_factory=list)
    createdAt: int = Field(default_factory=now_ms)
    isDefault: bool = False
    customCover: Optional[str] = None

    def index_of(self, track_id: str) -> int:
        """Position of ``track_id`` in the playlist, or -1."""
        for i, track in enumerate(self.tracks):
            if track.id == track_id:
                return i
        return -1

    def contains(self, track_id: str) -> bool:
        return self.index_of(track_id) != -1


class PlaylistSummary(BaseModel):
    """Lightweight playlist listing entry."""
    id: str
    name: str
    trackCount: int
    createdAt: int
    isDefault: bool = False
    customCover: Optional[str] = None
    firstTrackImage: Optional[str] = None

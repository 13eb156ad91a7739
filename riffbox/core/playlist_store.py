"""
Playlist storage for Riffbox.

This module keeps the user's playlists in a single ``playlists.json`` document
keyed by playlist name. Two default playlists always exist: "Liked Songs" and
"Downloads". Every mutation rewrites the whole document.
"""

import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from riffbox.api.models import Playlist, PlaylistSummary, Track, now_ms
from riffbox.core.errors import AlreadyExists, Forbidden, NotFound
from riffbox.core.storage import read_json_document, write_json_atomic
from riffbox.utils.logger import get_logger

LIKED_SONGS_ID = "liked-songs"
LIKED_SONGS_NAME = "Liked Songs"
DOWNLOADS_ID = "downloads"
DOWNLOADS_NAME = "Downloads"

DEFAULT_PLAYLISTS = (
    (LIKED_SONGS_NAME, LIKED_SONGS_ID),
    (DOWNLOADS_NAME, DOWNLOADS_ID),
)


def make_playlist_id(name: str, created_at: int) -> str:
    """Slug for a user playlist: lowercased name, whitespace runs as dashes, creation millis."""
    slug = re.sub(r"\s+", "-", name.strip().lower())
    return f"{slug}-{created_at}"


class PlaylistStore:
    """
    Durable mapping of playlist names to ordered track lists.

    Call :meth:`initialize` before use; tests point it at a temporary file.
    """

    def __init__(self):
        self.logger = get_logger(__name__)
        self.path: Optional[Path] = None
        self.playlists: Dict[str, Playlist] = {}

    async def initialize(self, storage_path: Path) -> None:
        """
        Load playlists from ``storage_path`` and make sure the defaults exist.

        Args:
            storage_path: Location of the playlists JSON document
        """
        self.path = Path(storage_path)
        self.playlists = {}

        data = await read_json_document(self.path)
        for key, raw in (data or {}).items():
            playlist = self._load_playlist(key, raw)
            if playlist is not None:
                self.playlists[key] = playlist

        changed = False
        for name, playlist_id in DEFAULT_PLAYLISTS:
            if name not in self.playlists:
                self.playlists[name] = Playlist(id=playlist_id, name=name, isDefault=True)
                changed = True

        if changed:
            self._save()

        self.logger.info(f"Loaded {len(self.playlists)} playlists from {self.path}")

    def _load_playlist(self, key: str, raw: Any) -> Optional[Playlist]:
        """
        Validate one stored playlist.

        Unreadable tracks are dropped one by one so a single bad entry does
        not take the rest of the playlist with it.
        """
        if not isinstance(raw, dict):
            self.logger.error(f"Skipping unreadable playlist '{key}': not an object")
            return None

        raw_tracks = raw.get("tracks")
        tracks: List[Track] = []
        for i, raw_track in enumerate(raw_tracks if isinstance(raw_tracks, list) else []):
            try:
                tracks.append(Track.model_validate(raw_track))
            except ValidationError as e:
                self.logger.warning(f"Dropping unreadable track #{i} of playlist '{key}': {e.error_count()} error(s)")

        try:
            return Playlist.model_validate({**raw, "tracks": tracks})
        except ValidationError as e:
            self.logger.error(f"Skipping unreadable playlist '{key}': {e}")
            return None

    def _save(self) -> None:
        if self.path is None:
            raise RuntimeError("PlaylistStore used before initialize()")
        data = {name: p.model_dump(mode='json') for name, p in self.playlists.items()}
        write_json_atomic(self.path, data)

    def _find(self, playlist_id: str) -> Optional[Playlist]:
        for playlist in self.playlists.values():
            if playlist.id == playlist_id:
                return playlist
        return None

    def _require(self, playlist_id: str) -> Playlist:
        playlist = self._find(playlist_id)
        if playlist is None:
            raise NotFound("Playlist not found")
        return playlist

    def _liked(self) -> Playlist:
        liked = self.playlists.get(LIKED_SONGS_NAME)
        if liked is None:
            liked = Playlist(id=LIKED_SONGS_ID, name=LIKED_SONGS_NAME, isDefault=True)
            self.playlists[LIKED_SONGS_NAME] = liked
        return liked

    def list_playlists(self) -> List[PlaylistSummary]:
        """Summaries of every playlist, in storage order."""
        summaries = []
        for p in self.playlists.values():
            summaries.append(PlaylistSummary(
                id=p.id,
                name=p.name,
                trackCount=len(p.tracks),
                createdAt=p.createdAt,
                isDefault=p.isDefault,
                customCover=p.customCover,
                firstTrackImage=p.tracks[0].cover_image if p.tracks else None,
            ))
        return summaries

    def get_playlist(self, playlist_id: str) -> Playlist:
        """
        Raises:
            NotFound: if no playlist has this id
        """
        return self._require(playlist_id)

    async def create_playlist(self, name: str) -> Playlist:
        """
        Create an empty user playlist.

        Raises:
            AlreadyExists: if a playlist with exactly this name exists
        """
        if name in self.playlists:
            raise AlreadyExists("Playlist already exists")

        created_at = now_ms()
        playlist = Playlist(id=make_playlist_id(name, created_at), name=name, createdAt=created_at)
        self.playlists[name] = playlist
        self._save()
        self.logger.info(f"Created playlist '{name}' ({playlist.id})")
        return playlist

    async def delete_playlist(self, playlist_id: str) -> None:
        """
        Raises:
            NotFound: if no playlist has this id
            Forbidden: if the playlist is one of the defaults
        """
        playlist = self._require(playlist_id)
        if playlist.isDefault:
            raise Forbidden("Cannot delete default playlist")

        del self.playlists[playlist.name]
        self._save()
        self.logger.info(f"Deleted playlist '{playlist.name}'")

    async def add_track(self, playlist_id: str, track: Track) -> bool:
        """
        Append ``track`` to a playlist.

        Returns:
            True if the track was added, False if it was already there

        Raises:
            NotFound: if no playlist has this id
        """
        playlist = self._require(playlist_id)
        if playlist.contains(track.id):
            return False

        playlist.tracks.append(track.model_copy(update={"addedAt": now_ms()}))
        self._save()
        return True

    async def remove_track(self, playlist_id: str, track_id: str) -> None:
        """
        Raises:
            NotFound: if the playlist or the track in it does not exist
        """
        playlist = self._require(playlist_id)
        index = playlist.index_of(track_id)
        if index == -1:
            raise NotFound("Track not found in playlist")

        del playlist.tracks[index]
        self._save()

    async def remove_track_everywhere(self, track_id: str) -> bool:
        """
        Remove a track from every playlist that holds it, saving once.

        Returns:
            True if the track was removed from at least one playlist
        """
        removed = False
        for playlist in self.playlists.values():
            index = playlist.index_of(track_id)
            if index != -1:
                del playlist.tracks[index]
                removed = True

        if removed:
            self._save()
        return removed

    async def toggle_like(self, track: Track) -> bool:
        """
        Add the track to or remove it from "Liked Songs".

        Returns:
            True if the track is liked afterwards
        """
        liked = self._liked()
        index = liked.index_of(track.id)
        if index == -1:
            liked.tracks.append(track.model_copy(update={"addedAt": now_ms()}))
            now_liked = True
        else:
            del liked.tracks[index]
            now_liked = False

        self._save()
        return now_liked

    def is_liked(self, track_id: str) -> bool:
        liked = self.playlists.get(LIKED_SONGS_NAME)
        return liked is not None and liked.contains(track_id)

    def liked_tracks(self) -> List[Track]:
        liked = self.playlists.get(LIKED_SONGS_NAME)
        return list(liked.tracks) if liked else []

    def is_in_playlist(self, playlist_id: str, track_id: str) -> bool:
        playlist = self._find(playlist_id)
        return playlist is not None and playlist.contains(track_id)

    async def set_cover(self, playlist_id: str, cover_path: str) -> None:
        """
        Raises:
            NotFound: if no playlist has this id
        """
        playlist = self._require(playlist_id)
        playlist.customCover = cover_path
        self._save()

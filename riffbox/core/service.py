"""
Caller-facing service for Riffbox.

``MusicService`` is the boundary the user interface talks to. Every operation
returns either ``Ok`` or ``Err``; exceptions from the core never cross it.
"""

import shutil
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from riffbox.api.models import Track, now_ms
from riffbox.core.download_index import DownloadIndex
from riffbox.core.downloader import DownloadManager, ProgressCallback
from riffbox.core.errors import ErrorKind, InvalidInput, NotFound, PersistenceFailure, RiffboxError
from riffbox.core.playlist_store import PlaylistStore
from riffbox.core.settings import Settings
from riffbox.utils.logger import get_logger

COVER_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp"}


class Ok(BaseModel):
    """Successful outcome with an operation-specific payload."""
    success: Literal[True] = True
    message: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Flat ``{success, message?, **data}`` form."""
        dumped = self.model_dump(mode='json')
        result: Dict[str, Any] = {"success": True}
        if self.message is not None:
            result["message"] = self.message
        result.update(dumped["data"])
        return result


class Err(BaseModel):
    """Failed outcome: error kind, human-readable message and details."""
    success: Literal[False] = False
    kind: ErrorKind
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Flat ``{success: False, error, message, **details}`` form."""
        dumped = self.model_dump(mode='json')
        return {"success": False, "error": dumped["kind"], "message": self.message, **dumped["details"]}

    @classmethod
    def from_exception(cls, error: RiffboxError) -> "Err":
        return cls(kind=error.kind, message=error.message, details=error.details)


Result = Union[Ok, Err]


class MusicService:
    """
    Playlists, likes and downloads behind one result-returning interface.

    Build it with :meth:`create`, or pass already initialized collaborators.
    """

    def __init__(
        self,
        settings: Settings,
        playlist_store: PlaylistStore,
        download_index: DownloadIndex,
        download_manager: DownloadManager,
    ):
        self.settings = settings
        self.playlists = playlist_store
        self.downloads = download_index
        self.manager = download_manager
        self.logger = get_logger(__name__)

    @classmethod
    async def create(cls, settings: Settings) -> "MusicService":
        """Initialize both stores from the settings' data directory and wire the downloader."""
        playlist_store = PlaylistStore()
        await playlist_store.initialize(settings.playlists_file)
        download_index = DownloadIndex()
        await download_index.initialize(settings.downloads_file)
        manager = DownloadManager(settings, download_index, playlist_store)
        return cls(settings, playlist_store, download_index, manager)

    async def _call(self, operation: str, action: Callable[[], Awaitable[Result]]) -> Result:
        try:
            return await action()
        except RiffboxError as e:
            self.logger.warning(f"{operation} failed: {e.message}")
            return Err.from_exception(e)
        except Exception as e:
            self.logger.exception(f"Unexpected error in {operation}")
            return Err(kind=ErrorKind.UNEXPECTED, message=str(e) or type(e).__name__)

    @staticmethod
    def _to_track(track: Union[Track, Dict[str, Any]]) -> Track:
        if isinstance(track, Track):
            return track
        try:
            return Track.model_validate(track)
        except ValidationError as e:
            raise InvalidInput(f"Invalid track data: {e.error_count()} validation error(s)") from e

    # ==================== Downloads ====================

    async def download_track(
        self,
        track: Union[Track, Dict[str, Any]],
        on_progress: Optional[ProgressCallback] = None,
    ) -> Result:
        async def action() -> Result:
            result = await self.manager.download_track(self._to_track(track), on_progress)
            return Ok(message=result.message, data={"filePath": str(result.file_path)})
        return await self._call("download_track", action)

    async def import_url(self, url: str, on_progress: Optional[ProgressCallback] = None) -> Result:
        async def action() -> Result:
            result = await self.manager.import_url(url, on_progress)
            return Ok(message=result.message, data={"track": result.track, "filePath": str(result.file_path)})
        return await self._call("import_url", action)

    async def cancel_download(self, track_id: str) -> Result:
        async def action() -> Result:
            if not self.manager.cancel(track_id):
                raise NotFound("Download not found")
            return Ok()
        return await self._call("cancel_download", action)

    async def delete_download(self, track_id: str) -> Result:
        async def action() -> Result:
            message = await self.manager.delete_download(track_id)
            return Ok(message=message)
        return await self._call("delete_download", action)

    async def is_downloaded(self, track_id: str) -> Result:
        async def action() -> Result:
            downloaded = self.downloads.is_downloaded(track_id)
            return Ok(data={"downloaded": downloaded, "filePath": self.downloads.get_path(track_id)})
        return await self._call("is_downloaded", action)

    async def get_download_path(self, track_id: str) -> Result:
        async def action() -> Result:
            return Ok(data={"filePath": self.downloads.get_path(track_id)})
        return await self._call("get_download_path", action)

    async def list_downloads(self) -> Result:
        async def action() -> Result:
            return Ok(data={"downloads": self.downloads.list_downloaded()})
        return await self._call("list_downloads", action)

    async def list_active_downloads(self) -> Result:
        async def action() -> Result:
            return Ok(data={"active": self.manager.list_active()})
        return await self._call("list_active_downloads", action)

    async def open_download_dir(self) -> Result:
        async def action() -> Result:
            self.settings.download_path.mkdir(parents=True, exist_ok=True)
            return Ok(data={"path": str(self.settings.download_path)})
        return await self._call("open_download_dir", action)

    # ==================== Playlists ====================

    async def list_playlists(self) -> Result:
        async def action() -> Result:
            return Ok(data={"playlists": self.playlists.list_playlists()})
        return await self._call("list_playlists", action)

    async def get_playlist(self, playlist_id: str) -> Result:
        async def action() -> Result:
            return Ok(data={"playlist": self.playlists.get_playlist(playlist_id)})
        return await self._call("get_playlist", action)

    async def create_playlist(self, name: str) -> Result:
        async def action() -> Result:
            if not name or not name.strip():
                raise InvalidInput("Playlist name cannot be empty")
            return Ok(data={"playlist": await self.playlists.create_playlist(name)})
        return await self._call("create_playlist", action)

    async def delete_playlist(self, playlist_id: str) -> Result:
        async def action() -> Result:
            await self.playlists.delete_playlist(playlist_id)
            return Ok()
        return await self._call("delete_playlist", action)

    async def add_to_playlist(self, playlist_id: str, track: Union[Track, Dict[str, Any]]) -> Result:
        async def action() -> Result:
            added = await self.playlists.add_track(playlist_id, self._to_track(track))
            message = "Track added to playlist" if added else "Track already in playlist"
            return Ok(message=message, data={"added": added})
        return await self._call("add_to_playlist", action)

    async def remove_from_playlist(self, playlist_id: str, track_id: str) -> Result:
        async def action() -> Result:
            await self.playlists.remove_track(playlist_id, track_id)
            return Ok()
        return await self._call("remove_from_playlist", action)

    async def toggle_like(self, track: Union[Track, Dict[str, Any]]) -> Result:
        async def action() -> Result:
            liked = await self.playlists.toggle_like(self._to_track(track))
            return Ok(data={"liked": liked})
        return await self._call("toggle_like", action)

    async def is_liked(self, track_id: str) -> Result:
        async def action() -> Result:
            return Ok(data={"liked": self.playlists.is_liked(track_id)})
        return await self._call("is_liked", action)

    async def list_liked(self) -> Result:
        async def action() -> Result:
            return Ok(data={"tracks": self.playlists.liked_tracks()})
        return await self._call("list_liked", action)

    async def set_playlist_cover(self, playlist_id: str, cover_path: str) -> Result:
        async def action() -> Result:
            await self.playlists.set_cover(playlist_id, cover_path)
            return Ok(data={"coverPath": cover_path})
        return await self._call("set_playlist_cover", action)

    async def import_playlist_cover(self, playlist_id: str, source_path: Union[str, Path]) -> Result:
        """Copy an image into the covers directory and use it as the playlist cover."""
        async def action() -> Result:
            self.playlists.get_playlist(playlist_id)
            source = Path(source_path)
            ext = source.suffix.lower()
            if ext not in COVER_EXTENSIONS:
                raise InvalidInput(f"Unsupported cover image type: {ext or 'none'}")
            if not source.is_file():
                raise NotFound(f"Image not found: {source}")

            covers_dir = self.settings.covers_dir
            dest = covers_dir / f"{playlist_id}-{now_ms()}{ext}"
            try:
                covers_dir.mkdir(parents=True, exist_ok=True)
                shutil.copyfile(source, dest)
            except OSError as e:
                raise PersistenceFailure(str(dest), f"Could not copy cover image: {e}") from e

            await self.playlists.set_cover(playlist_id, str(dest))
            return Ok(data={"coverPath": str(dest)})
        return await self._call("import_playlist_cover", action)

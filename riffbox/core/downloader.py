"""
Download functionality for Riffbox.

This module runs yt-dlp to fetch audio for a track, either by searching for
"<title> <artist>" or from a YouTube URL. It keeps track of the downloads that
are running, reports progress while yt-dlp works, finds the file yt-dlp wrote
and registers it in the download index and the "Downloads" playlist.
"""

import asyncio
from collections import deque
from pathlib import Path
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional, Union

from riffbox.api.models import Track, now_ms
from riffbox.core.download_index import DownloadIndex
from riffbox.core.download_models import ActiveDownload, DownloadProgress, DownloadResult, DownloadStatus
from riffbox.core.errors import (
    AcquisitionFailed, AlreadyInProgress, InvalidSource, MetadataUnavailable, NotFound,
    OutputMissing, PersistenceFailure, RiffboxError, ToolNotFound
)
from riffbox.core.metadata_resolver import MetadataResolver
from riffbox.core.playlist_store import DOWNLOADS_ID, PlaylistStore
from riffbox.core.settings import Settings
from riffbox.core.ytdlp import (
    ProgressParser, build_download_args, build_search_query, generate_import_id,
    match_youtube_url, resolve_output
)
from riffbox.utils.logger import get_logger, get_tool_logger
from riffbox.utils.paths import sanitize_filename

ProgressCallback = Callable[[DownloadProgress], Awaitable[None]]

STDERR_TAIL_LINES = 20


class DownloadManager:
    """
    Runs and tracks yt-dlp downloads.

    At most one download per track id runs at a time; a second request for a
    running id is rejected rather than queued. Different tracks download
    concurrently, optionally bounded by ``Settings.max_concurrent_downloads``.
    """

    def __init__(
        self,
        settings: Settings,
        download_index: DownloadIndex,
        playlist_store: PlaylistStore,
        metadata_resolver: Optional[MetadataResolver] = None,
    ):
        self.settings = settings
        self.download_index = download_index
        self.playlist_store = playlist_store
        self.metadata_resolver = metadata_resolver or MetadataResolver(settings)
        self.logger = get_logger(__name__)
        self.tool_logger = get_tool_logger()
        self.active: Dict[str, ActiveDownload] = {}
        self._slots: Optional[asyncio.Semaphore] = None
        if settings.max_concurrent_downloads:
            self._slots = asyncio.Semaphore(settings.max_concurrent_downloads)

    @property
    def download_path(self) -> Path:
        return self.settings.download_path

    def base_name_for(self, artist_names: str, name: str) -> str:
        """File name (without extension) for a track: ``<artist> - <title>``."""
        return sanitize_filename(f"{artist_names} - {name}", self.settings.max_filename_length)

    def is_active(self, track_id: str) -> bool:
        return track_id in self.active

    def list_active(self) -> List[Dict[str, Any]]:
        """Snapshot of the running downloads."""
        return [
            {
                "id": track_id,
                "track": entry.track,
                "progress": entry.progress,
                "status": entry.status,
            }
            for track_id, entry in self.active.items()
        ]

    async def download_track(self, track: Track, on_progress: Optional[ProgressCallback] = None) -> DownloadResult:
        """
        Download audio for a catalog track by searching YouTube.

        Returns immediately with the existing path if the track is already
        downloaded.

        Raises:
            AlreadyInProgress: if the track is already downloading
            ToolNotFound: if yt-dlp is not installed
            AcquisitionFailed: if yt-dlp exits with an error
            OutputMissing: if yt-dlp succeeded but no audio file was found
        """
        existing = self.download_index.get_path(track.id)
        if existing:
            self.logger.info(f"Track {track.id} already downloaded: {existing}")
            return DownloadResult(
                track=track,
                file_path=Path(existing),
                skipped=True,
                message="Track already downloaded",
            )

        if track.id in self.active:
            raise AlreadyInProgress(track.id)

        query = build_search_query(track.name, track.artistNames, self.settings.search_suffix)
        base_name = self.base_name_for(track.artistNames, track.name)
        entry = self._register(track, DownloadStatus.DOWNLOADING)

        self.logger.info(f"Starting download: {query}")
        return await self._acquire(entry, f"ytsearch1:{query}", base_name, on_progress)

    async def import_url(self, url: str, on_progress: Optional[ProgressCallback] = None) -> DownloadResult:
        """
        Download audio from a YouTube URL as a new track.

        The video's metadata is fetched first and used to name the track and
        the file. The thumbnail is kept next to the audio file.

        Raises:
            InvalidSource: if the URL is not a recognised YouTube URL
            MetadataUnavailable: if the video info cannot be fetched
            ToolNotFound, AcquisitionFailed, OutputMissing: as for download_track
        """
        video_id = match_youtube_url(url)
        if not video_id:
            raise InvalidSource(url)

        track_id = generate_import_id()
        placeholder = Track(
            id=track_id,
            name=url,
            isYouTubeImport=True,
            sourceUrl=url,
            youtubeId=video_id,
        )
        entry = self._register(placeholder, DownloadStatus.FETCHING_INFO)

        async def fetch_info() -> str:
            await self._emit(on_progress, track_id, 0, DownloadStatus.FETCHING_INFO)
            try:
                info = await self.metadata_resolver.resolve(url, on_spawn=lambda p: self._attach(entry, p))
            except MetadataUnavailable:
                if entry.cancelled:
                    raise AcquisitionFailed(None, "Download cancelled") from None
                raise
            if entry.cancelled:
                raise AcquisitionFailed(None, "Download cancelled")
            entry.track = placeholder.model_copy(update={
                "name": info.title,
                "artistNames": info.artist,
                "durationMs": int(info.durationSeconds * 1000),
                "thumbnailUrl": info.thumbnailUrl,
                "youtubeId": info.sourceId or video_id,
            })
            entry.status = DownloadStatus.DOWNLOADING
            return self.base_name_for(info.artist, info.title)

        self.logger.info(f"Importing {url} as {track_id}")
        return await self._acquire(entry, url, fetch_info, on_progress, write_thumbnail=True)

    def cancel(self, track_id: str) -> bool:
        """
        Stop a running download.

        The yt-dlp process is terminated and the download is forgotten; files
        yt-dlp already wrote are left in place.

        Returns:
            False if nothing was running for ``track_id``
        """
        entry = self.active.pop(track_id, None)
        if entry is None:
            return False

        entry.cancelled = True
        process = entry.process
        if process is not None and process.returncode is None:
            try:
                process.terminate()
            except ProcessLookupError:
                pass
        self.logger.info(f"Cancelled download of {track_id}")
        return True

    async def delete_download(self, track_id: str) -> str:
        """
        Delete a downloaded track: its file, its index entry and its playlist entries.

        Returns:
            A message describing what was removed

        Raises:
            NotFound: if the track is not in the download index
            PersistenceFailure: if the file or a store cannot be written
        """
        entry = self.download_index.get_entry(track_id)
        if entry is None:
            raise NotFound("Track not found in downloads")

        file_path = Path(entry.filePath)
        file_existed = file_path.exists()
        if file_existed:
            try:
                file_path.unlink()
            except OSError as e:
                raise PersistenceFailure(str(file_path), f"Could not delete {file_path.name}: {e}") from e

        if entry.track and entry.track.thumbnailPath:
            thumbnail = Path(entry.track.thumbnailPath)
            try:
                thumbnail.unlink(missing_ok=True)
            except OSError as e:
                self.logger.warning(f"Could not delete thumbnail {thumbnail}: {e}")

        await self.download_index.remove_entry(track_id)
        await self.playlist_store.remove_track_everywhere(track_id)

        if file_existed:
            self.logger.info(f"Deleted download {track_id} ({file_path})")
            return "Download deleted"
        self.logger.info(f"Removed download entry {track_id}, file was already gone")
        return "Entry removed (file was already deleted)"

    def _register(self, track: Track, status: DownloadStatus) -> ActiveDownload:
        entry = ActiveDownload(track=track, status=status)
        self.active[track.id] = entry
        return entry

    def _attach(self, entry: ActiveDownload, process: Any) -> None:
        """Make ``process`` the one ``cancel`` terminates; a cancel that came first applies now."""
        entry.process = process
        if entry.cancelled and process.returncode is None:
            process.terminate()

    def _release(self, track_id: str, entry: ActiveDownload) -> None:
        # The entry may already be gone (cancel) or replaced by a newer request
        if self.active.get(track_id) is entry:
            del self.active[track_id]

    async def _emit(
        self,
        on_progress: Optional[ProgressCallback],
        track_id: str,
        progress: float,
        status: DownloadStatus,
    ) -> None:
        if on_progress is None:
            return
        try:
            await on_progress(DownloadProgress(trackId=track_id, progress=progress, status=status))
        except Exception:
            self.logger.error(f"Progress callback failed for {track_id}", exc_info=True)

    async def _acquire(
        self,
        entry: ActiveDownload,
        source: str,
        base_name: Union[str, Callable[[], Awaitable[str]]],
        on_progress: Optional[ProgressCallback],
        write_thumbnail: bool = False,
    ) -> DownloadResult:
        """
        Drive one registered download to its end.

        ``base_name`` is either the file name or a coroutine function that
        does preliminary work (fetching video info) and returns it. Exactly one
        terminal event is emitted, and the entry is released before returning
        or raising.
        """
        track_id = entry.track.id
        try:
            if callable(base_name):
                base_name = await base_name()
            if self._slots is not None:
                async with self._slots:
                    result = await self._run(entry, source, base_name, on_progress, write_thumbnail)
            else:
                result = await self._run(entry, source, base_name, on_progress, write_thumbnail)
        except Exception as e:
            level = "warning" if isinstance(e, RiffboxError) else "error"
            getattr(self.logger, level)(f"Download of {track_id} failed: {e}")
            await self._emit(on_progress, track_id, 0, DownloadStatus.ERROR)
            raise
        else:
            await self._emit(on_progress, track_id, 100, DownloadStatus.COMPLETE)
            return result
        finally:
            self._release(track_id, entry)

    async def _run(
        self,
        entry: ActiveDownload,
        source: str,
        base_name: str,
        on_progress: Optional[ProgressCallback],
        write_thumbnail: bool,
    ) -> DownloadResult:
        track_id = entry.track.id
        if entry.cancelled:
            raise AcquisitionFailed(None, "Download cancelled")

        binary = self.settings.ytdlp_binary
        self.download_path.mkdir(parents=True, exist_ok=True)
        args = build_download_args(
            source,
            self.download_path / f"{base_name}.%(ext)s",
            self.settings.ffmpeg_location,
            audio_format=self.settings.audio_format.value,
            write_thumbnail=write_thumbnail,
        )
        self.logger.debug(f"Running {binary} {' '.join(args)}")

        try:
            process = await asyncio.create_subprocess_exec(
                binary, *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE
            )
        except FileNotFoundError as e:
            raise ToolNotFound(binary) from e
        except OSError as e:
            raise AcquisitionFailed(None, f"Could not start {binary}: {e}") from e

        self._attach(entry, process)
        entry.status = DownloadStatus.DOWNLOADING

        stderr_tail: Deque[str] = deque(maxlen=STDERR_TAIL_LINES)
        stderr_task = asyncio.create_task(self._drain_stderr(process.stderr, stderr_tail))
        parser = ProgressParser()

        try:
            async for raw in process.stdout:
                line = raw.decode("utf-8", errors="replace").rstrip()
                if not line:
                    continue
                self.tool_logger.debug(line)
                progress = parser.feed(line)
                if progress is not None:
                    entry.progress = progress
                    await self._emit(on_progress, track_id, progress, DownloadStatus.DOWNLOADING)
            await stderr_task
            exit_code = await process.wait()
        except BaseException:
            if process.returncode is None:
                process.kill()
            stderr_task.cancel()
            raise

        # A cancel that raced the process exit still wins over a zero exit code
        if entry.cancelled:
            raise AcquisitionFailed(exit_code, "Download cancelled", list(stderr_tail))
        if exit_code != 0:
            raise AcquisitionFailed(exit_code, None, list(stderr_tail))

        audio_path, thumbnail_path = resolve_output(self.download_path, base_name)
        if audio_path is None:
            raise OutputMissing(base_name)

        finished = entry.track.model_copy(update={
            "filePath": str(audio_path),
            "thumbnailPath": str(thumbnail_path) if thumbnail_path else None,
            "isDownloaded": True,
            "downloadedAt": now_ms(),
        })
        await self.download_index.record_completion(track_id, audio_path, finished)

        try:
            await self.playlist_store.add_track(DOWNLOADS_ID, finished)
        except RiffboxError as e:
            self.logger.error(f"Error adding {track_id} to Downloads playlist: {e}", exc_info=True)

        self.logger.info(f"Download complete: {audio_path}")
        return DownloadResult(track=finished, file_path=audio_path)

    async def _drain_stderr(self, stream: asyncio.StreamReader, tail: Deque[str]) -> None:
        async for raw in stream:
            line = raw.decode("utf-8", errors="replace").rstrip()
            if line:
                tail.append(line)
                self.tool_logger.warning(line)

"""
Command-line interface for Riffbox.

This module maps the sub-commands parsed in ``riffbox.main`` onto
``MusicService`` calls and renders their results with Rich.
"""

import argparse
from typing import Awaitable, Callable, Dict, List, Optional

from rich.console import Console
from rich.table import Table

from riffbox.api.models import Track
from riffbox.core.errors import ErrorKind
from riffbox.core.service import Err, MusicService, Result
from riffbox.core.settings import Settings
from riffbox.ui.progress_display import RichProgressManager
from riffbox.utils.logger import get_logger


class CLI:
    """
    Command-line interface for Riffbox.

    Each sub-command is one coroutine returning a process exit code.
    """

    def __init__(self, settings: Settings, console: Optional[Console] = None):
        """
        Initialize the CLI.

        Args:
            settings: Application settings
            console: Optional Rich console (tests pass a recording one)
        """
        self.settings = settings
        self.logger = get_logger(__name__)
        self.console = console or Console()
        self.progress_manager = RichProgressManager(self.console)
        self.service: Optional[MusicService] = None

    async def run(self, args: argparse.Namespace) -> int:
        """Execute the sub-command selected in ``args``."""
        handlers: Dict[str, Callable[[argparse.Namespace], Awaitable[int]]] = {
            "download": self.handle_download,
            "import": self.handle_import,
            "downloads": self.handle_list_downloads,
            "delete": self.handle_delete,
            "playlists": self.handle_list_playlists,
            "show": self.handle_show_playlist,
            "create": self.handle_create_playlist,
            "drop": self.handle_drop_playlist,
            "add": self.handle_add_track,
            "remove": self.handle_remove_track,
            "like": self.handle_like,
            "cover": self.handle_cover,
        }
        handler = handlers.get(args.command)
        if handler is None:
            self.console.print(f"[red]Unknown command:[/] {args.command}")
            return 2

        self.service = await MusicService.create(self.settings)
        return await handler(args)

    def _report(self, result: Result, success_text: Optional[str] = None) -> int:
        if isinstance(result, Err):
            self.console.print(f"[bold red]Error:[/] {result.message}")
            if result.kind == ErrorKind.ACQUISITION_FAILED and result.details.get("stderr"):
                self.console.print("\n".join(result.details["stderr"][-5:]), style="dim")
            return 1
        text = success_text or result.message
        if text:
            self.console.print(f"[green]{text}[/]")
        return 0

    def _known_tracks(self) -> List[Track]:
        tracks: List[Track] = list(self.service.downloads.list_downloaded())
        for playlist in self.service.playlists.playlists.values():
            tracks.extend(playlist.tracks)
        return tracks

    def _find_track(self, track_id: str) -> Optional[Track]:
        for track in self._known_tracks():
            if track.id == track_id:
                return track
        return None

    def _track_table(self, title: str, tracks: List[Track]) -> Table:
        table = Table(title=title)
        table.add_column("#", justify="right", style="dim")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Title")
        table.add_column("Artist")
        table.add_column("Length", justify="right")
        table.add_column("File", style="dim")
        for i, track in enumerate(tracks, start=1):
            table.add_row(str(i), track.id, track.name, track.artistNames, track.duration_formatted, track.filePath or "")
        return table

    async def _with_progress(self, label_id: Optional[str], label: Optional[str], call: Callable[[], Awaitable[Result]]) -> Result:
        if label_id and label:
            self.progress_manager.set_label(label_id, label)
        self.progress_manager.start_display()
        try:
            return await call()
        finally:
            self.progress_manager.stop_display()

    # ==================== Downloads ====================

    async def handle_download(self, args: argparse.Namespace) -> int:
        track = Track(id=args.id, name=args.title, artistNames=args.artist)
        result = await self._with_progress(
            track.id, track.display_name,
            lambda: self.service.download_track(track, self.progress_manager.update_progress)
        )
        if isinstance(result, Err):
            return self._report(result)
        return self._report(result, f"{result.message}: {result.data['filePath']}")

    async def handle_import(self, args: argparse.Namespace) -> int:
        result = await self._with_progress(
            None, None,
            lambda: self.service.import_url(args.url, self.progress_manager.update_progress)
        )
        if isinstance(result, Err):
            return self._report(result)
        track = result.data["track"]
        return self._report(result, f"Imported '{track.display_name}' as {track.id}: {result.data['filePath']}")

    async def handle_list_downloads(self, args: argparse.Namespace) -> int:
        result = await self.service.list_downloads()
        if isinstance(result, Err):
            return self._report(result)
        tracks = result.data["downloads"]
        self.console.print(self._track_table(f"Downloads ({self.settings.download_path})", tracks))
        return 0

    async def handle_delete(self, args: argparse.Namespace) -> int:
        return self._report(await self.service.delete_download(args.track_id))

    # ==================== Playlists ====================

    async def handle_list_playlists(self, args: argparse.Namespace) -> int:
        result = await self.service.list_playlists()
        if isinstance(result, Err):
            return self._report(result)

        table = Table(title="Playlists")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Name")
        table.add_column("Tracks", justify="right")
        table.add_column("Default", justify="center")
        table.add_column("Cover", style="dim")
        for summary in result.data["playlists"]:
            table.add_row(
                summary.id,
                summary.name,
                str(summary.trackCount),
                "yes" if summary.isDefault else "",
                summary.customCover or summary.firstTrackImage or "",
            )
        self.console.print(table)
        return 0

    async def handle_show_playlist(self, args: argparse.Namespace) -> int:
        result = await self.service.get_playlist(args.playlist_id)
        if isinstance(result, Err):
            return self._report(result)
        playlist = result.data["playlist"]
        self.console.print(self._track_table(playlist.name, playlist.tracks))
        return 0

    async def handle_create_playlist(self, args: argparse.Namespace) -> int:
        result = await self.service.create_playlist(args.name)
        if isinstance(result, Err):
            return self._report(result)
        return self._report(result, f"Created playlist '{args.name}' ({result.data['playlist'].id})")

    async def handle_drop_playlist(self, args: argparse.Namespace) -> int:
        return self._report(await self.service.delete_playlist(args.playlist_id), "Playlist deleted")

    async def handle_add_track(self, args: argparse.Namespace) -> int:
        track = self._find_track(args.track_id)
        if track is None:
            self.console.print(f"[bold red]Error:[/] Unknown track {args.track_id}")
            return 1
        return self._report(await self.service.add_to_playlist(args.playlist_id, track))

    async def handle_remove_track(self, args: argparse.Namespace) -> int:
        result = await self.service.remove_from_playlist(args.playlist_id, args.track_id)
        return self._report(result, "Track removed from playlist")

    async def handle_like(self, args: argparse.Namespace) -> int:
        track = self._find_track(args.track_id)
        if track is None:
            self.console.print(f"[bold red]Error:[/] Unknown track {args.track_id}")
            return 1
        result = await self.service.toggle_like(track)
        if isinstance(result, Err):
            return self._report(result)
        return self._report(result, "Liked" if result.data["liked"] else "Removed from Liked Songs")

    async def handle_cover(self, args: argparse.Namespace) -> int:
        result = await self.service.import_playlist_cover(args.playlist_id, args.image)
        if isinstance(result, Err):
            return self._report(result)
        return self._report(result, f"Cover set: {result.data['coverPath']}")

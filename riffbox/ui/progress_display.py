"""
Manages Rich-based progress display for Riffbox.
"""
from typing import Dict, Optional

from rich.console import Console
from rich.live import Live
from rich.progress import Progress, BarColumn, TextColumn, TimeElapsedColumn, TaskID

from riffbox.core.download_models import DownloadProgress, DownloadStatus
from riffbox.utils.logger import get_logger


class RichProgressManager:
    """
    Shows one progress bar per download, fed by DownloadManager events.
    """
    def __init__(self, console: Optional[Console] = None):
        self.logger = get_logger(__name__)
        self.console = console or Console()

        self.progress_display = Progress(
            TextColumn("[progress.description]{task.description}", style="bold magenta", justify="left"),
            BarColumn(),
            TextColumn("[progress.percentage]{task.percentage:>5.1f}%"),
            TextColumn("{task.fields[status]}"),
            TimeElapsedColumn(),
            console=self.console,
            expand=True
        )
        self.live: Optional[Live] = None
        self._tasks: Dict[str, TaskID] = {}
        self._labels: Dict[str, str] = {}

    def set_label(self, track_id: str, label: str) -> None:
        """Sets the text shown next to a download's bar."""
        if len(label) > 50:
            label = label[:47] + "..."
        self._labels[track_id] = label
        if track_id in self._tasks:
            self.progress_display.update(self._tasks[track_id], description=label)

    def _task_for(self, track_id: str) -> TaskID:
        if track_id not in self._tasks:
            label = self._labels.get(track_id, track_id)
            self._tasks[track_id] = self.progress_display.add_task(label, total=100, status="")
        return self._tasks[track_id]

    async def update_progress(self, progress: DownloadProgress) -> None:
        """
        Update the progress display.

        Args:
            progress: Progress event from the download manager.
        """
        task_id = self._task_for(progress.trackId)
        status_map = {
            DownloadStatus.FETCHING_INFO: "[yellow]Fetching info[/]",
            DownloadStatus.DOWNLOADING: "[cyan]Downloading[/]",
            DownloadStatus.COMPLETE: "[green]Complete[/]",
            DownloadStatus.ERROR: "[red]Failed[/]",
        }
        fields = {"status": status_map.get(progress.status, progress.status.value)}
        # Failed downloads keep the bar where it stopped
        if progress.status != DownloadStatus.ERROR:
            fields["completed"] = progress.progress

        self.progress_display.update(task_id, **fields)
        if self.live is not None:
            self.live.refresh()

    def start_display(self) -> None:
        """Starts the live display."""
        if self.live is None:
            self.live = Live(self.progress_display, console=self.console, auto_refresh=True, transient=False)
            self.live.start(refresh=True)
            self.logger.debug("Rich Live display started.")

    def stop_display(self) -> None:
        """Stops the live display if it's active."""
        if self.live is not None:
            self.live.stop()
            self.live = None
            self.logger.debug("Rich Live display stopped.")

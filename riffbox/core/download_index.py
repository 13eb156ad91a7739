"""
Index of completed downloads for Riffbox.

``downloads.json`` maps a track id to the downloaded file and, for entries
written by current versions, a snapshot of the track metadata. Older versions
stored a bare path string per track; those entries are upgraded on load.
Entries whose file no longer exists are dropped on load.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from riffbox.api.models import Track
from riffbox.core.download_models import DownloadIndexEntry
from riffbox.core.storage import read_json_document, write_json_atomic
from riffbox.utils.logger import get_logger


def parse_index_entry(value: Any) -> Optional[DownloadIndexEntry]:
    """
    Normalize one raw ``downloads.json`` value to the current entry shape.

    Accepts the legacy bare path string and the current object form. Returns
    None for anything else.
    """
    if isinstance(value, str):
        return DownloadIndexEntry(filePath=value, track=None, downloadedAt=None)
    if isinstance(value, dict) and value.get("filePath"):
        try:
            return DownloadIndexEntry.model_validate(value)
        except ValidationError:
            # Keep the file reference even if the cached metadata is unreadable
            return DownloadIndexEntry(
                filePath=str(value["filePath"]),
                track=None,
                downloadedAt=value.get("downloadedAt") if isinstance(value.get("downloadedAt"), int) else None,
            )
    return None


class DownloadIndex:
    """
    Durable mapping of track ids to downloaded files.

    Call :meth:`initialize` before use.
    """

    def __init__(self):
        self.logger = get_logger(__name__)
        self.path: Optional[Path] = None
        self.entries: Dict[str, DownloadIndexEntry] = {}

    async def initialize(self, storage_path: Path) -> None:
        """
        Load the index from ``storage_path``.

        Legacy entries are upgraded, stale entries are dropped, and the file is
        rewritten once in the current shape.
        """
        self.path = Path(storage_path)
        self.entries = {}

        data = await read_json_document(self.path)
        if data is None:
            return

        pruned = 0
        for track_id, value in data.items():
            entry = parse_index_entry(value)
            if entry is None:
                self.logger.warning(f"Ignoring malformed download entry for {track_id}")
                continue
            if not Path(entry.filePath).exists():
                pruned += 1
                continue
            self.entries[track_id] = entry

        if pruned:
            self.logger.info(f"Dropped {pruned} download entries whose files are gone")

        self._save()
        self.logger.info(f"Loaded {len(self.entries)} downloaded tracks from {self.path}")

    def _save(self) -> None:
        if self.path is None:
            raise RuntimeError("DownloadIndex used before initialize()")
        data = {track_id: e.model_dump(mode='json') for track_id, e in self.entries.items()}
        write_json_atomic(self.path, data)

    def is_downloaded(self, track_id: str) -> bool:
        return track_id in self.entries

    def get_path(self, track_id: str) -> Optional[str]:
        entry = self.entries.get(track_id)
        return entry.filePath if entry else None

    def get_entry(self, track_id: str) -> Optional[DownloadIndexEntry]:
        return self.entries.get(track_id)

    def list_downloaded(self) -> List[Track]:
        """
        Display-ready tracks for every entry.

        Entries without cached metadata get a minimal track named after the
        file, with "Unknown Artist" as artist.
        """
        tracks = []
        for track_id, entry in self.entries.items():
            if entry.track is not None:
                track = entry.track.model_copy(update={
                    "id": track_id,
                    "filePath": entry.filePath,
                    "isDownloaded": True,
                })
            else:
                track = Track(
                    id=track_id,
                    name=Path(entry.filePath).stem,
                    artistNames="Unknown Artist",
                    filePath=entry.filePath,
                    isDownloaded=True,
                )
            tracks.append(track)
        return tracks

    async def record_completion(self, track_id: str, file_path: Path, track: Optional[Track]) -> DownloadIndexEntry:
        """Insert or overwrite the entry for ``track_id`` and save."""
        entry = DownloadIndexEntry(filePath=str(file_path), track=track)
        self.entries[track_id] = entry
        self._save()
        self.logger.debug(f"Recorded download of {track_id} at {file_path}")
        return entry

    async def remove_entry(self, track_id: str) -> Optional[DownloadIndexEntry]:
        """Remove and return the entry for ``track_id`` (None if absent)."""
        entry = self.entries.pop(track_id, None)
        if entry is not None:
            self._save()
        return entry

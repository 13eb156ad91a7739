"""
API package for Riffbox.

This package provides the track and playlist models shared by the catalog
client, the metadata resolver and the local stores.
"""

from riffbox.api.models import AlbumImage, Album, Track, Playlist, PlaylistSummary, now_ms

__all__ = [
    'AlbumImage',
    'Album',
    'Track',
    'Playlist',
    'PlaylistSummary',
    'now_ms',
]

import pytest
from pydantic import ValidationError

from riffbox.api.models import Album, Playlist, Track


def test_track_id_coerced_to_string():
    track = Track(id=12345, name="Song")
    assert track.id == "12345"
    assert track.artistNames == "Unknown Artist"
    assert track.isDownloaded is False


def test_track_requires_name():
    with pytest.raises(ValidationError):
        Track(id="t1")


def test_track_empty_album_is_none():
    assert Track(id="t1", name="Song", album={}).album is None
    album = Track(id="t1", name="Song", album={"id": 7, "name": "LP"}).album
    assert isinstance(album, Album)
    assert album.id == "7"


def test_track_keeps_unknown_fields():
    track = Track.model_validate({"id": "t1", "name": "Song", "popularity": 80, "explicit": True})
    dumped = track.model_dump(mode='json')
    assert dumped["popularity"] == 80
    assert dumped["explicit"] is True


def test_track_cover_image_precedence():
    track = Track(
        id="t1", name="Song",
        album={"images": [{"url": "https://img/album.jpg", "width": 640, "height": 640}]},
        thumbnailPath="/music/Song.jpg",
        thumbnailUrl="https://img/thumb.jpg",
    )
    assert track.cover_image == "https://img/album.jpg"
    assert track.model_copy(update={"album": None}).cover_image == "/music/Song.jpg"
    assert Track(id="t2", name="x", thumbnailUrl="https://img/thumb.jpg").cover_image == "https://img/thumb.jpg"
    assert Track(id="t3", name="x").cover_image is None


def test_track_duration_formatted():
    assert Track(id="t1", name="Song", durationMs=215000).duration_formatted == "03:35"
    assert Track(id="t1", name="Song").duration_formatted == "00:00"


def test_track_display_name():
    assert Track(id="t1", name="Song", artistNames="Band").display_name == "Band - Song"


def test_playlist_lookup():
    playlist = Playlist(id="p", name="P", tracks=[{"id": "a", "name": "A"}, {"id": "b", "name": "B"}])
    assert playlist.index_of("b") == 1
    assert playlist.index_of("c") == -1
    assert playlist.contains("a")
    assert playlist.createdAt > 0
    assert playlist.isDefault is False

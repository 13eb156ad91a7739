from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from riffbox.core.errors import ErrorKind
from riffbox.core.playlist_store import DOWNLOADS_ID, LIKED_SONGS_ID
from riffbox.core.service import Err, MusicService, Ok

TRACK = {"id": "t1", "name": "Song", "artistNames": "Band"}


@pytest_asyncio.fixture
async def service(settings):
    return await MusicService.create(settings)


@pytest.mark.asyncio
async def test_create_initializes_stores(service, settings):
    assert settings.playlists_file.exists()
    result = await service.list_playlists()
    assert isinstance(result, Ok)
    assert [p.id for p in result.data["playlists"]] == [LIKED_SONGS_ID, DOWNLOADS_ID]


@pytest.mark.asyncio
async def test_download_track_ok(service, spawner, settings):
    spawner.script(outputs=(".mp3",))

    result = await service.download_track(TRACK)

    expected = str(settings.download_path / "Band - Song.mp3")
    assert result.to_dict() == {"success": True, "message": "Download complete", "filePath": expected}

    again = await service.download_track(TRACK)
    assert again.message == "Track already downloaded"
    assert (await service.is_downloaded("t1")).data == {"downloaded": True, "filePath": expected}
    assert (await service.get_download_path("t1")).data == {"filePath": expected}


@pytest.mark.asyncio
async def test_download_track_tool_not_found(service, spawner):
    spawner.script(raises=FileNotFoundError())

    result = await service.download_track(TRACK)

    assert isinstance(result, Err)
    assert result.kind == ErrorKind.TOOL_NOT_FOUND
    payload = result.to_dict()
    assert payload["success"] is False
    assert payload["error"] == "tool_not_found"
    assert "pip install yt-dlp" in payload["installHint"]


@pytest.mark.asyncio
async def test_download_track_invalid_payload(service, spawner):
    result = await service.download_track({"name": "no id"})

    assert result.kind == ErrorKind.INVALID_INPUT
    assert spawner.calls == []


@pytest.mark.asyncio
async def test_unexpected_exception_becomes_err(service):
    service.manager.download_track = AsyncMock(side_effect=RuntimeError("boom"))

    result = await service.download_track(TRACK)

    assert result.to_dict() == {"success": False, "error": "unexpected", "message": "boom"}


@pytest.mark.asyncio
async def test_import_url_invalid(service):
    result = await service.import_url("https://example.com/video")
    assert result.to_dict() == {
        "success": False,
        "error": "invalid_source",
        "message": "Invalid YouTube URL",
        "url": "https://example.com/video",
    }


@pytest.mark.asyncio
async def test_cancel_unknown_download(service):
    result = await service.cancel_download("t1")
    assert result.kind == ErrorKind.NOT_FOUND
    assert result.message == "Download not found"


@pytest.mark.asyncio
async def test_delete_download_messages(service, spawner):
    spawner.script(outputs=(".mp3",))
    await service.download_track(TRACK)

    deleted = await service.delete_download("t1")
    assert deleted.to_dict() == {"success": True, "message": "Download deleted"}

    missing = await service.delete_download("t1")
    assert missing.kind == ErrorKind.NOT_FOUND
    assert (await service.list_downloads()).data == {"downloads": []}


@pytest.mark.asyncio
async def test_list_downloads_and_active(service, spawner):
    spawner.script(outputs=(".mp3",))
    await service.download_track(TRACK)

    payload = (await service.list_downloads()).to_dict()
    assert payload["downloads"][0]["id"] == "t1"
    assert payload["downloads"][0]["isDownloaded"] is True
    assert (await service.list_active_downloads()).data == {"active": []}


@pytest.mark.asyncio
async def test_playlist_operations(service):
    created = await service.create_playlist("Road Trip")
    playlist_id = created.data["playlist"].id

    added = await service.add_to_playlist(playlist_id, TRACK)
    assert added.message == "Track added to playlist"
    assert added.data == {"added": True}
    again = await service.add_to_playlist(playlist_id, TRACK)
    assert again.message == "Track already in playlist"

    duplicate = await service.create_playlist("Road Trip")
    assert duplicate.kind == ErrorKind.ALREADY_EXISTS

    removed = await service.remove_from_playlist(playlist_id, "t1")
    assert removed.to_dict() == {"success": True}
    not_there = await service.remove_from_playlist(playlist_id, "t1")
    assert not_there.kind == ErrorKind.NOT_FOUND

    assert isinstance(await service.delete_playlist(playlist_id), Ok)
    assert (await service.get_playlist(playlist_id)).kind == ErrorKind.NOT_FOUND


@pytest.mark.asyncio
async def test_create_playlist_empty_name(service):
    result = await service.create_playlist("   ")
    assert result.kind == ErrorKind.INVALID_INPUT


@pytest.mark.asyncio
async def test_delete_default_playlist(service):
    result = await service.delete_playlist(DOWNLOADS_ID)
    assert result.to_dict() == {
        "success": False,
        "error": "forbidden",
        "message": "Cannot delete default playlist",
    }


@pytest.mark.asyncio
async def test_likes(service):
    assert (await service.toggle_like(TRACK)).data == {"liked": True}
    assert (await service.is_liked("t1")).data == {"liked": True}
    assert [t.id for t in (await service.list_liked()).data["tracks"]] == ["t1"]
    assert (await service.toggle_like(TRACK)).data == {"liked": False}
    assert (await service.is_liked("t1")).data == {"liked": False}


@pytest.mark.asyncio
async def test_import_playlist_cover(service, settings, tmp_path):
    image = tmp_path / "cover.PNG"
    image.write_bytes(b"\x89PNG")

    result = await service.import_playlist_cover(LIKED_SONGS_ID, image)

    assert isinstance(result, Ok)
    cover = result.data["coverPath"]
    assert cover.startswith(str(settings.covers_dir / f"{LIKED_SONGS_ID}-"))
    assert cover.endswith(".png")
    assert service.playlists.get_playlist(LIKED_SONGS_ID).customCover == cover


@pytest.mark.asyncio
async def test_import_playlist_cover_rejects(service, tmp_path):
    text = tmp_path / "notes.txt"
    text.write_text("hi")

    assert (await service.import_playlist_cover(LIKED_SONGS_ID, text)).kind == ErrorKind.INVALID_INPUT
    assert (await service.import_playlist_cover(LIKED_SONGS_ID, tmp_path / "none.jpg")).kind == ErrorKind.NOT_FOUND
    assert (await service.import_playlist_cover("nope", tmp_path / "none.jpg")).kind == ErrorKind.NOT_FOUND


@pytest.mark.asyncio
async def test_open_download_dir(service, settings):
    result = await service.open_download_dir()
    assert result.data == {"path": str(settings.download_path)}

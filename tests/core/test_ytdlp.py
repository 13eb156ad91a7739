import os
import re
from pathlib import Path

import pytest

from riffbox.core.ytdlp import (
    ProgressParser, build_download_args, build_metadata_args, build_search_query,
    generate_import_id, match_youtube_url, resolve_output
)


@pytest.mark.parametrize("url", [
    "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
    "https://youtube.com/watch?v=dQw4w9WgXcQ&t=42s",
    "https://www.youtube.com/watch?feature=share&v=dQw4w9WgXcQ",
    "http://m.youtube.com/watch?v=dQw4w9WgXcQ",
    "https://music.youtube.com/watch?v=dQw4w9WgXcQ&list=RDAMVM",
    "https://youtu.be/dQw4w9WgXcQ",
    "https://youtu.be/dQw4w9WgXcQ?si=abc",
    "https://www.youtube.com/shorts/dQw4w9WgXcQ",
    "https://www.youtube.com/embed/dQw4w9WgXcQ",
    "youtube.com/watch?v=dQw4w9WgXcQ",
])
def test_match_youtube_url_accepts(url):
    assert match_youtube_url(url) == "dQw4w9WgXcQ"


@pytest.mark.parametrize("url", [
    "",
    "https://vimeo.com/123456",
    "https://www.youtube.com/watch?v=short",
    "https://www.youtube.com/channel/UC1234567890",
    "https://notyoutube.com/watch?v=dQw4w9WgXcQ",
    "dQw4w9WgXcQ",
])
def test_match_youtube_url_rejects(url):
    assert match_youtube_url(url) is None


def test_generate_import_id_shape():
    first = generate_import_id()
    second = generate_import_id()
    assert re.fullmatch(r"yt_\d{13}_[a-z0-9]{9}", first)
    assert first != second


def test_build_search_query():
    assert build_search_query("Song", "Band") == "Song Band audio"
    assert build_search_query("Song", "Band", "") == "Song Band"


def test_build_download_args_search():
    args = build_download_args("ytsearch1:Song Band audio", Path("/music/Band - Song.%(ext)s"), Path("/opt/ffmpeg/bin"))
    assert args == [
        "ytsearch1:Song Band audio",
        "-x",
        "--audio-format", "mp3",
        "--audio-quality", "0",
        "-o", str(Path("/music/Band - Song.%(ext)s")),
        "--no-playlist",
        "--embed-thumbnail",
        "--add-metadata",
        "--ffmpeg-location", str(Path("/opt/ffmpeg/bin")),
        "--progress",
        "--newline",
    ]


def test_build_download_args_with_thumbnail():
    args = build_download_args("https://youtu.be/dQw4w9WgXcQ", Path("out.%(ext)s"), Path("ff"),
                               audio_format="m4a", write_thumbnail=True)
    assert args[-3:] == ["--write-thumbnail", "--convert-thumbnails", "jpg"]
    assert args[args.index("--audio-format") + 1] == "m4a"


def test_build_metadata_args():
    assert build_metadata_args("u") == ["u", "--dump-json", "--skip-download", "--no-playlist"]


def test_progress_parser_reports_changes_only():
    parser = ProgressParser()
    assert parser.feed("[youtube] Extracting URL") is None
    assert parser.feed("[download]   5.5% of 3.00MiB") == 5.5
    assert parser.feed("[download]   5.5% of 3.00MiB") is None
    assert parser.feed("[download]  42% of 3.00MiB") == 42.0
    assert parser.feed("[download] 100.0% of 3.00MiB") == 100.0


def test_progress_parser_uses_first_match_and_caps():
    parser = ProgressParser()
    assert parser.feed("[download]  12.5% then 80.0%") == 12.5
    assert parser.feed("odd 150%") == 100.0


def _touch(path: Path, mtime: float = None) -> Path:
    path.write_bytes(b"x")
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


def test_resolve_output_finds_audio_and_thumbnail(tmp_path):
    audio = _touch(tmp_path / "Band - Song.mp3")
    thumb = _touch(tmp_path / "Band - Song.jpg")
    _touch(tmp_path / "Other - Song.mp3")

    assert resolve_output(tmp_path, "Band - Song") == (audio, thumb)


def test_resolve_output_accepts_other_extension(tmp_path):
    audio = _touch(tmp_path / "Band - Song.m4a")
    assert resolve_output(tmp_path, "Band - Song") == (audio, None)


def test_resolve_output_prefers_exact_stem(tmp_path):
    exact = _touch(tmp_path / "Band - Song.mp3", mtime=1000)
    _touch(tmp_path / "Band - Song (Live).mp3", mtime=2000)
    assert resolve_output(tmp_path, "Band - Song")[0] == exact


def test_resolve_output_prefers_newest(tmp_path):
    _touch(tmp_path / "Band - Song.mp3", mtime=1000)
    newer = _touch(tmp_path / "Band - Song.webm", mtime=2000)
    assert resolve_output(tmp_path, "Band - Song")[0] == newer


def test_resolve_output_ignores_non_audio(tmp_path):
    _touch(tmp_path / "Band - Song.jpg")
    _touch(tmp_path / "Band - Song.mp3.part")
    assert resolve_output(tmp_path, "Band - Song") == (None, None)
    assert resolve_output(tmp_path / "missing", "Band - Song") == (None, None)

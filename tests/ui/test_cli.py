import pytest
from rich.console import Console

from riffbox.core.playlist_store import DOWNLOADS_ID
from riffbox.main import build_parser
from riffbox.ui.cli import CLI


@pytest.fixture
def console():
    return Console(record=True, width=160, force_terminal=False)


@pytest.fixture
def cli(settings, console):
    return CLI(settings, console=console)


def run_args(*argv):
    return build_parser().parse_args(list(argv))


def test_parser_subcommands():
    args = run_args("--debug", "download", "t1", "Song", "Band")
    assert args.debug is True
    assert (args.command, args.id, args.title, args.artist) == ("download", "t1", "Song", "Band")

    args = run_args("-o", "/tmp/out", "add", "downloads", "t1")
    assert args.output == "/tmp/out"
    assert (args.playlist_id, args.track_id) == ("downloads", "t1")

    with pytest.raises(SystemExit):
        run_args()


@pytest.mark.asyncio
async def test_create_and_list_playlists(cli, console):
    assert await cli.run(run_args("create", "Road Trip")) == 0
    assert await cli.run(run_args("playlists")) == 0

    output = console.export_text()
    assert "Created playlist 'Road Trip'" in output
    assert "Liked Songs" in output
    assert "Road Trip" in output


@pytest.mark.asyncio
async def test_drop_default_playlist_fails(cli, console):
    assert await cli.run(run_args("drop", DOWNLOADS_ID)) == 1
    assert "Cannot delete default playlist" in console.export_text()


@pytest.mark.asyncio
async def test_download_then_like_and_list(cli, console, spawner):
    spawner.script(stdout=("[download]  50.0% of 1.00MiB",), outputs=(".mp3",))

    assert await cli.run(run_args("download", "t1", "Song", "Band")) == 0
    assert await cli.run(run_args("like", "t1")) == 0
    assert await cli.run(run_args("downloads")) == 0

    output = console.export_text()
    assert "Download complete" in output
    assert "Band - Song.mp3" in output
    assert "Liked" in output


@pytest.mark.asyncio
async def test_download_failure_reports_error(cli, console, spawner):
    spawner.script(stderr=("ERROR: no results",), returncode=1)

    assert await cli.run(run_args("download", "t1", "Song", "Band")) == 1
    output = console.export_text()
    assert "Download failed with code 1" in output
    assert "ERROR: no results" in output


@pytest.mark.asyncio
async def test_like_unknown_track(cli, console):
    assert await cli.run(run_args("like", "ghost")) == 1
    assert "Unknown track ghost" in console.export_text()

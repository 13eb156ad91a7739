import asyncio
from pathlib import Path
from typing import Any, Dict, List

import pytest
import pytest_asyncio

from riffbox.core.download_index import DownloadIndex
from riffbox.core.downloader import DownloadManager
from riffbox.core.playlist_store import PlaylistStore
from riffbox.core.settings import Settings


class FakeProcess:
    """
    Stand-in for asyncio.subprocess.Process.

    stdout/stderr are real StreamReaders. With ``hold`` the streams stay open
    until finish() or terminate() is called.
    """

    def __init__(self, stdout=(), stderr=(), returncode=0, on_exit=None, hold=False):
        self.stdout = asyncio.StreamReader()
        self.stderr = asyncio.StreamReader()
        for line in stdout:
            self.stdout.feed_data(line.encode("utf-8") + b"\n")
        for line in stderr:
            self.stderr.feed_data(line.encode("utf-8") + b"\n")
        self._exit_code = returncode
        self._on_exit = on_exit
        self.returncode = None
        self.terminated = False
        self.killed = False
        if not hold:
            self.finish()

    def finish(self):
        self.stdout.feed_eof()
        self.stderr.feed_eof()

    async def wait(self):
        if self.returncode is None:
            if self._on_exit is not None:
                self._on_exit()
            self.returncode = self._exit_code
        return self.returncode

    async def communicate(self):
        out = await self.stdout.read()
        err = await self.stderr.read()
        await self.wait()
        return out, err

    def terminate(self):
        self.terminated = True
        self.returncode = -15
        self.finish()

    def kill(self):
        self.killed = True
        self.returncode = -9
        self.finish()


class FakeSpawner:
    """Replacement for asyncio.create_subprocess_exec that replays scripted runs."""

    def __init__(self):
        self.calls: List[List[str]] = []
        self.processes: List[FakeProcess] = []
        self._scripts: List[Dict[str, Any]] = []

    def script(self, stdout=(), stderr=(), returncode=0, outputs=(), hold=False, raises=None):
        """
        Queue the behaviour of the next spawned process.

        ``outputs`` are file suffixes written next to the ``-o`` template when
        the process exits successfully.
        """
        self._scripts.append(dict(
            stdout=stdout, stderr=stderr, returncode=returncode,
            outputs=outputs, hold=hold, raises=raises,
        ))

    async def __call__(self, program, *args, **kwargs):
        self.calls.append([program, *args])
        plan = self._scripts.pop(0) if self._scripts else dict(
            stdout=(), stderr=(), returncode=0, outputs=(), hold=False, raises=None
        )
        if plan["raises"] is not None:
            raise plan["raises"]

        on_exit = None
        if plan["outputs"]:
            template = args[args.index("-o") + 1]

            def on_exit():
                if plan["returncode"] != 0:
                    return
                for suffix in plan["outputs"]:
                    Path(template.replace(".%(ext)s", suffix)).write_bytes(b"data")

        process = FakeProcess(
            stdout=plan["stdout"],
            stderr=plan["stderr"],
            returncode=plan["returncode"],
            on_exit=on_exit,
            hold=plan["hold"],
        )
        self.processes.append(process)
        return process


@pytest.fixture
def spawner(monkeypatch):
    fake = FakeSpawner()
    monkeypatch.setattr(asyncio, "create_subprocess_exec", fake)
    return fake


@pytest.fixture
def settings(tmp_path):
    return Settings(
        download_path=tmp_path / "music",
        data_path=tmp_path / "data",
        ffmpeg_location=tmp_path / "ffmpeg" / "bin",
    )


@pytest_asyncio.fixture
async def playlist_store(settings):
    store = PlaylistStore()
    await store.initialize(settings.playlists_file)
    return store


@pytest_asyncio.fixture
async def download_index(settings):
    index = DownloadIndex()
    await index.initialize(settings.downloads_file)
    return index


@pytest.fixture
def manager(settings, download_index, playlist_store):
    return DownloadManager(settings, download_index, playlist_store)


async def _wait_for_spawn(spawner: FakeSpawner, count: int = 1) -> None:
    for _ in range(1000):
        if len(spawner.processes) >= count:
            return
        await asyncio.sleep(0)
    raise AssertionError(f"expected {count} spawned processes, got {len(spawner.processes)}")


@pytest.fixture
def wait_for_spawn(spawner):
    """Coroutine function that yields to the event loop until ``count`` processes have started."""
    async def wait(count: int = 1):
        await _wait_for_spawn(spawner, count)
    return wait

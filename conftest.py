import asyncio
import json
import shutil
from pathlib import Path

import pytest

TEST_ROOT = Path("data-tests").resolve()
STORIES = {
    "harbor": "data/stories/harbor",
    "tower": "data/stories/tower",
}


@pytest.fixture(autouse=True)
def story_root() -> Path:
    """Wipe and re-create data-tests/ with a two-story index before every test."""
    if TEST_ROOT.exists():
        shutil.rmtree(TEST_ROOT)
    (TEST_ROOT / "data").mkdir(parents=True)
    index = {"stories": [{"id": sid, "path": rel} for sid, rel in STORIES.items()]}
    (TEST_ROOT / "data" / "index.json").write_text(json.dumps(index, indent=2))
    for rel in STORIES.values():
        (TEST_ROOT / rel).mkdir(parents=True)
    # a stand-in engine executable so resolution succeeds without codex installed
    engine = TEST_ROOT / "bin" / "codex"
    engine.parent.mkdir()
    engine.write_text("#!/bin/sh\n")
    engine.chmod(0o755)
    yield TEST_ROOT
    # leave data-tests around after tests for inspection; CI can ignore it


@pytest.fixture
def engine_path(story_root: Path) -> str:
    return str(story_root / "bin" / "codex")


def story_dir(story_id: str) -> Path:
    return TEST_ROOT / STORIES[story_id]


def read_log(story_id: str) -> list[dict]:
    path = story_dir(story_id) / "log.json"
    if not path.is_file():
        return []
    return json.loads(path.read_text())


def write_entry(path: Path, speaker: str, text: str) -> None:
    entries = json.loads(path.read_text()) if path.is_file() else []
    turn = max((e["turn"] for e in entries), default=0) + 1
    entries.append({"turn": turn, "speaker": speaker, "text": text, "timestamp": "2026-01-01T00:00:00+00:00"})
    path.write_text(json.dumps(entries, indent=2) + "\n")


# ---------------------------------------------------------------------------
# Fake engine processes
# ---------------------------------------------------------------------------

class FakeStdin:
    def __init__(self, process: "FakeProcess") -> None:
        self._process = process
        self.lines: list[str] = []

    def write(self, data: bytes) -> None:
        if self._process.returncode is not None:
            raise BrokenPipeError("process has exited")
        text = data.decode("utf-8")
        self.lines.append(text)
        if self._process.on_line is not None:
            self._process.on_line(self._process, text.rstrip("\n"))

    async def drain(self) -> None:
        await asyncio.sleep(0)


class FakeProcess:
    """Stands in for asyncio.subprocess.Process.

    Interactive processes stay alive until exit() is called; `on_line` is
    invoked for every line written to stdin. One-shot processes run
    `on_exec` inside communicate() and exit with `exec_code`.
    """

    def __init__(self, pid: int, argv: list[str]) -> None:
        self.pid = pid
        self.argv = argv
        self.returncode: int | None = None
        self.stdin = FakeStdin(self)
        self.stdout = asyncio.StreamReader()
        self.stderr = asyncio.StreamReader()
        self.on_line = None
        self.on_exec = None
        self.exec_code = 0
        self.exec_stdout = b""
        self.exec_stderr = b""
        self._exit = asyncio.Event()

    def exit(self, code: int = 0) -> None:
        if self.returncode is not None:
            return
        self.returncode = code
        self.stdout.feed_eof()
        self.stderr.feed_eof()
        self._exit.set()

    async def wait(self) -> int:
        await self._exit.wait()
        return self.returncode

    async def communicate(self) -> tuple[bytes, bytes]:
        if self.on_exec is not None:
            result = self.on_exec(self)
            if asyncio.iscoroutine(result):
                await result
        self.exit(self.exec_code)
        return self.exec_stdout, self.exec_stderr

    def terminate(self) -> None:
        self.exit(-15)

    def kill(self) -> None:
        self.exit(-9)


class FakeLauncher:
    """Records launches and hands out FakeProcess objects.

    `configure(process)` is called on each new process before it is returned,
    so a test can attach on_line / on_exec behaviour.
    """

    def __init__(self, configure=None) -> None:
        self.configure = configure
        self.calls: list[tuple[list[str], Path, bool]] = []
        self.processes: list[FakeProcess] = []

    async def __call__(self, argv, cwd, interactive):
        self.calls.append((list(argv), cwd, interactive))
        process = FakeProcess(1000 + len(self.processes), list(argv))
        if self.configure is not None:
            self.configure(process)
        self.processes.append(process)
        return process


@pytest.fixture
def launcher() -> FakeLauncher:
    return FakeLauncher()


# ---------------------------------------------------------------------------
# Deterministic clock for the completion detector
# ---------------------------------------------------------------------------

class FakeClock:
    """Monotonic clock whose sleep() advances time and fires scheduled actions."""

    def __init__(self) -> None:
        self.now = 0.0
        self._scheduled: list[tuple[float, object]] = []

    def __call__(self) -> float:
        return self.now

    def at(self, when: float, action) -> None:
        self._scheduled.append((when, action))
        self._scheduled.sort(key=lambda item: item[0])

    async def sleep(self, seconds: float) -> None:
        self.now += seconds
        while self._scheduled and self._scheduled[0][0] <= self.now:
            _, action = self._scheduled.pop(0)
            action()
        await asyncio.sleep(0)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()

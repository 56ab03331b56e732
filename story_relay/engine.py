"""Narration engine executable resolution and process control.

Resolution order for the engine executable:
  1. Explicit override (CODEX_PATH), either a path or a name found on PATH.
  2. Well-known install locations for the current platform.
  3. The command name on PATH (shutil.which).

Nothing is retried: if none of these resolve, the turn fails with
EngineUnavailableError and a hint on how to install or point at the engine.

Processes are started through a ProcessLauncher so tests can hand in fake
processes instead of spawning the real engine.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import sys
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import Any, Protocol

from story_relay.errors import EngineFailedError, EngineUnavailableError

logger = logging.getLogger(__name__)

DIAGNOSTIC_TAIL = 1200

INSTALL_HINT = (
    "Install the engine (npm install -g @openai/codex) or set CODEX_PATH "
    "to its executable."
)


def _well_known_paths(command: str, platform: str, env: Mapping[str, str]) -> list[Path]:
    if platform.startswith("win"):
        candidates = []
        if env.get("APPDATA"):
            candidates.append(Path(env["APPDATA"]) / "npm" / f"{command}.cmd")
        if env.get("LOCALAPPDATA"):
            candidates.append(Path(env["LOCALAPPDATA"]) / "Programs" / command / f"{command}.exe")
        return candidates
    if platform == "darwin":
        return [Path("/opt/homebrew/bin") / command, Path("/usr/local/bin") / command]
    home = env.get("HOME")
    candidates = [Path(home) / ".local" / "bin" / command] if home else []
    candidates.append(Path("/usr/local/bin") / command)
    return candidates


def resolve_engine(
    command: str = "codex",
    override: str | None = None,
    platform: str | None = None,
    env: Mapping[str, str] | None = None,
) -> str:
    """Return an executable path for the engine or raise EngineUnavailableError."""
    platform = platform or sys.platform
    env = os.environ if env is None else env

    if override:
        if Path(override).is_file():
            return override
        found = shutil.which(override)
        if found:
            return found
        raise EngineUnavailableError(
            f"Configured engine path {override!r} does not exist. {INSTALL_HINT}"
        )

    for candidate in _well_known_paths(command, platform, env):
        if candidate.is_file():
            return str(candidate)

    found = shutil.which(command)
    if found:
        return found
    raise EngineUnavailableError(f"Narration engine {command!r} not found. {INSTALL_HINT}")


# ---------------------------------------------------------------------------
# Process launching
# ---------------------------------------------------------------------------

class ProcessLauncher(Protocol):
    async def __call__(self, argv: Sequence[str], cwd: Path, interactive: bool) -> Any: ...


async def launch_process(argv: Sequence[str], cwd: Path, interactive: bool) -> asyncio.subprocess.Process:
    """Spawn the engine with piped output, and piped stdin when interactive."""
    try:
        return await asyncio.create_subprocess_exec(
            *argv,
            cwd=str(cwd),
            stdin=asyncio.subprocess.PIPE if interactive else asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise EngineUnavailableError(f"Failed to start {argv[0]!r}: {e}. {INSTALL_HINT}") from e


class TailBuffer:
    """Keeps the last `limit` characters written to it."""

    def __init__(self, limit: int = DIAGNOSTIC_TAIL) -> None:
        self._limit = limit
        self._text = ""

    def write(self, chunk: str) -> None:
        self._text = (self._text + chunk)[-self._limit:]

    def __str__(self) -> str:
        return self._text


def tail(text: str, limit: int = DIAGNOSTIC_TAIL) -> str:
    return text[-limit:]


# ---------------------------------------------------------------------------
# WorkerHandle — one long-lived interactive engine process
# ---------------------------------------------------------------------------

class WorkerHandle:
    """Owns a persistent engine process and its standard streams.

    Output is forwarded to logging line by line. `on_exit` is called once,
    with this handle, when the process is seen to exit.
    """

    def __init__(
        self,
        story_id: str,
        process: Any,
        on_exit: Callable[[WorkerHandle], None] | None = None,
        tail_limit: int = DIAGNOSTIC_TAIL,
    ) -> None:
        self.story_id = story_id
        self.process = process
        self.stderr_tail = TailBuffer(tail_limit)
        self._on_exit = on_exit
        self._exited = asyncio.Event()
        self._tasks: list[asyncio.Task] = []

    @property
    def pid(self) -> int | None:
        return getattr(self.process, "pid", None)

    @property
    def returncode(self) -> int | None:
        return self.process.returncode

    @property
    def alive(self) -> bool:
        return not self._exited.is_set() and self.process.returncode is None

    def start(self) -> None:
        loop = asyncio.get_running_loop()
        if self.process.stdout is not None:
            self._tasks.append(loop.create_task(self._pump(self.process.stdout, error=False)))
        if self.process.stderr is not None:
            self._tasks.append(loop.create_task(self._pump(self.process.stderr, error=True)))
        self._tasks.append(loop.create_task(self._monitor()))

    async def _pump(self, stream: asyncio.StreamReader, error: bool) -> None:
        while True:
            try:
                line = await stream.readline()
            except ValueError:
                # readline already discarded the over-long chunk; keep draining
                # so the engine never blocks on a full pipe
                logger.warning("[engine:%s] dropped an over-long output line", self.story_id)
                continue
            if not line:
                break
            text = line.decode("utf-8", errors="replace")
            if error:
                self.stderr_tail.write(text)
                logger.info("[engine:%s][err] %s", self.story_id, text.rstrip())
            else:
                logger.info("[engine:%s] %s", self.story_id, text.rstrip())

    async def _monitor(self) -> None:
        code = await self.process.wait()
        logger.info("[engine:%s] exited with code %s", self.story_id, code)
        self._exited.set()
        if self._on_exit is not None:
            self._on_exit(self)

    async def send(self, text: str) -> None:
        """Write one turn line to the engine's stdin."""
        if not self.alive:
            raise EngineFailedError(
                f"Engine process for {self.story_id!r} is not running",
                str(self.stderr_tail),
            )
        try:
            self.process.stdin.write(f"{text}\n".encode("utf-8"))
            await self.process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            raise EngineFailedError(
                f"Engine process for {self.story_id!r} closed its input: {e}",
                str(self.stderr_tail),
            ) from e

    async def wait_exit(self) -> int | None:
        await self._exited.wait()
        return self.process.returncode

    async def terminate(self, grace: float = 5.0) -> None:
        if self.alive:
            self.process.terminate()
            try:
                await asyncio.wait_for(self.wait_exit(), grace)
            except asyncio.TimeoutError:
                logger.warning("[engine:%s] did not exit after terminate, killing", self.story_id)
                self.process.kill()
                await self.wait_exit()
        for task in self._tasks:
            if not task.done():
                task.cancel()

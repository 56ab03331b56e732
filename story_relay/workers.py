"""Worker adapters: how one turn is handed to the narration engine.

Every worker matches the protocol:

    async def run_turn(self, session, story_dir, text) -> bool: ...

It returns True if the story log changed during the turn and raises a
RelayError subclass on failure. The player's entry is already in the log when
run_turn is called.

Three implementations are provided:

    EphemeralWorker  — `codex exec` once per turn; the turn is done when the
                       process exits with code 0.
    PersistentWorker — one interactive engine process per session; each turn
                       is a line on its stdin and is done when the log settles.
    EchoWorker       — no subprocess; appends a Narrator entry echoing the
                       player. Useful for wiring the app up without an engine.

build_worker() picks one from RelayConfig.worker_mode.
"""

from __future__ import annotations

import asyncio
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from story_relay.completion import Settlement, SettleWatcher, snapshot
from story_relay.config import RelayConfig
from story_relay.engine import (
    ProcessLauncher,
    WorkerHandle,
    launch_process,
    resolve_engine,
    tail,
)
from story_relay.errors import EngineFailedError, SettleTimeoutError
from story_relay.log import log_path, next_turn_number, read_log, write_log
from story_relay.prompts import render_turn_prompt
from story_relay.sessions import Session

logger = logging.getLogger(__name__)

LAST_MESSAGE_FILENAME = "last-message.txt"


class Worker(Protocol):
    async def run_turn(self, session: Session, story_dir: Path, text: str) -> bool: ...


# ---------------------------------------------------------------------------
# EphemeralWorker — one engine process per turn
# ---------------------------------------------------------------------------

class EphemeralWorker:
    """Runs `codex exec` for each turn and waits for it to exit.

    Engine output is logged for diagnostics only; the narrative lands in the
    story files, written by the engine itself.
    """

    def __init__(
        self,
        root_dir: Path,
        engine_command: str = "codex",
        engine_path: str | None = None,
        launcher: ProcessLauncher = launch_process,
        diagnostic_tail: int = 1200,
        template: str | None = None,
    ) -> None:
        self._root = root_dir
        self._command = engine_command
        self._override = engine_path
        self._launch = launcher
        self._tail = diagnostic_tail
        self._template = template

    def build_argv(self, executable: str, story_dir: Path, text: str) -> list[str]:
        rel = os.path.relpath(story_dir, self._root)
        prompt = render_turn_prompt(rel, text, self._template)
        return [
            executable,
            "exec",
            "--skip-git-repo-check",
            "--dangerously-bypass-approvals-and-sandbox",
            "--output-last-message",
            str(story_dir / LAST_MESSAGE_FILENAME),
            prompt,
        ]

    async def run_turn(self, session: Session, story_dir: Path, text: str) -> bool:
        executable = resolve_engine(self._command, self._override)
        before = snapshot(log_path(story_dir))
        argv = self.build_argv(executable, story_dir, text)

        logger.debug("engine exec story=%s text_len=%d", session.story_id, len(text))
        process = await self._launch(argv, self._root, False)
        stdout, stderr = await process.communicate()
        out = (stdout or b"").decode("utf-8", errors="replace")
        err = (stderr or b"").decode("utf-8", errors="replace")
        for line in out.splitlines():
            logger.debug("[engine:%s] %s", session.story_id, line)
        for line in err.splitlines():
            logger.debug("[engine:%s][err] %s", session.story_id, line)

        if process.returncode != 0:
            raise EngineFailedError(
                f"Engine exited with code {process.returncode}",
                tail(err or out, self._tail),
            )
        return snapshot(log_path(story_dir)) != before


# ---------------------------------------------------------------------------
# PersistentWorker — one interactive engine process per session
# ---------------------------------------------------------------------------

class PersistentWorker:
    """Feeds turns to a long-lived engine process over stdin.

    The process is never waited on per turn; completion is the story log
    settling. If the process exits mid-turn the turn fails and the session's
    slot is left EXITED, so the next turn gets a fresh process.
    """

    def __init__(
        self,
        root_dir: Path,
        engine_command: str = "codex",
        engine_path: str | None = None,
        launcher: ProcessLauncher = launch_process,
        settle_timeout: float = 120.0,
        poll_interval: float = 0.4,
        debounce: float = 1.0,
        diagnostic_tail: int = 1200,
    ) -> None:
        self._root = root_dir
        self._command = engine_command
        self._override = engine_path
        self._launch = launcher
        self._settle_timeout = settle_timeout
        self._poll_interval = poll_interval
        self._debounce = debounce
        self._tail = diagnostic_tail

    async def spawn(self, session: Session) -> WorkerHandle:
        executable = resolve_engine(self._command, self._override)
        process = await self._launch([executable], self._root, True)
        handle = WorkerHandle(
            session.story_id, process,
            on_exit=session.slot.mark_exited,
            tail_limit=self._tail,
        )
        handle.start()
        logger.info("[engine:%s] started pid=%s", session.story_id, handle.pid)
        return handle

    async def run_turn(self, session: Session, story_dir: Path, text: str) -> bool:
        handle = await session.slot.acquire(lambda: self.spawn(session))
        watcher = SettleWatcher(
            log_path(story_dir),
            poll_interval=self._poll_interval,
            debounce=self._debounce,
        )
        await handle.send(text)

        settled = asyncio.ensure_future(watcher.wait(self._settle_timeout))
        exited = asyncio.ensure_future(handle.wait_exit())
        try:
            done, _ = await asyncio.wait({settled, exited}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (settled, exited):
                if not task.done():
                    task.cancel()

        if settled in done:
            if settled.result() is Settlement.TIMED_OUT:
                raise SettleTimeoutError(
                    f"No settled log update within {self._settle_timeout:g}s; "
                    "the engine may still finish this turn"
                )
            return True
        raise EngineFailedError(
            f"Engine exited with code {handle.returncode} during the turn",
            str(handle.stderr_tail),
        )


# ---------------------------------------------------------------------------
# EchoWorker — no engine; deterministic log mutation
# ---------------------------------------------------------------------------

class EchoWorker:
    """Appends a Narrator entry echoing the player's text. No subprocess.

    Lets you check the HTTP → queue → log wiring end-to-end without the
    engine installed. `delay` simulates a slow engine.
    """

    speaker = "Narrator"

    def __init__(self, delay: float = 0.0) -> None:
        self._delay = delay
        self.calls: list[tuple[str, str]] = []

    async def run_turn(self, session: Session, story_dir: Path, text: str) -> bool:
        self.calls.append((session.story_id, text))
        if self._delay:
            await asyncio.sleep(self._delay)
        path = log_path(story_dir)
        entries = read_log(path)
        entries.append({
            "turn": next_turn_number(entries),
            "speaker": self.speaker,
            "text": f"You said: {text}",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })
        write_log(path, entries)
        logger.debug("EchoWorker story=%s text_len=%d", session.story_id, len(text))
        return True


def build_worker(config: RelayConfig, launcher: ProcessLauncher | None = None) -> Worker:
    launch = launcher or launch_process
    if config.worker_mode == "echo":
        return EchoWorker()
    if config.worker_mode == "ephemeral":
        return EphemeralWorker(
            config.root_dir,
            engine_command=config.engine_command,
            engine_path=config.engine_path,
            launcher=launch,
            diagnostic_tail=config.diagnostic_tail,
        )
    return PersistentWorker(
        config.root_dir,
        engine_command=config.engine_command,
        engine_path=config.engine_path,
        launcher=launch,
        settle_timeout=config.settle_timeout,
        poll_interval=config.poll_interval,
        debounce=config.debounce,
        diagnostic_tail=config.diagnostic_tail,
    )

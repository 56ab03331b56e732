"""Relay configuration.

Values come from environment variables (a `.env` file is loaded by the app
and the launcher before this runs) and fall back to the defaults below.

    RELAY_ROOT            project root; story paths in the index are relative to it
    RELAY_INDEX           story index file        (default: <root>/data/index.json)
    RELAY_UPLOAD_DIR      image upload directory  (default: <root>/assets/uploads)
    RELAY_WORKER_MODE     persistent | ephemeral | echo
    CODEX_COMMAND         engine executable name  (default: codex)
    CODEX_PATH            explicit engine path, checked before anything else
    RELAY_SETTLE_TIMEOUT  seconds to wait for the log to settle
    RELAY_POLL_INTERVAL   seconds between log polls
    RELAY_DEBOUNCE        quiet seconds required before the log counts as settled
    HOST, PORT            HTTP bind address
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Literal

from pydantic import BaseModel

WorkerMode = Literal["persistent", "ephemeral", "echo"]


class RelayConfig(BaseModel):
    root_dir: Path
    index_path: Path | None = None
    upload_dir: Path | None = None
    worker_mode: WorkerMode = "persistent"
    engine_command: str = "codex"
    engine_path: str | None = None
    settle_timeout: float = 120.0
    poll_interval: float = 0.4
    debounce: float = 1.0
    diagnostic_tail: int = 1200
    host: str = "127.0.0.1"
    port: int = 8787

    def model_post_init(self, __context) -> None:
        if self.index_path is None:
            self.index_path = self.root_dir / "data" / "index.json"
        if self.upload_dir is None:
            self.upload_dir = self.root_dir / "assets" / "uploads"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides) -> RelayConfig:
        env = os.environ if environ is None else environ
        fields: dict = {"root_dir": Path(env.get("RELAY_ROOT") or Path.cwd())}
        if env.get("RELAY_INDEX"):
            fields["index_path"] = Path(env["RELAY_INDEX"])
        if env.get("RELAY_UPLOAD_DIR"):
            fields["upload_dir"] = Path(env["RELAY_UPLOAD_DIR"])
        if env.get("RELAY_WORKER_MODE"):
            fields["worker_mode"] = env["RELAY_WORKER_MODE"].strip().lower()
        if env.get("CODEX_COMMAND"):
            fields["engine_command"] = env["CODEX_COMMAND"]
        if env.get("CODEX_PATH"):
            fields["engine_path"] = env["CODEX_PATH"]
        if env.get("RELAY_SETTLE_TIMEOUT"):
            fields["settle_timeout"] = env["RELAY_SETTLE_TIMEOUT"]
        if env.get("RELAY_POLL_INTERVAL"):
            fields["poll_interval"] = env["RELAY_POLL_INTERVAL"]
        if env.get("RELAY_DEBOUNCE"):
            fields["debounce"] = env["RELAY_DEBOUNCE"]
        if env.get("HOST"):
            fields["host"] = env["HOST"]
        if env.get("PORT"):
            fields["port"] = env["PORT"]
        fields.update(overrides)
        return cls.model_validate(fields)

    def public_view(self) -> dict:
        """Settings safe to show a UI (no engine path)."""
        return {
            "worker_mode": self.worker_mode,
            "engine_command": self.engine_command,
            "settle_timeout": self.settle_timeout,
            "debounce": self.debounce,
        }

"""Core data models.

Pydantic is used at the data boundaries: the story index, log entries, and the
outcome returned to whoever submitted a turn.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel

ErrorKind = Literal[
    "input",
    "engine_unavailable",
    "engine_failure",
    "timeout",
    "internal",
]


class Story(BaseModel):
    """An entry in the story index. `path` is relative to the project root."""

    id: str
    path: str

    def directory(self, root: Path) -> Path:
        return root / self.path


class LogEntry(BaseModel):
    """A single record in a story's log.json."""

    turn: int
    speaker: str
    text: str
    timestamp: str


class TurnOutcome(BaseModel):
    """Result of one submitted turn. Failures are values, never exceptions."""

    ok: bool
    updated: bool | None = None
    error: str | None = None
    kind: ErrorKind | None = None

    @classmethod
    def success(cls, updated: bool) -> TurnOutcome:
        return cls(ok=True, updated=updated)

    @classmethod
    def failure(cls, kind: ErrorKind, error: str) -> TurnOutcome:
        return cls(ok=False, error=error, kind=kind)

    def to_response(self) -> dict[str, Any]:
        """Wire shape: {ok, updated?, error?}."""
        body: dict[str, Any] = {"ok": self.ok}
        if self.updated is not None:
            body["updated"] = self.updated
        if self.error is not None:
            body["error"] = self.error
        return body

"""Error taxonomy for a turn.

Each error carries the kind reported back to the caller and the HTTP status
the web layer answers with. Routes never guess: they read these two fields.
"""

from __future__ import annotations


class RelayError(RuntimeError):
    """Base class for every failure a turn can report."""

    kind = "internal"
    status_code = 500


class TurnInputError(RelayError):
    """Blank text, blank story id, or a story id missing from the index."""

    kind = "input"
    status_code = 400


class EngineUnavailableError(RelayError):
    """The narration engine executable could not be resolved or spawned."""

    kind = "engine_unavailable"
    status_code = 500


class EngineFailedError(RelayError):
    """The engine exited non-zero, or died in the middle of a turn."""

    kind = "engine_failure"
    status_code = 500

    def __init__(self, message: str, diagnostics: str = "") -> None:
        self.diagnostics = diagnostics
        if diagnostics:
            message = f"{message}\n{diagnostics}"
        super().__init__(message)


class SettleTimeoutError(RelayError):
    """The log never settled in time. The engine may still finish later."""

    kind = "timeout"
    status_code = 504


class PromptError(RelayError):
    """Raised when the engine instruction template fails to render."""

"""Story log storage (append-only turn record per story).

log.json is an array of {turn, speaker, text, timestamp}. The engine appends
its own entries; this module only ever appends the player's verbatim turn
before the engine is invoked.

Turn numbering: one above the highest integer `turn` already present, so an
out-of-order or hand-edited log still gets a fresh number.

Retry guard: if the last entry is already this exact Player text the append
is skipped. A client that re-sends the same request before the engine has
answered does not produce a duplicate.
"""

import json
import logging
import math
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from story_relay.models import LogEntry

logger = logging.getLogger(__name__)

LOG_FILENAME = "log.json"
PLAYER_SPEAKER = "Player"


def log_path(story_path: Path) -> Path:
    return story_path / LOG_FILENAME


def read_log(path: Path) -> list[Any]:
    """Load a log file. Returns [] if it is missing or not a JSON array."""
    if not path.is_file():
        return []
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable log %s: %s", path, e)
        return []
    if not isinstance(data, list):
        logger.warning("Ignoring log %s: expected a JSON array", path)
        return []
    return data


def write_log(path: Path, entries: list[Any]) -> None:
    """Rewrite the whole log, pretty-printed with a trailing newline."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f".{path.name}.tmp")
    tmp.write_text(json.dumps(entries, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    os.replace(tmp, path)


def next_turn_number(entries: list[Any]) -> int:
    highest = 0
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        turn = entry.get("turn")
        # bool is an int subclass; a stray `true` is not turn 1
        if isinstance(turn, bool) or not isinstance(turn, (int, float)):
            continue
        # json accepts NaN, Infinity and 1e400
        if isinstance(turn, float) and not math.isfinite(turn):
            continue
        highest = max(highest, int(turn))
    return highest + 1


def _is_repeat(entries: list[Any], text: str) -> bool:
    if not entries:
        return False
    last = entries[-1]
    return (
        isinstance(last, dict)
        and last.get("speaker") == PLAYER_SPEAKER
        and last.get("text") == text
    )


def append_player_turn(story_path: Path, text: str, now: datetime | None = None) -> Path:
    """Record the player's turn in the story log. Returns the log path."""
    path = log_path(story_path)
    entries = read_log(path)
    if _is_repeat(entries, text):
        logger.info("Player turn already recorded in %s, not appending again", path)
        return path

    entry = LogEntry(
        turn=next_turn_number(entries),
        speaker=PLAYER_SPEAKER,
        text=text,
        timestamp=(now or datetime.now(timezone.utc)).isoformat(),
    )
    entries.append(entry.model_dump())
    write_log(path, entries)
    return path

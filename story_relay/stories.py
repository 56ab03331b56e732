"""Story index lookup.

The index is a read-only JSON file maintained outside this package:

    {"stories": [{"id": "harbor", "path": "data/stories/harbor"}, ...]}

It is re-read on every lookup so edits show up without a restart.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from story_relay.models import Story

logger = logging.getLogger(__name__)


class StoryIndex:
    def __init__(self, index_path: Path, root_dir: Path) -> None:
        self._index_path = index_path
        self._root = root_dir

    @property
    def root_dir(self) -> Path:
        return self._root

    def list_stories(self) -> list[Story]:
        if not self._index_path.is_file():
            return []
        try:
            data = json.loads(self._index_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Story index %s is unreadable: %s", self._index_path, e)
            return []
        entries = data.get("stories", []) if isinstance(data, dict) else []
        stories: list[Story] = []
        for entry in entries:
            try:
                stories.append(Story.model_validate(entry))
            except ValidationError:
                logger.warning("Skipping malformed story index entry: %r", entry)
        return stories

    def resolve(self, story_id: str) -> Story | None:
        for story in self.list_stories():
            if story.id == story_id:
                return story
        return None

    def story_path(self, story_id: str) -> Path | None:
        story = self.resolve(story_id)
        if story is None:
            return None
        return story.directory(self._root)

"""Tests for the story index."""

import json

from story_relay.stories import StoryIndex


def _index(root) -> StoryIndex:
    return StoryIndex(root / "data" / "index.json", root)


def test_list_stories(story_root):
    stories = _index(story_root).list_stories()
    assert [s.id for s in stories] == ["harbor", "tower"]


def test_resolve_known_story(story_root):
    story = _index(story_root).resolve("tower")
    assert story is not None
    assert story.path == "data/stories/tower"
    assert _index(story_root).story_path("tower") == story_root / "data" / "stories" / "tower"


def test_resolve_unknown_story(story_root):
    assert _index(story_root).resolve("cellar") is None
    assert _index(story_root).story_path("cellar") is None


def test_missing_index_is_empty(story_root):
    index = StoryIndex(story_root / "nope.json", story_root)
    assert index.list_stories() == []
    assert index.resolve("harbor") is None


def test_malformed_index_is_empty(story_root):
    (story_root / "data" / "index.json").write_text("[[[")
    assert _index(story_root).list_stories() == []


def test_malformed_entries_are_skipped(story_root):
    (story_root / "data" / "index.json").write_text(json.dumps({
        "stories": [{"id": "ok", "path": "data/stories/ok"}, {"id": "no-path"}, "junk"],
    }))
    assert [s.id for s in _index(story_root).list_stories()] == ["ok"]


def test_index_is_reread_on_every_lookup(story_root):
    index = _index(story_root)
    assert index.resolve("cellar") is None
    (story_root / "data" / "index.json").write_text(json.dumps({
        "stories": [{"id": "cellar", "path": "data/stories/cellar"}],
    }))
    assert index.resolve("cellar") is not None

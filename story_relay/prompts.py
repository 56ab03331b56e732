"""Handlebars instruction payload for the one-shot engine invocation."""

from collections.abc import Callable
from typing import Any

import pybars

from story_relay.errors import PromptError

_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


DEFAULT_TURN_TEMPLATE = """\
You are the narrator of the interactive story stored in {{{story_path}}}.
Read AGENTS.md and the story files in that directory before you answer.

The player's turn, verbatim:
<<<
{{{player_text}}}
>>>

Rules:
- Do not ask questions; nobody will answer. Decide and act.
- The player's turn is already recorded in {{{story_path}}}/log.json. Append your
  narration as the next entry with speaker "Narrator".
- Update recap.json and the character and world state files when they change.
- Keep every file valid JSON, pretty-printed with two-space indentation.
- When a roll is needed, run `roll-dice risky` or `roll-dice NdM+K` and respect the result.
- Finish with a one-line summary of what changed.
"""


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context.

    Templates are cached by source string to avoid recompilation.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return str(compiled(context))
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


def render_turn_prompt(story_path: str, player_text: str, template: str | None = None) -> str:
    """Build the instruction string passed to `codex exec` for one turn."""
    context = {"story_path": story_path.replace("\\", "/"), "player_text": player_text}
    return render_prompt(template or DEFAULT_TURN_TEMPLATE, context)

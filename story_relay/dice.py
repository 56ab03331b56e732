"""Dice roller the narration engine shells out to.

    roll-dice risky     1d6: 1-2 fail, 3-4 mixed, 5-6 success
    roll-dice 2d6+1     NdM with an optional +K / -K modifier
"""

from __future__ import annotations

import argparse
import random
import re
import sys
from dataclasses import dataclass

_DICE_RE = re.compile(r"^([0-9]+)d([0-9]+)([+-][0-9]+)?$", re.IGNORECASE)


@dataclass(frozen=True)
class DiceSpec:
    count: int
    sides: int
    mod: int = 0

    @property
    def label(self) -> str:
        return f"{self.count}d{self.sides}{format_mod(self.mod)}"


def format_mod(mod: int) -> str:
    if mod == 0:
        return ""
    return f"+{mod}" if mod > 0 else str(mod)


def parse_dice(expr: str) -> DiceSpec | None:
    """Parse "NdM", "NdM+K" or "NdM-K". Returns None when invalid."""
    match = _DICE_RE.match(expr.strip())
    if not match:
        return None
    count, sides = int(match.group(1)), int(match.group(2))
    mod = int(match.group(3)) if match.group(3) else 0
    if count <= 0 or sides <= 0:
        return None
    return DiceSpec(count, sides, mod)


def roll(count: int, sides: int, rng: random.Random | None = None) -> list[int]:
    rng = rng or random.Random()
    return [rng.randint(1, sides) for _ in range(count)]


def risky(rng: random.Random | None = None) -> tuple[int, str]:
    (value,) = roll(1, 6, rng)
    outcome = "mixed"
    if value <= 2:
        outcome = "fail"
    if value >= 5:
        outcome = "success"
    return value, outcome


def describe(spec: DiceSpec, rolls: list[int]) -> str:
    mod = format_mod(spec.mod)
    total = sum(rolls) + spec.mod
    return f"{spec.label} => [{', '.join(str(r) for r in rolls)}] {mod} = {total}"


def main(argv: list[str] | None = None, rng: random.Random | None = None) -> int:
    parser = argparse.ArgumentParser(prog="roll-dice", description="Roll dice for a story turn")
    parser.add_argument("expr", nargs="?", help="'risky' or a dice expression such as 1d20+3")
    args = parser.parse_args(argv)

    if not args.expr:
        print("Usage: roll-dice risky | 1d20+3", file=sys.stderr)
        return 1

    if args.expr.lower() == "risky":
        value, outcome = risky(rng)
        print(f"1d6 => [{value}] = {outcome}")
        return 0

    spec = parse_dice(args.expr)
    if spec is None:
        print("Invalid dice expression. Use NdM or NdM+K (e.g. 2d6+1), or 'risky'.", file=sys.stderr)
        return 1

    print(describe(spec, roll(spec.count, spec.sides, rng)))
    return 0


if __name__ == "__main__":
    sys.exit(main())

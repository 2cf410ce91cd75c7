"""
Dice range tables.

A dice table maps range specifiers such as "4" or "2-5" onto outcomes. Rolls are
a single d6; callers pass their own random.Random so sessions stay independent
and tests can seed or force the result.
"""

from __future__ import annotations

import logging
import random
from typing import NamedTuple, Sequence

from story import DiceOutcome


logger = logging.getLogger(__name__)

DIE_SIDES = 6
DIE_FACES = ("⚀", "⚁", "⚂", "⚃", "⚄", "⚅")


class InclusiveRange(NamedTuple):
    low: int
    high: int

    def __contains__(self, value: object) -> bool:
        return isinstance(value, int) and self.low <= value <= self.high

    @property
    def empty(self) -> bool:
        return self.low > self.high

    def values(self) -> list[int]:
        return list(range(self.low, self.high + 1))


EMPTY_RANGE = InclusiveRange(1, 0)


def parse_range(spec: str) -> InclusiveRange:
    """
    Parse "4" or "2-5" into an inclusive range.

    Unparseable specs are logged and yield an empty range rather than raising.
    """
    parts = str(spec).split("-")
    try:
        low = int(parts[0])
        high = int(parts[-1])
    except ValueError:
        logger.warning("Unparseable dice range: %r", spec)
        return EMPTY_RANGE
    return InclusiveRange(low, high)


def resolve_roll(roll: int, outcomes: Sequence[DiceOutcome]) -> DiceOutcome | None:
    """
    Return the first outcome whose range holds `roll`, else the first outcome.

    An empty table has nothing to fall back on and yields None.
    """
    if not outcomes:
        logger.warning("Roll %d against an empty dice table", roll)
        return None
    for outcome in outcomes:
        if roll in parse_range(outcome.val):
            return outcome
    logger.warning("Roll %d is not covered by the dice table; using the first outcome", roll)
    return outcomes[0]


def roll_d6(rng: random.Random | None = None) -> int:
    return (rng or random).randint(1, DIE_SIDES)


def die_face(roll: int) -> str:
    if 1 <= roll <= DIE_SIDES:
        return DIE_FACES[roll - 1]
    return str(roll)


def uncovered_faces(outcomes: Sequence[DiceOutcome]) -> list[int]:
    """Die faces that no outcome in the table covers."""
    ranges = [parse_range(o.val) for o in outcomes]
    return [face for face in range(1, DIE_SIDES + 1) if not any(face in r for r in ranges)]

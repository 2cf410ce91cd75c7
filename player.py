#!/usr/bin/env python3
"""Player inventory model and loot rules for the story engine."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Iterable

from story import LOOT_CATEGORIES, Choice, LootEntry, RoomVersion


logger = logging.getLogger(__name__)


def _check_category(category: str) -> None:
    if category not in LOOT_CATEGORIES:
        raise ValueError(f"Unknown loot category: {category}")


@dataclass
class PlayerState:
    """Items and achievements collected so far, in acquisition order."""

    items: list[LootEntry] = field(default_factory=list)
    achievements: list[LootEntry] = field(default_factory=list)

    def collection(self, category: str) -> list[LootEntry]:
        _check_category(category)
        return self.items if category == "items" else self.achievements

    def labels(self, category: str) -> list[str]:
        return [entry.label for entry in self.collection(category) if entry.label]

    def has(self, category: str, label: str) -> bool:
        return label in self.labels(category)

    def add(self, category: str, entries: Iterable[LootEntry]) -> None:
        self.collection(category).extend(entries)

    def remove_first(self, category: str, label: str) -> bool:
        """Drop the first entry with `label`; return False when nothing matched."""
        entries = self.collection(category)
        for idx, entry in enumerate(entries):
            if entry.label == label:
                del entries[idx]
                return True
        return False

    def clear(self) -> None:
        self.items.clear()
        self.achievements.clear()

    def inventory_lines(self) -> list[str]:
        return [entry.inventory or entry.label or "?" for entry in self.items]

    def to_dict(self) -> dict[str, list[str]]:
        return {category: self.labels(category) for category in LOOT_CATEGORIES}


def autoloot(
    source: Any,
    player: PlayerState,
    categories: Iterable[str] = LOOT_CATEGORIES,
) -> list[LootEntry]:
    """Copy every auto-lootable entry of `source` into the player's collections.

    `source` is a room version, dice outcome, or choice. It is only read, so the
    same source offers the same loot every time it is visited.
    """
    gained: list[LootEntry] = []
    for category in categories:
        entries = getattr(source, category, None) or ()
        picked = [entry for entry in entries if entry.autoloot]
        if picked:
            player.add(category, picked)
            gained.extend(picked)
    return gained


def apply_manual_commands(choice: Choice, player: PlayerState, version: RoomVersion) -> None:
    """Apply a choice's get/remove commands against the version on display."""
    for category in LOOT_CATEGORIES:
        get_label = choice.get_command(category)
        if get_label:
            found = next((e for e in version.loot(category) if e.label == get_label), None)
            if found is not None:
                player.add(category, [replace(found)])
                logger.debug("Getting %s: %s", category, get_label)

        del_label = choice.del_command(category)
        if del_label:
            player.remove_first(category, del_label)
            logger.debug("Removing %s: %s", category, del_label)

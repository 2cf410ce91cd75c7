"""
Pytest fixtures for the story engine test suite.

Stories are built from plain dicts in the same shape as the JSON documents.
"""

import pytest

from player import PlayerState
from story import LootEntry, story_from_dict


def loot(label, inventory=None, autoloot=None, lyric=""):
    entry = {"label": label, "inventory": inventory or label.title(), "lyric": lyric}
    if autoloot is not None:
        entry["autoloot"] = autoloot
    return entry


@pytest.fixture
def make_story():
    """Build a StoryGraph from room dicts."""

    def _make(*rooms, start="0"):
        return story_from_dict({"start": start, "rooms": list(rooms)})

    return _make


@pytest.fixture
def make_player():
    """Build a PlayerState holding the given labels."""

    def _make(items=(), achievements=()):
        return PlayerState(
            items=[LootEntry(label=label, inventory=label) for label in items],
            achievements=[LootEntry(label=label, inventory=label) for label in achievements],
        )

    return _make


@pytest.fixture
def guide_story(make_story):
    """Start room with an autolooted achievement and a lantern picked up by choice."""
    return make_story(
        {
            "id": "0",
            "versions": [
                {
                    "text": "A guide waits.\nShe points north.",
                    "achievements": [loot("met_guide")],
                    "items": [loot("lantern", "Brass lantern", autoloot="false", lyric="A lantern glows.")],
                    "choices": [
                        {"text": "go north", "goto": "north", "get_item": "lantern"},
                        {"text": "go south", "goto": "south"},
                    ],
                }
            ],
        },
        {"id": "north", "versions": [{"text": "Cold wind.", "choices": [{"text": "back", "goto": "0"}]}]},
        {"id": "south", "versions": [{"text": "The end."}]},
    )


@pytest.fixture
def dice_story(make_story):
    return make_story(
        {
            "id": "0",
            "versions": [
                {
                    "text": "Roll!",
                    "dice": [
                        {"val": "1-3", "text": "low", "goto": "A"},
                        {
                            "val": "4-6",
                            "text": "high",
                            "goto": "B",
                            "items": [loot("coin")],
                        },
                    ],
                }
            ],
        },
        {"id": "A", "versions": [{"text": "Room A", "choices": [{"text": "again", "goto": "0"}]}]},
        {"id": "B", "versions": [{"text": "Room B", "choices": [{"text": "again", "goto": "0"}]}]},
    )

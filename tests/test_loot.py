"""Tests for autoloot parsing and the loot rules in player.py."""

import pytest

from player import PlayerState, apply_manual_commands, autoloot
from story import Choice, DiceOutcome, LootEntry, RoomVersion, parse_autoloot


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, True),
        ("true", True),
        ("TRUE", True),
        ("yes", True),
        ("false", False),
        ("False", False),
        (" FALSE ", False),
        (False, False),
        (True, True),
    ],
)
def test_parse_autoloot(raw, expected):
    assert parse_autoloot(raw) is expected


def test_autoloot_flag_is_parsed_at_load():
    entry = LootEntry.from_dict({"label": "map", "autoloot": "FALSE"})
    assert entry.autoloot is False
    assert LootEntry.from_dict({"label": "map"}).autoloot is True


def _version():
    return RoomVersion(
        text="Room",
        items=(
            LootEntry(label="torch", inventory="Torch"),
            LootEntry(label="sword", inventory="Sword", autoloot=False),
            LootEntry(label="rope", inventory="Rope"),
        ),
        achievements=(LootEntry(label="explorer", inventory="Explorer"),),
    )


class TestAutoloot:
    def test_only_autoloot_entries_in_source_order(self):
        player = PlayerState()
        autoloot(_version(), player)
        assert player.labels("items") == ["torch", "rope"]
        assert player.labels("achievements") == ["explorer"]

    def test_source_is_never_mutated(self):
        version = _version()
        before = (version.items, version.achievements)
        first, second = PlayerState(), PlayerState()
        autoloot(version, first)
        autoloot(version, second)
        autoloot(version, first)
        assert (version.items, version.achievements) == before
        assert first.labels("items") == ["torch", "rope", "torch", "rope"]
        assert second.labels("items") == ["torch", "rope"]

    def test_categories_can_be_limited(self):
        player = PlayerState()
        autoloot(_version(), player, categories=["achievements"])
        assert player.items == []
        assert player.labels("achievements") == ["explorer"]

    def test_dice_outcome_and_choice_are_sources(self):
        player = PlayerState()
        autoloot(DiceOutcome(val="1", items=(LootEntry(label="coin"),)), player)
        autoloot(Choice(text="c", achievements=(LootEntry(label="brave"),)), player)
        assert player.to_dict() == {"items": ["coin"], "achievements": ["brave"]}

    def test_unknown_category_is_rejected(self):
        with pytest.raises(ValueError):
            PlayerState().collection("spells")


class TestManualCommands:
    def test_get_copies_entry_from_displayed_version(self):
        player = PlayerState()
        apply_manual_commands(Choice(text="take", get_item="sword"), player, _version())
        assert [e.inventory for e in player.items] == ["Sword"]

    def test_get_unknown_label_is_noop(self):
        player = PlayerState()
        apply_manual_commands(Choice(text="take", get_item="axe"), player, _version())
        assert player.items == []

    def test_get_achievement(self):
        player = PlayerState()
        apply_manual_commands(Choice(text="earn", get_achievement="explorer"), player, _version())
        assert player.labels("achievements") == ["explorer"]

    def test_remove_only_first_match(self):
        player = PlayerState(
            items=[LootEntry(label="coin", inventory="a"), LootEntry(label="coin", inventory="b")]
        )
        apply_manual_commands(Choice(text="pay", del_item="coin"), player, _version())
        assert [e.inventory for e in player.items] == ["b"]

    def test_remove_missing_label_is_noop(self):
        player = PlayerState(items=[LootEntry(label="coin")])
        apply_manual_commands(Choice(text="pay", del_item="gem"), player, _version())
        assert player.labels("items") == ["coin"]

    def test_get_and_remove_on_same_transition(self):
        player = PlayerState(items=[LootEntry(label="torch")])
        choice = Choice(text="swap", get_item="sword", del_item="torch")
        apply_manual_commands(choice, player, _version())
        assert player.labels("items") == ["sword"]

    def test_remove_achievement(self):
        player = PlayerState(achievements=[LootEntry(label="cursed")])
        apply_manual_commands(Choice(text="cleanse", del_achievement="cursed"), player, _version())
        assert player.achievements == []


def test_inventory_lines_fall_back_to_label():
    player = PlayerState(items=[LootEntry(label="key"), LootEntry(label="map", inventory="Old map")])
    assert player.inventory_lines() == ["key", "Old map"]

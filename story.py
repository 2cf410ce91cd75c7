#!/usr/bin/env python3
"""Story graph model, JSON loading, and room version resolution."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping, Sequence

if TYPE_CHECKING:
    from player import PlayerState


logger = logging.getLogger(__name__)

STORY_PATH = Path("story.json")
DEFAULT_START_ID = "0"
LOOT_CATEGORIES = ("items", "achievements")
NEGATED_KEYS = {"items": "not_items", "achievements": "not_achievements"}
CONDITION_KEYS = ("achievements", "items", "not_achievements", "not_items")
TRIGGER_RESET_ALL = "reset_all"
KNOWN_TRIGGERS = {TRIGGER_RESET_ALL}


class ContentError(Exception):
    """Story data is malformed or incomplete."""


class StoryLoadError(ContentError):
    """The story document could not be read."""


class MissingRoom(ContentError):
    def __init__(self, room_id: str) -> None:
        super().__init__(f"Room not found: '{room_id}'")
        self.room_id = room_id


class MissingDefaultVersion(ContentError):
    def __init__(self, room_id: str) -> None:
        super().__init__(f"Room '{room_id}' has no matching version and no default version")
        self.room_id = room_id


def _as_text(value: Any, default: str = "") -> str:
    if value is None:
        return default
    return str(value)


def _as_label(value: Any) -> str | None:
    if value is None:
        return None
    label = str(value).strip()
    return label or None


def _as_label_list(value: Any) -> tuple[str, ...] | None:
    if value is None:
        return None
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, Sequence):
        return ()
    return tuple(label for label in (_as_label(v) for v in value) if label)


def parse_autoloot(value: Any) -> bool:
    """Only an explicit false disables autoloot; anything else keeps it on."""
    if value is None:
        return True
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() != "false"


@dataclass(frozen=True)
class LootEntry:
    label: str | None = None
    inventory: str = ""
    lyric: str = ""
    autoloot: bool = True

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "LootEntry":
        return cls(
            label=_as_label(raw.get("label")),
            inventory=_as_text(raw.get("inventory")),
            lyric=_as_text(raw.get("lyric")),
            autoloot=parse_autoloot(raw.get("autoloot")),
        )


@dataclass(frozen=True)
class ItemMention:
    """Flavor line shown under a room's text."""

    label: str | None
    text: str


@dataclass(frozen=True)
class Conditions:
    achievements: tuple[str, ...] | None = None
    items: tuple[str, ...] | None = None
    not_achievements: tuple[str, ...] | None = None
    not_items: tuple[str, ...] | None = None

    @property
    def recognized(self) -> bool:
        return any(getattr(self, key) is not None for key in CONDITION_KEYS)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Conditions":
        # A present key counts even when its value is null.
        return cls(**{key: _as_label_list(raw[key]) or () for key in CONDITION_KEYS if key in raw})


def _loot_list(raw: Mapping[str, Any], key: str) -> tuple[LootEntry, ...]:
    entries = raw.get(key)
    if not isinstance(entries, list):
        return ()
    return tuple(LootEntry.from_dict(e) for e in entries if isinstance(e, Mapping))


@dataclass(frozen=True)
class DiceOutcome:
    val: str
    text: str = ""
    goto: str = ""
    items: tuple[LootEntry, ...] = ()
    achievements: tuple[LootEntry, ...] = ()

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "DiceOutcome":
        return cls(
            val=_as_text(raw.get("val")).strip(),
            text=_as_text(raw.get("text")),
            goto=_as_text(raw.get("goto")).strip(),
            items=_loot_list(raw, "items"),
            achievements=_loot_list(raw, "achievements"),
        )


@dataclass(frozen=True)
class Choice:
    text: str
    goto: str = ""
    items: tuple[LootEntry, ...] = ()
    achievements: tuple[LootEntry, ...] = ()
    get_item: str | None = None
    del_item: str | None = None
    get_achievement: str | None = None
    del_achievement: str | None = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Choice":
        return cls(
            text=_as_text(raw.get("text"), "Continue"),
            goto=_as_text(raw.get("goto")).strip(),
            items=_loot_list(raw, "items"),
            achievements=_loot_list(raw, "achievements"),
            get_item=_as_label(raw.get("get_item")),
            del_item=_as_label(raw.get("del_item")),
            get_achievement=_as_label(raw.get("get_achievement")),
            del_achievement=_as_label(raw.get("del_achievement")),
        )

    def get_command(self, category: str) -> str | None:
        return self.get_item if category == "items" else self.get_achievement

    def del_command(self, category: str) -> str | None:
        return self.del_item if category == "items" else self.del_achievement


def _conditions(raw: Any) -> Conditions | None:
    if raw is None:
        return None
    if isinstance(raw, Mapping):
        return Conditions.from_dict(raw)
    # Malformed but present: stays gated and never matches.
    return Conditions()


@dataclass(frozen=True)
class RoomVersion:
    text: str = ""
    items: tuple[LootEntry, ...] = ()
    achievements: tuple[LootEntry, ...] = ()
    trigger: str | None = None
    conditions: Conditions | None = None
    dice: tuple[DiceOutcome, ...] = ()
    choices: tuple[Choice, ...] = ()

    @property
    def is_default(self) -> bool:
        return self.conditions is None

    @property
    def mentions(self) -> tuple[ItemMention, ...]:
        return tuple(ItemMention(item.label, item.lyric) for item in self.items if item.lyric)

    def loot(self, category: str) -> tuple[LootEntry, ...]:
        return self.items if category == "items" else self.achievements

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "RoomVersion":
        conditions = raw.get("conditions")
        dice = raw.get("dice") if isinstance(raw.get("dice"), list) else []
        choices = raw.get("choices") if isinstance(raw.get("choices"), list) else []
        trigger = _as_label(raw.get("triggers"))
        return cls(
            text=_as_text(raw.get("text")),
            items=_loot_list(raw, "items"),
            achievements=_loot_list(raw, "achievements"),
            trigger=trigger,
            conditions=_conditions(conditions),
            dice=tuple(DiceOutcome.from_dict(d) for d in dice if isinstance(d, Mapping)),
            choices=tuple(Choice.from_dict(c) for c in choices if isinstance(c, Mapping)),
        )


@dataclass(frozen=True)
class Room:
    id: str
    versions: tuple[RoomVersion, ...] = ()

    @property
    def default_version(self) -> RoomVersion | None:
        for version in self.versions:
            if version.is_default:
                return version
        return None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Room":
        room_id = _as_text(raw.get("id")).strip()
        versions_raw = raw.get("versions")
        if not isinstance(versions_raw, list):
            versions_raw = []
        versions = tuple(RoomVersion.from_dict(v) for v in versions_raw if isinstance(v, Mapping))
        if sum(1 for v in versions if v.is_default) > 1:
            logger.warning("Room '%s' has more than one default version; the first is used", room_id)
        return cls(id=room_id, versions=versions)


@dataclass(frozen=True)
class StoryGraph:
    """Immutable room graph; safe to share between sessions."""

    rooms: tuple[Room, ...]
    start_id: str = DEFAULT_START_ID
    title: str = ""
    _by_id: dict[str, Room] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        for room in self.rooms:
            self._by_id.setdefault(room.id, room)

    def room(self, room_id: str) -> Room:
        room = self._by_id.get(room_id)
        if room is None:
            raise MissingRoom(room_id)
        return room

    def has_room(self, room_id: str) -> bool:
        return room_id in self._by_id

    @property
    def room_ids(self) -> list[str]:
        return [room.id for room in self.rooms]


def story_from_dict(data: Any) -> StoryGraph:
    if not isinstance(data, Mapping):
        raise StoryLoadError("Story document must be a JSON object")
    rooms_raw = data.get("rooms")
    if not isinstance(rooms_raw, list) or not rooms_raw:
        raise StoryLoadError("Story document has no rooms")

    rooms: list[Room] = []
    seen: set[str] = set()
    for raw in rooms_raw:
        if not isinstance(raw, Mapping):
            continue
        room = Room.from_dict(raw)
        if not room.id:
            logger.warning("Skipping room without an id")
            continue
        if room.id in seen:
            logger.warning("Duplicate room id '%s'; keeping the first", room.id)
            continue
        seen.add(room.id)
        rooms.append(room)
    if not rooms:
        raise StoryLoadError("Story document has no usable rooms")

    start_id = _as_text(data.get("start"), DEFAULT_START_ID).strip() or DEFAULT_START_ID
    return StoryGraph(rooms=tuple(rooms), start_id=start_id, title=_as_text(data.get("title")))


def load_story(path: str | Path = STORY_PATH) -> StoryGraph:
    story_path = Path(path)
    try:
        data = json.loads(story_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise StoryLoadError(f"Could not load story from {story_path}: {exc}") from exc
    story = story_from_dict(data)
    logger.info("Loaded %d rooms from %s", len(story.rooms), story_path)
    return story


def conditions_match(conditions: Conditions, player: PlayerState) -> bool:
    """Check a version's gating conditions against the player's loot labels."""
    if not conditions.recognized:
        logger.warning("Invalid conditions (no recognized keys): %r", conditions)
        return False

    for category in LOOT_CATEGORIES:
        owned = player.labels(category)
        required = getattr(conditions, category)
        if required and any(label not in owned for label in required):
            return False
        forbidden = getattr(conditions, NEGATED_KEYS[category])
        if forbidden and any(label in owned for label in forbidden):
            return False
    return True


def resolve_version(room: Room, player: PlayerState) -> RoomVersion:
    matching = [
        v for v in room.versions if v.conditions is not None and conditions_match(v.conditions, player)
    ]
    if matching:
        if len(matching) > 1:
            logger.debug(
                "Room '%s': %d versions match the current state; using the first",
                room.id,
                len(matching),
            )
        return matching[0]

    default = room.default_version
    if default is None:
        raise MissingDefaultVersion(room.id)
    return default

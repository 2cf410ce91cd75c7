#!/usr/bin/env python3
"""Game session state and the per-turn transition engine."""

from __future__ import annotations

import itertools
import logging
import random
from dataclasses import dataclass, field

from dice import resolve_roll, roll_d6
from player import PlayerState, apply_manual_commands, autoloot
from story import (
    KNOWN_TRIGGERS,
    TRIGGER_RESET_ALL,
    Choice,
    ContentError,
    DiceOutcome,
    ItemMention,
    RoomVersion,
    StoryGraph,
    resolve_version,
)


logger = logging.getLogger(__name__)

PHASE_AWAITING_ROOM = "awaiting_room"
PHASE_AWAITING_CHOICE = "awaiting_choice"
PHASE_AWAITING_DICE = "awaiting_dice_roll"
PHASE_ROLLING = "rolling"
PHASE_ENDED = "ended"
PHASE_FAILED = "failed"

@dataclass
class GameSession:
    """Current room pointer plus the player's collected loot."""

    start_room_id: str = "0"
    current_room_id: str = "0"
    player: PlayerState = field(default_factory=PlayerState)
    enable_cheats: bool = False

    def reset(self) -> None:
        self.current_room_id = self.start_room_id
        self.player = PlayerState()


@dataclass(frozen=True)
class PendingRoll:
    """A rolled die whose outcome has not been committed yet."""

    handle: int
    room_id: str
    roll: int
    outcome: DiceOutcome


@dataclass(frozen=True)
class Turn:
    """Everything the presentation layer needs to draw the current turn."""

    room_id: str
    phase: str
    text: str = ""
    mentions: tuple[ItemMention, ...] = ()
    inventory: tuple[str, ...] = ()
    achievements: tuple[str, ...] = ()
    choices: tuple[Choice, ...] = ()
    dice: tuple[DiceOutcome, ...] = ()
    pending_roll: PendingRoll | None = None
    error: str | None = None

    @property
    def text_lines(self) -> list[str]:
        return self.text.split("\n")


class TransitionEngine:
    """Drives one session through the story graph, one player action at a time.

    The presentation layer reads `turn` and answers with exactly one of
    `choose(index)` or `request_roll()` followed by `commit_roll(handle)`.
    Actions that arrive in the wrong phase are ignored.
    """

    def __init__(
        self,
        story: StoryGraph,
        session: GameSession | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.story = story
        self.session = session or GameSession(story.start_id, story.start_id)
        self.rng = rng or random.Random()
        self.phase = PHASE_AWAITING_ROOM
        self.version: RoomVersion | None = None
        self.turn = Turn(room_id=self.session.current_room_id, phase=self.phase)
        self.last_roll: PendingRoll | None = None
        self._pending: PendingRoll | None = None
        self._handle_ids = itertools.count(1)

    @property
    def player(self) -> PlayerState:
        return self.session.player

    def start(self) -> Turn:
        """Begin a fresh playthrough from the story's start room."""
        self.session.start_room_id = self.story.start_id
        self.session.reset()
        self._pending = None
        self.last_roll = None
        return self.process_room()

    def process_room(self) -> Turn:
        self.phase = PHASE_AWAITING_ROOM
        self.version = None
        self._pending = None
        room_id = self.session.current_room_id
        try:
            room = self.story.room(room_id)
            version = resolve_version(room, self.player)
        except ContentError as exc:
            logger.error("Cannot enter room '%s': %s", room_id, exc)
            self.phase = PHASE_FAILED
            self.turn = Turn(room_id=room_id, phase=self.phase, error=str(exc))
            return self.turn

        if version.trigger == TRIGGER_RESET_ALL:
            self.player.clear()
        elif version.trigger and version.trigger not in KNOWN_TRIGGERS:
            logger.warning("Room '%s': unknown trigger %r ignored", room_id, version.trigger)

        autoloot(version, self.player)
        self.version = version

        if version.dice:
            self.phase = PHASE_AWAITING_DICE
        elif version.choices:
            self.phase = PHASE_AWAITING_CHOICE
        else:
            self.phase = PHASE_ENDED
        self._refresh_turn()
        return self.turn

    def _refresh_turn(self) -> None:
        version = self.version or RoomVersion()
        self.turn = Turn(
            room_id=self.session.current_room_id,
            phase=self.phase,
            text=version.text,
            mentions=version.mentions,
            inventory=tuple(self.player.inventory_lines()),
            achievements=tuple(self.player.labels("achievements")),
            choices=version.choices if self.phase == PHASE_AWAITING_CHOICE else (),
            dice=version.dice if self.phase in (PHASE_AWAITING_DICE, PHASE_ROLLING) else (),
            pending_roll=self._pending,
        )

    def _advance(self, goto: str) -> Turn:
        self.session.current_room_id = goto
        return self.process_room()

    def choose(self, index: int) -> bool:
        """Apply the choice at `index`; False when no choice is being offered."""
        if self.phase != PHASE_AWAITING_CHOICE or self.version is None:
            logger.debug("Ignoring choice %s during phase '%s'", index, self.phase)
            return False
        choices = self.version.choices
        if index < 0 or index >= len(choices):
            logger.debug("Ignoring out-of-range choice %s", index)
            return False

        choice = choices[index]
        logger.debug("Choice selected: %s", choice.text)
        autoloot(choice, self.player)
        apply_manual_commands(choice, self.player, self.version)
        self._advance(choice.goto)
        return True

    def request_roll(self, roll: int | None = None) -> PendingRoll | None:
        """Roll the die for the current dice table.

        Returns the pending roll, or None when no roll may be started. `roll`
        forces the face, for tests and the cheat mode.
        """
        if self.phase != PHASE_AWAITING_DICE or self.version is None:
            logger.debug("Ignoring roll request during phase '%s'", self.phase)
            return None
        value = roll if roll is not None else roll_d6(self.rng)
        outcome = resolve_roll(value, self.version.dice)
        if outcome is None:
            return None
        self._pending = PendingRoll(
            handle=next(self._handle_ids),
            room_id=self.session.current_room_id,
            roll=value,
            outcome=outcome,
        )
        self.phase = PHASE_ROLLING
        self._refresh_turn()
        return self._pending

    def commit_roll(self, pending: PendingRoll) -> bool:
        """Apply a pending roll's loot and move on. Stale or repeated handles are ignored."""
        if self.phase != PHASE_ROLLING or pending is None or pending is not self._pending:
            logger.debug("Ignoring commit for stale roll %r", pending)
            return False
        self._pending = None
        self.last_roll = pending
        autoloot(pending.outcome, self.player)
        self._advance(pending.outcome.goto)
        return True

    def roll_dice(self, roll: int | None = None) -> PendingRoll | None:
        """Request and immediately commit a roll."""
        pending = self.request_roll(roll)
        if pending is not None:
            self.commit_roll(pending)
        return pending

"""End-to-end tests for the transition engine in session.py."""

import random

from player import PlayerState
from session import (
    PHASE_AWAITING_CHOICE,
    PHASE_AWAITING_DICE,
    PHASE_ENDED,
    PHASE_FAILED,
    PHASE_ROLLING,
    GameSession,
    TransitionEngine,
)
from story import LootEntry


class TestChoices:
    def test_start_autoloots_and_offers_choices(self, guide_story):
        engine = TransitionEngine(guide_story)
        turn = engine.start()
        assert turn.room_id == "0"
        assert turn.phase == PHASE_AWAITING_CHOICE
        assert engine.player.labels("achievements") == ["met_guide"]
        assert engine.player.items == []
        assert [c.text for c in turn.choices] == ["go north", "go south"]
        assert turn.dice == ()

    def test_choice_picks_up_item_and_moves(self, guide_story):
        engine = TransitionEngine(guide_story)
        engine.start()
        assert engine.choose(0) is True
        assert engine.player.labels("items") == ["lantern"]
        assert engine.session.current_room_id == "north"
        assert engine.turn.inventory == ("Brass lantern",)

    def test_revisiting_offers_loot_again(self, guide_story):
        engine = TransitionEngine(guide_story)
        engine.start()
        engine.choose(0)
        engine.choose(0)
        assert engine.session.current_room_id == "0"
        assert engine.player.labels("achievements") == ["met_guide", "met_guide"]
        engine.choose(0)
        assert engine.player.labels("items") == ["lantern", "lantern"]

    def test_out_of_range_choice_is_rejected(self, guide_story):
        engine = TransitionEngine(guide_story)
        engine.start()
        assert engine.choose(5) is False
        assert engine.choose(-1) is False
        assert engine.session.current_room_id == "0"

    def test_room_without_dice_or_choices_ends(self, guide_story):
        engine = TransitionEngine(guide_story)
        engine.start()
        engine.choose(1)
        assert engine.phase == PHASE_ENDED
        assert engine.turn.choices == ()
        assert engine.choose(0) is False
        assert engine.request_roll() is None

    def test_turn_exposes_text_lines_and_mentions(self, guide_story):
        turn = TransitionEngine(guide_story).start()
        assert turn.text_lines == ["A guide waits.", "She points north."]
        assert [m.text for m in turn.mentions] == ["A lantern glows."]

    def test_manual_get_uses_version_on_display(self, make_story):
        story = make_story(
            {
                "id": "0",
                "versions": [
                    {
                        "conditions": {"achievements": ["flag"]},
                        "text": "changed",
                        "items": [{"label": "other", "autoloot": "false"}],
                        "choices": [{"text": "x", "goto": "end"}],
                    },
                    {
                        "text": "original",
                        "items": [{"label": "gem", "autoloot": "false"}],
                        "choices": [
                            {
                                "text": "grab",
                                "goto": "end",
                                "get_item": "gem",
                                "achievements": [{"label": "flag"}],
                            }
                        ],
                    },
                ],
            },
            {"id": "end", "versions": [{"text": "done"}]},
        )
        engine = TransitionEngine(story)
        engine.start()
        engine.choose(0)
        assert engine.player.labels("items") == ["gem"]
        assert engine.player.labels("achievements") == ["flag"]


class TestResetTrigger:
    def test_reset_all_clears_before_own_loot(self, make_story):
        story = make_story(
            {"id": "0", "versions": [{"text": "go", "choices": [{"text": "sleep", "goto": "dream"}]}]},
            {
                "id": "dream",
                "versions": [
                    {
                        "triggers": "reset_all",
                        "text": "You wake.",
                        "items": [{"label": "pebble"}],
                    }
                ],
            },
        )
        session = GameSession()
        engine = TransitionEngine(story, session)
        engine.start()
        session.player.items.extend(LootEntry(label=f"i{n}") for n in range(3))
        session.player.achievements.extend(LootEntry(label=f"a{n}") for n in range(2))

        engine.choose(0)
        assert session.player.labels("items") == ["pebble"]
        assert session.player.achievements == []

    def test_reset_all_without_loot_leaves_empty(self, make_story):
        story = make_story(
            {
                "id": "0",
                "versions": [{"text": "x", "choices": [{"text": "on", "goto": "r", "items": [{"label": "k"}]}]}],
            },
            {"id": "r", "versions": [{"triggers": "reset_all", "text": "reset"}]},
        )
        engine = TransitionEngine(story)
        engine.start()
        engine.choose(0)
        assert engine.player.items == [] and engine.player.achievements == []


class TestDice:
    def test_dice_room_exposes_outcomes(self, dice_story):
        turn = TransitionEngine(dice_story).start()
        assert turn.phase == PHASE_AWAITING_DICE
        assert [o.val for o in turn.dice] == ["1-3", "4-6"]
        assert turn.choices == ()

    def test_forced_roll_goes_to_matching_room(self, dice_story):
        engine = TransitionEngine(dice_story)
        engine.start()
        pending = engine.request_roll(4)
        assert pending.roll == 4
        assert pending.outcome.goto == "B"
        assert engine.phase == PHASE_ROLLING
        assert engine.session.current_room_id == "0"

        assert engine.commit_roll(pending) is True
        assert engine.session.current_room_id == "B"
        assert engine.player.labels("items") == ["coin"]
        assert engine.last_roll is pending

    def test_low_roll(self, dice_story):
        engine = TransitionEngine(dice_story)
        engine.start()
        engine.roll_dice(2)
        assert engine.session.current_room_id == "A"
        assert engine.player.items == []

    def test_seeded_rolls_are_reproducible(self, dice_story):
        rooms = []
        for _ in range(2):
            engine = TransitionEngine(dice_story, rng=random.Random(11))
            engine.start()
            visited = []
            for _ in range(5):
                engine.roll_dice()
                visited.append(engine.session.current_room_id)
                engine.choose(0)
            rooms.append(visited)
        assert rooms[0] == rooms[1]

    def test_second_request_while_pending_is_rejected(self, dice_story):
        engine = TransitionEngine(dice_story)
        engine.start()
        first = engine.request_roll(5)
        assert engine.request_roll(1) is None
        assert engine.turn.pending_roll is first

    def test_duplicate_commit_matches_single_commit(self, dice_story):
        once = TransitionEngine(dice_story)
        once.start()
        once.commit_roll(once.request_roll(4))

        twice = TransitionEngine(dice_story)
        twice.start()
        pending = twice.request_roll(4)
        assert twice.commit_roll(pending) is True
        assert twice.commit_roll(pending) is False

        assert twice.session.current_room_id == once.session.current_room_id
        assert twice.player.to_dict() == once.player.to_dict()

    def test_handles_are_numbered_per_engine(self, dice_story):
        first = TransitionEngine(dice_story)
        first.start()
        first.roll_dice(1)
        first.choose(0)
        assert first.request_roll(2).handle == 2

        second = TransitionEngine(dice_story)
        second.start()
        assert second.request_roll(2).handle == 1

    def test_stale_handle_from_earlier_roll_is_rejected(self, dice_story):
        engine = TransitionEngine(dice_story)
        engine.start()
        old = engine.roll_dice(1)
        engine.choose(0)
        engine.request_roll(6)
        assert engine.commit_roll(old) is False
        assert engine.session.current_room_id == "0"
        assert engine.phase == PHASE_ROLLING

    def test_choice_is_rejected_during_dice_phase(self, dice_story):
        engine = TransitionEngine(dice_story)
        engine.start()
        assert engine.choose(0) is False
        assert engine.phase == PHASE_AWAITING_DICE

    def test_roll_is_rejected_during_choice_phase(self, guide_story):
        engine = TransitionEngine(guide_story)
        engine.start()
        assert engine.request_roll() is None
        assert engine.phase == PHASE_AWAITING_CHOICE


class TestContentFailures:
    def test_missing_goto_room_fails_the_turn(self, make_story):
        story = make_story(
            {"id": "0", "versions": [{"text": "x", "choices": [{"text": "void", "goto": "nowhere"}]}]}
        )
        engine = TransitionEngine(story)
        engine.start()
        assert engine.choose(0) is True
        assert engine.phase == PHASE_FAILED
        assert "nowhere" in engine.turn.error
        assert engine.choose(0) is False

    def test_missing_default_version_fails_the_turn(self, make_story):
        story = make_story(
            {"id": "0", "versions": [{"conditions": {"items": ["key"]}, "text": "locked"}]}
        )
        turn = TransitionEngine(story).start()
        assert turn.phase == PHASE_FAILED
        assert "no default version" in turn.error

    def test_restart_after_failure(self, make_story):
        story = make_story(
            {"id": "0", "versions": [{"text": "x", "choices": [{"text": "void", "goto": "nowhere"}]}]}
        )
        engine = TransitionEngine(story)
        engine.start()
        engine.choose(0)
        assert engine.start().phase == PHASE_AWAITING_CHOICE


class TestSessions:
    def test_sessions_sharing_a_story_are_independent(self, guide_story):
        first = TransitionEngine(guide_story)
        second = TransitionEngine(guide_story)
        first.start()
        second.start()
        first.choose(0)
        assert first.session.current_room_id == "north"
        assert second.session.current_room_id == "0"
        assert second.player.items == []

    def test_start_resets_previous_progress(self, guide_story):
        engine = TransitionEngine(guide_story)
        engine.start()
        engine.choose(0)
        engine.start()
        assert engine.session.current_room_id == "0"
        assert engine.player.labels("items") == []
        assert engine.player.labels("achievements") == ["met_guide"]

    def test_session_uses_story_start(self, make_story):
        story = make_story({"id": "intro", "versions": [{"text": "hi"}]}, start="intro")
        engine = TransitionEngine(story)
        assert engine.session.current_room_id == "intro"
        assert engine.start().room_id == "intro"

    def test_session_reset(self):
        session = GameSession("s", "elsewhere", PlayerState(items=[LootEntry(label="x")]))
        session.reset()
        assert session.current_room_id == "s"
        assert session.player.items == []

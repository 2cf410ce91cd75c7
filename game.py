#!/usr/bin/env python3
"""pygame front end: screens, input, and timing around the transition engine."""

from __future__ import annotations

import logging
from pathlib import Path
import random
from typing import Any

import pygame

from dice import die_face
from renderer import Renderer
from session import (
    PHASE_AWAITING_CHOICE,
    PHASE_AWAITING_DICE,
    PHASE_ENDED,
    PHASE_FAILED,
    PHASE_ROLLING,
    GameSession,
    PendingRoll,
    TransitionEngine,
)
from story import StoryGraph
from ui import DiceAnimation, MenuCursor, ScreenTransition, TypewriterText


logger = logging.getLogger(__name__)

SOUND_DIR = Path("assets/sounds")
AMBIENT_TRACKS = ("ambient.ogg", "ambient.wav", "Atmosphere.mp3")
DEFAULT_VOLUME = 0.5
VOLUME_STEP = 0.1

STATE_MENU = "menu"
STATE_GAME = "gameplay"
STATE_ENDED = "ended"
STATE_DATA_ERROR = "data_error"

MAX_CHOICES = 9


class AudioManager:
    """Looping background track with mute and volume. Missing files never crash gameplay."""

    def __init__(self, volume: float = DEFAULT_VOLUME) -> None:
        self.enabled = False
        self.muted = False
        self.volume = max(0.0, min(1.0, volume))
        self.sounds: dict[str, pygame.mixer.Sound | None] = {}
        self.ambient_channel: pygame.mixer.Channel | None = None

        try:
            if pygame.mixer.get_init() is None:
                pygame.mixer.init()
            self.enabled = True
        except pygame.error as exc:
            logger.info("Audio disabled: %s", exc)
            return

        self.sounds["select"] = self._load_sound("select.wav")
        self.sounds["dice"] = self._load_sound("dice.wav")
        ambient = None
        for filename in AMBIENT_TRACKS:
            ambient = self._load_sound(filename)
            if ambient is not None:
                break
        self.sounds["ambient"] = ambient

    def _load_sound(self, filename: str) -> pygame.mixer.Sound | None:
        if not self.enabled:
            return None
        path = SOUND_DIR / filename
        if not path.exists():
            return None
        try:
            sound = pygame.mixer.Sound(str(path))
        except pygame.error as exc:
            logger.warning("Could not load sound %s: %s", path, exc)
            return None
        sound.set_volume(self.volume)
        return sound

    def _apply_volume(self) -> None:
        level = 0.0 if self.muted else self.volume
        for sound in self.sounds.values():
            if sound is not None:
                sound.set_volume(level)

    def play(self, name: str) -> None:
        sound = self.sounds.get(name)
        if sound is not None and not self.muted:
            sound.play()

    def start_ambient(self) -> None:
        sound = self.sounds.get("ambient")
        if sound is None:
            return
        if self.ambient_channel and self.ambient_channel.get_busy():
            return
        self.ambient_channel = sound.play(loops=-1)

    def stop_ambient(self) -> None:
        if self.ambient_channel and self.ambient_channel.get_busy():
            self.ambient_channel.stop()
        self.ambient_channel = None

    def toggle_mute(self) -> bool:
        self.muted = not self.muted
        self._apply_volume()
        return self.muted

    def change_volume(self, delta: float) -> float:
        self.volume = round(max(0.0, min(1.0, self.volume + delta)), 2)
        self._apply_volume()
        return self.volume

    @property
    def silent(self) -> bool:
        return self.muted or self.volume <= 0


class Game:
    """Owns the window and frame loop; all story state lives in the engine."""

    def __init__(
        self,
        story: StoryGraph,
        *,
        seed: int | None = None,
        fast: bool = False,
        cheats: bool = False,
        smoke: bool = False,
        max_frames: int = 90,
        autoplay: bool = False,
    ) -> None:
        self.renderer = Renderer()
        self.screen = pygame.display.set_mode((Renderer.WIDTH, Renderer.HEIGHT))
        self.clock = pygame.time.Clock()
        self.running = True
        self.smoke = smoke
        self.max_frames = max(1, int(max_frames))
        self.autoplay = autoplay
        self.frame_count = 0
        self.fast = fast

        self.audio = AudioManager()
        self.story = story
        session = GameSession(story.start_id, story.start_id, enable_cheats=cheats)
        self.engine = TransitionEngine(story, session, rng=random.Random(seed))

        self.state = STATE_MENU
        self.menu_options = ["NEW GAME", "QUIT"]
        self.menu_cursor = MenuCursor(0)

        self.typewriter = TypewriterText()
        self.transition = ScreenTransition(duration_ms=120 if fast else 300)
        self.dice_anim = (
            DiceAnimation(dot_interval_ms=60, reveal_ms=400)
            if fast
            else DiceAnimation()
        )
        self.choice_cursor = MenuCursor(0)
        self.pending_roll: PendingRoll | None = None
        self.displayed_turn = self.engine.turn
        self.overlay_text = ""
        self.overlay_timer_ms = 0
        self.error_text = ""
        self.autoplay_cooldown_ms = 0

    def _set_overlay(self, text: str, duration_ms: int = 1200) -> None:
        self.overlay_text = text
        self.overlay_timer_ms = max(0, int(duration_ms))

    def _show_turn(self) -> None:
        turn = self.engine.turn
        self.displayed_turn = turn
        if turn.phase == PHASE_FAILED:
            self._enter_data_error(turn.error or "Story data error.")
            return
        self.typewriter.reset(turn.text, instant=self.fast)
        self.choice_cursor.index = 0
        self.state = STATE_ENDED if turn.phase == PHASE_ENDED else STATE_GAME

    def _enter_data_error(self, text: str) -> None:
        self.typewriter.reset("")
        self.audio.stop_ambient()
        self.dice_anim.cancel()
        self.pending_roll = None
        self.state = STATE_DATA_ERROR
        self.overlay_text = ""
        self.error_text = text

    def _start_new_game(self) -> None:
        self.dice_anim.cancel()
        self.pending_roll = None
        self.audio.start_ambient()
        self.engine.start()
        self._show_turn()

    def _activate_choice(self, idx: int) -> None:
        if self.transition.active or self.engine.phase != PHASE_AWAITING_CHOICE:
            return
        if not self.engine.choose(idx):
            return
        self.audio.play("select")
        self.transition.start()

    def _request_roll(self, forced: int | None = None) -> None:
        if self.transition.active or self.dice_anim.active:
            return
        if forced is not None and not self.engine.session.enable_cheats:
            forced = None
        pending = self.engine.request_roll(forced)
        if pending is None:
            return
        self.pending_roll = pending
        self.displayed_turn = self.engine.turn
        self.audio.play("dice")
        self.dice_anim.start()

    def _commit_roll(self) -> None:
        pending, self.pending_roll = self.pending_roll, None
        if pending is not None and self.engine.commit_roll(pending):
            self.transition.start()

    def _handle_menu_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.KEYDOWN:
            if event.key == pygame.K_UP:
                self.menu_cursor.move(-1, len(self.menu_options))
            elif event.key == pygame.K_DOWN:
                self.menu_cursor.move(1, len(self.menu_options))
            elif event.key in (pygame.K_RETURN, pygame.K_KP_ENTER):
                self._activate_menu_option(self.menu_cursor.index)
        elif event.type == pygame.MOUSEMOTION:
            for idx, rect in enumerate(self.renderer.menu_hitboxes(len(self.menu_options))):
                if rect.collidepoint(event.pos):
                    self.menu_cursor.index = idx
                    break
        elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            for idx, rect in enumerate(self.renderer.menu_hitboxes(len(self.menu_options))):
                if rect.collidepoint(event.pos):
                    self._activate_menu_option(idx)
                    break

    def _activate_menu_option(self, idx: int) -> None:
        if idx == 0:
            self._start_new_game()
        else:
            self.running = False

    def _handle_audio_key(self, key: int) -> bool:
        if key == pygame.K_m:
            muted = self.audio.toggle_mute()
            self._set_overlay("Sound off." if muted else "Sound on.")
            return True
        if key in (pygame.K_PLUS, pygame.K_EQUALS, pygame.K_KP_PLUS):
            volume = self.audio.change_volume(VOLUME_STEP)
            self._set_overlay(f"Volume {int(volume * 100)}%")
            return True
        if key in (pygame.K_MINUS, pygame.K_KP_MINUS):
            volume = self.audio.change_volume(-VOLUME_STEP)
            self._set_overlay(f"Volume {int(volume * 100)}%")
            return True
        return False

    def _handle_gameplay_event(self, event: pygame.event.Event) -> None:
        phase = self.engine.phase
        if event.type == pygame.KEYDOWN:
            if self._handle_audio_key(event.key):
                return
            if not self.typewriter.finished:
                if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
                    self.typewriter.skip()
                return
            if phase == PHASE_AWAITING_DICE:
                if pygame.K_1 <= event.key <= pygame.K_6:
                    self._request_roll(forced=event.key - pygame.K_0)
                elif event.key in (pygame.K_r, pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
                    self._request_roll()
                return
            if phase != PHASE_AWAITING_CHOICE:
                return
            total = len(self.displayed_turn.choices)
            if event.key == pygame.K_UP:
                self.choice_cursor.move(-1, total)
            elif event.key == pygame.K_DOWN:
                self.choice_cursor.move(1, total)
            elif pygame.K_1 <= event.key <= pygame.K_9:
                self._activate_choice(event.key - pygame.K_1)
            elif event.key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
                self._activate_choice(self.choice_cursor.index)
        elif event.type == pygame.MOUSEMOTION and phase == PHASE_AWAITING_CHOICE:
            for idx, rect in enumerate(self.renderer.choice_hitboxes(len(self.displayed_turn.choices))):
                if rect.collidepoint(event.pos):
                    self.choice_cursor.index = idx
                    break
        elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            if not self.typewriter.finished:
                self.typewriter.skip()
                return
            if phase == PHASE_AWAITING_DICE:
                if self.renderer.roll_button_rect().collidepoint(event.pos):
                    self._request_roll()
                return
            for idx, rect in enumerate(self.renderer.choice_hitboxes(len(self.displayed_turn.choices))):
                if rect.collidepoint(event.pos):
                    self._activate_choice(idx)
                    break

    def _handle_ending_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.KEYDOWN:
            if self._handle_audio_key(event.key):
                return
            if not self.typewriter.finished:
                self.typewriter.skip()
                return
            if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
                self.audio.stop_ambient()
                self.state = STATE_MENU

    def _handle_events(self) -> None:
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self.running = False
                continue

            if event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
                if self.state in (STATE_MENU, STATE_GAME):
                    self.running = False
                else:
                    self.state = STATE_MENU
                continue

            if self.state == STATE_MENU:
                self._handle_menu_event(event)
            elif self.state == STATE_GAME:
                self._handle_gameplay_event(event)
            else:
                self._handle_ending_event(event)

    def _update_autoplay(self, delta_ms: int) -> None:
        if not self.autoplay:
            return
        self.autoplay_cooldown_ms = max(0, self.autoplay_cooldown_ms - delta_ms)
        if self.autoplay_cooldown_ms > 0:
            return
        self.autoplay_cooldown_ms = 150

        if self.state == STATE_MENU:
            self._activate_menu_option(0)
        elif self.state == STATE_GAME:
            if not self.typewriter.finished:
                self.typewriter.skip()
            elif self.engine.phase == PHASE_AWAITING_DICE:
                self._request_roll()
            elif self.engine.phase == PHASE_AWAITING_CHOICE:
                self._activate_choice(0)
        elif self.smoke:
            self.running = False
        else:
            self.state = STATE_MENU

    def _update(self, delta_ms: int) -> None:
        self.overlay_timer_ms = max(0, self.overlay_timer_ms - delta_ms)
        if self.overlay_timer_ms == 0:
            self.overlay_text = ""

        if self.dice_anim.active:
            if self.dice_anim.update(delta_ms).finished:
                self._commit_roll()
        elif self.transition.active:
            if self.transition.update(delta_ms):
                self._show_turn()
        elif self.state in (STATE_GAME, STATE_ENDED):
            self.typewriter.update(delta_ms)

        self._update_autoplay(delta_ms)

    def _dice_frame(self) -> dict[str, Any]:
        turn = self.displayed_turn
        frame: dict[str, Any] = {
            "outcomes": [{"val": o.val, "text": o.text} for o in turn.dice],
            "rolling": turn.phase == PHASE_ROLLING,
            "dots": self.dice_anim.dots,
        }
        pending = turn.pending_roll
        if pending is not None and (self.dice_anim.revealed or self.pending_roll is None):
            frame["face"] = die_face(pending.roll)
            frame["roll"] = pending.roll
            frame["result_text"] = pending.outcome.text
        return frame

    def _build_frame(self) -> dict[str, Any]:
        overlay = self.overlay_text if self.overlay_timer_ms > 0 else ""
        if self.state == STATE_MENU:
            return {
                "screen": "menu",
                "title": self.story.title,
                "menu_options": self.menu_options,
                "menu_index": self.menu_cursor.index,
                "event_text": overlay,
                "fade_alpha": self.transition.alpha,
            }
        if self.state == STATE_DATA_ERROR:
            return {
                "screen": "data_error",
                "end_text": self.error_text or "Story data error.",
                "fade_alpha": 0,
            }

        turn = self.displayed_turn
        return {
            "screen": "ended" if self.state == STATE_ENDED else "gameplay",
            "story_lines": self.typewriter.visible_text.split("\n"),
            "mentions": [m.text for m in turn.mentions] if self.typewriter.finished else [],
            "inventory": list(turn.inventory),
            "achievements": len(turn.achievements),
            "choices": [c.text for c in turn.choices[:MAX_CHOICES]],
            "selected_choice_index": self.choice_cursor.index,
            "dice": self._dice_frame() if turn.dice else None,
            "show_controls": self.typewriter.finished,
            "cheats": self.engine.session.enable_cheats,
            "muted": self.audio.silent,
            "event_text": overlay,
            "fade_alpha": self.transition.alpha,
        }

    def run(self) -> None:
        while self.running:
            delta_ms = self.clock.tick(30)
            self._handle_events()
            self._update(delta_ms)
            frame = self._build_frame()
            self.renderer.draw(self.screen, frame)
            pygame.display.flip()

            self.frame_count += 1
            if self.smoke and self.frame_count >= self.max_frames:
                self.running = False

        self.audio.stop_ambient()

#!/usr/bin/env python3
"""Timing primitives for text reveal, room fades, and the dice animation."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class TypewriterText:
    """Reveals room text a few characters per frame; pauses briefly after sentences."""

    full_text: str = ""
    visible_chars: int = 0
    finished: bool = False
    char_delay_ms: int = 25
    sentence_pause_ms: int = 180
    _timer_ms: int = 0

    def reset(self, new_text: str, instant: bool = False) -> None:
        self.full_text = new_text or ""
        self.visible_chars = 0
        self.finished = not self.full_text
        self._timer_ms = 0
        if instant:
            self.skip()

    def skip(self) -> None:
        self.visible_chars = len(self.full_text)
        self.finished = True

    def update(self, delta_ms: int) -> int:
        """Advance the reveal and return how many characters appeared."""
        if self.finished:
            return 0
        self._timer_ms += max(0, int(delta_ms))
        revealed = 0
        while self._timer_ms >= self.char_delay_ms and self.visible_chars < len(self.full_text):
            self._timer_ms -= self.char_delay_ms
            ch = self.full_text[self.visible_chars]
            self.visible_chars += 1
            revealed += 1
            if ch in ".!?":
                self._timer_ms -= self.sentence_pause_ms
        if self.visible_chars >= len(self.full_text):
            self.finished = True
        return revealed

    @property
    def visible_text(self) -> str:
        return self.full_text[: self.visible_chars]


@dataclass
class MenuCursor:
    """Cursor state for linear selectable lists."""

    index: int = 0

    def move(self, delta: int, total: int) -> None:
        if total <= 0:
            self.index = 0
            return
        self.index = (self.index + delta) % total


@dataclass
class ScreenTransition:
    """Fade-out/fade-in between rooms. `update` returns True once, at the midpoint."""

    duration_ms: int = 300
    phase: str = "idle"  # idle | out | in
    timer_ms: int = 0

    def start(self) -> None:
        self.phase = "out"
        self.timer_ms = 0

    @property
    def active(self) -> bool:
        return self.phase != "idle"

    @property
    def alpha(self) -> int:
        if self.phase == "idle":
            return 0
        duration = max(1, self.duration_ms)
        progress = min(1.0, self.timer_ms / duration)
        if self.phase == "in":
            progress = 1.0 - progress
        return int(progress * 255)

    def update(self, delta_ms: int) -> bool:
        if self.phase == "idle":
            return False
        self.timer_ms += max(0, int(delta_ms))
        if self.timer_ms < max(1, self.duration_ms):
            return False
        self.timer_ms = 0
        if self.phase == "out":
            self.phase = "in"
            return True
        self.phase = "idle"
        return False


@dataclass
class DiceTick:
    """Result payload for one dice animation step."""

    revealed: bool = False
    finished: bool = False


@dataclass
class DiceAnimation:
    """Shaking-die dots, then the rolled face, then done.

    The owner commits the roll when `finished` is reported, exactly once.
    """

    dot_interval_ms: int = 1000
    dot_count: int = 6
    reveal_ms: int = 6000
    phase: str = "idle"  # idle | rolling | reveal
    dots: int = 0
    timer_ms: int = 0

    def start(self) -> None:
        self.phase = "rolling"
        self.dots = 0
        self.timer_ms = 0

    def cancel(self) -> None:
        self.phase = "idle"
        self.dots = 0
        self.timer_ms = 0

    @property
    def active(self) -> bool:
        return self.phase != "idle"

    @property
    def revealed(self) -> bool:
        return self.phase == "reveal"

    def update(self, delta_ms: int) -> DiceTick:
        tick = DiceTick()
        if self.phase == "idle":
            return tick
        self.timer_ms += max(0, int(delta_ms))

        if self.phase == "rolling":
            while self.timer_ms >= self.dot_interval_ms and self.dots < self.dot_count:
                self.timer_ms -= self.dot_interval_ms
                self.dots += 1
            if self.dots >= self.dot_count:
                self.phase = "reveal"
                self.timer_ms = 0
                tick.revealed = True
            return tick

        if self.timer_ms >= self.reveal_ms:
            self.cancel()
            tick.finished = True
        return tick

#!/usr/bin/env python3
"""Retro CRT renderer for the menu, story, dice, ending, and error screens."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pygame


class Renderer:
    """Centralized drawing module; draws whatever frame dict the game hands it."""

    WIDTH = 800
    HEIGHT = 600

    COLOR_BG = (0x0A, 0x0A, 0x0A)
    COLOR_TEXT = (0x39, 0xFF, 0x14)
    COLOR_DIM = (0x1A, 0x7A, 0x08)
    COLOR_HIGHLIGHT = (0xFF, 0xFF, 0xFF)
    COLOR_DANGER = (0xFF, 0x31, 0x31)
    COLOR_GOLD = (0xFF, 0xD7, 0x00)
    COLOR_BORDER = (0x39, 0xFF, 0x14)

    STATUS_RECT = pygame.Rect(0, 0, WIDTH, 36)
    INVENTORY_RECT = pygame.Rect(0, 36, WIDTH, 96)
    STORY_RECT = pygame.Rect(0, 132, WIDTH, 288)
    CHOICE_RECT = pygame.Rect(0, 420, WIDTH, 180)

    INNER_PADDING = 12

    def __init__(self) -> None:
        self.body_font = self._load_font(14)
        self.title_font = self._load_font(22)
        self.small_font = self._load_font(12)
        self.die_font = pygame.font.SysFont("dejavusans", 64)
        self.char_w = self.body_font.size("M")[0]
        self.line_height = int(self.body_font.get_linesize() * 1.4)
        self.scanline_surface = self._make_scanline_surface()
        self.frame_surface = pygame.Surface((self.WIDTH, self.HEIGHT))
        self.fade_surface = pygame.Surface((self.WIDTH, self.HEIGHT), pygame.SRCALPHA)
        self._wrap_cache: dict[tuple[str, int], list[str]] = {}

    def _load_font(self, size: int) -> pygame.font.Font:
        font_path = Path("assets/fonts/PressStart2P-Regular.ttf")
        if font_path.exists():
            return pygame.font.Font(str(font_path), size)
        return pygame.font.SysFont("couriernew", size)

    def _make_scanline_surface(self) -> pygame.Surface:
        surface = pygame.Surface((self.WIDTH, self.HEIGHT), pygame.SRCALPHA)
        for y in range(0, self.HEIGHT, 2):
            pygame.draw.line(surface, (0, 0, 0, 38), (0, y), (self.WIDTH, y))
        return surface

    @staticmethod
    def _truncate(text: str, max_chars: int) -> str:
        if len(text) <= max_chars:
            return text
        if max_chars <= 1:
            return text[:max_chars]
        return text[: max_chars - 1] + "…"

    def _wrap_line(self, text: str, max_width: int) -> list[str]:
        """Word-wrap one line of text; an empty line stays a blank line."""
        cache_key = (text, max_width)
        cached = self._wrap_cache.get(cache_key)
        if cached is not None:
            return list(cached)

        lines: list[str] = []
        current = ""
        for word in text.split(" "):
            candidate = f"{current} {word}" if current else word
            if self.body_font.size(candidate)[0] <= max_width or not current:
                current = candidate
            else:
                lines.append(current)
                current = word
        lines.append(current)

        if len(self._wrap_cache) > 256:
            self._wrap_cache.clear()
        self._wrap_cache[cache_key] = list(lines)
        return lines

    def wrap_lines(self, lines: list[str], max_width: int) -> list[str]:
        wrapped: list[str] = []
        for line in lines:
            wrapped.extend(self._wrap_line(line, max_width))
        return wrapped

    def _draw_ascii_border(
        self, canvas: pygame.Surface, rect: pygame.Rect, color: tuple[int, int, int]
    ) -> None:
        pygame.draw.rect(canvas, self.COLOR_BG, rect)

        cols = max(2, rect.width // self.char_w)
        rows = max(2, rect.height // self.body_font.get_linesize())
        y = rect.y
        for row_idx in range(rows):
            if row_idx == 0:
                line = "╔" + ("═" * (cols - 2)) + "╗"
            elif row_idx == rows - 1:
                line = "╚" + ("═" * (cols - 2)) + "╝"
            else:
                line = "║" + (" " * (cols - 2)) + "║"
            canvas.blit(self.body_font.render(line, True, color), (rect.x, y))
            y += self.body_font.get_linesize()

    def _panel_inner(self, rect: pygame.Rect) -> pygame.Rect:
        return rect.inflate(-(self.INNER_PADDING * 2), -(self.INNER_PADDING * 2))

    def choice_hitboxes(self, count: int) -> list[pygame.Rect]:
        inner = self._panel_inner(self.CHOICE_RECT)
        return [
            pygame.Rect(inner.x, inner.y + idx * self.line_height, inner.width, self.line_height)
            for idx in range(max(0, count))
        ]

    def roll_button_rect(self) -> pygame.Rect:
        inner = self._panel_inner(self.CHOICE_RECT)
        return pygame.Rect(inner.x, inner.bottom - self.line_height, inner.width, self.line_height)

    def menu_hitboxes(self, count: int) -> list[pygame.Rect]:
        start_y = 360
        h = self.line_height
        x = self.WIDTH // 2 - 150
        return [pygame.Rect(x, start_y + i * (h + 6), 300, h + 4) for i in range(max(0, count))]

    def _draw_overlay_box(self, canvas: pygame.Surface, text: str) -> None:
        if not text:
            return
        overlay_rect = pygame.Rect(200, 250, 400, 80)
        self._draw_ascii_border(canvas, overlay_rect, self.COLOR_BORDER)
        inner = self._panel_inner(overlay_rect)
        for idx, line in enumerate(self._wrap_line(text, inner.width)[:2]):
            surf = self.body_font.render(line, True, self.COLOR_TEXT)
            canvas.blit(surf, (inner.x, inner.y + idx * self.line_height))

    def draw(self, screen: pygame.Surface, frame: dict[str, Any]) -> None:
        canvas = self.frame_surface
        canvas.fill(self.COLOR_BG)

        scene = frame.get("screen", "gameplay")
        if scene == "menu":
            self._draw_main_menu(canvas, frame)
        elif scene == "data_error":
            self._draw_data_error(canvas, frame)
        else:
            self._draw_gameplay(canvas, frame)

        fade_alpha = int(frame.get("fade_alpha", 0))
        if fade_alpha > 0:
            self.fade_surface.fill((0, 0, 0, max(0, min(255, fade_alpha))))
            canvas.blit(self.fade_surface, (0, 0))

        canvas.blit(self.scanline_surface, (0, 0))
        screen.fill(self.COLOR_BG)
        screen.blit(canvas, (0, 0))

    def _draw_status_bar(self, canvas: pygame.Surface, frame: dict[str, Any]) -> None:
        achievements = int(frame.get("achievements", 0))
        left = f"Achievements: {achievements}"
        canvas.blit(self.small_font.render(left, True, self.COLOR_GOLD), (12, 12))

        flags = []
        if frame.get("cheats"):
            flags.append("CHEATS")
        flags.append("♪ OFF" if frame.get("muted") else "♪ ON")
        right = self.small_font.render("  ".join(flags), True, self.COLOR_DIM)
        canvas.blit(right, (self.WIDTH - right.get_width() - 12, 12))

    def _draw_inventory(self, canvas: pygame.Surface, frame: dict[str, Any]) -> None:
        inventory = [str(x) for x in frame.get("inventory", [])]
        if not inventory:
            return
        self._draw_ascii_border(canvas, self.INVENTORY_RECT, self.COLOR_DIM)
        inner = self._panel_inner(self.INVENTORY_RECT)
        title = self.small_font.render("INVENTORY", True, self.COLOR_TEXT)
        canvas.blit(title, (inner.x, inner.y))

        text = " · ".join(inventory)
        max_chars = max(8, inner.width // self.char_w)
        lines = self._wrap_line(text, inner.width)[:3]
        for idx, line in enumerate(lines):
            surf = self.body_font.render(self._truncate(line, max_chars), True, self.COLOR_DIM)
            canvas.blit(surf, (inner.x, inner.y + (idx + 1) * self.line_height))

    def _draw_story(self, canvas: pygame.Surface, frame: dict[str, Any]) -> None:
        self._draw_ascii_border(canvas, self.STORY_RECT, self.COLOR_BORDER)
        inner = self._panel_inner(self.STORY_RECT)
        max_lines = max(1, inner.height // self.line_height)

        story = self.wrap_lines([str(x) for x in frame.get("story_lines", [])], inner.width)
        mentions = self.wrap_lines([str(x) for x in frame.get("mentions", [])], inner.width)
        rows = [(line, self.COLOR_TEXT) for line in story]
        if mentions:
            rows.append(("", self.COLOR_TEXT))
            rows.extend((line, self.COLOR_DIM) for line in mentions)
        # Keep the end of long passages visible.
        for idx, (line, color) in enumerate(rows[-max_lines:]):
            canvas.blit(self.body_font.render(line, True, color), (inner.x, inner.y + idx * self.line_height))

    def _draw_choices(self, canvas: pygame.Surface, frame: dict[str, Any]) -> None:
        inner = self._panel_inner(self.CHOICE_RECT)
        selected = int(frame.get("selected_choice_index", 0))
        max_chars = max(8, (inner.width // self.char_w) - 6)
        for idx, text in enumerate(frame.get("choices", [])):
            if idx == selected:
                prefix, color = ">", self.COLOR_HIGHLIGHT
            else:
                prefix, color = f"[{idx + 1}]", self.COLOR_DIM
            line = f"{prefix} {self._truncate(str(text), max_chars)}"
            canvas.blit(self.body_font.render(line, True, color), (inner.x, inner.y + idx * self.line_height))

    def _draw_dice(self, canvas: pygame.Surface, frame: dict[str, Any], dice: dict[str, Any]) -> None:
        inner = self._panel_inner(self.CHOICE_RECT)
        max_chars = max(8, (inner.width // self.char_w) - 8)

        if "face" in dice:
            face = self.die_font.render(str(dice["face"]), True, self.COLOR_HIGHLIGHT)
            canvas.blit(face, (inner.x, inner.y))
            result = f"You rolled {dice.get('roll')} → {dice.get('result_text', '')}"
            for idx, line in enumerate(self._wrap_line(result, inner.width - face.get_width() - 16)[:4]):
                surf = self.body_font.render(line, True, self.COLOR_GOLD)
                canvas.blit(surf, (inner.x + face.get_width() + 16, inner.y + 8 + idx * self.line_height))
            return

        if dice.get("rolling"):
            dots = " . " * int(dice.get("dots", 0))
            canvas.blit(self.body_font.render(f"Rolling{dots}", True, self.COLOR_TEXT), (inner.x, inner.y))
            return

        canvas.blit(self.small_font.render("Possible outcomes:", True, self.COLOR_TEXT), (inner.x, inner.y))
        for idx, outcome in enumerate(dice.get("outcomes", [])[:4]):
            line = f"{outcome.get('val', '?')}: {self._truncate(str(outcome.get('text', '')), max_chars)}"
            y = inner.y + (idx + 1) * self.line_height
            canvas.blit(self.body_font.render(line, True, self.COLOR_DIM), (inner.x, y))

        if frame.get("show_controls", False):
            hint = "[R] Roll the die" + ("   [1-6] force a face" if frame.get("cheats") else "")
            button = self.roll_button_rect()
            canvas.blit(self.body_font.render(hint, True, self.COLOR_HIGHLIGHT), (button.x, button.y))

    def _draw_gameplay(self, canvas: pygame.Surface, frame: dict[str, Any]) -> None:
        self._draw_status_bar(canvas, frame)
        self._draw_inventory(canvas, frame)
        self._draw_story(canvas, frame)
        self._draw_ascii_border(canvas, self.CHOICE_RECT, self.COLOR_BORDER)

        dice = frame.get("dice")
        if frame.get("screen") == "ended":
            inner = self._panel_inner(self.CHOICE_RECT)
            title = self.title_font.render("THE END", True, self.COLOR_GOLD)
            canvas.blit(title, (inner.x, inner.y))
            hint = self.small_font.render("Press ENTER to return to menu", True, self.COLOR_DIM)
            canvas.blit(hint, (inner.x, inner.y + self.line_height * 2))
        elif dice:
            self._draw_dice(canvas, frame, dice)
        elif frame.get("show_controls", False):
            self._draw_choices(canvas, frame)

        event_text = frame.get("event_text")
        self._draw_overlay_box(canvas, str(event_text) if event_text else "")

    def _draw_main_menu(self, canvas: pygame.Surface, frame: dict[str, Any]) -> None:
        title = str(frame.get("title") or "A BRANCHING TALE").upper()
        surf = self.title_font.render(self._truncate(title, 32), True, self.COLOR_TEXT)
        canvas.blit(surf, ((self.WIDTH - surf.get_width()) // 2, 200))

        options = frame.get("menu_options", [])
        selected = int(frame.get("menu_index", 0))
        for idx, rect in enumerate(self.menu_hitboxes(len(options))):
            prefix = "▶" if idx == selected else " "
            color = self.COLOR_HIGHLIGHT if idx == selected else self.COLOR_DIM
            canvas.blit(self.body_font.render(f"{prefix} {options[idx]}", True, color), (rect.x, rect.y))

        hint = self.small_font.render("M mute  +/- volume  ESC quit", True, self.COLOR_DIM)
        canvas.blit(hint, ((self.WIDTH - hint.get_width()) // 2, self.HEIGHT - 40))

        event_text = frame.get("event_text")
        self._draw_overlay_box(canvas, str(event_text) if event_text else "")

    def _draw_data_error(self, canvas: pygame.Surface, frame: dict[str, Any]) -> None:
        msg = str(frame.get("end_text", "Story data error."))
        title = self.title_font.render("DATA ERROR", True, self.COLOR_DANGER)
        canvas.blit(title, ((self.WIDTH - title.get_width()) // 2, 180))

        for idx, line in enumerate(self._wrap_line(msg, self.WIDTH - 120)[:5]):
            surf = self.body_font.render(line, True, self.COLOR_TEXT)
            canvas.blit(surf, (60, 260 + idx * self.line_height))

        hint = self.small_font.render("Press ENTER to return to menu", True, self.COLOR_DIM)
        canvas.blit(hint, ((self.WIDTH - hint.get_width()) // 2, 520))

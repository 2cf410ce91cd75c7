#!/usr/bin/env python3
"""Entry point for the branching story game."""

from __future__ import annotations

import argparse
import logging
import sys

import pygame

from game import Game
from story import STORY_PATH, StoryLoadError, load_story


logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Branching story game")
    parser.add_argument(
        "--story",
        default=str(STORY_PATH),
        help="Path to the story JSON document.",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for dice rolls (reproducible playthroughs).",
    )
    parser.add_argument(
        "--fast",
        action="store_true",
        help="Shorten the dice animation and text reveal.",
    )
    parser.add_argument(
        "--cheats",
        action="store_true",
        help="Allow forcing a die face with keys 1-6.",
    )
    parser.add_argument(
        "--smoke",
        action="store_true",
        help="Run for a small number of frames and exit (test mode).",
    )
    parser.add_argument(
        "--frames",
        type=int,
        default=90,
        help="Frame budget for --smoke mode.",
    )
    parser.add_argument(
        "--autoplay",
        action="store_true",
        help="Automatically pick the first choice and roll dice (useful for smoke tests).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        story = load_story(args.story)
    except StoryLoadError as exc:
        logger.error("%s", exc)
        return 2

    pygame.init()
    pygame.display.set_caption(story.title or "Branching Story")

    game = Game(
        story,
        seed=args.seed,
        fast=args.fast,
        cheats=args.cheats,
        smoke=args.smoke,
        max_frames=max(1, args.frames),
        autoplay=args.autoplay,
    )
    try:
        game.run()
    finally:
        if pygame.mixer.get_init() is not None:
            pygame.mixer.quit()
        pygame.quit()
    return 0


if __name__ == "__main__":
    sys.exit(main())

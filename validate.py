#!/usr/bin/env python3
"""Check a story document for broken links, gating mistakes, and bad dice tables."""

from __future__ import annotations

import argparse
from collections import deque
from dataclasses import dataclass
import logging
from pathlib import Path

from dice import parse_range, uncovered_faces
from story import (
    KNOWN_TRIGGERS,
    LOOT_CATEGORIES,
    STORY_PATH,
    Room,
    StoryGraph,
    StoryLoadError,
    load_story,
)


ERROR = "error"
WARNING = "warning"


@dataclass(frozen=True)
class Finding:
    level: str
    room_id: str
    message: str

    def __str__(self) -> str:
        return f"{self.level.upper()}: room '{self.room_id}': {self.message}"


def room_links(room: Room) -> list[str]:
    links: list[str] = []
    for version in room.versions:
        links.extend(o.goto for o in version.dice)
        links.extend(c.goto for c in version.choices)
    return links


def reachable(start_id: str, graph: dict[str, list[str]]) -> set[str]:
    if start_id not in graph:
        return set()
    q = deque([start_id])
    seen = {start_id}
    while q:
        node = q.popleft()
        for nxt in graph.get(node, []):
            if nxt in graph and nxt not in seen:
                seen.add(nxt)
                q.append(nxt)
    return seen


def check_room(room: Room, story: StoryGraph) -> list[Finding]:
    found: list[Finding] = []

    def report(level: str, message: str) -> None:
        found.append(Finding(level, room.id, message))

    defaults = sum(1 for v in room.versions if v.is_default)
    if not room.versions:
        report(ERROR, "has no versions")
    elif defaults == 0:
        report(WARNING, "has no default version; entering it fails when no condition matches")
    elif defaults > 1:
        report(ERROR, f"has {defaults} default versions")

    for idx, version in enumerate(room.versions):
        where = f"version {idx}"
        if version.conditions is not None and not version.conditions.recognized:
            report(ERROR, f"{where}: conditions have no recognized keys")
        if version.trigger and version.trigger not in KNOWN_TRIGGERS:
            report(WARNING, f"{where}: unknown trigger '{version.trigger}'")
        if version.dice and version.choices:
            report(WARNING, f"{where}: has both dice and choices; choices are ignored")

        for outcome in version.dice:
            if parse_range(outcome.val).empty:
                report(ERROR, f"{where}: empty or unparseable dice range '{outcome.val}'")
        if version.dice:
            missing = uncovered_faces(version.dice)
            if missing:
                report(WARNING, f"{where}: dice table does not cover {missing}")

        for choice in version.choices:
            for category in LOOT_CATEGORIES:
                label = choice.get_command(category)
                if label and not any(e.label == label for e in version.loot(category)):
                    report(
                        WARNING,
                        f"{where}: choice '{choice.text}' gets {category} '{label}' "
                        "that this version does not offer",
                    )

    for target in room_links(room):
        if not target:
            report(ERROR, "has a transition without a goto target")
        elif not story.has_room(target):
            report(ERROR, f"links to missing room '{target}'")
    return found


def check_story(story: StoryGraph) -> list[Finding]:
    findings: list[Finding] = []
    if not story.has_room(story.start_id):
        findings.append(Finding(ERROR, story.start_id, "start room does not exist"))
    for room in story.rooms:
        findings.extend(check_room(room, story))

    graph = {room.id: room_links(room) for room in story.rooms}
    seen = reachable(story.start_id, graph)
    for room_id in story.room_ids:
        if room_id not in seen:
            findings.append(Finding(WARNING, room_id, "is unreachable from the start room"))
    return findings


def summary(story: StoryGraph) -> str:
    graph = {room.id: room_links(room) for room in story.rooms}
    versions = sum(len(r.versions) for r in story.rooms)
    dice_tables = sum(1 for r in story.rooms for v in r.versions if v.dice)
    endings = sum(1 for r in story.rooms for v in r.versions if not v.dice and not v.choices)
    seen = reachable(story.start_id, graph)
    lines = [
        f"Total rooms: {len(story.rooms)}",
        f"Total versions: {versions}",
        f"Dice tables: {dice_tables}",
        f"Ending versions: {endings}",
        f"Reachable from start ({story.start_id}): {len(seen)}/{len(story.rooms)}",
    ]
    return "\n".join(lines)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Validate a story document.")
    p.add_argument("--story", default=str(STORY_PATH), help="Path to story JSON.")
    p.add_argument("--strict", action="store_true", help="Treat warnings as failures.")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.ERROR, format="%(levelname)s: %(message)s")
    try:
        story = load_story(Path(args.story))
    except StoryLoadError as exc:
        print(f"ERROR: {exc}")
        return 2

    findings = check_story(story)
    for finding in findings:
        print(finding)
    print(summary(story))

    errors = [f for f in findings if f.level == ERROR]
    warnings = [f for f in findings if f.level == WARNING]
    if errors or (args.strict and warnings):
        print(f"FAIL: {len(errors)} errors, {len(warnings)} warnings")
        return 1
    print(f"PASS: {len(warnings)} warnings")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

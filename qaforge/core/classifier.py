"""Path classifier — infers environment and browser tags from a file path.

Pure string work, no I/O.  Each directory segment is split on
non-alphanumeric characters and its tokens are compared against the known
tags.  When several directories match, the environment closest to the leaf
wins and the browser closest to the root wins.  The file stem is consulted
only when no directory names a tag, so ``staging/test-results.json`` stays
in ``staging``.
"""

from __future__ import annotations

import re
from pathlib import PurePath

from qaforge.models.artifacts import UNKNOWN, PathTags

ENVIRONMENTS: tuple[str, ...] = ("development", "staging", "production", "test")
BROWSERS: tuple[str, ...] = ("chromium", "firefox", "webkit", "chrome", "safari", "edge")

_TOKEN_SPLIT = re.compile(r"[^a-z0-9]+")


def _segments(path: PurePath, root: PurePath | None) -> tuple[list[str], str]:
    """Split *path* into its directory segments and its file stem."""
    if root is not None:
        try:
            path = path.relative_to(root)
        except ValueError:
            pass
    parts = [p for p in path.parts if p not in ("/", "\\", "")]
    if not parts:
        return [], ""
    return parts[:-1], PurePath(parts[-1]).stem


def _match(segment: str, candidates: tuple[str, ...]) -> str | None:
    tokens = set(_TOKEN_SPLIT.split(segment.lower()))
    for candidate in candidates:
        if candidate in tokens:
            return candidate
    return None


def _first_match(segments: list[str], stem: str, candidates: tuple[str, ...]) -> str:
    for segment in segments:
        found = _match(segment, candidates)
        if found:
            return found
    return _match(stem, candidates) or UNKNOWN


def classify_path(path: PurePath | str, root: PurePath | str | None = None) -> PathTags:
    """Return the environment and browser tags for *path*.

    Parameters
    ----------
    path:
        The artifact path.
    root:
        Results root; segments above it are ignored so the root's own
        name never contributes a tag.
    """
    directories, stem = _segments(PurePath(path), PurePath(root) if root is not None else None)
    return PathTags(
        environment=_first_match(list(reversed(directories)), stem, ENVIRONMENTS),
        browser=_first_match(directories, stem, BROWSERS),
    )


def browser_from_project(project_name: str | None) -> str | None:
    """Infer a browser from a project name by case-insensitive substring."""
    if not project_name:
        return None
    lowered = project_name.lower()
    for candidate in BROWSERS:
        if candidate in lowered:
            return candidate
    return None

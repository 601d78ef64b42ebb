"""Artifact locator — discovers result files and media under a results root.

Traversal is depth-first with entries sorted lexicographically per
directory, so discovery order is stable across platforms.  Symlinked
directories are followed once; a visited ``(st_dev, st_ino)`` set breaks
cycles.  Problems with individual entries are recorded as
``discovery_error`` diagnostics and never abort the scan.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Iterator
from datetime import datetime, timezone
from pathlib import Path

from qaforge.core.classifier import classify_path
from qaforge.models.artifacts import Artifact, ArtifactOrigin, MediaFile, MediaKind
from qaforge.models.diagnostics import DiagnosticKind, DiagnosticLog

logger = logging.getLogger(__name__)

_RESULT_NAMES = frozenset({"results.json", "report.json"})
_RESULT_SUFFIXES = ("-results.json", "_results.json", "-report.json", "-summary.json")

# Directory / file-stem tokens that route a result file to an origin.
_ORIGIN_HINTS: dict[str, ArtifactOrigin] = {
    "api": ArtifactOrigin.HTTP_COLLECTION,
    "newman": ArtifactOrigin.HTTP_COLLECTION,
    "postman": ArtifactOrigin.HTTP_COLLECTION,
    "performance": ArtifactOrigin.LOAD_GENERATOR,
    "load": ArtifactOrigin.LOAD_GENERATOR,
    "jmeter": ArtifactOrigin.LOAD_GENERATOR,
    "k6": ArtifactOrigin.LOAD_GENERATOR,
    "accessibility": ArtifactOrigin.ACCESSIBILITY,
    "a11y": ArtifactOrigin.ACCESSIBILITY,
    "axe": ArtifactOrigin.ACCESSIBILITY,
    "security": ArtifactOrigin.SECURITY,
    "zap": ArtifactOrigin.SECURITY,
    "coverage": ArtifactOrigin.COVERAGE,
    "lint": ArtifactOrigin.LINT,
    "eslint": ArtifactOrigin.LINT,
}

_MEDIA_SUFFIXES: dict[str, MediaKind] = {
    ".png": MediaKind.SCREENSHOT,
    ".jpg": MediaKind.SCREENSHOT,
    ".jpeg": MediaKind.SCREENSHOT,
    ".webm": MediaKind.VIDEO,
    ".mp4": MediaKind.VIDEO,
}

_TOKEN_SPLIT = re.compile(r"[^a-z0-9]+")


def is_result_json(name: str) -> bool:
    """Whether a file name looks like a JSON result report."""
    lowered = name.lower()
    return lowered in _RESULT_NAMES or lowered.endswith(_RESULT_SUFFIXES)


def origin_hint(relative: Path) -> ArtifactOrigin:
    """Origin suggested by the directory names (and file stem) of a path.

    The hint closest to the leaf wins; no hint means browser automation.
    """
    parts = list(relative.parts)
    if parts:
        parts[-1] = Path(parts[-1]).stem
    for segment in reversed(parts):
        for token in _TOKEN_SPLIT.split(segment.lower()):
            if token in _ORIGIN_HINTS:
                return _ORIGIN_HINTS[token]
    return ArtifactOrigin.BROWSER_AUTOMATION


def media_kind(name: str) -> MediaKind | None:
    lowered = name.lower()
    suffix = os.path.splitext(lowered)[1]
    if suffix in _MEDIA_SUFFIXES:
        return _MEDIA_SUFFIXES[suffix]
    if suffix == ".zip":
        return MediaKind.TRACE if "trace" in lowered else MediaKind.ATTACHMENT
    if "attachment" in lowered:
        return MediaKind.ATTACHMENT
    return None


_TEST_NAME_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"^test-"), ""),
    (re.compile(r"-\d+$"), ""),
    (re.compile(r"-(screenshot|video|trace)$"), ""),
    (re.compile(r"(^|-)failed$"), ""),
    (re.compile(r"-?\d{4}-\d{2}-\d{2}.*$"), ""),
)


def media_test_name(path: Path) -> str:
    """Best-effort test name for a media file, from its stem or parent dir."""
    name = path.stem
    for pattern, replacement in _TEST_NAME_RULES:
        name = pattern.sub(replacement, name)
    return name or path.parent.name


class ArtifactLocator:
    """Walks a results root and yields ``Artifact`` and ``MediaFile`` records.

    Parameters
    ----------
    root:
        Directory to scan.  A missing root yields nothing and records a
        single ``discovery_error``.
    diagnostics:
        Collector for discovery problems.  A private one is created when
        omitted.
    """

    def __init__(self, root: Path, diagnostics: DiagnosticLog | None = None) -> None:
        self.root = Path(root)
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticLog()

    def scan(self) -> Iterator[Artifact | MediaFile]:
        """Lazily yield everything discovered under the root."""
        if not self.root.is_dir():
            logger.warning("Results root %s does not exist; nothing to aggregate", self.root)
            self.diagnostics.record(
                DiagnosticKind.DISCOVERY_ERROR, "root missing", str(self.root)
            )
            return
        yield from self._walk(self.root, set())

    def artifacts(self) -> list[Artifact]:
        return [item for item in self.scan() if isinstance(item, Artifact)]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _walk(
        self, directory: Path, visited: set[tuple[int, int]]
    ) -> Iterator[Artifact | MediaFile]:
        try:
            stat = directory.stat()
            key = (stat.st_dev, stat.st_ino)
            if key in visited:
                logger.debug("Skipping already visited directory %s", directory)
                return
            visited.add(key)
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as exc:
            self._record(directory, f"cannot list directory: {exc.strerror or exc}")
            return

        has_json_report = any(
            is_result_json(e.name) or e.name.lower() == "coverage-summary.json"
            for e in entries
        )

        for entry in entries:
            path = Path(entry.path)
            try:
                if entry.is_dir(follow_symlinks=True):
                    yield from self._walk(path, visited)
                    continue
                if not entry.is_file(follow_symlinks=True):
                    if entry.is_symlink():
                        self._record(path, "dangling symlink")
                    continue
                file_stat = entry.stat(follow_symlinks=True)
            except OSError as exc:
                self._record(path, f"cannot stat entry: {exc.strerror or exc}")
                continue

            item = self._classify_file(path, file_stat, has_json_report)
            if item is not None:
                yield item

    def _classify_file(
        self, path: Path, stat: os.stat_result, has_json_report: bool
    ) -> Artifact | MediaFile | None:
        name = path.name.lower()
        relative = path.relative_to(self.root)
        tags = classify_path(relative)
        mtime = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)

        origin: ArtifactOrigin | None = None
        if name == "coverage-summary.json":
            origin = ArtifactOrigin.COVERAGE
        elif name.endswith(".json") and name.startswith(("eslint", "lint")):
            origin = ArtifactOrigin.LINT
        elif is_result_json(name):
            origin = origin_hint(relative)
        elif name == "index.html" and not has_json_report:
            if origin_hint(relative) == ArtifactOrigin.BROWSER_AUTOMATION:
                origin = ArtifactOrigin.BROWSER_AUTOMATION

        if origin is not None:
            return Artifact(
                path=path,
                relative_path=relative.as_posix(),
                origin=origin,
                environment=tags.environment,
                browser=tags.browser,
                mtime=mtime,
                size=stat.st_size,
            )

        kind = media_kind(path.name)
        if kind is not None:
            return MediaFile(
                path=path,
                relative_path=relative.as_posix(),
                kind=kind,
                environment=tags.environment,
                browser=tags.browser,
                test_name=media_test_name(path),
                size=stat.st_size,
                modified=mtime,
            )
        return None

    def _record(self, path: Path, message: str) -> None:
        logger.warning("Discovery problem at %s: %s", path, message)
        self.diagnostics.record(DiagnosticKind.DISCOVERY_ERROR, message, str(path))

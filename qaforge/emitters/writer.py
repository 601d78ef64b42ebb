"""Atomic output writers.

Single files go through a sibling temp file and ``os.replace``.  A
directory family is staged in a sibling temp directory and swapped in by
rename, so readers see either the previous family or the new one.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
import uuid
from collections.abc import Mapping, Sequence
from pathlib import Path

from qaforge.core.history_store import atomic_write_text

logger = logging.getLogger(__name__)


class ReportEmissionError(RuntimeError):
    """Raised when a report file or directory cannot be written."""


def write_file(path: Path, text: str) -> Path:
    try:
        atomic_write_text(path, text)
    except OSError as exc:
        raise ReportEmissionError(f"Cannot write report {path}: {exc}") from exc
    logger.debug("Wrote %s", path)
    return path


def write_family(
    directory: Path, files: Mapping[str, str], preserve: Sequence[str] = ()
) -> Path:
    """Replace *directory* with exactly *files* (plus preserved entries).

    Parameters
    ----------
    directory:
        Target directory; its previous contents are discarded.
    files:
        Relative path -> text content.
    preserve:
        Relative paths copied byte-for-byte from the previous directory
        when present and not overwritten by *files*.
    """
    directory = Path(directory)
    parent = directory.parent
    try:
        parent.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=f".{directory.name}.", dir=parent))
    except OSError as exc:
        raise ReportEmissionError(f"Cannot stage report family {directory}: {exc}") from exc

    old: Path | None = None
    try:
        for rel, text in files.items():
            target = staging / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(text, encoding="utf-8")
        for rel in preserve:
            source = directory / rel
            if rel not in files and source.is_file():
                target = staging / rel
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(source, target)
        if directory.exists():
            old = parent / f".{directory.name}.old-{uuid.uuid4().hex[:8]}"
            directory.rename(old)
        try:
            staging.rename(directory)
        except OSError:
            if old is not None:
                old.rename(directory)
                old = None
            raise
    except OSError as exc:
        shutil.rmtree(staging, ignore_errors=True)
        raise ReportEmissionError(f"Cannot write report family {directory}: {exc}") from exc

    if old is not None:
        shutil.rmtree(old, ignore_errors=True)
    logger.debug("Wrote report family %s (%d files)", directory, len(files))
    return directory

"""Abstract base adapter with an enforced, non-raising entry point.

Every concrete adapter implements ``detect()`` and ``parse()``.  The
``run()`` wrapper is **not overridable**: it turns any exception raised
while parsing into a ``parse_error`` diagnostic and returns no result, so
a single malformed artifact never aborts a run.

``detect()`` is a cheap shape predicate over an already-loaded document.
Adapter selection only ever calls ``detect()``; ``parse()`` runs once the
adapter has been chosen.
"""

from __future__ import annotations

import abc
import json
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar, final

from qaforge.models.artifacts import Artifact, ArtifactOrigin
from qaforge.models.diagnostics import Diagnostic, DiagnosticKind
from qaforge.models.results import Category, SuiteResult

logger = logging.getLogger(__name__)


class DocumentLoadError(ValueError):
    """Raised when an artifact is readable but not decodable."""


def load_document(path: Path) -> Any:
    """Read an artifact: HTML files as text, everything else as JSON.

    Raises ``OSError`` when the file cannot be read and
    ``DocumentLoadError`` when it cannot be decoded.
    """
    raw = path.read_bytes()
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise DocumentLoadError(f"not valid UTF-8: {exc}") from exc
    if path.suffix.lower() in (".html", ".htm"):
        return text
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise DocumentLoadError(f"invalid JSON: {exc.msg} at line {exc.lineno}") from exc


@dataclass
class ParseContext:
    """Per-parse scratch space: the artifact and the issues found in it."""

    artifact: Artifact
    diagnostics: list[Diagnostic] = field(default_factory=list)

    def issue(self, message: str) -> None:
        self.diagnostics.append(
            Diagnostic(
                kind=DiagnosticKind.PARSE_ERROR,
                message=f"{message} in {self.artifact.relative_path}",
                path=self.artifact.relative_path,
            )
        )

    def number(self, value: Any, field_name: str) -> float | None:
        """Coerce a JSON value to a finite float; ``None`` if absent or junk."""
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, str):
            try:
                value = float(value)
            except ValueError:
                self.issue(f"non-numeric value for {field_name}")
                return None
        if not isinstance(value, (int, float)):
            self.issue(f"non-numeric value for {field_name}")
            return None
        try:
            value = float(value)
        except OverflowError:
            value = math.inf
        if math.isnan(value) or math.isinf(value):
            self.issue(f"non-finite value for {field_name}")
            return None
        return value

    def count(self, value: Any, field_name: str) -> int:
        """Coerce a counter; negatives are rejected and treated as zero."""
        number = self.number(value, field_name)
        if number is None:
            return 0
        if number < 0:
            self.issue(f"negative counter {field_name}={number:g} treated as 0")
            return 0
        return int(round(number))


@dataclass(frozen=True)
class AdapterOutcome:
    result: SuiteResult | None
    diagnostics: list[Diagnostic]


class BaseAdapter(abc.ABC):
    """Abstract base for all artifact adapters.

    Subclasses **must** set ``origin``, ``category`` and ``name`` and
    implement ``detect()`` and ``parse()``.  Subclasses **must not**
    override ``run()``.
    """

    origin: ClassVar[ArtifactOrigin]
    category: ClassVar[Category]
    name: ClassVar[str]

    @abc.abstractmethod
    def detect(self, document: Any) -> bool:
        """Whether *document* has a shape this adapter understands."""

    @abc.abstractmethod
    def parse(self, artifact: Artifact, document: Any, ctx: ParseContext) -> SuiteResult:
        """Normalize *document* into a SuiteResult.  May raise."""

    @final
    def run(self, artifact: Artifact, document: Any) -> AdapterOutcome:
        """Parse without raising.

        Returns
        -------
        AdapterOutcome
            The result (``None`` on failure) plus every diagnostic raised
            while parsing.
        """
        ctx = ParseContext(artifact=artifact)
        try:
            result = self.parse(artifact, document, ctx)
        except Exception as exc:
            logger.warning(
                "%s adapter could not parse %s: %s", self.name, artifact.relative_path, exc
            )
            ctx.diagnostics.append(
                Diagnostic(
                    kind=DiagnosticKind.PARSE_ERROR,
                    message=f"{self.name} adapter failed on {artifact.relative_path}: {exc}",
                    path=artifact.relative_path,
                )
            )
            return AdapterOutcome(result=None, diagnostics=ctx.diagnostics)
        logger.debug(
            "%s adapter parsed %s: %d tests",
            self.name,
            artifact.relative_path,
            result.totals.total,
        )
        return AdapterOutcome(result=result, diagnostics=ctx.diagnostics)


# ---------------------------------------------------------------------------
# Shape helpers shared by the adapters
# ---------------------------------------------------------------------------


def dict_list(value: Any) -> list[dict[str, Any]]:
    """The dict elements of *value* if it is a list, else an empty list."""
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def first_text(mapping: dict[str, Any], *keys: str) -> str | None:
    """First non-empty string among *keys* of *mapping*."""
    for key in keys:
        value = mapping.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def suite_label(artifact: Artifact) -> str:
    """Default root suite name for an artifact."""
    return artifact.relative_path or artifact.path.name

"""Artifact adapters — one per producing engine, selected by ``detect()``."""

from __future__ import annotations

from typing import Any

from qaforge.adapters.accessibility import AccessibilityAdapter
from qaforge.adapters.base import (
    AdapterOutcome,
    BaseAdapter,
    DocumentLoadError,
    ParseContext,
    load_document,
)
from qaforge.adapters.browser import BrowserAutomationAdapter
from qaforge.adapters.coverage import CoverageAdapter
from qaforge.adapters.http_collection import HttpCollectionAdapter
from qaforge.adapters.lint import LintAdapter
from qaforge.adapters.load import LoadGeneratorAdapter
from qaforge.adapters.security import SecurityAdapter
from qaforge.models.artifacts import Artifact, ArtifactOrigin

# Registry order is the fallback detection order.
ADAPTERS: dict[ArtifactOrigin, BaseAdapter] = {
    ArtifactOrigin.BROWSER_AUTOMATION: BrowserAutomationAdapter(),
    ArtifactOrigin.HTTP_COLLECTION: HttpCollectionAdapter(),
    ArtifactOrigin.LOAD_GENERATOR: LoadGeneratorAdapter(),
    ArtifactOrigin.ACCESSIBILITY: AccessibilityAdapter(),
    ArtifactOrigin.SECURITY: SecurityAdapter(),
    ArtifactOrigin.COVERAGE: CoverageAdapter(),
    ArtifactOrigin.LINT: LintAdapter(),
}


def select_adapter(artifact: Artifact, document: Any) -> BaseAdapter | None:
    """Pick the adapter for a loaded document using ``detect()`` only.

    The adapter for the artifact's hinted origin is tried first, then the
    rest in registry order.
    """
    hinted = ADAPTERS[artifact.origin]
    if hinted.detect(document):
        return hinted
    for origin, adapter in ADAPTERS.items():
        if origin is not artifact.origin and adapter.detect(document):
            return adapter
    return None


__all__ = [
    "ADAPTERS",
    "AccessibilityAdapter",
    "AdapterOutcome",
    "BaseAdapter",
    "BrowserAutomationAdapter",
    "CoverageAdapter",
    "DocumentLoadError",
    "HttpCollectionAdapter",
    "LintAdapter",
    "LoadGeneratorAdapter",
    "ParseContext",
    "SecurityAdapter",
    "load_document",
    "select_adapter",
]

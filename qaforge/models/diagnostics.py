"""Non-fatal problems collected during a run and surfaced in every report."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class DiagnosticKind(str, Enum):
    DISCOVERY_ERROR = "discovery_error"
    PARSE_ERROR = "parse_error"
    HISTORY_CORRUPT = "history_corrupt"
    ADAPTER_TIMEOUT = "adapter_timeout"
    INTERNAL_ERROR = "internal_error"


class Diagnostic(BaseModel):
    """A recorded, recoverable problem tied to one input (or the run)."""

    model_config = ConfigDict(frozen=True)

    kind: DiagnosticKind
    message: str
    path: str | None = None

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"

    def sort_key(self) -> tuple[str, str, str]:
        return (self.path or "", self.kind.value, self.message)


class DiagnosticLog:
    """Append-only collector shared by the locator, adapters and history store."""

    def __init__(self) -> None:
        self._items: list[Diagnostic] = []

    def record(
        self, kind: DiagnosticKind, message: str, path: str | None = None
    ) -> Diagnostic:
        diagnostic = Diagnostic(kind=kind, message=message, path=path)
        self._items.append(diagnostic)
        return diagnostic

    def extend(self, diagnostics: list[Diagnostic]) -> None:
        self._items.extend(diagnostics)

    def items(self) -> list[Diagnostic]:
        return list(self._items)

    def sorted(self) -> list[Diagnostic]:
        return sorted(self._items, key=Diagnostic.sort_key)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(list(self._items))

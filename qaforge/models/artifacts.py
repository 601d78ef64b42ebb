"""Discovered input files — result artifacts and media attachments."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

UNKNOWN = "unknown"


class ArtifactOrigin(str, Enum):
    """Which external engine produced an artifact."""

    BROWSER_AUTOMATION = "browser_automation"
    HTTP_COLLECTION = "http_collection"
    LOAD_GENERATOR = "load_generator"
    ACCESSIBILITY = "accessibility"
    SECURITY = "security"
    COVERAGE = "coverage"
    LINT = "lint"


class MediaKind(str, Enum):
    SCREENSHOT = "screenshot"
    VIDEO = "video"
    TRACE = "trace"
    ATTACHMENT = "attachment"


class PathTags(BaseModel):
    """Environment and browser inferred from a path."""

    model_config = ConfigDict(frozen=True)

    environment: str = UNKNOWN
    browser: str = UNKNOWN


class Artifact(BaseModel):
    """A result file found on disk.  Never mutated after discovery."""

    model_config = ConfigDict(frozen=True)

    path: Path
    relative_path: str  # posix form, relative to the results root
    origin: ArtifactOrigin
    environment: str = UNKNOWN
    browser: str = UNKNOWN
    mtime: datetime | None = None
    size: int = 0

    @property
    def tags(self) -> PathTags:
        return PathTags(environment=self.environment, browser=self.browser)


class MediaFile(BaseModel):
    """A screenshot, video, trace or attachment found beside the results."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    path: Path
    relative_path: str
    kind: MediaKind
    environment: str = UNKNOWN
    browser: str = UNKNOWN
    test_name: str = ""
    size: int = 0
    modified: datetime | None = None

"""Clock sources.  Reports read time from exactly one injected clock."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone

Clock = Callable[[], datetime]


def system_clock() -> datetime:
    return datetime.now(timezone.utc)


def fixed_clock(moment: datetime) -> Clock:
    """A clock that always returns *moment* (UTC assumed when naive)."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)

    def _clock() -> datetime:
        return moment

    return _clock


def clock_from_spec(spec: str) -> Clock:
    """Build a clock from ``"system"`` or ``"fixed:<ISO-8601>"``."""
    if spec.startswith("fixed:"):
        raw = spec.removeprefix("fixed:").replace("Z", "+00:00")
        return fixed_clock(datetime.fromisoformat(raw))
    return system_clock


def iso_utc(moment: datetime) -> str:
    """Render a timestamp as ISO-8601 UTC with a trailing ``Z``."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    text = moment.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")

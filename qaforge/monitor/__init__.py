"""Terminal rendering of run results and the status monitor."""

from qaforge.monitor.renderer import RunRenderer

__all__ = ["RunRenderer"]

"""qaforge — QA results aggregation and reporting pipeline.

Discovers test artifacts from browser automation, HTTP collection, load,
accessibility, security, coverage and lint tools; normalizes them into one
result tree; and emits dashboards, JUnit XML, executive summaries and a
bounded run history.
"""

__version__ = "0.2.0"

__all__ = ["__version__"]

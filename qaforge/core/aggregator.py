"""Aggregator — folds normalized SuiteResults into an AggregateSnapshot.

The fold is associative and commutative: integer counters are summed,
metric samples are kept as lists and reduced with ``math.fsum``/``max``/
``min`` only when the snapshot is built, and every index is emitted in
sorted key order.  Two aggregators over disjoint inputs can therefore be
combined with ``merge()`` in any order and still produce the same
snapshot as a single sequential pass.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any

from qaforge.models.artifacts import UNKNOWN, Artifact, MediaFile, PathTags
from qaforge.models.diagnostics import Diagnostic
from qaforge.models.results import Category, SuiteResult, Totals
from qaforge.models.snapshot import (
    AggregateSnapshot,
    BrowserEntry,
    CategorySummary,
    EnvironmentEntry,
    SuiteEntry,
)

logger = logging.getLogger(__name__)

DEFAULT_COUNTED: tuple[Category, ...] = (Category.UI, Category.API)


def merge_rule(key: str) -> str:
    """How samples of a metric combine across suites: sum, max or min."""
    if key.endswith("ResponseTime") or key == "errorRatePercent":
        return "max"
    if key.endswith("Pct"):
        return "min"
    return "sum"


def suite_nodes(result: SuiteResult) -> list[SuiteResult]:
    """The nodes that key ``bySuite``: the root's children, or the root.

    Cases sitting directly on a root that also has children are keyed on
    the root's own name.
    """
    if not result.children:
        return [result]
    nodes = list(result.children)
    if result.cases:
        nodes.append(SuiteResult.build(result.name, result.category, cases=result.cases))
    return nodes


def browser_split(node: SuiteResult, default: str) -> dict[str, Totals]:
    """Distribute a node's totals across browsers.

    A known *default* (from the path) takes everything.  Otherwise cases
    are attributed to their own inferred browser and counts not backed by
    cases fall under ``unknown``.  Wall-clock time the source reports for a
    whole node is shared out over the browsers that ran, never booked to a
    browser without tests.
    """
    if default != UNKNOWN:
        return {default: node.totals}
    acc: dict[str, Totals] = {}
    for current in node.walk():
        for case in current.cases:
            if case.status is None:
                continue
            key = case.browser or UNKNOWN
            acc[key] = acc.get(key, Totals()) + case.totals
        own = current.totals.minus(current.rollup())
        if own.total:
            acc[UNKNOWN] = acc.get(UNKNOWN, Totals()) + own
    if len(acc) <= 1:
        return {next(iter(acc), default): node.totals}
    if sum(part.duration_ms for part in acc.values()) != node.totals.duration_ms:
        return _apportion(acc, node.totals.duration_ms)
    return acc


def _apportion(acc: dict[str, Totals], duration_ms: int) -> dict[str, Totals]:
    """Rescale per-browser durations so they add up to *duration_ms*."""
    keys = sorted(acc)
    weights = [acc[key].duration_ms for key in keys]
    if not any(weights):
        weights = [acc[key].total or 1 for key in keys]
    whole = sum(weights)
    shares = [duration_ms * weight // whole for weight in weights]
    # remainder goes to the heaviest browser, first in key order on ties
    shares[weights.index(max(weights))] += duration_ms - sum(shares)
    return {
        key: acc[key].model_copy(update={"duration_ms": share})
        for key, share in zip(keys, shares)
    }


def _nested() -> defaultdict[str, Totals]:
    return defaultdict(Totals)


class Aggregator:
    """Incremental, mergeable accumulator.

    Parameters
    ----------
    counted_categories:
        Categories whose counts feed the snapshot totals and the
        environment, browser and suite indexes.  Every category feeds
        ``by_category`` regardless.
    """

    def __init__(self, counted_categories: Iterable[Category] = DEFAULT_COUNTED) -> None:
        self.counted = frozenset(counted_categories)
        self.totals = Totals()
        self.env_totals: defaultdict[str, Totals] = defaultdict(Totals)
        self.env_browsers: defaultdict[str, defaultdict[str, Totals]] = defaultdict(_nested)
        self.browser_totals: defaultdict[str, Totals] = defaultdict(Totals)
        self.browser_envs: defaultdict[str, defaultdict[str, Totals]] = defaultdict(_nested)
        self.suite_totals: defaultdict[str, Totals] = defaultdict(Totals)
        self.suite_envs: defaultdict[str, defaultdict[str, Totals]] = defaultdict(_nested)
        self.suite_browsers: defaultdict[str, defaultdict[str, Totals]] = defaultdict(_nested)
        self.suite_categories: dict[str, Category] = {}
        self.category_totals: defaultdict[Category, Totals] = defaultdict(Totals)
        self.category_severity: defaultdict[Category, defaultdict[str, int]] = defaultdict(
            lambda: defaultdict(int)
        )
        self.category_metrics: defaultdict[Category, defaultdict[str, list[float]]] = defaultdict(
            lambda: defaultdict(list)
        )
        self.category_suites: defaultdict[Category, set[str]] = defaultdict(set)
        self.media: list[MediaFile] = []
        self.diagnostics: list[Diagnostic] = []
        self.artifact_count = 0

    # ------------------------------------------------------------------
    # Accumulation
    # ------------------------------------------------------------------

    def add(self, result: SuiteResult, tags: PathTags) -> None:
        """Fold one top-level SuiteResult classified by *tags*."""
        self.artifact_count += 1
        category = result.category
        self.category_totals[category] = self.category_totals[category] + result.totals
        self.category_suites[category].add(result.name)
        for node in result.walk():
            for severity, count in node.severity_counts.items():
                self.category_severity[category][severity] += count
            for key, value in node.metrics.items():
                self.category_metrics[category][key].append(float(value))

        if category not in self.counted:
            return

        env = tags.environment
        self.totals = self.totals + result.totals
        self.env_totals[env] = self.env_totals[env] + result.totals
        for browser, part in browser_split(result, tags.browser).items():
            self.env_browsers[env][browser] = self.env_browsers[env][browser] + part
            self.browser_totals[browser] = self.browser_totals[browser] + part
            self.browser_envs[browser][env] = self.browser_envs[browser][env] + part

        for node in suite_nodes(result):
            name = node.name
            self.suite_totals[name] = self.suite_totals[name] + node.totals
            self.suite_envs[name][env] = self.suite_envs[name][env] + node.totals
            for browser, part in browser_split(node, tags.browser).items():
                self.suite_browsers[name][browser] = self.suite_browsers[name][browser] + part
            self._set_suite_category(name, category)

    def add_media(self, media: MediaFile) -> None:
        self.media.append(media)

    def add_diagnostics(self, diagnostics: Iterable[Diagnostic]) -> None:
        self.diagnostics.extend(diagnostics)

    def merge(self, other: Aggregator) -> Aggregator:
        """Fold *other* into this aggregator and return ``self``."""
        self.totals = self.totals + other.totals
        _merge_flat(self.env_totals, other.env_totals)
        _merge_nested(self.env_browsers, other.env_browsers)
        _merge_flat(self.browser_totals, other.browser_totals)
        _merge_nested(self.browser_envs, other.browser_envs)
        _merge_flat(self.suite_totals, other.suite_totals)
        _merge_nested(self.suite_envs, other.suite_envs)
        _merge_nested(self.suite_browsers, other.suite_browsers)
        for name, category in other.suite_categories.items():
            self._set_suite_category(name, category)
        _merge_flat(self.category_totals, other.category_totals)
        for category, counts in other.category_severity.items():
            for severity, count in counts.items():
                self.category_severity[category][severity] += count
        for category, metrics in other.category_metrics.items():
            for key, values in metrics.items():
                self.category_metrics[category][key].extend(values)
        for category, names in other.category_suites.items():
            self.category_suites[category] |= names
        self.media.extend(other.media)
        self.diagnostics.extend(other.diagnostics)
        self.artifact_count += other.artifact_count
        return self

    def _set_suite_category(self, name: str, category: Category) -> None:
        existing = self.suite_categories.get(name)
        if existing is None or category.value < existing.value:
            self.suite_categories[name] = category

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def snapshot(
        self, timestamp: datetime, metadata: dict[str, Any] | None = None
    ) -> AggregateSnapshot:
        """Freeze the accumulated state into an ``AggregateSnapshot``."""
        media = sorted(self.media, key=lambda m: m.relative_path)
        env_media: defaultdict[str, list[int]] = defaultdict(list)
        browser_media: defaultdict[str, list[int]] = defaultdict(list)
        for index, item in enumerate(media):
            env_media[item.environment].append(index)
            browser_media[item.browser].append(index)

        by_environment = {
            env: EnvironmentEntry(
                totals=self.env_totals[env],
                browsers=_sorted(self.env_browsers[env]),
                media=env_media.get(env, []),
            )
            for env in sorted(self.env_totals)
        }
        by_browser = {
            browser: BrowserEntry(
                totals=self.browser_totals[browser],
                environments=_sorted(self.browser_envs[browser]),
                media=browser_media.get(browser, []),
            )
            for browser in sorted(self.browser_totals)
        }
        by_suite = {
            name: SuiteEntry(
                category=self.suite_categories[name],
                totals=self.suite_totals[name],
                environments=_sorted(self.suite_envs[name]),
                browsers=_sorted(self.suite_browsers[name]),
            )
            for name in sorted(self.suite_totals)
        }
        by_category = {
            category.value: CategorySummary(
                category=category,
                totals=self.category_totals[category],
                severity_counts=dict(sorted(self.category_severity[category].items())),
                metrics=finalize_metrics(self.category_metrics[category]),
                suites=sorted(self.category_suites[category]),
            )
            for category in sorted(self.category_totals, key=lambda c: c.value)
        }
        return AggregateSnapshot(
            timestamp=timestamp,
            totals=self.totals,
            by_environment=by_environment,
            by_browser=by_browser,
            by_suite=by_suite,
            by_category=by_category,
            media=media,
            errors=sorted(self.diagnostics, key=Diagnostic.sort_key),
            metadata=dict(metadata or {}),
            artifact_count=self.artifact_count,
        )


def finalize_metrics(samples: dict[str, list[float]]) -> dict[str, float]:
    """Reduce metric samples with their merge rule, rounded to 3 places."""
    reduced: dict[str, float] = {}
    for key in sorted(samples):
        values = samples[key]
        if not values:
            continue
        rule = merge_rule(key)
        if rule == "max":
            value = max(values)
        elif rule == "min":
            value = min(values)
        else:
            value = math.fsum(values)
        reduced[key] = round(value, 3)
    total_requests = reduced.get("totalRequests", 0.0)
    if total_requests > 0 and "responseTimeSumMs" in reduced:
        reduced["averageResponseTime"] = round(reduced["responseTimeSumMs"] / total_requests, 3)
    return reduced


def aggregate(
    results: Iterable[tuple[Artifact, SuiteResult]],
    timestamp: datetime,
    classify: Callable[[Artifact], PathTags] | None = None,
    counted_categories: Iterable[Category] = DEFAULT_COUNTED,
    metadata: dict[str, Any] | None = None,
) -> AggregateSnapshot:
    """One-shot aggregation of ``(artifact, result)`` pairs."""
    classify = classify or (lambda artifact: artifact.tags)
    aggregator = Aggregator(counted_categories)
    for artifact, result in results:
        aggregator.add(result, classify(artifact))
    return aggregator.snapshot(timestamp, metadata)


def _sorted(mapping: dict[str, Totals]) -> dict[str, Totals]:
    return {key: mapping[key] for key in sorted(mapping)}


def _merge_flat(target: defaultdict[Any, Totals], source: dict[Any, Totals]) -> None:
    for key, totals in source.items():
        target[key] = target[key] + totals


def _merge_nested(
    target: defaultdict[str, defaultdict[str, Totals]],
    source: dict[str, dict[str, Totals]],
) -> None:
    for key, inner in source.items():
        for sub, totals in inner.items():
            target[key][sub] = target[key][sub] + totals

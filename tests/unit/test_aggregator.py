"""Tests for the Aggregator — index invariants, determinism and merging."""

from __future__ import annotations

import itertools
from datetime import datetime, timezone

import pytest

from qaforge.core.aggregator import Aggregator, aggregate, browser_split, finalize_metrics, merge_rule
from qaforge.models.artifacts import MediaFile, MediaKind, PathTags
from qaforge.models.diagnostics import Diagnostic, DiagnosticKind
from qaforge.models.results import CaseResult, CaseStatus, Category, SuiteResult, Totals

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


def _stats_suite(name: str, passed: int, failed: int = 0, skipped: int = 0,
                 category: Category = Category.UI, duration: int = 0) -> SuiteResult:
    return SuiteResult(
        name=name,
        category=category,
        totals=Totals.reconciled(passed=passed, failed=failed, skipped=skipped, duration_ms=duration),
    )


def _inputs() -> list[tuple[SuiteResult, PathTags]]:
    checkout = SuiteResult.build("root-a", Category.UI, children=[
        SuiteResult.build("checkout", Category.UI, cases=[
            CaseResult(name="pay", status=CaseStatus.PASSED, duration_ms=10),
            CaseResult(name="refund", status=CaseStatus.FAILED, duration_ms=20),
        ]),
        SuiteResult.build("cart", Category.UI, cases=[
            CaseResult(name="add", status=CaseStatus.SKIPPED),
        ]),
    ])
    return [
        (checkout, PathTags(environment="staging", browser="firefox")),
        (_stats_suite("stats-b", 5, 1, duration=600), PathTags(environment="production", browser="chromium")),
        (_stats_suite("Orders API", 8, 2, category=Category.API), PathTags(environment="staging")),
        (
            SuiteResult(name="perf", category=Category.PERFORMANCE,
                        totals=Totals.reconciled(passed=90, failed=10),
                        metrics={"totalRequests": 100, "responseTimeSumMs": 25000,
                                 "averageResponseTime": 250, "p95ResponseTime": 700}),
            PathTags(environment="staging"),
        ),
    ]


def _snapshot(inputs, counted=(Category.UI, Category.API)):
    agg = Aggregator(counted)
    for result, tags in inputs:
        agg.add(result, tags)
    return agg.snapshot(NOW)


# ---------------------------------------------------------------------------
# Test: invariants
# ---------------------------------------------------------------------------


class TestIndexInvariants:
    """Every index partitions the counted totals."""

    def test_totals(self):
        snap = _snapshot(_inputs())
        t = snap.totals
        assert (t.total, t.passed, t.failed, t.skipped) == (19, 14, 4, 1)
        assert t.total == t.passed + t.failed + t.skipped

    @pytest.mark.parametrize("index", ["by_environment", "by_browser", "by_suite"])
    def test_index_sums_to_totals(self, index: str):
        snap = _snapshot(_inputs())
        acc = Totals()
        for entry in getattr(snap, index).values():
            acc = acc + entry.totals
        assert acc == snap.totals

    def test_nested_breakdowns_sum_to_entry(self):
        snap = _snapshot(_inputs())
        for entry in snap.by_environment.values():
            acc = Totals()
            for part in entry.browsers.values():
                acc = acc + part
            assert acc == entry.totals
        for entry in snap.by_browser.values():
            acc = Totals()
            for part in entry.environments.values():
                acc = acc + part
            assert acc == entry.totals

    def test_suite_keys_are_children_of_root(self):
        snap = _snapshot(_inputs())
        assert list(snap.by_suite) == ["Orders API", "cart", "checkout", "stats-b"]
        assert snap.by_suite["checkout"].category is Category.UI
        assert snap.by_suite["Orders API"].category is Category.API

    def test_uncounted_category_only_in_by_category(self):
        snap = _snapshot(_inputs())
        assert "perf" not in snap.by_suite
        perf = snap.by_category["performance"]
        assert perf.totals.total == 100
        assert perf.suites == ["perf"]
        assert snap.totals.total == 19

    def test_keys_sorted(self):
        snap = _snapshot(_inputs())
        assert list(snap.by_environment) == sorted(snap.by_environment)
        assert list(snap.by_browser) == ["chromium", "firefox", "unknown"]
        assert list(snap.by_category) == ["api", "performance", "ui"]

    def test_artifact_count(self):
        assert _snapshot(_inputs()).artifact_count == 4


# ---------------------------------------------------------------------------
# Test: determinism
# ---------------------------------------------------------------------------


class TestDeterminism:
    def test_permutations_produce_identical_snapshots(self):
        inputs = _inputs()
        expected = _snapshot(inputs).model_dump_json()
        for perm in itertools.permutations(inputs):
            assert _snapshot(list(perm)).model_dump_json() == expected

    def test_merge_is_commutative(self):
        inputs = _inputs()
        left, right = Aggregator(), Aggregator()
        for result, tags in inputs[:2]:
            left.add(result, tags)
        for result, tags in inputs[2:]:
            right.add(result, tags)

        a = Aggregator().merge(left).merge(right).snapshot(NOW)
        b = Aggregator().merge(right).merge(left).snapshot(NOW)
        assert a == b
        assert a == _snapshot(inputs)

    def test_errors_sorted(self):
        agg = Aggregator()
        agg.add_diagnostics([
            Diagnostic(kind=DiagnosticKind.PARSE_ERROR, message="bad", path="z.json"),
            Diagnostic(kind=DiagnosticKind.DISCOVERY_ERROR, message="gone", path="a.json"),
        ])
        snap = agg.snapshot(NOW)
        assert [d.path for d in snap.errors] == ["a.json", "z.json"]

    def test_media_sorted_and_indexed(self, tmp_dir):
        agg = Aggregator()
        agg.add(_stats_suite("s", 1), PathTags(environment="staging", browser="webkit"))
        for rel in ("staging/webkit/b.png", "staging/webkit/a.png"):
            agg.add_media(MediaFile(path=tmp_dir / rel, relative_path=rel, kind=MediaKind.SCREENSHOT,
                                    environment="staging", browser="webkit"))
        snap = agg.snapshot(NOW)
        assert [m.relative_path for m in snap.media] == ["staging/webkit/a.png", "staging/webkit/b.png"]
        assert snap.by_environment["staging"].media == [0, 1]
        assert snap.by_browser["webkit"].media == [0, 1]


# ---------------------------------------------------------------------------
# Test: browser split
# ---------------------------------------------------------------------------


class TestBrowserSplit:
    def test_known_path_browser_takes_all(self):
        suite = _stats_suite("s", 3)
        assert browser_split(suite, "firefox") == {"firefox": suite.totals}

    def test_cases_split_by_project_browser(self):
        suite = SuiteResult.build("s", Category.UI, cases=[
            CaseResult(name="a [chromium]", status=CaseStatus.PASSED, browser="chromium"),
            CaseResult(name="a [firefox]", status=CaseStatus.FAILED, browser="firefox"),
            CaseResult(name="b [firefox]", status=CaseStatus.PASSED, browser="firefox"),
        ])
        split = browser_split(suite, "unknown")
        assert split["chromium"].passed == 1
        assert (split["firefox"].passed, split["firefox"].failed) == (1, 1)
        assert "unknown" not in split

    def test_stats_only_is_unknown(self):
        suite = _stats_suite("s", 2)
        assert browser_split(suite, "unknown") == {"unknown": suite.totals}

    def test_reported_duration_stays_with_the_only_browser(self):
        suite = SuiteResult.build("s", Category.UI, duration_ms=5000, cases=[
            CaseResult(name="a", status=CaseStatus.PASSED, duration_ms=100, browser="chromium"),
            CaseResult(name="b", status=CaseStatus.PASSED, duration_ms=100, browser="chromium"),
        ])
        split = browser_split(suite, "unknown")
        assert list(split) == ["chromium"]
        assert split["chromium"].duration_ms == 5000
        assert split["chromium"].total == 2

    def test_reported_duration_shared_across_browsers(self):
        suite = SuiteResult.build("s", Category.UI, duration_ms=800, cases=[
            CaseResult(name="a", status=CaseStatus.PASSED, duration_ms=100, browser="chromium"),
            CaseResult(name="b", status=CaseStatus.FAILED, duration_ms=300, browser="firefox"),
        ])
        split = browser_split(suite, "unknown")
        assert list(split) == ["chromium", "firefox"]
        assert split["chromium"].duration_ms == 200
        assert split["firefox"].duration_ms == 600

    def test_parallel_run_shorter_than_case_sum(self):
        suite = SuiteResult.build("s", Category.UI, duration_ms=101, cases=[
            CaseResult(name="a", status=CaseStatus.PASSED, duration_ms=100, browser="chromium"),
            CaseResult(name="b", status=CaseStatus.PASSED, duration_ms=100, browser="webkit"),
        ])
        split = browser_split(suite, "unknown")
        assert sum(part.duration_ms for part in split.values()) == 101
        assert split["chromium"].duration_ms == 51

    def test_no_phantom_browser_in_snapshot(self):
        suite = SuiteResult.build("s", Category.UI, duration_ms=5000, cases=[
            CaseResult(name="a", status=CaseStatus.PASSED, duration_ms=100, browser="chromium"),
            CaseResult(name="b", status=CaseStatus.FAILED, duration_ms=100, browser="firefox"),
            CaseResult(name="c", status=None, browser="webkit"),
        ])
        agg = Aggregator()
        agg.add(suite, PathTags(environment="staging"))
        snap = agg.snapshot(NOW)
        assert list(snap.by_browser) == ["chromium", "firefox"]
        assert list(snap.by_environment["staging"].browsers) == ["chromium", "firefox"]
        assert sum(e.totals.duration_ms for e in snap.by_browser.values()) == 5000

    def test_snapshot_uses_case_browsers(self):
        suite = SuiteResult.build("s", Category.UI, cases=[
            CaseResult(name="a", status=CaseStatus.PASSED, browser="chromium"),
            CaseResult(name="b", status=CaseStatus.PASSED, browser="webkit"),
        ])
        snap = aggregate([], NOW)
        assert snap.totals.total == 0
        agg = Aggregator()
        agg.add(suite, PathTags())
        snap = agg.snapshot(NOW)
        assert set(snap.by_browser) == {"chromium", "webkit"}
        assert snap.by_environment["unknown"].browsers["webkit"].passed == 1


# ---------------------------------------------------------------------------
# Test: metrics
# ---------------------------------------------------------------------------


class TestMetricMerging:
    @pytest.mark.parametrize(
        ("key", "rule"),
        [
            ("p95ResponseTime", "max"),
            ("averageResponseTime", "max"),
            ("errorRatePercent", "max"),
            ("linesPct", "min"),
            ("totalRequests", "sum"),
            ("statementsCovered", "sum"),
        ],
    )
    def test_merge_rule(self, key: str, rule: str):
        assert merge_rule(key) == rule

    def test_finalize(self):
        reduced = finalize_metrics({
            "totalRequests": [100.0, 300.0],
            "responseTimeSumMs": [10000.0, 60000.0],
            "averageResponseTime": [100.0, 200.0],
            "p95ResponseTime": [400.0, 900.0],
            "linesPct": [80.0, 65.5],
            "empty": [],
        })
        assert reduced["totalRequests"] == 400.0
        assert reduced["averageResponseTime"] == 175.0
        assert reduced["p95ResponseTime"] == 900.0
        assert reduced["linesPct"] == 65.5
        assert "empty" not in reduced

    def test_fsum_is_order_independent(self):
        values = [0.1] * 10 + [1e16, -1e16]
        assert finalize_metrics({"x": values}) == finalize_metrics({"x": list(reversed(values))})

    def test_severity_counts_accumulate(self):
        agg = Aggregator()
        for counts in ({"critical": 1}, {"critical": 2, "minor": 1}):
            agg.add(SuiteResult(name="scan", category=Category.ACCESSIBILITY, severity_counts=counts),
                    PathTags())
        summary = agg.snapshot(NOW).by_category["accessibility"]
        assert summary.severity_counts == {"critical": 3, "minor": 1}

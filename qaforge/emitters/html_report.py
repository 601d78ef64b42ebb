"""CI HTML report (``test-report.html``) and the comprehensive media report."""

from __future__ import annotations

from collections import defaultdict
from pathlib import Path

from qaforge.core.clock import iso_utc
from qaforge.emitters import _html as h
from qaforge.emitters.views import (
    BREAKDOWN_HEADERS,
    MediaItem,
    ReportBundle,
    browser_rows,
    environment_rows,
    media_items,
    suite_rows,
)
from qaforge.models.artifacts import MediaKind


def render_test_report(bundle: ReportBundle) -> str:
    snapshot = bundle.snapshot
    summary = h.cards(
        [
            ("Total", snapshot.totals.total),
            ("Passed", snapshot.totals.passed),
            ("Failed", snapshot.totals.failed),
            ("Skipped", snapshot.totals.skipped),
            ("Pass rate", f"{bundle.quality.pass_rate:.1f}%"),
            ("Duration", f"{snapshot.totals.duration_ms / 1000.0:.1f}s"),
        ]
    )
    sections = [
        h.section("Summary", summary),
        h.section("Environments", h.table(BREAKDOWN_HEADERS, [r.cells() for r in environment_rows(snapshot)])),
        h.section("Browsers", h.table(BREAKDOWN_HEADERS, [r.cells() for r in browser_rows(snapshot)])),
        h.section("Suites", h.table(BREAKDOWN_HEADERS, [r.cells() for r in suite_rows(snapshot)])),
    ]
    if snapshot.errors:
        sections.append(
            h.section("Errors", h.tag("ul", h.join(h.tag("li", str(d)) for d in snapshot.errors)))
        )
    return h.page("Test Results Report", sections, subtitle=f"Generated {iso_utc(bundle.generated_at)}")


def _media_list(items: list[MediaItem]) -> h.Markup:
    by_kind: dict[MediaKind, list[MediaItem]] = defaultdict(list)
    for item in items:
        by_kind[item.kind].append(item)
    blocks = []
    for kind in MediaKind:
        entries = by_kind.get(kind)
        if not entries:
            continue
        links = h.join(
            h.tag("li", h.Markup(f'{h.tag("a", item.label, href=item.href)} '
                                 f'<small>{h.esc(item.test_name)}</small>'))
            for item in entries
        )
        blocks.append(h.Markup(f"<h3>{h.esc(kind.value.title())}s ({len(entries)})</h3><ul>{links}</ul>"))
    return h.Markup("".join(blocks)) if blocks else h.Markup('<p class="empty">No media.</p>')


def render_comprehensive(bundle: ReportBundle, page_dir: Path) -> str:
    """Per environment/browser pages of results and the media beside them."""
    snapshot = bundle.snapshot
    items = media_items(snapshot, page_dir)
    grouped: dict[tuple[str, str], list[MediaItem]] = defaultdict(list)
    for item in items:
        grouped[(item.environment, item.browser)].append(item)

    sections = [
        h.section(
            "Overview",
            h.cards(
                [
                    ("Total", snapshot.totals.total),
                    ("Pass rate", f"{bundle.quality.pass_rate:.1f}%"),
                    ("Screenshots", sum(1 for i in items if i.kind is MediaKind.SCREENSHOT)),
                    ("Videos", sum(1 for i in items if i.kind is MediaKind.VIDEO)),
                    ("Traces", sum(1 for i in items if i.kind is MediaKind.TRACE)),
                    ("Attachments", sum(1 for i in items if i.kind is MediaKind.ATTACHMENT)),
                ]
            ),
        )
    ]
    keys = set(grouped)
    for env, entry in snapshot.by_environment.items():
        keys.update((env, browser) for browser in entry.browsers)
    for env, browser in sorted(keys):
        totals = snapshot.by_environment.get(env)
        cell = totals.browsers.get(browser) if totals else None
        results = (
            h.table(["Total", "Passed", "Failed", "Skipped"],
                    [[cell.total, cell.passed, cell.failed, cell.skipped]])
            if cell is not None
            else h.Markup('<p class="empty">No results.</p>')
        )
        sections.append(h.section(f"{env} / {browser}", results, _media_list(grouped.get((env, browser), []))))
    if snapshot.errors:
        sections.append(
            h.section("Errors", h.tag("ul", h.join(h.tag("li", str(d)) for d in snapshot.errors)))
        )
    return h.page("Comprehensive Test Report", sections, subtitle=f"Generated {iso_utc(bundle.generated_at)}")

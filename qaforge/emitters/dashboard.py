"""Static quality dashboard (``dashboard/index.html``).

A single self-contained page: summary cards, breakdown tables, gates,
trend, and media galleries.  The snapshot data is embedded as inline JSON
and a small inline script filters table rows client-side; nothing is
fetched at runtime.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from qaforge.core.clock import iso_utc
from qaforge.core.hasher import canonical_json_text
from qaforge.emitters import _html as h
from qaforge.emitters.normalized import normalized_payload
from qaforge.emitters.views import (
    BREAKDOWN_HEADERS,
    BreakdownRow,
    MediaItem,
    ReportBundle,
    browser_rows,
    category_rows,
    environment_rows,
    matrix_rows,
    media_items,
    suite_rows,
)
from qaforge.models.artifacts import MediaKind

_FILTER_SCRIPT = """
(function () {
  var text = document.getElementById('filter-text');
  var category = document.getElementById('filter-category');
  function apply() {
    var needle = (text.value || '').toLowerCase();
    var group = category.value;
    document.querySelectorAll('tr[data-label]').forEach(function (row) {
      var matchText = row.getAttribute('data-label').toLowerCase().indexOf(needle) !== -1;
      var rowGroup = row.getAttribute('data-group');
      var matchGroup = !group || !rowGroup || rowGroup === group;
      row.style.display = matchText && matchGroup ? '' : 'none';
    });
  }
  text.addEventListener('input', apply);
  category.addEventListener('change', apply);
})();
"""


def _breakdown(rows: list[BreakdownRow]) -> h.Markup:
    return h.table(
        BREAKDOWN_HEADERS,
        [r.cells() for r in rows],
        row_attrs=[_row_attrs(r) for r in rows],
    )


def _row_attrs(row: BreakdownRow) -> dict[str, str]:
    attrs = {"data_label": row.label}
    if row.group:
        attrs["data_group"] = row.group
    return attrs


def _gallery(items: list[MediaItem]) -> h.Markup:
    figures = []
    for item in items:
        caption = h.tag("figcaption", f"{item.test_name} ({item.environment}/{item.browser})")
        if item.kind is MediaKind.SCREENSHOT:
            body = h.Markup(f'<a href="{h.esc(item.href)}"><img src="{h.esc(item.href)}" '
                            f'alt="{h.esc(item.label)}" loading="lazy"></a>')
        elif item.kind is MediaKind.VIDEO:
            body = h.Markup(f'<video src="{h.esc(item.href)}" controls preload="none"></video>')
        else:
            body = h.tag("a", item.label, href=item.href)
        figures.append(h.Markup(f'<figure data-media="{item.index}">{body}{caption}</figure>'))
    if not figures:
        return h.Markup('<p class="empty">None collected.</p>')
    return h.Markup(f'<div class="gallery">{"".join(figures)}</div>')


def dashboard_data(bundle: ReportBundle) -> dict[str, Any]:
    """Data embedded in the page and written to ``data/dashboard-data.json``."""
    payload = normalized_payload(bundle.snapshot, iso_utc(bundle.generated_at))
    payload["quality"] = bundle.quality.model_dump(mode="json", by_alias=True)
    payload["trend"] = bundle.trend.model_dump(mode="json", by_alias=True)
    payload["media"] = [
        m.model_dump(mode="json", by_alias=True, exclude={"path"}) for m in bundle.snapshot.media
    ]
    return payload


def render_dashboard_data(bundle: ReportBundle) -> str:
    return canonical_json_text(dashboard_data(bundle))


def render_dashboard(bundle: ReportBundle, page_dir: Path) -> str:
    """Render the dashboard page; media links are relative to *page_dir*."""
    snapshot, quality = bundle.snapshot, bundle.quality
    score = "n/a" if quality.quality_score is None else f"{quality.quality_score:g}"
    summary = h.cards(
        [
            ("Quality score", score),
            ("Health", h.badge(quality.overall_health.value, quality.overall_health.value)),
            ("Total", snapshot.totals.total),
            ("Passed", snapshot.totals.passed),
            ("Failed", snapshot.totals.failed),
            ("Skipped", snapshot.totals.skipped),
            ("Pass rate", f"{quality.pass_rate:.1f}%"),
        ]
    )
    options = "".join(
        f'<option value="{h.esc(name)}">{h.esc(name)}</option>' for name in snapshot.by_category
    )
    filters = h.Markup(
        '<div class="filters"><input id="filter-text" type="search" placeholder="Filter rows">'
        f'<select id="filter-category"><option value="">All categories</option>{options}</select></div>'
    )
    gates = h.table(
        ["Gate", "Actual", "Threshold", "Verdict"],
        [[g.name, f"{g.actual:g}", f"{g.threshold:g}", h.badge(g.verdict.value, g.verdict.value)]
         for g in quality.gates],
    )
    alerts = h.table(["Level", "Gate", "Message"],
                     [[h.badge(a.level.value, a.level.value), a.gate, a.message] for a in quality.alerts])
    trend = bundle.trend
    trend_cards = h.cards(
        [
            ("Direction", trend.direction.value.replace("_", " ")),
            ("Recent pass rate", "n/a" if trend.current is None else f"{trend.current:g}%"),
            ("Previous pass rate", "n/a" if trend.previous is None else f"{trend.previous:g}%"),
            ("Delta", f"{trend.delta:+g}"),
            ("Runs in history", trend.total_runs),
        ]
    )
    items = media_items(snapshot, page_dir)
    galleries = [
        h.section(f"{kind.value.title()}s", _gallery([i for i in items if i.kind is kind]))
        for kind in MediaKind
    ]
    sections = [
        h.section("Summary", summary),
        h.section("Breakdowns", filters,
                  h.tag("h3", "By category"), _breakdown(category_rows(snapshot)),
                  h.tag("h3", "By environment"), _breakdown(environment_rows(snapshot)),
                  h.tag("h3", "By browser"), _breakdown(browser_rows(snapshot)),
                  h.tag("h3", "Environment x browser"), _breakdown(matrix_rows(snapshot)),
                  h.tag("h3", "By suite"), _breakdown(suite_rows(snapshot))),
        h.section("Quality gates", gates),
        h.section("Alerts", alerts),
        h.section("Trend", trend_cards),
        *galleries,
    ]
    if snapshot.errors:
        sections.append(
            h.section("Diagnostics", h.tag("ul", h.join(h.tag("li", str(d)) for d in snapshot.errors)))
        )
    script = h.Markup(
        f'<script id="dashboard-data" type="application/json">{h.script_json(dashboard_data(bundle))}</script>\n'
        f"<script>{_FILTER_SCRIPT}</script>"
    )
    return h.page("QA Quality Dashboard", sections,
                  subtitle=f"Generated {iso_utc(bundle.generated_at)}", script=script)

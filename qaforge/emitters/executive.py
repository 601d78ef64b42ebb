"""Executive summary — quality score, findings, risks and next steps."""

from __future__ import annotations

from datetime import timedelta
from typing import Any

from qaforge.core.clock import iso_utc
from qaforge.core.hasher import canonical_json_text
from qaforge.emitters import _html as h
from qaforge.emitters.views import ReportBundle

REPORTING_PERIOD_DAYS = 30


def executive_payload(bundle: ReportBundle) -> dict[str, Any]:
    snapshot, quality = bundle.snapshot, bundle.quality
    start = bundle.generated_at - timedelta(days=REPORTING_PERIOD_DAYS)
    return {
        "generatedAt": iso_utc(bundle.generated_at),
        "reportingPeriod": {
            "start": iso_utc(start),
            "end": iso_utc(bundle.generated_at),
            "days": REPORTING_PERIOD_DAYS,
        },
        "overview": {
            "qualityScore": quality.quality_score,
            "totalTests": snapshot.totals.total,
            "passRate": quality.pass_rate,
            "testTypes": len(snapshot.by_category),
            "environments": len(snapshot.by_environment),
            "browsers": len(snapshot.by_browser),
            "overallHealth": quality.overall_health.value,
            "qualityGate": quality.quality_gate.value,
        },
        "subdomains": {
            name: sub.model_dump(mode="json", by_alias=True)
            for name, sub in quality.subdomains.items()
        },
        "gates": [g.model_dump(mode="json", by_alias=True) for g in quality.gates],
        "alerts": [a.model_dump(mode="json", by_alias=True) for a in quality.alerts],
        "keyFindings": [f.model_dump(mode="json", by_alias=True) for f in quality.findings],
        "riskAssessment": [r.model_dump(mode="json", by_alias=True) for r in quality.risks],
        "recommendations": [
            r.model_dump(mode="json", by_alias=True) for r in quality.recommendations
        ],
        "nextSteps": [s.model_dump(mode="json", by_alias=True) for s in quality.next_steps],
        "trend": bundle.trend.model_dump(mode="json", by_alias=True),
        "appendices": {
            "diagnostics": [str(d) for d in snapshot.errors],
            "artifactCount": snapshot.artifact_count,
            "historyRuns": len(bundle.history),
        },
    }


def render_executive_json(bundle: ReportBundle) -> str:
    return canonical_json_text(executive_payload(bundle))


def render_executive_html(bundle: ReportBundle) -> str:
    quality = bundle.quality
    score = "n/a" if quality.quality_score is None else f"{quality.quality_score:g}"
    overview = h.cards(
        [
            ("Quality score", score),
            ("Overall health", h.badge(quality.overall_health.value, quality.overall_health.value)),
            ("Total tests", bundle.snapshot.totals.total),
            ("Pass rate", f"{quality.pass_rate:.1f}%"),
            ("Trend", bundle.trend.direction.value.replace("_", " ")),
        ]
    )
    subdomains = h.table(
        ["Subdomain", "Score", "Band", "Weight"],
        [
            [s.name, f"{s.score:g}", h.badge(s.band.value, s.band.value), f"{s.weight:g}"]
            for s in quality.subdomains.values()
        ],
    )
    gates = h.table(
        ["Gate", "Actual", "Threshold", "Verdict"],
        [
            [g.name, f"{g.actual:g}", f"{'>=' if g.comparator == 'ge' else '<='} {g.threshold:g}",
             h.badge(g.verdict.value, g.verdict.value)]
            for g in quality.gates
        ],
    )
    findings = h.table(["Type", "Area", "Finding"],
                       [[f.kind, f.category, f.message] for f in quality.findings])
    risks = h.table(["Area", "Level", "Description"],
                    [[r.category, r.level, r.description] for r in quality.risks])
    recs = h.table(["Priority", "Area", "Recommendation"],
                   [[r.priority, r.category, r.message] for r in quality.recommendations])
    steps = h.table(["Phase", "Timeline", "Actions"],
                    [[s.phase, s.timeline, "; ".join(s.actions)] for s in quality.next_steps])
    sections = [
        h.section("Overview", overview),
        h.section("Quality by subdomain", subdomains),
        h.section("Quality gates", gates),
        h.section("Key findings", findings),
        h.section("Risk assessment", risks),
        h.section("Recommendations", recs),
        h.section("Next steps", steps),
    ]
    if bundle.snapshot.errors:
        sections.append(
            h.section("Diagnostics", h.tag("ul", h.join(h.tag("li", str(d)) for d in bundle.snapshot.errors)))
        )
    return h.page(
        "Executive Quality Summary",
        sections,
        subtitle=f"Generated {iso_utc(bundle.generated_at)} · last {REPORTING_PERIOD_DAYS} days",
    )

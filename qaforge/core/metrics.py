"""Metric derivation — pure functions from a snapshot to quality figures.

Nothing here touches the filesystem or the clock.  Scores are bounded to
[0, 100].  A gate whose input metric is unavailable (no counted tests, no
coverage artifact, no scored subdomain) is not evaluated at all, so an
empty run is healthy rather than failing every threshold.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from qaforge.models.config import DEFAULT_QUALITY_WEIGHTS, DEFAULT_SEVERITY_WEIGHTS, GateSpec, PipelineConfig
from qaforge.models.quality import (
    Alert,
    AlertLevel,
    Finding,
    Gate,
    GateVerdict,
    HealthStatus,
    NextStep,
    QualityReport,
    Recommendation,
    Risk,
    ScoreBand,
    SubdomainScore,
)
from qaforge.models.results import Category, Totals
from qaforge.models.snapshot import AggregateSnapshot, CategorySummary

# ---------------------------------------------------------------------------
# Elementary scores
# ---------------------------------------------------------------------------


def pass_rate(totals: Totals) -> float:
    """``passed / total * 100`` to one decimal; 0 for an empty run."""
    if totals.total == 0:
        return 0.0
    return round(totals.passed / totals.total * 100.0, 1)


def fail_rate(totals: Totals) -> float:
    if totals.total == 0:
        return 0.0
    return round(totals.failed / totals.total * 100.0, 1)


def score_band(score: float) -> ScoreBand:
    if score >= 95:
        return ScoreBand.EXCELLENT
    if score >= 80:
        return ScoreBand.GOOD
    if score >= 60:
        return ScoreBand.WARNING
    return ScoreBand.CRITICAL


def severity_score(
    counts: Mapping[str, int], weights: Mapping[str, float] = DEFAULT_SEVERITY_WEIGHTS
) -> float:
    """``max(0, 100 - sum(weight(sev) * count(sev)))``.  Unweighted severities cost nothing."""
    penalty = sum(weights.get(severity, 0.0) * count for severity, count in counts.items())
    return round(max(0.0, 100.0 - penalty), 1)


def accessibility_score(
    counts: Mapping[str, int], weights: Mapping[str, float] = DEFAULT_SEVERITY_WEIGHTS
) -> float:
    return severity_score(counts, weights)


def security_score(
    counts: Mapping[str, int], weights: Mapping[str, float] = DEFAULT_SEVERITY_WEIGHTS
) -> float:
    return severity_score(counts, weights)


def performance_score(error_rate_percent: float) -> float:
    """``max(0, 100 - errorRate * 10)`` with the error rate in percent."""
    return round(min(100.0, max(0.0, 100.0 - error_rate_percent * 10.0)), 1)


def error_rate(summary: CategorySummary) -> float | None:
    """Failed-request percentage of a performance category, if known."""
    if summary.totals.total > 0:
        return round(summary.totals.failed / summary.totals.total * 100.0, 3)
    return summary.metrics.get("errorRatePercent")


def coverage_percent(snapshot: AggregateSnapshot) -> float | None:
    """Statement coverage across coverage artifacts, if any were found."""
    summary = snapshot.category(Category.COVERAGE)
    if summary is None:
        return None
    metrics = summary.metrics
    for kind in ("statements", "lines"):
        total = metrics.get(f"{kind}Total", 0.0)
        if total > 0:
            return round(metrics.get(f"{kind}Covered", 0.0) / total * 100.0, 1)
        if f"{kind}Pct" in metrics:
            return round(metrics[f"{kind}Pct"], 1)
    return None


def average_duration_ms(totals: Totals) -> float:
    if totals.total == 0:
        return 0.0
    return round(totals.duration_ms / totals.total, 1)


# ---------------------------------------------------------------------------
# Subdomains and the weighted quality score
# ---------------------------------------------------------------------------


def subdomain_scores(
    snapshot: AggregateSnapshot,
    severity_weights: Mapping[str, float] = DEFAULT_SEVERITY_WEIGHTS,
    quality_weights: Mapping[str, float] = DEFAULT_QUALITY_WEIGHTS,
) -> dict[str, SubdomainScore]:
    """Score every subdomain that actually has results."""
    raw: dict[str, float] = {}
    for category in (Category.UI, Category.API):
        summary = snapshot.category(category)
        if summary is not None and summary.totals.total > 0:
            raw[category.value] = pass_rate(summary.totals)

    performance = snapshot.category(Category.PERFORMANCE)
    if performance is not None:
        rate = error_rate(performance)
        if rate is not None:
            raw[Category.PERFORMANCE.value] = performance_score(rate)

    accessibility = snapshot.category(Category.ACCESSIBILITY)
    if accessibility is not None:
        raw[Category.ACCESSIBILITY.value] = accessibility_score(
            accessibility.severity_counts, severity_weights
        )

    security = snapshot.category(Category.SECURITY)
    if security is not None:
        raw[Category.SECURITY.value] = security_score(security.severity_counts, severity_weights)

    return {
        name: SubdomainScore(
            name=name,
            score=score,
            band=score_band(score),
            weight=quality_weights.get(name, 0.0),
        )
        for name, score in raw.items()
    }


def quality_score(
    scores: Mapping[str, float], weights: Mapping[str, float] = DEFAULT_QUALITY_WEIGHTS
) -> float | None:
    """Weighted mean over the present subdomains, weights renormalized.

    Returns ``None`` when no weighted subdomain is present.
    """
    present = {name: weights[name] for name in scores if weights.get(name, 0.0) > 0}
    weight_sum = sum(present.values())
    if weight_sum <= 0:
        return None
    value = sum(scores[name] * weight for name, weight in present.items()) / weight_sum
    return round(min(100.0, max(0.0, value)), 1)


# ---------------------------------------------------------------------------
# Gates, alerts and overall health
# ---------------------------------------------------------------------------


def evaluate_gate(spec: GateSpec, actual: float) -> Gate:
    if spec.comparator == "ge":
        passed = actual >= spec.threshold
    else:
        passed = actual <= spec.threshold
    return Gate(
        name=spec.name,
        metric=spec.metric,
        comparator=spec.comparator,
        threshold=spec.threshold,
        actual=actual,
        verdict=GateVerdict.PASS if passed else GateVerdict.FAIL,
    )


def evaluate_gates(
    values: Mapping[str, float | None], specs: Sequence[GateSpec]
) -> list[Gate]:
    """Evaluate each gate whose metric has a value; skip the rest."""
    return [
        evaluate_gate(spec, values[spec.metric])
        for spec in specs
        if values.get(spec.metric) is not None
    ]


def gate_alerts(gates: Sequence[Gate], specs: Sequence[GateSpec]) -> list[Alert]:
    """One alert per failed gate; critical past the gate's critical bound."""
    by_name = {spec.name: spec for spec in specs}
    alerts = []
    for gate in gates:
        if gate.verdict is GateVerdict.PASS:
            continue
        spec = by_name.get(gate.name)
        level = AlertLevel.WARNING
        if spec is not None and spec.critical_threshold is not None:
            beyond = (
                gate.actual < spec.critical_threshold
                if gate.comparator == "ge"
                else gate.actual > spec.critical_threshold
            )
            if beyond:
                level = AlertLevel.CRITICAL
        relation = "below" if gate.comparator == "ge" else "above"
        alerts.append(
            Alert(
                level=level,
                gate=gate.name,
                message=f"{gate.name} {gate.actual:g} is {relation} threshold {gate.threshold:g}",
            )
        )
    return alerts


def overall_health(alerts: Sequence[Alert]) -> HealthStatus:
    if any(alert.level is AlertLevel.CRITICAL for alert in alerts):
        return HealthStatus.CRITICAL
    if alerts:
        return HealthStatus.WARNING
    return HealthStatus.GOOD


# ---------------------------------------------------------------------------
# Executive findings
# ---------------------------------------------------------------------------


def key_findings(
    totals: Totals, quality: float | None, subdomains: Mapping[str, SubdomainScore]
) -> list[Finding]:
    findings: list[Finding] = []
    if quality is not None:
        if quality >= 90:
            findings.append(Finding(kind="positive", category="overall",
                                    message=f"Excellent overall quality score of {quality:g}"))
        elif quality < 70:
            findings.append(Finding(kind="negative", category="overall",
                                    message=f"Overall quality score of {quality:g} needs improvement"))
    if totals.total > 100:
        findings.append(Finding(kind="positive", category="coverage",
                                message=f"Comprehensive test execution with {totals.total} tests"))
    if totals.total > 0:
        rate = pass_rate(totals)
        if rate >= 95:
            findings.append(Finding(kind="positive", category="reliability",
                                    message=f"High pass rate of {rate:g}%"))
        elif rate < 80:
            findings.append(Finding(kind="negative", category="reliability",
                                    message=f"Pass rate of {rate:g}% is below expectations"))
    for name in sorted(subdomains):
        sub = subdomains[name]
        if sub.band is ScoreBand.CRITICAL:
            findings.append(Finding(kind="negative", category=name,
                                    message=f"{name} quality requires immediate attention ({sub.score:g})"))
        elif sub.band is ScoreBand.EXCELLENT:
            findings.append(Finding(kind="positive", category=name,
                                    message=f"{name} quality is excellent ({sub.score:g})"))
    return findings


def assess_risks(
    totals: Totals, quality: float | None, subdomains: Mapping[str, SubdomainScore]
) -> list[Risk]:
    risks: list[Risk] = []
    if quality is not None:
        if quality < 70:
            level = "high"
        elif quality < 85:
            level = "medium"
        else:
            level = "low"
        risks.append(Risk(category="quality", level=level,
                          description=f"Overall quality score is {quality:g}"))
    if totals.total < 50:
        risks.append(Risk(category="coverage", level="high",
                          description=f"Limited test execution: only {totals.total} tests ran"))
    security = subdomains.get(Category.SECURITY.value)
    if security is not None and security.score < 80:
        risks.append(Risk(category="security", level="high",
                          description=f"Security score of {security.score:g} indicates open vulnerabilities"))
    performance = subdomains.get(Category.PERFORMANCE.value)
    if performance is not None and performance.score < 70:
        risks.append(Risk(category="performance", level="medium",
                          description=f"Performance score of {performance.score:g} under load"))
    return risks


def recommendations(
    quality: float | None,
    subdomains: Mapping[str, SubdomainScore],
    performance_error_rate: float | None,
) -> list[Recommendation]:
    recs: list[Recommendation] = []
    for name in (Category.UI.value, Category.API.value):
        sub = subdomains.get(name)
        if sub is not None and sub.score < 80:
            recs.append(Recommendation(category=name, priority="high",
                                       message=f"Improve {name} test pass rate (currently {sub.score:g}%)"))
    if performance_error_rate is not None and performance_error_rate > 5:
        recs.append(Recommendation(category="performance", priority="critical",
                                   message=f"Reduce error rate under load ({performance_error_rate:g}%)"))
    accessibility = subdomains.get(Category.ACCESSIBILITY.value)
    if accessibility is not None and accessibility.score < 80:
        recs.append(Recommendation(category="accessibility", priority="medium",
                                   message="Fix accessibility violations, starting with critical impact"))
    security = subdomains.get(Category.SECURITY.value)
    if security is not None and security.score < 80:
        recs.append(Recommendation(category="security", priority="critical",
                                   message="Remediate high-risk security findings before release"))
    if quality is not None and quality < 70:
        recs.append(Recommendation(category="overall", priority="high",
                                   message="Run a focused quality improvement cycle"))
    return recs


def next_steps(quality: float | None, recs: Sequence[Recommendation]) -> list[NextStep]:
    steps: list[NextStep] = []
    if quality is not None and quality < 70:
        steps.append(NextStep(phase="Immediate", timeline="1-3 days",
                              actions=["Triage failing suites", "Fix critical defects and vulnerabilities"]))
    if recs:
        steps.append(NextStep(phase="Short Term", timeline="1-2 weeks",
                              actions=[rec.message for rec in recs[:3]]))
    steps.append(NextStep(phase="Medium Term", timeline="1 month",
                          actions=["Expand automated coverage", "Tighten quality gate thresholds"]))
    steps.append(NextStep(phase="Long Term", timeline="3 months",
                          actions=["Track quality trends per release", "Automate regression triage"]))
    return steps


# ---------------------------------------------------------------------------
# Bundle
# ---------------------------------------------------------------------------


def derive_metrics(snapshot: AggregateSnapshot, config: PipelineConfig | None = None) -> QualityReport:
    """Compute every derived figure for *snapshot*."""
    config = config or PipelineConfig()
    totals = snapshot.totals
    subdomains = subdomain_scores(snapshot, config.severity_weights, config.quality_weights)
    quality = quality_score(
        {name: sub.score for name, sub in subdomains.items()}, config.quality_weights
    )
    coverage = coverage_percent(snapshot)
    performance = snapshot.category(Category.PERFORMANCE)
    perf_error_rate = error_rate(performance) if performance is not None else None

    counted = totals.total > 0
    values: dict[str, float | None] = {
        "pass_rate": pass_rate(totals) if counted else None,
        "fail_rate": fail_rate(totals) if counted else None,
        "average_duration_ms": average_duration_ms(totals) if counted else None,
        "coverage_percent": coverage,
        "quality_score": quality,
    }
    gates = evaluate_gates(values, config.gates)
    alerts = gate_alerts(gates, config.gates)
    recs = recommendations(quality, subdomains, perf_error_rate)

    return QualityReport(
        pass_rate=pass_rate(totals),
        fail_rate=fail_rate(totals),
        average_duration_ms=average_duration_ms(totals),
        coverage_percent=coverage,
        error_rate_percent=perf_error_rate,
        subdomains=dict(sorted(subdomains.items())),
        quality_score=quality,
        gates=gates,
        alerts=alerts,
        overall_health=overall_health(alerts),
        findings=key_findings(totals, quality, subdomains),
        risks=assess_risks(totals, quality, subdomains),
        recommendations=recs,
        next_steps=next_steps(quality, recs),
    )

"""JUnit XML report — one ``<testsuite>`` per suite, synthesized cases.

Only counts survive aggregation, so each suite gets N passing, M failing
and K skipped placeholder cases, at most ``MAX_CASES_PER_STATUS`` of each.
The suite attributes always carry the exact counts.  Attribute and text
escaping is left to ElementTree; characters XML 1.0 cannot represent are
stripped first.  Recorded diagnostics travel in a separate, case-less
``qaforge.diagnostics`` suite as properties and ``<system-err>`` text.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET

from qaforge.emitters.views import ReportBundle
from qaforge.models.snapshot import AggregateSnapshot

_XML_INVALID = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")

MAX_CASES_PER_STATUS = 10_000
DIAGNOSTICS_SUITE = "qaforge.diagnostics"


def _clean(text: str) -> str:
    return _XML_INVALID.sub("", text)


def _seconds(duration_ms: int) -> str:
    return f"{duration_ms / 1000.0:.3f}"


def _diagnostics_suite(root: ET.Element, snapshot: AggregateSnapshot) -> None:
    suite = ET.SubElement(
        root,
        "testsuite",
        name=DIAGNOSTICS_SUITE,
        tests="0",
        failures="0",
        skipped="0",
        errors="0",
        time="0.000",
    )
    properties = ET.SubElement(suite, "properties")
    for diagnostic in snapshot.errors:
        ET.SubElement(properties, "property", name=diagnostic.kind.value, value=_clean(diagnostic.message))
    err = ET.SubElement(suite, "system-err")
    err.text = "\n".join(_clean(str(d)) for d in snapshot.errors)


def render_junit_snapshot(snapshot: AggregateSnapshot) -> str:
    totals = snapshot.totals
    root = ET.Element(
        "testsuites",
        name="qaforge",
        tests=str(totals.total),
        failures=str(totals.failed),
        skipped=str(totals.skipped),
        errors="0",
        time=_seconds(totals.duration_ms),
    )
    for name, entry in snapshot.by_suite.items():
        suite_name = _clean(name)
        t = entry.totals
        suite = ET.SubElement(
            root,
            "testsuite",
            name=suite_name,
            tests=str(t.total),
            failures=str(t.failed),
            skipped=str(t.skipped),
            errors="0",
            time=_seconds(t.duration_ms),
        )
        for i in range(min(t.passed, MAX_CASES_PER_STATUS)):
            ET.SubElement(suite, "testcase", name=f"test-{i + 1}", classname=suite_name, time="0")
        for i in range(min(t.failed, MAX_CASES_PER_STATUS)):
            case = ET.SubElement(
                suite, "testcase", name=f"failed-test-{i + 1}", classname=suite_name, time="0"
            )
            failure = ET.SubElement(case, "failure", message="Test failed")
            failure.text = "Test execution failed"
        for i in range(min(t.skipped, MAX_CASES_PER_STATUS)):
            case = ET.SubElement(
                suite, "testcase", name=f"skipped-test-{i + 1}", classname=suite_name, time="0"
            )
            ET.SubElement(case, "skipped")
    if snapshot.errors:
        _diagnostics_suite(root, snapshot)
    ET.indent(root)
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(root, encoding="unicode") + "\n"


def render_junit(bundle: ReportBundle) -> str:
    return render_junit_snapshot(bundle.snapshot)

"""Tests for ArtifactLocator — discovery, origin hints, media and robustness."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from qaforge.core.locator import ArtifactLocator, is_result_json, media_kind, media_test_name, origin_hint
from qaforge.models.artifacts import Artifact, ArtifactOrigin, MediaFile, MediaKind
from qaforge.models.diagnostics import DiagnosticKind, DiagnosticLog


def _touch(root: Path, relative: str, text: str = "{}") -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Test: name rules
# ---------------------------------------------------------------------------


class TestNameRules:
    @pytest.mark.parametrize(
        "name",
        ["results.json", "report.json", "ui-results.json", "load_results.json",
         "run-summary.json", "zap-report.json", "RESULTS.JSON"],
    )
    def test_result_names(self, name: str):
        assert is_result_json(name)

    @pytest.mark.parametrize("name", ["package.json", "results.txt", "summary.json", "data.json"])
    def test_non_result_names(self, name: str):
        assert not is_result_json(name)

    @pytest.mark.parametrize(
        ("relative", "origin"),
        [
            ("api/results.json", ArtifactOrigin.HTTP_COLLECTION),
            ("staging/newman/results.json", ArtifactOrigin.HTTP_COLLECTION),
            ("performance/results.json", ArtifactOrigin.LOAD_GENERATOR),
            ("k6-summary.json", ArtifactOrigin.LOAD_GENERATOR),
            ("a11y/results.json", ArtifactOrigin.ACCESSIBILITY),
            ("security/zap-report.json", ArtifactOrigin.SECURITY),
            ("staging/chromium/results.json", ArtifactOrigin.BROWSER_AUTOMATION),
        ],
    )
    def test_origin_hint(self, relative: str, origin: ArtifactOrigin):
        assert origin_hint(Path(relative)) is origin

    def test_hint_closest_to_leaf_wins(self):
        assert origin_hint(Path("api/performance/results.json")) is ArtifactOrigin.LOAD_GENERATOR

    @pytest.mark.parametrize(
        ("name", "kind"),
        [
            ("shot.png", MediaKind.SCREENSHOT),
            ("shot.JPG", MediaKind.SCREENSHOT),
            ("video.webm", MediaKind.VIDEO),
            ("clip.mp4", MediaKind.VIDEO),
            ("trace.zip", MediaKind.TRACE),
            ("bundle.zip", MediaKind.ATTACHMENT),
            ("attachment-1.txt", MediaKind.ATTACHMENT),
            ("notes.txt", None),
        ],
    )
    def test_media_kind(self, name: str, kind):
        assert media_kind(name) == kind

    def test_media_test_name(self):
        assert media_test_name(Path("test-checkout-failed.png")) == "checkout"
        assert media_test_name(Path("login-screenshot.png")) == "login"
        assert media_test_name(Path("cart-flow-2026-01-15T10-00-00.png")) == "cart-flow"
        assert media_test_name(Path("checkout/test-failed.png")) == "checkout"


# ---------------------------------------------------------------------------
# Test: scanning
# ---------------------------------------------------------------------------


class TestArtifactLocator:
    def test_missing_root_records_diagnostic(self, tmp_dir: Path):
        log = DiagnosticLog()
        items = list(ArtifactLocator(tmp_dir / "absent", log).scan())
        assert items == []
        assert len(log) == 1
        only = log.items()[0]
        assert only.kind is DiagnosticKind.DISCOVERY_ERROR
        assert str(only) == "discovery_error: root missing"

    def test_empty_root(self, results_root: Path):
        results_root.mkdir()
        log = DiagnosticLog()
        assert list(ArtifactLocator(results_root, log).scan()) == []
        assert len(log) == 0

    def test_discovers_and_tags(self, results_root: Path):
        _touch(results_root, "staging/firefox/results.json")
        _touch(results_root, "api/production-results.json")
        _touch(results_root, "coverage/coverage-summary.json")
        _touch(results_root, "lint/eslint.json")
        _touch(results_root, "notes/readme.md", "hi")

        found = {a.relative_path: a for a in ArtifactLocator(results_root).artifacts()}
        assert set(found) == {
            "api/production-results.json",
            "coverage/coverage-summary.json",
            "lint/eslint.json",
            "staging/firefox/results.json",
        }
        ui = found["staging/firefox/results.json"]
        assert ui.origin is ArtifactOrigin.BROWSER_AUTOMATION
        assert (ui.environment, ui.browser) == ("staging", "firefox")
        api = found["api/production-results.json"]
        assert api.origin is ArtifactOrigin.HTTP_COLLECTION
        assert api.environment == "production"
        assert found["coverage/coverage-summary.json"].origin is ArtifactOrigin.COVERAGE
        assert found["lint/eslint.json"].origin is ArtifactOrigin.LINT

    def test_order_is_lexicographic(self, results_root: Path):
        for name in ("b/results.json", "a/results.json", "c/results.json", "a/z/results.json"):
            _touch(results_root, name)
        paths = [a.relative_path for a in ArtifactLocator(results_root).artifacts()]
        assert paths == ["a/results.json", "a/z/results.json", "b/results.json", "c/results.json"]

    def test_html_only_without_json_report(self, results_root: Path):
        _touch(results_root, "html-a/index.html", "<p>3 passed</p>")
        _touch(results_root, "html-b/index.html", "<p>3 passed</p>")
        _touch(results_root, "html-b/results.json")
        paths = [a.relative_path for a in ArtifactLocator(results_root).artifacts()]
        assert paths == ["html-a/index.html", "html-b/results.json"]

    def test_media_files(self, results_root: Path):
        _touch(results_root, "staging/chromium/test-checkout-failed.png", "png")
        _touch(results_root, "staging/chromium/trace.zip", "zip")
        media = [m for m in ArtifactLocator(results_root).scan() if isinstance(m, MediaFile)]
        assert [m.kind for m in media] == [MediaKind.SCREENSHOT, MediaKind.TRACE]
        shot = media[0]
        assert shot.test_name == "checkout"
        assert (shot.environment, shot.browser) == ("staging", "chromium")
        assert shot.size == 3

    def test_scan_never_modifies_inputs(self, results_root: Path):
        path = _touch(results_root, "results.json", '{"stats": {}}')
        before = (path.read_bytes(), path.stat().st_mtime_ns)
        list(ArtifactLocator(results_root).scan())
        assert (path.read_bytes(), path.stat().st_mtime_ns) == before

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_symlink_cycle_terminates(self, results_root: Path):
        _touch(results_root, "a/results.json")
        os.symlink(results_root, results_root / "a" / "loop", target_is_directory=True)
        artifacts = ArtifactLocator(results_root).artifacts()
        assert [a.relative_path for a in artifacts] == ["a/results.json"]

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_dangling_symlink_recorded(self, results_root: Path):
        results_root.mkdir()
        os.symlink(results_root / "gone.json", results_root / "results.json")
        log = DiagnosticLog()
        assert ArtifactLocator(results_root, log).artifacts() == []
        assert [d.message for d in log] == ["dangling symlink"]

    def test_yields_artifact_records(self, results_root: Path):
        _touch(results_root, "results.json")
        (item,) = list(ArtifactLocator(results_root).scan())
        assert isinstance(item, Artifact)
        assert item.size == 2
        assert item.mtime is not None

"""Tests for path classification into environment and browser tags."""

from __future__ import annotations

from pathlib import PurePosixPath

import pytest

from qaforge.core.classifier import browser_from_project, classify_path


class TestClassifyPath:
    @pytest.mark.parametrize(
        ("path", "environment", "browser"),
        [
            ("staging/firefox/results.json", "staging", "firefox"),
            ("production/chromium-run/report.json", "production", "chromium"),
            ("development/webkit_desktop/results.json", "development", "webkit"),
            ("results.json", "unknown", "unknown"),
            ("nightly/results.json", "unknown", "unknown"),
            ("smoke/staging-chrome-results.json", "staging", "chrome"),
        ],
    )
    def test_tags(self, path: str, environment: str, browser: str):
        tags = classify_path(path)
        assert tags.environment == environment
        assert tags.browser == browser

    def test_environment_closest_to_leaf_wins(self):
        assert classify_path("staging/production/results.json").environment == "production"

    def test_browser_closest_to_root_wins(self):
        assert classify_path("firefox/chromium/results.json").browser == "firefox"

    @pytest.mark.parametrize(
        ("path", "environment", "browser"),
        [
            ("staging/firefox/test-results.json", "staging", "firefox"),
            ("production/test-results.json", "production", "unknown"),
            ("staging/chromium/test-checkout-failed.png", "staging", "chromium"),
            ("development/edge/safari-test-report.json", "development", "edge"),
        ],
    )
    def test_directories_outrank_file_name(self, path: str, environment: str, browser: str):
        tags = classify_path(path)
        assert (tags.environment, tags.browser) == (environment, browser)

    def test_file_name_used_when_directories_silent(self):
        tags = classify_path("nightly/test-webkit-results.json")
        assert (tags.environment, tags.browser) == ("test", "webkit")

    def test_substring_does_not_match(self):
        # "prestaging" and "firefoxes" are not whole tokens
        tags = classify_path("prestaging/firefoxes/results.json")
        assert tags.environment == "unknown"
        assert tags.browser == "unknown"

    def test_case_insensitive(self):
        tags = classify_path("Staging/FireFox/results.json")
        assert (tags.environment, tags.browser) == ("staging", "firefox")

    def test_root_segments_ignored(self):
        tags = classify_path(
            PurePosixPath("/srv/production/chrome/out/results.json"),
            root=PurePosixPath("/srv/production/chrome"),
        )
        assert (tags.environment, tags.browser) == ("unknown", "unknown")

    def test_path_outside_root_uses_whole_path(self):
        tags = classify_path("/elsewhere/staging/results.json", root="/srv/results")
        assert tags.environment == "staging"


class TestBrowserFromProject:
    @pytest.mark.parametrize(
        ("project", "expected"),
        [
            ("chromium", "chromium"),
            ("Desktop Firefox", "firefox"),
            ("Mobile Safari", "safari"),
            ("Microsoft Edge", "edge"),
            ("api", None),
            ("", None),
            (None, None),
        ],
    )
    def test_project_names(self, project, expected):
        assert browser_from_project(project) == expected

"""Tests for request gate path classification."""

import pytest

from lifeleveling.middleware.request_gate import RouteClass, classify_path


class TestClassifyPath:
    @pytest.mark.parametrize(
        "path",
        [
            "/api/auth/login",
            "/api/health",
            "/api/init-db",
            "/api/seed-db",
            "/api/test-db",
            "/api/cohort-stats",
            "/docs",
            "/openapi.json",
            "/favicon.ico",
            "/static/app.js",
            "/about",
        ],
    )
    def test_unrestricted(self, path):
        assert classify_path(path) is RouteClass.UNRESTRICTED

    @pytest.mark.parametrize(
        "path",
        ["/dashboard", "/onboarding", "/goals/123", "/retrospectives", "/paths", "/comparisons", "/profile", "/family"],
    )
    def test_protected_pages(self, path):
        assert classify_path(path) is RouteClass.PROTECTED_PAGE

    @pytest.mark.parametrize("path", ["/login", "/register"])
    def test_public_pages(self, path):
        assert classify_path(path) is RouteClass.PUBLIC_PAGE

    @pytest.mark.parametrize(
        "path",
        [
            "/api/user/profile",
            "/api/goals",
            "/api/interests/abc/commitment",
            "/api/retrospectives",
            "/api/family/link",
            "/api/onboarding/complete",
            "/api/comparisons/Music",
            "/api/paths",
        ],
    )
    def test_protected_api(self, path):
        assert classify_path(path) is RouteClass.PROTECTED_API

    def test_root(self):
        assert classify_path("/") is RouteClass.ROOT

    def test_prefixes_match_whole_segments(self):
        assert classify_path("/pathsfinder") is RouteClass.UNRESTRICTED
        assert classify_path("/api/username") is RouteClass.UNRESTRICTED

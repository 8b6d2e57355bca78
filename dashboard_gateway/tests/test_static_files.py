"""
Unit tests for the SPA static file handler.
"""

import pytest
from starlette.responses import FileResponse

from dashboard_gateway.app.static_files import StaticSite, content_type_for, sanitize_path


class TestSanitizePath:
    """Test cases for sanitize_path."""

    @pytest.mark.parametrize(
        "request_path,expected",
        [
            ("/", "index.html"),
            ("", "index.html"),
            ("/index.html", "index.html"),
            ("/css/app.css?v=3", "css/app.css"),
            ("/js/../app.js", "app.js"),
            ("/../../etc/passwd", "etc/passwd"),
            ("/assets//logo.svg", "assets/logo.svg"),
        ],
    )
    def test_sanitize(self, request_path, expected):
        assert sanitize_path(request_path) == expected

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("index.html", "text/html"),
            ("style.css", "text/css"),
            ("app.js", "application/javascript"),
            ("utils.mjs", "application/javascript"),
            ("data.json", "application/json"),
            ("logo.png", "image/png"),
            ("photo.jpg", "image/jpeg"),
            ("icon.svg", "image/svg+xml"),
            ("favicon.ico", "image/x-icon"),
            ("font.woff2", "application/octet-stream"),
        ],
    )
    def test_content_type(self, name, expected):
        assert content_type_for(name) == expected


class TestStaticSite:
    """Test cases for StaticSite."""

    @pytest.fixture
    def site_root(self, tmp_path):
        (tmp_path / "index.html").write_text("<html>root</html>")
        (tmp_path / "js").mkdir()
        (tmp_path / "js" / "app.js").write_text("export {};")
        (tmp_path / "docs").mkdir()
        (tmp_path / "docs" / "index.html").write_text("<html>docs</html>")
        (tmp_path / "empty").mkdir()
        return tmp_path

    @pytest.fixture
    def site(self, site_root):
        return StaticSite(site_root)

    def test_root_serves_index(self, site, site_root):
        response = site.response_for("GET", "/")

        assert isinstance(response, FileResponse)
        assert response.path == site_root.resolve() / "index.html"
        assert response.media_type == "text/html"

    def test_existing_file(self, site, site_root):
        response = site.response_for("GET", "/js/app.js")

        assert response.path == site_root.resolve() / "js" / "app.js"
        assert response.media_type == "application/javascript"

    def test_directory_serves_its_index(self, site, site_root):
        response = site.response_for("GET", "/docs")

        assert response.path == site_root.resolve() / "docs" / "index.html"

    def test_directory_without_index(self, site):
        response = site.response_for("GET", "/empty")

        assert response.status_code == 404

    def test_unknown_path_falls_back_to_index(self, site, site_root):
        response = site.response_for("GET", "/stocks/AAPL")

        assert response.path == site_root.resolve() / "index.html"

    def test_traversal_stays_inside_root(self, site, site_root):
        response = site.response_for("GET", "/../../etc/passwd")

        assert response.path == site_root.resolve() / "index.html"

    def test_head_is_served(self, site):
        assert isinstance(site.response_for("HEAD", "/"), FileResponse)

    def test_other_methods(self, site):
        response = site.response_for("DELETE", "/")

        assert response.status_code == 404
        assert response.body == b"404 Not Found"

    def test_missing_root_document(self, tmp_path):
        site = StaticSite(tmp_path)

        for path in ("/", "/index.html", "/anything"):
            response = site.response_for("GET", path)
            assert response.status_code == 404
            assert response.media_type == "text/plain"

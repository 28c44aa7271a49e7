"""Tests for downloading and storing a single image."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from sheet_images.config import BatchConfig
from sheet_images.filenames import synthesize_filename
from sheet_images.images import REQUEST_HEADERS, build_session, download_asset
from sheet_images.models import AssetError


@pytest.fixture
def config(tmp_path):
    return BatchConfig(hostname="https://site.ua", imagedir="/u/", storage_root=tmp_path / "files")


def _leftovers(config):
    if not config.image_dir.exists():
        return []
    return sorted(path.name for path in config.image_dir.iterdir())


class TestDownloadAsset:
    def test_downloads_and_reports_relative_path(self, config, make_response):
        session = MagicMock()
        session.get.return_value = make_response(200, b"\x89PNG-data")

        asset = download_asset("/a.jpg", config, session)

        filename = synthesize_filename("https://site.ua/a.jpg")
        assert asset.absolute_url == "https://site.ua/a.jpg"
        assert asset.filename == filename
        assert asset.relative_path == "/u/" + filename
        assert asset.local_path == config.image_dir / filename
        assert asset.downloaded is True
        assert asset.local_path.read_bytes() == b"\x89PNG-data"
        session.get.assert_called_once_with("https://site.ua/a.jpg", stream=True, timeout=None)

    def test_existing_file_skips_network(self, config):
        filename = synthesize_filename("http://x.com/b.png")
        config.image_dir.mkdir(parents=True)
        (config.image_dir / filename).write_bytes(b"cached")
        session = MagicMock()

        asset = download_asset("http://x.com/b.png", config, session)

        session.get.assert_not_called()
        assert asset.downloaded is False
        assert asset.relative_path == "/u/" + filename
        assert (config.image_dir / filename).read_bytes() == b"cached"

    def test_http_error_status(self, config, make_response):
        session = MagicMock()
        session.get.return_value = make_response(404, reason="Not Found")

        with pytest.raises(AssetError, match="404") as excinfo:
            download_asset("/missing.jpg", config, session)

        assert excinfo.value.reference == "/missing.jpg"
        assert _leftovers(config) == []

    def test_size_mismatch_removes_partial_file(self, config, make_response):
        session = MagicMock()
        session.get.return_value = make_response(200, b"abc", headers={"Content-Length": "10"})

        with pytest.raises(AssetError, match="File size mismatch: expected 10 bytes, got 3 bytes"):
            download_asset("/a.jpg", config, session)

        assert _leftovers(config) == []

    def test_compressed_body_skips_length_check(self, config, make_response):
        session = MagicMock()
        session.get.return_value = make_response(
            200, b"decoded-bytes", headers={"Content-Length": "5", "Content-Encoding": "gzip"}
        )

        asset = download_asset("/a.jpg", config, session)

        assert asset.local_path.read_bytes() == b"decoded-bytes"

    def test_missing_content_length_is_accepted(self, config, make_response):
        session = MagicMock()
        session.get.return_value = make_response(200, b"abcdef", headers={})

        asset = download_asset("/a.jpg", config, session)

        assert asset.local_path.read_bytes() == b"abcdef"

    def test_transport_error(self, config):
        session = MagicMock()
        session.get.side_effect = requests.ConnectionError("connection refused")

        with pytest.raises(AssetError, match="connection refused"):
            download_asset("/a.jpg", config, session)

    def test_unresolvable_reference(self, config):
        session = MagicMock()

        with pytest.raises(AssetError, match="Invalid image URL|IPv6"):
            download_asset("https://[::1/a.png", config, session)

        session.get.assert_not_called()

    def test_timeout_is_passed_through(self, config, make_response):
        config.timeout = 7.5
        session = MagicMock()
        session.get.return_value = make_response(200, b"x")

        download_asset("/a.jpg", config, session)

        session.get.assert_called_once_with("https://site.ua/a.jpg", stream=True, timeout=7.5)


class TestRetries:
    def test_no_retry_by_default(self, config, make_response):
        session = MagicMock()
        session.get.return_value = make_response(503, reason="Service Unavailable")

        with pytest.raises(AssetError):
            download_asset("/a.jpg", config, session)

        assert session.get.call_count == 1

    def test_retry_when_enabled(self, config, make_response):
        config.retries = 2
        session = MagicMock()
        session.get.side_effect = [
            make_response(503, reason="Service Unavailable"),
            make_response(200, b"ok"),
        ]

        with patch("sheet_images.images.time.sleep") as sleep:
            asset = download_asset("/a.jpg", config, session)

        assert session.get.call_count == 2
        sleep.assert_called_once()
        assert asset.local_path.read_bytes() == b"ok"

    def test_gives_up_after_last_attempt(self, config, make_response):
        config.retries = 1
        session = MagicMock()
        session.get.return_value = make_response(500, reason="Internal Server Error")

        with patch("sheet_images.images.time.sleep"):
            with pytest.raises(AssetError, match="500"):
                download_asset("/a.jpg", config, session)

        assert session.get.call_count == 2


def test_build_session_sets_headers():
    session = build_session()
    try:
        for key, value in REQUEST_HEADERS.items():
            assert session.headers[key] == value
    finally:
        session.close()

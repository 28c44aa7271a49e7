"""Tests for turning image references into absolute URLs."""

import pytest

from sheet_images.urls import resolve_reference


class TestResolveReference:
    def test_protocol_relative_gets_https(self):
        assert (
            resolve_reference("//cdn.example.com/a.png", "https://site.ua")
            == "https://cdn.example.com/a.png"
        )

    @pytest.mark.parametrize("hostname", ["https://site.ua", "https://site.ua/"])
    @pytest.mark.parametrize("reference", ["/a.jpg", "a.jpg"])
    def test_host_relative_joined_with_single_slash(self, hostname, reference):
        assert resolve_reference(reference, hostname) == "https://site.ua/a.jpg"

    def test_absolute_is_unchanged(self):
        assert resolve_reference("http://x.com/b.png", "https://site.ua") == "http://x.com/b.png"

    def test_query_string_is_kept(self):
        assert (
            resolve_reference("/img/a.jpg?w=300", "https://site.ua")
            == "https://site.ua/img/a.jpg?w=300"
        )

    @pytest.mark.parametrize(
        "reference, hostname",
        [
            ("https://[::1/a.png", "https://site.ua"),
            ("http://x.com:port/a.png", "https://site.ua"),
            ("httpfoo/a.png", "https://site.ua"),
            ("/a.png", "ftp://files.site.ua"),
            ("/a.png", "site.ua"),
        ],
    )
    def test_unusable_urls_raise(self, reference, hostname):
        with pytest.raises(ValueError):
            resolve_reference(reference, hostname)

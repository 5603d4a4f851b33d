"""Unit tests for blocklist module."""

import pytest

from blocklist import BLOCKED_PATH_PREFIXES, DEFAULT_BLOCKLIST, Blocklist


class TestBlocklist:
    """Tests for Blocklist.is_blocked."""

    @pytest.mark.parametrize("url", [
        "https://polyfill.io/v3/polyfill.min.js",
        "http://cdn.polyfill.io/v2/polyfill.js",
        "//cdn.bootcdn.net/ajax/libs/jquery/3.6.0/jquery.min.js",
        "https://cdn.staticfile.org/jquery/3.6.0/jquery.min.js",
        "https://polyfillcache.com/v3/polyfill.js",
    ])
    def test_blocked(self, url):
        assert DEFAULT_BLOCKLIST.is_blocked(url)

    @pytest.mark.parametrize("url", [
        "https://code.jquery.com/jquery-3.2.1.min.js",
        "https://example.org/polyfill.io/shim.js",
        "https://notpolyfill.io/v3/polyfill.js",
    ])
    def test_not_blocked(self, url):
        assert not DEFAULT_BLOCKLIST.is_blocked(url)

    def test_custom_prefixes(self):
        blocklist = Blocklist(["https://evil.example/lib/"])
        assert blocklist.is_blocked("http://evil.example/lib/x.js")
        assert not blocklist.is_blocked("http://evil.example/other.js")

    @pytest.mark.parametrize("url", [
        "https://POLYFILL.IO/v3/polyfill.min.js",
        "https://polyfill.io:443/v3/polyfill.min.js",
        "https://user:pw@cdn.polyfill.io/v2/polyfill.js",
        "polyfill.io/v3/polyfill.min.js",
    ])
    def test_blocked_after_normalization(self, url):
        assert DEFAULT_BLOCKLIST.is_blocked(url)

    def test_unparsable_url_not_blocked(self):
        assert not DEFAULT_BLOCKLIST.is_blocked("http://[::1")

    def test_len(self):
        assert len(DEFAULT_BLOCKLIST) == len(BLOCKED_PATH_PREFIXES)

    def test_empty(self):
        assert not Blocklist([]).is_blocked("https://polyfill.io/v3/")

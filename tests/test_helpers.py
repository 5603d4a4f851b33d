"""Unit tests for helpers module."""

from helpers import (
    domain_is_listed,
    extract_domain_from_url,
    format_version,
    generate_random_hex_string,
    is_valid_host,
    normalize_domain,
    normalize_url,
    strip_scheme,
)


class TestNormalizeDomain:
    """Tests for normalize_domain."""

    def test_lowercases(self):
        assert normalize_domain("Code.JQuery.com") == "code.jquery.com"

    def test_strips_www(self):
        assert normalize_domain("www.example.org") == "example.org"

    def test_keeps_inner_www(self):
        assert normalize_domain("cdn.www.example.org") == "cdn.www.example.org"

    def test_strips_whitespace(self):
        assert normalize_domain("  example.org ") == "example.org"


class TestExtractDomain:
    """Tests for extract_domain_from_url."""

    def test_plain(self):
        assert extract_domain_from_url("https://www.Example.org/a") == "www.example.org"

    def test_normalized(self):
        assert extract_domain_from_url(
            "https://www.Example.org/a", normalize=True
        ) == "example.org"

    def test_with_port(self):
        assert extract_domain_from_url("http://localhost:8080/") == "localhost"

    def test_none_and_empty(self):
        assert extract_domain_from_url(None) is None
        assert extract_domain_from_url("") is None

    def test_internal_schemes(self):
        assert extract_domain_from_url("about:blank") is None
        assert extract_domain_from_url("chrome://settings/") is None
        assert extract_domain_from_url("moz-extension://abc/popup.html") is None

    def test_malformed(self):
        assert extract_domain_from_url("http://[::1") is None

    def test_no_host(self):
        assert extract_domain_from_url("/relative/path.js") is None


class TestStripScheme:
    """Tests for strip_scheme."""

    def test_https(self):
        assert strip_scheme("https://polyfill.io/v3/") == "polyfill.io/v3/"

    def test_protocol_relative(self):
        assert strip_scheme("//polyfill.io/v3/") == "polyfill.io/v3/"

    def test_no_scheme(self):
        assert strip_scheme("polyfill.io/v3/") == "polyfill.io/v3/"


class TestFormatting:
    """Tests for small formatting helpers."""

    def test_format_version(self):
        assert format_version("3.4.1") == "3.4.1"
        assert format_version("4.0.0-beta") == "BETA"

    def test_random_hex_string(self):
        value = generate_random_hex_string(32)
        assert len(value) == 32
        assert set(value) <= set("0123456789abcdef")

    def test_random_hex_strings_differ(self):
        assert generate_random_hex_string(32) != generate_random_hex_string(32)


class TestDomainIsListed:
    """Tests for domain_is_listed."""

    def test_exact(self):
        assert domain_is_listed("example.org", frozenset({"example.org"}))

    def test_exact_does_not_cover_subdomains(self):
        assert not domain_is_listed("a.example.org", frozenset({"example.org"}))

    def test_wildcard_covers_apex_and_subdomains(self):
        listed = frozenset({"*.example.org"})
        assert domain_is_listed("example.org", listed)
        assert domain_is_listed("a.example.org", listed)
        assert domain_is_listed("a.b.example.org", listed)

    def test_wildcard_does_not_cover_lookalikes(self):
        assert not domain_is_listed(
            "badexample.org", frozenset({"*.example.org"})
        )

    def test_empty_domain(self):
        assert not domain_is_listed(None, frozenset({"example.org"}))
        assert not domain_is_listed("", frozenset({"example.org"}))


class TestHostAndUrlNormalization:
    """Tests for is_valid_host and normalize_url."""

    def test_valid_hosts(self):
        assert is_valid_host("code.jquery.com")
        assert is_valid_host("my_host-1.example.org")
        assert is_valid_host("::1")

    def test_invalid_hosts(self):
        assert not is_valid_host("exa mple.com")
        assert not is_valid_host("exa<mple.com")
        assert not is_valid_host("example.com\n")
        assert not is_valid_host("")

    def test_extract_domain_rejects_invalid_host(self):
        assert extract_domain_from_url("http://exa mple.com/a.js") is None

    def test_normalize_url(self):
        assert normalize_url("https://POLYFILL.IO:443/v3/a.js?x=1") == (
            "polyfill.io/v3/a.js?x=1"
        )
        assert normalize_url("//user:pw@cdn.polyfill.io/v2/") == (
            "cdn.polyfill.io/v2/"
        )
        assert normalize_url("polyfill.io/") == "polyfill.io/"

    def test_normalize_url_keeps_path_case(self):
        assert normalize_url("https://Example.org/Lib/A.js") == "example.org/Lib/A.js"

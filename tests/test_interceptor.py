"""Unit tests for interceptor module."""

import logging

import pytest

from blocklist import Blocklist
from interceptor import (
    Action,
    Interceptor,
    MissingReason,
    Outcome,
    RequestContext,
    is_valid_candidate,
)
from redirect_builder import RedirectTargetBuilder
from settings import PolicySettings, SettingsState
from version_resolver import VersionFamily, VersionResolver

ROOT = "http://local.test"
PAGE = "https://example.org/index.html"
JQUERY_URL = "https://code.jquery.com/jquery-3.2.1.min.js"


def _interceptor(settings=None, **kwargs):
    return Interceptor(
        builder=RedirectTargetBuilder(ROOT, secret="s3cret"),
        settings=SettingsState(settings or PolicySettings()),
        **kwargs,
    )


def _ctx(**kwargs):
    kwargs.setdefault("tab_id", "tab-1")
    return RequestContext(**kwargs)


class TestRedirect:
    """Mapped, resolvable requests are redirected to the local bundle."""

    def test_jquery(self):
        outcome = _interceptor().classify(JQUERY_URL, PAGE, _ctx())
        assert outcome.action is Action.REDIRECT
        assert outcome.redirect_url == (
            f"{ROOT}/resources/jquery/3.4.1/jquery.min.js?token=s3cret"
        )
        assert outcome.resource.id == "jQuery"
        assert outcome.pin.version == "3.4.1"
        assert outcome.as_host_response() == {
            "redirect_url": outcome.redirect_url,
        }

    def test_banded_version(self):
        outcome = _interceptor().classify(
            "https://ajax.googleapis.com/ajax/libs/jquery/1.7.0/jquery.min.js",
            PAGE, _ctx(),
        )
        assert outcome.pin.version == "1.7.1"

    def test_deterministic(self):
        interceptor = _interceptor()
        first = interceptor.classify(JQUERY_URL, PAGE, _ctx(request_id="a"))
        second = interceptor.classify(JQUERY_URL, PAGE, _ctx(request_id="b"))
        assert first.redirect_url == second.redirect_url

    def test_registers_in_flight_record(self):
        interceptor = _interceptor()
        interceptor.classify(JQUERY_URL, PAGE, _ctx(request_id="req-1"))
        record = interceptor.state.requests["req-1"]
        assert record.tab_id == "tab-1"
        assert record.source_url == JQUERY_URL
        assert record.pin.requested == "3.2.1"

        interceptor.state.complete_request("req-1")
        assert interceptor.state.tab("tab-1").injection_count == 1

    def test_no_request_id_no_record(self):
        interceptor = _interceptor()
        interceptor.classify(JQUERY_URL, PAGE, _ctx())
        assert interceptor.state.requests == {}

    def test_no_initiator(self):
        outcome = _interceptor().classify(JQUERY_URL)
        assert outcome.action is Action.REDIRECT


class TestBlocklist:
    """Blocklisted URLs are cancelled before any other rule runs."""

    def test_polyfill(self):
        outcome = _interceptor().classify(
            "https://polyfill.io/v3/polyfill.min.js", PAGE, _ctx()
        )
        assert outcome.action is Action.CANCEL
        assert outcome.as_host_response() == {"cancel": True}

    @pytest.mark.parametrize("url", [
        "https://POLYFILL.IO/v3/polyfill.min.js",
        "https://polyfill.io:443/v3/polyfill.min.js",
        "http://user@cdn.polyfill.io/v2/polyfill.js",
        "https://polyfill.io./v3/polyfill.min.js",
    ])
    def test_normalized_url_is_checked(self, url):
        interceptor = _interceptor()
        outcome = interceptor.classify(url, PAGE, _ctx())
        assert outcome.action is Action.CANCEL
        assert outcome.as_host_response() == {"cancel": True}
        assert interceptor.state.tabs == {}

    def test_blocklist_beats_mapping(self):
        interceptor = _interceptor(blocklist=Blocklist(["code.jquery.com/"]))
        outcome = interceptor.classify(JQUERY_URL, PAGE, _ctx(request_id="r"))
        assert outcome.action is Action.CANCEL
        assert interceptor.state.requests == {}
        assert interceptor.state.tabs == {}

    def test_logged(self, caplog):
        with caplog.at_level(logging.INFO, logger="interceptor"):
            _interceptor().classify("https://cdn.polyfill.io/v2/polyfill.js")
        assert "Evil resource blocked" in caplog.text


class TestFontPolicy:
    """Font requests are never redirected."""

    FONT_CSS = "https://fonts.googleapis.com/css?family=Roboto"

    def test_denied_by_default(self):
        outcome = _interceptor().classify(
            self.FONT_CSS, PAGE, _ctx(resource_type="stylesheet")
        )
        assert outcome.action is Action.CANCEL

    def test_allowed_initiator(self):
        settings = PolicySettings(
            allowed_domains_google_fonts=frozenset({"example.org"})
        )
        outcome = _interceptor(settings).classify(
            self.FONT_CSS, PAGE, _ctx(resource_type="stylesheet")
        )
        assert outcome.action is Action.PASS_THROUGH

    def test_blocking_disabled(self):
        settings = PolicySettings(block_google_fonts=False)
        outcome = _interceptor(settings).classify(
            "https://fonts.gstatic.com/s/roboto/v20/a.woff2",
            PAGE, _ctx(resource_type="font"),
        )
        assert outcome.action is Action.PASS_THROUGH

    def test_not_counted_as_missing(self):
        interceptor = _interceptor()
        interceptor.classify(self.FONT_CSS, PAGE, _ctx(resource_type="stylesheet"))
        assert interceptor.state.tabs == {}


class TestMissing:
    """CDN-shaped requests that cannot be served locally."""

    def test_unmapped_http_is_upgraded(self):
        interceptor = _interceptor()
        outcome = interceptor.classify("http://example.com/foo.js", PAGE, _ctx())
        assert outcome.action is Action.MISSING
        assert outcome.reason is MissingReason.NO_DOMAIN_ENTRY
        assert outcome.redirect_url == "https://example.com/foo.js"
        assert interceptor.state.tab("tab-1").missing == 1

    def test_upgrade_keeps_query(self):
        outcome = _interceptor().classify(
            "http://example.com/foo.js?v=2", PAGE, _ctx()
        )
        assert outcome.redirect_url == "https://example.com/foo.js?v=2"

    def test_unmapped_https_loads_as_is(self):
        outcome = _interceptor().classify("https://example.com/foo.js", PAGE, _ctx())
        assert outcome.action is Action.MISSING
        assert outcome.redirect_url is None
        assert outcome.as_host_response() == {"cancel": False}

    def test_block_missing(self):
        settings = PolicySettings(block_missing=True)
        outcome = _interceptor(settings).classify(
            "http://example.com/foo.js", PAGE, _ctx()
        )
        assert outcome.action is Action.MISSING
        assert outcome.cancel is True
        assert outcome.as_host_response() == {"cancel": True}

    def test_settings_change_takes_effect(self):
        interceptor = _interceptor()
        interceptor.settings.apply_changes({"block_missing": True})
        outcome = interceptor.classify("https://example.com/foo.js", PAGE, _ctx())
        assert outcome.cancel is True

    def test_known_host_unknown_path(self):
        outcome = _interceptor().classify(
            "https://code.jquery.com/qunit/qunit-2.9.2.js", PAGE, _ctx()
        )
        assert outcome.reason is MissingReason.NO_PATH_MATCH

    @pytest.mark.parametrize("url", [
        "https://code.jquery.com/jquery-3.0.0-beta1.min.js",
        "https://code.jquery.com/jquery-4.0.0.min.js",
    ])
    def test_unresolvable_version(self, url):
        outcome = _interceptor().classify(url, PAGE, _ctx())
        assert outcome.reason is MissingReason.NO_VERSION

    def test_unknown_family(self):
        resolver = VersionResolver([VersionFamily("angularjs", "1.", "1.7.9")])
        outcome = _interceptor(resolver=resolver).classify(JQUERY_URL, PAGE, _ctx())
        assert outcome.action is Action.MISSING
        assert outcome.reason is MissingReason.NO_PATH_MATCH

    def test_ignored_host_not_counted(self):
        interceptor = _interceptor()
        outcome = interceptor.classify(
            "https://www.gstatic.com/charts/loader.js", PAGE, _ctx()
        )
        assert outcome.action is Action.MISSING
        assert interceptor.state.tab("tab-1").missing == 0

    @pytest.mark.parametrize("url", [
        "http://example.com/foo.js",
        "https://cdn.example.net/jquery-3.2.1.min.js",
        "https://static.example.org/ajax/libs/jquery/3.2.1/jquery.min.js",
    ])
    def test_unmapped_never_redirected_to_bundle(self, url):
        outcome = _interceptor().classify(url, PAGE, _ctx())
        assert outcome.action is not Action.REDIRECT
        assert outcome.resource is None


class TestEligibility:
    """Requests that are never offered to the tables."""

    def test_post(self):
        outcome = _interceptor().classify(JQUERY_URL, PAGE, _ctx(method="POST"))
        assert outcome.action is Action.PASS_THROUGH

    def test_image(self):
        outcome = _interceptor().classify(
            JQUERY_URL, PAGE, _ctx(resource_type="image")
        )
        assert outcome.action is Action.PASS_THROUGH

    def test_unknown_type_is_candidate(self):
        outcome = _interceptor().classify(JQUERY_URL, PAGE, _ctx(resource_type=None))
        assert outcome.action is Action.REDIRECT

    def test_same_host(self):
        outcome = _interceptor().classify(
            JQUERY_URL, "https://code.jquery.com/", _ctx()
        )
        assert outcome.action is Action.PASS_THROUGH

    def test_allowlisted_site(self):
        settings = PolicySettings(allowlisted_domains=frozenset({"example.org"}))
        outcome = _interceptor(settings).classify(
            JQUERY_URL, "https://www.example.org/", _ctx()
        )
        assert outcome.action is Action.PASS_THROUGH

    def test_non_http_scheme(self):
        outcome = _interceptor().classify(
            "ftp://code.jquery.com/jquery-3.2.1.min.js", PAGE, _ctx()
        )
        assert outcome.action is Action.PASS_THROUGH

    def test_is_valid_candidate_direct(self):
        assert is_valid_candidate(JQUERY_URL, PAGE, _ctx(), PolicySettings())
        assert not is_valid_candidate(
            "data:text/javascript,1", PAGE, _ctx(), PolicySettings()
        )

    def test_custom_eligibility(self):
        interceptor = _interceptor(eligibility=lambda *args: False)
        outcome = interceptor.classify(JQUERY_URL, PAGE, _ctx())
        assert outcome.action is Action.PASS_THROUGH


class TestMalformed:
    """Malformed URLs pass through without touching any counter."""

    @pytest.mark.parametrize("url", [
        "http://[::1",
        "http://example.com:notaport/foo.js",
        "http:///foo.js",
        "http://exa mple.com/foo.js",
        "https://exa<mple.com/foo.js",
    ])
    def test_pass_through(self, url):
        interceptor = _interceptor()
        outcome = interceptor.classify(url, PAGE, _ctx())
        assert outcome.action is Action.PASS_THROUGH
        assert interceptor.state.tabs == {}

    def test_scheme_check_after_custom_eligibility(self):
        interceptor = _interceptor(eligibility=lambda *args: True)
        outcome = interceptor.classify(
            "ftp://code.jquery.com/jquery-3.2.1.min.js", PAGE, _ctx()
        )
        assert outcome.action is Action.PASS_THROUGH


class TestStages:
    """Tests for the stage list and Outcome helpers."""

    def test_stage_order(self):
        names = [stage.__name__ for stage in _interceptor().stages]
        assert names == [
            "_check_eligibility",
            "_parse_url",
            "_check_blocklist",
            "_check_font_policy",
            "_lookup_mapping",
            "_resolve_target",
        ]

    def test_pass_through_response(self):
        assert Outcome.pass_through().as_host_response() == {"cancel": False}

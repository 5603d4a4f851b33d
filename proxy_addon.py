"""mitmproxy addon serving CDN libraries from the local bundle.

Run with:
    mitmdump -s proxy_addon.py

Each request is classified; redirects and scheme upgrades are answered
with a 307, cancellations with a 403. Requests left alone have their
identifying headers stripped when they go to a known CDN.
"""

import logging
import os
from typing import Optional

from mitmproxy import http

from helpers import extract_domain_from_url
from interceptor import Action, Interceptor, RequestContext
from redirect_builder import DEFAULT_RESOURCE_ROOT, RedirectTargetBuilder
from request_sanitizer import strip_metadata
from settings import SettingsState, load_settings

logger = logging.getLogger(__name__)

# Sec-Fetch-Dest values mapped to request types.
_FETCH_DEST_TYPES = {
    "script": "script",
    "style": "stylesheet",
    "font": "font",
    "empty": "xmlhttprequest",
}

_EXTENSION_TYPES = {
    ".js": "script",
    ".mjs": "script",
    ".css": "stylesheet",
    ".woff": "font",
    ".woff2": "font",
    ".ttf": "font",
}


def guess_resource_type(flow: http.HTTPFlow) -> Optional[str]:
    """Infer the request type from Sec-Fetch-Dest, then the file suffix."""
    dest = flow.request.headers.get("Sec-Fetch-Dest", "").lower()
    if dest:
        return _FETCH_DEST_TYPES.get(dest, dest)

    _, ext = os.path.splitext(flow.request.path.split("?", 1)[0])
    return _EXTENSION_TYPES.get(ext.lower())


def initiator_of(flow: http.HTTPFlow) -> Optional[str]:
    """The page URL that issued the request, if the browser told us."""
    headers = flow.request.headers
    return headers.get("Referer") or headers.get("Origin")


class LibraryRedirector:
    """Binds the classifier to mitmproxy's request lifecycle."""

    def __init__(self, interceptor: Optional[Interceptor] = None):
        if interceptor is None:
            settings = load_settings(os.environ.get("CDNKEEPER_SETTINGS"))
            interceptor = Interceptor(
                builder=RedirectTargetBuilder(
                    os.environ.get("CDNKEEPER_RESOURCE_ROOT", DEFAULT_RESOURCE_ROOT)
                ),
                settings=SettingsState(settings),
            )
        self.interceptor = interceptor
        logger.info("Library redirector addon initialized")

    def request(self, flow: http.HTTPFlow) -> None:
        """Classify a request and answer it when it must not go out."""
        initiator = initiator_of(flow)
        context = RequestContext(
            tab_id=extract_domain_from_url(initiator, normalize=True),
            request_id=flow.id,
            method=flow.request.method,
            resource_type=guess_resource_type(flow),
        )
        url = flow.request.pretty_url
        outcome = self.interceptor.classify(url, initiator, context)

        if outcome.cancel:
            flow.response = http.Response.make(403, b"", {"Content-Type": "text/plain"})
        elif outcome.redirect_url:
            flow.response = http.Response.make(
                307, b"", {"Location": outcome.redirect_url}
            )
        elif self.interceptor.mappings.entries_for(flow.request.host):
            self._strip_metadata(flow, initiator)

        if outcome.action is not Action.PASS_THROUGH:
            logger.debug("%s %s", outcome.action.value, url)

    def _strip_metadata(self, flow: http.HTTPFlow, initiator: Optional[str]) -> None:
        headers = flow.request.headers
        kept = strip_metadata(
            headers.items(multi=True),
            initiator,
            self.interceptor.settings.current,
        )
        # Delete in place; untouched fields keep their raw bytes.
        kept_names = {name.lower() for name, _ in kept}
        for name in {name.lower() for name in headers.keys()} - kept_names:
            del headers[name]

    def response(self, flow: http.HTTPFlow) -> None:
        self.interceptor.state.complete_request(flow.id)

    def error(self, flow: http.HTTPFlow) -> None:
        self.interceptor.state.discard_request(flow.id)


addons = [LibraryRedirector()]

"""Page audit.

Fetches a page, catalogs the scripts, stylesheets and fonts it pulls
from other hosts, and runs each one through the classifier as if the
page had requested it. Nothing is rewritten; this is a dry run showing
which libraries would be served locally and which would go missing.
"""

from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup

from interceptor import Action, Interceptor, Outcome, RequestContext

# Default HTTP headers mimicking a real browser.
DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36 "
        "cdnkeeper/1.0"
    ),
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;"
        "q=0.9,*/*;q=0.8"
    ),
    "Accept-Language": "en-US,en;q=0.9",
}

# <link rel="preload" as="..."> values mapped to request types.
_PRELOAD_TYPES = {
    "script": "script",
    "style": "stylesheet",
    "font": "font",
}


@dataclass
class ResourceFinding:
    """Classification of one resource referenced by a page."""

    url: str
    resource_type: str
    action: str
    reason: Optional[str] = None
    target: Optional[str] = None
    resource_name: Optional[str] = None
    version: Optional[str] = None
    mime_type: Optional[str] = None

    @classmethod
    def from_outcome(
        cls,
        url: str,
        resource_type: str,
        outcome: Outcome,
    ) -> "ResourceFinding":
        return cls(
            url=url,
            resource_type=resource_type,
            action=outcome.action.value,
            reason=outcome.reason.value if outcome.reason else None,
            target=outcome.redirect_url,
            resource_name=outcome.resource.name if outcome.resource else None,
            version=outcome.pin.version if outcome.pin else None,
            mime_type=outcome.resource.mime_type if outcome.resource else None,
        )

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        return {
            "url": self.url,
            "resource_type": self.resource_type,
            "action": self.action,
            "reason": self.reason,
            "target": self.target,
            "resource_name": self.resource_name,
            "version": self.version,
            "mime_type": self.mime_type,
        }


@dataclass
class PageAudit:
    """Audit results for a single page."""

    url: str
    findings: list[ResourceFinding] = field(default_factory=list)
    missing_count: int = 0
    injection_count: int = 0

    def count(self, action: Action) -> int:
        return sum(1 for f in self.findings if f.action == action.value)

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        return {
            "url": self.url,
            "resources_found": len(self.findings),
            "redirected": self.count(Action.REDIRECT),
            "missing": self.missing_count,
            "cancelled": self.count(Action.CANCEL),
            "findings": [f.to_dict() for f in self.findings],
        }


def fetch_page_html(
    url: str,
    timeout: int = 30,
    headers: Optional[dict] = None,
) -> str:
    """Fetch the raw HTML content of a single page.

    Args:
        url: The URL to fetch.
        timeout: Request timeout in seconds.
        headers: Optional custom HTTP headers.

    Returns:
        The raw HTML string.

    Raises:
        requests.HTTPError: If the response status is not 2xx.
    """
    resp = requests.get(
        url,
        headers=headers or DEFAULT_HEADERS,
        timeout=timeout,
    )
    resp.raise_for_status()
    return resp.text


def extract_resource_urls(html: str, base_url: str) -> list[tuple[str, str]]:
    """Collect sub-resource URLs referenced by a page.

    Args:
        html: The raw HTML string.
        base_url: The page URL, used to resolve relative references.

    Returns:
        Unique (absolute URL, resource type) pairs in document order.
    """
    soup = BeautifulSoup(html, "lxml")
    found: list[tuple[str, str]] = []

    for tag in soup.find_all(["script", "link"]):
        if tag.name == "script":
            ref, resource_type = tag.get("src"), "script"
        else:
            rel = [r.lower() for r in tag.get("rel", [])]
            if "stylesheet" in rel:
                resource_type = "stylesheet"
            elif "preload" in rel:
                resource_type = _PRELOAD_TYPES.get(tag.get("as", "").lower())
            else:
                continue
            ref = tag.get("href")

        if not ref or not resource_type:
            continue

        pair = (urljoin(base_url, ref.strip()), resource_type)
        if pair not in found:
            found.append(pair)

    return found


def audit_page(url: str, html: str, interceptor: Interceptor) -> PageAudit:
    """Classify every sub-resource of a page.

    The page URL doubles as the tab id, so the interceptor's counters for
    that "tab" end up holding the page's missing and injected totals.

    Args:
        url: The page URL (initiator of every request).
        html: The raw HTML string.
        interceptor: The classifier to run requests through.

    Returns:
        A PageAudit with one finding per referenced resource.
    """
    audit = PageAudit(url=url)
    state = interceptor.state
    state.reset_tab(url)

    for index, (resource_url, resource_type) in enumerate(
        extract_resource_urls(html, url)
    ):
        request_id = f"{url}#{index}"
        context = RequestContext(
            tab_id=url,
            request_id=request_id,
            resource_type=resource_type,
        )
        outcome = interceptor.classify(resource_url, url, context)
        if outcome.action is Action.REDIRECT:
            state.complete_request(request_id)
        audit.findings.append(
            ResourceFinding.from_outcome(resource_url, resource_type, outcome)
        )

    counters = state.tab(url)
    audit.missing_count = counters.missing
    audit.injection_count = counters.injection_count
    return audit

"""Request sanitizer.

Strips identifying headers from requests that still reach a CDN, unless
the initiating site is allowlisted or metadata stripping is turned off.
"""

from typing import Iterable, Optional

from domain_policy import site_is_allowlisted
from helpers import extract_domain_from_url
from settings import PolicySettings

SENSITIVE_HEADERS = frozenset({"cookie", "origin", "referer"})


def strip_metadata(
    headers: Iterable[tuple[str, str]],
    initiator_url: Optional[str],
    settings: PolicySettings,
) -> list[tuple[str, str]]:
    """Drop Cookie, Origin and Referer headers.

    Args:
        headers: (name, value) pairs of the outgoing request.
        initiator_url: URL of the page that issued the request.
        settings: The current settings snapshot.

    Returns:
        A new list of header pairs; the input is never modified.
    """
    headers = list(headers)
    if not settings.strip_metadata:
        return headers

    initiator = extract_domain_from_url(initiator_url, normalize=True)
    if site_is_allowlisted(initiator, settings):
        return headers

    return [
        (name, value) for name, value in headers
        if name.lower() not in SENSITIVE_HEADERS
    ]

"""Normalization helpers shared by the classifier and its tables.

Domain normalization, host extraction, scheme stripping and a few
small formatting utilities.
"""

import re
import secrets
from typing import Optional
from urllib.parse import urlsplit

WWW_PREFIX = "www."

# Schemes that never carry a web-reachable host.
_INTERNAL_SCHEMES = ("chrome:", "about:", "moz-extension:", "chrome-extension:")

_SCHEME_RE = re.compile(r"^(\w+:|)//")

# Letters, digits, "-", "_" and ".", plus ":" for bare IPv6 literals.
_HOST_RE = re.compile(r"[\w.\-:]+")


def normalize_domain(domain: str) -> str:
    """Lowercase a domain and drop a leading "www." label.

    Args:
        domain: A hostname as typed by a user or taken from a URL.

    Returns:
        The normalized domain.
    """
    domain = domain.lower().strip()
    if domain.startswith(WWW_PREFIX):
        domain = domain[len(WWW_PREFIX):]
    return domain


def extract_domain_from_url(
    url: Optional[str],
    normalize: bool = False,
) -> Optional[str]:
    """Extract the host of a URL.

    Args:
        url: The URL to inspect. May be None or empty.
        normalize: Whether to pass the host through normalize_domain.

    Returns:
        The host, or None for unparsable, internal or host-less URLs.
    """
    if not url or url.startswith(_INTERNAL_SCHEMES):
        return None

    try:
        host = urlsplit(url).hostname
    except ValueError:
        return None

    if not host or not is_valid_host(host):
        return None

    return normalize_domain(host) if normalize else host


def is_valid_host(host: str) -> bool:
    """Whether a parsed hostname is made only of characters a host may hold."""
    return bool(_HOST_RE.fullmatch(host))


def strip_scheme(url: str) -> str:
    """Remove a leading "scheme://" (or protocol-relative "//")."""
    return _SCHEME_RE.sub("", url, count=1)


def normalize_url(url: str) -> str:
    """Reduce a URL to its lowercased host followed by path and query.

    Scheme, userinfo and port are dropped, so "https://POLYFILL.IO:443/v3"
    and "//polyfill.io/v3" both become "polyfill.io/v3". A URL without a
    scheme is read as host first.

    Raises:
        ValueError: If the URL cannot be parsed.
    """
    parts = urlsplit("//" + strip_scheme(url))
    normalized = (parts.hostname or "").rstrip(".") + parts.path
    if parts.query:
        normalized += "?" + parts.query
    return normalized


def format_version(version: str) -> str:
    """Return a display label for a bundled version ("BETA" for betas)."""
    if "beta" in version:
        return "BETA"
    return version


def generate_random_hex_string(length: int) -> str:
    """Return `length` random hex characters from a CSPRNG."""
    return "".join(secrets.choice("0123456789abcdef") for _ in range(length))


def domain_is_listed(domain: Optional[str], listed: frozenset) -> bool:
    """Check a normalized domain against a set of listed domains.

    Entries may be exact domains or wildcards of the form
    "*.example.com", which match the apex and every subdomain.

    Args:
        domain: The normalized domain, or None.
        listed: The normalized entries to match against.

    Returns:
        True if the domain is covered by an entry.
    """
    if not domain:
        return False
    if domain in listed:
        return True

    labels = domain.split(".")
    for i in range(len(labels) - 1):
        if "*." + ".".join(labels[i:]) in listed:
            return True
    return False

"""Blocked resource prefixes.

Known-malicious payloads served from library-looking URLs. A request
whose normalized URL (lowercased host, no scheme, userinfo or port)
starts with any of these prefixes is cancelled before any other rule runs.
"""

from typing import Iterable

from helpers import normalize_url

# Hosts taken over to serve injected code through a polyfill/CDN service.
BLOCKED_PATH_PREFIXES: tuple[str, ...] = (
    "polyfill.io/",
    "cdn.polyfill.io/",
    "cdn.bootcdn.net/",
    "cdn.staticfile.org/",
    "cdn.staticfile.net/",
    "polyfill.com/",
    "polyfillcache.com/",
)


class Blocklist:
    """Immutable set of blocked URL prefixes."""

    def __init__(self, prefixes: Iterable[str] = BLOCKED_PATH_PREFIXES):
        self._prefixes = tuple(normalize_url(p) for p in prefixes)

    def __len__(self) -> int:
        return len(self._prefixes)

    def is_blocked(self, url: str) -> bool:
        """Check whether a URL starts with a blocked prefix.

        Args:
            url: The request URL, with or without a scheme.

        Returns:
            True if any prefix matches the normalized URL. Unparsable
            URLs never match.
        """
        try:
            normalized = normalize_url(url)
        except ValueError:
            return False
        return normalized.startswith(self._prefixes)


DEFAULT_BLOCKLIST = Blocklist()

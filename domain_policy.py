"""Domain allowlist policies.

The font policy decides what happens to requests for web fonts, which
are never bundled: depending on the configured mode they are either
cancelled or left to load from the original host.
"""

import re
from dataclasses import dataclass
from typing import Optional

from helpers import domain_is_listed, normalize_domain
from settings import PolicySettings

FONT_RESOURCE_RE = re.compile(
    r"^(https?:)?//fonts\.(googleapis|gstatic)\.com/", re.I
)


def is_font_resource(url: str) -> bool:
    """Whether a URL belongs to the special-cased font resource class."""
    return bool(FONT_RESOURCE_RE.match(url))


@dataclass(frozen=True)
class AllowlistPolicy:
    """A mode toggle plus the set of domains it applies to."""

    deny_unless_allowed: bool
    domains: frozenset

    @classmethod
    def for_fonts(cls, settings: PolicySettings) -> "AllowlistPolicy":
        return cls(
            deny_unless_allowed=settings.block_google_fonts,
            domains=settings.allowed_domains_google_fonts,
        )

    def is_allowed(self, domain: Optional[str]) -> bool:
        """Whether a domain is on the list (exact or wildcard entry)."""
        if not domain:
            return False
        return domain_is_listed(normalize_domain(domain), self.domains)

    def permits(self, domain: Optional[str]) -> bool:
        """Whether a request initiated by `domain` may proceed."""
        return not self.deny_unless_allowed or self.is_allowed(domain)


def site_is_allowlisted(
    domain: Optional[str],
    settings: PolicySettings,
) -> bool:
    """Whether interception is disabled for an initiator domain."""
    if not domain:
        return False
    return domain_is_listed(normalize_domain(domain), settings.allowlisted_domains)

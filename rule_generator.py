"""Rule-set generator for third-party content blockers.

Content blockers that deny third-party scripts by default break the
redirects unless the CDN hosts are allowed. These helpers produce the
matching rules for uMatrix, uBlock Origin and AdGuard.
"""

from typing import Iterable

RULE_FORMATS = ("uMatrix", "uBlock", "AdGuard")

# Never worth allowing wholesale.
EXCLUDED_DOMAINS = frozenset({"www.gstatic.com"})


def _rules_for(kind: str, domain: str) -> list[str]:
    if kind == "uMatrix":
        return [f"* {domain} script allow", f"* {domain} css allow"]
    if kind == "uBlock":
        return [f"* {domain} * noop"]
    return [f"@@||{domain}^"]


def generate_rule_set(kind: str, domains: Iterable[str]) -> str:
    """Build a newline-separated rule set.

    Args:
        kind: One of RULE_FORMATS.
        domains: CDN domains to allow.

    Returns:
        The rules, one per line, without a trailing newline.

    Raises:
        ValueError: If `kind` is not a known format.
    """
    if kind not in RULE_FORMATS:
        raise ValueError(
            f"Unknown rule format {kind!r}; expected one of {RULE_FORMATS}"
        )

    lines = []
    for domain in domains:
        if domain in EXCLUDED_DOMAINS:
            continue
        lines.extend(_rules_for(kind, domain))
    return "\n".join(lines)

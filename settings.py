"""Process-wide settings.

Settings are persisted by an external store as a flat key/value mapping.
At startup they are loaded into an immutable PolicySettings snapshot;
every change event builds a new snapshot and swaps it in with a single
assignment, so readers always see a consistent set of values.
"""

import json
import logging
import os
from dataclasses import dataclass, field, replace
from typing import Callable, Mapping, Optional

from helpers import normalize_domain

logger = logging.getLogger(__name__)

SETTING_DEFAULTS: dict = {
    "strip_metadata": True,
    "block_missing": False,
    "block_google_fonts": True,
    "allowed_domains_google_fonts": [],
    "allowlisted_domains": [],
    "selected_icon": "Default",
}

_DOMAIN_SET_KEYS = ("allowed_domains_google_fonts", "allowlisted_domains")


def _normalize_domains(domains) -> frozenset:
    """Accept a list or a {domain: true} mapping and normalize entries."""
    if isinstance(domains, Mapping):
        domains = [d for d, enabled in domains.items() if enabled]
    return frozenset(normalize_domain(d) for d in domains if d)


@dataclass(frozen=True)
class PolicySettings:
    """Immutable snapshot of every setting the classifier reads."""

    strip_metadata: bool = True
    block_missing: bool = False
    block_google_fonts: bool = True
    allowed_domains_google_fonts: frozenset = field(default_factory=frozenset)
    allowlisted_domains: frozenset = field(default_factory=frozenset)
    selected_icon: str = "Default"

    @classmethod
    def from_mapping(cls, values: Mapping) -> "PolicySettings":
        """Build a snapshot from persisted values, ignoring unknown keys."""
        merged = {**SETTING_DEFAULTS, **values}
        return cls(**_coerce(merged))

    def with_changes(self, changes: Mapping) -> "PolicySettings":
        """Return a copy with known keys replaced."""
        return replace(self, **_coerce(changes))


def _coerce(values: Mapping) -> dict:
    coerced = {}
    for key in SETTING_DEFAULTS:
        if key not in values:
            continue
        value = values[key]
        if key in _DOMAIN_SET_KEYS:
            value = _normalize_domains(value)
        elif key != "selected_icon":
            value = bool(value)
        coerced[key] = value
    return coerced


def load_settings(path: Optional[str]) -> PolicySettings:
    """Load persisted settings from a JSON file.

    Args:
        path: Path to the settings file. None or a missing file yields
            the defaults.

    Returns:
        A PolicySettings snapshot.
    """
    if not path or not os.path.exists(path):
        return PolicySettings.from_mapping({})

    try:
        with open(path, "r", encoding="utf-8") as fh:
            values = json.load(fh)
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Could not read settings from %s: %s", path, exc)
        return PolicySettings.from_mapping({})

    if not isinstance(values, dict):
        logger.warning("Ignoring settings file %s: not a JSON object", path)
        return PolicySettings.from_mapping({})

    return PolicySettings.from_mapping(values)


class SettingsState:
    """Holder of the current snapshot; updated by change events."""

    def __init__(self, initial: Optional[PolicySettings] = None):
        self.current = initial or PolicySettings()
        self._listeners: list[Callable[[PolicySettings], None]] = []

    def subscribe(self, listener: Callable[[PolicySettings], None]) -> None:
        self._listeners.append(listener)

    def apply_changes(self, changes: Mapping) -> PolicySettings:
        """Apply a settings-change event (last writer wins).

        Args:
            changes: Changed keys mapped to their new values. Unknown
                keys are ignored.

        Returns:
            The new snapshot.
        """
        snapshot = self.current.with_changes(changes)
        self.current = snapshot
        logger.debug("Settings changed: %s", sorted(changes))
        for listener in self._listeners:
            listener(snapshot)
        return snapshot

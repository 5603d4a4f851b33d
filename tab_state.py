"""Per-tab counters and in-flight request records.

The classifier increments a tab's missing counter and records every
redirect it issues; the badge/UI side reads and resets them. Unknown tab
and request ids are silently ignored.
"""

from dataclasses import dataclass, field
from typing import Hashable, Optional

from resources import ResourceDescriptor
from version_resolver import VersionPin


@dataclass(frozen=True)
class InFlightRequestRecord:
    """A redirect that has been issued but not yet completed."""

    tab_id: Hashable
    resource: ResourceDescriptor
    pin: VersionPin
    source_url: str


@dataclass
class TabCounters:
    """Counter bucket for one tab."""

    missing: int = 0
    injections: dict = field(default_factory=dict)

    @property
    def injection_count(self) -> int:
        return len(self.injections)


class StateManager:
    """Owns the tab registry and the in-flight request ledger."""

    def __init__(self):
        self.tabs: dict[Hashable, TabCounters] = {}
        self.requests: dict[Hashable, InFlightRequestRecord] = {}

    def tab(self, tab_id: Hashable) -> TabCounters:
        """Return a tab's counters, creating them on first use."""
        return self.tabs.setdefault(tab_id, TabCounters())

    def increment_missing(self, tab_id: Optional[Hashable]) -> None:
        if tab_id is None:
            return
        self.tab(tab_id).missing += 1

    def register_request(
        self,
        request_id: Optional[Hashable],
        record: InFlightRequestRecord,
    ) -> None:
        if request_id is None:
            return
        self.requests[request_id] = record

    def complete_request(self, request_id: Hashable) -> None:
        """Move a finished redirect into its tab's injections."""
        record = self.requests.pop(request_id, None)
        if record is None or record.tab_id is None:
            return
        self.tab(record.tab_id).injections[request_id] = record

    def discard_request(self, request_id: Hashable) -> None:
        self.requests.pop(request_id, None)

    def reset_tab(self, tab_id: Hashable) -> None:
        """Clear a tab's counters, e.g. on navigation."""
        if tab_id in self.tabs:
            self.tabs[tab_id] = TabCounters()

    def remove_tab(self, tab_id: Hashable) -> None:
        """Drop a closed tab and every in-flight record it owns."""
        self.tabs.pop(tab_id, None)
        stale = [rid for rid, rec in self.requests.items() if rec.tab_id == tab_id]
        for request_id in stale:
            del self.requests[request_id]

"""Request classifier.

Decides, for one outgoing sub-resource request, whether it passes
through untouched, is cancelled, is redirected to a bundled local copy,
or is a missing resource (CDN-shaped but not resolvable).

Classification runs as a fixed, ordered list of stages. Each stage
either returns a terminal Outcome or None to hand over to the next one:

1. eligibility prefilter      -> PassThrough
2. URL parsing                -> PassThrough on malformed URLs
3. blocklist                  -> Cancel
4. font policy                -> Cancel / PassThrough
5. mapping lookup             -> Missing (no domain entry / no path match)
6. version + target           -> Missing (no path match / no version)
                                 or Redirect
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Hashable, Optional
from urllib.parse import SplitResult, urlsplit, urlunsplit

from blocklist import DEFAULT_BLOCKLIST, Blocklist
from cdn_mappings import (
    DEFAULT_MAPPINGS,
    IGNORED_HOSTS,
    MappingMatch,
    MappingTable,
)
from domain_policy import AllowlistPolicy, is_font_resource, site_is_allowlisted
from helpers import extract_domain_from_url, is_valid_host
from redirect_builder import RedirectTargetBuilder
from resources import ResourceDescriptor
from settings import PolicySettings, SettingsState
from tab_state import InFlightRequestRecord, StateManager
from version_resolver import (
    DEFAULT_RESOLVER,
    UnknownFamilyError,
    UnresolvableVersionError,
    VersionPin,
    VersionResolver,
)

logger = logging.getLogger(__name__)

HTTP = "http"
HTTPS = "https"

# Sub-resource types offered to the classifier. None means "unknown".
CANDIDATE_TYPES = frozenset({"script", "stylesheet", "font", "xmlhttprequest"})


class Action(Enum):
    PASS_THROUGH = "pass-through"
    CANCEL = "cancel"
    REDIRECT = "redirect"
    MISSING = "missing"


class MissingReason(Enum):
    NO_DOMAIN_ENTRY = "no-domain-entry"
    NO_PATH_MATCH = "no-path-match"
    NO_VERSION = "no-version"


@dataclass(frozen=True)
class Outcome:
    """The classification of one request.

    A MISSING outcome also carries the fallback chosen for it: either
    `cancel`, a scheme-upgrade `redirect_url`, or neither (load as is).
    """

    action: Action
    redirect_url: Optional[str] = None
    reason: Optional[MissingReason] = None
    cancel: bool = False
    resource: Optional[ResourceDescriptor] = None
    pin: Optional[VersionPin] = None

    @classmethod
    def pass_through(cls) -> "Outcome":
        return cls(Action.PASS_THROUGH)

    @classmethod
    def cancelled(cls) -> "Outcome":
        return cls(Action.CANCEL, cancel=True)

    @classmethod
    def redirect(
        cls,
        url: str,
        resource: ResourceDescriptor,
        pin: VersionPin,
    ) -> "Outcome":
        return cls(Action.REDIRECT, redirect_url=url, resource=resource, pin=pin)

    @classmethod
    def missing(
        cls,
        reason: MissingReason,
        redirect_url: Optional[str] = None,
        cancel: bool = False,
    ) -> "Outcome":
        return cls(
            Action.MISSING,
            redirect_url=redirect_url,
            reason=reason,
            cancel=cancel,
        )

    def as_host_response(self) -> dict:
        """The instruction for the request-interception layer."""
        if self.cancel:
            return {"cancel": True}
        if self.redirect_url:
            return {"redirect_url": self.redirect_url}
        return {"cancel": False}


@dataclass(frozen=True)
class RequestContext:
    """Host-supplied facts about a request."""

    tab_id: Optional[Hashable] = None
    request_id: Optional[Hashable] = None
    method: str = "GET"
    resource_type: Optional[str] = "script"


EligibilityCheck = Callable[
    [str, Optional[str], RequestContext, PolicySettings], bool
]


def is_valid_candidate(
    request_url: str,
    initiator_url: Optional[str],
    context: RequestContext,
    settings: PolicySettings,
) -> bool:
    """Default eligibility prefilter.

    Only GET sub-resource requests to http(s) URLs qualify, and never
    same-host requests or requests from sites interception is disabled on.
    """
    if context.method.upper() != "GET":
        return False
    if context.resource_type is not None and (
        context.resource_type not in CANDIDATE_TYPES
    ):
        return False
    if not request_url.lower().startswith(("http://", "https://")):
        return False

    initiator = extract_domain_from_url(initiator_url, normalize=True)
    if initiator is None:
        return True
    if initiator == extract_domain_from_url(request_url, normalize=True):
        return False
    return not site_is_allowlisted(initiator, settings)


@dataclass
class _Candidate:
    """Working state handed from stage to stage."""

    url: str
    initiator_url: Optional[str]
    context: RequestContext
    settings: PolicySettings
    parts: Optional[SplitResult] = None
    host: str = ""
    match: Optional[MappingMatch] = None


class Interceptor:
    """Classifies candidate requests against the static tables."""

    def __init__(
        self,
        mappings: MappingTable = DEFAULT_MAPPINGS,
        resolver: VersionResolver = DEFAULT_RESOLVER,
        blocklist: Blocklist = DEFAULT_BLOCKLIST,
        builder: Optional[RedirectTargetBuilder] = None,
        settings: Optional[SettingsState] = None,
        state: Optional[StateManager] = None,
        eligibility: EligibilityCheck = is_valid_candidate,
        ignored_hosts: frozenset = IGNORED_HOSTS,
    ):
        self.mappings = mappings
        self.resolver = resolver
        self.blocklist = blocklist
        self.builder = builder or RedirectTargetBuilder()
        self.settings = settings or SettingsState()
        self.state = state or StateManager()
        self.eligibility = eligibility
        self.ignored_hosts = ignored_hosts

        # The order is part of the contract: the first stage to return
        # an Outcome decides.
        self.stages = (
            self._check_eligibility,
            self._parse_url,
            self._check_blocklist,
            self._check_font_policy,
            self._lookup_mapping,
            self._resolve_target,
        )

    def classify(
        self,
        request_url: str,
        initiator_url: Optional[str] = None,
        context: Optional[RequestContext] = None,
    ) -> Outcome:
        """Classify one request.

        Args:
            request_url: The URL being requested.
            initiator_url: The URL of the page that issued the request.
            context: Tab/request ids, method and resource type.

        Returns:
            The Outcome. Never raises for bad input.
        """
        candidate = _Candidate(
            url=request_url,
            initiator_url=initiator_url,
            context=context or RequestContext(),
            settings=self.settings.current,
        )
        for stage in self.stages:
            outcome = stage(candidate)
            if outcome is not None:
                return outcome
        return Outcome.pass_through()

    # --- Stages ---

    def _check_eligibility(self, candidate: _Candidate) -> Optional[Outcome]:
        eligible = self.eligibility(
            candidate.url,
            candidate.initiator_url,
            candidate.context,
            candidate.settings,
        )
        return None if eligible else Outcome.pass_through()

    def _parse_url(self, candidate: _Candidate) -> Optional[Outcome]:
        try:
            parts = urlsplit(candidate.url)
            host = parts.hostname
            parts.port  # raises ValueError on a malformed port
        except ValueError:
            logger.debug("Malformed URL passed through: %s", candidate.url)
            return Outcome.pass_through()

        if parts.scheme not in (HTTP, HTTPS) or not host:
            return Outcome.pass_through()
        if not is_valid_host(host):
            logger.debug("Invalid host passed through: %s", candidate.url)
            return Outcome.pass_through()

        candidate.parts = parts
        candidate.host = host
        return None

    def _check_blocklist(self, candidate: _Candidate) -> Optional[Outcome]:
        if not self.blocklist.is_blocked(candidate.url):
            return None
        logger.info("Evil resource blocked: %s", candidate.url)
        return Outcome.cancelled()

    def _check_font_policy(self, candidate: _Candidate) -> Optional[Outcome]:
        if not is_font_resource(candidate.url):
            return None

        policy = AllowlistPolicy.for_fonts(candidate.settings)
        initiator = extract_domain_from_url(
            candidate.initiator_url, normalize=True
        )
        if policy.permits(initiator):
            return Outcome.pass_through()
        return Outcome.cancelled()

    def _lookup_mapping(self, candidate: _Candidate) -> Optional[Outcome]:
        entries = self.mappings.entries_for(candidate.host)
        if not entries:
            return self._handle_missing(candidate, MissingReason.NO_DOMAIN_ENTRY)

        candidate.match = self.mappings.match(entries, candidate.parts.path)
        if candidate.match is None:
            return self._handle_missing(candidate, MissingReason.NO_PATH_MATCH)
        return None

    def _resolve_target(self, candidate: _Candidate) -> Optional[Outcome]:
        match = candidate.match
        try:
            pin = self.resolver.resolve(match.resource.family, match.version)
        except UnknownFamilyError:
            return self._handle_missing(candidate, MissingReason.NO_PATH_MATCH)
        except UnresolvableVersionError:
            return self._handle_missing(candidate, MissingReason.NO_VERSION)

        target = self.builder.build(match.resource, pin)
        context = candidate.context
        self.state.register_request(
            context.request_id,
            InFlightRequestRecord(
                tab_id=context.tab_id,
                resource=match.resource,
                pin=pin,
                source_url=candidate.url,
            ),
        )
        logger.debug(
            "Redirecting %s -> %s %s",
            candidate.url, match.resource.id, pin.version,
        )
        return Outcome.redirect(target, match.resource, pin)

    # --- Missing resources ---

    def _handle_missing(
        self,
        candidate: _Candidate,
        reason: MissingReason,
    ) -> Outcome:
        """Count a missing resource and pick its configured fallback."""
        if candidate.host.lower() not in self.ignored_hosts:
            self.state.increment_missing(candidate.context.tab_id)

        logger.debug("Missing resource (%s): %s", reason.value, candidate.url)

        if candidate.settings.block_missing:
            return Outcome.missing(reason, cancel=True)

        if candidate.parts.scheme == HTTP:
            upgraded = urlunsplit(candidate.parts._replace(scheme=HTTPS))
            return Outcome.missing(reason, redirect_url=upgraded)

        return Outcome.missing(reason)

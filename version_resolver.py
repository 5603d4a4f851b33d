"""Version resolver for bundled library families.

A requested version token (as captured from a CDN URL) is mapped onto
one of a small fixed set of bundled versions. Each library is split into
families keyed by a major-version prefix ("jquery" + "1."); a family may
define version bands, inclusive upper bounds that each double as the
bundled version serving every request at or below them.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from resources import RESOURCES, MappingTableError

LATEST_TOKEN = "latest"


class VersionResolutionError(Exception):
    """Base class for resolution failures; never escapes the classifier."""


class UnknownFamilyError(VersionResolutionError):
    """The library is not known to the resolver at all."""


class UnresolvableVersionError(VersionResolutionError):
    """The library is known but the token maps to no bundled version."""


@dataclass(frozen=True)
class VersionFamily:
    """One major-version line of a library."""

    library: str
    prefix: str  # "" matches every token
    latest: str
    bands: tuple[str, ...] = ()
    beta_label: Optional[str] = None

    def covers(self, token: str) -> bool:
        """Whether a requested token belongs to this family."""
        if not self.prefix:
            return True
        return token.startswith(self.prefix) or token == self.prefix.rstrip(".")


@dataclass(frozen=True)
class VersionPin:
    """A bundled version chosen for one request."""

    family: str
    requested: Optional[str]
    version: str


def parse_version(version: str) -> Optional[tuple[int, ...]]:
    """Parse a dotted version into integer components.

    Returns:
        The components, or None when any component is not a plain integer.
    """
    parts = version.split(".")
    if not all(part.isdigit() for part in parts):
        return None
    return tuple(int(part) for part in parts)


def compare_version(first: str, second: str) -> bool:
    """Return True when `first` is lower than or equal to `second`.

    Components are compared as integers, so "1.10.0" sorts above "1.9.0";
    a shorter sequence that is a prefix of a longer one sorts lower.

    Raises:
        ValueError: If either version has a non-numeric component.
    """
    left, right = parse_version(first), parse_version(second)
    if left is None or right is None:
        raise ValueError(f"Non-numeric version: {first!r} / {second!r}")
    return left <= right


# Families per library, registered in ascending order. The last family
# of a library provides its designated "latest bundled" version.
VERSION_FAMILIES: list[VersionFamily] = [
    VersionFamily("angularjs", "1.", "1.7.9", bands=("1.3.13", "1.4.14")),
    VersionFamily("animate.css", "3.", "3.7.2"),
    VersionFamily("backbone.js", "0.", "0.9.10"),
    VersionFamily("backbone.js", "1.", "1.3.3"),
    VersionFamily("bootstrap.css", "3.", "3.3.7"),
    VersionFamily("bootstrap.css", "4.", "4.4.1", beta_label="4.0.0-beta"),
    VersionFamily("bootstrap.js", "3.", "3.3.7"),
    VersionFamily("bootstrap.js", "4.", "4.4.1", beta_label="4.0.0-beta"),
    VersionFamily("bootstrap-slider", "10.", "10.6.2"),
    VersionFamily("dojo", "1.", "1.10.4"),
    VersionFamily("ember.js", "1.", "1.5.1"),
    VersionFamily("ember.js", "2.", "2.1.0"),
    VersionFamily("ext-core", "3.", "3.1.0"),
    VersionFamily("fontawesome", "4.", "4.7.0"),
    VersionFamily("fontawesome", "5.", "5.7.2"),
    VersionFamily("jquery", "1.", "1.12.4", bands=("1.7.1", "1.8.3")),
    VersionFamily("jquery", "2.", "2.2.4"),
    VersionFamily("jquery", "3.", "3.4.1"),
    VersionFamily("jquery-validate", "1.", "1.19.1"),
    VersionFamily("jqueryui", "1.", "1.11.4", bands=("1.10.4",)),
    VersionFamily("modernizr", "2.", "2.8.3"),
    VersionFamily("moment.js", "2.", "2.24.0"),
    VersionFamily("mootools", "1.", "1.5.1"),
    VersionFamily("prototype", "1.", "1.7.3.0"),
    VersionFamily("rocket-loader", "", "latest"),
    VersionFamily("scriptaculous", "1.", "1.9.0"),
    VersionFamily("swfobject", "2.", "2.2"),
    VersionFamily("toastr.js", "2.", "2.1.4"),
    VersionFamily("underscore.js", "1.", "1.9.1"),
    VersionFamily("vue", "2.", "2.6.11"),
    VersionFamily("webfont", "1.", "1.5.18"),
    VersionFamily("wow", "1.", "1.1.2"),
]


def _validate_family(family: VersionFamily) -> None:
    """Reject bands that are non-numeric, unsorted or above the family top."""
    versions = list(family.bands)
    if family.bands:
        versions.append(family.latest)
    parsed = [parse_version(v) for v in versions]
    if any(p is None for p in parsed):
        raise MappingTableError(f"Non-numeric band in {family.library}")
    if any(a >= b for a, b in zip(parsed, parsed[1:])):
        raise MappingTableError(f"Unsorted bands in {family.library}")


def build_family_index(
    families: Iterable[VersionFamily],
) -> Mapping[str, tuple[VersionFamily, ...]]:
    """Group families by library and check their prefixes never overlap.

    Raises:
        MappingTableError: On duplicate or overlapping prefixes, or
            malformed bands.
    """
    grouped: dict[str, list[VersionFamily]] = {}
    for family in families:
        _validate_family(family)
        siblings = grouped.setdefault(family.library, [])
        for other in siblings:
            if (
                other.prefix.startswith(family.prefix)
                or family.prefix.startswith(other.prefix)
            ):
                raise MappingTableError(
                    f"Overlapping version prefixes for {family.library}: "
                    f"{other.prefix!r} / {family.prefix!r}"
                )
        siblings.append(family)
    return MappingProxyType({k: tuple(v) for k, v in grouped.items()})


class VersionResolver:
    """Maps (library family, requested token) to a bundled version."""

    def __init__(self, families: Iterable[VersionFamily] = VERSION_FAMILIES):
        self._families = build_family_index(families)

    def knows(self, library: str) -> bool:
        return library in self._families

    def latest(self, library: str) -> str:
        """The designated latest bundled version of a library."""
        families = self._families.get(library)
        if not families:
            raise UnknownFamilyError(library)
        return families[-1].latest

    def resolve(self, library: str, token: Optional[str]) -> VersionPin:
        """Pick the bundled version serving a requested token.

        Args:
            library: The resource family (e.g. "jquery").
            token: The raw captured version, "latest" or None.

        Returns:
            The chosen VersionPin.

        Raises:
            UnknownFamilyError: If the library has no families.
            UnresolvableVersionError: If no family covers the token, or
                the token is non-numeric and its family has no fallback
                label.
        """
        families = self._families.get(library)
        if not families:
            raise UnknownFamilyError(library)

        if not token or token.lower() == LATEST_TOKEN:
            return VersionPin(library, token, families[-1].latest)

        family = next((f for f in families if f.covers(token)), None)
        if family is None:
            raise UnresolvableVersionError(f"{library} {token}")

        requested = parse_version(token)
        if requested is None:
            if family.beta_label:
                return VersionPin(library, token, family.beta_label)
            raise UnresolvableVersionError(f"{library} {token}")

        # A bare major ("1") sorts below every release of its line, so it
        # lands in the lowest band like any other numeric token.
        for bound in family.bands:
            if requested <= parse_version(bound):
                return VersionPin(library, token, bound)
        return VersionPin(library, token, family.latest)


def _check_resource_families(resolver: VersionResolver) -> None:
    """Every bundled resource must belong to a known family."""
    for resource in RESOURCES.values():
        if not resolver.knows(resource.family):
            raise MappingTableError(
                f"Resource {resource.id} has unknown family {resource.family}"
            )


DEFAULT_RESOLVER = VersionResolver()
_check_resource_families(DEFAULT_RESOLVER)

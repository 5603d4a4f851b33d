"""CDN mapping table.

Maps a CDN host and the shape of a request path onto a bundled resource
id, capturing the requested version on the way. Patterns are matched
against the full URL path, per host, in registration order; the first
match wins.

Patterns are regular expressions where the literal "{version}" stands
for the version capture group. A pattern may also spell out its own
`(?P<version>...)` group, or have none at all (the resolver then picks
the library's latest bundle).
"""

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from helpers import normalize_domain
from resources import RESOURCES, MappingTableError, ResourceDescriptor

VERSION_GROUP = r"(?P<version>latest|\d[\w.\-]*?)"

WILDCARD_PREFIX = "*."

CDN_NAMES: dict[str, str] = {
    "ajax.googleapis.com": "Google Hosted Libraries",
    "ajax.aspnetcdn.com": "Microsoft Ajax CDN",
    "ajax.microsoft.com": "Microsoft Ajax CDN [Deprecated]",
    "ajax.cloudflare.com": "Cloudflare Rocket Loader",
    "cdnjs.cloudflare.com": "CDNJS (Cloudflare)",
    "code.jquery.com": "jQuery CDN (MaxCDN)",
    "cdn.jsdelivr.net": "jsDelivr (Cloudflare)",
    "yastatic.net": "Yandex CDN",
    "yandex.st": "Yandex CDN [Deprecated]",
    "apps.bdimg.com": "Baidu CDN",
    "libs.baidu.com": "Baidu CDN [Deprecated]",
    "lib.sinaapp.com": "Sina Public Resources",
    "cdn.bootcss.com": "BootCDN",
    "sdn.geekzu.org": "Geekzu Public Service [Mirror]",
    "ajax.proxy.ustclug.org": "USTC Linux User Group [Mirror]",
    "unpkg.com": "UNPKG (Cloudflare)",
    "stackpath.bootstrapcdn.com": "StackPath BootstrapCDN",
    "maxcdn.bootstrapcdn.com": "MaxCDN Bootstrap CDN",
    "*.bootstrapcdn.com": "BootstrapCDN",
    "use.fontawesome.com": "Font Awesome CDN",
}

# Hosts whose unmatched requests are not counted as missing resources.
IGNORED_HOSTS = frozenset({
    "fonts.googleapis.com",
    "fonts.gstatic.com",
    "www.gstatic.com",
})


def _google_layout(base: str) -> list[tuple[str, str]]:
    """Path shapes of Google Hosted Libraries and its mirrors."""
    return [
        (base + r"/angularjs/{version}/angular(\.min)?\.js", "angular"),
        (base + r"/angularjs/{version}/angular-animate(\.min)?\.js",
         "angularAnimate"),
        (base + r"/angularjs/{version}/angular-sanitize(\.min)?\.js",
         "angularSanitize"),
        (base + r"/angularjs/{version}/angular-cookies(\.min)?\.js",
         "angularCookies"),
        (base + r"/angularjs/{version}/angular-touch(\.min)?\.js",
         "angularTouch"),
        (base + r"/dojo/{version}/dojo/dojo(\.xd)?\.js", "dojo"),
        (base + r"/ext-core/{version}/ext-core(-debug)?\.js", "extCore"),
        (base + r"/jquery/{version}/jquery(\.min)?\.js", "jQuery"),
        (base + r"/jqueryui/{version}/jquery-ui(\.min)?\.js", "jQueryUI"),
        (base + r"/mootools/{version}/mootools(-yui-compressed|-core)?"
                r"(\.min)?\.js", "mootools"),
        (base + r"/prototype/{version}/prototype\.js", "prototypeJS"),
        (base + r"/scriptaculous/{version}/scriptaculous\.js",
         "scriptaculous"),
        (base + r"/swfobject/{version}/swfobject\.js", "swfobject"),
        (base + r"/webfont/{version}/webfont\.js", "webfont"),
    ]


def _cdnjs_layout(base: str) -> list[tuple[str, str]]:
    """Path shapes of CDNJS and the mirrors copying its tree."""
    return [
        (base + r"/angular\.js/{version}/angular(\.min)?\.js", "angular"),
        (base + r"/angular\.js/{version}/angular-animate(\.min)?\.js",
         "angularAnimate"),
        (base + r"/angular\.js/{version}/angular-sanitize(\.min)?\.js",
         "angularSanitize"),
        (base + r"/angular\.js/{version}/angular-cookies(\.min)?\.js",
         "angularCookies"),
        (base + r"/angular\.js/{version}/angular-touch(\.min)?\.js",
         "angularTouch"),
        (base + r"/animate\.css/{version}/animate(\.min)?\.css",
         "animateCSS"),
        (base + r"/backbone\.js/{version}/backbone(-min|\.min)?\.js",
         "backbone"),
        (base + r"/twitter-bootstrap/{version}/js/bootstrap(\.min)?\.js",
         "bootstrapJS"),
        (base + r"/twitter-bootstrap/{version}/css/bootstrap(\.min)?\.css",
         "bootstrapCSS"),
        (base + r"/bootstrap-slider/{version}/bootstrap-slider(\.min)?\.js",
         "bootstrapSliderJS"),
        (base + r"/bootstrap-slider/{version}/css/bootstrap-slider(\.min)?"
                r"\.css", "bootstrapSliderCSS"),
        (base + r"/dojo/{version}/dojo\.js", "dojo"),
        (base + r"/ember\.js/{version}/ember(\.min)?\.js", "ember"),
        (base + r"/font-awesome/{version}/css/font-awesome(\.min)?\.css",
         "fontawesome"),
        (base + r"/font-awesome/(?P<version>5\.[\w.\-]+?)/css/all(\.min)?"
                r"\.css", "fontawesome5"),
        (base + r"/jquery/{version}/jquery(\.min)?\.js", "jQuery"),
        (base + r"/jqueryui/{version}/jquery-ui(\.min)?\.js", "jQueryUI"),
        (base + r"/jquery-validate/{version}/jquery\.validate(\.min)?\.js",
         "jqueryValidationPlugin"),
        (base + r"/modernizr/{version}/modernizr(\.min)?\.js", "modernizr"),
        (base + r"/moment\.js/{version}/moment(\.min)?\.js", "moment"),
        (base + r"/mootools/{version}/mootools-core(\.min)?\.js",
         "mootools"),
        (base + r"/prototype/{version}/prototype(\.min)?\.js",
         "prototypeJS"),
        (base + r"/scriptaculous/{version}/scriptaculous(\.min)?\.js",
         "scriptaculous"),
        (base + r"/swfobject/{version}/swfobject(\.min)?\.js", "swfobject"),
        (base + r"/toastr\.js/{version}/(js/)?toastr(\.min)?\.js",
         "toastrJS"),
        (base + r"/toastr\.js/{version}/(css/)?toastr(\.min)?\.css",
         "toastrCSS"),
        (base + r"/underscore\.js/{version}/underscore(-min|\.min)?\.js",
         "underscore"),
        (base + r"/vue/{version}/vue(\.min)?\.js", "vueJs"),
        (base + r"/webfont/{version}/webfont(loader)?\.js", "webfont"),
        (base + r"/wow/{version}/wow(\.min)?\.js", "wow"),
    ]


def _npm_layout(base: str) -> list[tuple[str, str]]:
    """Path shapes of npm-backed CDNs ("pkg@version/dist/...")."""
    return [
        (base + r"/jquery(@{version})?/dist/jquery(\.min)?\.js", "jQuery"),
        (base + r"/bootstrap(@{version})?/dist/js/bootstrap(\.min)?\.js",
         "bootstrapJS"),
        (base + r"/bootstrap(@{version})?/dist/css/bootstrap(\.min)?\.css",
         "bootstrapCSS"),
        (base + r"/vue(@{version})?/dist/vue(\.min)?\.js", "vueJs"),
        (base + r"/moment(@{version})?/min/moment\.min\.js", "moment"),
        (base + r"/jquery-validation(@{version})?/dist/"
                r"jquery\.validate(\.min)?\.js", "jqueryValidationPlugin"),
        (base + r"/animate\.css(@{version})?/animate(\.min)?\.css",
         "animateCSS"),
    ]


_MICROSOFT_LAYOUT = [
    (r"/ajax/jQuery/jquery-{version}(\.min)?\.js", "jQuery"),
    (r"/ajax/jquery\.ui/{version}/jquery-ui(\.min)?\.js", "jQueryUI"),
    (r"/ajax/jquery\.validate/{version}/jquery\.validate(\.min)?\.js",
     "jqueryValidationPlugin"),
    (r"/ajax/bootstrap/{version}/bootstrap(\.min)?\.js", "bootstrapJS"),
    (r"/ajax/bootstrap/{version}/css/bootstrap(\.min)?\.css",
     "bootstrapCSS"),
    (r"/ajax/modernizr/modernizr-{version}\.js", "modernizr"),
]

_YANDEX_LAYOUT = [
    (r"/jquery/{version}/jquery(\.min)?\.js", "jQuery"),
    (r"/angularjs/{version}/angular(\.min)?\.js", "angular"),
    (r"/bootstrap/{version}/js/bootstrap(\.min)?\.js", "bootstrapJS"),
    (r"/bootstrap/{version}/css/bootstrap(\.min)?\.css", "bootstrapCSS"),
    (r"/modernizr/{version}/modernizr(\.min)?\.js", "modernizr"),
    (r"/underscore/{version}/underscore-min\.js", "underscore"),
]

# Registration order is the matching order: hosts in the order listed,
# patterns within a host top to bottom.
CDN_ROWS: dict[str, list[tuple[str, str]]] = {
    "ajax.googleapis.com": _google_layout("/ajax/libs"),
    "ajax.proxy.ustclug.org": _google_layout("/ajax/libs"),
    "sdn.geekzu.org": _google_layout("/ajax/libs"),
    "cdnjs.cloudflare.com": _cdnjs_layout("/ajax/libs"),
    "cdn.bootcss.com": _cdnjs_layout(""),
    "code.jquery.com": [
        (r"/jquery-{version}(\.min)?\.js", "jQuery"),
        (r"/ui/{version}/jquery-ui(\.min)?\.js", "jQueryUI"),
    ],
    "ajax.aspnetcdn.com": _MICROSOFT_LAYOUT,
    "ajax.microsoft.com": _MICROSOFT_LAYOUT,
    "cdn.jsdelivr.net": _npm_layout("/npm") + [
        (r"/gh/jquery/jquery@{version}/dist/jquery(\.min)?\.js", "jQuery"),
    ],
    "unpkg.com": _npm_layout(""),
    "yastatic.net": _YANDEX_LAYOUT,
    "yandex.st": _YANDEX_LAYOUT,
    "apps.bdimg.com": [
        (r"/libs/jquery/{version}/jquery(\.min)?\.js", "jQuery"),
        (r"/libs/jqueryui/{version}/jquery-ui(\.min)?\.js", "jQueryUI"),
        (r"/libs/bootstrap/{version}/js/bootstrap(\.min)?\.js",
         "bootstrapJS"),
        (r"/libs/bootstrap/{version}/css/bootstrap(\.min)?\.css",
         "bootstrapCSS"),
    ],
    "libs.baidu.com": [
        (r"/jquery/{version}/jquery(\.min)?\.js", "jQuery"),
        (r"/backbone/{version}/backbone(-min|\.min)?\.js", "backbone"),
        (r"/underscore/{version}/underscore(-min|\.min)?\.js", "underscore"),
    ],
    "lib.sinaapp.com": [
        (r"/js/jquery/{version}/jquery(\.min)?\.js", "jQuery"),
        (r"/js/angular\.js/angular-{version}/angular(\.min)?\.js",
         "angular"),
    ],
    "*.bootstrapcdn.com": [
        (r"/bootstrap/{version}/js/bootstrap(\.min)?\.js", "bootstrapJS"),
        (r"/bootstrap/{version}/css/bootstrap(\.min)?\.css",
         "bootstrapCSS"),
        (r"/font-awesome/{version}/css/font-awesome(\.min)?\.css",
         "fontawesome"),
    ],
    "use.fontawesome.com": [
        (r"/releases/v(?P<version>5\.[\w.\-]+?)/css/all(\.min)?\.css",
         "fontawesome5"),
    ],
    "ajax.cloudflare.com": [
        (r"/cdn-cgi/scripts/[0-9a-f]+/cloudflare-static/"
         r"rocket-loader\.min\.js", "cfRocketLoader"),
    ],
}


@dataclass(frozen=True)
class CDNEntry:
    """One compiled (host, path pattern) -> resource rule."""

    domain: str
    pattern: re.Pattern
    resource_id: str


@dataclass(frozen=True)
class MappingMatch:
    """A successful structural match of a request path."""

    entry: CDNEntry
    resource: ResourceDescriptor
    version: Optional[str]  # raw captured token, None when absent


def compile_pattern(source: str) -> re.Pattern:
    """Expand the "{version}" shorthand and compile a path pattern."""
    return re.compile(source.replace("{version}", VERSION_GROUP))


class MappingTable:
    """Immutable host -> ordered pattern list lookup."""

    def __init__(
        self,
        rows: Mapping[str, Iterable[tuple[str, str]]] = CDN_ROWS,
        resources: Mapping[str, ResourceDescriptor] = RESOURCES,
    ):
        self._resources = resources
        exact: dict[str, tuple[CDNEntry, ...]] = {}
        wildcard: list[tuple[str, tuple[CDNEntry, ...]]] = []

        for domain, patterns in rows.items():
            domain = normalize_domain(domain)
            entries = self._compile_domain(domain, patterns)
            if domain.startswith(WILDCARD_PREFIX):
                wildcard.append((domain[len(WILDCARD_PREFIX):], entries))
            elif domain in exact:
                raise MappingTableError(f"Duplicate CDN domain: {domain}")
            else:
                exact[domain] = entries

        self._exact = MappingProxyType(exact)
        self._wildcard = tuple(wildcard)

    def _compile_domain(
        self,
        domain: str,
        patterns: Iterable[tuple[str, str]],
    ) -> tuple[CDNEntry, ...]:
        seen: set[str] = set()
        entries = []
        for source, resource_id in patterns:
            if source in seen:
                raise MappingTableError(
                    f"Duplicate pattern for {domain}: {source}"
                )
            if resource_id not in self._resources:
                raise MappingTableError(
                    f"Unknown resource {resource_id!r} for {domain}"
                )
            seen.add(source)
            entries.append(CDNEntry(
                domain=domain,
                pattern=compile_pattern(source),
                resource_id=resource_id,
            ))
        return tuple(entries)

    @property
    def domains(self) -> list[str]:
        """Registered domains, wildcard ones as their base domain."""
        return list(self._exact) + [base for base, _ in self._wildcard]

    def entries_for(self, host: str) -> tuple[CDNEntry, ...]:
        """All rules for a host: exact ones first, then wildcard ones.

        Returns:
            The ordered rules, empty when the host is unknown.
        """
        host = normalize_domain(host)
        entries = self._exact.get(host, ())
        for base, wildcard_entries in self._wildcard:
            if host == base or host.endswith("." + base):
                entries += wildcard_entries
        return entries

    def match(
        self,
        entries: Iterable[CDNEntry],
        path: str,
    ) -> Optional[MappingMatch]:
        """Return the first rule whose pattern matches the whole path."""
        for entry in entries:
            found = entry.pattern.fullmatch(path)
            if found is None:
                continue
            version = found.groupdict().get("version")
            return MappingMatch(
                entry=entry,
                resource=self._resources[entry.resource_id],
                version=version,
            )
        return None


def determine_cdn_name(domain: str) -> str:
    """Return a CDN's display name, or "Unknown"."""
    domain = normalize_domain(domain)
    if domain in CDN_NAMES:
        return CDN_NAMES[domain]
    for key, name in CDN_NAMES.items():
        if key.startswith(WILDCARD_PREFIX) and domain.endswith(key[1:]):
            return name
    return "Unknown"


DEFAULT_MAPPINGS = MappingTable()

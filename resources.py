"""Registry of bundled library artifacts.

Each ResourceDescriptor names one bundled file. Its path template holds
a "{version}" placeholder that the redirect builder fills with a
resolved bundle version.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping


class MappingTableError(ValueError):
    """Raised when a static lookup table fails validation at load time."""


JAVASCRIPT = "application/javascript"
CSS = "text/css"

VERSION_PLACEHOLDER = "{version}"


@dataclass(frozen=True)
class ResourceDescriptor:
    """One bundled library artifact."""

    id: str
    name: str
    family: str  # key into the version resolver's families
    path_template: str
    mime_type: str

    def path_for(self, version: str) -> str:
        """Substitute a resolved version into the path template."""
        return self.path_template.replace(VERSION_PLACEHOLDER, version)


_RESOURCE_ROWS: list[tuple[str, str, str, str, str]] = [
    # (id, display name, family, path template, mime type)

    # --- AngularJS ---
    ("angular", "AngularJS", "angularjs",
     "resources/angularjs/{version}/angular.min.js", JAVASCRIPT),
    ("angularAnimate", "AngularJS Animate", "angularjs",
     "resources/angularjs/{version}/angular-animate.min.js", JAVASCRIPT),
    ("angularSanitize", "AngularJS Sanitize", "angularjs",
     "resources/angularjs/{version}/angular-sanitize.min.js", JAVASCRIPT),
    ("angularCookies", "AngularJS Cookies", "angularjs",
     "resources/angularjs/{version}/angular-cookies.min.js", JAVASCRIPT),
    ("angularTouch", "AngularJS Touch", "angularjs",
     "resources/angularjs/{version}/angular-touch.min.js", JAVASCRIPT),

    # --- CSS frameworks ---
    ("animateCSS", "Animate.css", "animate.css",
     "resources/animate.css/{version}/animate.min.css", CSS),
    ("bootstrapJS", "Bootstrap JS", "bootstrap.js",
     "resources/bootstrap.js/{version}/bootstrap.min.js", JAVASCRIPT),
    ("bootstrapCSS", "Bootstrap CSS", "bootstrap.css",
     "resources/bootstrap.css/{version}/bootstrap.min.css", CSS),
    ("bootstrapSliderJS", "bootstrap-slider", "bootstrap-slider",
     "resources/bootstrap-slider/{version}/bootstrap-slider.min.js",
     JAVASCRIPT),
    ("bootstrapSliderCSS", "bootstrap-slider CSS", "bootstrap-slider",
     "resources/bootstrap-slider/{version}/bootstrap-slider.min.css", CSS),
    ("fontawesome", "Font Awesome", "fontawesome",
     "resources/fontawesome/{version}/css/font-awesome.min.css", CSS),
    ("fontawesome5", "Font Awesome 5", "fontawesome",
     "resources/fontawesome/{version}/css/all.min.css", CSS),
    ("toastrCSS", "toastr.js CSS", "toastr.js",
     "resources/toastr.js/{version}/toastr.min.css", CSS),

    # --- Frameworks and utilities ---
    ("backbone", "Backbone.js", "backbone.js",
     "resources/backbone.js/{version}/backbone-min.js", JAVASCRIPT),
    ("dojo", "Dojo", "dojo",
     "resources/dojo/{version}/dojo/dojo.js", JAVASCRIPT),
    ("ember", "Ember.js", "ember.js",
     "resources/ember.js/{version}/ember.min.js", JAVASCRIPT),
    ("extCore", "Ext Core", "ext-core",
     "resources/ext-core/{version}/ext-core.js", JAVASCRIPT),
    ("jQuery", "jQuery", "jquery",
     "resources/jquery/{version}/jquery.min.js", JAVASCRIPT),
    ("jQueryUI", "jQuery UI", "jqueryui",
     "resources/jqueryui/{version}/jquery-ui.min.js", JAVASCRIPT),
    ("jqueryValidationPlugin", "jQuery Validation Plugin", "jquery-validate",
     "resources/jquery-validate/{version}/jquery.validate.min.js",
     JAVASCRIPT),
    ("modernizr", "Modernizr", "modernizr",
     "resources/modernizr/{version}/modernizr.min.js", JAVASCRIPT),
    ("moment", "Moment.js", "moment.js",
     "resources/moment.js/{version}/moment.min.js", JAVASCRIPT),
    ("mootools", "MooTools", "mootools",
     "resources/mootools/{version}/mootools-core.min.js", JAVASCRIPT),
    ("prototypeJS", "Prototype", "prototype",
     "resources/prototype/{version}/prototype.js", JAVASCRIPT),
    ("cfRocketLoader", "Cloudflare Rocket Loader", "rocket-loader",
     "resources/rocket-loader/{version}/rocket-loader.min.js", JAVASCRIPT),
    ("scriptaculous", "Scriptaculous", "scriptaculous",
     "resources/scriptaculous/{version}/scriptaculous.js", JAVASCRIPT),
    ("swfobject", "SWFObject", "swfobject",
     "resources/swfobject/{version}/swfobject.js", JAVASCRIPT),
    ("toastrJS", "toastr.js", "toastr.js",
     "resources/toastr.js/{version}/toastr.min.js", JAVASCRIPT),
    ("underscore", "Underscore.js", "underscore.js",
     "resources/underscore.js/{version}/underscore-min.js", JAVASCRIPT),
    ("vueJs", "Vue.js", "vue",
     "resources/vue/{version}/vue.min.js", JAVASCRIPT),
    ("webfont", "Web Font Loader", "webfont",
     "resources/webfont/{version}/webfont.js", JAVASCRIPT),
    ("wow", "WOW", "wow",
     "resources/wow/{version}/wow.min.js", JAVASCRIPT),
]


def _build_resources(
    rows: list[tuple[str, str, str, str, str]],
) -> Mapping[str, ResourceDescriptor]:
    """Build the read-only id -> descriptor table, rejecting duplicate ids."""
    table: dict[str, ResourceDescriptor] = {}
    for resource_id, name, family, template, mime_type in rows:
        if resource_id in table:
            raise MappingTableError(f"Duplicate resource id: {resource_id}")
        if VERSION_PLACEHOLDER not in template:
            raise MappingTableError(f"Missing version placeholder: {resource_id}")
        table[resource_id] = ResourceDescriptor(
            id=resource_id,
            name=name,
            family=family,
            path_template=template,
            mime_type=mime_type,
        )
    return MappingProxyType(table)


RESOURCES: Mapping[str, ResourceDescriptor] = _build_resources(_RESOURCE_ROWS)


def determine_resource_name(resource_id: str) -> str:
    """Return the display name of a resource id, or "Unknown"."""
    resource = RESOURCES.get(resource_id)
    return resource.name if resource else "Unknown"

"""Redirect target construction.

Turns a resolved resource and version into the local URL a request is
redirected to. Every URL carries the session token so the local
resource server can refuse direct guesses of bundled paths.
"""

import secrets
from typing import Optional

from helpers import generate_random_hex_string
from resources import ResourceDescriptor
from version_resolver import VersionPin

DEFAULT_RESOURCE_ROOT = "http://localcdn.invalid"

TOKEN_LENGTH = 32


class RedirectTargetBuilder:
    """Builds `<root>/<path>?token=<secret>` URLs.

    The token is generated once per builder (one per process) and is
    shared by every redirect it produces.
    """

    def __init__(
        self,
        resource_root: str = DEFAULT_RESOURCE_ROOT,
        secret: Optional[str] = None,
    ):
        self.resource_root = resource_root.rstrip("/")
        self.secret = secret or generate_random_hex_string(TOKEN_LENGTH)

    def target_path(self, resource: ResourceDescriptor, pin: VersionPin) -> str:
        return resource.path_for(pin.version)

    def build(self, resource: ResourceDescriptor, pin: VersionPin) -> str:
        """Return the full local URL for a resolved resource."""
        path = self.target_path(resource, pin)
        return f"{self.resource_root}/{path}?token={self.secret}"

    def is_valid_token(self, token: Optional[str]) -> bool:
        """Check a presented token against the session secret."""
        if not token:
            return False
        return secrets.compare_digest(token, self.secret)

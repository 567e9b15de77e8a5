"""Resource identifier parsing.

Splits a WebFinger resource into its scheme and authority. URLs (http and
https) use their network location; every other scheme, known or not, is
read as `user@host[:port]` and the text after the last `@` is the authority.
"""

from enum import IntEnum
from typing import Optional, Tuple
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict

from social.graze.webfinger.errors import ConfigurationError


class Scheme(IntEnum):
    """Resource scheme classification."""

    acct = 1
    mailto = 2
    device = 3
    http = 4
    https = 5
    other = 6


URL_SCHEMES = frozenset({Scheme.http, Scheme.https})


class ResourceIdentifier(BaseModel):
    """Parsed WebFinger resource.

    `raw` is the string exactly as the caller gave it and is what gets sent
    as the `resource` query parameter.
    """

    model_config = ConfigDict(frozen=True)

    scheme: Scheme
    scheme_token: str
    authority_host: Optional[str] = None
    authority_port: Optional[int] = None
    raw: str

    @property
    def authority(self) -> Optional[str]:
        if self.authority_host is None:
            return None
        host = self.authority_host
        if ":" in host:
            host = f"[{host}]"
        if self.authority_port is None:
            return host
        return f"{host}:{self.authority_port}"


def classify_scheme(token: str) -> Scheme:
    """Map a scheme token to a Scheme, falling back to Scheme.other."""
    try:
        return Scheme[token.lower()]
    except KeyError:
        return Scheme.other


def split_authority(
    netloc: str, resource: str
) -> Tuple[Optional[str], Optional[int]]:
    """Split `host[:port]` into its parts.

    Returns:
        Tuple of host (None when empty) and port (None when absent)

    Raises:
        ConfigurationError: When the port is not a valid port number
    """
    parts = urlsplit(f"//{netloc}")
    try:
        port = parts.port
    except ValueError as e:
        raise ConfigurationError(
            f"Invalid port in WebFinger resource {resource!r}"
        ) from e
    return parts.hostname or None, port


def parse_resource(resource: str) -> ResourceIdentifier:
    """Parse a WebFinger resource string.

    Unknown schemes are not rejected; they go through the same `user@host`
    rule as acct, mailto and device. A resource with no derivable authority
    parses successfully with `authority_host` set to None.

    Args:
        resource: Resource as given by the caller

    Returns:
        ResourceIdentifier for the resource

    Raises:
        ConfigurationError: When the authority carries an invalid port
    """
    token, separator, remainder = resource.partition(":")
    if not separator:
        token, remainder = "", resource

    scheme = classify_scheme(token)

    if scheme in URL_SCHEMES:
        netloc = urlsplit(resource).netloc.rpartition("@")[2]
    elif "@" in remainder:
        netloc = remainder.rpartition("@")[2]
        for delimiter in "/?#":
            netloc = netloc.split(delimiter, 1)[0]
    else:
        netloc = ""

    host, port = split_authority(netloc, resource) if netloc else (None, None)

    return ResourceIdentifier(
        scheme=scheme,
        scheme_token=token,
        authority_host=host,
        authority_port=port,
        raw=resource,
    )

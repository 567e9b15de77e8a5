"""Discovery endpoint and query construction.

The endpoint is always `/.well-known/webfinger` on the effective host. The
URL scheme comes from a URL builder so callers talking to plain HTTP test
servers can swap HttpsUrlBuilder for HttpUrlBuilder.
"""

import ipaddress
from typing import ClassVar, Iterable, Optional, Protocol, Tuple, Union
from urllib.parse import urlencode, urlunsplit

from social.graze.webfinger.errors import ConfigurationError
from social.graze.webfinger.identifier import ResourceIdentifier

WELL_KNOWN_PATH = "/.well-known/webfinger"

RelOption = Union[None, str, Iterable[str]]


class UrlBuilder(Protocol):
    """Builds absolute URLs for a fixed scheme."""

    scheme: str
    default_port: int

    def build(
        self,
        host: str,
        port: Optional[int] = None,
        path: str = "/",
        query: Optional[str] = None,
    ) -> str: ...


class HttpsUrlBuilder:
    scheme: ClassVar[str] = "https"
    default_port: ClassVar[int] = 443

    @classmethod
    def build(
        cls,
        host: str,
        port: Optional[int] = None,
        path: str = "/",
        query: Optional[str] = None,
    ) -> str:
        netloc = f"[{host}]" if ":" in host else host
        if port is not None:
            netloc = f"{netloc}:{port}"
        return urlunsplit((cls.scheme, netloc, path, query or "", ""))


class HttpUrlBuilder(HttpsUrlBuilder):
    scheme: ClassVar[str] = "http"
    default_port: ClassVar[int] = 80


def check_host_option(host: str) -> str:
    """Validate a host override.

    Bracketed or bare IPv6 literals are accepted and returned unbracketed;
    any other host containing `:` carries a port, which belongs in the port
    option instead.

    Raises:
        ConfigurationError: When the host includes a port
    """
    if ":" not in host:
        return host
    candidate = host[1:-1] if host.startswith("[") and host.endswith("]") else host
    try:
        ipaddress.IPv6Address(candidate)
    except ValueError as e:
        raise ConfigurationError(
            f"Host option {host!r} must not include a port, use the port option"
        ) from e
    return candidate


def effective_authority(
    identifier: ResourceIdentifier,
    host: Optional[str] = None,
    port: Optional[int] = None,
) -> Tuple[str, Optional[int]]:
    """Pick the host and port a discovery request goes to.

    Explicit options win over the authority parsed from the resource. A port
    of None leaves the URL builder's default port in effect.

    Raises:
        ConfigurationError: When neither an option nor the resource names a
            host, or the host option includes a port
    """
    effective_host = check_host_option(host) if host else identifier.authority_host
    if not effective_host:
        raise ConfigurationError(
            f"Unable to derive a WebFinger host from resource {identifier.raw!r}"
        )
    effective_port = port if port is not None else identifier.authority_port
    return effective_host, effective_port


def normalize_rels(rel: RelOption) -> Tuple[str, ...]:
    if not rel:
        return ()
    if isinstance(rel, str):
        return (rel,)
    return tuple(rel)


def encode_query(resource: str, rel: RelOption = None) -> str:
    """Encode the discovery query string.

    `resource` comes first, followed by one `rel` pair per relation in the
    order given.
    """
    params = [("resource", resource)]
    params.extend(("rel", value) for value in normalize_rels(rel))
    return urlencode(params)


def build_endpoint(
    identifier: ResourceIdentifier,
    host: Optional[str] = None,
    port: Optional[int] = None,
    url_builder: UrlBuilder = HttpsUrlBuilder,
    query: Optional[str] = None,
) -> str:
    """Build the discovery URL for a resource.

    Args:
        identifier: Parsed resource
        host: Host override
        port: Port override
        url_builder: Builder providing the URL scheme
        query: Already encoded query string

    Returns:
        Absolute discovery URL

    Raises:
        ConfigurationError: When no host can be derived
    """
    effective_host, effective_port = effective_authority(identifier, host, port)
    return url_builder.build(
        host=effective_host, port=effective_port, path=WELL_KNOWN_PATH, query=query
    )


def build_request_url(
    identifier: ResourceIdentifier,
    host: Optional[str] = None,
    port: Optional[int] = None,
    rel: RelOption = None,
    url_builder: UrlBuilder = HttpsUrlBuilder,
) -> str:
    """Build the full discovery URL including the encoded query."""
    return build_endpoint(
        identifier,
        host=host,
        port=port,
        url_builder=url_builder,
        query=encode_query(identifier.raw, rel),
    )

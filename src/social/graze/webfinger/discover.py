"""WebFinger discovery.

Ties the pieces together: parse the resource, work out the endpoint, consult
the cache, send the request and turn the reply into a Response or an error.
"""

from typing import Any, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from yarl import URL

from social.graze.webfinger.cache import cache_key, fetch
from social.graze.webfinger.config import WebFingerConfig, default_config
from social.graze.webfinger.endpoint import (
    build_request_url,
    effective_authority,
    normalize_rels,
)
from social.graze.webfinger.errors import (
    ConfigurationError,
    WebFingerError,
    raise_for_status,
)
from social.graze.webfinger.identifier import ResourceIdentifier, parse_resource
from social.graze.webfinger.model import Response, parse_response

JRD_ACCEPT = "application/jrd+json, application/json"


class DiscoveryOptions(BaseModel):
    """Per-call discovery options.

    `rel` may be a single relation or an ordered list of relations; each one
    becomes its own `rel` query parameter.
    """

    model_config = ConfigDict(frozen=True)

    host: Optional[str] = None
    port: Optional[int] = Field(default=None, ge=1, le=65535)
    rel: Union[str, Tuple[str, ...], None] = None
    expires_in: Optional[float] = Field(default=None, gt=0)

    @property
    def rels(self) -> Tuple[str, ...]:
        return normalize_rels(self.rel)


def build_options(
    options: Optional[DiscoveryOptions] = None, **kwargs: Any
) -> DiscoveryOptions:
    """Merge keyword options into a DiscoveryOptions.

    Raises:
        ConfigurationError: When an option has an invalid value
    """
    try:
        if options is None:
            return DiscoveryOptions(**kwargs)
        if kwargs:
            return DiscoveryOptions(**{**options.model_dump(), **kwargs})
        return options
    except ValidationError as e:
        raise ConfigurationError(f"Invalid WebFinger options: {e}") from e


async def request_response(
    config: WebFingerConfig,
    identifier: ResourceIdentifier,
    options: DiscoveryOptions,
) -> Response:
    """Send the discovery request and classify its outcome, bypassing the cache."""
    url = build_request_url(
        identifier,
        host=options.host,
        port=options.port,
        rel=options.rels,
        url_builder=config.url_builder,
    )

    chain_response = await config.http_client.get(
        URL(url, encoded=True), headers={"Accept": JRD_ACCEPT}
    )

    raise_for_status(chain_response.status, chain_response.body)
    return parse_response(chain_response.body)


async def discover(
    resource: str,
    options: Optional[DiscoveryOptions] = None,
    *,
    config: Optional[WebFingerConfig] = None,
    **kwargs: Any,
) -> Response:
    """Discover JRD metadata for a resource.

    Args:
        resource: Resource such as `acct:user@example.com` or a URL
        options: Discovery options; keyword arguments `host`, `port`, `rel`
            and `expires_in` may be given instead or override them
        config: Configuration to use, the shared default when omitted

    Returns:
        Response parsed from the server's JRD

    Raises:
        ConfigurationError: When no discovery host can be derived
        HttpError: On a failed request; BadRequest, Unauthorized, Forbidden
            and NotFound for their statuses
        ParseError: When the body is not a valid JRD
    """
    options = build_options(options, **kwargs)
    config = config or default_config()

    identifier = parse_resource(resource)
    host, port = effective_authority(identifier, options.host, options.port)
    key = cache_key(identifier.raw, host, port, options.rels)

    async def compute() -> Response:
        try:
            return await request_response(config, identifier, options)
        except WebFingerError as e:
            config.logger.warning(f"WebFinger discovery of {resource} failed: {e}")
            raise

    return await fetch(
        config.cache, key, compute, expires_in=options.expires_in, log=config.logger
    )

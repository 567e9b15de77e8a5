"""
WebFinger

This package resolves identity-style resources (`acct:user@host`, `mailto:`,
`device:`, http(s) URLs and any other scheme) into JSON Resource Descriptors
using the WebFinger protocol.

Key Components:
- identifier.py: Resource parsing and authority extraction
- endpoint.py: Discovery URL and query string construction
- chain.py: Middleware chain HTTP client with optional debug tracing
- errors.py: Error taxonomy and HTTP status classification
- model.py: JRD Response and Link models
- cache.py: Pluggable cache stores for successful responses
- config.py: Shared configuration (cache, logger, URL builder, debug, client)
- discover.py: The discovery pipeline
- __main__.py: CLI interface for discovery

The discovery flow follows these steps:
1. Parse the resource and derive the host and port, honouring overrides
2. Look the request up in the configured cache
3. On a miss, GET https://<host>[:<port>]/.well-known/webfinger with the
   `resource` parameter and one `rel` parameter per requested relation
4. Map failing statuses to errors, or parse the body into a Response
5. Store the Response in the cache and return it
"""

from social.graze.webfinger.cache import Cache, CacheStore, RedisCache
from social.graze.webfinger.config import (
    VERSION,
    WebFingerConfig,
    default_config,
    set_default_config,
)
from social.graze.webfinger.discover import DiscoveryOptions, discover
from social.graze.webfinger.endpoint import HttpUrlBuilder, HttpsUrlBuilder
from social.graze.webfinger.errors import (
    BadRequest,
    ConfigurationError,
    Forbidden,
    HttpError,
    NotFound,
    ParseError,
    Unauthorized,
    WebFingerError,
)
from social.graze.webfinger.identifier import ResourceIdentifier, Scheme, parse_resource
from social.graze.webfinger.model import Link, Response

__version__ = VERSION

__all__ = [
    "BadRequest",
    "Cache",
    "CacheStore",
    "ConfigurationError",
    "DiscoveryOptions",
    "Forbidden",
    "HttpError",
    "HttpUrlBuilder",
    "HttpsUrlBuilder",
    "Link",
    "NotFound",
    "ParseError",
    "RedisCache",
    "ResourceIdentifier",
    "Response",
    "Scheme",
    "Unauthorized",
    "WebFingerConfig",
    "WebFingerError",
    "default_config",
    "discover",
    "parse_resource",
    "set_default_config",
]

"""
Common testing utilities for WebFinger tests.

Builds JRD documents and mocked aiohttp sessions and responses so tests can
exercise the discovery pipeline without network access.
"""

import json
from typing import Any, Dict, Optional, Union
from unittest.mock import AsyncMock, Mock

from aiohttp import ClientSession
from multidict import CIMultiDict, CIMultiDictProxy


JRD_DOCUMENT: Dict[str, Any] = {
    "subject": "acct:nov@example.com",
    "aliases": ["https://example.com/nov", "https://example.com/@nov"],
    "properties": {
        "http://example.com/ns/role": "employee",
        "http://example.com/ns/nick": None,
    },
    "links": [
        {
            "rel": "http://openid.net/specs/connect/1.0/issuer",
            "href": "https://openid.example.com",
        },
        {
            "rel": "http://webfinger.net/rel/avatar",
            "type": "image/png",
            "href": "https://example.com/nov.png",
            "titles": {"en": "Avatar", "ja": "アバター"},
        },
        {
            "rel": "vcard",
            "href": "https://example.com/nov.vcf",
            "properties": {"http://example.com/ns/format": "vcard4"},
        },
    ],
}


def make_client_response(
    status: int = 200,
    body: Union[str, bytes, Dict[str, Any]] = JRD_DOCUMENT,
    content_type: str = "application/jrd+json",
) -> Mock:
    """Build a mock aiohttp ClientResponse."""
    if isinstance(body, dict):
        body = json.dumps(body)
    if isinstance(body, str):
        body = body.encode("utf-8")

    response = Mock()
    response.status = status
    response.headers = CIMultiDictProxy(CIMultiDict({"Content-Type": content_type}))
    response.read = AsyncMock(return_value=body)
    response.release = Mock()
    return response


def make_session(response: Optional[Mock] = None) -> Mock:
    """Build a mock ClientSession whose request() returns the given response."""
    session = Mock(spec=ClientSession)
    session.closed = False
    session.request = AsyncMock(return_value=response or make_client_response())
    return session


def requested_url(session: Mock, call_index: int = 0) -> str:
    """Return the URL string passed to session.request for a call."""
    args, _ = session.request.call_args_list[call_index]
    return str(args[1])

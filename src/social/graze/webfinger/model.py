"""JSON Resource Descriptor models.

Unknown members are ignored and missing optional members fall back to empty
values, so servers that return a sparse document still parse. Responses are
shared through the cache, so every container on them is read-only.
"""

from types import MappingProxyType
from typing import Annotated, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    ValidationError,
)

from social.graze.webfinger.errors import ParseError


def _read_only(value: Mapping[str, Optional[str]]) -> Mapping[str, Optional[str]]:
    return MappingProxyType(dict(value))


ReadOnlyMapping = Annotated[
    Mapping[str, Optional[str]],
    AfterValidator(_read_only),
    PlainSerializer(dict, return_type=Dict[str, Optional[str]]),
]


def _empty_mapping() -> Mapping[str, Optional[str]]:
    return MappingProxyType({})


class Link(BaseModel):
    """A single JRD link relation."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    rel: str
    type: Optional[str] = None
    href: Optional[str] = None
    template: Optional[str] = None
    titles: ReadOnlyMapping = Field(default_factory=_empty_mapping)
    properties: ReadOnlyMapping = Field(default_factory=_empty_mapping)


class Response(BaseModel):
    """Parsed WebFinger JRD document."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    subject: Optional[str] = None
    expires: Optional[str] = None
    aliases: Tuple[str, ...] = ()
    properties: ReadOnlyMapping = Field(default_factory=_empty_mapping)
    links: Tuple[Link, ...] = ()

    def links_for(self, rel: str) -> List[Link]:
        """Return every link with the given relation, in document order."""
        return [link for link in self.links if link.rel == rel]

    def link(self, rel: str) -> Optional[Link]:
        return next(iter(self.links_for(rel)), None)


def parse_response(body: Union[str, bytes]) -> Response:
    """Decode a JRD response body.

    Args:
        body: Raw response body

    Returns:
        Response for the document

    Raises:
        ParseError: When the body is not JSON or not a JRD shaped object
    """
    try:
        return Response.model_validate_json(body)
    except ValidationError as e:
        raise ParseError(f"Invalid WebFinger response: {e}", body=body) from e

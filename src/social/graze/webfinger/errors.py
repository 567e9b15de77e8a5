"""WebFinger error taxonomy and HTTP status classification.

Every failure raised by discovery derives from WebFingerError so callers can
catch the whole family, while still being able to tell a misconfigured
resource from a server-side rejection or a malformed document.
"""

from typing import Dict, Optional, Type, Union


Body = Optional[Union[str, bytes]]


class WebFingerError(Exception):
    """Base class for all WebFinger discovery failures."""


class ConfigurationError(WebFingerError):
    """The resource or options cannot produce a discovery endpoint.

    Raised before any network access takes place.
    """


class ParseError(WebFingerError):
    """The response body is not a valid JSON Resource Descriptor."""

    def __init__(self, message: str, body: Body = None) -> None:
        super().__init__(message)
        self.body = body


class HttpError(WebFingerError):
    """The discovery request failed.

    `status` is None when the request never produced a response, e.g. a
    refused connection, a DNS failure or a timeout.
    """

    def __init__(
        self, message: str, status: Optional[int] = None, body: Body = None
    ) -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class BadRequest(HttpError):
    pass


class Unauthorized(HttpError):
    pass


class Forbidden(HttpError):
    pass


class NotFound(HttpError):
    pass


STATUS_ERRORS: Dict[int, Type[HttpError]] = {
    400: BadRequest,
    401: Unauthorized,
    403: Forbidden,
    404: NotFound,
}


def raise_for_status(status: int, body: Body = None) -> None:
    """Raise the error matching a non-2xx status.

    Args:
        status: HTTP status code of the discovery response
        body: Raw response body, kept on the error for diagnostics

    Raises:
        HttpError: Or one of its status specific subclasses
    """
    if 200 <= status < 300:
        return
    error_class = STATUS_ERRORS.get(status, HttpError)
    raise error_class(
        f"WebFinger request failed with status {status}", status=status, body=body
    )

from abc import ABC, abstractmethod
import asyncio
from dataclasses import dataclass
from types import TracebackType
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Generator,
    Mapping,
    Protocol,
    Sequence,
    Union,
)
import logging
from aiohttp import ClientError, ClientResponse, ClientSession, hdrs
from aiohttp.typedefs import StrOrURL
from multidict import CIMultiDict, CIMultiDictProxy
import sentry_sdk

from social.graze.webfinger.errors import HttpError

RequestFunc = Callable[..., Awaitable[ClientResponse]]


class _LoggerStub(Protocol):
    """_Logger defines which methods logger object should have."""

    @abstractmethod
    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        pass

    @abstractmethod
    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        pass

    @abstractmethod
    def exception(self, msg: str, *args: Any, **kwargs: Any) -> None:
        pass


_LoggerType = Union[_LoggerStub, logging.Logger]


@dataclass
class ChainRequest:
    method: str
    url: StrOrURL
    headers: dict[str, Any] | None = None
    kwargs: dict[str, Any] | None = None


@dataclass
class ChainResponse:
    status: int
    headers: CIMultiDictProxy[str]
    body: bytes = b""

    @staticmethod
    async def from_aiohttp_response(response: ClientResponse) -> "ChainResponse":
        return ChainResponse(
            status=response.status,
            headers=response.headers,
            body=await response.read(),
        )

    @property
    def content_type(self) -> str:
        return self.headers.get(hdrs.CONTENT_TYPE, "")

    def text(self, encoding: str = "utf-8") -> str:
        return self.body.decode(encoding, errors="replace")


NextChainCallbackType = Callable[[ChainRequest], Awaitable[ChainResponse]]


class RequestMiddlewareBase(ABC):
    @abstractmethod
    async def handle(
        self, next: NextChainCallbackType, request: ChainRequest
    ) -> ChainResponse:
        pass

    def handle_gen(self, next: NextChainCallbackType) -> NextChainCallbackType:
        async def next_invoke(request: ChainRequest) -> ChainResponse:
            return await self.handle(next, request)

        return next_invoke


class DebugLoggingMiddleware(RequestMiddlewareBase):
    """Traces raw HTTP traffic through the given logger at debug level."""

    def __init__(self, logger: _LoggerType) -> None:
        super().__init__()
        self._logger = logger

    async def handle(
        self, next: NextChainCallbackType, request: ChainRequest
    ) -> ChainResponse:
        self._logger.debug("======= WebFinger Request =======")
        self._logger.debug(f"{request.method} {request.url}")
        for key, value in (request.headers or {}).items():
            self._logger.debug(f"{key}: {value}")
        if request.kwargs and "data" in request.kwargs:
            self._logger.debug(f"{request.kwargs['data']}")

        response = await next(request)

        self._logger.debug("======= WebFinger Response =======")
        self._logger.debug(f"Status: {response.status}")
        for key, value in response.headers.items():
            self._logger.debug(f"{key}: {value}")
        self._logger.debug(response.text())
        return response


class EndOfLineChainMiddleware:
    def __init__(
        self,
        request_func: RequestFunc,
        logger: _LoggerType,
    ) -> None:
        super().__init__()
        self._request_func = request_func
        self._logger = logger

    async def handle(self, request: ChainRequest) -> ChainResponse:

        self._logger.debug(f"Making request: {request.method} {request.url}")

        try:
            response: ClientResponse = await self._request_func(
                request.method.lower(),
                request.url,
                headers=request.headers,
                **(request.kwargs or {}),
            )
            try:
                return await ChainResponse.from_aiohttp_response(response)
            finally:
                response.release()
        except (ClientError, asyncio.TimeoutError) as e:
            sentry_sdk.capture_exception(e)
            raise HttpError(
                f"Request to {request.url} failed: {e!r}", status=None
            ) from e


class ChainMiddlewareContext:
    def __init__(
        self,
        chain_callback: NextChainCallbackType,
        chain_request: ChainRequest,
    ) -> None:
        self._chain_callback = chain_callback
        self._chain_request = chain_request

        self.chain_response: ChainResponse | None = None

    async def _do_request(self) -> ChainResponse:
        self.chain_response = await self._chain_callback(self._chain_request)
        return self.chain_response

    def __await__(self) -> Generator[Any, None, ChainResponse]:
        return self.__aenter__().__await__()

    async def __aenter__(self) -> ChainResponse:
        return await self._do_request()

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        pass


class ChainMiddlewareClient:
    """HTTP client running every request through a middleware chain.

    The underlying ClientSession is either given directly, obtained from
    `session_provider` on each request, or created on first use and owned by
    this client.
    """

    def __init__(
        self,
        client_session: ClientSession | None = None,
        logger: _LoggerType | None = None,
        middleware: Sequence[RequestMiddlewareBase] | None = None,
        headers: Mapping[str, str] | None = None,
        session_provider: Callable[[], ClientSession] | None = None,
    ) -> None:
        self._client = client_session
        self._session_provider = session_provider
        self._closed: bool | None = None

        self._middleware = tuple(middleware or ())
        self._headers: Dict[str, str] = dict(headers or {})

        self._logger: _LoggerType = logger or logging.getLogger("webfinger_chain")

    @property
    def middleware(self) -> tuple[RequestMiddlewareBase, ...]:
        return self._middleware

    @property
    def headers(self) -> Dict[str, str]:
        return dict(self._headers)

    def _session(self) -> ClientSession:
        if self._client is not None:
            return self._client
        if self._session_provider is not None:
            return self._session_provider()
        self._client = ClientSession()
        self._closed = False
        return self._client

    def request(
        self,
        method: str,
        url: StrOrURL,
        **kwargs: Any,
    ) -> ChainMiddlewareContext:
        return self._make_request(
            method=method,
            url=url,
            **kwargs,
        )

    def get(
        self,
        url: StrOrURL,
        **kwargs: Any,
    ) -> ChainMiddlewareContext:
        return self._make_request(
            method=hdrs.METH_GET,
            url=url,
            **kwargs,
        )

    async def close(self) -> None:
        if self._closed is False and self._client is not None:
            await self._client.close()
            self._closed = True

    def _make_request(
        self,
        method: str,
        url: StrOrURL,
        **kwargs: Any,
    ) -> ChainMiddlewareContext:
        headers = CIMultiDict(self._headers)
        headers.update(kwargs.pop("headers", None) or {})

        chain_request = ChainRequest(
            method=method,
            url=url,
            headers=dict(headers),
            kwargs=kwargs,
        )

        end_of_line_middleware = EndOfLineChainMiddleware(
            request_func=lambda *args, **kw: self._session().request(*args, **kw),
            logger=self._logger,
        )

        chain_callback: NextChainCallbackType = end_of_line_middleware.handle

        for mw in reversed(self._middleware):
            chain_callback = mw.handle_gen(chain_callback)

        return ChainMiddlewareContext(
            chain_callback=chain_callback,
            chain_request=chain_request,
        )

    async def __aenter__(self) -> "ChainMiddlewareClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    def __del__(self) -> None:
        if getattr(self, "_closed", None) is None:
            # session not owned by this client, or __init__ raised
            return

        if not self._closed:
            self._logger.warning("WebFinger chain client was not closed")

"""
Configuration for WebFinger discovery.

WebFingerConfig bundles the collaborators a discovery call needs: the cache
store, the logger, the URL builder, the debug flag and the HTTP client. A
default instance is created on first use and shared by callers that do not
pass their own, which keeps the "configure once, use everywhere" ergonomics
without hiding the state: any caller can build and pass a separate config.

Every setter bumps a version counter. The HTTP client is built lazily and
rebuilt on first access after the version changes, so toggling debug adds or
removes the tracing middleware without reconstructing the client on every
request.
"""

import asyncio
import logging
import threading
from typing import Any, Dict, Final, List, Optional, Tuple

from aiohttp import ClientSession, ClientTimeout

from social.graze.webfinger.cache import Cache, CacheStore
from social.graze.webfinger.chain import ChainMiddlewareClient, DebugLoggingMiddleware
from social.graze.webfinger.endpoint import HttpsUrlBuilder, UrlBuilder

VERSION: Final = "0.1.0"

DEFAULT_USER_AGENT: Final = f"WebFinger ({VERSION})"
"""User-Agent header sent with every discovery request."""

DEFAULT_TIMEOUT: Final = 10.0
"""Total timeout in seconds for sessions created by the config."""

LOGGER_NAME: Final = "social.graze.webfinger"


class WebFingerConfig:
    """
    Shared configuration for discovery calls.

    Args:
        cache: Cache store, defaults to an in-process Cache
        logger: Logger used for discovery and debug tracing
        url_builder: Builder for the discovery URL scheme, defaults to HTTPS
        debug: Trace raw HTTP traffic through the logger
        http_client: Client to use instead of the lazily built one
        session: aiohttp session shared by the built clients
        user_agent: User-Agent header for discovery requests
        timeout: Total request timeout for sessions created by this config
    """

    def __init__(
        self,
        cache: Optional[CacheStore] = None,
        logger: Any = None,
        url_builder: Optional[UrlBuilder] = None,
        debug: bool = False,
        http_client: Optional[ChainMiddlewareClient] = None,
        session: Optional[ClientSession] = None,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._lock = threading.RLock()
        self._version = 0

        self._cache = cache if cache is not None else Cache()
        self._logger = logger if logger is not None else logging.getLogger(LOGGER_NAME)
        self._url_builder = url_builder if url_builder is not None else HttpsUrlBuilder
        self._debug = debug
        self._user_agent = user_agent
        self._timeout = timeout

        self._http_client = http_client
        self._http_client_assigned = http_client is not None
        self._http_client_version = -1

        self._session = session
        self._loop_sessions: Dict[asyncio.AbstractEventLoop, ClientSession] = {}
        self._retired_sessions: Dict[
            asyncio.AbstractEventLoop, List[ClientSession]
        ] = {}

        # logger and level it had before debug raised it
        self._raised_logger: Optional[Tuple[logging.Logger, int]] = None
        self._apply_debug_level()

    def _changed(self) -> None:
        self._version += 1

    @property
    def cache(self) -> CacheStore:
        return self._cache

    @cache.setter
    def cache(self, value: CacheStore) -> None:
        with self._lock:
            self._cache = value
            self._changed()

    @property
    def logger(self) -> Any:
        return self._logger

    @logger.setter
    def logger(self, value: Any) -> None:
        with self._lock:
            self._restore_logger_level()
            self._logger = value
            self._apply_debug_level()
            self._changed()

    @property
    def url_builder(self) -> UrlBuilder:
        return self._url_builder

    @url_builder.setter
    def url_builder(self, value: UrlBuilder) -> None:
        with self._lock:
            self._url_builder = value
            self._changed()

    @property
    def debug(self) -> bool:
        return self._debug

    @debug.setter
    def debug(self, value: bool) -> None:
        with self._lock:
            self._debug = bool(value)
            self._apply_debug_level()
            self._changed()

    def enable_debug(self) -> None:
        self.debug = True

    def _apply_debug_level(self) -> None:
        """
        Let debug tracing through a standard logger.

        Tracing is logged at DEBUG, so while debug is on a `logging.Logger`
        whose effective level is higher is lowered to DEBUG. Its previous
        level is restored when debug is turned off or the logger is replaced.
        Other logger objects are left alone.
        """
        if not self._debug:
            self._restore_logger_level()
            return
        logger = self._logger
        if (
            self._raised_logger is None
            and isinstance(logger, logging.Logger)
            and logger.getEffectiveLevel() > logging.DEBUG
        ):
            self._raised_logger = (logger, logger.level)
            logger.setLevel(logging.DEBUG)

    def _restore_logger_level(self) -> None:
        if self._raised_logger is not None:
            logger, level = self._raised_logger
            logger.setLevel(level)
            self._raised_logger = None

    @property
    def user_agent(self) -> str:
        return self._user_agent

    @user_agent.setter
    def user_agent(self, value: str) -> None:
        with self._lock:
            self._user_agent = value
            self._changed()

    @property
    def timeout(self) -> float:
        return self._timeout

    @timeout.setter
    def timeout(self, value: float) -> None:
        with self._lock:
            self._timeout = value
            self._changed()

    @property
    def session(self) -> ClientSession:
        """
        The aiohttp session used by built clients.

        An explicitly assigned session is shared everywhere. Otherwise one
        session is created per running event loop, since aiohttp sessions
        are bound to the loop they were created on. A session whose timeout
        no longer matches `timeout` is replaced; the old one keeps serving
        requests already in flight and is closed by `close()`.
        """
        if self._session is not None:
            return self._session

        loop = asyncio.get_running_loop()
        with self._lock:
            for stale in [lp for lp in self._loop_sessions if lp.is_closed()]:
                del self._loop_sessions[stale]
                self._retired_sessions.pop(stale, None)
            session = self._loop_sessions.get(loop)
            if (
                session is not None
                and not session.closed
                and session.timeout.total != self._timeout
            ):
                self._retired_sessions.setdefault(loop, []).append(session)
                session = None
            if session is None or session.closed:
                session = ClientSession(timeout=ClientTimeout(total=self._timeout))
                self._loop_sessions[loop] = session
            return session

    @session.setter
    def session(self, value: Optional[ClientSession]) -> None:
        with self._lock:
            self._session = value
            self._changed()

    @property
    def http_client(self) -> ChainMiddlewareClient:
        """
        The client discovery requests go through.

        Unless a client was assigned, it is rebuilt on the first access after
        any configuration change and reused otherwise.
        """
        with self._lock:
            if self._http_client_assigned and self._http_client is not None:
                return self._http_client
            if self._http_client is None or self._http_client_version != self._version:
                self._http_client = self._build_http_client()
                self._http_client_version = self._version
            return self._http_client

    @http_client.setter
    def http_client(self, value: Optional[ChainMiddlewareClient]) -> None:
        with self._lock:
            self._http_client = value
            self._http_client_assigned = value is not None
            self._changed()

    def _build_http_client(self) -> ChainMiddlewareClient:
        middleware = []
        if self._debug:
            middleware.append(DebugLoggingMiddleware(self._logger))
        return ChainMiddlewareClient(
            logger=self._logger,
            middleware=middleware,
            headers={"User-Agent": self._user_agent},
            session_provider=lambda: self.session,
        )

    async def close(self) -> None:
        """Close the sessions this config created for the running event loop."""
        loop = asyncio.get_running_loop()
        with self._lock:
            sessions = self._retired_sessions.pop(loop, [])
            current = self._loop_sessions.pop(loop, None)
        if current is not None:
            sessions.append(current)
        for session in sessions:
            if not session.closed:
                await session.close()


_default_config: Optional[WebFingerConfig] = None
_default_lock = threading.Lock()


def default_config() -> WebFingerConfig:
    """Return the shared default configuration, creating it on first access."""
    global _default_config
    with _default_lock:
        if _default_config is None:
            _default_config = WebFingerConfig()
        return _default_config


def set_default_config(config: Optional[WebFingerConfig]) -> None:
    """Replace the shared default configuration; None resets it."""
    global _default_config
    with _default_lock:
        _default_config = config

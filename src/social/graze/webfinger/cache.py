"""Discovery result caching.

Anything with `get(key)` and `set(key, value)` can act as a cache store;
either method may be a coroutine function. Only successful responses are
ever written.
"""

import hashlib
import inspect
import json
import logging
import threading
import time
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Optional,
    Protocol,
    Sequence,
    Tuple,
)

from redis import asyncio as redis

from social.graze.webfinger.model import Response

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = "webfinger:"


class CacheStore(Protocol):
    def get(self, key: str) -> Any: ...

    def set(
        self, key: str, value: Response, expires_in: Optional[float] = None
    ) -> Any: ...


class Cache:
    """In-process cache store.

    Entries live until they expire or the cache is cleared; there is no
    eviction, so long running processes resolving many distinct resources
    should use an external store such as RedisCache.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, Tuple[Response, Optional[float]]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Response]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at is not None and expires_at <= time.monotonic():
                del self._entries[key]
                return None
            return value

    def set(
        self, key: str, value: Response, expires_in: Optional[float] = None
    ) -> None:
        expires_at = None
        if expires_in is not None:
            expires_at = time.monotonic() + expires_in
        with self._lock:
            self._entries[key] = (value, expires_at)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class RedisCache:
    """Cache store backed by Redis.

    Responses are stored as JSON. `default_expires_in` applies when a write
    does not carry its own expiry.
    """

    def __init__(
        self, client: redis.Redis, default_expires_in: Optional[int] = None
    ) -> None:
        self._client = client
        self._default_expires_in = default_expires_in

    async def get(self, key: str) -> Optional[Response]:
        data = await self._client.get(key)
        if data is None:
            return None
        return Response.model_validate_json(data)

    async def set(
        self, key: str, value: Response, expires_in: Optional[float] = None
    ) -> None:
        if expires_in is None:
            expires_in = self._default_expires_in
        await self._client.set(
            key,
            value.model_dump_json(),
            ex=int(expires_in) if expires_in else None,
        )


def cache_key(
    resource: str, host: str, port: Optional[int], rels: Sequence[str]
) -> str:
    """Build the cache key for a discovery request.

    The key covers the resource, the effective host and port and the rel
    values in request order.
    """
    payload = json.dumps([resource, host, port, list(rels)], separators=(",", ":"))
    digest = hashlib.sha256(payload.encode("utf-8")).hexdigest()
    return f"{CACHE_KEY_PREFIX}{digest}"


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


async def fetch(
    store: CacheStore,
    key: str,
    compute: Callable[[], Awaitable[Response]],
    expires_in: Optional[float] = None,
    log: Any = None,
) -> Response:
    """Return the cached response for key, computing and storing it on a miss.

    Exceptions raised by compute propagate and leave the store untouched.
    Hit and miss messages go to `log`, or this module's logger when omitted.
    """
    log = log if log is not None else logger

    cached = await _resolve(store.get(key))
    if cached is not None:
        log.debug(f"WebFinger cache hit for {key}")
        return cached

    log.debug(f"WebFinger cache miss for {key}")
    value = await compute()

    if expires_in is None:
        await _resolve(store.set(key, value))
    else:
        await _resolve(store.set(key, value, expires_in=expires_in))
    return value

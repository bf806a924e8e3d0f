"""
Client code for Redis access, with an in-memory fallback if Redis is unavailable.

Detection config overrides are the only state kept here. When Redis cannot be
reached the overrides live in a bounded in-process map that honours the same
expiry as Redis would, so an override written during an outage does not outlive
its TTL once Redis comes back.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import asyncio
import fnmatch
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Iterator, Optional, Tuple, TypeVar

from config import REDIS_URL, settings

log = logging.getLogger(__name__)

T = TypeVar("T")

_REDIS_OP_TIMEOUT_SECONDS = 0.5
_REDIS_SCAN_TIMEOUT_SECONDS = 1.0


class FallbackStore:
    """Bounded key/value map with optional per-key expiry (monotonic clock)."""

    def __init__(self, max_items: int, clock: Callable[[], float] = time.monotonic):
        self.max_items = max_items
        self._clock = clock
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}

    def _live(self, key: str) -> Optional[str]:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._data[key]
            return None
        return value

    def get(self, key: str) -> Optional[str]:
        return self._live(key)

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        if key not in self._data and len(self._data) >= self.max_items:
            self.purge_expired()
            if len(self._data) >= self.max_items:
                log.debug("Fallback store full, dropping %s", key)
                return False
        expires_at = self._clock() + ttl if ttl else None
        self._data[key] = (value, expires_at)
        return True

    def pop(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self._live(key)
        self._data.pop(key, None)
        return default if value is None else value

    def match(self, pattern: str) -> list[str]:
        return [k for k in list(self._data) if fnmatch.fnmatch(k, pattern) and self._live(k) is not None]

    def purge_expired(self) -> int:
        now = self._clock()
        expired = [k for k, (_, exp) in self._data.items() if exp is not None and now >= exp]
        for key in expired:
            del self._data[key]
        return len(expired)

    def clear(self) -> None:
        self._data.clear()

    def __setitem__(self, key: str, value: str) -> None:
        self.set(key, value)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self._live(key) is not None

    def __iter__(self) -> Iterator[str]:
        return iter(self.match("*"))

    def __len__(self) -> int:
        return len(self.match("*"))


_redis_client: Any = None
_fallback = FallbackStore(int(settings.store_fallback_max_items))
_using_fallback = False
_init_lock = asyncio.Lock()
_retry_after_monotonic: float = 0.0


async def get_redis() -> Any:
    global _redis_client, _using_fallback, _retry_after_monotonic

    if _redis_client is not None:
        return _redis_client
    if time.monotonic() < _retry_after_monotonic:
        _using_fallback = True
        return None

    async with _init_lock:
        if _redis_client is not None:
            return _redis_client
        if time.monotonic() < _retry_after_monotonic:
            _using_fallback = True
            return None
        try:
            import redis.asyncio as aioredis

            client = aioredis.from_url(
                REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=_REDIS_OP_TIMEOUT_SECONDS,
                socket_timeout=_REDIS_OP_TIMEOUT_SECONDS,
            )
            await asyncio.wait_for(client.ping(), timeout=_REDIS_OP_TIMEOUT_SECONDS)
            _redis_client = client
            _retry_after_monotonic = 0.0
            _using_fallback = False
            log.info("Redis connected: %s", REDIS_URL)
            return _redis_client
        except Exception as exc:
            cooldown = max(0.0, float(settings.store_redis_retry_cooldown_seconds))
            _retry_after_monotonic = time.monotonic() + cooldown
            if not _using_fallback:
                log.warning("Redis unavailable (%s), using in-memory fallback", exc)
                _using_fallback = True
            return None


async def _with_fallback(
    op: str,
    subject: str,
    call: Callable[[Any], Awaitable[T]],
    fallback: Callable[[], T],
    timeout: float = _REDIS_OP_TIMEOUT_SECONDS,
) -> T:
    client = await get_redis()
    if client is None:
        return fallback()
    try:
        return await asyncio.wait_for(call(client), timeout=timeout)
    except Exception as exc:
        log.debug("Redis %s error %s: %s", op, subject, exc)
        return fallback()


async def redis_get(key: str) -> Optional[str]:
    return await _with_fallback("GET", key, lambda c: c.get(key), lambda: _fallback.get(key))


async def redis_set(key: str, value: str, ttl: Optional[int] = None) -> None:
    def call(client: Any) -> Awaitable[Any]:
        return client.setex(key, ttl, value) if ttl else client.set(key, value)

    await _with_fallback("SET", key, call, lambda: _fallback.set(key, value, ttl))


async def redis_delete(key: str) -> None:
    await _with_fallback("DEL", key, lambda c: c.delete(key), lambda: _fallback.pop(key))


async def redis_scan(pattern: str) -> list[str]:
    async def scan(client: Any) -> list[str]:
        return [key async for key in client.scan_iter(pattern)]

    return await _with_fallback(
        "SCAN", pattern, scan, lambda: _fallback.match(pattern), timeout=_REDIS_SCAN_TIMEOUT_SECONDS,
    )


def is_using_fallback() -> bool:
    return _using_fallback


async def close_redis() -> None:
    global _redis_client
    client, _redis_client = _redis_client, None
    if client is not None:
        try:
            await client.aclose()
        except Exception as exc:
            log.debug("Redis close error: %s", exc)

"""
Retry decorator for metric source calls. The policy (attempts, initial delay,
backoff factor and delay cap) defaults to the connector retry settings and is
resolved when the wrapped call runs, so tuning the settings affects sources
that were already constructed.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Iterator, Optional, Tuple, Type, TypeVar, cast

from config import settings

log = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


@dataclass(frozen=True)
class RetryPolicy:
    attempts: int
    delay: float
    backoff: float
    max_delay: float

    def delays(self) -> Iterator[float]:
        """Sleeps between consecutive attempts; one fewer than ``attempts``."""
        current = self.delay
        for _ in range(max(self.attempts - 1, 0)):
            yield min(current, self.max_delay)
            current *= self.backoff


def _policy(
    attempts: Optional[int],
    delay: Optional[float],
    backoff: Optional[float],
    max_delay: Optional[float],
) -> RetryPolicy:
    return RetryPolicy(
        attempts=max(1, settings.connector_retry_attempts if attempts is None else attempts),
        delay=settings.connector_retry_delay if delay is None else delay,
        backoff=settings.connector_retry_backoff if backoff is None else backoff,
        max_delay=settings.connector_retry_max_delay if max_delay is None else max_delay,
    )


def retry(
    *,
    attempts: Optional[int] = None,
    delay: Optional[float] = None,
    backoff: Optional[float] = None,
    max_delay: Optional[float] = None,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
) -> Callable[[F], F]:
    def decorator(func: F) -> F:
        name = getattr(func, "__qualname__", repr(func))

        if inspect.iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                policy = _policy(attempts, delay, backoff, max_delay)
                for attempt, pause in enumerate(policy.delays(), start=1):
                    try:
                        return await func(*args, **kwargs)
                    except exceptions as exc:
                        log.debug("%s failed (attempt %d/%d): %s", name, attempt, policy.attempts, exc)
                        await asyncio.sleep(pause)
                return await func(*args, **kwargs)

            return cast(F, async_wrapper)

        @wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            policy = _policy(attempts, delay, backoff, max_delay)
            for attempt, pause in enumerate(policy.delays(), start=1):
                try:
                    return func(*args, **kwargs)
                except exceptions as exc:
                    log.debug("%s failed (attempt %d/%d): %s", name, attempt, policy.attempts, exc)
                    time.sleep(pause)
            return func(*args, **kwargs)

        return cast(F, sync_wrapper)

    return decorator

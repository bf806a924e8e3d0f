"""
Centralized exception handling decorator for API route functions.

The :func:`handle_exceptions` decorator wraps an endpoint handler and converts
uncaught exceptions into :class:`fastapi.HTTPException` responses.
HTTPExceptions raised by the handler pass through untouched. Upstream metric
source failures become ``502``, rejected input ``400``, and anything else a
``500`` carrying the exception message.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import inspect
import logging
from functools import wraps
from typing import Any, Callable, TypeVar, cast

from fastapi import HTTPException

from datasources.exceptions import DataSourceError
from engine.exceptions import MetricFetchError, PersistenceError

log = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def _status_for(exc: Exception) -> int:
    if isinstance(exc, (MetricFetchError, DataSourceError)):
        return 502
    if isinstance(exc, PersistenceError):
        return 503
    if isinstance(exc, ValueError):
        return 400
    return 500


def _to_http(func: Callable[..., Any], exc: Exception) -> HTTPException:
    code = _status_for(exc)
    if code >= 500:
        log.exception("Unhandled error in %s", func.__name__)
    return HTTPException(status_code=code, detail=str(exc))


def handle_exceptions(func: F) -> F:
    """Decorator that converts uncaught exceptions to HTTP errors.

    Works with both regular and async functions.
    """

    if inspect.iscoroutinefunction(func):
        @wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return await func(*args, **kwargs)
            except HTTPException:
                raise
            except Exception as exc:
                raise _to_http(func, exc) from exc

        return cast(F, async_wrapper)

    @wraps(func)
    def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except HTTPException:
            raise
        except Exception as exc:
            raise _to_http(func, exc) from exc

    return cast(F, sync_wrapper)

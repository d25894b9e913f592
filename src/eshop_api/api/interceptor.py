"""Request interception for the legacy shop routes.

``with_cache`` turns a ``(params) -> HandlerResult`` handler into a
Starlette endpoint that answers repeated reads from the response cache.
``uncached`` does the same without the cache, for writes.

Example:
    ```python
    @router.post("/get_settings")
    @with_cache(cache_service, "get_settings")
    def get_settings(params: dict) -> HandlerResult:
        return shop.handle("get_settings", params)
    ```
"""

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from eshop_api.dto import ShopRequest
from eshop_api.errors import CacheSerializationError, ValidationError
from eshop_api.handlers import Handler, HandlerResult
from eshop_api.log import mask_sensitive
from eshop_api.services import ResponseCacheService

logger = logging.getLogger(__name__)

Endpoint = Callable[[Request], Awaitable[JSONResponse]]


async def read_params(request: Request) -> dict[str, Any]:
    """Parse a JSON body into request parameters.

    An empty body reads as no parameters.

    Raises:
        ValidationError: If the body is not a JSON object
    """
    body = await request.body()
    if not body.strip():
        return {}
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ValidationError(f"Invalid JSON body: {e}") from e
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    params = ShopRequest.model_validate(data).to_params()
    logger.debug("%s %s params %s", request.method, request.url.path, mask_sensitive(params))
    return params


def bypasses_cache(request: Request) -> bool:
    return "no-cache" in request.headers.get("cache-control", "").lower()


def _respond(result: HandlerResult) -> JSONResponse:
    return JSONResponse(content=result.payload, status_code=result.status_code)


def with_cache(
    cache_service: ResponseCacheService,
    endpoint: str,
    ttl: int | None = None,
) -> Callable[[Handler], Endpoint]:
    """Serve an idempotent read handler through the response cache.

    On a hit the handler is not called. On a miss the handler runs in the
    threadpool and its payload is stored when the result is cacheable.
    Handler exceptions propagate unchanged.

    Args:
        cache_service: Response cache to read and fill
        endpoint: Endpoint name, the first segment of every key
        ttl: Override the cache's default TTL for this endpoint

    Returns:
        Decorator producing the route endpoint
    """

    def decorator(handler: Handler) -> Endpoint:
        async def route(request: Request) -> JSONResponse:
            params = await read_params(request)
            key = cache_service.key_for(endpoint, params)

            if bypasses_cache(request):
                logger.debug("Cache BYPASS %s", key)
                return _respond(await run_in_threadpool(handler, params))

            cached = cache_service.lookup(key)
            if cached is not None:
                logger.info("Cache HIT %s", key)
                return JSONResponse(content=cached)

            logger.info("Cache MISS %s", key)
            result = await run_in_threadpool(handler, params)

            if result.cacheable:
                try:
                    if cache_service.store(key, result.payload, ttl):
                        logger.debug("Cached %s", key)
                except CacheSerializationError as e:
                    logger.warning("Response for %s not cached: %s", key, e.message)
            else:
                logger.debug("Not caching %s (status %d)", key, result.status_code)

            return _respond(result)

        route.__name__ = getattr(handler, "__name__", endpoint)
        route.__doc__ = handler.__doc__
        return route

    return decorator


def uncached(handler: Handler) -> Endpoint:
    """Serve a handler without caching."""

    async def route(request: Request) -> JSONResponse:
        params = await read_params(request)
        return _respond(await run_in_threadpool(handler, params))

    route.__name__ = getattr(handler, "__name__", "route")
    route.__doc__ = handler.__doc__
    return route

import logging
import time
from typing import Any

from fastapi import APIRouter, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from eshop_api.api.dependencies import CacheHandlerDep, lifespan
from eshop_api.api.interceptor import uncached, with_cache
from eshop_api.config import Settings, get_settings
from eshop_api.dto import (
    CacheStatsResponse,
    ClearCacheRequest,
    ClearCacheResponse,
    HealthCheckResponse,
    ServiceInfoResponse,
)
from eshop_api.errors import ShopApiError
from eshop_api.handlers import CacheHandler, ShopHandler
from eshop_api.log import setup_logging
from eshop_api.repositories import Database
from eshop_api.services import ResponseCacheService

logger = logging.getLogger(__name__)

VERSION = "1.0.0"

# Idempotent reads served through the response cache.
CACHED_ENDPOINTS = ("get_settings", "get_sections", "get_ticket_types")

FEATURES = [
    "Response caching for better performance",
    "Cart management",
    "Support tickets",
    "Address management",
    "Product FAQs",
]


def _envelope(message: str, data: Any = None) -> dict[str, Any]:
    return {"error": True, "message": message, "data": [] if data is None else data}


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ShopApiError)
    async def shop_api_error(request: Request, exc: ShopApiError) -> JSONResponse:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_response())

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        messages = "; ".join(str(error.get("msg", "")) for error in exc.errors())
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=_envelope(messages))

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_envelope("Internal Server Error"),
        )


def _register_shop_routes(
    app: FastAPI, shop: ShopHandler, cache_service: ResponseCacheService, prefix: str
) -> None:
    router = APIRouter(prefix=prefix, tags=["shop"])
    for endpoint in shop.endpoints:
        handler = shop.handler_for(endpoint)
        if endpoint in CACHED_ENDPOINTS:
            route = with_cache(cache_service, endpoint)(handler)
        else:
            route = uncached(handler)
        router.add_api_route(f"/{endpoint}", route, methods=["POST"], name=endpoint)
    app.include_router(router)


def create_app(
    settings: Settings | None = None,
    cache_service: ResponseCacheService | None = None,
    database: Database | None = None,
) -> FastAPI:
    """Build the API application.

    Args:
        settings: Application settings. If None, uses global settings.
        cache_service: Response cache. If None, creates the configured backend.
        database: Database gateway. If None, connects to ``settings.database_url``.

    Returns:
        Configured FastAPI app
    """
    settings = settings or get_settings()
    setup_logging(settings)

    database = database or Database.create(settings.database_url)
    cache_service = cache_service or ResponseCacheService.create(ttl=settings.cache_ttl)
    shop = ShopHandler.create(database, settings)

    app = FastAPI(
        title="eShop API",
        description="Legacy-compatible e-commerce API with response caching",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = database
    app.state.cache_service = cache_service
    app.state.cache_handler = CacheHandler(cache_service=cache_service, database=database)
    app.state.shop_handler = shop

    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "%s %s %d %.1fms", request.method, request.url.path, response.status_code, duration_ms
        )
        return response

    _register_exception_handlers(app)

    @app.get("/", response_model=ServiceInfoResponse)
    async def root() -> ServiceInfoResponse:
        """Root endpoint with API information."""
        return ServiceInfoResponse(message="Welcome to the eShop API", version=VERSION, features=FEATURES)

    @app.get("/health", response_model=HealthCheckResponse)
    async def health(handler: CacheHandlerDep) -> Any:
        """Database and cache health; 503 when the database is unreachable."""
        result = handler.health_check()
        if not result.database_healthy:
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=result.model_dump()
            )
        return result

    @app.get("/admin/cache-stats", response_model=CacheStatsResponse)
    async def cache_stats(handler: CacheHandlerDep) -> CacheStatsResponse:
        """Get response cache statistics."""
        return handler.get_stats()

    @app.post("/admin/clear-cache", response_model=ClearCacheResponse)
    async def clear_cache(
        handler: CacheHandlerDep, body: ClearCacheRequest | None = None
    ) -> ClearCacheResponse:
        """Delete cached responses whose key contains the pattern."""
        return handler.clear_cache(body or ClearCacheRequest())

    _register_shop_routes(app, shop, cache_service, settings.api_prefix)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "eshop_api.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )

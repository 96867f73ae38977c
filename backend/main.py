"""
Granite Catalog API

FastAPI application serving the monument catalog:
- /api/products, /api/products/{category}, /api/colors, /api/search
- /api/image, /api/images/{path}
- /api/cache/*
- /api/health

Run:
    cd backend
    uvicorn main:create_app --factory --reload
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from cache import CacheSweeper, TTLCache, cache_router
from catalog.base import CatalogGateway
from catalog.filesystem import FilesystemCatalog
from catalog.routes import router as catalog_router
from catalog.strapi_client import StrapiCatalog, StrapiClient
from config import AppConfig, load_config
from image_optimizer.routes_fastapi import router as image_router
from image_optimizer.transformer import ImageTransformer

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ============================================
# Exception handlers
# ============================================

async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "error": "Invalid request parameters",
            "details": jsonable_encoder(exc.errors()),
        },
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# ============================================
# App factory
# ============================================

def create_app(
    config: Optional[AppConfig] = None,
    cache: Optional[TTLCache] = None,
    catalog: Optional[CatalogGateway] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        config: Settings, defaults to load_config()
        cache: API cache, defaults to a fresh TTLCache from config
        catalog: Catalog gateway, defaults to one matching config.catalog_source
        http_client: Outbound client for Strapi; created (and closed) here if omitted
    """
    config = config or load_config()
    setup_logging(config.log_level)
    if cache is None:
        cache = TTLCache(
            default_ttl=config.api_cache_ttl_seconds,
            max_entries=config.max_entries,
        )
    owns_http_client = http_client is None
    if owns_http_client:
        http_client = httpx.AsyncClient(
            timeout=config.http_timeout_seconds,
            follow_redirects=True,
        )

    strapi_client = None
    if config.catalog_source == "strapi":
        strapi_client = StrapiClient(
            base_url=config.strapi_url,
            http_client=http_client,
            api_token=config.strapi_api_token,
        )
    if catalog is None:
        if strapi_client is not None:
            catalog = StrapiCatalog(
                strapi_client, cache=cache, ttl=config.api_cache_ttl_seconds,
            )
        else:
            catalog = FilesystemCatalog(config.images_dir)

    sweeper = CacheSweeper(cache, interval=config.cache_cleanup_interval_seconds)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            f"Starting catalog API (source={config.catalog_source}, images={config.images_dir})"
        )
        sweeper.start()
        try:
            yield
        finally:
            await sweeper.stop()
            if owns_http_client:
                await http_client.aclose()

    app = FastAPI(title="Granite Catalog API", lifespan=lifespan)
    app.state.config = config
    app.state.api_cache = cache
    app.state.catalog = catalog
    app.state.transformer = ImageTransformer()
    app.state.strapi_client = strapi_client

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(catalog_router)
    app.include_router(image_router)
    app.include_router(cache_router)

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "service": "granite-catalog",
            "catalog_source": config.catalog_source,
            "cache_stats": cache.stats(),
        }

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app(), host="0.0.0.0", port=8000, log_config=None)

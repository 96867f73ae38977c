"""
Catalog API Routes

Provides endpoints for:
- Product category listing
- Images within a category
- Color varieties
- Product search

All listings are cached in the app TTL cache. Failures are never cached.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from cache import keys
from cache.memory_store import TTLCache
from cache.routes import get_cache
from config import AppConfig
from dependencies import get_catalog, get_config
from image_optimizer.paths import sanitize_path

from .base import CatalogError, CatalogGateway, CatalogNotFoundError
from .models import (
    CategoriesResponse,
    CategoryImagesResponse,
    ColorVariety,
    ErrorResponse,
    SearchResponse,
)

logger = logging.getLogger(__name__)

MIN_SEARCH_QUERY_LENGTH = 2

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}

# ============================================
# Router
# ============================================

router = APIRouter(prefix="/api", tags=["Catalog"])


# ============================================
# Endpoints
# ============================================

@router.get(
    "/products",
    response_model=CategoriesResponse,
    response_model_exclude_none=True,
    responses=ERROR_RESPONSES,
)
async def list_product_categories(
    cache: TTLCache = Depends(get_cache),
    catalog: CatalogGateway = Depends(get_catalog),
    config: AppConfig = Depends(get_config),
):
    """
    List product categories.

    Example:
        GET /api/products
    """
    try:
        categories = await cache.with_cache(
            keys.product_categories(),
            catalog.list_categories,
            ttl=config.api_cache_ttl_seconds,
        )
    except CatalogNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except CatalogError as e:
        logger.error(f"[Catalog] Error fetching product categories: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch product categories")

    return CategoriesResponse(categories=categories)


@router.get("/products/{category}", response_model=CategoryImagesResponse, responses=ERROR_RESPONSES)
async def list_category_images(
    category: str,
    cache: TTLCache = Depends(get_cache),
    catalog: CatalogGateway = Depends(get_catalog),
    config: AppConfig = Depends(get_config),
):
    """
    List images in one product category.

    Example:
        GET /api/products/monuments
    """
    sanitized = sanitize_path(category.strip())
    if not sanitized:
        raise HTTPException(status_code=400, detail="Invalid category")

    try:
        images = await cache.with_cache(
            keys.products_by_category(sanitized),
            lambda: catalog.list_category_images(sanitized),
            ttl=config.api_cache_ttl_seconds,
        )
    except CatalogNotFoundError:
        raise HTTPException(status_code=404, detail="Category not found")
    except CatalogError as e:
        logger.error(f"[Catalog] Error fetching product images for {sanitized}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch product images")

    return CategoryImagesResponse(images=images)


@router.get(
    "/colors",
    response_model=List[ColorVariety],
    response_model_exclude_none=True,
    responses=ERROR_RESPONSES,
)
async def list_color_varieties(
    cache: TTLCache = Depends(get_cache),
    catalog: CatalogGateway = Depends(get_catalog),
    config: AppConfig = Depends(get_config),
):
    """
    List granite color swatches.
    """
    try:
        return await cache.with_cache(
            keys.color_varieties(),
            catalog.list_color_varieties,
            ttl=config.api_cache_ttl_seconds,
        )
    except CatalogError as e:
        logger.error(f"[Catalog] Error fetching color images: {e}")
        raise HTTPException(
            status_code=500,
            detail="Failed to load color images. Please try again later.",
        )


@router.get(
    "/search",
    response_model=SearchResponse,
    response_model_exclude_none=True,
    responses=ERROR_RESPONSES,
)
async def search_products(
    q: Optional[str] = Query(None, description="Search query, at least 2 characters"),
    cache: TTLCache = Depends(get_cache),
    catalog: CatalogGateway = Depends(get_catalog),
    config: AppConfig = Depends(get_config),
):
    """
    Search product images by name across all categories.

    Example:
        GET /api/search?q=heart
    """
    if not q or len(q.strip()) < MIN_SEARCH_QUERY_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Search query must be at least {MIN_SEARCH_QUERY_LENGTH} characters",
        )

    try:
        results = await cache.with_cache(
            keys.product_search(q),
            lambda: catalog.search(q),
            ttl=config.api_cache_ttl_seconds,
        )
    except CatalogNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except CatalogError as e:
        logger.error(f"[Catalog] Error searching products: {e}")
        raise HTTPException(status_code=500, detail="Failed to search products")

    return SearchResponse(query=q, count=len(results), results=results)

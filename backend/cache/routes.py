"""
Cache API Routes

Provides HTTP endpoints for cache administration:
- GET  /api/cache/stats               - Get cache statistics
- POST /api/cache/cleanup             - Remove expired entries now
- POST /api/cache/invalidate/{scope}  - Drop one key namespace
- POST /api/cache/clear               - Drop everything
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from . import keys
from .memory_store import TTLCache

router = APIRouter(prefix="/api/cache", tags=["cache"])


def get_cache(request: Request) -> TTLCache:
    """FastAPI dependency returning the app-wide cache created by create_app()."""
    return request.app.state.api_cache


# ============================================
# Response Models
# ============================================

class CacheStatsResponse(BaseModel):
    """Response model for stats endpoint"""
    total_entries: int
    live_entries: int
    max_entries: Optional[int]
    hits: int
    misses: int
    evictions: int
    inflight: int
    default_ttl_seconds: float


class CacheMutationResponse(BaseModel):
    """Response model for cleanup / invalidate / clear"""
    success: bool
    removed_entries: int
    message: str


# ============================================
# API Endpoints
# ============================================

@router.get("/stats", response_model=CacheStatsResponse)
async def get_cache_stats(cache: TTLCache = Depends(get_cache)):
    """
    Get cache statistics
    """
    return CacheStatsResponse(**cache.stats())


@router.post("/cleanup", response_model=CacheMutationResponse)
async def cleanup_cache(cache: TTLCache = Depends(get_cache)):
    """
    Remove expired entries.

    The background sweeper does this on a timer; this endpoint runs it now.
    """
    removed = cache.cleanup()
    return CacheMutationResponse(
        success=True,
        removed_entries=removed,
        message=f"Removed {removed} expired entries",
    )


@router.post("/invalidate/{scope}", response_model=CacheMutationResponse)
async def invalidate_cache(
    scope: str,
    category: Optional[str] = None,
    cache: TTLCache = Depends(get_cache),
):
    """
    Invalidate one namespace: products, category (needs ?category=),
    colors, search, images or all.
    """
    if scope == "products":
        removed = keys.invalidate_products(cache)
    elif scope == "category":
        if not category:
            raise HTTPException(status_code=400, detail="category is required")
        removed = keys.invalidate_category(cache, category)
    elif scope == "colors":
        removed = keys.invalidate_colors(cache)
    elif scope == "search":
        removed = keys.invalidate_search(cache)
    elif scope == "images":
        removed = keys.invalidate_images(cache)
    elif scope == "all":
        removed = keys.invalidate_all(cache)
    else:
        raise HTTPException(status_code=400, detail=f"Unknown cache scope: {scope}")

    return CacheMutationResponse(
        success=True,
        removed_entries=removed,
        message=f"Invalidated {scope}",
    )


@router.post("/clear", response_model=CacheMutationResponse)
async def clear_cache(cache: TTLCache = Depends(get_cache)):
    """
    Clear all cache entries
    """
    removed = cache.clear()
    return CacheMutationResponse(
        success=True,
        removed_entries=removed,
        message=f"Cleared {removed} cache entries",
    )

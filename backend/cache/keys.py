"""
Cache Keys

Key builders for the API cache. Every parameter that changes a response is
part of its key, so two requests that differ in any of them never collide.
"""

from typing import Optional

from .memory_store import TTLCache

PRODUCT_CATEGORIES = "product-categories"
COLOR_VARIETIES = "color-varieties"
PRODUCTS_PREFIX = "products-"
SEARCH_PREFIX = "search-"
STRAPI_PRODUCTS_PREFIX = "strapi-products-"
IMAGE_PREFIX = "image-"


def product_categories() -> str:
    return PRODUCT_CATEGORIES


def products_by_category(category: str) -> str:
    return f"{PRODUCTS_PREFIX}{category}"


def color_varieties() -> str:
    return COLOR_VARIETIES


def product_search(query: str) -> str:
    """Search keys are case-insensitive, matching how the search itself compares."""
    return f"{SEARCH_PREFIX}{query.strip().lower()}"


def strapi_products(category: Optional[str] = None) -> str:
    return f"{STRAPI_PRODUCTS_PREFIX}{category or 'all'}"


def image(
    path: str,
    width: Optional[int] = None,
    height: Optional[int] = None,
    image_format: Optional[str] = None,
    quality: Optional[int] = None,
    fit: Optional[str] = None,
) -> str:
    return (
        f"{IMAGE_PREFIX}{path}"
        f"-{width or 'auto'}"
        f"-{height or 'auto'}"
        f"-{image_format or 'source'}"
        f"-{quality or 'default'}"
        f"-{fit or 'default'}"
    )


# ============================================
# Invalidation helpers
# ============================================

def invalidate_products(cache: TTLCache) -> int:
    """Drop the category listing and every per-category image listing."""
    removed = int(cache.delete(PRODUCT_CATEGORIES))
    removed += cache.delete_prefix(PRODUCTS_PREFIX)
    removed += cache.delete_prefix(STRAPI_PRODUCTS_PREFIX)
    return removed


def invalidate_category(cache: TTLCache, category: str) -> int:
    removed = int(cache.delete(products_by_category(category)))
    removed += int(cache.delete(strapi_products(category)))
    return removed


def invalidate_colors(cache: TTLCache) -> int:
    return int(cache.delete(COLOR_VARIETIES))


def invalidate_search(cache: TTLCache) -> int:
    return cache.delete_prefix(SEARCH_PREFIX)


def invalidate_images(cache: TTLCache) -> int:
    return cache.delete_prefix(IMAGE_PREFIX)


def invalidate_all(cache: TTLCache) -> int:
    return cache.clear()

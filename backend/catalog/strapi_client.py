"""
Strapi CMS Client

Thin async client for the Strapi REST API plus a CatalogGateway built on it.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from cache import keys
from cache.memory_store import TTLCache

from .base import CatalogNotFoundError, CatalogUpstreamError
from .models import CategoryInfo, ColorVariety, ImageDescriptor, SearchResult

logger = logging.getLogger(__name__)


class StrapiError(CatalogUpstreamError):
    """Strapi returned an error or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def rich_text_to_plain_text(rich_text: Any) -> str:
    """Flatten Strapi rich-text blocks: text children of paragraphs, joined by spaces."""
    if not rich_text or not isinstance(rich_text, list):
        return ""

    paragraphs = []
    for block in rich_text:
        if not isinstance(block, dict) or block.get("type") != "paragraph":
            paragraphs.append("")
            continue
        paragraphs.append("".join(
            child.get("text", "")
            for child in block.get("children") or []
            if child.get("type") == "text"
        ))
    return " ".join(paragraphs)


def _error_message(response: httpx.Response) -> str:
    """Strapi error bodies look like {"error": {"message": ...}}; anything else is "Unknown error"."""
    try:
        body = response.json()
    except ValueError:
        return "Unknown error"
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and isinstance(error.get("message"), str):
        return error["message"]
    return "Unknown error"


class StrapiClient:
    """
    Async Strapi REST client.

    The httpx.AsyncClient is owned by the caller (the app lifespan closes it).
    """

    def __init__(
        self,
        base_url: str,
        http_client: httpx.AsyncClient,
        api_token: Optional[str] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.http_client = http_client
        self.api_token = api_token

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"
        return headers

    async def request(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        GET an API endpoint and return the decoded JSON body.

        Raises:
            StrapiError: transport failure or non-2xx response
        """
        url = f"{self.base_url}{endpoint}"
        try:
            response = await self.http_client.get(url, params=params, headers=self._headers())
        except httpx.HTTPError as e:
            logger.error(f"[Strapi] Request failed: {endpoint} - {e}")
            raise StrapiError(f"Strapi unreachable: {e}") from e

        if not response.is_success:
            message = _error_message(response)
            logger.error(f"[Strapi] HTTP {response.status_code}: {endpoint} - {message}")
            raise StrapiError(f"Strapi API Error: {message}", status_code=response.status_code)

        try:
            body = response.json()
        except ValueError as e:
            logger.error(f"[Strapi] Invalid JSON from {endpoint}: {e}")
            raise StrapiError(f"Strapi returned invalid JSON for {endpoint}") from e
        if not isinstance(body, dict):
            raise StrapiError(f"Strapi returned an unexpected body for {endpoint}")
        return body

    # ============================================
    # Content types
    # ============================================

    async def get_product_categories(self) -> List[Dict[str, Any]]:
        body = await self.request("/api/product-categories", {"sort": "displayOrder:asc"})
        return body.get("data") or []

    async def get_product_category(self, slug: str) -> Optional[Dict[str, Any]]:
        body = await self.request("/api/product-categories", {"filters[slug][$eq]": slug})
        data = body.get("data") or []
        return data[0] if data else None

    async def get_color_varieties(self) -> List[Dict[str, Any]]:
        body = await self.request("/api/color-varieties", {"sort": "displayOrder:asc", "populate": "*"})
        return body.get("data") or []

    async def get_products(self, category: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {"populate": "*", "sort": "displayOrder:asc"}
        if category:
            params["filters[product_categories][slug][$eq]"] = category
        body = await self.request("/api/products", params)
        return body.get("data") or []

    async def search_products(self, query: str) -> List[Dict[str, Any]]:
        body = await self.request("/api/products", {
            "filters[$or][0][name][$containsi]": query,
            "filters[$or][1][description][$containsi]": query,
            "populate": "*",
        })
        return body.get("data") or []

    async def fetch_upload(self, path: str) -> bytes:
        """Download a raw media file from /uploads/<path>."""
        url = f"{self.base_url}/uploads/{path}"
        try:
            response = await self.http_client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise StrapiError(
                f"Upload not found: {path}", status_code=e.response.status_code
            ) from e
        except httpx.HTTPError as e:
            raise StrapiError(f"Strapi unreachable: {e}") from e
        logger.info(f"[Strapi] Fetched upload: {path} ({len(response.content)} bytes)")
        return response.content

    def get_media_url(self, url: str) -> str:
        if url.startswith("http"):
            return url
        return f"{self.base_url}{url}"

    def media_url_or_none(self, media: Optional[Dict[str, Any]]) -> Optional[str]:
        if not media or not media.get("url"):
            return None
        return self.get_media_url(media["url"])


class StrapiCatalog:
    """
    CatalogGateway backed by the Strapi CMS.

    When a cache is given, raw product queries are cached under
    strapi-products-{category|all} so invalidating products also drops them.
    """

    def __init__(
        self,
        client: StrapiClient,
        cache: Optional[TTLCache] = None,
        ttl: Optional[float] = None,
    ):
        self.client = client
        self.cache = cache
        self.ttl = ttl

    async def _products(self, category: Optional[str] = None) -> List[Dict[str, Any]]:
        if self.cache is None:
            return await self.client.get_products(category=category)
        return await self.cache.with_cache(
            keys.strapi_products(category),
            lambda: self.client.get_products(category=category),
            ttl=self.ttl,
        )

    async def list_categories(self) -> List[CategoryInfo]:
        categories = await self.client.get_product_categories()
        return [
            CategoryInfo(
                name=c.get("name", ""),
                slug=c.get("slug", ""),
                path=f"/products/{c.get('slug', '')}",
                description=rich_text_to_plain_text(c.get("description")),
                featured=bool(c.get("featured")),
                display_order=c.get("displayOrder"),
                thumbnail=self.client.media_url_or_none(c.get("thumbnail")),
                id=c.get("documentId"),
            )
            for c in categories
        ]

    async def list_category_images(self, category: str) -> List[ImageDescriptor]:
        if await self.client.get_product_category(category) is None:
            raise CatalogNotFoundError("Category not found")

        images = []
        for product in await self._products(category):
            for media in product.get("images") or []:
                url = self.client.media_url_or_none(media)
                if url:
                    images.append(ImageDescriptor(
                        name=media.get("name") or product.get("name", ""),
                        path=url,
                    ))
        return images

    async def list_color_varieties(self) -> List[ColorVariety]:
        return [
            ColorVariety(
                name=v.get("name", ""),
                path=self.client.media_url_or_none(v.get("thumbnail")) or "",
                category="colors",
                hex_code=v.get("hexCode"),
                available=v.get("available"),
            )
            for v in await self.client.get_color_varieties()
        ]

    async def search(self, query: str) -> List[SearchResult]:
        normalized = query.strip().lower()
        results = []

        for product in await self.client.search_products(query.strip()):
            categories = product.get("product_categories") or []
            category_slug = categories[0].get("slug", "") if categories else ""
            images = product.get("images") or []
            image = images[0] if images else None
            thumbnail = None
            if image:
                small = (image.get("formats") or {}).get("thumbnail")
                thumbnail = self.client.media_url_or_none(small) or self.client.media_url_or_none(image)
            results.append(SearchResult(
                name=product.get("name", ""),
                path=f"/products/{category_slug}/{product.get('slug', '')}",
                category=category_slug,
                thumbnail=thumbnail,
            ))

        for category in await self.client.get_product_categories():
            if normalized in (category.get("name") or "").lower():
                results.append(SearchResult(
                    name=category.get("name", ""),
                    path=f"/products/{category.get('slug', '')}",
                    category=category.get("slug", ""),
                    thumbnail=self.client.media_url_or_none(category.get("thumbnail")),
                ))

        return results

"""
Catalog Gateway Interface

A gateway is the source of truth for categories, images and colors:
either the local images tree or the Strapi CMS.
"""

from typing import List, Protocol

from .models import CategoryInfo, ColorVariety, ImageDescriptor, SearchResult


class CatalogError(Exception):
    """Base class for catalog failures."""


class CatalogNotFoundError(CatalogError):
    """Requested category or catalog root does not exist."""


class CatalogUpstreamError(CatalogError):
    """Filesystem or CMS failed while loading catalog data."""


class CatalogGateway(Protocol):
    async def list_categories(self) -> List[CategoryInfo]:
        ...

    async def list_category_images(self, category: str) -> List[ImageDescriptor]:
        ...

    async def list_color_varieties(self) -> List[ColorVariety]:
        ...

    async def search(self, query: str) -> List[SearchResult]:
        ...

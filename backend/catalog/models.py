"""
Catalog Models

Pydantic models for catalog API responses.
JSON field names are camelCase to match the website front end.
"""

from __future__ import annotations
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CatalogModel(BaseModel):
    """Base model: snake_case in Python, camelCase on the wire"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================
# Categories
# ============================================

class CategoryInfo(CatalogModel):
    """A product category"""
    name: str
    slug: str
    path: str                                 # site route, e.g. /products/monuments
    description: str = ""
    featured: bool = False
    display_order: Optional[int] = None
    thumbnail: Optional[str] = None
    id: Optional[str] = None
    image_count: Optional[int] = None
    sample_images: List[str] = Field(default_factory=list)


class CategoriesResponse(CatalogModel):
    categories: List[CategoryInfo]
    success: bool = True


# ============================================
# Images
# ============================================

class ImageDescriptor(CatalogModel):
    """An image inside a category; path is web-servable"""
    name: str
    path: str


class CategoryImagesResponse(CatalogModel):
    images: List[ImageDescriptor]


class ColorVariety(CatalogModel):
    """A granite color swatch"""
    name: str
    path: str
    category: str = "colors"
    hex_code: Optional[str] = None
    available: Optional[bool] = None


# ============================================
# Search
# ============================================

class SearchResult(CatalogModel):
    name: str
    path: str
    category: str
    thumbnail: Optional[str] = None


class SearchResponse(CatalogModel):
    query: str
    count: int
    results: List[SearchResult]


class ErrorResponse(BaseModel):
    error: str

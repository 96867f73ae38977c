"""
Filesystem Catalog

Reads the catalog from the public images tree:

    images/
    ├── products/
    │   ├── <category>/
    │   │   ├── <image>.jpg
    │   │   └── ...
    │   └── ...
    ├── colors/
    │   └── <color-name>.jpg
    └── placeholder.jpg
"""

import logging
from pathlib import Path
from typing import List
from urllib.parse import quote

from image_optimizer.paths import resolve_within_root

from .base import CatalogNotFoundError, CatalogUpstreamError
from .models import CategoryInfo, ColorVariety, ImageDescriptor, SearchResult

logger = logging.getLogger(__name__)

PRODUCT_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}
COLOR_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif"}
SAMPLE_IMAGE_COUNT = 3


def _list_images(directory: Path, extensions: set) -> List[Path]:
    return sorted(
        (p for p in directory.iterdir() if p.is_file() and p.suffix.lower() in extensions),
        key=lambda p: p.name,
    )


class FilesystemCatalog:
    """
    Catalog gateway over a local directory tree.

    Usage:
        catalog = FilesystemCatalog("./public/images")
        images = await catalog.list_category_images("monuments")
    """

    def __init__(self, images_dir):
        self.images_dir = Path(images_dir)
        self.products_dir = self.images_dir / "products"
        self.colors_dir = self.images_dir / "colors"

    async def list_categories(self) -> List[CategoryInfo]:
        if not self.products_dir.is_dir():
            raise CatalogNotFoundError("Products directory not found")

        try:
            categories = []
            for category_dir in sorted(self.products_dir.iterdir(), key=lambda p: p.name):
                if not category_dir.is_dir():
                    continue
                files = _list_images(category_dir, PRODUCT_IMAGE_EXTENSIONS)
                categories.append(CategoryInfo(
                    name=category_dir.name,
                    slug=category_dir.name,
                    path=f"/products/{category_dir.name}",
                    image_count=len(files),
                    sample_images=[f.name for f in files[:SAMPLE_IMAGE_COUNT]],
                ))
        except OSError as e:
            raise CatalogUpstreamError(f"Failed to read products directory: {e}") from e

        logger.info(f"[Catalog] Listed {len(categories)} categories from {self.products_dir}")
        return categories

    async def list_category_images(self, category: str) -> List[ImageDescriptor]:
        category_dir = resolve_within_root(self.products_dir, category)
        if (
            category_dir is None
            or category_dir == self.products_dir.resolve()
            or not category_dir.is_dir()
        ):
            logger.warning(f"[Catalog] Category directory not found: {category}")
            raise CatalogNotFoundError("Category not found")

        relative = category_dir.relative_to(self.products_dir.resolve()).as_posix()
        try:
            files = _list_images(category_dir, PRODUCT_IMAGE_EXTENSIONS)
        except OSError as e:
            raise CatalogUpstreamError(f"Failed to read category {category}: {e}") from e

        return [
            ImageDescriptor(name=f.name, path=f"/images/products/{relative}/{f.name}")
            for f in files
        ]

    async def list_color_varieties(self) -> List[ColorVariety]:
        try:
            files = _list_images(self.colors_dir, COLOR_IMAGE_EXTENSIONS)
        except OSError as e:
            raise CatalogUpstreamError(f"Failed to load color images: {e}") from e

        return [
            ColorVariety(name=f.stem.replace("-", " "), path=f.name, category="colors")
            for f in files
        ]

    async def search(self, query: str) -> List[SearchResult]:
        """Case-insensitive substring match on file names (without extension) in every category."""
        if not self.products_dir.is_dir():
            raise CatalogNotFoundError("Products directory not found")

        normalized = query.strip().lower()
        results = []
        try:
            for category_dir in sorted(self.products_dir.iterdir(), key=lambda p: p.name):
                if not category_dir.is_dir():
                    continue
                category = category_dir.name
                for f in _list_images(category_dir, PRODUCT_IMAGE_EXTENSIONS):
                    if normalized not in f.stem.lower():
                        continue
                    results.append(SearchResult(
                        name=f.stem,
                        path=f"/images/products/{category}/{f.name}",
                        category=category,
                        thumbnail=f"/api/image?path={quote(f'{category}/{f.name}', safe='')}",
                    ))
        except OSError as e:
            raise CatalogUpstreamError(f"Failed to search products: {e}") from e

        logger.debug(f"[Catalog] Search '{normalized}' matched {len(results)} images")
        return results

"""
Catalog Module

Product categories, category images, color varieties and search, read from
either the local images tree or the Strapi CMS.

Routes live in catalog.routes and are mounted by main.create_app().
"""

from .base import CatalogError, CatalogGateway, CatalogNotFoundError, CatalogUpstreamError
from .filesystem import FilesystemCatalog
from .strapi_client import StrapiCatalog, StrapiClient, StrapiError

__all__ = [
    "CatalogError",
    "CatalogGateway",
    "CatalogNotFoundError",
    "CatalogUpstreamError",
    "FilesystemCatalog",
    "StrapiCatalog",
    "StrapiClient",
    "StrapiError",
]

"""
FastAPI dependencies for app-scoped objects created by create_app().
"""

from typing import Optional

from fastapi import Request

from catalog.base import CatalogGateway
from catalog.strapi_client import StrapiClient
from config import AppConfig
from image_optimizer.transformer import ImageTransformer


def get_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_catalog(request: Request) -> CatalogGateway:
    return request.app.state.catalog


def get_transformer(request: Request) -> ImageTransformer:
    return request.app.state.transformer


def get_strapi_client(request: Request) -> Optional[StrapiClient]:
    """None unless the catalog source is Strapi."""
    return request.app.state.strapi_client

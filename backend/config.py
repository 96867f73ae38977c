"""
Application Configuration

All settings come from environment variables. load_config() reads them once
at app creation; tests build AppConfig directly.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

CATALOG_SOURCES = ("filesystem", "strapi")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}")


@dataclass
class AppConfig:
    """Runtime settings for the catalog API."""
    # Filesystem
    public_dir: Path = Path("./public")
    images_dir: Optional[Path] = None      # defaults to <public_dir>/images

    # Catalog source
    catalog_source: str = "filesystem"     # filesystem | strapi
    strapi_url: str = "http://localhost:1337"
    strapi_api_token: Optional[str] = None

    # API cache
    api_cache_ttl_seconds: float = 300.0           # 5 minutes
    api_cache_max_entries: int = 0                 # 0 = unbounded
    cache_cleanup_interval_seconds: float = 600.0  # 10 minutes
    image_cache_ttl_seconds: float = 60 * 60 * 24 * 30  # 30 days

    # Outbound HTTP
    http_timeout_seconds: float = 30.0

    # Server
    log_level: str = "INFO"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    def __post_init__(self):
        self.public_dir = Path(self.public_dir)
        if self.images_dir is None:
            self.images_dir = self.public_dir / "images"
        else:
            self.images_dir = Path(self.images_dir)
        if self.catalog_source not in CATALOG_SOURCES:
            raise ValueError(
                f"catalog_source must be one of {', '.join(CATALOG_SOURCES)}, "
                f"got {self.catalog_source!r}"
            )
        self.strapi_url = self.strapi_url.rstrip("/")

    @property
    def max_entries(self) -> Optional[int]:
        return self.api_cache_max_entries or None


def load_config() -> AppConfig:
    """Build AppConfig from the environment."""
    public_dir = Path(os.getenv("PUBLIC_DIR", "./public"))
    images_dir = os.getenv("IMAGES_DIR")
    cors = os.getenv("CORS_ORIGINS", "*")

    return AppConfig(
        public_dir=public_dir,
        images_dir=Path(images_dir) if images_dir else None,
        catalog_source=os.getenv("CATALOG_SOURCE", "filesystem").lower(),
        strapi_url=os.getenv("STRAPI_URL", "http://localhost:1337"),
        strapi_api_token=os.getenv("STRAPI_API_TOKEN") or None,
        api_cache_ttl_seconds=_env_float("API_CACHE_TTL_SECONDS", 300.0),
        api_cache_max_entries=_env_int("API_CACHE_MAX_ENTRIES", 0),
        cache_cleanup_interval_seconds=_env_float("CACHE_CLEANUP_INTERVAL_SECONDS", 600.0),
        image_cache_ttl_seconds=_env_float("IMAGE_CACHE_TTL_SECONDS", 60 * 60 * 24 * 30),
        http_timeout_seconds=_env_float("HTTP_TIMEOUT_SECONDS", 30.0),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        cors_origins=[o.strip() for o in cors.split(",") if o.strip()],
    )

"""
Test configuration

Fixtures:
- fake_clock: manually advanced time source for TTLCache
- images_tree: a temporary public/images directory with real image files
- app_config / client: the FastAPI app wired to images_tree
"""

import sys
from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image

# Add the backend directory to the Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from cache.memory_store import TTLCache
from catalog.filesystem import FilesystemCatalog
from config import AppConfig


# ============================================
# Helpers
# ============================================

class FakeClock:
    """Callable time source that only moves when told to."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_image_bytes(fmt: str = "JPEG", size=(200, 100), color=(200, 30, 30), mode: str = "RGB") -> bytes:
    """Encode a solid-color image with Pillow."""
    img = Image.new(mode, size, color)
    output = BytesIO()
    img.save(output, format=fmt)
    return output.getvalue()


def decode(data: bytes) -> Image.Image:
    img = Image.open(BytesIO(data))
    img.load()
    return img


class CountingCatalog:
    """Wraps a gateway and counts calls per method."""

    def __init__(self, inner):
        self.inner = inner
        self.calls = {}

    def _count(self, name):
        self.calls[name] = self.calls.get(name, 0) + 1

    async def list_categories(self):
        self._count("list_categories")
        return await self.inner.list_categories()

    async def list_category_images(self, category):
        self._count("list_category_images")
        return await self.inner.list_category_images(category)

    async def list_color_varieties(self):
        self._count("list_color_varieties")
        return await self.inner.list_color_varieties()

    async def search(self, query):
        self._count("search")
        return await self.inner.search(query)


# ============================================
# Fixtures
# ============================================

@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def cache(fake_clock):
    return TTLCache(default_ttl=300.0, clock=fake_clock)


@pytest.fixture
def images_tree(tmp_path):
    """
    public/
    └── images/
        ├── placeholder.jpg
        ├── products/
        │   ├── monuments/  heart-monument.jpg, angel.png, notes.txt
        │   └── benches/    bench-classic.webp
        └── colors/         absolute-black.jpg, blue-pearl.png
    """
    public_dir = tmp_path / "public"
    images_dir = public_dir / "images"
    monuments = images_dir / "products" / "monuments"
    benches = images_dir / "products" / "benches"
    colors = images_dir / "colors"
    for d in (monuments, benches, colors):
        d.mkdir(parents=True)

    (monuments / "heart-monument.jpg").write_bytes(make_image_bytes("JPEG"))
    (monuments / "angel.png").write_bytes(
        make_image_bytes("PNG", size=(80, 120), color=(10, 20, 30, 128), mode="RGBA")
    )
    (monuments / "notes.txt").write_text("not an image")
    (benches / "bench-classic.webp").write_bytes(make_image_bytes("WEBP", size=(60, 60)))
    (colors / "absolute-black.jpg").write_bytes(make_image_bytes("JPEG", size=(20, 20), color=(5, 5, 5)))
    (colors / "blue-pearl.png").write_bytes(make_image_bytes("PNG", size=(20, 20), color=(20, 40, 90)))
    (images_dir / "placeholder.jpg").write_bytes(make_image_bytes("JPEG", size=(30, 30), color=(128, 128, 128)))

    return images_dir


@pytest.fixture
def app_config(images_tree):
    return AppConfig(public_dir=images_tree.parent, log_level="WARNING")


@pytest.fixture
def counting_catalog(images_tree):
    return CountingCatalog(FilesystemCatalog(images_tree))


@pytest.fixture
def client(app_config, cache, counting_catalog):
    """TestClient with lifespan running; the cache uses fake_clock."""
    from fastapi.testclient import TestClient
    from main import create_app

    app = create_app(app_config, cache=cache, catalog=counting_catalog)
    with TestClient(app) as test_client:
        yield test_client

"""Shared fixtures for photo booth tests"""

from io import BytesIO

import pytest
from PIL import Image

from managers.asset_store import FileAssetStore, MemoryAssetStore
from managers.lifecycle import (
    OUTPUT_ADDRESS_PREFIX,
    OVERLAY_ADDRESS_PREFIX,
    AssetLifecycleCoordinator,
)


def png_bytes(image: Image.Image) -> bytes:
    buf = BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def make_png():
    return png_bytes


@pytest.fixture
def gradient_frame():
    """Asymmetric 64x48 RGB frame: red grows left to right, green top to bottom"""
    img = Image.new("RGB", (64, 48))
    img.putdata([(x * 4, y * 5, 128) for y in range(48) for x in range(64)])
    return img


@pytest.fixture
def transparent_overlay():
    return Image.new("RGBA", (30, 40), (0, 0, 0, 0))


@pytest.fixture
def sample_png():
    return png_bytes(Image.new("RGBA", (30, 40), (255, 0, 0, 128)))


@pytest.fixture
def overlay_store(tmp_path):
    return FileAssetStore(tmp_path / "frames", "frame", OVERLAY_ADDRESS_PREFIX, suffix_bytes=8)


@pytest.fixture
def output_store(tmp_path):
    return FileAssetStore(tmp_path / "photos", "photo", OUTPUT_ADDRESS_PREFIX, suffix_bytes=10)


@pytest.fixture
def coordinator(overlay_store, output_store):
    return AssetLifecycleCoordinator(
        overlay_store,
        output_store,
        max_overlays_per_upload=10,
        max_overlay_bytes=10 * 1024 * 1024,
        max_photo_bytes=15 * 1024 * 1024,
    )


@pytest.fixture
def memory_coordinator():
    return AssetLifecycleCoordinator(
        MemoryAssetStore("frame", OVERLAY_ADDRESS_PREFIX),
        MemoryAssetStore("photo", OUTPUT_ADDRESS_PREFIX, suffix_bytes=10),
    )

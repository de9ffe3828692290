"""Shared pytest fixtures for Memory Site tests."""

import io
import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest
from PIL import Image

from memorysite.api.content_store import ContentStore
from memorysite.api.media import IncomingFile, MediaIngest
from memorysite.api.models import Content, Photo
from memorysite.core.config import MemorySiteConfig


def make_image_bytes(size: tuple[int, int] = (1600, 1200), fmt: str = "JPEG") -> bytes:
    """Render a solid-colour image of *size* and return its encoded bytes."""
    mode = "RGBA" if fmt == "PNG" else "RGB"
    image = Image.new(mode, size, color=(200, 80, 40, 255)[: len(mode)])
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> MemorySiteConfig:
    """Create a test configuration rooted in the temporary directory.

    Args:
        temp_dir: Temporary directory from fixture

    Returns:
        MemorySiteConfig instance for testing
    """
    return MemorySiteConfig(
        _env_file=None,
        data_dir=str(temp_dir / "data"),
        uploads_dir=str(temp_dir / "uploads"),
        templates_dir=str(temp_dir / "templates"),
        upload_max_size=5 * 1024 * 1024,
    )


@pytest.fixture
def content_store(test_config: MemorySiteConfig) -> ContentStore:
    """Content store backed by the test config's ``content.json``."""
    return ContentStore(test_config.content_file)


@pytest.fixture
def media(test_config: MemorySiteConfig, content_store: ContentStore) -> MediaIngest:
    """Media ingest pipeline writing into the test upload directories."""
    return MediaIngest.from_config(test_config, content_store)


@pytest.fixture
def jpeg_upload() -> IncomingFile:
    """A 1600x1200 JPEG upload."""
    return IncomingFile(data=make_image_bytes(), content_type="image/jpeg", filename="beach.jpg")


@pytest.fixture
def video_upload() -> IncomingFile:
    """A small fake MP4 upload (contents are never decoded)."""
    return IncomingFile(data=b"\x00\x00\x00\x18ftypmp42", content_type="video/mp4", filename="party.mp4")


@pytest.fixture
def stored_photos(test_config: MemorySiteConfig, content_store: ContentStore) -> list[Photo]:
    """Persist three photo records whose files exist on disk.

    Returns:
        The stored Photo records in order.
    """
    photos = []
    for i in range(3):
        original = f"100{i}-42.jpg"
        optimized = f"opt-{original}"
        (test_config.photos_dir / original).write_bytes(make_image_bytes((80, 60)))
        (test_config.photos_dir / optimized).write_bytes(make_image_bytes((80, 60)))
        photos.append(Photo(original=original, optimized=optimized, caption=f"Photo {i}", date="1/2/2024"))

    content = content_store.read()
    content.photos = photos
    content_store.write(content)
    return photos


@pytest.fixture
def test_client(test_config: MemorySiteConfig, monkeypatch):
    """FastAPI TestClient whose store and pipeline use the test config."""
    from fastapi.testclient import TestClient

    from memorysite.api import main

    monkeypatch.setattr(main, "config", test_config)
    with TestClient(main.app) as client:
        yield client


@pytest.fixture
def empty_content() -> Content:
    """A document with no photos, video, timeline, messages, or colours."""
    return Content()


@pytest.fixture
def image_bytes():
    """Factory fixture returning :func:`make_image_bytes`."""
    return make_image_bytes

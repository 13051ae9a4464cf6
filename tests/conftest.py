import base64
import io
from unittest.mock import AsyncMock, MagicMock

import pytest
from PIL import Image as PILImage

from image_mcp.image_backend import ImageResult


def make_png(color: str = "blue", size: tuple = (4, 4)) -> bytes:
    """Encode a tiny solid-color PNG"""
    buf = io.BytesIO()
    PILImage.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def fake_backend():
    """Image backend whose generate/edit return canned base64 payloads"""
    backend = MagicMock()
    backend.generate = AsyncMock(return_value=ImageResult(
        b64_json=base64.b64encode(b"test-png-data").decode(),
        revised_prompt="A revised blue square"
    ))
    backend.edit = AsyncMock(return_value=ImageResult(
        b64_json=base64.b64encode(b"test-edited-png-data").decode(),
        revised_prompt="A revised combined image"
    ))
    return backend


@pytest.fixture
def project_dir(tmp_path):
    """Target project directory with two reference images under public/test-images"""
    images_dir = tmp_path / "public" / "test-images"
    images_dir.mkdir(parents=True)
    (images_dir / "image1.png").write_bytes(make_png("red"))
    (images_dir / "image2.jpg").write_bytes(make_png("green"))
    return tmp_path

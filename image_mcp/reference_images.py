import asyncio
import io
import logging
from pathlib import Path
from typing import List, Sequence, Union

import aiofiles
from PIL import Image as PILImage

from .errors import ReferenceImageError
from .image_backend import ReferenceImage

logger = logging.getLogger(__name__)

MIME_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp"
}


def guess_mime_type(path: Union[str, Path]) -> str:
    """Map a file extension to an image MIME type, defaulting to PNG"""
    return MIME_TYPES.get(Path(path).suffix.lower(), "image/png")


def _verify_image(data: bytes) -> None:
    with PILImage.open(io.BytesIO(data)) as img:
        img.verify()


async def load_reference_image(image_path: str, public_dir: Path) -> ReferenceImage:
    """Read one reference image resolved against the public directory"""
    full_path = (public_dir / image_path).resolve()
    logger.info(f"Loading reference image from {full_path}")
    try:
        async with aiofiles.open(full_path, "rb") as f:
            data = await f.read()
    except OSError as e:
        logger.error(f"Failed to load reference image {full_path}: {e}")
        raise ReferenceImageError(image_path, e.strerror or str(e)) from e

    try:
        _verify_image(data)
    except Exception as e:
        logger.error(f"Reference image {full_path} is not a readable image: {e}")
        raise ReferenceImageError(image_path, f"not a valid image ({e})") from e

    return ReferenceImage(data=data, filename=full_path.name, mime_type=guess_mime_type(full_path))


async def load_reference_images(image_paths: Sequence[str], public_dir: Path) -> List[ReferenceImage]:
    """Load all reference images concurrently; results keep the input order"""
    return list(await asyncio.gather(
        *(load_reference_image(image_path, public_dir) for image_path in image_paths)
    ))

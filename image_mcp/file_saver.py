import logging
import re
from pathlib import Path
from typing import Union

import aiofiles
import aiofiles.os

from .errors import FileSaveError

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def sanitize_filename(filename: str) -> str:
    """Strip everything outside [A-Za-z0-9._-] from a filename"""
    return _UNSAFE_FILENAME_CHARS.sub("", filename)


async def save_image(data: bytes, filename: str, save_dir: Union[str, Path]) -> Path:
    """Write image bytes into save_dir (created if missing) and return the absolute path.

    Existing files are overwritten.
    """
    safe_name = sanitize_filename(filename)
    if safe_name in ("", ".", ".."):
        raise FileSaveError(f"Invalid filename after sanitization: {filename!r}")

    save_dir = Path(save_dir).resolve()
    try:
        await aiofiles.os.makedirs(save_dir, exist_ok=True)
        full_path = save_dir / safe_name
        async with aiofiles.open(full_path, "wb") as f:
            await f.write(data)
    except OSError as e:
        raise FileSaveError(f"Failed to save image to {save_dir}: {e}") from e

    logger.info(f"Image saved to: {full_path} ({len(data)} bytes)")
    return full_path

"""
Menu Image Handling

Uploaded menu pictures are re-encoded to JPEG and written as
``menu_<id>.jpeg`` into every configured asset directory (the first one is
served over HTTP; others may belong to a separately deployed front end).
"""

import io
import logging
from pathlib import Path
from typing import Iterable

from PIL import Image, UnidentifiedImageError

from table_order.core.errors import InvalidInput, StoreError

logger = logging.getLogger(__name__)


def menu_image_name(item_id: str) -> str:
    name = f"menu_{item_id}.jpeg"
    # The id ends up in a file name
    if Path(name).name != name or ".." in item_id:
        raise InvalidInput(f"Menu item id '{item_id}' cannot be used as an image name")
    return name


def encode_jpeg(data: bytes, quality: int = 80) -> bytes:
    """
    Re-encode an uploaded image as JPEG.

    Raises:
        InvalidInput: The bytes are not a readable image
    """
    try:
        with Image.open(io.BytesIO(data)) as image:
            buffer = io.BytesIO()
            image.convert("RGB").save(buffer, format="JPEG", quality=quality)
    except (UnidentifiedImageError, OSError) as e:
        raise InvalidInput(f"Uploaded file is not a valid image: {e}") from e
    return buffer.getvalue()


def save_menu_image(item_id: str, jpeg: bytes, directories: Iterable[Path]) -> str:
    """
    Write the JPEG to each asset directory and return its file name.

    Raises:
        StoreError: A directory or file could not be written
    """
    name = menu_image_name(item_id)
    for directory in directories:
        try:
            directory.mkdir(parents=True, exist_ok=True)
            (directory / name).write_bytes(jpeg)
        except OSError as e:
            logger.error(f"Could not write {directory / name}: {e}")
            raise StoreError("Could not store menu image") from e
        logger.debug(f"Wrote {directory / name}")
    logger.info(f"Saved image {name} ({len(jpeg)} bytes)")
    return name

"""
Pillow helpers for source images.

The edit endpoint accepts PNG only, so sources in other formats are
converted before upload; the conversion also reports the source dimensions.
"""

import io

from PIL import Image

from imagemcp.logging_config import get_logger
from imagemcp.utils.exceptions import ImageProcessingError

logger = get_logger(__name__)


def open_image(data: bytes) -> Image.Image:
    """
    Decode image bytes into a fully loaded PIL Image.

    Raises:
        ImageProcessingError: If the bytes are not a decodable image
    """
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
        return image
    except Exception as e:
        raise ImageProcessingError(f"Failed to decode image: {str(e)}") from e


def prepare_for_upload(data: bytes) -> tuple[bytes, int, int]:
    """
    Convert source bytes to PNG for the edit endpoint.

    PNG input is passed through unchanged. Palette and other modes are
    converted to RGBA so transparency survives.

    Returns:
        Tuple of (png_bytes, width, height)

    Raises:
        ImageProcessingError: If decoding or encoding fails
    """
    image = open_image(data)
    width, height = image.size
    source_format = image.format
    if source_format == "PNG":
        return data, width, height

    if image.mode not in ("RGB", "RGBA"):
        image = image.convert("RGBA")
    buffer = io.BytesIO()
    try:
        image.save(buffer, format="PNG")
    except Exception as e:
        raise ImageProcessingError(f"Failed to encode image as PNG: {str(e)}") from e
    logger.debug(
        "Converted source image format=%s -> PNG dimensions=%dx%d",
        source_format or "unknown",
        width,
        height,
    )
    return buffer.getvalue(), width, height

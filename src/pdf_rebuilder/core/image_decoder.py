# SPDX-License-Identifier: Apache-2.0
"""Page image decoding using Pillow."""

from __future__ import annotations

import logging
from io import BytesIO

from PIL import Image, UnidentifiedImageError

from .errors import ImageDecodeError
from .models import DecodedImage

logger = logging.getLogger(__name__)


def decode_image(data: bytes) -> DecodedImage:
    """Decode raw page image bytes.

    Args:
        data: Raw response body of the page image endpoint

    Returns:
        DecodedImage with pixel data loaded

    Raises:
        ImageDecodeError: If the bytes are empty, not a supported raster
            format, truncated, or have a zero dimension
        PIL.Image.DecompressionBombError: If the image exceeds
            Image.MAX_IMAGE_PIXELS. A real page that is too large is fatal,
            not an end of document.
    """
    if not data:
        raise ImageDecodeError("Image data is empty")

    try:
        image = Image.open(BytesIO(data))
        image.load()
    except (
        UnidentifiedImageError,
        OSError,
        SyntaxError,
        ValueError,
    ) as e:
        raise ImageDecodeError("Not a valid raster image", str(e)) from e

    width, height = image.size
    if width <= 0 or height <= 0:
        raise ImageDecodeError("Image has no pixels", f"{width}x{height}")

    logger.debug("Decoded %s image %dx%d (mode %s)", image.format, width, height, image.mode)
    return DecodedImage(width=width, height=height, image=image)

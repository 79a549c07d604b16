"""Shrink uploaded images so they fit under a byte-size ceiling."""

import io
import logging
import math
from typing import Tuple

from PIL import Image, ImageOps

from site_safety.hazard_analysis.exceptions import MediaDecodeError
from site_safety.hazard_analysis.models import CompressedMedia, RawMedia

logger = logging.getLogger(__name__)

DEFAULT_CEILING_BYTES = 1 * 1024 * 1024
DEFAULT_MIN_WIDTH = 400
DEFAULT_MIN_HEIGHT = 300

# Inputs above this size are scaled down harder than the area model predicts
LARGE_INPUT_BYTES = 5 * 1024 * 1024
LARGE_INPUT_SHRINK = 0.7

# Encoder quality in tenths: start at 0.6, never go below 0.3
START_QUALITY_TENTHS = 6
MIN_QUALITY_TENTHS = 3

# Formats re-encoded as themselves; everything else becomes JPEG
_LOSSY_FORMATS = {
    "image/jpeg": "JPEG",
    "image/jpg": "JPEG",
    "image/pjpeg": "JPEG",
    "image/webp": "WEBP",
}
_FORMAT_MIME_TYPES = {"JPEG": "image/jpeg", "WEBP": "image/webp"}

_DECODE_ERRORS = (OSError, SyntaxError, ValueError, Image.DecompressionBombError)


def reduce(
    data: bytes,
    mime_type: str,
    ceiling_bytes: int = DEFAULT_CEILING_BYTES,
    min_width: int = DEFAULT_MIN_WIDTH,
    min_height: int = DEFAULT_MIN_HEIGHT,
) -> CompressedMedia:
    """Fit an encoded image under ``ceiling_bytes``.

    Inputs already under the ceiling are returned untouched. Larger inputs
    are resized once, using the square root of the size ratio as a linear
    scale factor, and re-encoded at decreasing quality (0.6 down to 0.3)
    until they fit. The minimum resolution always wins over the size target,
    so the result may still exceed the ceiling; ``oversized`` is then set.

    Args:
        data: Encoded image bytes
        mime_type: Declared MIME type of ``data``
        ceiling_bytes: Maximum acceptable size of the result
        min_width: Minimum width of a resized image
        min_height: Minimum height of a resized image

    Returns:
        CompressedMedia with the final bytes and compression metadata

    Raises:
        MediaDecodeError: If ``data`` cannot be decoded as an image
        ValueError: If the ceiling or a minimum dimension is not positive
    """
    if ceiling_bytes <= 0 or min_width <= 0 or min_height <= 0:
        raise ValueError(
            f"Limits must be positive: ceiling_bytes={ceiling_bytes}, "
            f"min_width={min_width}, min_height={min_height}"
        )
    original_size = len(data)
    if original_size == 0:
        raise MediaDecodeError("Cannot decode an empty image buffer")

    try:
        img = Image.open(io.BytesIO(data))
    except _DECODE_ERRORS as e:
        raise MediaDecodeError(f"Failed to decode image ({mime_type}): {e}") from e

    with img:
        if original_size <= ceiling_bytes:
            width, height = img.size
            logger.debug(f"Image already fits: {original_size} <= {ceiling_bytes} bytes")
            return CompressedMedia(
                data=data,
                mime_type=mime_type,
                original_size=original_size,
                final_size=original_size,
                width=width,
                height=height,
            )

        try:
            img.load()
            surface = ImageOps.exif_transpose(img)
        except _DECODE_ERRORS as e:
            raise MediaDecodeError(f"Failed to decode image ({mime_type}): {e}") from e

    target_format = _LOSSY_FORMATS.get(mime_type.lower(), "JPEG")
    target_size = _target_dimensions(
        surface.size, original_size, ceiling_bytes, min_width, min_height
    )
    logger.debug(
        f"Resizing {surface.size[0]}x{surface.size[1]} -> "
        f"{target_size[0]}x{target_size[1]} ({target_format})"
    )
    surface = _prepare_mode(surface, target_format).resize(
        target_size, Image.Resampling.LANCZOS
    )

    quality = START_QUALITY_TENTHS
    encoded = _encode(surface, target_format, quality)
    steps = 1
    while len(encoded) > ceiling_bytes and quality > MIN_QUALITY_TENTHS:
        quality -= 1
        encoded = _encode(surface, target_format, quality)
        steps += 1

    oversized = len(encoded) > ceiling_bytes
    if oversized:
        logger.warning(
            f"Image still exceeds ceiling after {steps} trials: "
            f"{format_file_size(len(encoded))} > {format_file_size(ceiling_bytes)}"
        )
    else:
        logger.info(
            f"Compressed {format_file_size(original_size)} -> "
            f"{format_file_size(len(encoded))} in {steps} trials"
        )

    return CompressedMedia(
        data=encoded,
        mime_type=_FORMAT_MIME_TYPES[target_format],
        original_size=original_size,
        final_size=len(encoded),
        steps=steps,
        oversized=oversized,
        width=target_size[0],
        height=target_size[1],
        quality=quality / 10,
    )


def reduce_media(
    media: RawMedia,
    ceiling_bytes: int = DEFAULT_CEILING_BYTES,
    min_width: int = DEFAULT_MIN_WIDTH,
    min_height: int = DEFAULT_MIN_HEIGHT,
) -> CompressedMedia:
    """Convenience wrapper around :func:`reduce` for a RawMedia."""
    return reduce(media.data, media.mime_type, ceiling_bytes, min_width, min_height)


def _target_dimensions(
    size: Tuple[int, int],
    original_bytes: int,
    ceiling_bytes: int,
    min_width: int,
    min_height: int,
) -> Tuple[int, int]:
    # Encoded size grows roughly with pixel area, hence the square root
    scale = math.sqrt(ceiling_bytes / original_bytes)
    if original_bytes > LARGE_INPUT_BYTES:
        scale *= LARGE_INPUT_SHRINK
    width = max(math.floor(size[0] * scale), min_width)
    height = max(math.floor(size[1] * scale), min_height)
    return width, height


def _prepare_mode(img: Image.Image, target_format: str) -> Image.Image:
    if target_format == "WEBP":
        if img.mode in ("RGB", "RGBA"):
            return img
        has_alpha = "A" in img.mode or "transparency" in img.info
        return img.convert("RGBA" if has_alpha else "RGB")
    if img.mode in ("RGB", "L"):
        return img
    return img.convert("RGB")


def _encode(img: Image.Image, target_format: str, quality_tenths: int) -> bytes:
    buffer = io.BytesIO()
    img.save(buffer, format=target_format, quality=quality_tenths * 10)
    encoded = buffer.getvalue()
    logger.debug(f"Encoded {target_format} at quality {quality_tenths / 10}: {len(encoded)} bytes")
    return encoded


def format_file_size(num_bytes: int) -> str:
    """Return a human readable size such as ``1.5 MB``."""
    if num_bytes <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    index = 0
    while num_bytes >= 1024 ** (index + 1) and index < len(units) - 1:
        index += 1
    value = round(num_bytes / (1024 ** index), 2)
    return f"{value:g} {units[index]}"

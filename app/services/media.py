# app/services/media.py
import asyncio
import logging
import tempfile
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError

from app.errors import InvalidRequest, MediaProcessingFailure
from app.models import MediaPart

logger = logging.getLogger(__name__)

TARGET_MIME = "image/jpeg"


def check_size(size: int, max_bytes: int) -> None:
    if size > max_bytes:
        raise InvalidRequest(f"image is {size} bytes, limit is {max_bytes}", status_code=413)


def normalize_image(
    data: bytes,
    max_bytes: int,
    max_width: int = 1024,
    quality: int = 80,
) -> MediaPart:
    """
    Re-encode an uploaded image as a width-bounded JPEG.

    Raises InvalidRequest (413) for oversized input before touching the bytes,
    MediaProcessingFailure for anything Pillow cannot decode or encode.
    The scratch directory is removed on every exit path.
    """
    check_size(len(data), max_bytes)
    if not data:
        raise MediaProcessingFailure("empty image upload")

    with tempfile.TemporaryDirectory(prefix="chat-upload-") as tmp:
        src = Path(tmp) / "upload"
        dst = Path(tmp) / "normalized.jpg"
        src.write_bytes(data)
        try:
            with Image.open(src) as img:
                img = ImageOps.exif_transpose(img)
                img = img.convert("RGB")
                if img.width > max_width:
                    new_h = max(1, round(img.height * max_width / img.width))
                    img = img.resize((max_width, new_h), resample=Image.Resampling.LANCZOS)
                img.save(dst, format="JPEG", quality=quality, optimize=True)
        except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
            raise MediaProcessingFailure(f"could not normalize image: {e}") from e
        out = dst.read_bytes()

    logger.debug("normalized image %d -> %d bytes", len(data), len(out))
    return MediaPart(data=out, mime_type=TARGET_MIME)


async def normalize_image_async(
    data: bytes,
    max_bytes: int,
    max_width: int = 1024,
    quality: int = 80,
) -> MediaPart:
    """Same as normalize_image, off the event loop."""
    return await asyncio.to_thread(normalize_image, data, max_bytes, max_width, quality)

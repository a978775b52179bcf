"""Image decoder: encoded bytes to an RGB pixel buffer."""

import io

import numpy as np
import structlog
from PIL import Image, UnidentifiedImageError

from .errors import DecodeError

logger = structlog.get_logger("ingestion.decoder")

HIGH_BIT_DEPTH_MODES = ("I", "I;16", "I;16L", "I;16B", "I;16N")


def _to_rgba(image: Image.Image) -> np.ndarray:
    if image.mode in HIGH_BIT_DEPTH_MODES:
        # 16-bit samples are rescaled, Pillow would otherwise clip them to 255
        samples = np.clip(np.asarray(image, dtype=np.int64), 0, 65535) >> 8
        image = Image.fromarray(samples.astype(np.uint8))
    return np.asarray(image.convert("RGBA"), dtype=np.uint8)


def decode_image(data: bytes) -> np.ndarray:
    """Decode ``data`` into a ``(height, width, 3)`` uint8 array.

    Every source mode is expanded to RGBA first and the alpha plane is then
    dropped, so the three colour channels always come out in R, G, B order.
    16-bit greyscale sources are scaled down to 8 bits first.
    The result depends only on the input bytes.
    """
    if not data:
        raise DecodeError("Image payload is empty")

    try:
        with Image.open(io.BytesIO(data)) as image:
            image.load()
            rgba = _to_rgba(image)
    except (UnidentifiedImageError, Image.DecompressionBombError) as exc:
        raise DecodeError(f"Bytes are not a decodable image: {exc}") from exc
    except (OSError, ValueError, SyntaxError) as exc:
        # truncated or corrupt payloads surface from the codec this way
        raise DecodeError(f"Malformed image data: {exc}") from exc

    pixels = np.ascontiguousarray(rgba[:, :, :3])
    logger.debug("Image decoded", height=pixels.shape[0], width=pixels.shape[1])
    return pixels

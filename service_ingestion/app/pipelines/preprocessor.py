"""Tensor preprocessing for the image feature model.

Turns an ``(H, W, 3)`` pixel buffer into the ``(1, 224, 224, 3)`` float32
tensor the extractor expects:

1. bilinear resize to 224x224
2. divide by 255.0 so samples land in [0, 1]
3. prepend a batch axis of size 1

The resize samples the source at ``dst * (in_size / out_size)`` without
half-pixel offsets or corner alignment, i.e. the classic TensorFlow
``resize_bilinear`` kernel. Keeping the kernel fixed keeps embeddings
reproducible across deployments.
"""

import numpy as np
import structlog

from .errors import PreprocessError

logger = structlog.get_logger("ingestion.preprocessor")

TARGET_HEIGHT = 224
TARGET_WIDTH = 224
CHANNELS = 3
INPUT_SHAPE = (1, TARGET_HEIGHT, TARGET_WIDTH, CHANNELS)


def resize_bilinear(pixels: np.ndarray, height: int, width: int) -> np.ndarray:
    """Resize an ``(H, W, C)`` array to ``(height, width, C)`` float32."""
    in_height, in_width = pixels.shape[:2]
    source = pixels.astype(np.float32)

    ys = np.arange(height, dtype=np.float32) * (in_height / height)
    xs = np.arange(width, dtype=np.float32) * (in_width / width)

    y0 = np.floor(ys).astype(np.int64)
    x0 = np.floor(xs).astype(np.int64)
    y1 = np.minimum(y0 + 1, in_height - 1)
    x1 = np.minimum(x0 + 1, in_width - 1)

    wy = (ys - y0)[:, None, None]
    wx = (xs - x0)[None, :, None]

    top = source[y0][:, x0] * (1.0 - wx) + source[y0][:, x1] * wx
    bottom = source[y1][:, x0] * (1.0 - wx) + source[y1][:, x1] * wx
    return (top * (1.0 - wy) + bottom * wy).astype(np.float32)


def preprocess(pixels: np.ndarray) -> np.ndarray:
    """Produce the model input tensor for one decoded image."""
    pixels = np.asarray(pixels)
    if pixels.ndim != 3 or pixels.shape[2] != CHANNELS:
        raise PreprocessError(
            f"Expected a (height, width, {CHANNELS}) pixel buffer, got shape {pixels.shape}"
        )

    height, width = pixels.shape[:2]
    if height == 0 or width == 0:
        raise PreprocessError(f"Image has zero area ({width}x{height})")

    resized = resize_bilinear(pixels, TARGET_HEIGHT, TARGET_WIDTH)
    normalized = resized / np.float32(255.0)
    # interpolation weights can overshoot by an ulp
    np.clip(normalized, 0.0, 1.0, out=normalized)
    tensor = np.expand_dims(normalized, axis=0)

    logger.debug("Image preprocessed", source_height=height, source_width=width)
    return tensor

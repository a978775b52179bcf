"""Image feature model handle and embedding extractor.

``ImageFeatureModel`` owns the pretrained backbone. It is built once at
startup, is read-only afterwards and is shared by every request. The
``EmbeddingExtractor`` turns one preprocessed tensor into a 1280-dim
average-pooled feature vector.
"""

import time
from typing import Any, Dict, List, Optional

import numpy as np
import structlog
import torch
from torchvision.models import (
    EfficientNet_B0_Weights,
    MobileNet_V2_Weights,
    efficientnet_b0,
    mobilenet_v2,
)

from ..pipelines.errors import ExtractionError
from ..pipelines.preprocessor import INPUT_SHAPE

logger = structlog.get_logger("ingestion.image_encoder")

EMBEDDING_DIMENSION = 1280

# Both backbones end in a 1280-channel feature map.
MODEL_BUILDERS = {
    "mobilenet_v2": (mobilenet_v2, MobileNet_V2_Weights.IMAGENET1K_V2),
    "efficientnet_b0": (efficientnet_b0, EfficientNet_B0_Weights.IMAGENET1K_V1),
}

IMAGENET_MEAN = (0.485, 0.456, 0.406)
IMAGENET_STD = (0.229, 0.224, 0.225)


class ImageFeatureModel:
    """Pretrained convolutional backbone with global average pooling.

    Accepts NHWC float tensors in [0, 1]; the layout change and the
    backbone's own mean/std normalization happen inside ``embed`` so the
    input contract stays independent of the model variant.

    Parameters
    - model_name: Key of ``MODEL_BUILDERS``
    - pretrained: Load ImageNet weights (downloads on first use)
    - device: Torch device; defaults to CUDA when available
    - backbone: Pre-built feature module mapping NCHW to NCHW feature maps
    """

    def __init__(
        self,
        model_name: str = "mobilenet_v2",
        pretrained: bool = True,
        device: Optional[str] = None,
        backbone: Optional[torch.nn.Module] = None,
    ):
        if backbone is None and model_name not in MODEL_BUILDERS:
            raise ValueError(f"Unsupported image model: {model_name}")

        self.model_name = model_name
        self.pretrained = pretrained
        self.device = torch.device(device or ("cuda" if torch.cuda.is_available() else "cpu"))
        self._backbone = backbone
        self._mean = torch.tensor(IMAGENET_MEAN).view(1, 3, 1, 1)
        self._std = torch.tensor(IMAGENET_STD).view(1, 3, 1, 1)
        self.loaded_at: Optional[float] = None

    @property
    def is_loaded(self) -> bool:
        return self.loaded_at is not None

    def load(self) -> "ImageFeatureModel":
        """Build the backbone and move it to the target device.

        Call once at startup before serving requests.
        """
        if self.is_loaded:
            return self

        if self._backbone is None:
            builder, weights = MODEL_BUILDERS[self.model_name]
            model = builder(weights=weights if self.pretrained else None)
            self._backbone = model.features

        self._backbone.eval().to(self.device)
        self._mean = self._mean.to(self.device)
        self._std = self._std.to(self.device)
        self.loaded_at = time.time()

        logger.info(
            "Loaded image feature model",
            model_name=self.model_name,
            pretrained=self.pretrained,
            device=str(self.device),
        )
        return self

    def embed(self, batch: np.ndarray) -> np.ndarray:
        """Return ``(N, C)`` pooled features for an ``(N, H, W, 3)`` batch."""
        if not self.is_loaded:
            raise RuntimeError("Image feature model used before load()")

        inputs = torch.from_numpy(np.ascontiguousarray(batch, dtype=np.float32))
        inputs = inputs.permute(0, 3, 1, 2).to(self.device)
        inputs = (inputs - self._mean) / self._std

        with torch.inference_mode():
            features = self._backbone(inputs)
            pooled = features.mean(dim=(2, 3))

        return pooled.cpu().numpy()

    def info(self) -> Dict[str, Any]:
        return {
            "name": self.model_name,
            "pretrained": self.pretrained,
            "dimension": EMBEDDING_DIMENSION,
            "device": str(self.device),
            "loaded_at": self.loaded_at,
        }


class EmbeddingExtractor:
    """Extract one embedding vector from one preprocessed input tensor."""

    def __init__(self, model: ImageFeatureModel):
        self.model = model

    def extract(self, tensor: np.ndarray) -> List[float]:
        """Return the pooled features for ``tensor`` as a list of floats.

        Raises ``ExtractionError`` when ``tensor`` is not ``(1, 224, 224, 3)``;
        that only happens when preprocessing is broken.
        """
        shape = tuple(getattr(tensor, "shape", ()))
        if shape != INPUT_SHAPE:
            raise ExtractionError(f"Expected input tensor of shape {INPUT_SHAPE}, got {shape}")

        features = self.model.embed(tensor)
        vector = features.reshape(-1).astype(np.float64).tolist()

        logger.debug("Embedding extracted", dimension=len(vector))
        return vector

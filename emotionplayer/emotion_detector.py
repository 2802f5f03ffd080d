"""Emotion recognition from face images using an FER+ style network."""

from __future__ import annotations

import numpy as np
from PIL import Image, UnidentifiedImageError

from .onnx_net import ModelError, Network, read_net_from_onnx
from .utils import softmax

EMOTION_LABELS = (
    "Neutral", "Happiness", "Surprise", "Sadness",
    "Anger", "Disgust", "Fear", "Contempt",
)

_INPUT_SIZE = (64, 64)


class ImageLoadError(Exception):
    """Raised when an image cannot be loaded."""


class EmotionDetector:
    """Classifies the emotion on a face image with a loaded network."""

    def __init__(self) -> None:
        self._net: Network | None = None

    def load_model(self, model_file_name) -> None:
        """Load the network from an ONNX file."""
        self._net = read_net_from_onnx(model_file_name)

    @staticmethod
    def preprocess_image(image) -> np.ndarray:
        """Scale a grayscale image to [0, 1], resize to 64x64 and return an NCHW blob."""
        scaled = np.asarray(image, dtype=np.float32) / 255.0
        if scaled.ndim != 2:
            raise ValueError("expected a single-channel image")
        resized = Image.fromarray(scaled, mode="F").resize(
            _INPUT_SIZE, Image.Resampling.BILINEAR
        )
        return np.asarray(resized, dtype=np.float32)[np.newaxis, np.newaxis, :, :]

    def detect_from_image(self, image_path) -> tuple[str, float]:
        """Return the most probable emotion and its probability."""
        try:
            with Image.open(image_path) as img:
                image = np.asarray(img.convert("L"))
        except (OSError, UnidentifiedImageError, ValueError) as exc:
            raise ImageLoadError("Failed to load image") from exc
        if image.size == 0:
            raise ImageLoadError("Failed to load image")
        if self._net is None:
            raise ModelError("No model loaded")

        result = self._net.forward(self.preprocess_image(image))
        probs = softmax(np.asarray(result, dtype=np.float32).reshape(1, -1)).reshape(-1)
        index = int(np.argmax(probs))
        if index >= len(EMOTION_LABELS):
            raise ModelError("Model output has more classes than known emotions")
        return EMOTION_LABELS[index], float(probs[index])
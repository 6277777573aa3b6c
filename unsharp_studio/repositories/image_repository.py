from pathlib import Path
from typing import Union
import os
import math
import logging

import cv2
import numpy as np
from PIL import Image as PILImage
from dotenv import load_dotenv

from ..models.errors import InvalidDimensions
from ..models.image import Image

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

CHANNELS = 4


class ImageRepository:
    """
    Handles file I/O and raw-buffer conversion for Image entities.
    Everything that leaves this class is RGBA8 (H, W, 4).
    """
    def __init__(self):
        self.VALID_EXTS = {
            ext.strip().lower()
            for ext in os.getenv("VALID_IMAGE_EXTENSIONS", ".png,.jpg,.jpeg,.bmp,.webp").split(",")
        }

    @staticmethod
    def validate_pixels(pixels: np.ndarray) -> np.ndarray:
        if not isinstance(pixels, np.ndarray) or pixels.ndim != 3 or pixels.shape[2] != CHANNELS:
            shape = getattr(pixels, "shape", None)
            raise InvalidDimensions(f"Expected (H, W, 4) RGBA pixels, got {shape}")
        if pixels.dtype != np.uint8:
            raise InvalidDimensions(f"Expected uint8 pixels, got {pixels.dtype}")
        return np.ascontiguousarray(pixels)

    # ─── raw RGBA8 buffers ────────────────────────────────────────────
    @staticmethod
    def from_buffer(width: int, height: int, data: Union[bytes, bytearray, memoryview, np.ndarray]) -> Image:
        """
        Wrap an interleaved RGBA8 buffer of exactly width * height * 4 bytes.
        """
        if width < 0 or height < 0:
            raise InvalidDimensions(f"Negative dimensions {width}x{height}")
        if isinstance(data, np.ndarray):
            flat = data.astype(np.uint8, copy=False).ravel()
        else:
            flat = np.frombuffer(bytes(data), dtype=np.uint8)
        expected = width * height * CHANNELS
        if flat.size != expected:
            raise InvalidDimensions(
                f"Buffer holds {flat.size} bytes, expected {width}x{height}x{CHANNELS} = {expected}"
            )
        return Image(pixels=flat.reshape((height, width, CHANNELS)).copy())

    @staticmethod
    def to_buffer(image: Image) -> bytes:
        return np.ascontiguousarray(image.pixels).tobytes()

    # ─── files ────────────────────────────────────────────────────────
    @staticmethod
    def load(path: Union[str, Path]) -> Image:
        path = Path(path)
        arr = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
        if arr is None:
            raise FileNotFoundError(f"Image not found or unreadable: {path}")
        rgba = ImageRepository._normalise(arr)
        logger.debug(f"Loaded {path} as {rgba.shape[1]}x{rgba.shape[0]} RGBA")
        return Image(pixels=rgba, path=path)

    @staticmethod
    def decode(data: bytes) -> Image:
        """Decode an encoded file (PNG, JPEG, ...) held in memory."""
        if not data:
            raise ValueError("Uploaded data is empty")
        arr = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_UNCHANGED)
        if arr is None:
            raise ValueError("Uploaded data is not a decodable image")
        return Image(pixels=ImageRepository._normalise(arr))

    @staticmethod
    def _normalise(arr: np.ndarray) -> np.ndarray:
        """grayscale / BGR / BGRA, 8 or 16 bit  ->  RGBA8"""
        if arr.dtype == np.uint16:
            arr = (arr // 257).astype(np.uint8)

        if arr.ndim == 2:
            rgba = cv2.cvtColor(arr, cv2.COLOR_GRAY2RGBA)
        elif arr.shape[2] == 3:
            rgba = cv2.cvtColor(arr, cv2.COLOR_BGR2RGBA)
        else:
            rgba = cv2.cvtColor(arr, cv2.COLOR_BGRA2RGBA)
        return rgba

    @staticmethod
    def save(image: Image, path: Union[str, Path] = None) -> Path:
        target = Path(path) if path is not None else image.path
        if target is None:
            raise ValueError("Image has no path to save to")
        target.parent.mkdir(parents=True, exist_ok=True)
        pil_image = PILImage.fromarray(ImageRepository.validate_pixels(image.pixels))
        if target.suffix.lower() in (".jpg", ".jpeg"):
            pil_image = pil_image.convert("RGB")  # JPEG has no alpha
        pil_image.save(target)
        return target

    def is_supported(self, path: Union[str, Path]) -> bool:
        return Path(path).suffix.lower() in self.VALID_EXTS

    @staticmethod
    def fit_width(image: Image, max_width: int = 800) -> Image:
        """
        Downscale so width <= max_width (never upscales), keeping aspect ratio.
        """
        scale = min(max_width / image.width, 1.0) if image.width else 1.0
        if scale >= 1.0:
            return image
        # half-up, so 2.5 px becomes 3
        w = max(1, math.floor(image.width * scale + 0.5))
        h = max(1, math.floor(image.height * scale + 0.5))
        resized = cv2.resize(image.pixels, (w, h), interpolation=cv2.INTER_AREA)
        return Image(pixels=resized, path=image.path)

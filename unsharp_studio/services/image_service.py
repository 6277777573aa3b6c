from pathlib import Path
from typing import Union
from io import BytesIO
import base64
import os

import numpy as np
from PIL import Image as PILImage
from dotenv import load_dotenv

from ..models.image import Image
from ..repositories.image_repository import ImageRepository

# Load environment variables
load_dotenv()


class ImageService:
    """I/O helpers.  No filter logic here."""
    def __init__(self):
        self.PREVIEW_MAX_WIDTH = int(os.getenv("PREVIEW_MAX_WIDTH", "800"))
        self.image_repository = ImageRepository()

    def from_buffer(self, width: int, height: int, data) -> Image:
        """Wrap a raw interleaved RGBA8 buffer (validated against width x height)."""
        return self.image_repository.from_buffer(width, height, data)

    def to_buffer(self, image: Image) -> bytes:
        return self.image_repository.to_buffer(image)

    def decode(self, data: bytes) -> Image:
        """Decode an uploaded file held in memory into an RGBA Image."""
        return self.image_repository.decode(data)

    def load(self, path: Union[str, Path]) -> Image:
        """Load a single image from disk into an RGBA Image object."""
        return self.image_repository.load(path)

    def load_preview(self, path: Union[str, Path], max_width: int = None) -> Image:
        """Load and downscale to the editor's preview width."""
        return self.fit_preview(self.load(path), max_width)

    def fit_preview(self, img: Image, max_width: int = None) -> Image:
        return self.image_repository.fit_width(img, max_width or self.PREVIEW_MAX_WIDTH)

    def is_supported(self, path: Union[str, Path]) -> bool:
        """True when the file extension is one we read and write."""
        return self.image_repository.is_supported(path)

    def save(self, image: Image, path: Union[str, Path] = None) -> Path:
        """
        Business-level method to save the image (PNG keeps alpha).
        """
        return self.image_repository.save(image, path)

    def to_pil_image(self, img: Image) -> PILImage.Image:
        """
        Convert Image.pixels → PIL Image object.
        Ensures the NumPy array is C-contiguous.
        """
        np_img = img.pixels
        if not np_img.flags['C_CONTIGUOUS']:
            np_img = np.ascontiguousarray(np_img)

        return PILImage.fromarray(np_img)

    def to_data_url(self, img: Image) -> str:
        """PNG data URL for JSON responses."""
        buffer = BytesIO()
        self.to_pil_image(img).save(buffer, format="PNG")
        encoded = base64.b64encode(buffer.getvalue()).decode("utf-8")
        return f"data:image/png;base64,{encoded}"

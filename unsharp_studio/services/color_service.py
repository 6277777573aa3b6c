import logging

import numpy as np

from ..models.errors import InvalidParameter
from ..models.filter_settings import CONTRAST_LIMIT, CONTRAST_SINGULARITY
from ..models.image import Image
from ..repositories.convolution_repository import round_half_away

logger = logging.getLogger(__name__)

# ITU-R BT.601 luma weights
LUMA_R, LUMA_G, LUMA_B = 0.299, 0.587, 0.114
THRESHOLD_CUTOFF = 127


class ColorService:
    """
    Uniform per-pixel colour operators.
    Alpha is never touched; each call returns a new Image.
    """

    @staticmethod
    def _with_rgb(img: Image, rgb: np.ndarray) -> Image:
        out = img.pixels.copy()
        out[..., :3] = rgb
        return Image(pixels=out, path=img.path)

    def grayscale(self, img: Image) -> Image:
        """R = G = B = round(0.299 R + 0.587 G + 0.114 B)."""
        rgb = img.pixels[..., :3].astype(np.float64)
        # summed R, G, B left to right; exact .5 ties depend on this order
        luma = LUMA_R * rgb[..., 0] + LUMA_G * rgb[..., 1] + LUMA_B * rgb[..., 2]
        gray = np.clip(round_half_away(luma), 0, 255).astype(np.uint8)
        return self._with_rgb(img, gray[..., None])

    def threshold(self, img: Image) -> Image:
        """
        Binary threshold on the channel mean: 255 if mean > 127 else 0.
        A mean of exactly 127 maps to 0.
        """
        total = img.pixels[..., :3].astype(np.int32).sum(axis=-1)
        # mean > 127  <=>  sum > 381, kept in integers to avoid float ties
        binary = np.where(total > 3 * THRESHOLD_CUTOFF, 255, 0).astype(np.uint8)
        return self._with_rgb(img, binary[..., None])

    @staticmethod
    def contrast_factor(amount: float) -> float:
        """
        259 (amount + 255) / (255 (259 - amount)).
        amount is clamped into [-255, 255]; 259 itself is rejected.
        """
        if amount == CONTRAST_SINGULARITY:
            raise InvalidParameter("Contrast amount 259 divides by zero")
        amount = max(-CONTRAST_LIMIT, min(CONTRAST_LIMIT, float(amount)))
        return 259.0 * (amount + 255.0) / (255.0 * (259.0 - amount))

    def contrast(self, img: Image, amount: float = 40) -> Image:
        """v' = clamp(factor * (v - 128) + 128, 0, 255), rounded."""
        factor = self.contrast_factor(amount)
        logger.info(f"Contrast amount={amount} factor={factor:.4f}")
        rgb = img.pixels[..., :3].astype(np.float64)
        stretched = np.clip(factor * (rgb - 128.0) + 128.0, 0.0, 255.0)
        return self._with_rgb(img, round_half_away(stretched).astype(np.uint8))

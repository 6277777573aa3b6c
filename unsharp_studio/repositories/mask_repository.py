# repositories/mask_repository.py
import cv2
import numpy as np

from ..models.errors import InvalidDimensions


class MaskRepository:
    """
    Binary occupancy masks + morphology.

    • Mask comes straight from the alpha channel (alpha > 0).
    • Dilation uses a square structuring element, i.e. Chebyshev distance.
    """

    # ---------- public API ----------
    @staticmethod
    def alpha_mask(pixels: np.ndarray) -> np.ndarray:
        """
        Returns bool mask (H, W): True where the pixel is part of the object.
        """
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise InvalidDimensions(f"Expected (H, W, 4) RGBA pixels, got {pixels.shape}")
        return pixels[..., 3] > 0

    @staticmethod
    def dilate(mask: np.ndarray, radius: int) -> np.ndarray:
        """
        Grow *mask* by *radius* pixels under Chebyshev distance.

        OpenCV's default border for dilation never contributes, which matches
        a neighbourhood scan clipped to the image bounds.
        """
        radius = max(0, int(radius))
        if radius == 0 or mask.size == 0:
            return mask.copy()
        size = 2 * radius + 1
        element = cv2.getStructuringElement(cv2.MORPH_RECT, (size, size))
        grown = cv2.dilate(mask.astype(np.uint8), element)
        return grown.astype(bool)

    def ring(self, mask: np.ndarray, radius: int) -> np.ndarray:
        """Background pixels within *radius* of the mask (the stroke band)."""
        return self.dilate(mask, radius) & ~mask

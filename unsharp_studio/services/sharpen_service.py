from __future__ import annotations

import logging

import numpy as np

from ..models.errors import InvalidDimensions, InvalidParameter
from ..models.filter_settings import AMOUNT_RANGE, SIGMA_RANGE, THRESHOLD_RANGE
from ..models.image import Image
from ..repositories.convolution_repository import ConvolutionRepository

logger = logging.getLogger(__name__)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class SharpenService:
    """
    Gaussian unsharp masking.
    *   Works only with Image objects (RGBA numpy arrays), no I/O here.
    *   Every call returns a *new* Image; the input is never mutated.
    """

    def __init__(self, workers: int = 1):
        self.conv_repo = ConvolutionRepository(workers=workers)

    # ─── Public API ────────────────────────────────────────────────
    def unsharp(
            self,
            img: Image,
            amount: float = 5.0,
            sigma: float = 20.0,
            threshold: float = 5,
            iterations: int = 1,
    ) -> Image:
        """
        Sharpen *img* as  src + amount * (src - blur(src)), *iterations* times.

        Args:
            img: source image, RGBA8
            amount: strength, clamped to [0, 10]
            sigma: gaussian spread, clamped to [0, 50]
            threshold: detail below |mask| * 255 < threshold is ignored
            iterations: each pass consumes the previous pass's output

        Returns:
            Image: sharpened copy with the source alpha untouched
        """
        if iterations < 1:
            raise InvalidParameter(f"iterations must be >= 1, got {iterations}")
        if img.pixels.ndim != 3 or img.pixels.shape[2] != 4:
            raise InvalidDimensions(f"Expected (H, W, 4) RGBA pixels, got {img.pixels.shape}")

        amount = _clamp(float(amount), *AMOUNT_RANGE)
        sigma = _clamp(float(sigma), *SIGMA_RANGE)
        threshold = _clamp(float(threshold), *THRESHOLD_RANGE)
        kernel = self.conv_repo.build_gaussian_kernel(sigma)

        logger.info(
            f"Unsharp {img.width}x{img.height}: amount={amount} sigma={sigma} "
            f"(radius {kernel.radius}) threshold={threshold} x{iterations}"
        )

        pixels = img.pixels
        for _ in range(iterations):
            pixels = self._unsharp_once(pixels, amount, kernel, threshold)
        return Image(pixels=pixels, path=img.path)

    # ─── Internal helpers ──────────────────────────────────────────
    def _unsharp_once(self, pixels: np.ndarray, amount: float, kernel, threshold: float) -> np.ndarray:
        src = self.conv_repo.to_float(pixels)
        # All four channels are blurred; the blurred alpha is discarded below.
        blurred = self.conv_repo.convolve(src, kernel)

        out = np.empty_like(src)
        mask = src[..., :3] - blurred[..., :3]
        mask[np.abs(mask) * 255.0 < threshold] = 0.0
        out[..., :3] = np.clip(src[..., :3] + amount * mask, 0.0, 1.0)
        out[..., 3] = src[..., 3]

        return self.conv_repo.to_pixels(out, pixels)

# repositories/convolution_repository.py
"""
Float-domain pixel engine.

• Builds normalised 1-D Gaussian kernels.
• Converts RGBA8 <-> normalised float32 buffers (the colour codec).
• Runs the separable, clamp-to-edge convolution used by the unsharp mask.
"""
from __future__ import annotations
import math
from concurrent.futures import ThreadPoolExecutor
from typing import List, Tuple

import numpy as np

from ..models.errors import InvalidDimensions
from ..models.kernel import GaussianKernel


def round_half_away(values: np.ndarray) -> np.ndarray:
    """np.rint rounds half to even; the pixel maths wants 0.5 -> 1."""
    return np.sign(values) * np.floor(np.abs(values) + 0.5)


def _row_bands(height: int, workers: int) -> List[Tuple[int, int]]:
    """Split [0, height) into at most *workers* contiguous, non-overlapping bands."""
    workers = max(1, min(workers, height))
    step = math.ceil(height / workers)
    return [(lo, min(lo + step, height)) for lo in range(0, height, step)]


class ConvolutionRepository:
    """
    Stateless helpers; every call receives and returns independent buffers.
    """

    def __init__(self, workers: int = 1) -> None:
        self.workers = max(1, int(workers))

    # ---------- kernel ----------
    @staticmethod
    def build_gaussian_kernel(sigma: float) -> GaussianKernel:
        """
        radius = ceil(3 * sigma), weights exp(-i² / 2σ²) normalised to sum 1.
        sigma <= 0 gives the identity kernel [1].
        """
        if not sigma > 0:
            return GaussianKernel(weights=np.ones(1, dtype=np.float32), radius=0, sigma=0.0)

        radius = int(math.ceil(3.0 * sigma))
        offsets = np.arange(-radius, radius + 1, dtype=np.float64)
        weights = np.exp(-(offsets * offsets) / (2.0 * sigma * sigma))
        weights /= weights.sum()
        return GaussianKernel(weights=weights.astype(np.float32), radius=radius, sigma=float(sigma))

    # ---------- codec ----------
    @staticmethod
    def to_float(pixels: np.ndarray) -> np.ndarray:
        """uint8 (H, W, 4) -> float32 (H, W, 4) in [0, 1]."""
        return pixels.astype(np.float32) / np.float32(255.0)

    @staticmethod
    def to_pixels(float_pixels: np.ndarray, alpha_source: np.ndarray) -> np.ndarray:
        """
        float32 (H, W, 4) -> uint8 (H, W, 4).
        RGB is clamped to [0, 1] then rounded; alpha is copied verbatim from
        *alpha_source* rather than from the (possibly blurred) float alpha.
        """
        if float_pixels.shape != alpha_source.shape:
            raise InvalidDimensions(
                f"Float buffer {float_pixels.shape} does not match alpha source {alpha_source.shape}"
            )
        rgb = np.clip(float_pixels[..., :3].astype(np.float64), 0.0, 1.0) * 255.0
        out = np.empty(alpha_source.shape, dtype=np.uint8)
        out[..., :3] = round_half_away(rgb).astype(np.uint8)
        out[..., 3] = alpha_source[..., 3]
        return out

    # ---------- separable convolution ----------
    def convolve(self, src: np.ndarray, kernel: GaussianKernel) -> np.ndarray:
        """
        Horizontal pass then vertical pass over all four channels.
        Out-of-range samples are clamped to the nearest edge pixel.
        """
        if src.ndim != 3 or src.shape[2] != 4:
            raise InvalidDimensions(f"Expected (H, W, 4) float buffer, got {src.shape}")
        if kernel.is_identity or src.size == 0:
            return src.astype(np.float32, copy=True)

        r = kernel.radius
        height = src.shape[0]
        bands = _row_bands(height, self.workers)

        # horizontal: pad columns, every band reads only its own rows
        padded_h = np.pad(src, ((0, 0), (r, r), (0, 0)), mode="edge")
        tmp = np.empty(src.shape, dtype=np.float32)
        self._run_bands(bands, lambda lo, hi: self._horizontal_band(padded_h, tmp, kernel, lo, hi))

        # vertical must wait until tmp is complete (barrier = _run_bands returning)
        padded_v = np.pad(tmp, ((r, r), (0, 0), (0, 0)), mode="edge")
        out = np.empty(src.shape, dtype=np.float32)
        self._run_bands(bands, lambda lo, hi: self._vertical_band(padded_v, out, kernel, lo, hi))
        return out

    def blur(self, src: np.ndarray, sigma: float) -> np.ndarray:
        return self.convolve(src, self.build_gaussian_kernel(sigma))

    # ---------- private helpers ----------
    def _run_bands(self, bands: List[Tuple[int, int]], work) -> None:
        if len(bands) == 1:
            work(*bands[0])
            return
        with ThreadPoolExecutor(max_workers=len(bands)) as pool:
            futures = [pool.submit(work, lo, hi) for lo, hi in bands]
            for future in futures:
                future.result()

    @staticmethod
    def _horizontal_band(padded: np.ndarray, out: np.ndarray,
                         kernel: GaussianKernel, lo: int, hi: int) -> None:
        width = out.shape[1]
        acc = np.zeros((hi - lo, width, out.shape[2]), dtype=np.float64)
        for k, weight in enumerate(kernel.weights):
            acc += float(weight) * padded[lo:hi, k:k + width]
        out[lo:hi] = acc

    @staticmethod
    def _vertical_band(padded: np.ndarray, out: np.ndarray,
                       kernel: GaussianKernel, lo: int, hi: int) -> None:
        acc = np.zeros((hi - lo,) + out.shape[1:], dtype=np.float64)
        for k, weight in enumerate(kernel.weights):
            acc += float(weight) * padded[lo + k:hi + k]
        out[lo:hi] = acc

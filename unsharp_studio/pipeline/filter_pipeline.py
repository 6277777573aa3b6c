"""
Filter Pipeline
Owns the three images of an editing session:

    original  – captured once per load, read-only, reset target and default
                silhouette for the stroke
    base      – cumulative result of every destructive filter, replaced
                wholesale by each one
    display   – base (+ stroke overlay), recomputed by render() and never kept
"""

import logging
from typing import Callable, List, Optional

from ..models.color import Color
from ..models.errors import InvalidDimensions, PipelineNotLoaded
from ..models.filter_settings import FilterSettings
from ..models.image import Image
from ..services.color_service import ColorService
from ..services.sharpen_service import SharpenService
from ..services.stroke_service import StrokeService

logger = logging.getLogger(__name__)

Operator = Callable[[Image], Image]


def _frozen(img: Image) -> Image:
    pixels = img.pixels.copy()
    pixels.flags.writeable = False
    return Image(pixels=pixels, path=img.path)


class FilterPipeline:
    """Sequential destructive filters + non-destructive stroke preview."""

    def __init__(
        self,
        *,
        sharpen_service: Optional[SharpenService] = None,
        color_service: Optional[ColorService] = None,
        stroke_service: Optional[StrokeService] = None,
    ):
        self.sharpen_service = sharpen_service or SharpenService()
        self.color_service = color_service or ColorService()
        self.stroke_service = stroke_service or StrokeService()
        self._original: Optional[Image] = None
        self._base: Optional[Image] = None
        self.history: List[str] = []

    # ─── state ─────────────────────────────────────────────────────
    @property
    def is_loaded(self) -> bool:
        return self._original is not None

    @property
    def original(self) -> Image:
        self._require_loaded()
        return self._original

    @property
    def base(self) -> Image:
        self._require_loaded()
        return self._base

    def _require_loaded(self) -> None:
        if self._original is None:
            raise PipelineNotLoaded("No image loaded into the pipeline")

    def load(self, img: Image) -> None:
        """original := img, base := img. Clears the filter history."""
        if img.pixels.ndim != 3 or img.pixels.shape[2] != 4:
            raise InvalidDimensions(f"Expected (H, W, 4) RGBA pixels, got {img.pixels.shape}")
        self._original = _frozen(img)
        self._base = self._original
        self.history.clear()
        logger.info(f"Loaded {img.width}x{img.height} image into pipeline")

    def reset(self) -> None:
        """base := original."""
        self._require_loaded()
        self._base = self._original
        self.history.clear()
        logger.info("Pipeline reset to original")

    # ─── destructive filters ───────────────────────────────────────
    def apply_destructive(self, op: Operator, name: Optional[str] = None) -> Image:
        """
        base := op(base). A result of a different shape is rejected and the
        base is left as it was.
        """
        self._require_loaded()
        result = op(self._base)
        if result.pixels.shape != self._base.pixels.shape:
            raise InvalidDimensions(
                f"Operator changed shape {self._base.pixels.shape} -> {result.pixels.shape}"
            )
        self._base = _frozen(result)
        label = name or getattr(op, "__name__", "operator")
        self.history.append(label)
        logger.info(f"Applied {label} (step {len(self.history)})")
        return self._base

    def apply_unsharp(self, settings: Optional[FilterSettings] = None) -> Image:
        settings = settings or FilterSettings()
        return self.apply_destructive(
            lambda img: self.sharpen_service.unsharp(
                img,
                amount=settings.amount,
                sigma=settings.sigma,
                threshold=settings.threshold,
                iterations=settings.unsharp_iterations,
            ),
            name="unsharp",
        )

    def apply_grayscale(self) -> Image:
        return self.apply_destructive(self.color_service.grayscale, name="grayscale")

    def apply_threshold(self) -> Image:
        return self.apply_destructive(self.color_service.threshold, name="threshold")

    def apply_contrast(self, amount: float = 40) -> Image:
        return self.apply_destructive(
            lambda img: self.color_service.contrast(img, amount), name="contrast"
        )

    # ─── display ───────────────────────────────────────────────────
    def render(
        self,
        stroke_size: float = 0,
        color: Color = Color.BLACK,
        mask_source: Optional[Image] = None,
    ) -> Image:
        """
        Image to display: base with the stroke painted around the silhouette
        of *mask_source* (the original by default). Never mutates base.
        """
        self._require_loaded()
        if not stroke_size or stroke_size <= 0:
            return self._base.copy()
        source = mask_source if mask_source is not None else self._original
        return self.stroke_service.overlay_stroke(self._base, source, stroke_size, color)

from typing import Optional
import math
import logging

import numpy as np

from ..models.color import Color
from ..models.errors import InvalidDimensions
from ..models.image import Image
from ..repositories.mask_repository import MaskRepository

logger = logging.getLogger(__name__)


class StrokeService:
    """
    Business-level helper for the stroke / halo overlay.

    • Uses MaskRepository to derive the silhouette from alpha.
    • Returns a **new** Image; the base and the mask source stay untouched.
    """

    def __init__(self) -> None:
        self.mask_repo = MaskRepository()

    @staticmethod
    def _stroke_radius(stroke_size: float) -> int:
        if stroke_size is None or not math.isfinite(stroke_size):
            return 0
        return max(0, int(math.floor(stroke_size)))

    def overlay_stroke(
            self,
            base: Image,
            mask_source: Optional[Image] = None,
            stroke_size: float = 0,
            color: Color = Color.BLACK,
    ) -> Image:
        """
        Paint *color* on every background pixel (alpha == 0 in *mask_source*)
        within Chebyshev distance stroke_size of the silhouette.

        • stroke_size 0 (or negative) → unchanged copy of base
        • pixels inside the silhouette are never painted
        """
        s = self._stroke_radius(stroke_size)
        out = base.pixels.copy()
        if s == 0:
            return Image(pixels=out, path=base.path)

        source = mask_source if mask_source is not None else base
        if source.pixels.shape != base.pixels.shape:
            raise InvalidDimensions(
                f"Mask source {source.pixels.shape} does not match base {base.pixels.shape}"
            )

        mask = self.mask_repo.alpha_mask(source.pixels)
        ring = self.mask_repo.ring(mask, s)
        out[ring] = np.array(color.as_rgba(), dtype=np.uint8)

        logger.debug(f"Stroke s={s} colour={color.to_hex()} painted {int(ring.sum())} px")
        return Image(pixels=out, path=base.path)

from __future__ import annotations
import os
from dataclasses import dataclass, replace

from dotenv import load_dotenv

from .color import Color
from .errors import InvalidParameter

# Load environment variables
load_dotenv()

# ── Valid ranges (inclusive unless noted) ─────────────────────────
AMOUNT_RANGE = (0.0, 10.0)
SIGMA_RANGE = (0.0, 50.0)
THRESHOLD_RANGE = (0, 255)
STROKE_SIZE_RANGE = (0, 40)
CONTRAST_LIMIT = 255          # open interval (-255, 255)
CONTRAST_SINGULARITY = 259


@dataclass
class FilterSettings:
    """
    Value-object holding every tunable of the editing pipeline,
    with the defaults of the original editor.
    """
    amount: float = 5.0           # unsharp strength      [0, 10]
    sigma: float = 20.0           # gaussian spread       [0, 50]
    threshold: int = 5            # unsharp noise gate    [0, 255]
    unsharp_iterations: int = 2   # repeated applications >= 1
    contrast_amount: int = 40     # (-255, 255), never 259
    stroke_size: int = 0          # halo radius in px     [0, 40]
    stroke_color: str = "#000000"
    workers: int = 1              # convolution row-band threads
    preview_max_width: int = 800

    @classmethod
    def from_env(cls) -> "FilterSettings":
        """Read overrides from the environment (.env is honoured)."""
        defaults = cls()
        return cls(
            amount=float(os.getenv("UNSHARP_AMOUNT", defaults.amount)),
            sigma=float(os.getenv("UNSHARP_SIGMA", defaults.sigma)),
            threshold=int(os.getenv("UNSHARP_THRESHOLD", defaults.threshold)),
            unsharp_iterations=int(os.getenv("UNSHARP_ITERATIONS", defaults.unsharp_iterations)),
            contrast_amount=int(os.getenv("CONTRAST_AMOUNT", defaults.contrast_amount)),
            stroke_size=int(os.getenv("STROKE_SIZE", defaults.stroke_size)),
            stroke_color=os.getenv("STROKE_COLOR", defaults.stroke_color),
            workers=int(os.getenv("CONVOLUTION_WORKERS", defaults.workers)),
            preview_max_width=int(os.getenv("PREVIEW_MAX_WIDTH", defaults.preview_max_width)),
        )

    def with_overrides(self, **overrides) -> "FilterSettings":
        """Return a copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    @property
    def color(self) -> Color:
        return Color.parse(self.stroke_color)

    def validate(self) -> "FilterSettings":
        """
        Reject values outside the documented ranges.
        Raises InvalidParameter (or InvalidColor for the stroke colour).
        """
        _check_range("amount", self.amount, *AMOUNT_RANGE)
        _check_range("sigma", self.sigma, *SIGMA_RANGE)
        _check_range("threshold", self.threshold, *THRESHOLD_RANGE)
        _check_range("stroke_size", self.stroke_size, *STROKE_SIZE_RANGE)
        if self.unsharp_iterations < 1:
            raise InvalidParameter(f"unsharp_iterations must be >= 1, got {self.unsharp_iterations}")
        if self.contrast_amount == CONTRAST_SINGULARITY:
            raise InvalidParameter("contrast_amount 259 divides by zero")
        if not -CONTRAST_LIMIT < self.contrast_amount < CONTRAST_LIMIT:
            raise InvalidParameter(
                f"contrast_amount must be in (-{CONTRAST_LIMIT}, {CONTRAST_LIMIT}), got {self.contrast_amount}"
            )
        if self.workers < 1:
            raise InvalidParameter(f"workers must be >= 1, got {self.workers}")
        if self.preview_max_width < 1:
            raise InvalidParameter(f"preview_max_width must be >= 1, got {self.preview_max_width}")
        Color.parse(self.stroke_color)
        return self


def _check_range(name: str, value: float, low: float, high: float) -> None:
    if not low <= value <= high:
        raise InvalidParameter(f"{name} must be in [{low}, {high}], got {value}")

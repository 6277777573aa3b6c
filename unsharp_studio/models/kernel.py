from __future__ import annotations
from dataclasses import dataclass
import numpy as np


@dataclass(frozen=True)
class GaussianKernel:
    """
    Normalised 1-D Gaussian weights of length 2 * radius + 1.
    radius == 0 (single weight 1.0) is the identity kernel.
    """
    weights: np.ndarray # float32, sums to ~1
    radius: int
    sigma: float = 0.0

    @property
    def size(self) -> int:
        return 2 * self.radius + 1

    @property
    def is_identity(self) -> bool:
        return self.radius == 0

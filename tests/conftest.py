import sys
from pathlib import Path

import numpy as np
import pytest

ROOT = Path(__file__).resolve().parents[1]

# Ensure the project sources are importable without an editable install.
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from unsharp_studio.models.image import Image  # noqa: E402


def make_image(width, height, rgba=(0, 0, 0, 0)):
    pixels = np.zeros((height, width, 4), dtype=np.uint8)
    pixels[...] = rgba
    return Image(pixels=pixels)


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def random_image(rng):
    """16x12 image with random RGB and a random mix of opaque / transparent alpha."""
    pixels = rng.integers(0, 256, size=(12, 16, 4), dtype=np.uint8)
    pixels[..., 3] = np.where(rng.random((12, 16)) > 0.5, 255, 0)
    return Image(pixels=pixels)


@pytest.fixture
def block_image():
    """4x4 fully transparent image with an opaque white 2x2 block at rows/cols 1-2."""
    img = make_image(4, 4)
    img.pixels[1:3, 1:3] = (255, 255, 255, 255)
    return img


@pytest.fixture
def edge_image():
    """Fully opaque 20x10 image: dark left half, light right half."""
    pixels = np.zeros((10, 20, 4), dtype=np.uint8)
    for x in range(20):
        pixels[:, x, :3] = 60 if x < 10 else 190
    pixels[..., 3] = 255
    return Image(pixels=pixels)

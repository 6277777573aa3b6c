"""Tests for the Gaussian kernel builder, the colour codec and the separable convolution."""

import numpy as np
import pytest

from unsharp_studio.models.errors import InvalidDimensions
from unsharp_studio.repositories.convolution_repository import (
    ConvolutionRepository,
    round_half_away,
)


def reference_convolve(src, weights):
    """Definition-level separable convolution with clamped sample indices."""
    radius = (len(weights) - 1) // 2
    h, w = src.shape[:2]
    tmp = np.zeros(src.shape, dtype=np.float64)
    for k in range(-radius, radius + 1):
        xs = np.clip(np.arange(w) + k, 0, w - 1)
        tmp += weights[k + radius] * src[:, xs]
    out = np.zeros(src.shape, dtype=np.float64)
    for k in range(-radius, radius + 1):
        ys = np.clip(np.arange(h) + k, 0, h - 1)
        out += weights[k + radius] * tmp[ys]
    return out


@pytest.mark.parametrize("sigma", [0.1, 0.5, 1.0, 2.3, 7.0, 20.0, 50.0])
def test_kernel_sums_to_one(sigma):
    kernel = ConvolutionRepository.build_gaussian_kernel(sigma)
    assert float(kernel.weights.astype(np.float64).sum()) == pytest.approx(1.0, abs=1e-5)
    assert kernel.radius == int(np.ceil(3 * sigma))
    assert kernel.weights.size == 2 * kernel.radius + 1
    assert np.all(kernel.weights >= 0)


def test_kernel_is_symmetric_and_peaks_in_the_middle():
    kernel = ConvolutionRepository.build_gaussian_kernel(1.5)
    np.testing.assert_allclose(kernel.weights, kernel.weights[::-1], atol=1e-7)
    assert int(np.argmax(kernel.weights)) == kernel.radius


@pytest.mark.parametrize("sigma", [0, 0.0, -3.0])
def test_degenerate_sigma_gives_identity_kernel(sigma):
    kernel = ConvolutionRepository.build_gaussian_kernel(sigma)
    assert kernel.radius == 0
    assert kernel.weights.tolist() == [1.0]
    assert kernel.is_identity


def test_identity_kernel_convolution_is_exact(random_image):
    repo = ConvolutionRepository()
    src = repo.to_float(random_image.pixels)
    out = repo.convolve(src, repo.build_gaussian_kernel(0))
    np.testing.assert_array_equal(out, src)
    assert out is not src


@pytest.mark.parametrize("sigma", [0.6, 1.0, 2.0])
def test_convolution_matches_clamp_to_edge_definition(random_image, sigma):
    repo = ConvolutionRepository()
    src = repo.to_float(random_image.pixels)
    kernel = repo.build_gaussian_kernel(sigma)

    expected = reference_convolve(src.astype(np.float64), kernel.weights.astype(np.float64))
    np.testing.assert_allclose(repo.convolve(src, kernel), expected, atol=1e-5)


def test_kernel_wider_than_image_still_clamps(random_image):
    repo = ConvolutionRepository()
    src = repo.to_float(random_image.pixels)
    kernel = repo.build_gaussian_kernel(10.0)  # radius 30 > 16 px width
    expected = reference_convolve(src.astype(np.float64), kernel.weights.astype(np.float64))
    np.testing.assert_allclose(repo.convolve(src, kernel), expected, atol=1e-5)


def test_uniform_image_is_unchanged_by_blur():
    repo = ConvolutionRepository()
    src = np.full((5, 7, 4), 0.25, dtype=np.float32)
    np.testing.assert_allclose(repo.blur(src, 3.0), src, atol=1e-6)


def test_alpha_channel_is_blurred_too():
    repo = ConvolutionRepository()
    src = np.zeros((5, 5, 4), dtype=np.float32)
    src[2, 2, 3] = 1.0
    out = repo.blur(src, 1.0)
    assert 0.0 < out[2, 2, 3] < 1.0
    assert out[2, 1, 3] > 0.0


@pytest.mark.parametrize("workers", [2, 3, 8, 64])
def test_row_band_workers_give_identical_output(random_image, workers):
    src = ConvolutionRepository.to_float(random_image.pixels)
    kernel = ConvolutionRepository.build_gaussian_kernel(1.7)
    single = ConvolutionRepository(workers=1).convolve(src, kernel)
    banded = ConvolutionRepository(workers=workers).convolve(src, kernel)
    np.testing.assert_array_equal(banded, single)


def test_convolve_rejects_non_rgba_buffers():
    with pytest.raises(InvalidDimensions):
        ConvolutionRepository().convolve(np.zeros((4, 4, 3), np.float32),
                                         ConvolutionRepository.build_gaussian_kernel(1))


def test_codec_round_trip_is_lossless(random_image):
    repo = ConvolutionRepository()
    back = repo.to_pixels(repo.to_float(random_image.pixels), random_image.pixels)
    np.testing.assert_array_equal(back, random_image.pixels)


def test_to_float_normalises_every_channel():
    pixels = np.array([[[0, 51, 255, 102]]], dtype=np.uint8)
    np.testing.assert_allclose(ConvolutionRepository.to_float(pixels), [[[0.0, 0.2, 1.0, 0.4]]], atol=1e-7)


def test_to_pixels_saturates_and_copies_alpha():
    floats = np.array([[[-0.3, 1.7, 0.5, 0.0]]], dtype=np.float32)
    alpha_source = np.array([[[9, 9, 9, 77]]], dtype=np.uint8)
    out = ConvolutionRepository.to_pixels(floats, alpha_source)
    assert out.dtype == np.uint8
    assert out[0, 0].tolist() == [0, 255, 128, 77]


def test_to_pixels_rejects_mismatched_alpha_source():
    with pytest.raises(InvalidDimensions):
        ConvolutionRepository.to_pixels(np.zeros((2, 2, 4), np.float32), np.zeros((2, 3, 4), np.uint8))


def test_round_half_away_from_zero():
    values = np.array([0.5, 1.5, 2.5, 2.49, -0.5, -2.5, 0.0])
    assert round_half_away(values).tolist() == [1.0, 2.0, 3.0, 2.0, -1.0, -3.0, 0.0]

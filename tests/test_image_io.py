"""Tests for image loading and encoding helpers."""

from __future__ import annotations

import numpy as np
import pytest

from shadowgen.errors import ImageLoadError
from shadowgen.types import DepthMap, RasterImage
from utils.image_io import (
    fit_depth_map,
    load_depth_map,
    load_raster,
    raster_to_bytes,
    resize_raster,
    save_raster,
)


def _gradient(width: int, height: int) -> RasterImage:
    pixels = np.zeros((height, width, 4), dtype=np.uint8)
    pixels[:, :, 0] = np.linspace(0, 255, width, dtype=np.uint8)[np.newaxis, :]
    pixels[:, :, 1] = 90
    pixels[:, :, 2] = 30
    pixels[:, :, 3] = np.linspace(0, 255, height, dtype=np.uint8)[:, np.newaxis]
    return RasterImage(pixels)


def test_png_bytes_keep_alpha_and_channel_order():
    image = _gradient(32, 16)

    loaded = load_raster(raster_to_bytes(image))

    assert np.array_equal(loaded.pixels, image.pixels)


def test_saved_file_loads_back(tmp_path):
    image = _gradient(20, 10)
    path = tmp_path / "image.png"

    save_raster(image, path)

    assert np.array_equal(load_raster(path).pixels, image.pixels)


def test_grayscale_becomes_opaque_rgba():
    gray = np.full((5, 7), 77, dtype=np.uint8)

    image = load_raster(gray)

    assert image.size == (7, 5)
    assert (image.pixels[:, :, :3] == 77).all()
    assert (image.alpha == 255).all()


def test_rgb_array_becomes_opaque():
    rgb = np.zeros((4, 4, 3), dtype=np.uint8)
    rgb[:, :, 0] = 250

    image = load_raster(rgb)

    assert (image.pixels[:, :, 0] == 250).all()
    assert (image.alpha == 255).all()


@pytest.mark.parametrize("source", [b"definitely not a png", b"", "missing-file.png"])
def test_undecodable_sources_raise(source):
    with pytest.raises(ImageLoadError):
        load_raster(source)


def test_unsupported_source_type_raises():
    with pytest.raises(ImageLoadError):
        load_raster(12345)


def test_max_size_preserves_aspect_ratio():
    image = load_raster(np.zeros((200, 400, 4), dtype=np.uint8), max_size=100)
    assert image.size == (100, 50)


def test_resize_raster():
    resized = resize_raster(_gradient(10, 10), 20, 5)
    assert resized.size == (20, 5)


def test_depth_map_reads_red_channel(tmp_path):
    pixels = np.zeros((6, 8, 4), dtype=np.uint8)
    pixels[:, :, 0] = 180
    pixels[:, :, 2] = 20
    pixels[:, :, 3] = 255
    path = tmp_path / "depth.png"
    save_raster(RasterImage(pixels), path)

    depth_map = load_depth_map(path)

    assert depth_map.data.shape == (6, 8)
    assert (depth_map.data == 180).all()


def test_sixteen_bit_array_is_scaled_to_eight_bits():
    deep = np.full((3, 4), 65535, dtype=np.uint16)
    deep[0, 0] = 257 * 100

    image = load_raster(deep)

    assert image.pixels[0, 0, 0] == 100
    assert (image.pixels[1:, :, :3] == 255).all()
    assert (image.alpha == 255).all()


def test_fit_depth_map_matches_background_size():
    depth = np.zeros((100, 100), dtype=np.uint8)
    depth[:, :50] = 255

    fitted = fit_depth_map(DepthMap(depth), (50, 25))

    assert fitted.data.shape == (25, 50)
    assert (fitted.data[:, :25] == 255).all()
    assert not fitted.data[:, 25:].any()


def test_fit_depth_map_keeps_matching_map():
    depth_map = DepthMap(np.zeros((10, 20), dtype=np.uint8))
    assert fit_depth_map(depth_map, (20, 10)) is depth_map

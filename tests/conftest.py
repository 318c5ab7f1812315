"""Shared test fixtures."""

from __future__ import annotations

import numpy as np
import pytest

from shadowgen.types import (
    BinaryMask,
    LightModel,
    RasterImage,
    ShadowAppearance,
)


def opaque_foreground(width: int, height: int, color=(200, 40, 40)) -> RasterImage:
    """Fully opaque solid-color foreground."""
    pixels = np.zeros((height, width, 4), dtype=np.uint8)
    pixels[:, :, :3] = color
    pixels[:, :, 3] = 255
    return RasterImage(pixels)


def solid_background(width: int, height: int, value: int = 255) -> RasterImage:
    """Opaque gray background."""
    pixels = np.full((height, width, 4), value, dtype=np.uint8)
    pixels[:, :, 3] = 255
    return RasterImage(pixels)


def full_mask(width: int, height: int) -> BinaryMask:
    return BinaryMask(np.full((height, width), 255, dtype=np.uint8))


@pytest.fixture
def square_foreground() -> RasterImage:
    return opaque_foreground(100, 100)


@pytest.fixture
def square_mask() -> BinaryMask:
    return full_mask(100, 100)


@pytest.fixture
def white_background() -> RasterImage:
    return solid_background(200, 200)


@pytest.fixture
def scenario_shadow() -> ShadowAppearance:
    return ShadowAppearance(contact_darkness=0.5, max_blur_radius=0.0, falloff_distance=50.0)


@pytest.fixture
def scenario_light() -> LightModel:
    return LightModel(angle=0.0, elevation=45.0, intensity=1.0)

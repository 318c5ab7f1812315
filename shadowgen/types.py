"""Data types shared by the shadow generation engine."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

import numpy as np

from shadowgen.errors import ResourceUnavailableError


def allocate_buffer(height: int, width: int, channels: int = 0, dtype=np.uint8) -> np.ndarray:
    """
    Allocate a zero-filled pixel buffer.

    Args:
        height: Buffer height in pixels
        width: Buffer width in pixels
        channels: Channel count (0 for a single-plane buffer)
        dtype: Element type

    Returns:
        Zero-filled array of shape (H, W) or (H, W, channels)

    Raises:
        ResourceUnavailableError: If the buffer cannot be allocated
    """
    shape = (height, width, channels) if channels else (height, width)
    try:
        return np.zeros(shape, dtype=dtype)
    except (MemoryError, ValueError) as e:
        raise ResourceUnavailableError(
            f"Cannot allocate pixel buffer of shape {shape}: {e}"
        ) from e


def js_round(values):
    """Round half up (towards +inf), matching browser canvas coordinates."""
    return np.floor(np.asarray(values, dtype=np.float64) + 0.5).astype(np.int64)


@dataclass(frozen=True, eq=False)
class RasterImage:
    """RGBA image held as an (H, W, 4) uint8 array."""
    pixels: np.ndarray

    def __post_init__(self):
        pixels = self.pixels
        if not isinstance(pixels, np.ndarray) or pixels.ndim != 3 or pixels.shape[2] != 4:
            raise ValueError(
                f"RasterImage expects an (H, W, 4) array, got {getattr(pixels, 'shape', None)}"
            )
        if pixels.dtype != np.uint8:
            raise ValueError(f"RasterImage expects uint8 pixels, got {pixels.dtype}")

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height) of the image."""
        return (self.width, self.height)

    @property
    def alpha(self) -> np.ndarray:
        return self.pixels[:, :, 3]

    @classmethod
    def blank(cls, width: int, height: int) -> "RasterImage":
        """Fully transparent image of the given size."""
        return cls(allocate_buffer(height, width, 4))


@dataclass(frozen=True, eq=False)
class BinaryMask:
    """Occupancy mask: (H, W) uint8 with values 0 or 255."""
    data: np.ndarray

    @property
    def width(self) -> int:
        return self.data.shape[1]

    @property
    def height(self) -> int:
        return self.data.shape[0]


@dataclass(frozen=True, eq=False)
class DepthMap:
    """Relative background depth: (H, W) uint8, 0 = near, 255 = far."""
    data: np.ndarray

    @property
    def width(self) -> int:
        return self.data.shape[1]

    @property
    def height(self) -> int:
        return self.data.shape[0]


@dataclass(frozen=True)
class Position:
    """Integer offset of the foreground origin inside the background."""
    x: int = 0
    y: int = 0


@dataclass(frozen=True)
class LightModel:
    """Directional light description."""
    angle: float  # Degrees, 0-360
    elevation: float  # Degrees, 0 = grazing, 90 = overhead
    intensity: float = 1.0


@dataclass(frozen=True)
class ShadowAppearance:
    """Shadow look parameters."""
    contact_darkness: float  # 0-1
    max_blur_radius: float  # Pixels
    falloff_distance: float  # Pixels


@dataclass(frozen=True, eq=False)
class GeneratedShadow:
    """Result of one generation, every image sized to the background."""
    composite: RasterImage
    shadow_only: RasterImage
    mask_debug: RasterImage


@dataclass(frozen=True, eq=False)
class GenerationRequest:
    """Complete, immutable input of a single generation."""
    light: LightModel
    shadow: ShadowAppearance
    mask: BinaryMask
    background: RasterImage
    foreground: RasterImage
    position: Position = Position()
    depth_map: Optional[DepthMap] = None


class PositionPreset(str, Enum):
    """Nine-grid placement of the foreground inside the background."""
    TOP_LEFT = "top-left"
    TOP_CENTER = "top-center"
    TOP_RIGHT = "top-right"
    MIDDLE_LEFT = "middle-left"
    MIDDLE_CENTER = "middle-center"
    MIDDLE_RIGHT = "middle-right"
    BOTTOM_LEFT = "bottom-left"
    BOTTOM_CENTER = "bottom-center"
    BOTTOM_RIGHT = "bottom-right"


def placement_for_preset(
    preset: PositionPreset,
    foreground_size: Tuple[int, int],
    background_size: Tuple[int, int],
) -> Position:
    """
    Compute the foreground position for a nine-grid preset.

    Args:
        preset: Placement preset
        foreground_size: Foreground (width, height)
        background_size: Background (width, height)

    Returns:
        Position aligning the foreground box to the preset cell
    """
    preset = PositionPreset(preset)
    fw, fh = foreground_size
    bw, bh = background_size
    vertical, horizontal = preset.value.split("-")

    free_x = bw - fw
    free_y = bh - fh
    x = {"left": 0, "center": free_x // 2, "right": free_x}[horizontal]
    y = {"top": 0, "middle": free_y // 2, "bottom": free_y}[vertical]

    return Position(x=int(x), y=int(y))

"""Compositing module for layering shadow and foreground onto the background."""

import logging
from typing import Tuple

import numpy as np

from shadowgen.types import Position, RasterImage, allocate_buffer

logger = logging.getLogger(__name__)


def _to_float(image: RasterImage) -> Tuple[np.ndarray, np.ndarray]:
    """Split an image into float RGB [0, 1] and alpha [0, 1]."""
    pixels = image.pixels.astype(np.float32) / 255.0
    return pixels[:, :, :3], pixels[:, :, 3]


def _to_raster(color: np.ndarray, alpha: np.ndarray) -> RasterImage:
    """Pack straight float RGB + alpha back into a uint8 RasterImage."""
    h, w = alpha.shape
    pixels = allocate_buffer(h, w, 4)
    pixels[:, :, :3] = np.clip(np.floor(color * 255.0 + 0.5), 0, 255)
    pixels[:, :, 3] = np.clip(np.floor(alpha * 255.0 + 0.5), 0, 255)
    return RasterImage(pixels)


def _unpremultiply(premultiplied: np.ndarray, alpha: np.ndarray) -> np.ndarray:
    safe = np.where(alpha > 0, alpha, 1.0)[:, :, np.newaxis]
    return np.where(alpha[:, :, np.newaxis] > 0, premultiplied / safe, 0.0)


def shadow_layer(alpha: np.ndarray) -> RasterImage:
    """
    Build the RGBA shadow layer: black RGB carrying the given alpha.

    Args:
        alpha: Shadow alpha (H, W) uint8

    Returns:
        RasterImage with RGB = 0
    """
    h, w = alpha.shape
    pixels = allocate_buffer(h, w, 4)
    pixels[:, :, 3] = alpha
    return RasterImage(pixels)


def blend_multiply(
    color: np.ndarray,
    alpha: np.ndarray,
    layer: RasterImage,
    global_alpha: float = 1.0,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Multiply-blend a layer over a straight-alpha float image.

    Formula (separable blend, source-over compositing):
        co = as*(1-ab)*Cs + as*ab*Cs*Cb + (1-as)*ab*Cb
        ao = as + ab*(1-as)

    Args:
        color: Backdrop RGB (H, W, 3) in [0, 1]
        alpha: Backdrop alpha (H, W) in [0, 1]
        layer: Source layer, same size as the backdrop
        global_alpha: Extra attenuation applied to the layer alpha

    Returns:
        Tuple of (color, alpha) after blending
    """
    src_color, src_alpha = _to_float(layer)
    a_s = (src_alpha * global_alpha)[:, :, np.newaxis]
    a_b = alpha[:, :, np.newaxis]

    premultiplied = (
        a_s * (1 - a_b) * src_color
        + a_s * a_b * src_color * color
        + (1 - a_s) * a_b * color
    )
    out_alpha = (a_s + a_b * (1 - a_s))[:, :, 0]

    return _unpremultiply(premultiplied, out_alpha), out_alpha


def blend_source_over(
    color: np.ndarray,
    alpha: np.ndarray,
    layer: RasterImage,
    position: Position,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Draw a layer at an offset with normal (source-over) blending.

    Parts of the layer falling outside the backdrop are clipped.

    Args:
        color: Backdrop RGB (H, W, 3) in [0, 1]
        alpha: Backdrop alpha (H, W) in [0, 1]
        layer: Image to draw
        position: Top-left corner of the layer in backdrop coordinates

    Returns:
        Tuple of (color, alpha) after blending
    """
    h, w = alpha.shape
    x0, y0 = max(0, position.x), max(0, position.y)
    x1 = min(w, position.x + layer.width)
    y1 = min(h, position.y + layer.height)
    if x0 >= x1 or y0 >= y1:
        return color, alpha

    src_color, src_alpha = _to_float(layer)
    sy, sx = y0 - position.y, x0 - position.x
    src_color = src_color[sy:sy + (y1 - y0), sx:sx + (x1 - x0)]
    src_alpha = src_alpha[sy:sy + (y1 - y0), sx:sx + (x1 - x0)]

    dst_color = color[y0:y1, x0:x1]
    dst_alpha = alpha[y0:y1, x0:x1]

    a_s = src_alpha[:, :, np.newaxis]
    a_b = dst_alpha[:, :, np.newaxis]
    premultiplied = a_s * src_color + (1 - a_s) * a_b * dst_color
    out_alpha = src_alpha + dst_alpha * (1 - src_alpha)

    color = color.copy()
    alpha = alpha.copy()
    color[y0:y1, x0:x1] = _unpremultiply(premultiplied, out_alpha)
    alpha[y0:y1, x0:x1] = out_alpha
    return color, alpha


class Compositor:
    """
    Compositor for layering a generated shadow under a foreground.

    Layer order:
    1. Background at the origin
    2. Shadow layer, multiply blend at a fixed global alpha
    3. Foreground at its position, source-over
    """

    def __init__(self, shadow_alpha: float = 0.85):
        """
        Initialize compositor.

        Args:
            shadow_alpha: Global alpha of the multiply pass, on top of the
                shadow layer's own per-pixel alpha
        """
        self.shadow_alpha = shadow_alpha
        logger.info(f"Compositor initialized (shadow_alpha={shadow_alpha})")

    def compose(
        self,
        background: RasterImage,
        shadow: RasterImage,
        foreground: RasterImage,
        position: Position,
    ) -> RasterImage:
        """
        Compose background, shadow and foreground.

        Args:
            background: Background image, defines the output size
            shadow: Shadow layer, same size as the background
            foreground: Cut-out foreground
            position: Foreground origin inside the background

        Returns:
            Composite RGBA image sized to the background
        """
        if shadow.size != background.size:
            raise ValueError(
                f"Size mismatch: background={background.size}, shadow={shadow.size}"
            )

        color, alpha = _to_float(background)
        color, alpha = blend_multiply(color, alpha, shadow, self.shadow_alpha)
        color, alpha = blend_source_over(color, alpha, foreground, position)

        return _to_raster(color, alpha)

"""Softening of the raw shadow alpha buffer."""

import logging
from math import ceil

import cv2
import numpy as np

from shadowgen.config import BlurMode
from shadowgen.projection.opacity import normalize_distance
from shadowgen.types import ShadowAppearance

logger = logging.getLogger(__name__)


def gaussian_blur(alpha: np.ndarray, sigma: float) -> np.ndarray:
    """
    Gaussian blur treating everything outside the buffer as transparent.

    Args:
        alpha: Float alpha plane (H, W)
        sigma: Standard deviation in pixels (<= 0 returns a copy)

    Returns:
        Blurred float32 plane, same shape
    """
    alpha = alpha.astype(np.float32)
    if sigma <= 0 or alpha.size == 0:
        return alpha.copy()

    radius = int(ceil(sigma * 3))
    kernel_size = radius * 2 + 1

    padded = cv2.copyMakeBorder(
        alpha, radius, radius, radius, radius,
        borderType=cv2.BORDER_CONSTANT, value=0,
    )
    blurred = cv2.GaussianBlur(padded, (kernel_size, kernel_size), sigma)
    return blurred[radius:radius + alpha.shape[0], radius:radius + alpha.shape[1]]


class BlurStage:
    """
    Blur for the shadow alpha buffer.

    Supports two modes:
    - Uniform: one Gaussian, sigma = max_blur_radius * uniform_factor
    - Distance-scaled: sigma grows with distance from the ground row,
      keeping the contact line sharp and the far end soft
    """

    def __init__(
        self,
        mode: BlurMode = BlurMode.UNIFORM,
        uniform_factor: float = 0.3,
        levels: int = 8,
    ):
        """
        Initialize blur stage.

        Args:
            mode: Blur mode
            uniform_factor: Fraction of max_blur_radius used in uniform mode
            levels: Number of precomputed blur levels in distance-scaled mode
        """
        self.mode = BlurMode(mode)
        self.uniform_factor = uniform_factor
        self.levels = max(2, levels)
        logger.info(f"BlurStage initialized (mode={self.mode.value})")

    def apply(
        self,
        alpha: np.ndarray,
        shadow: ShadowAppearance,
        ground_row: int = 0,
    ) -> np.ndarray:
        """
        Blur a uint8 alpha buffer.

        Args:
            alpha: Raw shadow alpha (H, W) uint8
            shadow: Shadow appearance (blur radius and falloff)
            ground_row: Row distances are measured from (distance-scaled mode)

        Returns:
            Blurred alpha (H, W) uint8
        """
        if self.mode == BlurMode.UNIFORM:
            blurred = gaussian_blur(alpha, shadow.max_blur_radius * self.uniform_factor)
        elif self.mode == BlurMode.DISTANCE_SCALED:
            blurred = self._distance_scaled(alpha, shadow, ground_row)
        else:
            raise ValueError(f"Unknown blur mode: {self.mode}")

        return np.clip(np.floor(blurred + 0.5), 0, 255).astype(np.uint8)

    def _distance_scaled(
        self,
        alpha: np.ndarray,
        shadow: ShadowAppearance,
        ground_row: int,
    ) -> np.ndarray:
        """
        Per-row sigma = normalized distance * max_blur_radius.

        A stack of uniformly blurred copies is built at evenly spaced sigmas
        and each row linearly interpolates between its two nearest levels.
        """
        height = alpha.shape[0]
        max_sigma = float(shadow.max_blur_radius)
        if max_sigma <= 0 or alpha.size == 0:
            return alpha.astype(np.float32)

        sigmas = np.linspace(0.0, max_sigma, self.levels)
        stack = np.stack([gaussian_blur(alpha, s) for s in sigmas])

        rows = np.arange(height)
        row_sigma = normalize_distance(rows - ground_row, shadow.falloff_distance) * max_sigma

        position = row_sigma / max_sigma * (self.levels - 1)
        lower = np.floor(position).astype(np.int64)
        upper = np.minimum(lower + 1, self.levels - 1)
        weight = (position - lower).astype(np.float32)[:, np.newaxis]

        blurred = stack[lower, rows] * (1 - weight) + stack[upper, rows] * weight

        logger.debug(f"Distance-scaled blur: {self.levels} levels up to sigma {max_sigma:.1f}")
        return blurred

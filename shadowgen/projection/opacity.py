"""Distance and depth based shadow opacity."""

import numpy as np

from shadowgen.config import OpacityCoefficients, PERSPECTIVE_OPACITY
from shadowgen.types import ShadowAppearance


def normalize_distance(distance, falloff_distance: float):
    """
    Divide distance from the contact row by the falloff distance.

    Result is clamped to [0, 1]. A non-positive falloff yields 0 exactly at
    the contact row and 1 everywhere else.
    """
    distance = np.abs(np.asarray(distance, dtype=np.float64))
    if falloff_distance <= 0:
        return np.where(distance > 0, 1.0, 0.0)
    return np.clip(distance / falloff_distance, 0.0, 1.0)


class OpacityModel:
    """
    Contact-boosted opacity curve.

        boost   = exp(-k * d) * contact_darkness
        base    = c * (1 - d * f)
        opacity = min((boost + base) * intensity, 1)

    where d is the normalized distance from the contact row.
    """

    def __init__(
        self,
        coefficients: OpacityCoefficients = PERSPECTIVE_OPACITY,
        depth_attenuation: float = 0.3,
    ):
        self.coefficients = coefficients
        self.depth_attenuation = depth_attenuation

    def opacity(self, normalized_distance, shadow: ShadowAppearance, intensity: float):
        """
        Opacity in [0, 1] for scalar or array normalized distances.
        """
        c = self.coefficients
        d = np.clip(np.asarray(normalized_distance, dtype=np.float64), 0.0, 1.0)

        contact_boost = np.exp(-c.decay * d) * shadow.contact_darkness
        base_opacity = c.base * (1.0 - d * c.falloff_slope)
        opacity = np.clip((contact_boost + base_opacity) * intensity, 0.0, 1.0)

        if opacity.ndim == 0:
            return float(opacity)
        return opacity

    def apply_depth(self, opacity, depth_sample):
        """
        Fade opacity over far background regions.

        Args:
            opacity: Opacity value(s) in [0, 1]
            depth_sample: Raw depth byte(s), 0 = near, 255 = far

        Returns:
            opacity * (1 - depth / 255 * depth_attenuation)
        """
        depth_value = np.asarray(depth_sample, dtype=np.float64) / 255.0
        result = np.asarray(opacity, dtype=np.float64) * (1.0 - depth_value * self.depth_attenuation)
        if result.ndim == 0:
            return float(result)
        return result

"""Engine presets for the two shadow projection models."""

from dataclasses import dataclass, field
from enum import Enum

from shadowgen.types import LightModel, ShadowAppearance


class ProjectionModel(str, Enum):
    """Geometric model used to place shadow pixels."""
    DIRECTIONAL = "directional"  # Single offset vector for the whole silhouette
    PERSPECTIVE = "perspective"  # Point light above the ground plane


class BlurMode(str, Enum):
    """How the raw shadow alpha is softened."""
    UNIFORM = "uniform"
    DISTANCE_SCALED = "distance_scaled"


@dataclass(frozen=True)
class OpacityCoefficients:
    """Constants of the contact-boost + linear-falloff opacity curve."""
    decay: float  # k in exp(-k * d)
    base: float  # c, baseline opacity at the contact row
    falloff_slope: float  # f, fraction of the baseline lost at full distance


DIRECTIONAL_OPACITY = OpacityCoefficients(decay=3.0, base=0.4, falloff_slope=0.7)
PERSPECTIVE_OPACITY = OpacityCoefficients(decay=4.0, base=0.5, falloff_slope=0.8)


@dataclass(frozen=True)
class EngineConfig:
    """
    Complete engine configuration.

    Use `EngineConfig.perspective()` or `EngineConfig.directional()` for the
    two calibrated presets; individual fields can be overridden with
    `dataclasses.replace`.
    """
    projection: ProjectionModel = ProjectionModel.PERSPECTIVE
    opacity: OpacityCoefficients = field(default=PERSPECTIVE_OPACITY)
    blur_mode: BlurMode = BlurMode.UNIFORM
    shadow_alpha: float = 0.85  # Global alpha of the multiply pass
    base_shadow_length: float = 200.0  # Directional model, at elevation 0
    light_height: float = 500.0  # Perspective model
    height_scale: float = 0.5  # Rows above contact -> synthetic object height
    elevation_epsilon: float = 0.01  # Radians
    depth_attenuation: float = 0.3
    uniform_blur_factor: float = 0.3
    alpha_threshold: int = 128
    blur_levels: int = 8  # Stack depth for distance-scaled blur

    @classmethod
    def perspective(cls, **overrides) -> "EngineConfig":
        return cls(
            projection=ProjectionModel.PERSPECTIVE,
            opacity=PERSPECTIVE_OPACITY,
            shadow_alpha=0.85,
            **overrides,
        )

    @classmethod
    def directional(cls, **overrides) -> "EngineConfig":
        return cls(
            projection=ProjectionModel.DIRECTIONAL,
            opacity=DIRECTIONAL_OPACITY,
            shadow_alpha=0.8,
            **overrides,
        )

    @classmethod
    def for_projection(cls, projection, **overrides) -> "EngineConfig":
        """Preset matching the given projection model."""
        if ProjectionModel(projection) == ProjectionModel.DIRECTIONAL:
            return cls.directional(**overrides)
        return cls.perspective(**overrides)


# Slider defaults of the interactive front ends
DEFAULT_LIGHT = LightModel(angle=45.0, elevation=45.0, intensity=1.0)
DEFAULT_SHADOW = ShadowAppearance(
    contact_darkness=0.5,
    max_blur_radius=10.0,
    falloff_distance=100.0,
)

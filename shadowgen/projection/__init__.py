# Shadow Projection Module
from .opacity import OpacityModel, normalize_distance
from .projector import ProjectionResult, ShadowProjector, directional_offset

__all__ = [
    "OpacityModel",
    "normalize_distance",
    "ProjectionResult",
    "ShadowProjector",
    "directional_offset",
]

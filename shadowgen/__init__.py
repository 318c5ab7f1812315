# Shadow Generation Engine
from .config import BlurMode, EngineConfig, ProjectionModel
from .errors import ImageLoadError, ResourceUnavailableError, ShadowGenError
from .types import (
    BinaryMask,
    DepthMap,
    GeneratedShadow,
    GenerationRequest,
    LightModel,
    Position,
    PositionPreset,
    RasterImage,
    ShadowAppearance,
)
from .pipeline import ShadowPipeline, generate

__all__ = [
    "BlurMode",
    "EngineConfig",
    "ProjectionModel",
    "ImageLoadError",
    "ResourceUnavailableError",
    "ShadowGenError",
    "BinaryMask",
    "DepthMap",
    "GeneratedShadow",
    "GenerationRequest",
    "LightModel",
    "Position",
    "PositionPreset",
    "RasterImage",
    "ShadowAppearance",
    "ShadowPipeline",
    "generate",
]

"""Pydantic schemas for the Shadow Generator API."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from shadowgen.config import BlurMode, ProjectionModel
from shadowgen.types import LightModel, ShadowAppearance


class OutputView(str, Enum):
    """Which generated image the endpoint returns."""
    COMPOSITE = "composite"
    SHADOW_ONLY = "shadow_only"
    MASK_DEBUG = "mask_debug"


class ShadowRequest(BaseModel):
    """Light and appearance parameters of one generation."""
    angle: float = Field(default=45.0, ge=0, le=360, description="Light direction (degrees)")
    elevation: float = Field(default=45.0, ge=0, le=90, description="Light elevation (degrees)")
    intensity: float = Field(default=1.0, ge=0, description="Overall darkness scale")
    contact_darkness: float = Field(default=0.5, ge=0, le=1)
    max_blur_radius: float = Field(default=10.0, ge=0, description="Pixels")
    falloff_distance: float = Field(default=100.0, ge=0, description="Pixels")
    position_x: int = 0
    position_y: int = 0
    projection: ProjectionModel = ProjectionModel.PERSPECTIVE
    blur_mode: BlurMode = BlurMode.UNIFORM
    view: OutputView = OutputView.COMPOSITE

    def light(self) -> LightModel:
        return LightModel(angle=self.angle, elevation=self.elevation, intensity=self.intensity)

    def shadow(self) -> ShadowAppearance:
        return ShadowAppearance(
            contact_darkness=self.contact_darkness,
            max_blur_radius=self.max_blur_radius,
            falloff_distance=self.falloff_distance,
        )


class ErrorResponse(BaseModel):
    """Error response schema."""
    success: bool = False
    error: str
    request_id: Optional[str] = None
    details: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "healthy"
    version: str = "0.1.0"

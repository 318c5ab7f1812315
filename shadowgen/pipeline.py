"""Main orchestrator for shadow generation."""

import logging
from typing import Optional

from shadowgen.blur import BlurStage
from shadowgen.composite import Compositor, shadow_layer
from shadowgen.config import EngineConfig
from shadowgen.mask import MaskExtractor
from shadowgen.projection import ShadowProjector
from shadowgen.types import (
    BinaryMask,
    DepthMap,
    GeneratedShadow,
    GenerationRequest,
    LightModel,
    Position,
    RasterImage,
    ShadowAppearance,
)
from utils.timing import Timer

logger = logging.getLogger(__name__)


class ShadowPipeline:
    """
    Main orchestrator for the shadow generation engine.

    Pipeline steps:
    1. Project the mask into a raw shadow alpha buffer
    2. Blur the shadow alpha
    3. Composite background, shadow and foreground
    4. Render the mask debug view

    `generate` has no side effects: the same request always yields
    identical images.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        """
        Initialize pipeline components.

        Args:
            config: Engine configuration (perspective preset if None)
        """
        self.config = config or EngineConfig.perspective()

        self.projector = ShadowProjector(self.config)
        self.blur = BlurStage(
            mode=self.config.blur_mode,
            uniform_factor=self.config.uniform_blur_factor,
            levels=self.config.blur_levels,
        )
        self.compositor = Compositor(shadow_alpha=self.config.shadow_alpha)

        logger.info(
            f"ShadowPipeline initialized (projection={self.config.projection.value}, "
            f"blur={self.config.blur_mode.value})"
        )

    def generate(
        self,
        request: GenerationRequest,
        timer: Optional[Timer] = None,
    ) -> GeneratedShadow:
        """
        Run the shadow pipeline.

        Args:
            request: Complete generation input
            timer: Optional Timer for tracking step durations

        Returns:
            GeneratedShadow with composite, shadow-only and mask debug
            images, each sized to the background

        Raises:
            ResourceUnavailableError: If a pixel buffer cannot be allocated
        """
        if timer is None:
            timer = Timer()

        background = request.background

        with timer.measure("project"):
            projection = self.projector.project(
                request.mask,
                background.size,
                request.position,
                request.light,
                request.shadow,
                request.depth_map,
            )

        with timer.measure("blur"):
            blurred = self.blur.apply(projection.alpha, request.shadow, projection.ground_row)
            shadow_only = shadow_layer(blurred)

        with timer.measure("composite"):
            composite = self.compositor.compose(
                background, shadow_only, request.foreground, request.position
            )

        with timer.measure("mask_debug"):
            mask_debug = self._mask_debug(request.mask, background, request.position)

        logger.debug(
            f"Generated {background.width}x{background.height} shadow "
            f"(contact row {projection.contact_row}, grazing={projection.grazing})"
        )
        return GeneratedShadow(
            composite=composite,
            shadow_only=shadow_only,
            mask_debug=mask_debug,
        )

    def _mask_debug(
        self,
        mask: BinaryMask,
        background: RasterImage,
        position: Position,
    ) -> RasterImage:
        """
        Mask debug view placed on a background-sized canvas.

        The mask is drawn at the foreground position, clipped, so it lines
        up with the composite; everything it does not cover is opaque black,
        like unoccupied mask pixels.
        """
        debug = MaskExtractor.create_debug_image(mask)

        canvas = RasterImage.blank(background.width, background.height)
        canvas.pixels[:, :, 3] = 255

        x0, y0 = max(0, position.x), max(0, position.y)
        x1 = min(background.width, position.x + debug.width)
        y1 = min(background.height, position.y + debug.height)
        if x0 < x1 and y0 < y1:
            sx, sy = x0 - position.x, y0 - position.y
            canvas.pixels[y0:y1, x0:x1] = debug.pixels[sy:sy + (y1 - y0), sx:sx + (x1 - x0)]
        return canvas


def generate(
    light: LightModel,
    shadow: ShadowAppearance,
    mask: BinaryMask,
    background: RasterImage,
    foreground: RasterImage,
    depth_map: Optional[DepthMap] = None,
    position: Position = Position(),
    config: Optional[EngineConfig] = None,
) -> GeneratedShadow:
    """
    One-shot generation with a freshly configured pipeline.

    Args:
        light: Light description
        shadow: Shadow appearance
        mask: Foreground occupancy mask
        background: Background image
        foreground: Cut-out foreground
        depth_map: Optional background depth
        position: Foreground origin inside the background
        config: Engine configuration (perspective preset if None)

    Returns:
        GeneratedShadow sized to the background
    """
    request = GenerationRequest(
        light=light,
        shadow=shadow,
        mask=mask,
        background=background,
        foreground=foreground,
        position=position,
        depth_map=depth_map,
    )
    return ShadowPipeline(config).generate(request)

"""Shadow projection onto the background ground plane."""

import logging
from dataclasses import dataclass
from math import cos, radians, sin, tan
from typing import Optional, Tuple

import numpy as np

from shadowgen.config import EngineConfig, ProjectionModel
from shadowgen.mask.extractor import MaskExtractor
from shadowgen.projection.opacity import OpacityModel, normalize_distance
from shadowgen.types import (
    BinaryMask,
    DepthMap,
    LightModel,
    Position,
    ShadowAppearance,
    allocate_buffer,
    js_round,
)

logger = logging.getLogger(__name__)


@dataclass
class ProjectionResult:
    """Raw (unblurred) shadow alpha and the rows it was measured from."""
    alpha: np.ndarray  # (H, W) uint8, background sized
    contact_row: int  # Contact row in mask coordinates
    ground_row: int  # Background row that distances are measured from
    grazing: bool = False


def directional_offset(light: LightModel, base_length: float = 200.0) -> Tuple[int, int]:
    """
    Whole-silhouette shadow offset of the directional model.

    The shadow shortens as the light rises: length = L0 * (1 - sin(elevation)).

    Returns:
        Integer (dx, dy) offset in background pixels
    """
    angle_rad = radians(light.angle)
    elevation_rad = radians(light.elevation)
    shadow_length = base_length * (1 - sin(elevation_rad))

    dx = cos(angle_rad) * shadow_length
    dy = sin(angle_rad) * shadow_length
    return int(js_round(dx)), int(js_round(dy))


def quantize_alpha(opacity) -> np.ndarray:
    """Map opacity in [0, 1] to a rounded uint8 alpha."""
    return np.clip(js_round(np.asarray(opacity) * 255), 0, 255).astype(np.uint8)


class ShadowProjector:
    """
    Project a foreground silhouette onto the background.

    Supports two models:
    - Directional: the whole mask is shifted by one offset vector
    - Perspective: each pixel is projected from a point light, higher
      pixels landing further from the contact row

    Every destination pixel keeps the maximum alpha written to it, so
    overlapping contributions never darken twice.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        """
        Initialize projector.

        Args:
            config: Engine configuration (perspective preset if None)
        """
        self.config = config or EngineConfig.perspective()
        self.opacity_model = OpacityModel(
            self.config.opacity, self.config.depth_attenuation
        )
        logger.info(f"ShadowProjector initialized (model={self.config.projection.value})")

    def project(
        self,
        mask: BinaryMask,
        background_size: Tuple[int, int],
        position: Position,
        light: LightModel,
        shadow: ShadowAppearance,
        depth_map: Optional[DepthMap] = None,
    ) -> ProjectionResult:
        """
        Rasterize the shadow alpha for one light setting.

        Args:
            mask: Foreground occupancy mask
            background_size: Background (width, height)
            position: Foreground origin inside the background
            light: Light description
            shadow: Shadow appearance
            depth_map: Optional background depth

        Returns:
            ProjectionResult holding a background-sized alpha buffer
        """
        width, height = background_size
        alpha = allocate_buffer(height, width)

        contact_row = MaskExtractor.find_contact_point(mask, self.config.alpha_threshold)
        absolute_contact = position.y + contact_row
        elevation_rad = radians(light.elevation)

        if elevation_rad <= self.config.elevation_epsilon:
            self._project_grazing(alpha, mask, position, absolute_contact, light, shadow)
            logger.debug(f"Grazing light: contact-only shadow at row {absolute_contact}")
            return ProjectionResult(alpha, contact_row, absolute_contact, grazing=True)

        if self.config.projection == ProjectionModel.DIRECTIONAL:
            ground_row = self._project_directional(
                alpha, mask, position, absolute_contact, light, shadow, depth_map
            )
        elif self.config.projection == ProjectionModel.PERSPECTIVE:
            ground_row = self._project_perspective(
                alpha, mask, position, contact_row, light, shadow, depth_map
            )
        else:
            raise ValueError(f"Unknown projection model: {self.config.projection}")

        return ProjectionResult(alpha, contact_row, ground_row)

    def _occupied(self, mask: BinaryMask) -> np.ndarray:
        return mask.data > self.config.alpha_threshold

    def _project_grazing(
        self,
        alpha: np.ndarray,
        mask: BinaryMask,
        position: Position,
        absolute_contact: int,
        light: LightModel,
        shadow: ShadowAppearance,
    ) -> None:
        """Hard contact line under every occupied column, no falloff."""
        height, width = alpha.shape
        if not 0 <= absolute_contact < height:
            return

        _, xs = np.nonzero(self._occupied(mask))
        columns = np.unique(position.x + xs)
        columns = columns[(columns >= 0) & (columns < width)]
        if columns.size == 0:
            return

        value = quantize_alpha(shadow.contact_darkness * light.intensity)
        row = alpha[absolute_contact]
        row[columns] = np.maximum(row[columns], value)

    def _project_directional(
        self,
        alpha: np.ndarray,
        mask: BinaryMask,
        position: Position,
        absolute_contact: int,
        light: LightModel,
        shadow: ShadowAppearance,
        depth_map: Optional[DepthMap],
    ) -> int:
        """
        Inverse-map background pixels through a single offset.

        Returns:
            Ground row (contact row shifted by the offset)
        """
        height, width = alpha.shape
        dx, dy = directional_offset(light, self.config.base_shadow_length)
        shift_x = position.x + dx
        shift_y = position.y + dy
        ground_row = absolute_contact + dy

        # Background window covered by the shifted mask
        x0, x1 = max(0, shift_x), min(width, shift_x + mask.width)
        y0, y1 = max(0, shift_y), min(height, shift_y + mask.height)
        if x0 >= x1 or y0 >= y1:
            return ground_row

        occupied = self._occupied(mask)[y0 - shift_y:y1 - shift_y, x0 - shift_x:x1 - shift_x]

        rows = np.arange(y0, y1)
        row_distance = normalize_distance(rows - ground_row, shadow.falloff_distance)
        row_opacity = self.opacity_model.opacity(row_distance, shadow, light.intensity)
        opacity = np.repeat(row_opacity[:, np.newaxis], x1 - x0, axis=1)

        if depth_map is not None:
            dy1 = min(y1, depth_map.height)
            dx1 = min(x1, depth_map.width)
            if dy1 > y0 and dx1 > x0:
                sampled = opacity[:dy1 - y0, :dx1 - x0]
                opacity[:dy1 - y0, :dx1 - x0] = self.opacity_model.apply_depth(
                    sampled, depth_map.data[y0:dy1, x0:dx1]
                )

        values = np.where(occupied, quantize_alpha(opacity), 0).astype(np.uint8)
        region = alpha[y0:y1, x0:x1]
        np.maximum(region, values, out=region)

        logger.debug(f"Directional offset ({dx}, {dy}), ground row {ground_row}")
        return ground_row

    def _project_perspective(
        self,
        alpha: np.ndarray,
        mask: BinaryMask,
        position: Position,
        contact_row: int,
        light: LightModel,
        shadow: ShadowAppearance,
        depth_map: Optional[DepthMap],
    ) -> int:
        """
        Forward-project occupied pixels from a point light.

        Returns:
            Ground row (the absolute contact row)
        """
        height, width = alpha.shape
        absolute_contact = position.y + contact_row

        ys, xs = np.nonzero(self._occupied(mask))
        if ys.size == 0:
            return absolute_contact

        cfg = self.config
        angle_rad = radians(light.angle)
        elevation_rad = radians(light.elevation)

        light_dist = cfg.light_height / tan(elevation_rad + cfg.elevation_epsilon)
        light_x = cos(angle_rad) * light_dist
        light_y = sin(angle_rad) * light_dist

        obj_height = np.maximum((contact_row - ys) * cfg.height_scale, 0)
        t = (cfg.light_height - obj_height) / cfg.light_height

        bg_x = js_round(position.x + xs + light_x * (1 - t))
        bg_y = js_round(absolute_contact + light_y * (1 - t))

        inside = (bg_x >= 0) & (bg_x < width) & (bg_y >= 0) & (bg_y < height)
        bg_x, bg_y = bg_x[inside], bg_y[inside]
        if bg_x.size == 0:
            return absolute_contact

        distance = normalize_distance(bg_y - absolute_contact, shadow.falloff_distance)
        opacity = self.opacity_model.opacity(distance, shadow, light.intensity)

        if depth_map is not None:
            sampled = (bg_x < depth_map.width) & (bg_y < depth_map.height)
            opacity[sampled] = self.opacity_model.apply_depth(
                opacity[sampled], depth_map.data[bg_y[sampled], bg_x[sampled]]
            )

        np.maximum.at(alpha, (bg_y, bg_x), quantize_alpha(opacity))

        logger.debug(
            f"Perspective light offset ({light_x:.1f}, {light_y:.1f}), "
            f"{bg_x.size} pixels projected"
        )
        return absolute_contact

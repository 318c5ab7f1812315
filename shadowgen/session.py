"""Interactive shadow session: loaded inputs plus superseding generation."""

import itertools
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Dict, Optional, Union

from shadowgen.config import EngineConfig
from shadowgen.errors import ImageLoadError
from shadowgen.mask import BackgroundRemover, MaskExtractor
from shadowgen.pipeline import ShadowPipeline
from shadowgen.types import (
    BinaryMask,
    DepthMap,
    GeneratedShadow,
    GenerationRequest,
    LightModel,
    Position,
    PositionPreset,
    RasterImage,
    ShadowAppearance,
    placement_for_preset,
)
from utils.image_io import (
    ImageSource,
    export_generated,
    fit_depth_map,
    load_depth_map,
    load_raster,
)
from utils.timing import Timer

logger = logging.getLogger(__name__)


class ShadowSession:
    """
    Holds the current foreground, background and depth map of an editor.

    Every generation works on an immutable GenerationRequest snapshot, so
    inputs changed while a background generation runs never leak into it.
    `submit` runs generations on a single worker thread; only the newest
    submission is published as `latest` (last writer wins).
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        max_image_size: Optional[int] = None,
        background_remover: Optional[BackgroundRemover] = None,
        pipeline: Optional[ShadowPipeline] = None,
    ):
        """
        Initialize session.

        Args:
            config: Engine configuration (perspective preset if None)
            max_image_size: Optional cap on loaded image dimensions
            background_remover: Cutout collaborator for photo foregrounds
            pipeline: Existing pipeline to share (overrides config)
        """
        self.pipeline = pipeline or ShadowPipeline(config)
        self.max_image_size = max_image_size
        self._background_remover = background_remover

        self.foreground: Optional[RasterImage] = None
        self.mask: Optional[BinaryMask] = None
        self.background: Optional[RasterImage] = None
        self.depth_map: Optional[DepthMap] = None  # Aligned to the background
        self._depth_source: Optional[DepthMap] = None
        self.position = Position()

        self._executor: Optional[ThreadPoolExecutor] = None
        self._lock = threading.Lock()
        self._counter = itertools.count(1)
        self._latest_submitted = 0
        self._latest_published = 0
        self._latest: Optional[GeneratedShadow] = None

        logger.info("ShadowSession initialized")

    @property
    def background_remover(self) -> BackgroundRemover:
        """Lazy-create the cutout collaborator."""
        if self._background_remover is None:
            self._background_remover = BackgroundRemover()
        return self._background_remover

    # Inputs

    def load_foreground(self, source: ImageSource, remove_background: bool = False) -> BinaryMask:
        """
        Load the foreground and derive its mask.

        Args:
            source: Image bytes, path or array
            remove_background: Cut the subject out with rembg first

        Returns:
            The new mask

        Raises:
            ImageLoadError: On decode or cutout failure; state is unchanged
        """
        image = load_raster(source, max_size=self.max_image_size)
        if remove_background:
            image = self.background_remover.remove(image)
        mask = MaskExtractor.extract_from_alpha(image, self.pipeline.config.alpha_threshold)

        self.foreground = image
        self.mask = mask
        logger.info(f"Foreground loaded: {image.width}x{image.height}")
        return mask

    def load_background(self, source: ImageSource) -> RasterImage:
        """Load the background; ImageLoadError leaves the previous one."""
        image = load_raster(source, max_size=self.max_image_size)
        self.background = image
        if self._depth_source is not None:
            self.depth_map = fit_depth_map(self._depth_source, image.size)
        logger.info(f"Background loaded: {image.width}x{image.height}")
        return image

    def load_depth_map(self, source: ImageSource) -> DepthMap:
        """
        Load a depth map (red channel).

        The map is resampled to the current background, and again whenever
        a new background is loaded.

        Returns:
            The depth map as used for generation

        Raises:
            ImageLoadError: On decode failure; the previous map is kept
        """
        depth_map = load_depth_map(source)
        self._depth_source = depth_map
        if self.background is not None:
            depth_map = fit_depth_map(depth_map, self.background.size)
        self.depth_map = depth_map
        logger.info(f"Depth map loaded: {depth_map.width}x{depth_map.height}")
        return depth_map

    def clear_depth_map(self) -> None:
        self.depth_map = None
        self._depth_source = None

    def set_position(self, position: Position) -> None:
        self.position = position

    def place(self, preset: Union[PositionPreset, str]) -> Position:
        """
        Move the foreground to a nine-grid preset cell.

        Raises:
            ImageLoadError: If foreground or background is not loaded
        """
        if self.foreground is None or self.background is None:
            raise ImageLoadError("Load foreground and background before placing")
        self.position = placement_for_preset(
            PositionPreset(preset), self.foreground.size, self.background.size
        )
        return self.position

    def is_ready(self) -> bool:
        return self.foreground is not None and self.background is not None and self.mask is not None

    # Generation

    def build_request(self, light: LightModel, shadow: ShadowAppearance) -> GenerationRequest:
        """
        Snapshot the current inputs into an immutable request.

        Raises:
            ImageLoadError: If foreground or background is not loaded
        """
        if not self.is_ready():
            raise ImageLoadError("Foreground and background must be loaded first")
        return GenerationRequest(
            light=light,
            shadow=shadow,
            mask=self.mask,
            background=self.background,
            foreground=self.foreground,
            position=self.position,
            depth_map=self.depth_map,
        )

    def generate(self, light: LightModel, shadow: ShadowAppearance) -> GeneratedShadow:
        """Generate synchronously and publish the result."""
        request = self.build_request(light, shadow)
        generation_id = self._next_id()
        return self._run(generation_id, request)

    def submit(self, light: LightModel, shadow: ShadowAppearance) -> Future:
        """
        Queue a generation on the worker thread.

        Any earlier submission still pending or running becomes stale: its
        future still resolves, but it is never published as `latest`.
        """
        request = self.build_request(light, shadow)
        generation_id = self._next_id()
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="shadowgen")
            executor = self._executor
        return executor.submit(self._run, generation_id, request)

    @property
    def latest(self) -> Optional[GeneratedShadow]:
        """Newest published result."""
        with self._lock:
            return self._latest

    def is_current(self, generation_id: int) -> bool:
        with self._lock:
            return generation_id == self._latest_submitted

    def _next_id(self) -> int:
        with self._lock:
            self._latest_submitted = next(self._counter)
            return self._latest_submitted

    def _run(self, generation_id: int, request: GenerationRequest) -> GeneratedShadow:
        timer = Timer(label=f"gen-{generation_id}")
        result = self.pipeline.generate(request, timer=timer)
        timer.log_summary(logging.DEBUG)

        with self._lock:
            if generation_id > self._latest_published and generation_id == self._latest_submitted:
                self._latest = result
                self._latest_published = generation_id
            else:
                logger.debug(f"Generation {generation_id} superseded, result dropped")
        return result

    # Export

    def export_all(self, result: GeneratedShadow, directory: Union[str, Path]) -> Dict[str, Path]:
        """Write composite.png, shadow_only.png and mask_debug.png."""
        return export_generated(result, directory)

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self) -> "ShadowSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

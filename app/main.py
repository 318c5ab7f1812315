"""FastAPI application for the Shadow Generator."""

import logging
import uuid
from typing import Dict, Optional, Tuple

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from pydantic import ValidationError

from app.config import settings
from app.schemas import ErrorResponse, HealthResponse, OutputView, ShadowRequest
from shadowgen.config import BlurMode, EngineConfig, ProjectionModel
from shadowgen.errors import ImageLoadError, ResourceUnavailableError
from shadowgen.mask import BackgroundRemover, MaskExtractor
from shadowgen.pipeline import ShadowPipeline
from shadowgen.types import GenerationRequest, Position
from utils.image_io import fit_depth_map, load_depth_map, load_raster, raster_to_bytes
from utils.timing import Timer

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Shadow Generator API",
    description="API for synthesizing cast shadows of cut-out objects",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Pipelines per (projection, blur mode), created on first use
_pipelines: Dict[Tuple[ProjectionModel, BlurMode], ShadowPipeline] = {}
_background_remover: Optional[BackgroundRemover] = None


def get_pipeline(projection: ProjectionModel, blur_mode: BlurMode) -> ShadowPipeline:
    """Get or create the pipeline for an engine configuration."""
    key = (projection, blur_mode)
    if key not in _pipelines:
        logger.info(f"Initializing ShadowPipeline ({projection.value}, {blur_mode.value})...")
        _pipelines[key] = ShadowPipeline(
            EngineConfig.for_projection(projection, blur_mode=blur_mode)
        )
    return _pipelines[key]


def get_background_remover() -> BackgroundRemover:
    """Get or create the background remover."""
    global _background_remover
    if _background_remover is None:
        _background_remover = BackgroundRemover(settings.rembg_model)
    return _background_remover


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse()


@app.post("/shadow", responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}})
async def generate_shadow(
    foreground: UploadFile = File(..., description="Cut-out foreground (PNG with alpha)"),
    background: UploadFile = File(..., description="Background image"),
    depth_map: Optional[UploadFile] = File(None, description="Optional background depth map"),
    angle: float = Form(default=45.0),
    elevation: float = Form(default=45.0),
    intensity: float = Form(default=1.0),
    contact_darkness: float = Form(default=0.5),
    max_blur_radius: float = Form(default=10.0),
    falloff_distance: float = Form(default=100.0),
    position_x: int = Form(default=0),
    position_y: int = Form(default=0),
    projection: str = Form(default=settings.default_projection),
    blur_mode: str = Form(default=BlurMode.UNIFORM.value),
    view: str = Form(default=OutputView.COMPOSITE.value),
    remove_background: bool = Form(default=False),
):
    """
    Shadow generation endpoint.

    - **foreground**: Object with transparent background (or any photo with
      `remove_background=true`)
    - **background**: Scene the object is placed on
    - **depth_map**: Optional grayscale depth of the background (red channel)
    - **projection**: "perspective" or "directional"
    - **blur_mode**: "uniform" or "distance_scaled"
    - **view**: "composite", "shadow_only" or "mask_debug"

    Returns: PNG image of the requested view
    """
    request_id = str(uuid.uuid4())[:8]
    logger.info(f"[{request_id}] New shadow request: projection={projection}, view={view}")

    timer = Timer(label=request_id)

    try:
        params = ShadowRequest(
            angle=angle,
            elevation=elevation,
            intensity=intensity,
            contact_darkness=contact_darkness,
            max_blur_radius=max_blur_radius,
            falloff_distance=falloff_distance,
            position_x=position_x,
            position_y=position_y,
            projection=projection,
            blur_mode=blur_mode,
            view=view,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid parameters: {e.errors()[0]['msg']}")

    try:
        with timer.measure("load_images"):
            fg_img = load_raster(await foreground.read(), max_size=settings.max_image_size)
            bg_img = load_raster(await background.read(), max_size=settings.max_image_size)

            depth = None
            if depth_map is not None:
                depth = fit_depth_map(load_depth_map(await depth_map.read()), bg_img.size)

        if remove_background:
            with timer.measure("cutout"):
                fg_img = get_background_remover().remove(fg_img)
    except ImageLoadError as e:
        logger.warning(f"[{request_id}] Load failed: {e}")
        raise HTTPException(status_code=400, detail=str(e))

    logger.info(
        f"[{request_id}] Foreground: {fg_img.width}x{fg_img.height}, "
        f"Background: {bg_img.width}x{bg_img.height}, depth={depth is not None}"
    )

    pipeline = get_pipeline(params.projection, params.blur_mode)

    try:
        with timer.measure("mask"):
            mask = MaskExtractor.extract_from_alpha(fg_img, pipeline.config.alpha_threshold)

        request = GenerationRequest(
            light=params.light(),
            shadow=params.shadow(),
            mask=mask,
            background=bg_img,
            foreground=fg_img,
            position=Position(params.position_x, params.position_y),
            depth_map=depth,
        )
        result = pipeline.generate(request, timer=timer)

        with timer.measure("encode"):
            result_bytes = raster_to_bytes(getattr(result, params.view.value), format="PNG")
    except ResourceUnavailableError as e:
        logger.error(f"[{request_id}] Resource unavailable: {e}")
        raise HTTPException(status_code=500, detail=f"Processing failed: {e}")
    except Exception as e:
        logger.error(f"[{request_id}] Error: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Processing failed: {str(e)}")

    timer.log_summary()
    logger.info(f"[{request_id}] Shadow generated successfully")

    return Response(
        content=result_bytes,
        media_type="image/png",
        headers={
            "X-Request-ID": request_id,
            "X-Processing-Time": f"{timer.get_total():.3f}s",
        }
    )


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Shadow Generator API",
        "version": "0.1.0",
        "endpoints": {
            "/shadow": "POST - Generate a cast shadow",
            "/health": "GET - Health check",
        }
    }

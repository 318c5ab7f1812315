# Utility Functions
from .image_io import (
    EXPORT_FILENAMES,
    export_generated,
    fit_depth_map,
    load_depth_map,
    load_raster,
    raster_to_bytes,
    resize_raster,
    save_raster,
)
from .timing import Timer

__all__ = [
    "EXPORT_FILENAMES",
    "export_generated",
    "fit_depth_map",
    "load_depth_map",
    "load_raster",
    "raster_to_bytes",
    "resize_raster",
    "save_raster",
    "Timer",
]

"""Image I/O utilities for the shadow generator."""

import io
import logging
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

import cv2
import numpy as np
from PIL import Image

from shadowgen.errors import ImageLoadError
from shadowgen.types import DepthMap, GeneratedShadow, RasterImage

logger = logging.getLogger(__name__)

ImageSource = Union[bytes, str, Path, np.ndarray]

EXPORT_FILENAMES = {
    "composite": "composite.png",
    "shadow_only": "shadow_only.png",
    "mask_debug": "mask_debug.png",
}


def _decode(source: ImageSource) -> np.ndarray:
    """Decode a source into an RGB(A) or gray uint8 array."""
    if isinstance(source, (bytes, bytearray)):
        nparr = np.frombuffer(source, np.uint8)
        img = cv2.imdecode(nparr, cv2.IMREAD_UNCHANGED) if nparr.size else None
    elif isinstance(source, (str, Path)):
        img = cv2.imread(str(source), cv2.IMREAD_UNCHANGED)
    elif isinstance(source, np.ndarray):
        img = source.copy()
    else:
        raise ImageLoadError(f"Unsupported image source type: {type(source)}")

    if img is None:
        raise ImageLoadError("Failed to decode image")

    if img.dtype == np.uint16:
        img = (img // 257).astype(np.uint8)

    # Arrays passed in directly are taken as RGB(A); decoded files are BGR(A)
    if isinstance(source, np.ndarray):
        return img

    if img.ndim == 3 and img.shape[2] == 4:
        img = cv2.cvtColor(img, cv2.COLOR_BGRA2RGBA)
    elif img.ndim == 3 and img.shape[2] == 3:
        img = cv2.cvtColor(img, cv2.COLOR_BGR2RGB)
    return img


def _to_rgba(img: np.ndarray) -> np.ndarray:
    """Expand gray / RGB / RGBA arrays to RGBA uint8."""
    if img.dtype != np.uint8:
        img = np.clip(img, 0, 255).astype(np.uint8)

    if img.ndim == 2:
        return cv2.cvtColor(img, cv2.COLOR_GRAY2RGBA)
    if img.ndim == 3 and img.shape[2] == 1:
        return cv2.cvtColor(img[:, :, 0], cv2.COLOR_GRAY2RGBA)
    if img.ndim == 3 and img.shape[2] == 3:
        return cv2.cvtColor(img, cv2.COLOR_RGB2RGBA)
    if img.ndim == 3 and img.shape[2] == 4:
        return np.ascontiguousarray(img)

    raise ImageLoadError(f"Unsupported image shape: {img.shape}")


def load_raster(source: ImageSource, max_size: Optional[int] = None) -> RasterImage:
    """
    Load an image from bytes, a file path or an array as RGBA.

    Args:
        source: Encoded image bytes, file path, or RGB(A)/gray array
        max_size: Maximum dimension (resized down, preserving aspect ratio)

    Returns:
        RasterImage; images without alpha come out fully opaque

    Raises:
        ImageLoadError: If the source cannot be decoded
    """
    image = RasterImage(_to_rgba(_decode(source)))

    if max_size is not None and max(image.width, image.height) > max_size:
        scale = max_size / max(image.width, image.height)
        new_w = max(1, int(image.width * scale))
        new_h = max(1, int(image.height * scale))
        logger.debug(f"Resizing {image.width}x{image.height} -> {new_w}x{new_h}")
        image = resize_raster(image, new_w, new_h)

    return image


def load_depth_map(source: ImageSource) -> DepthMap:
    """
    Load a depth map, reading depth from the red channel.

    Raises:
        ImageLoadError: If the source cannot be decoded
    """
    rgba = _to_rgba(_decode(source))
    return DepthMap(np.ascontiguousarray(rgba[:, :, 0]))


def _interpolation(src_w: int, src_h: int, width: int, height: int) -> int:
    """Area interpolation when shrinking, bilinear otherwise."""
    return cv2.INTER_AREA if width * height < src_w * src_h else cv2.INTER_LINEAR


def resize_raster(image: RasterImage, width: int, height: int) -> RasterImage:
    """Resize an image, using area interpolation when shrinking."""
    interpolation = _interpolation(image.width, image.height, width, height)
    resized = cv2.resize(image.pixels, (width, height), interpolation=interpolation)
    return RasterImage(resized)


def fit_depth_map(depth_map: DepthMap, size: Tuple[int, int]) -> DepthMap:
    """
    Resample a depth map onto a background's pixel grid.

    Depth is sampled at background coordinates, so the map must share the
    background's size after any downscaling on load.

    Args:
        depth_map: Depth map as loaded
        size: Background (width, height)

    Returns:
        Depth map of exactly `size` (the input itself if it already fits)
    """
    width, height = size
    if (depth_map.width, depth_map.height) == (width, height):
        return depth_map
    if width == 0 or height == 0 or depth_map.data.size == 0:
        return DepthMap(np.zeros((height, width), dtype=np.uint8))

    interpolation = _interpolation(depth_map.width, depth_map.height, width, height)
    resized = cv2.resize(depth_map.data, (width, height), interpolation=interpolation)
    logger.debug(
        f"Depth map resized {depth_map.width}x{depth_map.height} -> {width}x{height}"
    )
    return DepthMap(resized)


def raster_to_bytes(image: RasterImage, format: str = "PNG") -> bytes:
    """
    Encode an image to bytes.

    Args:
        image: RGBA image
        format: Output format understood by Pillow

    Returns:
        Encoded image bytes
    """
    pil_image = Image.fromarray(image.pixels)

    buffer = io.BytesIO()
    pil_image.save(buffer, format=format)
    return buffer.getvalue()


def save_raster(image: RasterImage, path: Union[str, Path]) -> None:
    """Save an RGBA image to file."""
    bgra = cv2.cvtColor(image.pixels, cv2.COLOR_RGBA2BGRA)
    if not cv2.imwrite(str(path), bgra):
        raise OSError(f"Failed to write image to {path}")


def export_generated(result: GeneratedShadow, directory: Union[str, Path]) -> Dict[str, Path]:
    """
    Write composite.png, shadow_only.png and mask_debug.png.

    Args:
        result: Generated shadow images
        directory: Output directory (created if missing)

    Returns:
        Mapping of output name to written path
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)

    written = {}
    for name, filename in EXPORT_FILENAMES.items():
        path = directory / filename
        save_raster(getattr(result, name), path)
        written[name] = path

    logger.info(f"Exported {len(written)} images to {directory}")
    return written

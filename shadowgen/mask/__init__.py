# Mask Extraction Module
from .extractor import MaskExtractor
from .cutout import BackgroundRemover

__all__ = ["MaskExtractor", "BackgroundRemover"]

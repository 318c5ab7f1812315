# Blur Module
from .blur import BlurStage, gaussian_blur

__all__ = ["BlurStage", "gaussian_blur"]

# Compositing Module
from .compositor import Compositor, blend_multiply, blend_source_over, shadow_layer

__all__ = ["Compositor", "blend_multiply", "blend_source_over", "shadow_layer"]

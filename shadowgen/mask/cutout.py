"""Background removal for foreground photos using rembg."""

import logging
from typing import Optional

import numpy as np
from PIL import Image

from shadowgen.errors import ImageLoadError
from shadowgen.types import RasterImage

logger = logging.getLogger(__name__)


class BackgroundRemover:
    """
    Cut a subject out of a photo so its alpha channel can drive the mask.

    The rembg session is created on first use; model download and
    inference failures surface as ImageLoadError.
    """

    def __init__(self, model_name: str = "u2net"):
        """
        Initialize background remover.

        Args:
            model_name: rembg model to load on first use
        """
        self.model_name = model_name
        self._session = None
        logger.info(f"BackgroundRemover initialized (model={model_name})")

    @property
    def session(self):
        """Lazy-load the rembg session."""
        if self._session is None:
            try:
                from rembg import new_session
                self._session = new_session(self.model_name)
                logger.info(f"Loaded rembg with {self.model_name} model")
            except Exception as e:
                raise ImageLoadError(f"Background removal unavailable: {e}") from e
        return self._session

    def remove(self, image: RasterImage, session: Optional[object] = None) -> RasterImage:
        """
        Remove the background of an image.

        Args:
            image: RGBA or opaque photo
            session: Optional pre-built rembg session

        Returns:
            RGBA image whose alpha isolates the subject
        """
        try:
            from rembg import remove

            pil_image = Image.fromarray(image.pixels)
            result = remove(pil_image, session=session or self.session)
            result_array = np.array(result.convert("RGBA"), dtype=np.uint8)
        except ImageLoadError:
            raise
        except Exception as e:
            logger.warning(f"Background removal failed: {e}")
            raise ImageLoadError(f"Failed to remove background: {e}") from e

        return RasterImage(result_array)

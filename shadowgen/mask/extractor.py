"""Binary mask extraction from foreground transparency."""

import logging

import numpy as np

from shadowgen.types import BinaryMask, RasterImage, allocate_buffer

logger = logging.getLogger(__name__)

ALPHA_THRESHOLD = 128


class MaskExtractor:
    """
    Derive occupancy masks from a cut-out foreground.

    All methods are pure; a mask is computed once per loaded foreground.
    """

    @staticmethod
    def extract_from_alpha(image: RasterImage, threshold: int = ALPHA_THRESHOLD) -> BinaryMask:
        """
        Threshold the alpha channel into a binary mask.

        Args:
            image: RGBA foreground
            threshold: Alpha values strictly above this are occupied

        Returns:
            BinaryMask with values 0 or 255, same size as the image
        """
        mask = allocate_buffer(image.height, image.width)
        mask[image.alpha > threshold] = 255

        logger.debug(
            f"Mask extracted: {image.width}x{image.height}, "
            f"{int(np.count_nonzero(mask))} occupied pixels"
        )
        return BinaryMask(mask)

    @staticmethod
    def create_debug_image(mask: BinaryMask) -> RasterImage:
        """
        Render the mask as an opaque grayscale image.

        Unoccupied pixels come out solid black rather than transparent.
        """
        pixels = allocate_buffer(mask.height, mask.width, 4)
        pixels[:, :, 0] = mask.data
        pixels[:, :, 1] = mask.data
        pixels[:, :, 2] = mask.data
        pixels[:, :, 3] = 255
        return RasterImage(pixels)

    @staticmethod
    def find_contact_point(mask: BinaryMask, threshold: int = ALPHA_THRESHOLD) -> int:
        """
        Find the row where the silhouette touches the ground.

        Args:
            mask: Binary occupancy mask
            threshold: Pixel values strictly above this count as occupied

        Returns:
            Largest row index holding an occupied pixel, or the last row
            when the mask is empty
        """
        rows = np.flatnonzero((mask.data > threshold).any(axis=1))
        if rows.size == 0:
            return max(mask.height - 1, 0)
        return int(rows[-1])

"""Exception types raised by the shadow generator."""


class ShadowGenError(Exception):
    """Base class for shadow generator errors."""


class ResourceUnavailableError(ShadowGenError):
    """
    A pixel buffer required by the engine could not be obtained.

    Fatal for the current generation: the caller must abort it.
    """


class ImageLoadError(ShadowGenError):
    """
    An input image, cutout or depth map could not be loaded.

    Recoverable: previously loaded inputs and results stay valid.
    """

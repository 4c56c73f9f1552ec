class PostureScreeningError(Exception):
    """Base class for failures raised by the screening core."""


class NoPoseDetected(PostureScreeningError):
    """The detector returned zero landmarks for an image."""


class FrameNotReady(PostureScreeningError):
    """The capture surface has no usable frame yet."""


class DetectorNotReady(PostureScreeningError):
    """The detector was used after it was closed."""

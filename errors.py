"""Exception types shared by the image I/O, pipeline and batch layers."""


class EdgeMaskError(Exception):
    """Base class for all edge mask errors."""


class ImageLoadError(EdgeMaskError):
    """An input image is missing or cannot be decoded."""

    def __init__(self, path, reason: str = "unable to load image"):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"{reason}: {self.path}")


# Name used for the decode failure in the error taxonomy.
DecodeError = ImageLoadError


class ImageWriteError(EdgeMaskError):
    """A mask could not be encoded or written to disk."""

    def __init__(self, path, reason: str = "unable to write image"):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"{reason}: {self.path}")


class ConfigError(EdgeMaskError, ValueError):
    """Invalid run configuration (bad parameter values, no input files)."""

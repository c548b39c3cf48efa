"""Exception hierarchy for videounique.base module."""


class VideoUniqueError(Exception):
    """Base exception for all videounique errors."""

    pass


class InvalidConfigurationError(VideoUniqueError):
    """Raised when an overlay configuration can't be compiled into a graph."""

    pass


class AssetNotFoundError(InvalidConfigurationError):
    """Raised when an enabled overlay has no asset file on disk."""

    def __init__(self, role: str, path: object):
        super().__init__(f"Overlay asset for '{role}' not found: {path}")
        self.role = role
        self.path = path


class InvalidDurationError(VideoUniqueError):
    """Raised when a source duration is missing, non-finite or not positive."""

    pass


class GraphError(VideoUniqueError):
    """Base exception for filter graph construction errors."""

    pass


class InvalidParameterError(GraphError):
    """Raised when filter parameters don't fit their operation."""

    pass


class ProbeError(VideoUniqueError):
    """Raised when there's an error probing a media file."""

    pass


class EngineFailureError(VideoUniqueError):
    """Raised when ffmpeg exits with a failure."""

    def __init__(self, message: str, returncode: int | None = None, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr

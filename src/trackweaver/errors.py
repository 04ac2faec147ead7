"""Exception types raised at the package's outer surfaces."""


class TrackWeaverError(Exception):
    """Base error for trackweaver."""


class AudioLoadError(TrackWeaverError):
    """Raised when an audio file cannot be found or decoded."""


class ManifestError(TrackWeaverError):
    """Raised when a stored manifest cannot be read back."""

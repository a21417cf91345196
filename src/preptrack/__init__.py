"""PrepTrack: interview preparation progress tracking service."""

__version__ = "0.1.0"

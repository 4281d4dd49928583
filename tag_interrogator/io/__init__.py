"""I/O helpers for reading images and writing results."""

from .images import encode_image_file
from .sidecar import ResultSidecarWriter, presentation_metadata

__all__ = ["ResultSidecarWriter", "encode_image_file", "presentation_metadata"]

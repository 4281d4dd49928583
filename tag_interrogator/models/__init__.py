"""Backend clients and the shared data model."""

from .backends import BackendConfig, BackendKind, CloudBackend, HybridBackend
from .base import (
    ConfigurationError,
    EncodedImage,
    InterrogationError,
    InterrogationResult,
    NetworkError,
    ParseError,
    Tag,
    TagCategory,
    TotalFailure,
)
from .captioner import OllamaCaptioner
from .cloud import CloudVisionClient
from .hybrid import HybridInterrogator
from .local_tagger import LocalTaggerClient

__all__ = [
    "BackendConfig",
    "BackendKind",
    "CloudBackend",
    "CloudVisionClient",
    "ConfigurationError",
    "EncodedImage",
    "HybridBackend",
    "HybridInterrogator",
    "InterrogationError",
    "InterrogationResult",
    "LocalTaggerClient",
    "NetworkError",
    "OllamaCaptioner",
    "ParseError",
    "Tag",
    "TagCategory",
    "TotalFailure",
]

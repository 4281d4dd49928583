"""Service layer for backend selection and result presentation."""

from .interrogator import Interrogator, validate_backend
from .presentation import Presentation, TaggingSettings, present

__all__ = ["Interrogator", "Presentation", "TaggingSettings", "present", "validate_backend"]

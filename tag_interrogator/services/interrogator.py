"""Validate the selected backend and route requests to its strategy."""

from __future__ import annotations

import logging

from requests import Session

from ..models.backends import BackendConfig, CloudBackend, HybridBackend, missing_fields
from ..models.base import ConfigurationError, EncodedImage, InterrogationResult
from ..models.cloud import CloudVisionClient
from ..models.hybrid import HybridInterrogator
from ..tags.categories import TagCategoryResolver

logger = logging.getLogger(__name__)

CAPTIONER_FIELDS = ("captioner_endpoint", "captioner_model")


def validate_backend(backend: BackendConfig, *, only: tuple[str, ...] | None = None) -> None:
    """Raise :class:`ConfigurationError` for the first empty required field.

    ``only`` narrows the check to a subset of the required fields.
    """
    if not isinstance(backend, (CloudBackend, HybridBackend)):
        raise ConfigurationError(
            "backend", f"Unsupported backend configuration: {type(backend).__name__}."
        )
    missing = [name for name in missing_fields(backend) if only is None or name in only]
    if missing:
        raise ConfigurationError(
            missing[0],
            f"Setting '{missing[0]}' is required for the {backend.kind.value} backend.",
        )


class Interrogator:
    """Entry point for tagging and captioning a single image.

    Backend clients are built on first use and reused for later calls. Use the
    instance as a context manager, or call :meth:`close`, to release their
    HTTP sessions.
    """

    def __init__(
        self,
        backend: BackendConfig,
        *,
        resolver: TagCategoryResolver | None = None,
        session: Session | None = None,
    ) -> None:
        self.backend = backend
        self.resolver = resolver if resolver is not None else TagCategoryResolver()
        self._session = session
        self._client: CloudVisionClient | HybridInterrogator | None = None

    def __enter__(self) -> Interrogator:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def interrogate(self, image: EncodedImage) -> InterrogationResult:
        """Produce raw tags (and, for the hybrid backend, a description)."""
        backend = self.backend
        validate_backend(backend)
        logger.debug("Interrogating %s with the %s backend", image.filename, backend.kind.value)
        return self._strategy().interrogate(image)

    def caption(self, image: EncodedImage) -> str:
        """Explicitly requested natural language description."""
        backend = self.backend
        if isinstance(backend, HybridBackend):
            validate_backend(backend, only=CAPTIONER_FIELDS)
        else:
            validate_backend(backend)
        client = self._strategy()
        if isinstance(client, HybridInterrogator):
            return client.captioner.caption(image)
        return client.caption(image)

    def _strategy(self) -> CloudVisionClient | HybridInterrogator:
        if self._client is not None:
            return self._client
        backend = self.backend
        if isinstance(backend, CloudBackend):
            self._client = CloudVisionClient(
                backend, resolver=self.resolver, session=self._session
            )
        elif isinstance(backend, HybridBackend):
            self._client = HybridInterrogator(backend, session=self._session)
        else:  # pragma: no cover
            raise AssertionError(f"Unhandled backend {backend!r}")
        return self._client

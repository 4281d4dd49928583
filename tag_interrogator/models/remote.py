"""Shared HTTP plumbing for remote inference endpoints."""

from __future__ import annotations

import json
import logging
from typing import Any

import requests
from requests import Response, Session

from .base import NetworkError, ParseError

logger = logging.getLogger(__name__)


class RemoteClient:
    """Thin wrapper around a ``requests`` session for one backend service."""

    def __init__(
        self,
        *,
        backend: str,
        timeout: float,
        session: Session | None = None,
    ) -> None:
        self._backend = backend
        self._timeout = timeout
        self._session = session
        self._owns_session = session is None

    @property
    def backend(self) -> str:
        return self._backend

    @property
    def session(self) -> Session:
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def close(self) -> None:
        """Close the session this client opened; injected sessions are left alone."""
        if self._owns_session and self._session is not None:
            self._session.close()
            self._session = None

    def _headers(self) -> dict[str, str]:
        return {}

    def _post(
        self,
        url: str,
        *,
        json_payload: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Response:
        effective_timeout = timeout or self._timeout
        logger.debug("POST %s (%s backend)", url, self._backend)
        try:
            response = self.session.post(
                url,
                json=json_payload,
                files=files,
                params=params,
                headers=self._headers(),
                timeout=effective_timeout,
            )
        except requests.exceptions.Timeout as exc:
            raise NetworkError(
                f"{self._backend} request timed out after {effective_timeout}s."
            ) from exc
        except requests.exceptions.RequestException as exc:
            raise NetworkError(f"Failed to contact {self._backend} backend: {exc}") from exc
        return self._check_status(response)

    def _get(self, url: str, *, timeout: float | None = None) -> Response:
        effective_timeout = timeout or self._timeout
        logger.debug("GET %s (%s backend)", url, self._backend)
        try:
            response = self.session.get(
                url,
                headers=self._headers(),
                timeout=effective_timeout,
            )
        except requests.exceptions.Timeout as exc:
            raise NetworkError(
                f"{self._backend} request timed out after {effective_timeout}s."
            ) from exc
        except requests.exceptions.RequestException as exc:
            raise NetworkError(f"Failed to contact {self._backend} backend: {exc}") from exc
        return self._check_status(response)

    def _check_status(self, response: Response) -> Response:
        if not 200 <= response.status_code < 300:
            raise NetworkError(
                f"{self._backend} backend returned HTTP {response.status_code}: {response.text}"
            )
        return response

    def _json_body(self, response: Response) -> dict[str, Any]:
        try:
            data = response.json()
        except (ValueError, json.JSONDecodeError) as exc:
            raise ParseError(f"{self._backend} backend returned a non-JSON body.") from exc
        if not isinstance(data, dict):
            raise ParseError(f"{self._backend} backend returned an unexpected payload.")
        return data

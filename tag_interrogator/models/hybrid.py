"""Two-branch local interrogation: tag service plus captioner."""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import ALL_COMPLETED, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Generic, TypeVar

from requests import Session

from .backends import HybridBackend
from .base import EncodedImage, InterrogationResult, Tag, TotalFailure
from .captioner import OllamaCaptioner
from .local_tagger import LocalTaggerClient

logger = logging.getLogger(__name__)

T = TypeVar("T")

TAGGER_BRANCH = "tagger"
CAPTIONER_BRANCH = "captioner"


@dataclass(slots=True)
class Outcome(Generic[T]):
    """Settled result of one branch: a value or the exception it raised."""

    value: T | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def settle(branches: dict[str, Callable[[], object]]) -> dict[str, Outcome]:
    """Run every branch concurrently and wait for all of them to finish."""
    outcomes: dict[str, Outcome] = {}
    with ThreadPoolExecutor(max_workers=len(branches) or 1) as executor:
        futures = {name: executor.submit(branch) for name, branch in branches.items()}
        wait(futures.values(), return_when=ALL_COMPLETED)
    for name, future in futures.items():
        error = future.exception()
        if isinstance(error, Exception):
            outcomes[name] = Outcome(error=error)
        elif error is not None:
            raise error
        else:
            outcomes[name] = Outcome(value=future.result())
    return outcomes


class HybridInterrogator:
    """Run the local tagger and the captioner side by side and merge them."""

    def __init__(
        self,
        backend: HybridBackend,
        *,
        tagger: LocalTaggerClient | None = None,
        captioner: OllamaCaptioner | None = None,
        session: Session | None = None,
    ) -> None:
        if tagger is None:
            tagger = LocalTaggerClient(
                backend.tagger_endpoint,
                threshold=backend.tagger_threshold,
                timeout=backend.timeout,
                session=session,
            )
        if captioner is None:
            captioner = OllamaCaptioner(
                backend.captioner_endpoint,
                backend.captioner_model,
                timeout=backend.timeout,
                session=session,
            )
        self._tagger = tagger
        self._captioner = captioner

    @property
    def captioner(self) -> OllamaCaptioner:
        return self._captioner

    def close(self) -> None:
        self._tagger.close()
        self._captioner.close()

    def interrogate(self, image: EncodedImage) -> InterrogationResult:
        outcomes = settle(
            {
                TAGGER_BRANCH: lambda: self._tagger.predict(image),
                CAPTIONER_BRANCH: lambda: self._captioner.caption(image),
            }
        )
        return merge_outcomes(outcomes[TAGGER_BRANCH], outcomes[CAPTIONER_BRANCH])


def merge_outcomes(tagger: Outcome, captioner: Outcome) -> InterrogationResult:
    """Combine branch outcomes; raise only when both failed."""
    if not tagger.ok and not captioner.ok:
        raise TotalFailure({TAGGER_BRANCH: tagger.error, CAPTIONER_BRANCH: captioner.error})

    warnings: list[str] = []
    tags: list[Tag] = []
    description: str | None = None

    if tagger.ok:
        tags = sorted(tagger.value or [], key=lambda tag: tag.score, reverse=True)
    else:
        logger.warning("Local tagger failed; returning caption only: %s", tagger.error)
        warnings.append(f"Local tagger failed: {tagger.error}")

    if captioner.ok:
        description = captioner.value
    else:
        logger.warning("Captioner failed; returning tags only: %s", captioner.error)
        warnings.append(f"Captioner failed: {captioner.error}")

    return InterrogationResult.build(tags, natural_description=description, warnings=warnings)

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Generic, TypeVar

from backend.shelf.services.http_transport import HttpTransportError

LOGGER = logging.getLogger("notion_shelf.fallback")

T = TypeVar("T")


@dataclass(frozen=True)
class FallbackAttempt(Generic[T]):
    name: str
    run: Callable[[], T | None]


@dataclass(frozen=True)
class FallbackOutcome(Generic[T]):
    source: str
    value: T


def first_available(
    attempts: Iterable[FallbackAttempt[T]],
    *,
    chain: str,
) -> FallbackOutcome[T] | None:
    """Run attempts in order and return the first one that produced a value.

    An attempt signals "no result" by returning None. Transport failures are
    treated the same way, so the chain moves on to the next attempt.
    """
    for attempt in attempts:
        try:
            value = attempt.run()
        except HttpTransportError as exc:
            LOGGER.warning(
                "fallback attempt failed chain=%s attempt=%s status=%s error=%s",
                chain,
                attempt.name,
                exc.status_code,
                exc,
            )
            continue
        if value is None:
            LOGGER.debug("fallback attempt empty chain=%s attempt=%s", chain, attempt.name)
            continue
        return FallbackOutcome(source=attempt.name, value=value)
    return None

"""First-success-wins combinator for ordered fallback strategies.

Both the song resolver and the stream acquirer keep an ordered list of
alternative ways to reach the same result. Each alternative is wrapped as an
:class:`Attempt`; :func:`first_success` runs them strictly in order, logs each
failure, pauses between attempts and returns the first result.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Generic, Protocol, TypeVar

from testificate_info.domain.shared.messages import LogTemplates

logger = logging.getLogger(__name__)

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)

Sleep = Callable[[float], Awaitable[None]]


class Attempt(Protocol[T_co]):
    """One alternative in a strategy chain."""

    @property
    def name(self) -> str: ...

    def __call__(self) -> Awaitable[T_co]: ...


@dataclass(frozen=True)
class NamedAttempt(Generic[T]):
    """Adapts a zero-argument coroutine function into an :class:`Attempt`."""

    name: str
    run: Callable[[], Awaitable[T]]

    def __call__(self) -> Awaitable[T]:
        return self.run()


@dataclass(frozen=True)
class AttemptFailure:
    name: str
    error: Exception


class StrategiesExhausted(Exception):
    """Every attempt in a chain failed."""

    def __init__(self, label: str, failures: list[AttemptFailure]) -> None:
        names = ", ".join(f.name for f in failures) or "none"
        super().__init__(f"{label}: all strategies failed ({names})")
        self.label = label
        self.failures = failures

    @property
    def errors(self) -> list[Exception]:
        return [f.error for f in self.failures]


async def first_success(
    attempts: Sequence[Attempt[T]],
    *,
    label: str,
    delay: float = 0.0,
    sleep: Sleep = asyncio.sleep,
) -> T:
    """Run ``attempts`` in order and return the first successful result.

    Raises:
        StrategiesExhausted: every attempt raised; failures are kept in order.
    """
    failures: list[AttemptFailure] = []
    total = len(attempts)

    for index, attempt in enumerate(attempts, start=1):
        if index > 1 and delay > 0:
            await sleep(delay)

        try:
            result = await attempt()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning(LogTemplates.STRATEGY_FAILED, label, attempt.name, index, total, exc)
            failures.append(AttemptFailure(name=attempt.name, error=exc))
            continue

        logger.debug(LogTemplates.STRATEGY_SUCCEEDED, label, attempt.name, index, total)
        return result

    logger.error(LogTemplates.STRATEGIES_EXHAUSTED, label, total)
    raise StrategiesExhausted(label, failures)

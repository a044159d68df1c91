"""Retry handling for discovery backend operations.

A retry sequence wraps a single backend action (register or deregister).
The RetryStrategy decides, after every failed attempt, whether to wait and
try again or to give up. The controller itself never caps the number of
attempts; bounded policies encode the cap in their strategy.

Only BackendError failures are handed to the strategy. Anything else is a
programming defect and propagates on the first failure.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import AsyncRetrying, RetryCallState, stop_never

from attache.exceptions import BackendError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class AttemptState:
    """Progress of one retry sequence, as seen by a RetryStrategy.

    Attributes:
        action: Operation being retried ("register" or "deregister")
        attempt: Number of attempts made so far (1 after the first failure)
        start_time: Epoch seconds when the sequence started
    """

    action: str
    attempt: int
    start_time: float = field(default_factory=time.time)

    @property
    def elapsed(self) -> float:
        return time.time() - self.start_time


class RetryStrategy(ABC):
    """Backoff policy consulted after each failed attempt."""

    @abstractmethod
    def next_delay(self, error: BackendError, state: AttemptState) -> Optional[float]:
        """Decide what to do after a failed attempt.

        Args:
            error: The backend error raised by the attempt
            state: Retry sequence progress

        Returns:
            Seconds to wait before the next attempt (0 retries immediately),
            or None to stop retrying and propagate the error
        """
        pass


class FixedDelayStrategy(RetryStrategy):
    """Retry after a constant delay, optionally up to max_attempts."""

    def __init__(self, delay: float, max_attempts: Optional[int] = None):
        if delay < 0:
            raise ValueError("delay must be non-negative")
        self.delay = delay
        self.max_attempts = max_attempts

    def next_delay(self, error: BackendError, state: AttemptState) -> Optional[float]:
        if self.max_attempts is not None and state.attempt >= self.max_attempts:
            return None
        return self.delay

    def __repr__(self) -> str:
        return f"FixedDelayStrategy(delay={self.delay}, max_attempts={self.max_attempts})"


class ExponentialBackoffStrategy(RetryStrategy):
    """Exponential backoff for backend outages.

    The defaults match the standard service startup policy: wait 2s, 4s, 8s,
    16s (capped at 32s) and give up after 5 attempts. Backend rejections
    (non-transient errors, e.g. a malformed registration) stop immediately
    unless retry_rejections is set.

    Example:
        ```python
        # Keep trying for up to 10 minutes, at most a minute apart
        strategy = ExponentialBackoffStrategy(
            initial=1, max_delay=60, max_attempts=None, max_elapsed=600
        )
        ```
    """

    def __init__(
        self,
        initial: float = 2.0,
        multiplier: float = 2.0,
        max_delay: float = 32.0,
        max_attempts: Optional[int] = 5,
        max_elapsed: Optional[float] = None,
        retry_rejections: bool = False,
    ):
        self.initial = initial
        self.multiplier = multiplier
        self.max_delay = max_delay
        self.max_attempts = max_attempts
        self.max_elapsed = max_elapsed
        self.retry_rejections = retry_rejections

    def next_delay(self, error: BackendError, state: AttemptState) -> Optional[float]:
        if not self.retry_rejections and not error.is_transient:
            return None
        if self.max_attempts is not None and state.attempt >= self.max_attempts:
            return None

        delay = min(self.initial * self.multiplier ** (state.attempt - 1), self.max_delay)
        if self.max_elapsed is not None and state.elapsed + delay > self.max_elapsed:
            return None
        return delay


def is_retryable(error: BaseException) -> bool:
    """Only backend failures are retryable; everything else is a defect."""
    return isinstance(error, BackendError)


def _log_retry_attempt(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        f"[Resilience] Attempt {retry_state.attempt_number} failed after "
        f"{retry_state.seconds_since_start:.1f}s, retrying in "
        f"{retry_state.upcoming_sleep:.2f}s. Exception: {error}"
    )


async def run_with_retry(
    action: Callable[[], Awaitable[T]],
    strategy: Optional[RetryStrategy] = None,
    name: str = "action",
) -> T:
    """Run a backend action, retrying failures as the strategy directs.

    Args:
        action: Zero-argument coroutine function performing one attempt
        strategy: Backoff policy; without one the first failure propagates
        name: Action name reported to the strategy in AttemptState

    Returns:
        The action's result from the first successful attempt

    Raises:
        BackendError: The last backend failure, once the strategy stops
        Exception: Any non-backend failure, immediately
    """
    if strategy is None:
        return await action()

    start_time = time.time()
    decision = {"delay": 0.0}

    def _should_retry(retry_state: RetryCallState) -> bool:
        error = retry_state.outcome.exception()
        if error is None or not is_retryable(error):
            return False

        state = AttemptState(
            action=name, attempt=retry_state.attempt_number, start_time=start_time
        )
        delay = strategy.next_delay(error, state)
        if delay is None or delay < 0:
            logger.debug(f"Retry strategy stopped {name} after attempt {state.attempt}")
            return False

        decision["delay"] = float(delay)
        return True

    def _wait(retry_state: RetryCallState) -> float:
        return decision["delay"]

    retrying = AsyncRetrying(
        retry=_should_retry,
        wait=_wait,
        stop=stop_never,
        before_sleep=_log_retry_attempt,
        reraise=True,
    )
    # action may be a plain callable returning an awaitable, so await it here
    async for attempt in retrying:
        with attempt:
            return await action()

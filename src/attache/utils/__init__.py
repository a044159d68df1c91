"""Utility Functions"""

from attache.utils.resilience import (
    AttemptState,
    ExponentialBackoffStrategy,
    FixedDelayStrategy,
    RetryStrategy,
    run_with_retry,
)

__all__ = [
    "AttemptState",
    "ExponentialBackoffStrategy",
    "FixedDelayStrategy",
    "RetryStrategy",
    "run_with_retry",
]

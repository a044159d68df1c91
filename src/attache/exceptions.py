"""Error taxonomy for service registration.

- ConfigurationError: invalid settings, raised at construction
- BackendError: a discovery backend call failed (retryable by strategy)
- LifecycleStateError: programming defect, never retried
"""

from typing import Optional


class AttacheError(Exception):
    """Base class for all attache errors."""


class ConfigurationError(AttacheError, ValueError):
    """Raised when service or backend configuration is invalid."""


class BackendError(AttacheError):
    """A discovery backend operation failed.

    Attributes:
        operation: Backend operation name (e.g. "register")
        status_code: HTTP status returned by the backend, if any
        transient: Whether the failure looks like a temporary condition
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        status_code: Optional[int] = None,
        transient: Optional[bool] = None,
    ):
        super().__init__(message)
        self.operation = operation
        self.status_code = status_code
        if transient is None:
            # No response at all (connect error, timeout) or a server error
            transient = status_code is None or status_code >= 500
        self._transient = transient

    @property
    def is_transient(self) -> bool:
        return self._transient


class LifecycleStateError(AttacheError, RuntimeError):
    """Illegal registration state transition."""

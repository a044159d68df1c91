"""Discovery backend client interface.

Implementations are thin transport shims: each call is a single request to
the backend that either succeeds or raises BackendError. None of them retry;
retries belong to the caller (see attache.utils.resilience).
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from attache.discovery.descriptor import (
    CHECK_STATUSES,
    CRITICAL,
    PASSING,
    WARNING,
    ServiceDescriptor,
)


def service_check_id(service_id: str, position: int = 1, count: int = 1) -> str:
    """Backend id of a check registered together with a service.

    A lone check is ``service:<id>``; with several checks each one is
    numbered from 1 (``service:<id>:2`` is the second check).
    """
    if count > 1:
        return f"service:{service_id}:{position}"
    return f"service:{service_id}"


def maintenance_check_id(service_id: str) -> str:
    return f"_service_maintenance:{service_id}"


class CheckStatus(BaseModel):
    """Current state of one check, as reported by the backend."""

    model_config = ConfigDict(populate_by_name=True)

    check_id: str = Field(..., alias="CheckID")
    name: str = Field("", alias="Name")
    status: str = Field(..., alias="Status")
    notes: str = Field("", alias="Notes")
    output: str = Field("", alias="Output")
    service_id: str = Field("", alias="ServiceID")

    @property
    def reason(self) -> str:
        """Maintenance reason (stored by the backend as the check notes)."""
        return self.notes


class DiscoveryClient(ABC):
    """Abstract base class for discovery backend clients"""

    @abstractmethod
    async def register(self, descriptor: ServiceDescriptor) -> None:
        """Register (or re-register) a service instance with its checks."""
        pass

    @abstractmethod
    async def deregister(self, service_id: str) -> None:
        """Remove a service instance and its checks."""
        pass

    @abstractmethod
    async def set_maintenance(
        self, service_id: str, enable: bool, reason: Optional[str] = None
    ) -> None:
        """Enter or leave maintenance mode for a service instance."""
        pass

    @abstractmethod
    async def list_checks(self) -> Dict[str, CheckStatus]:
        """Return all checks known to the local agent, keyed by check id."""
        pass

    @abstractmethod
    async def push_checkin(self, check_id: str, status: str, note: Optional[str] = None) -> None:
        """Report the status of a TTL check."""
        pass

    async def close(self) -> None:
        """Release any persistent connections."""
        pass

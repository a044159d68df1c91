"""In-memory discovery backend.

Follows the Consul agent's conventions for check ids and error cases, so it
can stand in for a real agent in tests and in local runs without one.
Failures can be injected per operation:

    client = InMemoryDiscoveryClient()
    client.fail_next("register", times=2)   # two failures, then success
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from attache.clients.base import (
    CHECK_STATUSES,
    CRITICAL,
    CheckStatus,
    DiscoveryClient,
    maintenance_check_id,
    service_check_id,
)
from attache.discovery.descriptor import ServiceDescriptor
from attache.exceptions import BackendError

logger = logging.getLogger(__name__)

DEFAULT_MAINTENANCE_REASON = (
    "Maintenance mode is enabled for this service, "
    "but no reason was provided. This is a default message."
)


class InMemoryDiscoveryClient(DiscoveryClient):
    """Discovery client keeping services and checks in process memory.

    Attributes:
        services: Registered descriptors keyed by service id
        checks: Check states keyed by check id
        calls: Every operation invoked, in order, with its arguments
    """

    def __init__(self):
        self.services: Dict[str, ServiceDescriptor] = {}
        self.checks: Dict[str, CheckStatus] = {}
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []
        self._failures: Dict[str, List[BaseException]] = {}

    def fail_next(
        self, operation: str, times: int = 1, error: Optional[BaseException] = None
    ) -> None:
        """Make the next `times` calls of `operation` raise.

        Args:
            operation: "register", "deregister", "maintenance", "list_checks" or "checkin"
            times: Number of consecutive failures
            error: Exception to raise (default: a transient BackendError)
        """
        pending = self._failures.setdefault(operation, [])
        for _ in range(times):
            pending.append(
                error or BackendError(f"Injected {operation} failure", operation=operation)
            )

    def call_count(self, operation: str) -> int:
        return sum(1 for name, _ in self.calls if name == operation)

    def _enter(self, operation: str, *args: Any) -> None:
        self.calls.append((operation, args))
        pending = self._failures.get(operation)
        if pending:
            raise pending.pop(0)

    def _drop_service(self, service_id: str) -> None:
        self.services.pop(service_id, None)
        self.checks = {
            check_id: check
            for check_id, check in self.checks.items()
            if check.service_id != service_id
        }

    async def register(self, descriptor: ServiceDescriptor) -> None:
        self._enter("register", descriptor)

        self._drop_service(descriptor.id)
        self.services[descriptor.id] = descriptor

        count = len(descriptor.checks)
        for position, check in enumerate(descriptor.checks, start=1):
            check_id = service_check_id(descriptor.id, position, count)
            self.checks[check_id] = CheckStatus(
                check_id=check_id,
                name=f"Service '{descriptor.name}' check",
                status=check.initial_status or CRITICAL,
                service_id=descriptor.id,
            )
        logger.debug(f"Registered {descriptor.id} with {count} check(s)")

    async def deregister(self, service_id: str) -> None:
        self._enter("deregister", service_id)

        if service_id not in self.services:
            raise BackendError(
                f"Unknown service ID {service_id!r}", operation="deregister", status_code=404
            )
        self._drop_service(service_id)

    async def set_maintenance(
        self, service_id: str, enable: bool, reason: Optional[str] = None
    ) -> None:
        self._enter("maintenance", service_id, enable, reason)

        if service_id not in self.services:
            raise BackendError(
                f"Unknown service ID {service_id!r}", operation="maintenance", status_code=404
            )

        check_id = maintenance_check_id(service_id)
        if not enable:
            self.checks.pop(check_id, None)
            return

        self.checks[check_id] = CheckStatus(
            check_id=check_id,
            name="Service Maintenance Mode",
            status=CRITICAL,
            notes=reason or DEFAULT_MAINTENANCE_REASON,
            service_id=service_id,
        )

    async def list_checks(self) -> Dict[str, CheckStatus]:
        self._enter("list_checks")
        return {check_id: check.model_copy() for check_id, check in self.checks.items()}

    async def push_checkin(self, check_id: str, status: str, note: Optional[str] = None) -> None:
        self._enter("checkin", check_id, status, note)

        if status not in CHECK_STATUSES:
            raise ValueError(f"Invalid check status: {status}")
        if check_id not in self.checks:
            raise BackendError(
                f"Unknown check ID {check_id!r}", operation="checkin", status_code=404
            )

        check = self.checks[check_id]
        self.checks[check_id] = check.model_copy(update={"status": status, "output": note or ""})

"""Registration lifecycle for a discovery-registered HTTP service.

ServiceAttache registers the service before it starts taking traffic, keeps
its health status current (HTTP-polled and/or TTL check-ins), and
deregisters it before shutdown:

    unregistered -> registering -> registered -> deregistering -> deregistered

Startup registration failures abort startup unless the service runs in
low-profile mode, where registration continues in the background.
Deregistration failures are logged and never block shutdown.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, Dict, FrozenSet, Optional, Union

from attache.clients.base import (
    CRITICAL,
    PASSING,
    WARNING,
    CheckStatus,
    DiscoveryClient,
    maintenance_check_id,
    service_check_id,
)
from attache.config import ServiceConfig
from attache.discovery.descriptor import NetworkInfo, build_descriptor, derive_connection_id
from attache.exceptions import BackendError, LifecycleStateError
from attache.host import HostRuntime
from attache.utils.resilience import run_with_retry

logger = logging.getLogger(__name__)


def _tags(*tags: str) -> dict:
    return {"tags": ["attache", "consul", *tags]}


class RegistrationState(str, Enum):
    """Registration lifecycle states."""

    UNREGISTERED = "unregistered"
    REGISTERING = "registering"
    REGISTERED = "registered"
    DEREGISTERING = "deregistering"
    DEREGISTERED = "deregistered"


_TRANSITIONS: Dict[RegistrationState, FrozenSet[RegistrationState]] = {
    RegistrationState.UNREGISTERED: frozenset({
        RegistrationState.REGISTERING,
        RegistrationState.DEREGISTERED,  # shutdown before any registration
    }),
    RegistrationState.REGISTERING: frozenset({
        RegistrationState.REGISTERING,  # retry after a failed sequence
        RegistrationState.REGISTERED,
        RegistrationState.DEREGISTERING,
    }),
    RegistrationState.REGISTERED: frozenset({
        RegistrationState.REGISTERING,
        RegistrationState.DEREGISTERING,
    }),
    RegistrationState.DEREGISTERING: frozenset({RegistrationState.DEREGISTERED}),
    RegistrationState.DEREGISTERED: frozenset({RegistrationState.REGISTERING}),
}


class ServiceAttache:
    """Keeps one service instance registered with a discovery backend.

    Usage:
        attache = ServiceAttache(
            ServiceConfig(name="billing", check={"ttl": 30000}),
            client=ConsulClient(ConsulConfig.from_env()),
        )
        attache.attach(host)   # binds the startup and shutdown hooks

        # Application code, e.g. from a periodic task
        await attache.checkin(True, "all good")
        await attache.maintenance("Draining for deploy")
    """

    def __init__(
        self,
        config: ServiceConfig,
        client: DiscoveryClient,
        network: Optional[NetworkInfo] = None,
    ):
        """Initialize the registration lifecycle.

        Args:
            config: Validated service configuration
            client: Discovery backend client
            network: Network binding, when not attached to a host
        """
        self.config = config
        self.client = client
        self._network_provider: Optional[Callable[[], NetworkInfo]] = (
            (lambda: network) if network is not None else None
        )
        self._state = RegistrationState.UNREGISTERED
        self._connection_id: Optional[str] = None
        self._background: Optional[asyncio.Task] = None
        self._registration_in_flight = False

    @property
    def state(self) -> RegistrationState:
        return self._state

    @property
    def connection_id(self) -> Optional[str]:
        """Backend-visible id, assigned at the first registration attempt."""
        return self._connection_id

    def attach(self, host: HostRuntime) -> None:
        """Bind registration to the host's startup and shutdown hooks."""
        self._network_provider = host.network_info
        host.on_pre_traffic_start(self._on_pre_traffic_start)
        host.on_pre_shutdown(self._on_pre_shutdown)

    def _network(self) -> NetworkInfo:
        if self._network_provider is None:
            raise LifecycleStateError(
                "No network binding available: attach() to a host or pass network="
            )
        return self._network_provider()

    def _transition(self, target: RegistrationState) -> None:
        if target not in _TRANSITIONS[self._state]:
            raise LifecycleStateError(
                f"Invalid registration transition: {self._state.value} -> {target.value}"
            )
        logger.debug(f"Registration state {self._state.value} -> {target.value}")
        self._state = target

    def _service_id(self) -> str:
        # Before registration, address the id this instance would register under
        return self._connection_id or derive_connection_id(self.config, self._network())

    def _ttl_check_id(self) -> str:
        # The TTL check follows the HTTP check when both are registered
        position = 2 if self.config.check.http_enabled else 1
        return service_check_id(self._service_id(), position=position, count=position)

    # Registration

    def _begin_registration(self) -> None:
        if self._registration_in_flight:
            raise LifecycleStateError("A registration sequence is already in flight")
        self._transition(RegistrationState.REGISTERING)
        if self._connection_id is None:
            self._connection_id = derive_connection_id(self.config, self._network())
        self._registration_in_flight = True

    async def _run_registration(self) -> None:
        try:
            descriptor = build_descriptor(self.config, self._network(), self._connection_id)

            logger.info(f"Registering service: {self.config.name}", extra=_tags("register"))
            await run_with_retry(
                lambda: self.client.register(descriptor),
                self.config.retry_strategy,
                name="register",
            )
        finally:
            self._registration_in_flight = False

        self._transition(RegistrationState.REGISTERED)
        logger.info(
            f"Registered service {self.config.name} as {self._connection_id} "
            f"with {len(descriptor.checks)} check(s)",
            extra=_tags("register"),
        )

    async def register(self) -> None:
        """Register this instance, retrying per the configured strategy.

        Raises:
            BackendError: If registration ultimately fails (state stays registering
                and register() may be called again)
            LifecycleStateError: If a registration sequence is already in flight
        """
        self._begin_registration()
        await self._run_registration()

    async def _register_in_background(self) -> None:
        try:
            await self._run_registration()
        except asyncio.CancelledError:
            logger.warning(
                f"Background registration of {self.config.name} cancelled",
                extra=_tags("register"),
            )
            raise
        except BackendError as e:
            logger.error(
                f"Failed to register service {self.config.name}, serving without "
                f"discovery registration: {e}",
                exc_info=True,
                extra=_tags("register", "error"),
            )
            self._transition(RegistrationState.REGISTERED)

    async def _settle_background(self) -> None:
        task, self._background = self._background, None
        if task is None:
            return
        if not task.done():
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error(
                f"Background registration of {self.config.name} failed: {e}",
                exc_info=True,
                extra=_tags("register", "error"),
            )
        finally:
            # A task cancelled before it started never cleared the flag
            self._registration_in_flight = False

    # Deregistration

    async def deregister(self) -> None:
        """Deregister this instance, retrying per the configured strategy.

        The state always ends as deregistered, even when this raises.

        Raises:
            BackendError: If deregistration ultimately fails
        """
        await self._settle_background()

        if self._connection_id is None:
            logger.info(
                f"Service {self.config.name} was never registered, skipping deregister",
                extra=_tags("deregister"),
            )
            self._transition(RegistrationState.DEREGISTERED)
            return

        self._transition(RegistrationState.DEREGISTERING)
        connection_id = self._connection_id

        logger.info(f"Deregistering service: {self.config.name}", extra=_tags("deregister"))
        try:
            await run_with_retry(
                lambda: self.client.deregister(connection_id),
                self.config.retry_strategy,
                name="deregister",
            )
        finally:
            self._transition(RegistrationState.DEREGISTERED)

    # Host hooks

    async def _on_pre_traffic_start(self) -> None:
        if not self.config.low_profile:
            await self.register()
            return

        self._begin_registration()
        self._background = asyncio.ensure_future(self._register_in_background())

    async def _on_pre_shutdown(self) -> None:
        try:
            await self.deregister()
        except BackendError as e:
            logger.error(
                f"Failed to deregister service {self.config.name}: {e}",
                exc_info=True,
                extra=_tags("deregister", "error"),
            )

    # Application controls

    async def maintenance(
        self, reason: Union[str, bool, None] = None
    ) -> Union[CheckStatus, bool, None]:
        """Query or toggle maintenance mode.

        Args:
            reason: None queries the current status; a non-empty reason (or
                True) enters maintenance mode; False or "" leaves it

        Returns:
            When querying, the maintenance check record (its ``reason`` is the
            reason given) or False when not in maintenance; None otherwise

        Raises:
            BackendError: If the backend call fails
        """
        service_id = self._service_id()

        if reason is None:
            checks = await self.client.list_checks()
            return checks.get(maintenance_check_id(service_id)) or False

        if reason:
            logger.info(
                f"Trying to enter maintenance mode for {self.config.name}, reason: {reason}",
                extra=_tags("maintenance", "enter"),
            )
        else:
            logger.info(
                f"Trying to exit maintenance mode for {self.config.name}",
                extra=_tags("maintenance", "exit"),
            )

        await self.client.set_maintenance(
            service_id,
            enable=bool(reason),
            reason=reason if isinstance(reason, str) and reason else None,
        )
        return None

    async def checkin(self, status: Optional[bool] = None, note: Optional[str] = None) -> None:
        """Push a TTL check-in.

        Args:
            status: True reports passing, False critical, anything else warning
            note: Optional output text attached to the check

        Raises:
            BackendError: If the backend call fails, including when no TTL
                check is registered for this instance
        """
        check_status = PASSING if status is True else CRITICAL if status is False else WARNING

        logger.debug(
            f"Performing check-in with state: {check_status}", extra=_tags("checkin")
        )
        try:
            await self.client.push_checkin(self._ttl_check_id(), check_status, note)
        except BackendError as e:
            logger.error(f"Check-in failed: {e}", extra=_tags("checkin", "error"))
            raise

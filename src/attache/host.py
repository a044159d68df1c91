"""Host runtime hooks.

The registration lifecycle only needs two hooks from the server that owns
the process: "run this before traffic starts" and "run this before
shutdown", plus the server's network binding.
"""

import logging
from typing import Awaitable, Callable, List, Optional

from typing_extensions import Protocol, runtime_checkable

from attache.discovery.descriptor import NetworkInfo
from attache.exceptions import LifecycleStateError

logger = logging.getLogger(__name__)

HookCallback = Callable[[], Awaitable[None]]


@runtime_checkable
class HostRuntime(Protocol):
    """What a host server must provide to run the registration lifecycle."""

    def on_pre_traffic_start(self, callback: HookCallback) -> None:
        ...

    def on_pre_shutdown(self, callback: HookCallback) -> None:
        ...

    def network_info(self) -> NetworkInfo:
        ...


class LifecycleHooks:
    """Minimal host: stores callbacks and runs them on start() / stop().

    Start callbacks run in registration order and the first failure aborts
    the start. Shutdown callbacks all run even if one fails; the first
    failure is re-raised afterwards.

    Usage:
        hooks = LifecycleHooks(NetworkInfo(address="0.0.0.0", port=8080,
                                           uri="http://myhost:8080"))
        attache.attach(hooks)
        await hooks.start()
        ...
        await hooks.stop()
    """

    def __init__(self, network: Optional[NetworkInfo]):
        self._network = network
        self._pre_traffic: List[HookCallback] = []
        self._pre_shutdown: List[HookCallback] = []

    def on_pre_traffic_start(self, callback: HookCallback) -> None:
        self._pre_traffic.append(callback)

    def on_pre_shutdown(self, callback: HookCallback) -> None:
        self._pre_shutdown.append(callback)

    def network_info(self) -> NetworkInfo:
        if self._network is None:
            raise LifecycleStateError("Host network binding is not known yet")
        return self._network

    async def start(self) -> None:
        for callback in self._pre_traffic:
            await callback()

    async def stop(self) -> None:
        first_error: Optional[BaseException] = None
        for callback in self._pre_shutdown:
            try:
                await callback()
            except Exception as e:
                logger.error(f"Shutdown hook failed: {e}", exc_info=True)
                if first_error is None:
                    first_error = e
        if first_error is not None:
            raise first_error

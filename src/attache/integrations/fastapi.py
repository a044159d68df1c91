"""FastAPI binding for the registration lifecycle.

Example:
    ```python
    host = FastAPIHost(NetworkInfo(address="0.0.0.0", port=8000,
                                   uri="http://billing.internal:8000"))
    app = FastAPI(lifespan=host.lifespan)

    attache = ServiceAttache(ServiceConfig(name="billing"),
                             client=ConsulClient(ConsulConfig.from_env()))
    bind_attache(app, attache, host)
    ```
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Union

from fastapi import FastAPI

from attache.discovery.descriptor import NetworkInfo
from attache.discovery.lifecycle import ServiceAttache
from attache.host import LifecycleHooks

logger = logging.getLogger(__name__)


class FastAPIHost(LifecycleHooks):
    """Runs lifecycle hooks from a FastAPI lifespan.

    Pre-traffic callbacks run before the app accepts requests; a failure
    aborts application startup. Pre-shutdown callbacks run when the app
    stops.
    """

    def __init__(self, network: Union[NetworkInfo, Callable[[], NetworkInfo]]):
        """Initialize host.

        Args:
            network: Network binding, or a callable returning it once the
                server has bound its socket
        """
        if isinstance(network, NetworkInfo):
            super().__init__(network)
            self._network_factory = None
        else:
            super().__init__(None)
            self._network_factory = network

    def network_info(self) -> NetworkInfo:
        if self._network_factory is not None:
            return self._network_factory()
        return super().network_info()

    @asynccontextmanager
    async def lifespan(self, app: FastAPI) -> AsyncIterator[None]:
        await self.start()
        try:
            yield
        finally:
            await self.stop()


def bind_attache(
    app: FastAPI,
    attache: ServiceAttache,
    host: FastAPIHost,
    health_route: bool = True,
) -> None:
    """Attach the registration lifecycle to a FastAPI app.

    Exposes the instance as ``app.state.attache`` and, when an HTTP check is
    configured, serves ``GET <check.path>`` for the backend to poll.
    """
    attache.attach(host)
    app.state.attache = attache

    path = attache.config.check.path
    if health_route and path:

        async def health() -> dict:
            return {"status": "ok"}

        app.add_api_route(path, health, methods=["GET"], include_in_schema=False)
        logger.info(f"Serving health check for {attache.config.name} at {path}")

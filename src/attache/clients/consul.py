"""Consul agent HTTP API client."""

import logging
import ssl
from typing import Any, Dict, Optional, Union

import httpx
from pydantic import ValidationError

from attache.clients.base import CheckStatus, DiscoveryClient
from attache.config import ConsulConfig
from attache.discovery.descriptor import ServiceDescriptor
from attache.exceptions import BackendError

logger = logging.getLogger(__name__)


def _service_payload(descriptor: ServiceDescriptor) -> Dict[str, Any]:
    """Translate a ServiceDescriptor into the agent's service definition."""
    payload: Dict[str, Any] = {
        "Name": descriptor.name,
        "ID": descriptor.id,
        "Tags": descriptor.tags,
        "Port": descriptor.port,
        "Checks": [],
    }
    if descriptor.address:
        payload["Address"] = descriptor.address

    for check in descriptor.checks:
        definition: Dict[str, Any] = {}
        if check.http:
            definition["HTTP"] = check.http
            definition["Interval"] = check.interval
        if check.ttl:
            definition["TTL"] = check.ttl
        if check.initial_status:
            definition["Status"] = check.initial_status
        if check.deregister_after:
            definition["DeregisterCriticalServiceAfter"] = check.deregister_after
        payload["Checks"].append(definition)

    return payload


class ConsulClient(DiscoveryClient):
    """Async client for the Consul agent service and check endpoints.

    Usage:
        client = ConsulClient(ConsulConfig(host="consul.service.consul"))
        await client.register(descriptor)
        checks = await client.list_checks()
    """

    def __init__(
        self,
        config: Optional[ConsulConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize Consul client.

        Args:
            config: Agent connection settings (default: local agent on 8500)
            transport: Custom httpx transport (used by tests)
        """
        self.config = config or ConsulConfig()
        self.base_url = self.config.base_url
        self.timeout = self.config.timeout
        self._transport = transport
        self._verify = self._build_verify()

        logger.info(f"Initialized {self.__class__.__name__} with base_url={self.base_url}")

    def _build_verify(self) -> Union[bool, ssl.SSLContext]:
        if not self.config.ca:
            return True

        context = ssl.create_default_context()
        for cert in self.config.ca:
            if isinstance(cert, bytes):
                cert = cert.decode("ascii")
            context.load_verify_locations(cadata=cert)
        return context

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.config.token:
            headers["X-Consul-Token"] = self.config.token
        return headers

    def _get_client(self) -> httpx.AsyncClient:
        """Get HTTP client instance with configured timeout and TLS settings."""
        return httpx.AsyncClient(
            timeout=self.timeout, verify=self._verify, transport=self._transport
        )

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        params: Optional[dict] = None,
        json: Optional[Any] = None,
    ) -> httpx.Response:
        try:
            async with self._get_client() as client:
                response = await client.request(
                    method,
                    f"{self.base_url}{path}",
                    params=params,
                    json=json,
                    headers=self._headers(),
                )
                response.raise_for_status()
                return response

        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            detail = e.response.text.strip()
            logger.error(
                f"Consul {operation} rejected: {status_code} {detail}",
                extra={"tags": ["attache", "consul", "error"]},
            )
            raise BackendError(
                f"Consul {operation} failed with {status_code}: {detail}",
                operation=operation,
                status_code=status_code,
            ) from e

        except httpx.HTTPError as e:
            logger.error(
                f"Consul {operation} request failed: {e!r}",
                extra={"tags": ["attache", "consul", "error"]},
            )
            raise BackendError(
                f"Consul {operation} failed: {e}", operation=operation
            ) from e

    async def register(self, descriptor: ServiceDescriptor) -> None:
        await self._request(
            "register", "PUT", "/v1/agent/service/register", json=_service_payload(descriptor)
        )

    async def deregister(self, service_id: str) -> None:
        await self._request("deregister", "PUT", f"/v1/agent/service/deregister/{service_id}")

    async def set_maintenance(
        self, service_id: str, enable: bool, reason: Optional[str] = None
    ) -> None:
        params = {"enable": "true" if enable else "false"}
        if reason:
            params["reason"] = reason
        await self._request(
            "maintenance", "PUT", f"/v1/agent/service/maintenance/{service_id}", params=params
        )

    async def list_checks(self) -> Dict[str, CheckStatus]:
        response = await self._request("list_checks", "GET", "/v1/agent/checks")
        try:
            return {
                check_id: CheckStatus.model_validate(data)
                for check_id, data in response.json().items()
            }
        except (ValueError, ValidationError) as e:
            raise BackendError(
                f"Consul returned an invalid check list: {e}", operation="list_checks"
            ) from e

    async def push_checkin(self, check_id: str, status: str, note: Optional[str] = None) -> None:
        await self._request(
            "checkin",
            "PUT",
            f"/v1/agent/check/update/{check_id}",
            json={"Status": status, "Output": note or ""},
        )

"""Service registration payload assembly.

Turns a ServiceConfig plus the host's live network binding into the
descriptor handed to the discovery backend. Pure transformation, no I/O.
"""

import os
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from attache.config import ServiceConfig
from attache.discovery.durations import normalize_duration

# Addresses that mean "all interfaces"; the backend infers the address instead
WILDCARD_ADDRESSES = frozenset({"0.0.0.0", "::", ""})

# Check statuses understood by the backend
PASSING = "passing"
WARNING = "warning"
CRITICAL = "critical"

CHECK_STATUSES = (PASSING, WARNING, CRITICAL)


class NetworkInfo(BaseModel):
    """Live network binding of the host server."""

    address: str = Field(..., description="Bound address")
    port: int = Field(..., ge=0, le=65535, description="Bound port")
    uri: str = Field(..., description="Externally reachable base URI")
    pid: int = Field(default_factory=os.getpid, description="Process identifier")


class CheckDescriptor(BaseModel):
    """A single health check attached to the registration."""

    kind: Literal["http", "ttl"]
    http: Optional[str] = None
    interval: Optional[str] = None
    ttl: Optional[str] = None
    initial_status: Optional[str] = None
    deregister_after: Optional[str] = None


class ServiceDescriptor(BaseModel):
    """Registration payload for one service instance."""

    name: str
    id: str
    tags: List[str] = Field(default_factory=list)
    address: Optional[str] = None
    port: int
    checks: List[CheckDescriptor] = Field(default_factory=list)


def derive_connection_id(config: ServiceConfig, network: NetworkInfo) -> str:
    """Backend-visible identity of this instance.

    An explicit config id always wins. Otherwise the id is
    ``<name>:<port>:<pid>``, unique per instance on a host.
    """
    if config.id:
        return config.id
    return f"{config.name}:{network.port}:{network.pid}"


def build_checks(config: ServiceConfig, network: NetworkInfo) -> List[CheckDescriptor]:
    """Build check descriptors: HTTP first, then TTL."""
    check = config.check
    initial_status = PASSING if check.start_healthy else None
    checks = []

    if check.http_enabled:
        checks.append(CheckDescriptor(
            kind="http",
            http=network.uri.rstrip("/") + check.path,
            interval=normalize_duration(check.interval),
            initial_status=initial_status,
        ))

    if check.ttl_enabled:
        checks.append(CheckDescriptor(
            kind="ttl",
            ttl=normalize_duration(check.ttl),
            initial_status=initial_status,
        ))

    # Reaping is applied per check by the backend
    if check.deregister_after is not False:
        deregister_after = normalize_duration(check.deregister_after)
        for descriptor in checks:
            descriptor.deregister_after = deregister_after

    return checks


def build_descriptor(
    config: ServiceConfig,
    network: NetworkInfo,
    connection_id: Optional[str] = None,
) -> ServiceDescriptor:
    """Assemble the registration payload.

    Args:
        config: Validated service configuration
        network: Host network binding
        connection_id: Previously assigned id (derived when omitted)

    Returns:
        ServiceDescriptor ready for DiscoveryClient.register()
    """
    address = network.address if network.address not in WILDCARD_ADDRESSES else None

    return ServiceDescriptor(
        name=config.name,
        id=connection_id or derive_connection_id(config, network),
        tags=sorted(config.tags),
        address=address,
        port=network.port,
        checks=build_checks(config, network),
    )

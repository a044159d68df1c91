"""Discovery backend clients."""

from attache.clients.base import CheckStatus, DiscoveryClient
from attache.clients.consul import ConsulClient
from attache.clients.memory import InMemoryDiscoveryClient

__all__ = [
    "CheckStatus",
    "ConsulClient",
    "DiscoveryClient",
    "InMemoryDiscoveryClient",
]

"""Attache

Registers HTTP services with a discovery backend (Consul) on startup, keeps
their health status current, and deregisters them on shutdown.
"""

__version__ = "0.3.0"

from attache.exceptions import (
    AttacheError,
    BackendError,
    ConfigurationError,
    LifecycleStateError,
)
from attache.config import CheckConfig, ConsulConfig, ServiceConfig

# Discovery must load before clients (clients depend on its descriptor models)
from attache.discovery import (
    NetworkInfo,
    RegistrationState,
    ServiceAttache,
    ServiceDescriptor,
    build_descriptor,
    derive_connection_id,
    normalize_duration,
)
from attache.clients import (
    CheckStatus,
    ConsulClient,
    DiscoveryClient,
    InMemoryDiscoveryClient,
)
from attache.host import HostRuntime, LifecycleHooks
from attache.utils import (
    AttemptState,
    ExponentialBackoffStrategy,
    FixedDelayStrategy,
    RetryStrategy,
    run_with_retry,
)

__all__ = [
    # Errors
    "AttacheError", "BackendError", "ConfigurationError", "LifecycleStateError",
    # Configuration
    "CheckConfig", "ConsulConfig", "ServiceConfig",
    # Discovery
    "NetworkInfo", "RegistrationState", "ServiceAttache", "ServiceDescriptor",
    "build_descriptor", "derive_connection_id", "normalize_duration",
    # Clients
    "CheckStatus", "ConsulClient", "DiscoveryClient", "InMemoryDiscoveryClient",
    # Host
    "HostRuntime", "LifecycleHooks",
    # Retry
    "AttemptState", "ExponentialBackoffStrategy", "FixedDelayStrategy",
    "RetryStrategy", "run_with_retry",
]

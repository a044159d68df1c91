"""Service Discovery Module

Registration of HTTP services with a discovery backend: descriptor
assembly, identity derivation and the registration lifecycle.
"""

from .descriptor import (
    CheckDescriptor,
    NetworkInfo,
    ServiceDescriptor,
    build_descriptor,
    derive_connection_id,
)
from .durations import normalize_duration
from .lifecycle import RegistrationState, ServiceAttache

__all__ = [
    "CheckDescriptor",
    "NetworkInfo",
    "RegistrationState",
    "ServiceAttache",
    "ServiceDescriptor",
    "build_descriptor",
    "derive_connection_id",
    "normalize_duration",
]

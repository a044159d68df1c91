"""Shared fixtures for attache tests."""

import pytest

from attache.clients.memory import InMemoryDiscoveryClient
from attache.config import ServiceConfig
from attache.discovery.descriptor import NetworkInfo
from attache.discovery.lifecycle import ServiceAttache
from attache.host import LifecycleHooks


@pytest.fixture
def network():
    """Network binding on all interfaces with a fixed pid."""
    return NetworkInfo(address="0.0.0.0", port=8080, uri="http://myhost:8080", pid=4242)


@pytest.fixture
def backend():
    """In-memory discovery backend."""
    return InMemoryDiscoveryClient()


@pytest.fixture
def hooks(network):
    return LifecycleHooks(network)


@pytest.fixture
def make_attache(backend, hooks):
    """Factory building a ServiceAttache attached to the test host."""

    def _make(**options):
        options.setdefault("name", "billing")
        attache = ServiceAttache(ServiceConfig(**options), backend)
        attache.attach(hooks)
        return attache

    return _make

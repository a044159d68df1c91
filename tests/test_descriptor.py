"""Tests for service descriptor assembly and identity derivation."""

from attache.config import ServiceConfig
from attache.discovery.descriptor import NetworkInfo, build_descriptor, derive_connection_id


class TestChecks:
    """Health check descriptors built from the check configuration."""

    def test_http_check_only_by_default(self, network):
        descriptor = build_descriptor(ServiceConfig(name="billing"), network)

        assert len(descriptor.checks) == 1
        check = descriptor.checks[0]
        assert check.kind == "http"
        assert check.http == "http://myhost:8080/_health"
        assert check.interval == "5s"
        assert check.initial_status == "passing"
        assert check.deregister_after == "120m"

    def test_no_checks_when_http_disabled_and_no_ttl(self, network):
        config = ServiceConfig(name="billing", check={"path": False})
        assert build_descriptor(config, network).checks == []

    def test_http_before_ttl(self, network):
        config = ServiceConfig(name="billing", check={"ttl": 2000, "interval": 1000})
        checks = build_descriptor(config, network).checks

        assert [check.kind for check in checks] == ["http", "ttl"]
        assert checks[0].interval == "1000ms"
        assert checks[1].ttl == "2000ms"
        assert checks[1].http is None

    def test_ttl_only(self, network):
        config = ServiceConfig(name="billing", check={"path": False, "ttl": "2s"})
        checks = build_descriptor(config, network).checks

        assert [check.kind for check in checks] == ["ttl"]
        assert checks[0].ttl == "2s"

    def test_deregister_after_applies_to_every_check(self, network):
        config = ServiceConfig(name="billing", check={"ttl": "2s", "deregister_after": 90000})
        checks = build_descriptor(config, network).checks

        assert [check.deregister_after for check in checks] == ["90000ms", "90000ms"]

    def test_deregister_after_disabled(self, network):
        config = ServiceConfig(name="billing", check={"ttl": "2s", "deregister_after": False})
        assert all(check.deregister_after is None for check in build_descriptor(config, network).checks)

    def test_start_unhealthy_leaves_status_unset(self, network):
        config = ServiceConfig(name="billing", check={"ttl": "2s", "start_healthy": False})
        assert all(check.initial_status is None for check in build_descriptor(config, network).checks)

    def test_uri_trailing_slash(self):
        network = NetworkInfo(address="10.0.0.5", port=80, uri="http://myhost/", pid=1)
        descriptor = build_descriptor(ServiceConfig(name="billing"), network)
        assert descriptor.checks[0].http == "http://myhost/_health"


class TestServiceFields:
    """Name, tags, address and port."""

    def test_fields(self, network):
        config = ServiceConfig(name="billing", tags=["b", "c", "a", "b"])
        descriptor = build_descriptor(config, network)

        assert descriptor.name == "billing"
        assert descriptor.id == "billing:8080:4242"
        assert descriptor.tags == ["a", "b", "c"]
        assert descriptor.port == 8080

    def test_wildcard_address_omitted(self, network):
        assert build_descriptor(ServiceConfig(name="billing"), network).address is None

        ipv6 = network.model_copy(update={"address": "::"})
        assert build_descriptor(ServiceConfig(name="billing"), ipv6).address is None

    def test_bound_address_kept(self, network):
        local = network.model_copy(update={"address": "127.0.0.1"})
        assert build_descriptor(ServiceConfig(name="billing"), local).address == "127.0.0.1"

    def test_assigned_connection_id_used(self, network):
        descriptor = build_descriptor(ServiceConfig(name="billing"), network, "assigned")
        assert descriptor.id == "assigned"


class TestConnectionId:
    """Instance identity derivation."""

    def test_derived_from_name_port_pid(self, network):
        config = ServiceConfig(name="billing")

        assert derive_connection_id(config, network) == "billing:8080:4242"
        assert derive_connection_id(config, network) == derive_connection_id(config, network)

    def test_distinct_instances(self, network):
        config = ServiceConfig(name="billing")
        other = network.model_copy(update={"pid": 4243})

        assert derive_connection_id(config, network) != derive_connection_id(config, other)

    def test_explicit_id_wins(self, network):
        config = ServiceConfig(name="billing", id="billing-primary")
        assert derive_connection_id(config, network) == "billing-primary"

    def test_pid_defaults_to_current_process(self):
        import os

        network = NetworkInfo(address="0.0.0.0", port=8080, uri="http://myhost:8080")
        assert network.pid == os.getpid()

"""Tests for configuration validation."""

import pytest
from pydantic import ValidationError

from attache.config import CheckConfig, ConsulConfig, ServiceConfig
from attache.exceptions import ConfigurationError
from attache.utils.resilience import FixedDelayStrategy


class TestServiceConfig:
    """ServiceConfig defaults and validation."""

    def test_defaults(self):
        config = ServiceConfig(name="billing")

        assert config.id is None
        assert config.tags == frozenset()
        assert config.low_profile is False
        assert config.retry_strategy is None
        assert config.check.path == "/_health"
        assert config.check.interval == "5s"
        assert config.check.deregister_after == "120m"
        assert config.check.start_healthy is True
        assert config.check.ttl is None

    def test_name_required(self):
        with pytest.raises(ConfigurationError) as exc_info:
            ServiceConfig()
        assert "name" in str(exc_info.value)

    def test_invalid_name_type(self):
        with pytest.raises(ConfigurationError, match="^Invalid ServiceConfig options"):
            ServiceConfig(name=False)

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            ServiceConfig(name="")

    def test_unknown_option_rejected(self):
        with pytest.raises(ConfigurationError):
            ServiceConfig(name="billing", unknown=True)

    def test_tags_deduplicated(self):
        config = ServiceConfig(name="billing", tags=["b", "c", "a", "b"])
        assert config.tags == frozenset({"a", "b", "c"})

    def test_single_tag(self):
        assert ServiceConfig(name="billing", tags="public").tags == frozenset({"public"})

    def test_retry_strategy_must_be_strategy(self):
        strategy = FixedDelayStrategy(1)
        assert ServiceConfig(name="billing", retry_strategy=strategy).retry_strategy is strategy

        with pytest.raises(ConfigurationError):
            ServiceConfig(name="billing", retry_strategy=lambda err, state: 1)

    def test_nested_check_errors_surface(self):
        with pytest.raises(ConfigurationError):
            ServiceConfig(name="billing", check={"ttl": 500})

    def test_immutable(self):
        config = ServiceConfig(name="billing")
        with pytest.raises(ValidationError):
            config.name = "other"


class TestCheckConfig:
    """Check durations and toggles."""

    def test_millisecond_durations(self):
        check = CheckConfig(ttl=2000, interval=1000, deregister_after=60000)
        assert (check.ttl, check.interval, check.deregister_after) == (2000, 1000, 60000)

    def test_durations_below_minimum_rejected(self):
        with pytest.raises(ConfigurationError):
            CheckConfig(interval=999)

    def test_disable_flags(self):
        check = CheckConfig(path=False, deregister_after=False)
        assert check.http_enabled is False
        assert check.deregister_after is False

    def test_false_not_allowed_for_interval(self):
        with pytest.raises(ConfigurationError):
            CheckConfig(interval=False)

    def test_true_not_allowed_for_path(self):
        with pytest.raises(ConfigurationError):
            CheckConfig(path=True)

    def test_ttl_enables_ttl_mode(self):
        assert CheckConfig(ttl="2s").ttl_enabled is True
        assert CheckConfig().ttl_enabled is False


class TestConsulConfig:
    """Backend connection settings."""

    def test_defaults(self):
        config = ConsulConfig()
        assert config.base_url == "http://127.0.0.1:8500"
        assert config.ca == ()

    def test_secure_uses_https(self):
        assert ConsulConfig(host="consul", port=8501, secure=True).base_url == "https://consul:8501"

    def test_single_ca(self):
        assert ConsulConfig(ca="PEM").ca == ("PEM",)

    def test_port_range(self):
        with pytest.raises(ConfigurationError):
            ConsulConfig(port=70000)

    def test_from_env(self, monkeypatch, tmp_path):
        ca_file = tmp_path / "ca.pem"
        ca_file.write_text("-----BEGIN CERTIFICATE-----")
        monkeypatch.setenv("CONSUL_HOST", "consul.service.consul")
        monkeypatch.setenv("CONSUL_PORT", "8501")
        monkeypatch.setenv("CONSUL_SECURE", "true")
        monkeypatch.setenv("CONSUL_CACERT", str(ca_file))
        monkeypatch.setenv("CONSUL_HTTP_TOKEN", "secret")

        config = ConsulConfig.from_env()

        assert config.base_url == "https://consul.service.consul:8501"
        assert config.ca == ("-----BEGIN CERTIFICATE-----",)
        assert config.token == "secret"

    def test_from_env_overrides(self, monkeypatch):
        monkeypatch.setenv("CONSUL_HOST", "consul.service.consul")
        assert ConsulConfig.from_env(host="localhost").host == "localhost"

    def test_from_env_invalid_port(self, monkeypatch):
        monkeypatch.setenv("CONSUL_PORT", "eighty")
        with pytest.raises(ConfigurationError, match="CONSUL_PORT"):
            ConsulConfig.from_env()

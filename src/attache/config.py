"""Configuration models for service registration.

Settings are validated once, at construction, and are immutable afterwards.
Invalid settings raise ConfigurationError synchronously.

Environment Variables (ConsulConfig.from_env):
    CONSUL_HOST: Consul agent host (default: "127.0.0.1")
    CONSUL_PORT: Consul agent HTTP port (default: 8500)
    CONSUL_SECURE: "true" to use https
    CONSUL_CACERT: Path to a PEM bundle used to verify the agent
    CONSUL_HTTP_TOKEN: ACL token
"""

import logging
import os
from typing import Any, FrozenSet, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from attache.exceptions import ConfigurationError
from attache.utils.resilience import RetryStrategy

logger = logging.getLogger(__name__)

# Shortest duration accepted when given as milliseconds
MIN_DURATION_MS = 1000


def _validate_duration(value: Any, allow_false: bool = False) -> Any:
    if value is False and allow_false:
        return value
    if isinstance(value, bool):
        raise ValueError("duration must be milliseconds or a duration string")
    if isinstance(value, int):
        if value < MIN_DURATION_MS:
            raise ValueError(f"duration must be at least {MIN_DURATION_MS}ms")
        return value
    if isinstance(value, str) and value:
        return value
    raise ValueError("duration must be milliseconds or a duration string")


class _ConfigModel(BaseModel):
    """Frozen model that reports validation failures as ConfigurationError."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    def __init__(self, **data: Any):
        try:
            super().__init__(**data)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid {self.__class__.__name__} options: {e}"
            ) from e


class CheckConfig(_ConfigModel):
    """Health check settings for the registered service."""

    path: Optional[Union[str, Literal[False]]] = Field(
        "/_health", description="HTTP health check path, False disables the HTTP check"
    )
    ttl: Optional[Union[int, str]] = Field(
        None, description="Maximum check-in interval, enables TTL check-ins"
    )
    interval: Union[int, str] = Field("5s", description="HTTP check poll interval")
    deregister_after: Union[int, str, Literal[False]] = Field(
        "120m", description="Auto de-register a critical service after this long"
    )
    start_healthy: bool = Field(True, description='Register with an initial "passing" status')

    @field_validator("ttl", mode="before")
    @classmethod
    def _check_ttl(cls, value):
        if value is None:
            return value
        return _validate_duration(value)

    @field_validator("interval", mode="before")
    @classmethod
    def _check_interval(cls, value):
        return _validate_duration(value)

    @field_validator("deregister_after", mode="before")
    @classmethod
    def _check_deregister_after(cls, value):
        return _validate_duration(value, allow_false=True)

    @field_validator("path", mode="before")
    @classmethod
    def _check_path(cls, value):
        if value is True:
            raise ValueError("path must be a string or False")
        return value

    @property
    def http_enabled(self) -> bool:
        return bool(self.path)

    @property
    def ttl_enabled(self) -> bool:
        return bool(self.ttl)


class ServiceConfig(_ConfigModel):
    """Service identity, checks and registration behaviour.

    Example:
        ```python
        config = ServiceConfig(
            name="billing",
            tags=["public", "v2"],
            check={"path": "/_health", "ttl": 30000},
            retry_strategy=ExponentialBackoffStrategy(max_attempts=10),
            low_profile=True,
        )
        ```
    """

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    name: str = Field(..., min_length=1, description="Service name, as reported to discovery")
    id: Optional[str] = Field(None, min_length=1, description="Explicit registration id")
    tags: FrozenSet[str] = Field(default_factory=frozenset, description="Service tags")
    check: CheckConfig = Field(default_factory=CheckConfig)
    retry_strategy: Optional[RetryStrategy] = Field(None, description="Custom retry strategy")
    low_profile: bool = Field(
        False, description="Allow the server to start without a successful register"
    )

    @field_validator("tags", mode="before")
    @classmethod
    def _single_tag(cls, value):
        if isinstance(value, str):
            return frozenset([value])
        return value


class ConsulConfig(_ConfigModel):
    """Connection parameters for the Consul agent HTTP API."""

    host: str = Field("127.0.0.1", min_length=1)
    port: int = Field(8500, ge=0, le=65535)
    secure: bool = False
    ca: Tuple[Union[str, bytes], ...] = Field(
        default_factory=tuple, description="PEM encoded CA certificates"
    )
    token: Optional[str] = None
    timeout: float = Field(10.0, gt=0, description="Request timeout in seconds")

    @field_validator("ca", mode="before")
    @classmethod
    def _single_ca(cls, value):
        if isinstance(value, (str, bytes)):
            return (value,)
        return value

    @property
    def base_url(self) -> str:
        scheme = "https" if self.secure else "http"
        return f"{scheme}://{self.host}:{self.port}"

    @classmethod
    def from_env(cls, **overrides: Any) -> "ConsulConfig":
        """Build connection settings from CONSUL_* environment variables.

        Args:
            **overrides: Explicit values, taking precedence over the environment

        Returns:
            Validated ConsulConfig

        Raises:
            ConfigurationError: If a variable holds an invalid value
        """
        values = {}

        host = os.getenv("CONSUL_HOST")
        if host:
            values["host"] = host

        port = os.getenv("CONSUL_PORT")
        if port:
            try:
                values["port"] = int(port)
            except ValueError:
                raise ConfigurationError(f"Invalid port in CONSUL_PORT: {port}") from None

        secure = os.getenv("CONSUL_SECURE")
        if secure:
            values["secure"] = secure.lower() in ("1", "true", "yes")

        ca_path = os.getenv("CONSUL_CACERT")
        if ca_path:
            try:
                with open(ca_path, encoding="utf-8") as f:
                    values["ca"] = f.read()
            except OSError as e:
                raise ConfigurationError(f"Cannot read CONSUL_CACERT {ca_path}: {e}") from e

        token = os.getenv("CONSUL_HTTP_TOKEN")
        if token:
            values["token"] = token

        values.update({k: v for k, v in overrides.items() if v is not None})

        config = cls(**values)
        logger.info(
            f"ConsulConfig loaded: url={config.base_url}, "
            f"ca_certs={len(config.ca)}, token={'set' if config.token else 'unset'}"
        )
        return config

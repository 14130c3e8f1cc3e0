from __future__ import annotations
import os
from dataclasses import dataclass
from typing import Any, Mapping
from urllib.parse import urlparse

from dotenv import load_dotenv

ENV_LOADED = False

DEFAULT_RESOLVER = "https://checkip.amazonaws.com/"
DEFAULT_CLIENT_TIMEOUT = 1000  # ms

# Data source schema, as the host would declare it
SCHEMA: dict[str, dict[str, Any]] = {
    "ipaddress": {
        "type": str,
        "computed": True,
    },
    "resolver": {
        "type": str,
        "optional": True,
        "default": DEFAULT_RESOLVER,
        "description": "The URL to use to resolve the external IP address\n"
                       f"If not set, defaults to {DEFAULT_RESOLVER}",
    },
    "client_timeout": {
        "type": int,
        "optional": True,
        "default": DEFAULT_CLIENT_TIMEOUT,
        "description": "The time to wait for a response in ms\n"
                       "If not set, defaults to 1000 (1 second). Setting to 0 means infinite (no timeout)",
    },
    "validate_ip": {
        "type": bool,
        "optional": True,
        "description": "Validate if the returned response is a valid ip address",
    },
}


class ConfigError(ValueError):
    pass


def load_env(path: str | None = None) -> None:
    global ENV_LOADED
    if ENV_LOADED:
        return
    load_dotenv(dotenv_path=path)  # will silently ignore if not exists
    ENV_LOADED = True


def validate_resolver_url(value: str, key: str = "resolver") -> str:
    parsed = urlparse(value)
    if any(c.isspace() or not c.isprintable() for c in parsed.netloc):
        raise ConfigError(f'expected "{key}" to be a valid url, got {value}: invalid character in host name')
    try:
        parsed.port
    except ValueError as e:
        raise ConfigError(f'expected "{key}" to be a valid url, got {value}: {e}') from None
    if not parsed.hostname:
        raise ConfigError(f'expected "{key}" to have a host, got {value}')
    if parsed.scheme not in {"http", "https"}:
        raise ConfigError(f'expected "{key}" to have a url with schema of: "http,https", got {value}')
    return value


@dataclass(frozen=True)
class DataSourceConfig:
    resolver: str = DEFAULT_RESOLVER
    client_timeout: int = DEFAULT_CLIENT_TIMEOUT  # ms; 0 disables the timeout
    validate_ip: bool | None = None

    def __post_init__(self) -> None:
        validate_resolver_url(self.resolver)
        if self.client_timeout < 0:
            raise ConfigError(f'expected "client_timeout" to be at least (0), got {self.client_timeout}')

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any] | None) -> "DataSourceConfig":
        """Build a config from a raw attribute mapping.

        Only the arguments declared in SCHEMA are accepted; computed
        attributes cannot be set. Missing arguments take their defaults.
        """
        values = dict(values or {})
        kwargs: dict[str, Any] = {}
        for key, value in values.items():
            attr = SCHEMA.get(key)
            if attr is None or attr.get("computed"):
                raise ConfigError(f'An argument named "{key}" is not expected here.')
            if value is None:
                continue
            expected = attr["type"]
            # bool is an int subclass; keep them apart
            if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
                raise ConfigError(f'Inappropriate value for attribute "{key}": {expected.__name__} required')
            kwargs[key] = value
        return cls(**kwargs)


def _parse_bool(val: str | None, default: bool | None = False) -> bool | None:
    if val is None:
        return default
    return val.lower() in {"1", "true", "yes", "on"}


def _parse_int(name: str, val: str | None, default: int) -> int:
    if not val:
        return default
    try:
        return int(val)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {val!r}") from None


def load_settings(env_path: str | None = None) -> DataSourceConfig:
    """Load a DataSourceConfig from the environment (and an optional .env file)."""
    load_env(env_path)
    resolver = os.getenv("EXTIP_RESOLVER") or DEFAULT_RESOLVER
    client_timeout = _parse_int("EXTIP_CLIENT_TIMEOUT", os.getenv("EXTIP_CLIENT_TIMEOUT"), DEFAULT_CLIENT_TIMEOUT)
    validate_ip = _parse_bool(os.getenv("EXTIP_VALIDATE_IP") or None, default=None)

    return DataSourceConfig(
        resolver=resolver,
        client_timeout=client_timeout,
        validate_ip=validate_ip,
    )

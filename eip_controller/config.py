"""Frozen dataclasses for configuration and YAML loader with env-var interpolation."""

from __future__ import annotations

import os
import re
import types
import typing
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigError

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")


def _interpolate_env(value: str) -> str:
    """Replace ${ENV_VAR} placeholders with environment variable values."""

    def _replace(match: re.Match) -> str:
        env_key = match.group(1)
        env_val = os.environ.get(env_key)
        if env_val is None:
            raise ConfigError(f"Environment variable '{env_key}' is not set")
        return env_val

    return _ENV_PATTERN.sub(_replace, value)


def _walk_and_interpolate(obj: Any) -> Any:
    """Recursively interpolate env vars in strings throughout a nested structure."""
    if isinstance(obj, str):
        return _interpolate_env(obj)
    if isinstance(obj, dict):
        return {k: _walk_and_interpolate(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_walk_and_interpolate(v) for v in obj]
    return obj


@dataclass(frozen=True)
class AWSConfig:
    region: str = ""  # empty = read from the instance metadata service
    credential_profile: str = ""  # empty = use default boto3 credential chain
    cluster_tag: str = "KubernetesCluster"
    use_instance_metadata: bool = True
    metadata_timeout: float = 2.0


@dataclass(frozen=True)
class ControllerConfig:
    cluster_id: str = ""  # empty = read from cluster_tag on the local instance
    elastic_ips: list[str] = field(default_factory=list)
    master_role_tag: str = "k8s.io/role/master"


@dataclass(frozen=True)
class PollingConfig:
    interval_seconds: int = 30


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    format: str = "json"  # "json" or "text"


@dataclass(frozen=True)
class AppConfig:
    aws: AWSConfig = field(default_factory=AWSConfig)
    controller: ControllerConfig = field(default_factory=ControllerConfig)
    polling: PollingConfig = field(default_factory=PollingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _get_dataclass_type(ft: Any) -> type | None:
    """Return the underlying dataclass type from a type annotation (handles Optional/X|None)."""
    if isinstance(ft, type) and hasattr(ft, "__dataclass_fields__"):
        return ft
    if isinstance(ft, types.UnionType):
        args = [a for a in ft.__args__ if a is not type(None)]
        if len(args) == 1 and isinstance(args[0], type) and hasattr(args[0], "__dataclass_fields__"):
            return args[0]
    origin = getattr(ft, "__origin__", None)
    if origin is typing.Union:
        args = [a for a in ft.__args__ if a is not type(None)]
        if len(args) == 1 and isinstance(args[0], type) and hasattr(args[0], "__dataclass_fields__"):
            return args[0]
    return None


def _build_nested(cls: type, data: dict[str, Any]) -> Any:
    """Construct a frozen dataclass, recursively building nested dataclass fields."""
    if not isinstance(data, dict):
        return data
    field_types = {f.name: f.type for f in cls.__dataclass_fields__.values()}
    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        if key not in field_types:
            continue
        ft = field_types[key]
        # Resolve string annotations to actual types in the module scope
        if isinstance(ft, str):
            ft = eval(ft, globals(), {cls.__name__: cls})  # noqa: S307
        dc_type = _get_dataclass_type(ft)
        if dc_type is None:
            kwargs[key] = value
        elif value is None:
            # An empty section ("controller:") keeps the section defaults
            continue
        elif isinstance(value, dict):
            kwargs[key] = _build_nested(dc_type, value)
        else:
            raise ConfigError(f"'{key}' must be a mapping, got {type(value).__name__}")
    return cls(**kwargs)


def load_config(path: str | Path) -> AppConfig:
    """Load and validate configuration from a YAML file."""
    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"Configuration file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f)

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError("Configuration file must be a YAML mapping")

    raw = _walk_and_interpolate(raw)
    return _build_nested(AppConfig, raw)


def apply_overrides(
    config: AppConfig,
    cluster_id: str | None = None,
    elastic_ips: list[str] | None = None,
    interval_seconds: int | None = None,
) -> AppConfig:
    """Return a copy of config with command-line values taking precedence."""
    controller = config.controller
    if cluster_id:
        controller = replace(controller, cluster_id=cluster_id)
    if elastic_ips:
        controller = replace(controller, elastic_ips=list(elastic_ips))

    polling = config.polling
    if interval_seconds is not None:
        polling = replace(polling, interval_seconds=interval_seconds)

    return replace(config, controller=controller, polling=polling)


def validate_config(config: AppConfig) -> None:
    """Validate configuration values."""
    ips = config.controller.elastic_ips
    if not isinstance(ips, list) or not ips:
        raise ConfigError("must specify at least one elastic ip (controller.elastic_ips or --eip)")
    for ip in ips:
        if not isinstance(ip, str) or not ip.strip():
            raise ConfigError(f"controller.elastic_ips contains an invalid entry: {ip!r}")

    if not isinstance(config.polling.interval_seconds, int) or config.polling.interval_seconds < 1:
        raise ConfigError("polling.interval_seconds must be an integer >= 1")

    if not config.controller.master_role_tag:
        raise ConfigError("controller.master_role_tag must not be empty")

    if not config.aws.cluster_tag:
        raise ConfigError("aws.cluster_tag must not be empty")

    if config.logging.format not in ("json", "text"):
        raise ConfigError("logging.format must be 'json' or 'text'")

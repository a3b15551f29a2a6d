"""Sink configuration.

Loads from config.yaml if present, with environment variable overrides.
Environment variables use the pattern: LOADSINK_<SECTION>_<KEY> (uppercase).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8082
    env: str = "dev"  # "dev" or "prod"


@dataclass
class QueueConfig:
    max_size: int = 10_000


@dataclass
class InfluxConfig:
    endpoint: str = "http://localhost:8086"
    auth_token: str = "magnum"
    destination: str = "loadtest"
    batch_size: int = 100
    request_timeout_seconds: float = 5.0
    flush_on_shutdown: bool = True


@dataclass
class LoggingConfig:
    level: str = "info"
    format: str = "console"  # "console" or "json"


@dataclass
class AppConfig:
    server: ServerConfig = field(default_factory=ServerConfig)
    queue: QueueConfig = field(default_factory=QueueConfig)
    influx: InfluxConfig = field(default_factory=InfluxConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _apply_env_overrides(config: AppConfig) -> None:
    """Override config values from environment variables."""
    mapping = {
        "LOADSINK_SERVER_HOST": lambda v: setattr(config.server, "host", v),
        "LOADSINK_SERVER_PORT": lambda v: setattr(config.server, "port", int(v)),
        "LOADSINK_SERVER_ENV": lambda v: setattr(config.server, "env", v),
        "LOADSINK_QUEUE_MAX_SIZE": lambda v: setattr(config.queue, "max_size", int(v)),
        "LOADSINK_INFLUX_ENDPOINT": lambda v: setattr(config.influx, "endpoint", v),
        "LOADSINK_INFLUX_AUTH_TOKEN": lambda v: setattr(config.influx, "auth_token", v),
        "LOADSINK_INFLUX_DESTINATION": lambda v: setattr(config.influx, "destination", v),
        "LOADSINK_INFLUX_BATCH_SIZE": lambda v: setattr(config.influx, "batch_size", int(v)),
        "LOADSINK_INFLUX_TIMEOUT": lambda v: setattr(config.influx, "request_timeout_seconds", float(v)),
        "LOADSINK_INFLUX_FLUSH_ON_SHUTDOWN": lambda v: setattr(config.influx, "flush_on_shutdown", _parse_bool(v)),
        "LOADSINK_LOG_LEVEL": lambda v: setattr(config.logging, "level", v),
        "LOADSINK_LOG_FORMAT": lambda v: setattr(config.logging, "format", v),
    }
    for env_key, setter in mapping.items():
        val = os.environ.get(env_key)
        if val is not None:
            setter(val)


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load configuration from YAML file + environment overrides."""
    config = AppConfig()

    if config_path is None:
        config_path = Path(os.environ.get("LOADSINK_CONFIG", "config.yaml"))
    else:
        config_path = Path(config_path)

    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}

        for section in ("server", "queue", "influx", "logging"):
            values = raw.get(section) or {}
            target = getattr(config, section)
            for k, v in values.items():
                if hasattr(target, k):
                    setattr(target, k, v)

    # Environment overrides always win
    _apply_env_overrides(config)
    return config

"""
Configuration management for the cloud cost exporter.

Uses dynaconf for layered configuration: YAML files, then environment
variables prefixed with CLOUDCOST_EXPORTER_ (nested via __, e.g.
CLOUDCOST_EXPORTER_CACHE__TTL=30m), then CLI overrides.
"""

import logging
import re
from pathlib import Path
from typing import Any

from dynaconf import Dynaconf, ValidationError, Validator

from ..client.opencost import DEFAULT_EXCHANGE_RATE_URL

logger = logging.getLogger(__name__)

# Get the project root directory
PROJECT_ROOT = Path(__file__).resolve().parents[3]
CONFIG_DIR = PROJECT_ROOT / "config"

DEFAULT_SETTINGS_FILES = [
    str(CONFIG_DIR / "config.yaml"),  # Base configuration
    str(CONFIG_DIR / "config.local.yaml"),  # Local overrides (git-ignored)
]

# Fallback when a duration cannot be parsed
DEFAULT_DURATION_SECONDS = 3600.0

_DURATION_UNITS = {"ms": 0.001, "s": 1, "m": 60, "h": 3600, "d": 86400}
_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h|d)")

VALIDATORS = [
    Validator("opencost.url", default="http://opencost.opencost:9003"),
    Validator("opencost.window", default="2d"),
    Validator("opencost.aggregate", default="service,category"),
    Validator("opencost.timeout", default="30s"),
    Validator("opencost.fetch_timeout", default="30s"),
    Validator("opencost.max_retries", default=3, gte=0),
    Validator("cache.ttl", default="1h"),
    Validator("cache.max_stale", default="6h"),
    Validator("metrics.emit_kube_percent", default=False, is_type_of=bool),
    Validator("metrics.currency_symbols", default="CNY,EUR"),
    Validator("metrics.exchange_rate_base", default="USD"),
    Validator("metrics.exchange_rate_url", default=DEFAULT_EXCHANGE_RATE_URL),
    Validator("server.host", default="0.0.0.0"),
    Validator("server.port", default=9100, gte=1, lte=65535),
    Validator(
        "logging.level",
        default="info",
        is_in=["debug", "info", "warn", "warning", "error"],
    ),
]


class ConfigurationError(Exception):
    """Configuration-related errors."""

    pass


def parse_duration(value: Any) -> float:
    """
    Parse a duration into seconds.

    Accepts plain numbers (seconds) and Go-style strings such as "90s",
    "30m", "1h30m" or "2d". Unparsable values fall back to one hour.

    Args:
        value: Duration value from configuration

    Returns:
        Duration in seconds
    """
    if isinstance(value, bool):
        value = str(value)
    if isinstance(value, (int, float)):
        return float(value)

    text = str(value).strip().lower()
    try:
        return float(text)
    except ValueError:
        pass

    parts = _DURATION_PART.findall(text)
    if parts and "".join(number + unit for number, unit in parts) == text:
        return sum(float(number) * _DURATION_UNITS[unit] for number, unit in parts)

    logger.warning(f"Invalid duration {value!r}, using {DEFAULT_DURATION_SECONDS:.0f}s")
    return DEFAULT_DURATION_SECONDS


def parse_symbols(value: Any) -> list[str]:
    """Parse a comma-separated string or list of currency symbols."""
    if not value:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [str(symbol).strip().upper() for symbol in value if str(symbol).strip()]


def build_settings(settings_files: list[str] | None = None) -> Dynaconf:
    """Create a dynaconf settings object with the exporter's sources and defaults."""
    return Dynaconf(
        envvar_prefix="CLOUDCOST_EXPORTER",
        settings_files=settings_files if settings_files is not None else DEFAULT_SETTINGS_FILES,
        environments=False,
        load_dotenv=True,
        merge_enabled=True,
        envvar_separator="__",
        validators=VALIDATORS,
    )


class ExporterConfig:
    """Typed access to exporter settings."""

    def __init__(self, settings: Dynaconf | None = None):
        self.settings = settings if settings is not None else build_settings()
        self._validate_config()

    def _validate_config(self):
        """Apply defaults and validate the configuration."""
        try:
            self.settings.validators.validate()
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    @property
    def opencost_url(self) -> str:
        return str(self.settings.get("opencost.url"))

    @property
    def window(self) -> str:
        return str(self.settings.get("opencost.window"))

    @property
    def aggregate(self) -> str:
        return str(self.settings.get("opencost.aggregate"))

    @property
    def request_timeout(self) -> float:
        """Per-request HTTP timeout in seconds."""
        return parse_duration(self.settings.get("opencost.timeout"))

    @property
    def fetch_timeout(self) -> float:
        """Deadline in seconds for one cost fetch including retries."""
        return parse_duration(self.settings.get("opencost.fetch_timeout"))

    @property
    def max_retries(self) -> int:
        return int(self.settings.get("opencost.max_retries"))

    @property
    def cache_ttl(self) -> float:
        return parse_duration(self.settings.get("cache.ttl"))

    @property
    def max_stale(self) -> float:
        return parse_duration(self.settings.get("cache.max_stale"))

    @property
    def emit_kube_percent(self) -> bool:
        return bool(self.settings.get("metrics.emit_kube_percent"))

    @property
    def currency_symbols(self) -> list[str]:
        return parse_symbols(self.settings.get("metrics.currency_symbols"))

    @property
    def exchange_rate_base(self) -> str:
        return str(self.settings.get("metrics.exchange_rate_base")).upper()

    @property
    def exchange_rate_url(self) -> str:
        return str(self.settings.get("metrics.exchange_rate_url"))

    @property
    def host(self) -> str:
        return str(self.settings.get("server.host"))

    @property
    def port(self) -> int:
        return int(self.settings.get("server.port"))

    @property
    def log_level(self) -> str:
        return str(self.settings.get("logging.level")).lower()

    def summary(self) -> dict[str, Any]:
        """Effective configuration for the startup log."""
        return {
            "opencost_url": self.opencost_url,
            "window": self.window,
            "cache_ttl": self.cache_ttl,
            "max_stale": self.max_stale,
            "max_retries": self.max_retries,
            "emit_kube_percent": self.emit_kube_percent,
            "currency_symbols": self.currency_symbols,
            "port": self.port,
        }

    def override_from_cli(self, cli_args: dict[str, Any]):
        """Override configuration with CLI arguments."""
        # Map CLI arguments to configuration paths
        cli_mapping = {
            "opencost_url": "opencost.url",
            "window": "opencost.window",
            "aggregate": "opencost.aggregate",
            "max_retries": "opencost.max_retries",
            "cache_ttl": "cache.ttl",
            "max_stale": "cache.max_stale",
            "emit_kube_percent_metrics": "metrics.emit_kube_percent",
            "currency_symbols": "metrics.currency_symbols",
            "host": "server.host",
            "port": "server.port",
            "log_level": "logging.level",
        }

        for cli_key, config_path in cli_mapping.items():
            if cli_args.get(cli_key) is not None:
                self.settings.set(config_path, cli_args[cli_key])

        # Re-validate after overrides
        self._validate_config()


_config: ExporterConfig | None = None


def get_config() -> ExporterConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = ExporterConfig()
    return _config


"""Configuration loading for the cloud cost exporter."""

from .settings import ConfigurationError, ExporterConfig, get_config

__all__ = ["ExporterConfig", "ConfigurationError", "get_config"]

"""Configuration management."""

import os
from pathlib import Path
from typing import Any

import msgspec
import yaml

from discovery.search.backends.base import ConfigError
from discovery.search.engine import SearchService, SearchServiceBuilder
from discovery.search.fields import FieldSuffixes
from discovery.search.models import HighlightConfig
from discovery.search.params import GROUP_FIELD

DEFAULT_SOLR_URL = "http://localhost:8983/solr/hsp"
DEFAULT_TIMEOUT = 10.0


class Settings(msgspec.Struct, frozen=True, kw_only=True):
    """Validated configuration."""

    solr_url: str = DEFAULT_SOLR_URL
    timeout: float = DEFAULT_TIMEOUT
    fields: tuple[str, ...] = ()
    groups: dict[str, tuple[str, ...]] = msgspec.field(default_factory=dict)
    highlight: HighlightConfig = msgspec.field(default_factory=HighlightConfig)
    suffixes: dict[str, str] = msgspec.field(default_factory=dict)
    group_field: str = GROUP_FIELD
    default_filters: dict[str, str] = msgspec.field(default_factory=dict)

    @property
    def field_suffixes(self) -> FieldSuffixes:
        return FieldSuffixes(**self.suffixes)


class Config:
    """Configuration file handling."""

    @staticmethod
    def from_file(path: Path) -> dict[str, Any]:
        """Load configuration from a YAML file.

        Raises:
            ConfigError: If the file cannot be read or is not valid YAML
        """
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in config file: {e}") from e
        except OSError as e:
            raise ConfigError(f"Error reading config file: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        return data

    @staticmethod
    def get_config_paths() -> list[Path]:
        """Get the default configuration file paths to check."""
        paths = []

        # User config
        xdg_config_home = Path(
            os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")
        )
        paths.append(xdg_config_home / "discovery" / "config.yaml")

        # Project config
        paths.append(Path(".discovery.yaml"))
        paths.append(Path("discovery.yaml"))

        return paths

    @staticmethod
    def merge_configs(*configs: dict[str, Any]) -> dict[str, Any]:
        """Merge multiple configuration dictionaries."""
        result: dict[str, Any] = {}
        for config in configs:
            result = _deep_merge(result, config)
        return result


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load configuration from files and environment variables.

    Args:
        path: Explicit config file, merged over the default locations
    """
    config: dict[str, Any] = {}

    # Later paths win for conflicting keys
    paths = Config.get_config_paths()
    if path is not None:
        paths.append(path)
    for candidate in paths:
        if candidate.exists():
            config = Config.merge_configs(config, Config.from_file(candidate))

    env_overrides: dict[str, Any] = {}
    if url := os.environ.get("DISCOVERY_SOLR_URL"):
        env_overrides.setdefault("solr", {})["url"] = url
    if timeout := os.environ.get("DISCOVERY_SOLR_TIMEOUT"):
        env_overrides.setdefault("solr", {})["timeout"] = timeout

    return Config.merge_configs(config, env_overrides)


def load_settings(config: dict[str, Any]) -> Settings:
    """Turn a configuration mapping into settings.

    Raises:
        ConfigError: If a value has the wrong type
    """
    solr = config.get("solr") or {}
    highlight = config.get("highlight") or {}
    suffixes = config.get("suffixes") or {}
    unknown = set(suffixes) - set(FieldSuffixes.__dataclass_fields__)
    if unknown:
        raise ConfigError(f"Unknown field suffixes: {', '.join(sorted(unknown))}")
    try:
        return msgspec.convert(
            {
                "solr_url": solr.get("url", DEFAULT_SOLR_URL),
                "timeout": solr.get("timeout", DEFAULT_TIMEOUT),
                "fields": config.get("fields") or [],
                "groups": config.get("groups") or {},
                "highlight": {
                    k: v for k, v in highlight.items() if v is not None or k == "padding"
                },
                "suffixes": suffixes,
                "group_field": config.get("group_field", GROUP_FIELD),
                "default_filters": config.get("default_filters") or {},
            },
            Settings,
            strict=False,
        )
    except msgspec.ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def create_service(settings: Settings) -> SearchService:
    """Create a Solr backed search service from settings."""
    return (
        SearchServiceBuilder()
        .with_solr(settings.solr_url, settings.timeout)
        .with_fields(
            list(settings.fields),
            {name: list(fields) for name, fields in settings.groups.items()},
        )
        .with_suffixes(settings.field_suffixes)
        .with_highlighting(settings.highlight)
        .with_group_field(settings.group_field)
        .with_default_filters(settings.default_filters)
        .build()
    )


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result

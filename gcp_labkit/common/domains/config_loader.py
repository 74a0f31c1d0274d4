"""Configuration loader for gcp-labkit."""
import logging
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigError
from .preferences import get_preference
from .settings import (
    GeoRoutingSettings,
    LabkitConfig,
    RegionSettings,
    UserpassSettings,
    VaultLabSettings,
)

logger = logging.getLogger(__name__)


def default_config_path() -> Path:
    return Path.home() / ".config" / "gcp-labkit" / "config.yml"


def _get_config_path() -> Optional[str]:
    """
    Resolve the config file path.

    Priority order:
    1. User preference (stored in ~/.config/gcp-labkit/preferences.json)
    2. Default location: ~/.config/gcp-labkit/config.yml

    Returns:
        Absolute path to the config file, or None when neither exists
    """
    config_path_pref = get_preference("config_path")
    if config_path_pref:
        config_path = Path(config_path_pref)
        if config_path.exists():
            logger.debug(f"Using config from preference: {config_path}")
            return str(config_path)
        logger.warning(f"Config path from preference doesn't exist: {config_path}")

    default_config = default_config_path()
    if default_config.exists():
        logger.debug(f"Using default config location: {default_config}")
        return str(default_config)

    return None


def _check_type(section: str, key: str, value: Any, expected: Any) -> Any:
    # bool is an int subclass; keep them apart
    if isinstance(expected, bool) or isinstance(value, bool):
        ok = isinstance(value, bool) and isinstance(expected, bool)
    elif isinstance(expected, float):
        ok = isinstance(value, (int, float))
        value = float(value) if ok else value
    elif expected is None:
        ok = value is None or isinstance(value, str)
    else:
        ok = isinstance(value, type(expected))
    if not ok:
        raise ConfigError(
            f"Invalid value for '{section}.{key}': expected {type(expected).__name__}, "
            f"got {type(value).__name__}"
        )
    return value


def _build(section: str, cls, data: Any, nested: Optional[Dict[str, Any]] = None, **required):
    """Overlay a YAML mapping on the defaults of a settings dataclass."""
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Section '{section}' must be a mapping")

    nested = nested or {}
    instance = cls(**required)
    known = {f.name for f in fields(cls)}
    for key, value in data.items():
        if key not in known:
            raise ConfigError(f"Unknown key '{section}.{key}'")
        if key in nested:
            value = nested[key](f"{section}.{key}", value)
        elif key == "policies":
            if not isinstance(value, list) or not all(isinstance(p, str) for p in value):
                raise ConfigError(f"'{section}.{key}' must be a list of strings")
        else:
            value = _check_type(section, key, value, getattr(instance, key))
        setattr(instance, key, value)
    return instance


def _build_userpass(section: str, data: Any) -> UserpassSettings:
    return _build(section, UserpassSettings, data)


def _build_regions(section: str, data: Any):
    if not isinstance(data, list) or not data:
        raise ConfigError(f"'{section}' must be a non-empty list")

    regions = []
    for index, item in enumerate(data):
        item_section = f"{section}[{index}]"
        if not isinstance(item, dict):
            raise ConfigError(f"'{item_section}' must be a mapping")
        missing = [k for k in ("prefix", "region", "zone") if k not in item]
        if missing:
            raise ConfigError(f"Missing {', '.join(missing)} in '{item_section}'")
        for key in ("prefix", "region", "zone"):
            if not isinstance(item[key], str):
                raise ConfigError(f"'{item_section}.{key}' must be a string")
        rest = {k: v for k, v in item.items() if k not in ("prefix", "region", "zone")}
        regions.append(
            _build(item_section, RegionSettings, rest,
                   prefix=item["prefix"], region=item["region"], zone=item["zone"])
        )

    # prefixes name VMs; server regions key the routing policy
    for key in ("prefix", "region"):
        values = [getattr(r, key) for r in regions if key == "prefix" or r.server]
        duplicates = sorted({v for v in values if values.count(v) > 1})
        if duplicates:
            raise ConfigError(f"Duplicate {key} in '{section}': {', '.join(duplicates)}")

    if not any(r.server for r in regions):
        raise ConfigError(f"'{section}' needs at least one region with a server")
    return regions


def parse_config(raw: Dict[str, Any]) -> LabkitConfig:
    """Validate a parsed YAML document and return typed settings."""
    unknown = set(raw) - {"vault_lab", "geo_routing"}
    if unknown:
        raise ConfigError(f"Unknown config section(s): {', '.join(sorted(unknown))}")

    vault_lab = _build("vault_lab", VaultLabSettings, raw.get("vault_lab"),
                       nested={"userpass": _build_userpass})
    geo_routing = _build("geo_routing", GeoRoutingSettings, raw.get("geo_routing"),
                         nested={"regions": _build_regions})

    if vault_lab.token_attempts < 1 or vault_lab.readiness_attempts < 1:
        raise ConfigError("vault_lab attempt counts must be at least 1")

    if vault_lab.bucket is not None and not (
        vault_lab.bucket.startswith("gs://") and len(vault_lab.bucket) > len("gs://")
    ):
        raise ConfigError(f"'vault_lab.bucket' must be a gs://<bucket>/ URI, got '{vault_lab.bucket}'")

    return LabkitConfig(vault_lab=vault_lab, geo_routing=geo_routing)


def load_config() -> LabkitConfig:
    """
    Load configuration from YAML, falling back to built-in defaults.

    The path is resolved on every call so preference changes apply without
    restarting the process.

    Raises:
        ConfigError: If the file is unreadable, empty, not YAML, or invalid
    """
    config_path = _get_config_path()
    if config_path is None:
        logger.debug("No config file found, using built-in defaults")
        return LabkitConfig()

    try:
        with open(config_path, 'r') as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML config at {config_path}: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read config file at {config_path}: {e}")

    if not raw:
        raise ConfigError(f"Config file at {config_path} is empty")
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file at {config_path} must contain a mapping")

    try:
        config = parse_config(raw)
    except ConfigError as e:
        raise ConfigError(f"{e} (in {config_path})")

    logger.debug(f"Configuration loaded from {config_path}")
    return config

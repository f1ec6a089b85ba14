"""Settings loading: rate per kWh, data source, record fields and rule thresholds.

Settings come from a YAML file (see config/settings.yaml) with environment
overrides, which may also be placed in a .env file:

    ENERGY_INSIGHTS_CONFIG      path to the YAML file
    ENERGY_INSIGHTS_SOURCE_URL  data source URL
    ENERGY_INSIGHTS_RATE        rate per kWh
"""

import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .analysis.costs import validate_rate
from .analysis.recommendations import RuleSettings
from .models import InvalidConfigurationError
from .normalize import RecordFields

logger = logging.getLogger(__name__)

DEFAULT_RATE_PER_KWH = 6.14
CONFIG_FILENAME = "settings.yaml"

ENV_CONFIG = "ENERGY_INSIGHTS_CONFIG"
ENV_SOURCE_URL = "ENERGY_INSIGHTS_SOURCE_URL"
ENV_RATE = "ENERGY_INSIGHTS_RATE"


@dataclass(frozen=True)
class Settings:
    """Resolved configuration for one run."""

    rate_per_kwh: float = DEFAULT_RATE_PER_KWH
    source_url: str | None = None
    source_headers: dict[str, str] = field(default_factory=dict)
    fields: RecordFields = field(default_factory=RecordFields)
    rules: RuleSettings = field(default_factory=RuleSettings)


def get_config_path() -> Path | None:
    """Find the settings file, or None if there isn't one."""
    env_path = os.environ.get(ENV_CONFIG)
    if env_path:
        path = Path(env_path).expanduser()
        if not path.exists():
            raise InvalidConfigurationError(f"{ENV_CONFIG} points to a missing file: {path}")
        return path

    candidates = [
        Path.cwd() / "config" / CONFIG_FILENAME,
        Path(__file__).parent.parent.parent / "config" / CONFIG_FILENAME,
        Path.home() / ".config" / "energy-insights" / CONFIG_FILENAME,
    ]
    for path in candidates:
        if path.exists():
            return path
    return None


def _section(data: dict, name: str) -> dict:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise InvalidConfigurationError(f"'{name}' must be a mapping, got {type(value).__name__}")
    return value


def _coerce(name: str, value: Any, default: Any) -> Any:
    """Coerce a YAML value to the type of the field's default."""
    if isinstance(default, tuple):
        if not isinstance(value, (list, tuple)):
            raise InvalidConfigurationError(f"'{name}' must be a list")
        item_type = type(default[0]) if default else str
        try:
            return tuple(item_type(v) for v in value)
        except (TypeError, ValueError) as e:
            raise InvalidConfigurationError(f"Invalid value in '{name}': {e}") from e
    if isinstance(default, bool) or isinstance(value, bool):
        raise InvalidConfigurationError(f"'{name}' must be a number")
    try:
        return type(default)(value)
    except (TypeError, ValueError) as e:
        raise InvalidConfigurationError(f"Invalid value for '{name}': {value!r}") from e


def rules_from_dict(data: dict) -> RuleSettings:
    """Build RuleSettings, overriding only the keys present in `data`."""
    defaults = RuleSettings()
    overrides = {}
    for f in fields(RuleSettings):
        if f.name in data:
            overrides[f.name] = _coerce(f.name, data[f.name], getattr(defaults, f.name))

    unknown = set(data) - {f.name for f in fields(RuleSettings)}
    if unknown:
        logger.warning("Ignoring unknown rule settings: %s", ", ".join(sorted(unknown)))
    return replace(defaults, **overrides)


def settings_from_dict(data: dict | None) -> Settings:
    """Build Settings from parsed YAML."""
    data = data or {}
    if not isinstance(data, dict):
        raise InvalidConfigurationError("Settings file must contain a mapping")

    source = _section(data, "source")
    record_fields = _section(data, "fields")
    headers = source.get("headers") or {}
    if not isinstance(headers, dict):
        raise InvalidConfigurationError("'source.headers' must be a mapping")

    rate = data.get("rate_per_kwh", DEFAULT_RATE_PER_KWH)
    return Settings(
        rate_per_kwh=validate_rate(rate),
        source_url=source.get("url"),
        source_headers={str(k): str(v) for k, v in headers.items()},
        fields=RecordFields(
            timestamp=record_fields.get("timestamp", RecordFields.timestamp),
            appliance=record_fields.get("appliance", RecordFields.appliance),
            energy=record_fields.get("energy", RecordFields.energy),
        ),
        rules=rules_from_dict(_section(data, "rules")),
    )


def load_settings(config_path: Path | None = None) -> Settings:
    """Load settings from YAML (if any) and apply environment overrides."""
    load_dotenv()

    path = config_path or get_config_path()
    data = {}
    if path is not None:
        with open(path) as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise InvalidConfigurationError(f"Could not parse {path}: {e}") from e
        logger.debug("Loaded settings from %s", path)

    settings = settings_from_dict(data)

    source_url = os.environ.get(ENV_SOURCE_URL)
    if source_url:
        settings = replace(settings, source_url=source_url)

    rate = os.environ.get(ENV_RATE)
    if rate:
        try:
            settings = replace(settings, rate_per_kwh=validate_rate(float(rate)))
        except ValueError as e:
            raise InvalidConfigurationError(f"{ENV_RATE} must be a positive number, got {rate!r}") from e

    return settings

"""
Settings for a simulation run.

Values come from, in order of precedence: command-line flags, environment
variables, the settings file (``appsettings.json`` or a YAML equivalent) and
built-in defaults. The settings file keeps the logger tool's layout::

    {
      "ConnectionStrings": {"Default": "Provider=SQLite;Data Source=scada.db"},
      "Simulation": {"CommitBatchSize": 1000, "ValueMin": 40, "ValueMax": 95, "NoiseAmplitude": 0.5}
    }
"""

import json
import logging
import os
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional

import yaml

from .driver import DEFAULT_BATCH_SIZE
from .errors import ConfigurationError, ValidationError
from .waveform import GeneratorBounds

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_FILE = "appsettings.json"
DATE_FORMATS = ("%d-%m-%Y", "%d/%m/%Y", "%Y-%m-%d")

_DEFAULT_BOUNDS = GeneratorBounds()

# setting name -> (environment variable, settings file section, settings file key)
_SOURCES = {
    "connection_string": ("SIMULATOR_CONNECTION_STRING", "ConnectionStrings", "Default"),
    "batch_size": ("SIMULATOR_BATCH_SIZE", "Simulation", "CommitBatchSize"),
    "value_min": ("SIMULATOR_VALUE_MIN", "Simulation", "ValueMin"),
    "value_max": ("SIMULATOR_VALUE_MAX", "Simulation", "ValueMax"),
    "noise_amplitude": ("SIMULATOR_NOISE_AMPLITUDE", "Simulation", "NoiseAmplitude"),
}


@dataclass(frozen=True)
class Settings:
    connection_string: Optional[str] = None
    batch_size: int = DEFAULT_BATCH_SIZE
    value_min: float = _DEFAULT_BOUNDS.min_value
    value_max: float = _DEFAULT_BOUNDS.max_value
    noise_amplitude: float = _DEFAULT_BOUNDS.noise_amplitude

    @property
    def bounds(self) -> GeneratorBounds:
        return GeneratorBounds(self.value_min, self.value_max, self.noise_amplitude)


def parse_date(value: Optional[str]) -> date:
    """Parse a day-granularity date (dd-mm-yyyy, dd/mm/yyyy or yyyy-mm-dd)."""
    if not value or not value.strip():
        raise ValidationError("--startdate and --enddate are required.")
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value.strip(), fmt).date()
        except ValueError:
            continue
    raise ValidationError(f"Invalid date '{value}'. Use dd-mm-yyyy.")


def load_settings_file(path: Optional[Path] = None) -> Dict[str, Any]:
    """Read the settings file. A missing file is only an error when ``path`` was given."""
    explicit = path is not None
    path = Path(path) if explicit else Path.cwd() / DEFAULT_SETTINGS_FILE
    if not path.exists():
        if explicit:
            raise ConfigurationError(f"Settings file not found: {path}")
        logger.debug(f"No settings file at {path}, using defaults")
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            if path.suffix.lower() in (".yaml", ".yml"):
                data = yaml.safe_load(f) or {}
            else:
                data = json.load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Could not read settings file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Settings file {path} must contain a mapping at the top level.")
    return data


def _convert(name: str, raw: Any, convert: Callable[[Any], Any]) -> Any:
    try:
        return convert(raw)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid value for {name}: {raw!r}") from e


def _file_value(data: Mapping[str, Any], section: str, key: str) -> Any:
    block = data.get(section)
    if not isinstance(block, dict):
        return None
    value = block.get(key)
    if isinstance(value, str) and not value.strip():
        return None
    return value


def resolve_settings(
    file_data: Optional[Mapping[str, Any]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Merge flags (``overrides``), environment and settings file into one Settings."""
    file_data = file_data or {}
    overrides = overrides or {}
    environ = os.environ if environ is None else environ

    converters = {
        "connection_string": str,
        "batch_size": int,
        "value_min": float,
        "value_max": float,
        "noise_amplitude": float,
    }
    values: Dict[str, Any] = {}
    for name, (env_var, section, key) in _SOURCES.items():
        raw = overrides.get(name)
        if raw is None:
            raw = environ.get(env_var) or None
        if raw is None:
            raw = _file_value(file_data, section, key)
        if raw is not None:
            values[name] = _convert(name, raw, converters[name])
    return Settings(**values)

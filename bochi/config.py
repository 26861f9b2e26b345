"""
@file config.py
@brief Timing configuration and YAML config file loading.
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Mapping, Optional

import yaml
from jsonschema import Draft202012Validator

from .exceptions import ConfigError
from .timings import PAUSE_FIELDS, TIMEOUT_FIELDS, merge_timing_values, preset_values

SCHEMA_PATH = os.path.join(os.path.dirname(__file__), "schemas", "config.schema.json")


@dataclass(frozen=True)
class TimeoutSettings:
    """Budget and polling interval for one kind of wait."""
    timeout: float
    interval: float

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> TimeoutSettings:
        return cls(timeout=float(values["timeout"]), interval=float(values["interval"]))


class TimeConfig:
    """
    Timeout and pause configuration for one invocation.

    Built from the defaults, then a preset, then explicit overrides. Instances
    are passed to the resolver and the action dispatcher explicitly and are
    never mutated once built; ``with_overrides`` returns a new instance.
    """

    resolve: TimeoutSettings
    adb_command: TimeoutSettings
    double_tap_pause: float
    focus_pause: float
    scroll_settle_pause: float
    swipe_duration: float

    def __init__(self, preset: Optional[str] = None):
        try:
            values = preset_values(preset)
        except ValueError as e:
            raise ConfigError(str(e)) from e
        self._load(values)

    def _load(self, values: Mapping[str, Any]) -> None:
        for name in TIMEOUT_FIELDS:
            setattr(self, name, TimeoutSettings.from_mapping(values[name]))
        for name in PAUSE_FIELDS:
            setattr(self, name, float(values[name]))

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {name: asdict(getattr(self, name)) for name in TIMEOUT_FIELDS}
        data.update({name: getattr(self, name) for name in PAUSE_FIELDS})
        return data

    def with_overrides(self, overrides: Mapping[str, Any]) -> TimeConfig:
        """
        @throws ConfigError on an unknown field or malformed value
        """
        try:
            values = merge_timing_values(self.to_dict(), overrides)
        except ValueError as e:
            raise ConfigError(str(e)) from e
        config = object.__new__(type(self))
        config._load(values)
        return config

    @classmethod
    def build_from(
        cls,
        *,
        preset: Optional[str] = "default",
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> TimeConfig:
        return cls(preset).with_overrides(overrides or {})

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TimeConfig):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"TimeConfig({self.to_dict()!r})"


@dataclass
class RunConfig:
    """Everything one invocation needs besides the selector and command."""
    time: TimeConfig = field(default_factory=TimeConfig)
    adb_path: str = "adb"
    serial: Optional[str] = None


def _load_schema(path: str = SCHEMA_PATH) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def load_config_file(path: str) -> Dict[str, Any]:
    """
    Load and validate a YAML config file.

    @param path Path to the YAML file
    @return Validated mapping (empty file yields an empty mapping)
    @throws ConfigError if the file is missing, not YAML, or fails the schema
    """
    if not os.path.exists(path):
        raise ConfigError(f"Config file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    validator = Draft202012Validator(_load_schema())
    errors = sorted(validator.iter_errors(data), key=lambda e: list(e.path))
    if errors:
        lines = [f"Config validation failed: {path}"]
        for e in errors:
            lines.append(f"- {list(e.path)}: {e.message}")
        raise ConfigError("\n".join(lines))
    return data


def build_run_config(
    config_path: Optional[str] = None,
    *,
    preset: Optional[str] = None,
    adb_path: Optional[str] = None,
    serial: Optional[str] = None,
) -> RunConfig:
    """
    Combine defaults, an optional config file, and CLI-level choices.

    Precedence: defaults -> preset (file, then argument) -> file overrides.
    Explicit ``adb_path``/``serial`` arguments win over the file's ``adb`` section.
    """
    data: Dict[str, Any] = load_config_file(config_path) if config_path else {}

    overrides: Dict[str, Any] = {}
    overrides.update(data.get("timeouts") or {})
    overrides.update(data.get("pauses") or {})
    time_config = TimeConfig.build_from(
        preset=preset or data.get("preset") or "default",
        overrides=overrides,
    )

    adb = data.get("adb") or {}
    return RunConfig(
        time=time_config,
        adb_path=adb_path or adb.get("path") or "adb",
        serial=serial or adb.get("serial"),
    )

"""Runtime and generator settings for tplgen."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from tplgen import __version__
from tplgen.domain.diagnostics import LogLevel
from tplgen.domain.template import SourceLanguage
from tplgen.domain.tokens import UnresolvedPolicy
from tplgen.domain.variables import is_true

HOME_ENV = "TPLGEN_HOME"


class SettingsError(ValueError):
    """Raised when a configuration value cannot be interpreted."""


@dataclass(frozen=True)
class RuntimeSettings:
    home_dir: Path
    log_dir: Path
    config_file: Path
    cli_version: str = __version__

    @property
    def telemetry_file(self) -> Path:
        return self.log_dir / "telemetry.jsonl"


@dataclass(frozen=True)
class GeneratorSettings:
    """Knobs shared by generation and IDE export.

    ``raise_on_error`` makes the first Error diagnostic abort the run; turning
    it off ("suppress errors") records errors and keeps going.
    """

    overwrite: bool = False
    raise_on_error: bool = True
    log_level: LogLevel = LogLevel.INFO
    unresolved_variables: UnresolvedPolicy = UnresolvedPolicy.EMPTY
    language: SourceLanguage = SourceLanguage.CSHARP


def _default_home_dir() -> Path:
    configured = os.getenv(HOME_ENV)
    if configured:
        return Path(configured).expanduser()
    return Path.home() / ".tplgen"


def load_settings() -> RuntimeSettings:
    base = _default_home_dir()
    return RuntimeSettings(
        home_dir=base,
        log_dir=base / "logs",
        config_file=base / "config.yaml",
    )


def _read_config(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise SettingsError(f"config file invalid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise SettingsError(f"config file must be a mapping: {path}")
    section = data.get("generator", data)
    if not isinstance(section, dict):
        raise SettingsError("config 'generator' section must be a mapping")
    return section


def _from_environment() -> dict[str, Any]:
    values: dict[str, Any] = {}
    level = os.getenv("TPLGEN_LOG_LEVEL")
    if level:
        values["log_level"] = level
    overwrite = os.getenv("TPLGEN_OVERWRITE")
    if overwrite is not None:
        values["overwrite"] = is_true(overwrite)
    suppress = os.getenv("TPLGEN_SUPPRESS_ERRORS")
    if suppress is not None:
        values["raise_on_error"] = not is_true(suppress)
    return values


def _coerce(name: str, value: Any) -> Any:
    try:
        if name in {"overwrite", "raise_on_error"}:
            return value if isinstance(value, bool) else is_true(str(value))
        if name == "log_level":
            return LogLevel.parse(value)
        if name == "unresolved_variables":
            return UnresolvedPolicy(str(value).strip().lower())
        if name == "language":
            return SourceLanguage.parse(value)
    except ValueError as exc:
        raise SettingsError(f"invalid value for '{name}': {value!r}") from exc
    raise SettingsError(f"unknown setting '{name}'")


def load_generator_settings(
    runtime: Optional[RuntimeSettings] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> GeneratorSettings:
    """Merge defaults, the YAML config file, environment and explicit overrides, in that order."""

    runtime = runtime or SETTINGS
    merged: dict[str, Any] = {}
    config = _read_config(runtime.config_file)
    if "suppress_errors" in config:
        config["raise_on_error"] = not is_true(str(config.pop("suppress_errors")))
    merged.update(config)
    merged.update(_from_environment())
    merged.update({key: value for key, value in (overrides or {}).items() if value is not None})

    known = {field.name for field in fields(GeneratorSettings)}
    values = {}
    for name, value in merged.items():
        if name not in known:
            raise SettingsError(f"unknown setting '{name}'")
        values[name] = _coerce(name, value)
    return replace(GeneratorSettings(), **values)


SETTINGS = load_settings()


__all__ = [
    "GeneratorSettings",
    "RuntimeSettings",
    "SETTINGS",
    "SettingsError",
    "load_generator_settings",
    "load_settings",
]

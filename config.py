"""
config.py

Typed configuration loading and validation for chartline.

Design goals
- Load at most one UTF-8 JSON config file
- Validate with pydantic (defaults included)
- Support environment variable overrides
- No other I/O beyond reading the config file (no directory creation)

Config file location
- If an explicit path is passed (chartline --config), that file is used and must exist.
- If CHARTLINE_CONFIG_PATH is set, that file is used and must exist.
- Otherwise chartline searches these paths in order and uses the first one that exists:
  1) ./chartline_config.json (current working directory)
  2) <user config dir>/chartline/chartline_config.json
- With no file found, built-in defaults are used.

Example config file (chartline_config.json)
{
  "songs": {
    "songs_path": "./songs",
    "chart_extension": ".kson"
  },
  "output": {
    "indent": 2,
    "include_ticks": false,
    "include_effects": true
  },
  "logging": {
    "level": "INFO",
    "log_file": null
  }
}
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from platformdirs import user_config_dir
from pydantic import BaseModel, Field, ValidationError, field_validator


class SongsConfig(BaseModel):
    songs_path: Path = Field(default=Path(".") / "songs", description="Directory scanned for chart files.")
    chart_extension: str = Field(default=".kson", description="Chart file extension, with or without the dot.")

    @field_validator("chart_extension")
    @classmethod
    def normalize_extension(cls, value: str) -> str:
        trimmed = (value or "").strip().lower()
        if not trimmed:
            raise ValueError("chart_extension must not be empty")
        return trimmed if trimmed.startswith(".") else "." + trimmed


class OutputConfig(BaseModel):
    indent: int = Field(default=2, ge=0, le=8, description="JSON indent for reports. 0 prints compact JSON.")
    include_ticks: bool = Field(default=False, description="List every score tick in reports.")
    include_effects: bool = Field(default=True, description="List effect intervals in reports.")


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO", description="DEBUG, INFO, WARNING, ERROR or CRITICAL")
    log_file: Optional[Path] = Field(default=None, description="Optional rotating log file.")

    @field_validator("level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        normalized = (value or "").strip().upper()
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if normalized not in allowed:
            raise ValueError("level must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL")
        return normalized

    def level_number(self) -> int:
        return int(logging.getLevelName(self.level))


class AppConfig(BaseModel):
    songs: SongsConfig = Field(default_factory=SongsConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _default_config_candidates() -> List[Path]:
    config_directory = Path(user_config_dir("chartline", appauthor=False))
    return [
        Path.cwd() / "chartline_config.json",
        config_directory / "chartline_config.json",
    ]


def _resolve_config_path() -> Optional[Path]:
    explicit_path_text = os.environ.get("CHARTLINE_CONFIG_PATH", "").strip()
    if explicit_path_text:
        return Path(explicit_path_text)

    for candidate_path in _default_config_candidates():
        if candidate_path.exists():
            return candidate_path

    return None


def _read_json_file_utf8(config_path: Path) -> Dict[str, Any]:
    try:
        raw_text = config_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise
    except OSError as exception:
        raise OSError(f"Failed to read config file: {config_path}. Error: {exception}") from exception

    try:
        parsed = json.loads(raw_text)
    except json.JSONDecodeError as exception:
        raise ValueError(f"Config file is not valid JSON: {config_path}. Error: {exception}") from exception

    if not isinstance(parsed, dict):
        raise ValueError(f"Config file root must be a JSON object: {config_path}")

    return parsed


def _apply_environment_overrides(config_dict: Dict[str, Any]) -> Dict[str, Any]:
    """
    Environment overrides are optional. The config file is the primary source of truth.

    Override variables:
    - CHARTLINE_SONGS_PATH
    - CHARTLINE_OUTPUT_INDENT
    - CHARTLINE_OUTPUT_INCLUDE_TICKS
    - CHARTLINE_OUTPUT_INCLUDE_EFFECTS
    - CHARTLINE_LOG_LEVEL
    - CHARTLINE_LOG_FILE
    """
    def ensure_nested(config_root: Dict[str, Any], section_name: str) -> Dict[str, Any]:
        section = config_root.get(section_name)
        if isinstance(section, dict):
            section = dict(section)
        else:
            section = {}
        config_root[section_name] = section
        return section

    updated_config = dict(config_dict)

    songs_section = ensure_nested(updated_config, "songs")
    output_section = ensure_nested(updated_config, "output")
    logging_section = ensure_nested(updated_config, "logging")

    def override_string(env_name: str, target_dict: Dict[str, Any], key_name: str) -> None:
        value_text = os.environ.get(env_name, "")
        if value_text.strip():
            target_dict[key_name] = value_text.strip()

    def override_int(env_name: str, target_dict: Dict[str, Any], key_name: str) -> None:
        value_text = os.environ.get(env_name, "").strip()
        if not value_text:
            return
        try:
            target_dict[key_name] = int(value_text)
        except ValueError:
            return

    def override_bool(env_name: str, target_dict: Dict[str, Any], key_name: str) -> None:
        value_text = os.environ.get(env_name, "").strip().lower()
        if not value_text:
            return
        truthy = {"1", "true", "yes", "on"}
        falsy = {"0", "false", "no", "off"}
        if value_text in truthy:
            target_dict[key_name] = True
        elif value_text in falsy:
            target_dict[key_name] = False

    override_string("CHARTLINE_SONGS_PATH", songs_section, "songs_path")

    override_int("CHARTLINE_OUTPUT_INDENT", output_section, "indent")
    override_bool("CHARTLINE_OUTPUT_INCLUDE_TICKS", output_section, "include_ticks")
    override_bool("CHARTLINE_OUTPUT_INCLUDE_EFFECTS", output_section, "include_effects")

    override_string("CHARTLINE_LOG_LEVEL", logging_section, "level")
    override_string("CHARTLINE_LOG_FILE", logging_section, "log_file")

    return updated_config


def load_config(config_path: Optional[Path] = None) -> Tuple[AppConfig, Optional[Path]]:
    resolved_path = config_path if config_path is not None else _resolve_config_path()
    json_dict = _read_json_file_utf8(resolved_path) if resolved_path is not None else {}
    json_dict = _apply_environment_overrides(json_dict)

    try:
        config = AppConfig.model_validate(json_dict)
    except ValidationError as exception:
        source_text = str(resolved_path) if resolved_path is not None else "defaults"
        raise ValueError(f"Config validation failed for {source_text}:\n{exception}") from exception

    return config, resolved_path


def to_json(config: AppConfig) -> str:
    return json.dumps(config.model_dump(mode="json"), ensure_ascii=False, indent=2)


def main() -> int:
    try:
        config, resolved_path = load_config()
    except Exception as exception:
        error_payload = {"ok": False, "error": str(exception)}
        print(json.dumps(error_payload, ensure_ascii=False, indent=2))
        return 2

    output_payload = {
        "ok": True,
        "config_path": str(resolved_path) if resolved_path is not None else None,
        "config": json.loads(to_json(config)),
    }
    print(json.dumps(output_payload, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

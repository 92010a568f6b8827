"""
config.py

Typed configuration loading and validation for scorescope.

Design goals
- Load exactly one UTF-8 JSON config file
- Validate with pydantic (defaults included)
- Support environment variable overrides
- No other I/O beyond reading the config file (no directory creation)

Config file location
- If SCORESCOPE_CONFIG_PATH is set, that file is used.
- Otherwise scorescope searches these paths in order and uses the first one that exists:
  1) ./scorescope_config.json (current working directory)
  2) <user config dir>/scorescope/scorescope/scorescope_config.json
  3) <user config dir>/scorescope/scorescope/config.json

Example config file (scorescope_config.json)
{
  "matching": {
    "threshold": 8,
    "recent_scores_limit": 50,
    "compare_username": false
  },
  "confirmation": {
    "capacity": 512,
    "ttl_seconds": 86400
  },
  "ocr": {
    "tessdata_dir": "ocr_data",
    "tesseract_cmd": "",
    "text_language": "eng",
    "digits_language": "digitsall_layer"
  },
  "web_server": {
    "host": "0.0.0.0",
    "port": 5178,
    "score_store_path": "scores.json"
  },
  "logging": {
    "level": "INFO"
  }
}

An empty JSON object ({}) is a valid config; every field has a default.
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from platformdirs import user_config_dir
from pydantic import BaseModel, Field, ValidationError, field_validator


class MatchingConfig(BaseModel):
    threshold: int = Field(default=8, ge=0, description="A candidate must score strictly above this to match.")
    recent_scores_limit: int = Field(default=50, ge=1, le=1000, description="How many recent scores are compared.")
    compare_username: bool = Field(
        default=False,
        description="Also compare the username field. Candidates already belong to the resolved user.",
    )


class ConfirmationConfig(BaseModel):
    capacity: int = Field(default=512, ge=1, description="Maximum number of tracked messages.")
    ttl_seconds: Optional[float] = Field(
        default=24 * 60 * 60,
        description="Pending candidates older than this are forgotten. null disables expiry.",
    )

    @field_validator("ttl_seconds")
    @classmethod
    def validate_ttl(cls, value: Optional[float]) -> Optional[float]:
        if value is None:
            return None
        if float(value) <= 0:
            raise ValueError("ttl_seconds must be positive or null")
        return float(value)


class OcrConfig(BaseModel):
    tessdata_dir: Optional[str] = Field(default=None, description="Directory holding the traineddata files.")
    tesseract_cmd: Optional[str] = Field(default=None, description="Path to the tesseract binary if not on PATH.")
    text_language: str = Field(default="eng", description="Language used for text regions.")
    digits_language: str = Field(default="digitsall_layer", description="Language used for numeric regions.")

    @field_validator("tessdata_dir", "tesseract_cmd")
    @classmethod
    def normalize_optional_strings(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        trimmed = value.strip()
        return trimmed or None

    @field_validator("text_language", "digits_language")
    @classmethod
    def validate_language(cls, value: str) -> str:
        trimmed = (value or "").strip()
        if not trimmed:
            raise ValueError("OCR language must not be empty")
        return trimmed


class WebServerConfig(BaseModel):
    host: str = Field(default="0.0.0.0", description="Bind address for local web server.")
    port: int = Field(default=5178, ge=1, le=65535, description="Port for local web server.")
    score_store_path: Optional[str] = Field(default=None, description="JSON score store served by the web server.")


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO", description="DEBUG, INFO, WARNING, ERROR or CRITICAL")

    @field_validator("level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        normalized = (value or "").strip().upper()
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if normalized not in allowed:
            raise ValueError("level must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL")
        return normalized


class AppConfig(BaseModel):
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    confirmation: ConfirmationConfig = Field(default_factory=ConfirmationConfig)
    ocr: OcrConfig = Field(default_factory=OcrConfig)
    web_server: WebServerConfig = Field(default_factory=WebServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _default_config_candidates() -> List[Path]:
    config_directory = Path(user_config_dir("scorescope", "scorescope"))
    return [
        Path.cwd() / "scorescope_config.json",
        config_directory / "scorescope_config.json",
        config_directory / "config.json",
    ]


def _resolve_config_path() -> Path:
    explicit_path_text = os.environ.get("SCORESCOPE_CONFIG_PATH", "").strip()
    if explicit_path_text:
        return Path(explicit_path_text)

    for candidate_path in _default_config_candidates():
        if candidate_path.exists():
            return candidate_path

    candidates_text = "\n".join("  - " + str(path) for path in _default_config_candidates())
    raise FileNotFoundError(
        "No scorescope config file found. Create scorescope_config.json in one of these locations:\n" + candidates_text
    )


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
    - SCORESCOPE_MATCH_THRESHOLD
    - SCORESCOPE_RECENT_SCORES_LIMIT
    - SCORESCOPE_COMPARE_USERNAME
    - SCORESCOPE_CONFIRMATION_CAPACITY
    - SCORESCOPE_CONFIRMATION_TTL_SECONDS
    - SCORESCOPE_TESSDATA_DIR
    - SCORESCOPE_TESSERACT_CMD
    - SCORESCOPE_WEB_HOST
    - SCORESCOPE_WEB_PORT
    - SCORESCOPE_SCORE_STORE_PATH
    - SCORESCOPE_LOG_LEVEL
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

    matching_section = ensure_nested(updated_config, "matching")
    confirmation_section = ensure_nested(updated_config, "confirmation")
    ocr_section = ensure_nested(updated_config, "ocr")
    web_server_section = ensure_nested(updated_config, "web_server")
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

    def override_float(env_name: str, target_dict: Dict[str, Any], key_name: str) -> None:
        value_text = os.environ.get(env_name, "").strip()
        if not value_text:
            return
        try:
            target_dict[key_name] = float(value_text)
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

    override_int("SCORESCOPE_MATCH_THRESHOLD", matching_section, "threshold")
    override_int("SCORESCOPE_RECENT_SCORES_LIMIT", matching_section, "recent_scores_limit")
    override_bool("SCORESCOPE_COMPARE_USERNAME", matching_section, "compare_username")

    override_int("SCORESCOPE_CONFIRMATION_CAPACITY", confirmation_section, "capacity")
    override_float("SCORESCOPE_CONFIRMATION_TTL_SECONDS", confirmation_section, "ttl_seconds")

    override_string("SCORESCOPE_TESSDATA_DIR", ocr_section, "tessdata_dir")
    override_string("SCORESCOPE_TESSERACT_CMD", ocr_section, "tesseract_cmd")

    override_string("SCORESCOPE_WEB_HOST", web_server_section, "host")
    override_int("SCORESCOPE_WEB_PORT", web_server_section, "port")
    override_string("SCORESCOPE_SCORE_STORE_PATH", web_server_section, "score_store_path")

    override_string("SCORESCOPE_LOG_LEVEL", logging_section, "level")

    return updated_config


def load_config(config_path: Optional[Path] = None) -> Tuple[AppConfig, Path]:
    resolved_path = config_path if config_path is not None else _resolve_config_path()
    json_dict = _read_json_file_utf8(resolved_path)
    json_dict = _apply_environment_overrides(json_dict)

    try:
        config = AppConfig.model_validate(json_dict)
    except ValidationError as exception:
        raise ValueError(f"Config validation failed for {resolved_path}:\n{exception}") from exception

    return config, resolved_path


@lru_cache(maxsize=1)
def get_config() -> Tuple[AppConfig, Path]:
    return load_config()


def to_json(config: AppConfig) -> str:
    return json.dumps(config.model_dump(), ensure_ascii=False, indent=2)


def main() -> int:
    try:
        config, resolved_path = load_config()
    except Exception as exception:
        error_payload = {"ok": False, "error": str(exception)}
        print(json.dumps(error_payload, ensure_ascii=False, indent=2))
        return 2

    output_payload = {
        "ok": True,
        "config_path": str(resolved_path),
        "config": json.loads(to_json(config)),
    }
    print(json.dumps(output_payload, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

"""
Configuration loading.

Ranking and preprocessing options come from a JSON file merged over the
built-in defaults below. Tracing options come from the standard OTEL_*
environment variables.
"""

import copy
import json
import os
from typing import Any, Dict, Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import InputError

DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "config.json")

DEFAULT_SERVICE_NAME = "file-similarity"

WEIGHTINGS = ("count", "binary", "tfidf")

DEFAULT_CONFIG = {
    "preprocessing": {
        "lowercase": True,
        "remove_diacritics": False,
        "min_token_length": 1,
        "ngram": 1
    },
    "pipeline_order": [
        "tokenize", "lowercase", "remove_diacritics",
        "min_length", "ngram"
    ],
    "ranking": {
        "threshold": 0.0,
        "top_k": None,
        "weighting": "count",
        "deduplicate": False,
        "workers": 1
    },
    "scan": {
        "pattern": ".*"
    }
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from file, falling back to the defaults.

    Args:
        config_path: Explicit config file. When given it must exist and parse;
            when omitted the packaged config.json is used if present.

    Returns:
        Configuration dictionary with every default key present
    """
    path = config_path or DEFAULT_CONFIG_PATH

    if not os.path.exists(path):
        if config_path:
            raise InputError(f"Config file not found: {config_path}")
        return copy.deepcopy(DEFAULT_CONFIG)

    try:
        with open(path, "r", encoding="utf-8") as f:
            user_config = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise InputError(f"Could not load config {path}: {e}") from e

    if not isinstance(user_config, dict):
        raise InputError(f"Config {path} must contain a JSON object")

    config = _merge(DEFAULT_CONFIG, user_config)
    validate_config(config)
    return config


def _check_int(section: Dict[str, Any], key: str, minimum: int, maximum: Optional[int] = None,
               optional: bool = False) -> None:
    value = section.get(key)
    if value is None and optional:
        return
    if isinstance(value, bool) or not isinstance(value, int):
        raise InputError(f"{key} must be an integer, got {value!r}")
    if value < minimum or (maximum is not None and value > maximum):
        bounds = f"between {minimum} and {maximum}" if maximum is not None else f"at least {minimum}"
        raise InputError(f"{key} must be {bounds}, got {value}")


def _check_bool(section: Dict[str, Any], key: str) -> None:
    if not isinstance(section.get(key), bool):
        raise InputError(f"{key} must be true or false, got {section.get(key)!r}")


def validate_config(config: Dict[str, Any]) -> None:
    """Raise InputError for option values the ranker cannot work with."""
    for name in ("preprocessing", "ranking", "scan"):
        if not isinstance(config.get(name), dict):
            raise InputError(f"Config section {name!r} must be an object, got {config.get(name)!r}")

    order = config.get("pipeline_order")
    if not isinstance(order, list) or not all(isinstance(step, str) for step in order):
        raise InputError(f"pipeline_order must be a list of step names, got {order!r}")

    preproc = config["preprocessing"]
    _check_bool(preproc, "lowercase")
    _check_bool(preproc, "remove_diacritics")
    _check_int(preproc, "min_token_length", 1)
    _check_int(preproc, "ngram", 1, 4)

    ranking = config["ranking"]
    threshold = ranking.get("threshold")
    if threshold is not None:
        if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
            raise InputError(f"threshold must be a number, got {threshold!r}")
        if not 0.0 <= threshold <= 1.0:
            raise InputError(f"threshold must be between 0 and 1, got {threshold}")
    _check_int(ranking, "top_k", 1, optional=True)
    if ranking.get("weighting") not in WEIGHTINGS:
        raise InputError(f"weighting must be one of {', '.join(WEIGHTINGS)}, got {ranking.get('weighting')!r}")
    _check_bool(ranking, "deduplicate")
    _check_int(ranking, "workers", 1)

    if not isinstance(config["scan"].get("pattern"), str):
        raise InputError(f"pattern must be a string, got {config['scan'].get('pattern')!r}")


class TelemetrySettings(BaseSettings):
    """Tracing settings read from the OpenTelemetry environment variables."""

    otel_service_name: str = Field(default=DEFAULT_SERVICE_NAME)
    otel_exporter_otlp_endpoint: Optional[str] = Field(default=None)
    otel_exporter_otlp_traces_endpoint: Optional[str] = Field(default=None)
    otel_sdk_disabled: bool = Field(default=False)

    model_config = SettingsConfigDict(case_sensitive=False, extra="ignore")

    @classmethod
    def from_env(cls) -> 'TelemetrySettings':
        try:
            return cls()
        except ValidationError as e:
            raise InputError(f"Invalid OpenTelemetry environment: {e}") from e

    @property
    def service_name(self) -> str:
        return self.otel_service_name or DEFAULT_SERVICE_NAME

    @property
    def endpoint(self) -> Optional[str]:
        return self.otel_exporter_otlp_traces_endpoint or self.otel_exporter_otlp_endpoint or None

    @property
    def enabled(self) -> bool:
        return bool(self.endpoint) and not self.otel_sdk_disabled

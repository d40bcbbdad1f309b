"""
Optional configuration override file.

Reads a YAML or JSON file and returns ``ConfigOverrides``; the default
provider merges it over its built-in catalog and policy.

Override file format (YAML or JSON):
    plugins:
      typography:
        version: '"@tailwindcss/typography": "^0.5.10"'
        statement: "'@tailwindcss/typography': require('@tailwindcss/typography')"
    blocked_versions: ["3.3.0"]
    deprecated_before: "3.0.0"
    targets: ["linux-x64", "darwin-arm64"]

Environment variable:
    TWBUILD_CONFIG_FILE: path to the override file (optional).
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from .models import ConfigOverrides

_log = logging.getLogger("twbuild.config")

ENV_CONFIG_FILE = "TWBUILD_CONFIG_FILE"


def load_overrides(path: Optional[Path] = None) -> ConfigOverrides:
    """
    Returns empty overrides if the file is absent, unreadable or malformed;
    the caller then runs on built-in defaults.
    """
    resolved = _resolve_path(path)
    if resolved is None or not resolved.exists():
        return ConfigOverrides()

    try:
        raw_text = resolved.read_text(encoding="utf-8")
    except OSError as exc:
        _log.warning("Cannot read config override file %s: %s", resolved, exc)
        return ConfigOverrides()

    try:
        data = json.loads(raw_text)
    except json.JSONDecodeError:
        try:
            data = yaml.safe_load(raw_text)
        except yaml.YAMLError as exc:
            _log.warning("Failed to parse config file %s as JSON or YAML: %s", resolved, exc)
            return ConfigOverrides()

    if data is None:
        return ConfigOverrides()
    if not isinstance(data, dict):
        _log.warning("Config override file %s must be a mapping, got %s", resolved, type(data).__name__)
        return ConfigOverrides()

    try:
        overrides = ConfigOverrides.model_validate(data)
    except ValidationError as exc:
        _log.warning("Ignoring invalid config override file %s: %s", resolved, exc)
        return ConfigOverrides()

    _log.info(
        "Loaded config overrides from %s (%d plugins, %d blocked versions)",
        resolved,
        len(overrides.plugins),
        len(overrides.blocked_versions),
    )
    return overrides


def _resolve_path(path: Optional[Path]) -> Optional[Path]:
    if path is not None:
        return Path(path)
    env_path = os.getenv(ENV_CONFIG_FILE, "").strip()
    if env_path:
        return Path(env_path)
    return None

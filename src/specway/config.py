"""Configuration loading with precedence resolution.

Precedence (high to low):

1. Keyword overrides passed to :func:`resolve_config` (and through it by
   :func:`specway.create`).
2. Environment variables ``SPECWAY_ALLOW_REMOTE_REFS``,
   ``SPECWAY_FETCH_TIMEOUT`` and ``SPECWAY_SAMPLE_SEED``.
3. Project-local ``./specway.json``.
4. Defaults declared on :class:`~specway.models.SpecwayConfig`.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from specway.exceptions import ConfigError
from specway.models import SpecwayConfig

_PROJECT_CONFIG_FILENAME = "specway.json"
_ENV_PREFIX = "SPECWAY_"


def load_project_config() -> Optional[dict[str, Any]]:
    """Load project-local configuration from ``./specway.json``.

    Returns:
        The parsed JSON as a dict, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file exists but does not hold a JSON object.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project config at {path}: expected a JSON object")
    return data


def _env_config() -> dict[str, Any]:
    """Collect ``SPECWAY_*`` variables for every known config field."""
    values: dict[str, Any] = {}
    for field_name in SpecwayConfig.model_fields:
        raw = os.environ.get(_ENV_PREFIX + field_name.upper())
        if raw:
            values[field_name] = raw
    return values


def resolve_config(**overrides: Any) -> SpecwayConfig:
    """Resolve the effective configuration.

    Args:
        **overrides: Field values with the highest precedence.  ``None``
            values are ignored so callers can forward optional arguments.

    Returns:
        The validated :class:`~specway.models.SpecwayConfig`.

    Raises:
        ConfigError: If the project file is unreadable or a value fails
            validation.
    """
    merged: dict[str, Any] = {}
    project = load_project_config()
    if project is not None:
        merged.update(project)
    merged.update(_env_config())
    merged.update({key: value for key, value in overrides.items() if value is not None})

    try:
        return SpecwayConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid specway configuration: {exc}") from exc

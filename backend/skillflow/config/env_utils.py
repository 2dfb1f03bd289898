"""
Environment helpers for config dataclasses.

Each config declares an ``_ENV_MAP`` of ``field_name -> ENV_VAR``.
``read_env_defaults`` reads those variables and coerces each value to
the type of the dataclass field's default.
"""

from __future__ import annotations

import os
from dataclasses import MISSING, Field
from logging import getLogger
from typing import Any, Dict

logger = getLogger(__name__)

_TRUE_VALUES = ("1", "true", "yes", "on")


def _coerce(raw: str, default: Any) -> Any:
    if isinstance(default, bool):
        return raw.strip().lower() in _TRUE_VALUES
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float):
        return float(raw)
    return raw


def read_env_defaults(
    env_map: Dict[str, str],
    fields: Dict[str, Field],
) -> Dict[str, Any]:
    """Collect constructor kwargs from environment variables.

    Only variables that are actually set are returned, so unset
    variables fall back to the dataclass defaults.
    """
    values: Dict[str, Any] = {}
    for field_name, env_var in env_map.items():
        raw = os.getenv(env_var)
        if raw is None or raw == "":
            continue
        field = fields.get(field_name)
        default = None
        if field is not None and field.default is not MISSING:
            default = field.default
        try:
            values[field_name] = _coerce(raw, default)
        except ValueError:
            logger.warning(
                f"Ignoring invalid value for {env_var}: {raw!r}"
            )
    return values

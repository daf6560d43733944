"""
eqsystem — Extraction settings.

Settings are plain JSON on disk, validated with pydantic on load.
The file location comes from the caller or the ``EQSYSTEM_SETTINGS``
environment variable.
"""

import json
import logging
import os
from typing import Literal, Optional

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

SETTINGS_ENV_VAR = "EQSYSTEM_SETTINGS"


class ExtractionSettings(BaseModel):
    """Knobs for symbol classification and linear extraction."""

    # Name prefixes marking decision variables / parameters (see algebra.variable)
    variable_prefix: str = Field(default="$v_", min_length=1)
    parameter_prefix: str = Field(default="$p_", min_length=1)
    # Run sympy.expand on every matrix / constant entry
    expand_entries: bool = True
    # What to do when the leading coefficient is symbolic and has no sign
    parametric_sign: Literal["extract_minus", "leave"] = "extract_minus"
    # Every variable-prefixed symbol must be part of the unknown ordering
    require_declared_variables: bool = True


DEFAULT_SETTINGS = ExtractionSettings()


def load_settings(path: Optional[str] = None) -> ExtractionSettings:
    """Read settings from *path* (or ``$EQSYSTEM_SETTINGS``).

    Falls back to ``DEFAULT_SETTINGS`` when no file is configured, the
    file does not exist, or its content does not validate.
    """
    if path is None:
        path = os.environ.get(SETTINGS_ENV_VAR)
    if not path or not os.path.exists(path):
        return DEFAULT_SETTINGS
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return ExtractionSettings.model_validate(data)
    except (json.JSONDecodeError, OSError, ValidationError) as e:
        logger.warning(f"Ignoring settings file {path}: {e}")
        return DEFAULT_SETTINGS


def save_settings(settings: ExtractionSettings, path: str) -> None:
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(settings.model_dump(), f, indent=2, ensure_ascii=False)

"""Configuration: detection parameters and external tool paths.

Both are read from JSON files under the project's ``config/`` directory:
- ``config/detection.json``: detection parameters (see `DetectionParams`)
- ``config/dependencies.json``: ``tesseract_path`` relative to the project root
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional

import pytesseract

logger = logging.getLogger(__name__)

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
CONFIG_DIR = os.path.join(PROJECT_ROOT, "config")
DETECTION_CONFIG_PATH = os.path.join(CONFIG_DIR, "detection.json")
DEPENDENCIES_PATH = os.path.join(CONFIG_DIR, "dependencies.json")

# camelCase option names as they appear in JSON files.
_CAMEL_CASE = {
    "darkOnLight": "dark_on_light",
    "maxStrokeLength": "max_stroke_length",
    "minCharacterHeight": "min_character_height",
    "maxAngle": "max_angle",
    "maxImgWidthToTextRatio": "max_img_width_to_text_ratio",
    "topBorder": "top_border",
    "bottomBorder": "bottom_border",
}


@dataclass(frozen=True)
class DetectionParams:
    """Read-only settings for one detection run."""

    dark_on_light: bool = True
    max_stroke_length: float = 15.0
    min_character_height: int = 11
    max_angle: float = 30.0
    max_img_width_to_text_ratio: float = 10.0
    top_border: int = 0
    bottom_border: int = 0

    def __post_init__(self) -> None:
        if self.max_stroke_length <= 0:
            raise ValueError("max_stroke_length must be positive")
        if self.max_img_width_to_text_ratio <= 0:
            raise ValueError("max_img_width_to_text_ratio must be positive")
        if self.min_character_height < 0:
            raise ValueError("min_character_height must not be negative")
        if self.top_border < 0 or self.bottom_border < 0:
            raise ValueError("top_border and bottom_border must not be negative")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DetectionParams":
        """Build parameters from camelCase or snake_case keys.

        Doxygen:
        - @param data: Mapping of option names to values; missing keys keep defaults.
        - @return: Validated `DetectionParams`.
        - @throws ValueError: On unknown keys or invalid values.
        """
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in (data or {}).items():
            name = _CAMEL_CASE.get(key, key)
            if name not in known:
                raise ValueError(f"Unknown detection parameter: {key}")
            kwargs[name] = value
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_detection_params(path: Optional[str] = None) -> DetectionParams:
    """Load detection parameters from a JSON file.

    Doxygen:
    - @param path: JSON file path; defaults to ``config/detection.json``.
    - @return: Parameters from the file, or defaults if the default file is absent.
    - @throws FileNotFoundError: If an explicitly given file is missing.
    - @throws json.JSONDecodeError: If the file content is not valid JSON.
    """
    if path is None:
        path = DETECTION_CONFIG_PATH
        if not os.path.exists(path):
            logger.info("No detection config at %s, using defaults", path)
            return DetectionParams()
    with open(path, "r", encoding="utf-8") as f:
        return DetectionParams.from_dict(json.load(f))


def _resolve_path(base: str, relative: str) -> str:
    return os.path.abspath(os.path.join(base, relative))


def configure_dependencies(deps_path: str = DEPENDENCIES_PATH) -> Optional[str]:
    """Point pytesseract at the executable named in config/dependencies.json.

    Doxygen:
    - @param deps_path: Path of the dependencies JSON file.
    - @return: Absolute tesseract path that was configured, or None.
    """
    if not os.path.exists(deps_path):
        logger.warning("dependencies.json not found at %s", deps_path)
        return None

    try:
        with open(deps_path, "r", encoding="utf-8") as deps_file:
            deps = json.load(deps_file) or {}
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Could not load dependencies from %s: %s", deps_path, exc)
        return None

    tess_rel = deps.get("tesseract_path")
    if not tess_rel:
        return None
    tess_abs = _resolve_path(PROJECT_ROOT, tess_rel)
    if not os.path.exists(tess_abs):
        logger.warning("Tesseract path from config does not exist: %s", tess_abs)
        return None
    pytesseract.pytesseract.tesseract_cmd = tess_abs
    return tess_abs

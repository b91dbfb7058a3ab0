# -*- coding: utf-8 -*-
"""
Converter settings and their JSON override file.

Lookup order for the override file: explicit path > $DOCX2MD_SETTINGS_PATH >
docx2md_settings.json next to a frozen executable > ./docx2md_settings.json >
docx2md_settings.json next to this module.
Keys may be snake_case or the camelCase spelling used by the plugin settings data.
"""
import json
import logging
import os
import sys
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

SETTINGS_ENV_VAR = "DOCX2MD_SETTINGS_PATH"
SETTINGS_FILE_NAME = "docx2md_settings.json"

FORMULA_FORMATS = ("latex", "mathml")
TABLE_ALIGNMENTS = ("left", "center", "right")

CAMEL_KEYS = {
    "imageFolder": "image_folder",
    "useRelativeImagePaths": "use_relative_image_paths",
    "formulaFormat": "formula_format",
    "preserveLineBreaks": "preserve_line_breaks",
    "tableAlignment": "table_alignment",
    "defaultImageWidth": "default_image_width",
    "createImageFolder": "create_image_folder",
    "handleNumbering": "handle_numbering",
}


@dataclass(frozen=True)
class ConverterSettings:
    image_folder: str = "attachments"
    use_relative_image_paths: bool = True
    formula_format: str = "latex"
    preserve_line_breaks: bool = True
    table_alignment: str = "left"
    default_image_width: int = 600
    create_image_folder: bool = True
    handle_numbering: bool = True

    def __post_init__(self):
        if self.formula_format not in FORMULA_FORMATS:
            raise ValueError(f"formula_format must be one of {FORMULA_FORMATS}, got {self.formula_format!r}")
        if self.table_alignment not in TABLE_ALIGNMENTS:
            raise ValueError(f"table_alignment must be one of {TABLE_ALIGNMENTS}, got {self.table_alignment!r}")

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> "ConverterSettings":
        """Build settings from a loose mapping; bad values fall back to defaults with a warning."""
        defaults = cls()
        known = {f.name: f for f in fields(cls)}
        values: Dict[str, Any] = {}
        for raw_key, raw_val in (data or {}).items():
            key = CAMEL_KEYS.get(raw_key, raw_key)
            if key not in known:
                logger.warning(f"Unknown settings key ignored: {raw_key}")
                continue
            default_val = getattr(defaults, key)
            try:
                val = _coerce(raw_val, default_val)
            except (TypeError, ValueError):
                logger.warning(f"Invalid value for {raw_key}: {raw_val!r}; using default {default_val!r}")
                continue
            if key == "formula_format" and val not in FORMULA_FORMATS:
                logger.warning(f"Unsupported formula format {val!r}; using {default_val!r}")
                continue
            if key == "table_alignment" and val not in TABLE_ALIGNMENTS:
                logger.warning(f"Unsupported table alignment {val!r}; using {default_val!r}")
                continue
            values[key] = val
        return replace(defaults, **values)

    def with_overrides(self, **overrides) -> "ConverterSettings":
        clean = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **clean)


DEFAULT_SETTINGS = ConverterSettings()


def _coerce(value: Any, default: Any) -> Any:
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ("1", "true", "yes", "on"):
            return True
        if isinstance(value, str) and value.strip().lower() in ("0", "false", "no", "off"):
            return False
        if isinstance(value, int):
            return bool(value)
        raise ValueError(value)
    if isinstance(default, int):
        if isinstance(value, bool):
            raise ValueError(value)
        return int(value)
    if value is None:
        raise ValueError(value)
    return str(value)


def _iter_settings_paths(explicit_path: Optional[str] = None) -> List[str]:
    """Return possible settings paths, ordered by priority."""
    paths: List[str] = []
    for cand in (explicit_path, os.environ.get(SETTINGS_ENV_VAR)):
        if cand:
            paths.append(os.path.abspath(cand))
    base_dirs = []
    if getattr(sys, "frozen", False):
        base_dirs.append(os.path.dirname(sys.executable))
    base_dirs.extend([os.getcwd(), os.path.dirname(os.path.abspath(__file__))])
    seen_dirs = set()
    for d in base_dirs:
        if not d or d in seen_dirs:
            continue
        seen_dirs.add(d)
        paths.append(os.path.join(d, SETTINGS_FILE_NAME))
    out: List[str] = []
    for p in paths:
        if p not in out:
            out.append(p)
    return out


def load_settings(config_path: Optional[str] = None) -> ConverterSettings:
    """
    Load settings from the first readable JSON override file.
    Falls back to the bundled defaults when nothing usable is found.
    """
    for candidate in _iter_settings_paths(config_path):
        if not os.path.exists(candidate):
            continue
        try:
            with open(candidate, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as exc:
            logger.warning(f"Failed to load settings from {candidate}: {exc}")
            continue
        if not isinstance(data, dict):
            logger.warning(f"Settings file {candidate} is not a JSON object; skipped")
            continue
        logger.info(f"Settings loaded from {candidate}")
        return ConverterSettings.from_mapping(data)
    return DEFAULT_SETTINGS

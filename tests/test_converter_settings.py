from __future__ import annotations

import json
import sys

import pytest

from converter_settings import (
    DEFAULT_SETTINGS,
    SETTINGS_ENV_VAR,
    SETTINGS_FILE_NAME,
    ConverterSettings,
    _iter_settings_paths,
    load_settings,
)


@pytest.fixture(autouse=True)
def _isolated(monkeypatch, tmp_path):
    monkeypatch.delenv(SETTINGS_ENV_VAR, raising=False)
    monkeypatch.chdir(tmp_path)


def test_defaults():
    s = ConverterSettings()
    assert s.image_folder == "attachments"
    assert s.use_relative_image_paths is True
    assert s.formula_format == "latex"
    assert s.table_alignment == "left"
    assert s.default_image_width == 600
    assert s.handle_numbering is True


def test_invalid_values_in_code_raise():
    with pytest.raises(ValueError):
        ConverterSettings(table_alignment="diagonal")
    with pytest.raises(ValueError):
        ConverterSettings(formula_format="ascii")


def test_camel_case_file(tmp_path):
    path = tmp_path / "custom.json"
    path.write_text(json.dumps({
        "imageFolder": "assets",
        "useRelativeImagePaths": False,
        "tableAlignment": "center",
        "handleNumbering": "false",
        "defaultImageWidth": "480",
    }), encoding="utf-8")
    s = load_settings(str(path))
    assert s.image_folder == "assets"
    assert s.use_relative_image_paths is False
    assert s.table_alignment == "center"
    assert s.handle_numbering is False
    assert s.default_image_width == 480


def test_bad_values_fall_back_to_defaults():
    s = ConverterSettings.from_mapping({
        "table_alignment": "diagonal",
        "formulaFormat": "ascii",
        "default_image_width": "wide",
        "preserve_line_breaks": "maybe",
        "unknown_key": 1,
    })
    assert s == DEFAULT_SETTINGS


def test_env_var_and_cwd_lookup(tmp_path, monkeypatch):
    (tmp_path / SETTINGS_FILE_NAME).write_text(json.dumps({"image_folder": "from_cwd"}), encoding="utf-8")
    assert load_settings().image_folder == "from_cwd"
    env_file = tmp_path / "env.json"
    env_file.write_text(json.dumps({"image_folder": "from_env"}), encoding="utf-8")
    monkeypatch.setenv(SETTINGS_ENV_VAR, str(env_file))
    assert load_settings().image_folder == "from_env"


def test_unreadable_file_is_skipped(tmp_path):
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    assert load_settings(str(broken)) == DEFAULT_SETTINGS
    listing = tmp_path / "list.json"
    listing.write_text("[1, 2]", encoding="utf-8")
    assert load_settings(str(listing)) == DEFAULT_SETTINGS


def test_with_overrides_ignores_none():
    s = DEFAULT_SETTINGS.with_overrides(image_folder=None, table_alignment="right")
    assert s.image_folder == "attachments"
    assert s.table_alignment == "right"


def test_frozen_executable_dir_is_searched_before_cwd(tmp_path, monkeypatch):
    exe_dir = tmp_path / "dist"
    exe_dir.mkdir()
    (exe_dir / SETTINGS_FILE_NAME).write_text(json.dumps({"image_folder": "from_exe"}), encoding="utf-8")
    (tmp_path / SETTINGS_FILE_NAME).write_text(json.dumps({"image_folder": "from_cwd"}), encoding="utf-8")
    monkeypatch.setattr(sys, "frozen", True, raising=False)
    monkeypatch.setattr(sys, "executable", str(exe_dir / "docx2md.exe"))
    paths = _iter_settings_paths()
    assert paths.index(str(exe_dir / SETTINGS_FILE_NAME)) < paths.index(str(tmp_path / SETTINGS_FILE_NAME))
    assert load_settings().image_folder == "from_exe"

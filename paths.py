# -*- coding: utf-8 -*-
########################
# paths.py
########################
# Purpose:
# - Central filesystem path helpers for the app.
# - Defines where OCR traineddata and the local score store live relative to the project root.
#
# Design notes:
# - Keep path derivation consistent across modules.
# - Nothing is created here. Return pathlib.Path only.
#
########################
# Interfaces:
# Public functions:
# - app_root_dir() -> pathlib.Path
# - ocr_data_dir() -> pathlib.Path
# - default_score_store_path() -> pathlib.Path
# - resolve_app_path(path_text: Optional[str], default: pathlib.Path) -> pathlib.Path
#
# Inputs:
# - None (derived from the launched Python entrypoint file location).
#
# Outputs:
# - Paths used by scorescope.py and web_server.py.
#
########################

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional


def _entrypoint_file_path() -> Optional[Path]:
    """Best-effort resolution of the launched Python entrypoint file."""
    main_module = sys.modules.get("__main__")
    main_file = getattr(main_module, "__file__", None)
    if main_file:
        return Path(str(main_file)).resolve()

    argv0 = str(sys.argv[0] or "").strip()
    if argv0 and argv0 not in {"-c", "-m"}:
        try:
            return Path(argv0).resolve()
        except OSError:
            return None

    return None


def app_root_dir() -> Path:
    """Return the directory containing the launched .py file, or the working directory."""
    entrypoint_path = _entrypoint_file_path()
    if entrypoint_path is not None:
        return entrypoint_path.parent

    return Path.cwd().resolve()


def ocr_data_dir() -> Path:
    """Return the tessdata directory holding eng and digitsall_layer (not created automatically)."""
    return app_root_dir() / "ocr_data"


def default_score_store_path() -> Path:
    return app_root_dir() / "scores.json"


def resolve_app_path(path_text: Optional[str], default: Path) -> Path:
    """Resolve a configured path. Relative paths are taken relative to app_root_dir()."""
    text = str(path_text or "").strip()
    if not text:
        return default
    path = Path(text).expanduser()
    if path.is_absolute():
        return path
    return app_root_dir() / path

from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import Dict


log = logging.getLogger(__name__)

SETTINGS_PATH: Path | None = None


def init_settings(path: Path) -> None:
    global SETTINGS_PATH
    SETTINGS_PATH = path
    path.parent.mkdir(parents=True, exist_ok=True)
    if not path.exists():
        save_settings(default_settings())


def default_settings() -> Dict:
    return {
        # Extra JSON profile files/directories loaded at startup
        "profiles_paths": [],
        # Upload limits for export jobs
        "max_rows": 5000,
        "max_upload_bytes": 10 * 1024 * 1024,
        # Export behaviour
        "formula_guard": True,
        "only_valid_default": False,
        "log_level": "INFO",
    }


def _settings_path() -> Path:
    if SETTINGS_PATH is None:
        raise RuntimeError("Settings are not initialised; call init_settings() first")
    return SETTINGS_PATH


def get_settings() -> Dict:
    path = _settings_path()
    base = default_settings()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        log.warning(f"Settings unreadable at {path}, using defaults: {e}")
        return base
    base.update(data or {})
    return base


def save_settings(data: Dict) -> None:
    _settings_path().write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")

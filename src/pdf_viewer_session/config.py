# src/pdf_viewer_session/config.py
"""
設定の読み込み。
~/.pdf_viewer_session/config.json があれば上書きする（無ければデフォルト）。
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path

logger = logging.getLogger(__name__)

APP_DIR_NAME = ".pdf_viewer_session"
CONFIG_FILE_NAME = "config.json"


@dataclass(frozen=True)
class SessionConfig:
    save_page_numbers: bool = True
    max_saved_pages: int = 100
    pages_file: Path | None = None  # None = default_pages_path()
    endpoint_prefix: str = "pdf_viewer_"
    ipc_timeout_ms: int = 5000
    print_commands: bool = False
    initial_zoom: float = 1.0
    initial_rotation: int = 0


_FIELD_NAMES = frozenset(f.name for f in fields(SessionConfig))

# 型チェックの後に見る値域（説明, 判定）
_RANGES = {
    "max_saved_pages": ("an integer >= 1", lambda v: v >= 1),
    "ipc_timeout_ms": ("a positive integer", lambda v: v > 0),
    "initial_zoom": ("a positive number", lambda v: v > 0),
    "endpoint_prefix": ("a non-empty string", lambda v: bool(v)),
    "initial_rotation": ("one of 0, 90, 180, 270", lambda v: v in (0, 90, 180, 270)),
}


def default_config_path() -> Path:
    return Path.home() / APP_DIR_NAME / CONFIG_FILE_NAME


def load_config(path: Path | None = None) -> SessionConfig:
    cfg_path = path or default_config_path()
    try:
        raw = json.loads(cfg_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return SessionConfig()
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable config %s: %s", cfg_path, e)
        return SessionConfig()

    if not isinstance(raw, dict):
        logger.warning("Ignoring config %s: top level is not an object", cfg_path)
        return SessionConfig()

    defaults = SessionConfig()
    values = {}
    for key, value in raw.items():
        if key not in _FIELD_NAMES:
            logger.warning("Unknown config key %r in %s", key, cfg_path)
            continue
        if key == "pages_file":
            if value is not None and not isinstance(value, str):
                logger.warning("Config key %r in %s must be a path string", key, cfg_path)
                continue
            values[key] = Path(value).expanduser() if value else None
            continue
        expected = type(getattr(defaults, key))
        # bool は int のサブクラスなので type で厳密に比較する
        if type(value) is not expected and not (expected is float and type(value) is int):
            logger.warning("Config key %r in %s must be %s", key, cfg_path, expected.__name__)
            continue
        if key in _RANGES:
            what, ok = _RANGES[key]
            if not ok(value):
                logger.warning("Config key %r in %s must be %s, got %r", key, cfg_path, what, value)
                continue
        values[key] = expected(value)

    return replace(defaults, **values)

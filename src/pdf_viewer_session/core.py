# src/pdf_viewer_session/core.py
"""
エントリポイント。

起動の流れ:
1. 引数・設定・ログ
2. 既存インスタンスへの転送を試みる（成功したら exit(0)）
3. 自分がサーバになってウィンドウを開く
"""
from __future__ import annotations

import logging
import sys
from dataclasses import replace
from typing import Sequence

from PyQt6.QtWidgets import QApplication

from pdf_viewer_session.cli import parse_intent
from pdf_viewer_session.config import load_config
from pdf_viewer_session.ipc.channel import InstanceChannel
from pdf_viewer_session.ipc.coordinator import InstanceCoordinator
from pdf_viewer_session.services.page_cache import PageRecencyCache
from pdf_viewer_session.services.page_store import PersistedPageStore
from pdf_viewer_session.ui.viewer_app import ViewerApp

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def main(argv: Sequence[str] | None = None) -> None:
    intent, ns = parse_intent(sys.argv[1:] if argv is None else list(argv))

    logging.basicConfig(level=getattr(logging, ns.log_level), format=LOG_FORMAT)

    config = load_config(ns.cfg)
    if ns.cmd:
        config = replace(config, print_commands=True)
    if ns.zoom is not None:
        config = replace(config, initial_zoom=ns.zoom / 100.0)
    if ns.rot is not None:
        config = replace(config, initial_rotation=ns.rot)

    app = QApplication(sys.argv[:1] or ["pdf-viewer-session"])
    app.setApplicationName("pdf-viewer-session")

    store = PersistedPageStore(config.pages_file, capacity=config.max_saved_pages)
    cache = PageRecencyCache(store, enabled=config.save_page_numbers)
    viewer = ViewerApp(cache, config, password=ns.pw)

    channel = InstanceChannel(prefix=config.endpoint_prefix, timeout_ms=config.ipc_timeout_ms)
    coordinator = InstanceCoordinator(channel, execute_command=viewer.execute_command)

    app.aboutToQuit.connect(viewer.shutdown)
    app.aboutToQuit.connect(coordinator.release)

    if coordinator.start(intent, viewer):
        sys.exit(0)

    sys.exit(app.exec())

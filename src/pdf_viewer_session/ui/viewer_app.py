# src/pdf_viewer_session/ui/viewer_app.py
"""
ウィンドウ群の管理と、ウィンドウに属さないコマンドの実行。

- 文書を開くときは PageRecencyCache から前回のページを引く
- 文書を閉じるときは現在ページを記録して保存する
"""
from __future__ import annotations

import logging
from pathlib import Path

from PyQt6.QtCore import QObject
from PyQt6.QtWidgets import QApplication, QMessageBox

from pdf_viewer_session.config import SessionConfig
from pdf_viewer_session.errors import CommandSyntaxError
from pdf_viewer_session.ipc.commands import OPEN_FILE_IN, RAISE, parse_command
from pdf_viewer_session.services.page_cache import PageRecencyCache
from pdf_viewer_session.ui.main_window import ViewerWindow
from pdf_viewer_session.ui.pdf_view import PdfPageView

logger = logging.getLogger(__name__)


class ViewerApp(QObject):
    def __init__(
        self,
        cache: PageRecencyCache,
        config: SessionConfig | None = None,
        interactive: bool = True,
        password: str | None = None,
    ) -> None:
        super().__init__()
        # 暗号化 PDF 用。このプロセスで開く全ての文書に使う
        self.password = password
        self._cache = cache
        self._config = config or SessionConfig()
        self._interactive = interactive
        self._windows: list[ViewerWindow] = []

    @property
    def windows(self) -> list[ViewerWindow]:
        return list(self._windows)

    @property
    def cache(self) -> PageRecencyCache:
        return self._cache

    # ---- windows ----

    def new_window(self, fullscreen: bool = False) -> ViewerWindow:
        win = ViewerWindow(self, zoom=self._config.initial_zoom, rotation=self._config.initial_rotation)
        self._windows.append(win)
        if fullscreen:
            win.showFullScreen()
        else:
            win.resize(900, 1000)
            win.show()
        return win

    def open_in_new_window(self, path: str, page: int | None = None, fullscreen: bool = False) -> bool:
        win = self.new_window(fullscreen)
        if self.open_in_tab(win, path, page):
            return True
        win.close()
        return False

    def open_in_new_tab(self, path: str, page: int | None = None) -> bool:
        win = self._target_window()
        if win is None:
            return self.open_in_new_window(path, page)
        return self.open_in_tab(win, path, page)

    def open_in_tab(self, win: ViewerWindow, path: str, page: int | None = None) -> bool:
        p = Path(path).expanduser()
        return win.open_in_new_tab(p, page if page is not None else self._cache.get(p))

    def open_in_current_tab(self, path: str, page: int | None = None) -> bool:
        win = self._target_window()
        if win is None:
            return self.open_in_new_window(path, page)
        p = Path(path).expanduser()
        return win.open_in_current_tab(p, page if page is not None else self._cache.get(p))

    def window_closing(self, win: ViewerWindow) -> None:
        self.record_pages(win.views())
        if win in self._windows:
            self._windows.remove(win)

    def quit(self) -> None:
        for win in list(self._windows):
            win.close()
        self._windows.clear()
        self._cache.flush_if_dirty()
        QApplication.quit()

    def shutdown(self) -> None:
        """QApplication.aboutToQuit から呼ぶ。"""
        self._cache.flush_if_dirty()

    # ---- page numbers ----

    def record_pages(self, views: list[PdfPageView]) -> None:
        for view in views:
            if view.path is not None:
                self._cache.record(view.path, view.current_page)
        self._cache.flush_if_dirty()

    def report_open_failure(self, win: ViewerWindow, path: Path, error: Exception) -> None:
        logger.warning("Cannot open %s: %s", path, error)
        if self._interactive:
            QMessageBox.critical(win, "Open failed", f"{path}\n\n{error}")

    # ---- commands ----

    def execute_command(self, command: str) -> None:
        """リモート/コマンドライン由来のコマンド（特定のウィンドウに属さない）。"""
        if self._config.print_commands:
            print(command)
        try:
            cmd = parse_command(command)
        except CommandSyntaxError as e:
            logger.warning("Ignoring malformed command %r: %s", command, e)
            return

        if cmd.name == OPEN_FILE_IN:
            if len(cmd.args) != 2:
                logger.warning("openFileIn needs 2 arguments: %r", command)
                return
            path, location = cmd.args
            if location == "win":
                self.open_in_new_window(path)
            else:
                self.open_in_new_tab(path)
            return
        if cmd.name == "openFile":
            if len(cmd.args) != 1:
                logger.warning("openFile needs 1 argument: %r", command)
                return
            self.open_in_current_tab(cmd.args[0])
            return
        if cmd.name == RAISE:
            win = self._target_window()
            if win is None:
                win = self.new_window()
            win.raise_window()
            return
        if cmd.name == "quit":
            self.quit()
            return

        win = self._target_window()
        if win is None or not win.exec_command(cmd):
            logger.warning("Unknown or inapplicable command %r", command)

    def _target_window(self) -> ViewerWindow | None:
        active = QApplication.activeWindow()
        if isinstance(active, ViewerWindow) and active in self._windows:
            return active
        return self._windows[-1] if self._windows else None

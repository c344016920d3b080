# src/pdf_viewer_session/ui/main_window.py
from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from PyQt6.QtCore import Qt
from PyQt6.QtGui import QAction, QKeySequence
from PyQt6.QtWidgets import QFileDialog, QLabel, QMainWindow, QTabWidget, QToolBar

from pdf_viewer_session.ipc.commands import Command
from pdf_viewer_session.ui.pdf_view import PdfPageView

if TYPE_CHECKING:
    from pdf_viewer_session.ui.viewer_app import ViewerApp


class ViewerWindow(QMainWindow):
    """
    タブで複数文書を持つビューアウィンドウ。
    ページ番号の保存・復元は ViewerApp に任せる。
    """

    def __init__(self, app: ViewerApp, zoom: float = 1.0, rotation: int = 0) -> None:
        super().__init__()
        self.setWindowTitle("pdf-viewer-session")
        self.setAttribute(Qt.WidgetAttribute.WA_DeleteOnClose)

        self._app = app
        self._zoom = zoom
        self._rotation = rotation

        self._tabs = QTabWidget(self)
        self._tabs.setTabsClosable(True)
        self._tabs.setDocumentMode(True)
        self._tabs.tabCloseRequested.connect(self.close_tab)
        self._tabs.currentChanged.connect(lambda _: self._update_page_status())
        self.setCentralWidget(self._tabs)

        self._build_toolbar()
        self._build_menus()
        self._update_page_status()

    def _build_toolbar(self) -> None:
        tb = QToolBar("Main")
        tb.setMovable(False)
        self.addToolBar(tb)

        act_open = QAction("Open", self)
        act_open.setShortcut(QKeySequence.StandardKey.Open)
        act_open.triggered.connect(self.open_pdf_dialog)
        tb.addAction(act_open)

        tb.addSeparator()

        act_prev = QAction("Prev", self)
        act_prev.setShortcut(QKeySequence(Qt.Key.Key_PageUp))
        act_prev.triggered.connect(lambda: self._on_view(PdfPageView.prev_page))
        tb.addAction(act_prev)

        act_next = QAction("Next", self)
        act_next.setShortcut(QKeySequence(Qt.Key.Key_PageDown))
        act_next.triggered.connect(lambda: self._on_view(PdfPageView.next_page))
        tb.addAction(act_next)

        tb.addSeparator()

        act_zoomin = QAction("Zoom +", self)
        act_zoomin.setShortcut(QKeySequence.StandardKey.ZoomIn)
        act_zoomin.triggered.connect(lambda: self._on_view(lambda v: v.zoom_by(1.1)))
        tb.addAction(act_zoomin)

        act_zoomout = QAction("Zoom -", self)
        act_zoomout.setShortcut(QKeySequence.StandardKey.ZoomOut)
        act_zoomout.triggered.connect(lambda: self._on_view(lambda v: v.zoom_by(1 / 1.1)))
        tb.addAction(act_zoomout)

        act_rot_ccw = QAction("Rotate -", self)
        act_rot_ccw.triggered.connect(lambda: self._on_view(PdfPageView.rotate_ccw))
        tb.addAction(act_rot_ccw)

        act_rot_cw = QAction("Rotate +", self)
        act_rot_cw.triggered.connect(lambda: self._on_view(PdfPageView.rotate_cw))
        tb.addAction(act_rot_cw)

        tb.addSeparator()

        self._lbl_page = QLabel("-", self)
        self._lbl_page.setAlignment(Qt.AlignmentFlag.AlignVCenter | Qt.AlignmentFlag.AlignRight)
        self._lbl_page.setMinimumWidth(100)
        tb.addWidget(self._lbl_page)

    def _build_menus(self) -> None:
        m_file = self.menuBar().addMenu("File")

        act_open = QAction("Open...", self)
        act_open.setShortcut(QKeySequence.StandardKey.Open)
        act_open.triggered.connect(self.open_pdf_dialog)
        m_file.addAction(act_open)

        act_close_tab = QAction("Close tab", self)
        act_close_tab.setShortcut(QKeySequence.StandardKey.Close)
        act_close_tab.triggered.connect(lambda: self.close_tab(self._tabs.currentIndex()))
        m_file.addAction(act_close_tab)

        m_file.addSeparator()

        act_close = QAction("Close window", self)
        act_close.triggered.connect(self.close)
        m_file.addAction(act_close)

        act_exit = QAction("Exit", self)
        act_exit.setShortcut(QKeySequence.StandardKey.Quit)
        act_exit.triggered.connect(self._app.quit)
        m_file.addAction(act_exit)

    # ---- documents ----

    def views(self) -> list[PdfPageView]:
        return [self._tabs.widget(i) for i in range(self._tabs.count())]

    def current_view(self) -> PdfPageView | None:
        w = self._tabs.currentWidget()
        return w if isinstance(w, PdfPageView) else None

    def open_pdf_dialog(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self, "Open PDF", "", "PDF Files (*.pdf)")
        if not path:
            return
        self._app.open_in_tab(self, path)

    def open_in_new_tab(self, path: Path, page: int) -> bool:
        view = PdfPageView(zoom=self._zoom, rotation=self._rotation)
        try:
            view.load_pdf(path, page, password=self._app.password)
        except Exception as e:
            view.deleteLater()
            self._app.report_open_failure(self, path, e)
            return False
        view.page_changed.connect(lambda _: self._update_page_status())
        idx = self._tabs.addTab(view, path.name)
        self._tabs.setTabToolTip(idx, str(path))
        self._tabs.setCurrentIndex(idx)
        self._update_title()
        return True

    def open_in_current_tab(self, path: Path, page: int) -> bool:
        view = self.current_view()
        if view is None:
            return self.open_in_new_tab(path, page)
        if view.path is not None:
            self._app.record_pages([view])
        try:
            view.load_pdf(path, page, password=self._app.password)
        except Exception as e:
            self._app.report_open_failure(self, path, e)
            return False
        idx = self._tabs.currentIndex()
        self._tabs.setTabText(idx, path.name)
        self._tabs.setTabToolTip(idx, str(path))
        self._update_title()
        self._update_page_status()
        return True

    def close_tab(self, index: int) -> None:
        view = self._tabs.widget(index)
        if not isinstance(view, PdfPageView):
            return
        self._app.record_pages([view])
        self._tabs.removeTab(index)
        view.close_document()
        view.deleteLater()
        self._update_title()
        self._update_page_status()

    # ---- commands ----

    def exec_command(self, cmd: Command) -> bool:
        """このウィンドウ宛てのコマンド。処理したら True。"""
        view = self.current_view()
        name = cmd.name
        if name == "gotoPage":
            if view is None or len(cmd.args) != 1:
                return False
            try:
                view.goto_page(int(cmd.args[0]))
            except ValueError:
                return False
            return True
        simple = {
            "nextPage": PdfPageView.next_page,
            "prevPage": PdfPageView.prev_page,
            "firstPage": PdfPageView.first_page,
            "lastPage": PdfPageView.last_page,
            "zoomIn": lambda v: v.zoom_by(1.1),
            "zoomOut": lambda v: v.zoom_by(1 / 1.1),
            "rotateCW": PdfPageView.rotate_cw,
            "rotateCCW": PdfPageView.rotate_ccw,
        }
        if name in simple:
            if view is not None:
                simple[name](view)
            return True
        if name == "closeTab":
            if self._tabs.count():
                self.close_tab(self._tabs.currentIndex())
            return True
        if name == "closeWindow":
            self.close()
            return True
        return False

    def raise_window(self) -> None:
        if self.isMinimized():
            self.showNormal()
        self.show()
        self.raise_()
        self.activateWindow()

    # ---- internal ----

    def _on_view(self, fn) -> None:
        view = self.current_view()
        if view is not None:
            fn(view)

    def _update_title(self) -> None:
        view = self.current_view()
        if view is not None and view.path is not None:
            self.setWindowTitle(f"{view.path.name} - pdf-viewer-session")
        else:
            self.setWindowTitle("pdf-viewer-session")

    def _update_page_status(self) -> None:
        view = self.current_view()
        if view is None or not view.page_count:
            self._lbl_page.setText("-")
        else:
            self._lbl_page.setText(f"{view.current_page}/{view.page_count}")
        self._update_title()

    def closeEvent(self, event) -> None:
        self._app.window_closing(self)
        super().closeEvent(event)

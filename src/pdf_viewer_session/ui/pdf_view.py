# src/pdf_viewer_session/ui/pdf_view.py
from __future__ import annotations

from pathlib import Path

import pypdfium2 as pdfium
from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtGui import QImage, QPixmap
from PyQt6.QtWidgets import QLabel, QScrollArea

from pdf_viewer_session.ui.page_rotation import Rotation

MIN_ZOOM = 0.2
MAX_ZOOM = 5.0
# 画面用のレンダリング倍率（zoom=1.0 で 144dpi 相当）
RENDER_SCALE = 2.0


class PdfPageView(QScrollArea):
    """1 文書を 1 ページずつ表示するビュー。ページ番号は 1 始まり。"""

    page_changed = pyqtSignal(int)

    def __init__(self, zoom: float = 1.0, rotation: int = 0) -> None:
        super().__init__()
        self.setWidgetResizable(True)

        self._label = QLabel(self)
        self._label.setAlignment(Qt.AlignmentFlag.AlignHCenter | Qt.AlignmentFlag.AlignTop)
        self.setWidget(self._label)

        self._doc: pdfium.PdfDocument | None = None
        self._path: Path | None = None
        self._page = 1
        self._zoom = max(MIN_ZOOM, min(MAX_ZOOM, zoom))
        self._rotation = Rotation(rotation)

        self.setVerticalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAsNeeded)
        self.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAsNeeded)

    @property
    def path(self) -> Path | None:
        return self._path

    @property
    def current_page(self) -> int:
        return self._page

    @property
    def page_count(self) -> int:
        return len(self._doc) if self._doc is not None else 0

    @property
    def zoom(self) -> float:
        return self._zoom

    @property
    def rotation(self) -> int:
        return self._rotation.normalized()

    def load_pdf(self, path: Path, page: int = 1, password: str | None = None) -> None:
        # 失敗時は pdfium.PdfiumError / OSError をそのまま投げる（呼び出し側で表示）
        # 暗号化されていない文書では password は無視される
        doc = pdfium.PdfDocument(str(path), password=password)
        self.close_document()
        self._doc = doc
        self._path = path
        self._page = 0
        self.goto_page(page)

    def close_document(self) -> None:
        if self._doc is not None:
            self._doc.close()
        self._doc = None
        self._path = None
        self._page = 1
        self._label.clear()

    def goto_page(self, page: int) -> None:
        if not self._doc:
            return
        # 範囲外は端に丸める（保存ページ数が文書より大きい場合など）
        page = max(1, min(len(self._doc), page))
        if page == self._page:
            return
        self._page = page
        self._render()
        self.verticalScrollBar().setValue(0)
        self.page_changed.emit(page)

    def next_page(self) -> None:
        self.goto_page(self._page + 1)

    def prev_page(self) -> None:
        self.goto_page(self._page - 1)

    def first_page(self) -> None:
        self.goto_page(1)

    def last_page(self) -> None:
        self.goto_page(self.page_count)

    def zoom_by(self, factor: float) -> None:
        self._zoom = max(MIN_ZOOM, min(MAX_ZOOM, self._zoom * factor))
        self._render()

    def rotate_cw(self) -> None:
        self._rotation = self._rotation.cw()
        self._render()

    def rotate_ccw(self) -> None:
        self._rotation = self._rotation.ccw()
        self._render()

    def wheelEvent(self, event) -> None:
        if event.modifiers() & Qt.KeyboardModifier.ControlModifier:
            delta = event.angleDelta().y()
            if delta > 0:
                self.zoom_by(1.1)
            elif delta < 0:
                self.zoom_by(1 / 1.1)
            event.accept()
            return
        super().wheelEvent(event)

    def _render(self) -> None:
        if not self._doc:
            return
        page = self._doc[self._page - 1]
        bitmap = page.render(scale=self._zoom * RENDER_SCALE, rotation=self._rotation.normalized())
        pil = bitmap.to_pil()

        rgba = pil.convert("RGBA")
        data = rgba.tobytes("raw", "RGBA")
        qimg = QImage(data, rgba.width, rgba.height, QImage.Format.Format_RGBA8888)
        # fromImage でコピーされるので data の寿命はここまでで良い
        self._label.setPixmap(QPixmap.fromImage(qimg))

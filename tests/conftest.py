# tests/conftest.py
from __future__ import annotations

import os
import uuid

import pytest

# 画面の無い環境でもウィジェットを作れるようにする
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


@pytest.fixture(scope="session")
def qapp():
    from PyQt6.QtWidgets import QApplication

    app = QApplication.instance() or QApplication(["pytest"])
    app.setQuitOnLastWindowClosed(False)
    yield app


@pytest.fixture
def identity() -> str:
    """テストごとに別のエンドポイント名を使う。"""
    return f"test-{uuid.uuid4().hex[:12]}"


@pytest.fixture
def channel(qapp):
    from pdf_viewer_session.ipc.channel import InstanceChannel

    return InstanceChannel(prefix="pdf_viewer_test_", timeout_ms=2000)


@pytest.fixture
def make_pdf(tmp_path):
    import pypdfium2 as pdfium

    def _make(name: str = "doc.pdf", pages: int = 5):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        pdf = pdfium.PdfDocument.new()
        for _ in range(pages):
            pdf.new_page(200, 300)
        pdf.save(str(path))
        pdf.close()
        return path

    return _make


@pytest.fixture
def pump_until(qapp):
    """Qt のイベントループを回しながら predicate が真になるのを待つ。"""
    import time

    def _pump(predicate, timeout_s: float = 3.0) -> bool:
        deadline = time.monotonic() + timeout_s
        while time.monotonic() < deadline:
            qapp.processEvents()
            if predicate():
                return True
            time.sleep(0.01)
        return bool(predicate())

    return _pump

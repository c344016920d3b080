# tests/test_viewer_app.py
from __future__ import annotations

import pytest

from pdf_viewer_session.config import SessionConfig
from pdf_viewer_session.ipc.commands import open_file_in_command
from pdf_viewer_session.services.page_cache import PageRecencyCache
from pdf_viewer_session.services.page_store import PersistedPageStore
from pdf_viewer_session.ui.viewer_app import ViewerApp


@pytest.fixture
def viewer(qapp, tmp_path):
    cache = PageRecencyCache(PersistedPageStore(tmp_path / "pages"))
    app = ViewerApp(cache, SessionConfig(), interactive=False)
    yield app
    for win in app.windows:
        win.close()


def test_open_restores_saved_page(viewer, make_pdf):
    pdf = make_pdf("a.pdf", pages=6)
    viewer.cache.record(pdf, 4)

    assert viewer.open_in_new_window(str(pdf))
    view = viewer.windows[0].current_view()
    assert view.current_page == 4
    assert view.page_count == 6


def test_explicit_page_wins_and_is_clamped(viewer, make_pdf):
    pdf = make_pdf("a.pdf", pages=3)
    viewer.cache.record(pdf, 2)

    assert viewer.open_in_new_window(str(pdf), page=99)
    assert viewer.windows[0].current_view().current_page == 3


def test_closing_window_records_page(viewer, make_pdf, tmp_path):
    pdf = make_pdf("a.pdf", pages=8)
    viewer.open_in_new_window(str(pdf))
    win = viewer.windows[0]
    viewer.execute_command("gotoPage(5)")
    win.close()

    assert viewer.windows == []
    reloaded = PageRecencyCache(PersistedPageStore(tmp_path / "pages"))
    assert reloaded.get(pdf) == 5


def test_open_file_in_command_opens_tab(viewer, make_pdf):
    a = make_pdf("a.pdf")
    b = make_pdf("dir (1)/b,c.pdf")
    viewer.open_in_new_window(str(a))

    viewer.execute_command(open_file_in_command(b, "tab"))
    viewer.execute_command("raise")

    win = viewer.windows[0]
    assert len(viewer.windows) == 1
    assert [v.path for v in win.views()] == [a, b]


def test_page_navigation_commands(viewer, make_pdf):
    viewer.open_in_new_window(str(make_pdf("a.pdf", pages=4)))
    view = viewer.windows[0].current_view()

    viewer.execute_command("lastPage")
    assert view.current_page == 4
    viewer.execute_command("prevPage")
    assert view.current_page == 3
    viewer.execute_command("firstPage")
    assert view.current_page == 1
    viewer.execute_command("nextPage")
    assert view.current_page == 2


def test_close_tab_records_page(viewer, make_pdf):
    a = make_pdf("a.pdf", pages=5)
    viewer.open_in_new_window(str(a))
    viewer.execute_command("gotoPage(3)")
    viewer.execute_command("closeTab")

    assert viewer.windows[0].views() == []
    assert viewer.cache.get(a) == 3
    assert not viewer.cache.dirty


def test_open_failure_is_not_fatal(viewer, tmp_path):
    bad = tmp_path / "bad.pdf"
    bad.write_text("not a pdf")

    assert viewer.open_in_new_window(str(bad)) is False
    assert viewer.windows == []


def test_unknown_and_malformed_commands_are_ignored(viewer, caplog):
    viewer.execute_command("fly()")
    viewer.execute_command("openFileIn(x")
    assert "fly()" in caplog.text
    assert "malformed" in caplog.text


def test_shutdown_flushes_recorded_pages(viewer, make_pdf, tmp_path):
    pdf = make_pdf("a.pdf", pages=9)
    viewer.cache.record(pdf, 7)
    assert viewer.cache.dirty
    assert not (tmp_path / "pages").exists()

    viewer.shutdown()

    assert not viewer.cache.dirty
    text = (tmp_path / "pages").read_text(encoding="utf-8")
    assert f"7 {pdf.resolve()}" in text.splitlines()


def test_initial_rotation_and_rotate_commands(qapp, make_pdf, tmp_path):
    cache = PageRecencyCache(PersistedPageStore(tmp_path / "pages"))
    app = ViewerApp(cache, SessionConfig(initial_rotation=90), interactive=False)
    try:
        app.open_in_new_window(str(make_pdf("a.pdf")))
        view = app.windows[0].current_view()
        assert view.rotation == 90
        # 200x300 のページが横長になる
        pm = view.widget().pixmap()
        assert pm.width() > pm.height()

        app.execute_command("rotateCW")
        assert view.rotation == 180
        app.execute_command("rotateCCW")
        app.execute_command("rotateCCW")
        assert view.rotation == 0
    finally:
        for win in app.windows:
            win.close()


def test_password_is_passed_to_open(qapp, make_pdf, tmp_path):
    # 暗号化されていない文書ではパスワードは無視される
    cache = PageRecencyCache(PersistedPageStore(tmp_path / "pages"))
    app = ViewerApp(cache, SessionConfig(), interactive=False, password="secret")
    try:
        assert app.open_in_new_window(str(make_pdf("a.pdf", pages=2)))
        assert app.windows[0].current_view().page_count == 2
    finally:
        for win in app.windows:
            win.close()

# tests/test_cli.py
from __future__ import annotations

import pytest

from pdf_viewer_session.cli import DEFAULT_IDENTITY, FileRequest, LaunchMode, parse_file_requests, parse_intent


def test_plain_invocation():
    intent, ns = parse_intent(["a.pdf", "b.pdf"])
    assert intent.mode is LaunchMode.PLAIN
    assert intent.identity is None
    assert intent.args == ("a.pdf", "b.pdf")
    assert ns.log_level == "WARNING"


def test_open_uses_default_identity():
    intent, _ = parse_intent(["--open", "a.pdf"])
    assert intent.mode is LaunchMode.OPEN_DEFAULT
    assert intent.identity == DEFAULT_IDENTITY


def test_remote_keeps_commands_in_order():
    intent, _ = parse_intent(["--remote", "work", "openFile(/x.pdf)", "gotoPage(3)", "raise"])
    assert intent.mode is LaunchMode.REMOTE
    assert intent.identity == "work"
    assert intent.args == ("openFile(/x.pdf)", "gotoPage(3)", "raise")


def test_open_and_remote_are_exclusive():
    with pytest.raises(SystemExit):
        parse_intent(["--open", "--remote", "x"])


def test_empty_remote_name_is_rejected():
    with pytest.raises(SystemExit):
        parse_intent(["--remote", ""])


def test_flags():
    intent, ns = parse_intent(["--fullscreen", "--cmd", "--log-level", "DEBUG"])
    assert intent.fullscreen
    assert ns.cmd
    assert ns.log_level == "DEBUG"


def test_file_requests_with_pages():
    assert parse_file_requests(["a.pdf", ":4", "b.pdf", "c.pdf", ":x", "d.pdf", ":0"]) == [
        FileRequest("a.pdf", 4),
        FileRequest("b.pdf", None),
        FileRequest("c.pdf", None),
        FileRequest("d.pdf", 1),
    ]


def test_options_between_files():
    intent, _ = parse_intent(["a.pdf", "--fullscreen", "b.pdf", ":3"])
    assert intent.fullscreen
    assert intent.args == ("a.pdf", "b.pdf", ":3")


def test_view_options():
    _, ns = parse_intent(["-z", "150", "--rot", "90", "--pw", "secret", "a.pdf"])
    assert ns.zoom == 150.0
    assert ns.rot == 90
    assert ns.pw == "secret"


def test_view_options_default_to_none():
    _, ns = parse_intent(["a.pdf"])
    assert ns.zoom is None
    assert ns.rot is None
    assert ns.pw is None


@pytest.mark.parametrize("argv", [["-z", "0"], ["--zoom", "big"], ["--rot", "45"]])
def test_invalid_view_options_are_rejected(argv):
    with pytest.raises(SystemExit):
        parse_intent(argv)

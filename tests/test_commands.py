# tests/test_commands.py
from __future__ import annotations

import os

import pytest

from pdf_viewer_session.errors import CommandSyntaxError
from pdf_viewer_session.ipc.commands import (
    ESCAPE,
    Command,
    escape_argument,
    open_file_in_command,
    parse_command,
)


def test_escape_marks_delimiters():
    assert escape_argument("a(b),c\x01d") == f"a{ESCAPE}(b{ESCAPE}){ESCAPE},c{ESCAPE}\x01d"
    assert escape_argument("/plain/path.pdf") == "/plain/path.pdf"


def test_open_file_in_command_is_absolute(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    cmd = open_file_in_command("a.pdf")
    assert cmd == f"openFileIn({os.path.join(os.getcwd(), 'a.pdf')},tab)"


def test_path_with_delimiters_round_trips():
    path = "/tmp/report (final),v2.pdf"
    cmd = parse_command(open_file_in_command(path))
    assert cmd == Command("openFileIn", (path, "tab"))


def test_path_with_escape_byte_round_trips():
    path = "/tmp/odd\x01name.pdf"
    assert parse_command(open_file_in_command(path, "win")).args == (path, "win")


def test_parse_bare_and_empty_parens():
    assert parse_command("raise") == Command("raise")
    assert parse_command("nextPage()") == Command("nextPage")
    assert parse_command("  gotoPage(12)\r\n") == Command("gotoPage", ("12",))


@pytest.mark.parametrize(
    "line",
    ["", "   ", "gotoPage(3", "(x)", "open(a)b", "open(a(b)", "x,y", f"open(a{ESCAPE}"],
)
def test_parse_rejects_malformed(line):
    with pytest.raises(CommandSyntaxError):
        parse_command(line)


def test_relative_path_uses_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (name,) = parse_command(open_file_in_command(os.path.join("sub", "x,y.pdf"))).args[:1]
    assert name == os.path.join(os.getcwd(), "sub", "x,y.pdf")

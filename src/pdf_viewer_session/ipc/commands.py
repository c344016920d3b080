# src/pdf_viewer_session/ipc/commands.py
"""
リモートコマンドの組み立てと解析。

コマンドは 1 行のテキスト: `name` または `name(arg1,arg2,...)`。
引数中の `(` `)` `,` と ESCAPE 自身は ESCAPE を前置してエスケープする。
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field

from pdf_viewer_session.errors import CommandSyntaxError

ESCAPE = "\x01"
_SPECIAL = frozenset("(),\x01")

OPEN_FILE_IN = "openFileIn"
RAISE = "raise"


@dataclass(frozen=True)
class Command:
    name: str
    args: tuple[str, ...] = field(default_factory=tuple)


def escape_argument(text: str) -> str:
    return "".join(ESCAPE + c if c in _SPECIAL else c for c in text)


def open_file_in_command(path: str | os.PathLike[str], location: str = "tab") -> str:
    # 相対パスはここで絶対パスにする（受け手のカレントディレクトリは別物）
    abs_path = os.path.abspath(os.fspath(path))
    return f"{OPEN_FILE_IN}({escape_argument(abs_path)},{location})"


def parse_command(line: str) -> Command:
    text = line.strip(" \t\r\n")
    if not text:
        raise CommandSyntaxError("empty command")

    paren = text.find("(")
    if paren < 0:
        if ")" in text or "," in text:
            raise CommandSyntaxError(f"unexpected delimiter in {text!r}")
        return Command(text)

    name = text[:paren]
    if not name:
        raise CommandSyntaxError(f"missing command name in {text!r}")

    args: list[str] = []
    cur: list[str] = []
    i = paren + 1
    n = len(text)
    while i < n:
        c = text[i]
        if c == ESCAPE:
            if i + 1 >= n:
                raise CommandSyntaxError(f"dangling escape in {text!r}")
            cur.append(text[i + 1])
            i += 2
            continue
        if c == ",":
            args.append("".join(cur))
            cur = []
        elif c == ")":
            if i != n - 1:
                raise CommandSyntaxError(f"trailing text after ')' in {text!r}")
            args.append("".join(cur))
            # `name()` は引数なし
            if args == [""]:
                args = []
            return Command(name, tuple(args))
        elif c == "(":
            raise CommandSyntaxError(f"unescaped '(' in {text!r}")
        else:
            cur.append(c)
        i += 1

    raise CommandSyntaxError(f"missing ')' in {text!r}")

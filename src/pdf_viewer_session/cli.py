# src/pdf_viewer_session/cli.py
"""
コマンドライン引数 → LaunchIntent。

  pdf-viewer-session [file [:page]] ...
  pdf-viewer-session --open file          既定サーバ("default")で開く
  pdf-viewer-session --remote NAME cmd... 残りの引数はコマンド
"""
from __future__ import annotations

import argparse
import enum
from dataclasses import dataclass, field
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Sequence

DEFAULT_IDENTITY = "default"


class LaunchMode(enum.Enum):
    PLAIN = "plain"
    OPEN_DEFAULT = "open"
    REMOTE = "remote"


@dataclass(frozen=True)
class LaunchIntent:
    mode: LaunchMode
    identity: str | None = None
    args: tuple[str, ...] = field(default_factory=tuple)
    fullscreen: bool = False


@dataclass(frozen=True)
class FileRequest:
    path: str
    page: int | None = None


def _version() -> str:
    try:
        return version("pdf-viewer-session")
    except PackageNotFoundError:
        return "unknown"


def _zoom_percent(text: str) -> float:
    try:
        value = float(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid zoom percentage: {text!r}") from None
    if value <= 0:
        raise argparse.ArgumentTypeError(f"zoom must be positive: {text!r}")
    return value


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="pdf-viewer-session",
        description="PDF viewer with single-instance remote control.",
    )
    p.add_argument("args", nargs="*", metavar="ARG", help="PDF files (optionally followed by :PAGE), or commands with --remote")
    mode = p.add_mutually_exclusive_group()
    mode.add_argument("--open", action="store_true", help="open file using the default remote server")
    mode.add_argument("--remote", metavar="NAME", help="remote server mode - remaining args are commands")
    p.add_argument("--fullscreen", action="store_true", help="run in full-screen mode")
    p.add_argument("-z", "--zoom", type=_zoom_percent, metavar="PERCENT", help="initial zoom level in percent")
    p.add_argument("--rot", type=int, choices=[0, 90, 180, 270], help="initial rotation")
    p.add_argument("--pw", metavar="PASSWORD", help="password for encrypted files")
    p.add_argument("--cmd", action="store_true", help="print commands as they're executed")
    p.add_argument("--cfg", type=Path, metavar="FILE", help="configuration file to use")
    p.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="logging level (default: WARNING)",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {_version()}")
    return p


def parse_intent(argv: Sequence[str] | None = None) -> tuple[LaunchIntent, argparse.Namespace]:
    parser = build_parser()
    # オプションはファイルの間にも置ける（a.pdf --fullscreen b.pdf）
    ns = parser.parse_intermixed_args(argv)
    if ns.remote is not None and not ns.remote:
        parser.error("--remote needs a non-empty server name")

    if ns.remote:
        mode, identity = LaunchMode.REMOTE, ns.remote
    elif ns.open:
        mode, identity = LaunchMode.OPEN_DEFAULT, DEFAULT_IDENTITY
    else:
        mode, identity = LaunchMode.PLAIN, None

    intent = LaunchIntent(mode=mode, identity=identity, args=tuple(ns.args), fullscreen=ns.fullscreen)
    return intent, ns


def parse_file_requests(args: Sequence[str]) -> list[FileRequest]:
    """`file :page` の並びを解釈する（:page は直前のファイルに付く）。"""
    out: list[FileRequest] = []
    i = 0
    while i < len(args):
        path = args[i]
        page = None
        if i + 1 < len(args) and args[i + 1].startswith(":"):
            try:
                page = max(1, int(args[i + 1][1:]))
            except ValueError:
                page = None
            i += 2
        else:
            i += 1
        out.append(FileRequest(path=path, page=page))
    return out

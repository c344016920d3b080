# src/pdf_viewer_session/services/page_store.py
"""
「最後に見たページ」ファイルの読み書き（ポリシーは持たない）。

書式:
    xpdf.pages-1
    <page> <canonical path>
    ...
先頭行がヘッダ。2行目以降は新しい順。パスは最初の空白から行末まで（空白を含んでよい）。
"""
from __future__ import annotations

import logging
import os
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from pdf_viewer_session.errors import MalformedRecord, PersistenceUnavailable

logger = logging.getLogger(__name__)

PAGES_FILE_HEADER = "xpdf.pages-1"
DEFAULT_CAPACITY = 100

# パスは任意バイト列になりうるので、デコードできないバイトも往復させる
_ENCODING = "utf-8"
_ERRORS = "surrogateescape"


@dataclass(frozen=True)
class PageRecord:
    identity: str
    page: int


def default_pages_path() -> Path:
    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        base = Path(appdata) if appdata else Path.home()
        return base / "pdf-viewer-session" / "pages"
    return Path.home() / ".pdf_viewer_session" / "pages"


def parse_record(line: str) -> PageRecord:
    num, sep, identity = line.partition(" ")
    if not sep:
        raise MalformedRecord(line, "missing separator")
    # int() は "+3" や "1_0" も通すので ASCII の数字だけに限る
    if not (num.isascii() and num.isdigit()):
        raise MalformedRecord(line, "page is not an integer")
    page = int(num)
    if page < 1:
        raise MalformedRecord(line, "page must be >= 1")
    if not identity:
        raise MalformedRecord(line, "empty identity")
    return PageRecord(identity=identity, page=page)


def format_record(record: PageRecord) -> str:
    return f"{record.page} {record.identity}"


class PersistedPageStore:
    def __init__(self, path: Path | None = None, capacity: int = DEFAULT_CAPACITY) -> None:
        self._path = Path(path) if path is not None else default_pages_path()
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._capacity = capacity

    @property
    def path(self) -> Path:
        return self._path

    @property
    def capacity(self) -> int:
        return self._capacity

    def modification_token(self) -> int | None:
        """ファイルの mtime（ns）。無ければ None。"""
        try:
            return self._path.stat().st_mtime_ns
        except OSError:
            return None

    def load(self) -> list[PageRecord]:
        try:
            data = self._path.read_bytes()
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.warning("Cannot read page file %s: %s", self._path, e)
            return []

        lines = data.decode(_ENCODING, _ERRORS).split("\n")
        if lines[0] != PAGES_FILE_HEADER:
            logger.warning("Ignoring page file %s: unrecognized header", self._path)
            return []

        records: list[PageRecord] = []
        seen: set[str] = set()
        for line in lines[1:]:
            if len(records) >= self._capacity:
                break
            if not line:
                continue
            try:
                rec = parse_record(line)
            except MalformedRecord as e:
                logger.debug("Skipping record in %s: %s", self._path, e)
                continue
            if rec.identity in seen:
                continue
            seen.add(rec.identity)
            records.append(rec)
        return records

    def save(self, records: Iterable[PageRecord]) -> None:
        """
        一時ファイルに書いてから os.replace で置き換える。
        読み手が書きかけのヘッダを見ることはない。
        """
        lines = [PAGES_FILE_HEADER]
        for rec in records:
            if len(lines) > self._capacity:
                break
            if not rec.identity or rec.page < 1 or "\n" in rec.identity:
                continue
            lines.append(format_record(rec))
        payload = ("\n".join(lines) + "\n").encode(_ENCODING, _ERRORS)

        directory = self._path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=self._path.name + ".", suffix=".tmp", dir=directory)
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(payload)
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise PersistenceUnavailable(f"cannot write page file {self._path}: {e}") from e

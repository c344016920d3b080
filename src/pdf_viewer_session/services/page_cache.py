# src/pdf_viewer_session/services/page_cache.py
"""
文書ごとの「最後に見たページ」を覚える固定長の MRU キャッシュ。

- 最初のアクセスで遅延ロードする
- get/record の前にファイルの mtime を確認し、変わっていれば読み直す
  （他プロセスの書き込みが見える代わりに、未保存のローカル更新は捨てられる）
- flush_if_dirty() は変更があったときだけ保存する

スレッドセーフではない（UI スレッドからのみ呼ぶ前提）。
"""
from __future__ import annotations

import logging
from collections import OrderedDict
from os import PathLike
from pathlib import Path

from pdf_viewer_session.errors import PersistenceUnavailable
from pdf_viewer_session.services.page_store import PageRecord, PersistedPageStore

logger = logging.getLogger(__name__)

DEFAULT_PAGE = 1


def canonical_identity(path: str | PathLike[str]) -> str | None:
    """
    絶対・正規化済みのパスを返す。ファイルに到達できなければ None。
    """
    if not path:
        return None
    try:
        p = Path(path).expanduser().resolve(strict=True)
    except (OSError, RuntimeError, ValueError):
        return None
    return str(p)


class PageRecencyCache:
    def __init__(
        self,
        store: PersistedPageStore,
        capacity: int | None = None,
        enabled: bool = True,
    ) -> None:
        self._store = store
        self._capacity = capacity if capacity is not None else store.capacity
        if self._capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {self._capacity}")
        self._enabled = enabled

        # 先頭 = 最近使ったもの
        self._entries: OrderedDict[str, int] = OrderedDict()
        self._loaded = False
        self._token: int | None = None
        self._dirty = False

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def enabled(self) -> bool:
        return self._enabled

    def entries(self) -> list[PageRecord]:
        self._ensure_fresh()
        return self._snapshot()

    def get(self, path: str | PathLike[str]) -> int:
        if not self._enabled:
            return DEFAULT_PAGE
        identity = canonical_identity(path)
        if identity is None:
            return DEFAULT_PAGE
        self._ensure_fresh()
        return self._entries.get(identity, DEFAULT_PAGE)

    def record(self, path: str | PathLike[str], page: int) -> None:
        if not self._enabled:
            return
        identity = canonical_identity(path)
        if identity is None:
            logger.debug("Not recording page for inaccessible document %s", path)
            return
        self._ensure_fresh()

        # move-to-front
        self._entries.pop(identity, None)
        self._entries[identity] = max(DEFAULT_PAGE, int(page))
        self._entries.move_to_end(identity, last=False)
        while len(self._entries) > self._capacity:
            self._entries.popitem(last=True)
        self._dirty = True

    def flush_if_dirty(self) -> bool:
        """保存したら True。"""
        if not self._enabled or not self._dirty:
            return False
        try:
            self._store.save(self._snapshot())
        except PersistenceUnavailable as e:
            logger.warning("Page numbers not saved: %s", e)
            return False
        self._dirty = False
        self._token = self._store.modification_token()
        return True

    def _snapshot(self) -> list[PageRecord]:
        return [PageRecord(identity=k, page=v) for k, v in self._entries.items()]

    def _ensure_fresh(self) -> None:
        token = self._store.modification_token()
        if self._loaded and token == self._token:
            return
        if self._loaded:
            if self._dirty:
                logger.info(
                    "Page file %s changed on disk; discarding unsaved page numbers",
                    self._store.path,
                )
            else:
                logger.debug("Page file %s changed on disk; reloading", self._store.path)

        self._entries = OrderedDict()
        for rec in self._store.load():
            if len(self._entries) >= self._capacity:
                break
            self._entries.setdefault(rec.identity, rec.page)
        self._loaded = True
        self._dirty = False
        self._token = token

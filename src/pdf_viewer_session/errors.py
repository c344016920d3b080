# src/pdf_viewer_session/errors.py
"""
セッション層の例外。
どれもホストアプリを落とさない（呼び出し側にフォールバックがある）。
"""
from __future__ import annotations


class SessionError(Exception):
    pass


class ChannelUnavailable(SessionError):
    """ローカル IPC エンドポイントが使えない。"""


class AlreadyBound(ChannelUnavailable):
    """同じ identity のサーバが既に動いている。"""

    def __init__(self, identity: str) -> None:
        super().__init__(f"instance '{identity}' is already being served")
        self.identity = identity


class NotFound(ChannelUnavailable):
    """接続先のサーバが居ない（拒否された）。"""

    def __init__(self, identity: str, reason: str = "") -> None:
        msg = f"no server for instance '{identity}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)
        self.identity = identity


class ChannelTimeout(NotFound):
    pass


class PersistenceUnavailable(SessionError):
    """ページファイルの読み書きができない。"""


class MalformedRecord(SessionError):
    def __init__(self, line: str, reason: str) -> None:
        super().__init__(f"{reason}: {line!r}")
        self.line = line


class CommandSyntaxError(SessionError):
    pass

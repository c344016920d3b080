# src/pdf_viewer_session/ipc/channel.py
"""
名前付きローカルエンドポイント（QLocalServer / QLocalSocket）。

Unix ではドメインソケット、Windows では named pipe になるが、
呼び出し側はどちらか意識しない。
プロトコルは改行区切りのテキストコマンドのみ。
"""
from __future__ import annotations

import logging

from PyQt6.QtCore import QIODeviceBase, QObject, pyqtSignal, pyqtSlot
from PyQt6.QtNetwork import QLocalServer, QLocalSocket

from pdf_viewer_session.errors import AlreadyBound, ChannelTimeout, ChannelUnavailable, NotFound

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "pdf_viewer_"
DEFAULT_TIMEOUT_MS = 5000
# 既存サーバの生存確認は短めに
PROBE_TIMEOUT_MS = 500

_ENCODING = "utf-8"
_ERRORS = "surrogateescape"


def endpoint_name(identity: str, prefix: str = DEFAULT_PREFIX) -> str:
    return prefix + identity


def encode_command(command: str) -> bytes:
    return (command + "\n").encode(_ENCODING, _ERRORS)


def decode_line(raw: bytes) -> str:
    return raw.decode(_ENCODING, _ERRORS).rstrip("\r")


class ConnectionHandle:
    """クライアント側の接続。with 文で使える。"""

    def __init__(self, socket: QLocalSocket, identity: str, timeout_ms: int) -> None:
        self._socket = socket
        self.identity = identity
        self._timeout_ms = timeout_ms

    def write(self, command: str) -> None:
        if "\n" in command:
            raise ValueError("command must be a single line")
        data = encode_command(command)
        if self._socket.write(data) != len(data):
            raise ChannelUnavailable(f"write failed: {self._socket.errorString()}")

    def drain(self, timeout_ms: int | None = None) -> bool:
        """書き込みバッファが空になるまで待つ（時間制限つき）。空になれば True。"""
        timeout = self._timeout_ms if timeout_ms is None else timeout_ms
        while self._socket.bytesToWrite() > 0:
            if not self._socket.waitForBytesWritten(timeout):
                logger.warning(
                    "Timed out flushing %d bytes to instance '%s'",
                    self._socket.bytesToWrite(),
                    self.identity,
                )
                return False
        return True

    def close(self) -> None:
        if self._socket.state() != QLocalSocket.LocalSocketState.UnconnectedState:
            self._socket.disconnectFromServer()
            if self._socket.state() != QLocalSocket.LocalSocketState.UnconnectedState:
                self._socket.waitForDisconnected(self._timeout_ms)
        self._socket.close()

    def __enter__(self) -> ConnectionHandle:
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class ListenerHandle(QObject):
    """
    サーバ側。受け取った行を command_received で 1 行ずつ流す。
    接続ごとに順序は保たれるが、接続どうしの順序は保証しない。
    """

    command_received = pyqtSignal(str)

    def __init__(self, server: QLocalServer, identity: str, timeout_ms: int) -> None:
        super().__init__()
        self._server = server
        self.identity = identity
        self._timeout_ms = timeout_ms
        self._buffers: dict[int, bytearray] = {}
        self._sockets: list[QLocalSocket] = []
        self._serving = False

    @property
    def name(self) -> str:
        return self._server.serverName()

    def is_listening(self) -> bool:
        return self._server.isListening()

    # ---- event loop ----

    def serve(self) -> None:
        if self._serving:
            return
        self._serving = True
        self._server.newConnection.connect(self._on_new_connection)
        # serve() 前に溜まった接続も拾う
        if self._server.hasPendingConnections():
            self._on_new_connection()

    def _on_new_connection(self) -> None:
        while self._server.hasPendingConnections():
            sock = self._server.nextPendingConnection()
            if sock is None:
                continue
            self._buffers[id(sock)] = bytearray()
            self._sockets.append(sock)
            # bound method で繋ぐ（lambda だと self を強参照して循環する）
            sock.readyRead.connect(self._on_ready_read)
            sock.disconnected.connect(self._on_socket_disconnected)
            self._read_lines(sock)
            if sock.state() == QLocalSocket.LocalSocketState.UnconnectedState:
                self._on_disconnected(sock)

    @pyqtSlot()
    def _on_ready_read(self) -> None:
        sock = self.sender()
        if isinstance(sock, QLocalSocket):
            self._read_lines(sock)

    @pyqtSlot()
    def _on_socket_disconnected(self) -> None:
        sock = self.sender()
        if isinstance(sock, QLocalSocket):
            self._on_disconnected(sock)

    def _read_lines(self, sock: QLocalSocket) -> None:
        buf = self._buffers.get(id(sock))
        if buf is None:
            return
        buf += sock.readAll().data()
        while True:
            nl = buf.find(b"\n")
            if nl < 0:
                break
            raw = bytes(buf[:nl])
            del buf[: nl + 1]
            self._emit(decode_line(raw))

    def _on_disconnected(self, sock: QLocalSocket) -> None:
        self._read_lines(sock)
        buf = self._buffers.pop(id(sock), None)
        if buf:
            logger.warning(
                "Dropping incomplete command from instance '%s' client (%d bytes)",
                self.identity,
                len(buf),
            )
        self._release_socket(sock)

    def _release_socket(self, sock: QLocalSocket) -> None:
        if sock in self._sockets:
            self._sockets.remove(sock)
        try:
            sock.readyRead.disconnect(self._on_ready_read)
            sock.disconnected.disconnect(self._on_socket_disconnected)
        except TypeError:
            # 既に切断済み
            pass
        sock.deleteLater()

    def _emit(self, line: str) -> None:
        if not line:
            return
        logger.debug("Instance '%s' received: %s", self.identity, line)
        self.command_received.emit(line)

    # ---- blocking ----

    def wait_for_commands(self, timeout_ms: int | None = None) -> list[str]:
        """
        接続を 1 つ受け付け、相手が閉じるまで読んで行のリストを返す。
        時間内に接続が無ければ空リスト。
        """
        timeout = self._timeout_ms if timeout_ms is None else timeout_ms
        if not self._server.hasPendingConnections():
            if not self._server.waitForNewConnection(timeout):
                return []
        sock = self._server.nextPendingConnection()
        if sock is None:
            return []

        data = bytearray()
        while True:
            data += sock.readAll().data()
            if sock.state() == QLocalSocket.LocalSocketState.UnconnectedState:
                break
            if not sock.waitForReadyRead(timeout):
                break
        data += sock.readAll().data()
        sock.close()
        sock.deleteLater()

        *lines, rest = bytes(data).split(b"\n")
        if rest:
            logger.warning("Dropping incomplete command from instance '%s' client", self.identity)
        return [decode_line(raw) for raw in lines if raw]

    def close(self) -> None:
        """
        接続中のクライアントも含めて閉じる。
        未完了の行は捨てる（dispatch しない）。
        """
        if self._serving:
            self._server.newConnection.disconnect(self._on_new_connection)
            self._serving = False
        for sock in list(self._sockets):
            self._buffers.pop(id(sock), None)
            self._release_socket(sock)
            sock.abort()
        self._buffers.clear()

        name = self._server.serverName()
        self._server.close()
        if name:
            QLocalServer.removeServer(name)


class InstanceChannel:
    def __init__(self, prefix: str = DEFAULT_PREFIX, timeout_ms: int = DEFAULT_TIMEOUT_MS) -> None:
        # Qt の wait 系は -1 で無期限になる
        if timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {timeout_ms}")
        self.prefix = prefix
        self.timeout_ms = timeout_ms

    def name_for(self, identity: str) -> str:
        return endpoint_name(identity, self.prefix)

    def bind(self, identity: str) -> ListenerHandle:
        name = self.name_for(identity)
        server = QLocalServer()
        if not server.listen(name):
            # 生きているサーバが居るなら AlreadyBound。
            # 居なければクラッシュしたプロセスの残骸なので消して取り直す。
            if self._probe(name):
                raise AlreadyBound(identity)
            logger.info("Removing stale endpoint %s", name)
            QLocalServer.removeServer(name)
            if not server.listen(name):
                raise ChannelUnavailable(f"cannot listen on {name}: {server.errorString()}")
        logger.debug("Listening on %s", server.fullServerName())
        return ListenerHandle(server, identity, self.timeout_ms)

    def connect(self, identity: str, timeout_ms: int | None = None) -> ConnectionHandle:
        timeout = self.timeout_ms if timeout_ms is None else timeout_ms
        name = self.name_for(identity)
        sock = QLocalSocket()
        sock.connectToServer(name, QIODeviceBase.OpenModeFlag.WriteOnly)
        if not sock.waitForConnected(timeout):
            error = sock.error()
            reason = sock.errorString()
            sock.abort()
            if error == QLocalSocket.LocalSocketError.SocketTimeoutError:
                raise ChannelTimeout(identity, reason)
            raise NotFound(identity, reason)
        return ConnectionHandle(sock, identity, timeout)

    def _probe(self, name: str) -> bool:
        sock = QLocalSocket()
        sock.connectToServer(name, QIODeviceBase.OpenModeFlag.WriteOnly)
        alive = sock.waitForConnected(min(PROBE_TIMEOUT_MS, self.timeout_ms))
        sock.abort()
        return alive

# src/pdf_viewer_session/ipc/coordinator.py
"""
起動時の振り分け。

既存サーバ（identity ごと）が居ればコマンドを転送して終了、
居なければ自分がサーバになって通常どおりウィンドウを開く。
"""
from __future__ import annotations

import logging
import os
from typing import Callable, Protocol, Sequence

from pdf_viewer_session.cli import DEFAULT_IDENTITY, LaunchIntent, LaunchMode, parse_file_requests
from pdf_viewer_session.errors import AlreadyBound, ChannelTimeout, ChannelUnavailable, NotFound
from pdf_viewer_session.ipc.channel import InstanceChannel, ListenerHandle
from pdf_viewer_session.ipc.commands import RAISE, open_file_in_command

logger = logging.getLogger(__name__)


class WindowHost(Protocol):
    """ウィンドウ側（ui.viewer_app.ViewerApp）に求める操作。"""

    def new_window(self, fullscreen: bool = False) -> object: ...

    def open_in_new_window(self, path: str, page: int | None = None, fullscreen: bool = False) -> bool: ...

    def open_in_new_tab(self, path: str, page: int | None = None) -> bool: ...

    def execute_command(self, command: str) -> None: ...


class InstanceCoordinator:
    def __init__(
        self,
        channel: InstanceChannel,
        execute_command: Callable[[str], None] | None = None,
    ) -> None:
        self._channel = channel
        self._execute_command = execute_command
        self._listeners: dict[str, ListenerHandle] = {}

    @property
    def listeners(self) -> dict[str, ListenerHandle]:
        return dict(self._listeners)

    def set_command_handler(self, execute_command: Callable[[str], None]) -> None:
        self._execute_command = execute_command

    @staticmethod
    def open_file_commands(path: str | os.PathLike[str]) -> list[str]:
        return [open_file_in_command(path, "tab"), RAISE]

    def try_delegate(self, identity: str, commands: Sequence[str]) -> bool:
        """
        既存サーバへ commands を順に送る。送れたら True（呼び出し側は終了する）。
        サーバが居なければ False で、副作用は無い。
        """
        try:
            conn = self._channel.connect(identity)
        except ChannelTimeout as e:
            logger.warning("Instance '%s' did not answer; starting locally: %s", identity, e)
            return False
        except NotFound as e:
            logger.debug("No running instance '%s': %s", identity, e)
            return False

        with conn:
            try:
                for cmd in commands:
                    conn.write(cmd)
            except ChannelUnavailable as e:
                logger.warning("Lost connection to instance '%s': %s", identity, e)
                return False
            if not conn.drain():
                logger.warning("Commands to instance '%s' may not have been delivered", identity)
        logger.info("Forwarded %d command(s) to instance '%s'", len(commands), identity)
        return True

    def claim_and_serve(self, identity: str) -> ListenerHandle:
        listener = self._channel.bind(identity)
        listener.command_received.connect(self._dispatch)
        listener.serve()
        self._listeners[identity] = listener
        logger.info("Serving instance '%s' on %s", identity, listener.name)
        return listener

    def release(self) -> None:
        for listener in self._listeners.values():
            listener.close()
        self._listeners.clear()

    def _dispatch(self, command: str) -> None:
        if self._execute_command is None:
            logger.warning("No command handler; dropping %r", command)
            return
        self._execute_command(command)

    # ---- startup policy ----

    def start(self, intent: LaunchIntent, host: WindowHost) -> bool:
        """
        起動方針を実行する。転送できた場合 True（呼び出し側は exit(0)）。
        """
        if intent.mode is LaunchMode.REMOTE:
            return self._start_remote(intent, host)
        if intent.mode is LaunchMode.OPEN_DEFAULT:
            return self._start_open_default(intent, host)
        self._start_plain(intent, host)
        return False

    def _start_remote(self, intent: LaunchIntent, host: WindowHost) -> bool:
        if self.try_delegate(intent.identity, intent.args):
            return True
        self._claim_quietly(intent.identity)
        host.new_window(intent.fullscreen)
        for cmd in intent.args:
            host.execute_command(cmd)
        return False

    def _start_open_default(self, intent: LaunchIntent, host: WindowHost) -> bool:
        # 転送するのは最初のファイルだけ
        path = intent.args[0] if intent.args else None
        commands = self.open_file_commands(path) if path else []
        if self.try_delegate(DEFAULT_IDENTITY, commands):
            return True
        self._claim_quietly(DEFAULT_IDENTITY)
        if path is None or not host.open_in_new_window(path, fullscreen=intent.fullscreen):
            host.new_window(intent.fullscreen)
        return False

    def _start_plain(self, intent: LaunchIntent, host: WindowHost) -> None:
        requests = parse_file_requests(intent.args)
        if not requests:
            host.new_window(intent.fullscreen)
            return
        opened = False
        for req in requests:
            if opened:
                host.open_in_new_tab(req.path, req.page)
            else:
                opened = host.open_in_new_window(req.path, req.page, intent.fullscreen)
        if not opened:
            host.new_window(intent.fullscreen)

    def _claim_quietly(self, identity: str) -> None:
        # 他プロセスとの競合で取れなくても、ユーザの要求はローカルで処理する
        try:
            self.claim_and_serve(identity)
        except AlreadyBound:
            logger.warning("Instance '%s' was claimed by another process; continuing without a server", identity)
        except ChannelUnavailable as e:
            logger.warning("Cannot serve instance '%s': %s", identity, e)

# src/pdf_viewer_session/ui/page_rotation.py
from __future__ import annotations

from dataclasses import dataclass

ROTATIONS = (0, 90, 180, 270)


def _norm_rot(deg: int) -> int:
    d = deg % 360
    # 90度刻みに丸め
    return (d // 90) * 90


@dataclass(frozen=True)
class Rotation:
    """
    90度刻みの回転状態（時計回りが正）。
    pypdfium2 の page.render(rotation=...) にそのまま渡せる値を返す。
    """
    deg: int = 0  # 0, 90, 180, 270

    def cw(self) -> Rotation:
        return Rotation(_norm_rot(self.deg + 90))

    def ccw(self) -> Rotation:
        return Rotation(_norm_rot(self.deg - 90))

    def normalized(self) -> int:
        return _norm_rot(self.deg)

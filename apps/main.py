#apps\main.py
"""
アプリケーションのエントリポイント。
このファイルは"薄く"保つ（起動処理は pdf_viewer_session.core.main に任せる）。
"""
from pdf_viewer_session.core import main


if __name__ == "__main__":
    main()

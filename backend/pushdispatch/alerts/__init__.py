# backend/pushdispatch/alerts/__init__.py

"""
運用アラート。

ディスパッチの失敗と結果書き戻しの失敗を、構造化ログと
kind 別の件数（/health で公開）として残す。
"""

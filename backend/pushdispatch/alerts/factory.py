# backend/pushdispatch/alerts/factory.py

"""
アプリ全体で共有する AlertService。
"""

from __future__ import annotations

from typing import Optional

from .service import AlertService, LoggingAlertSender

_alert_service: Optional[AlertService] = None


def get_alert_service() -> AlertService:
    """初回呼び出し時にのみ生成し、それ以降は同じインスタンスを返す。"""
    global _alert_service
    if _alert_service is None:
        _alert_service = AlertService([LoggingAlertSender()])
    return _alert_service


def reset_alert_service() -> None:
    """テスト用に共有インスタンスを破棄する。"""
    global _alert_service
    _alert_service = None

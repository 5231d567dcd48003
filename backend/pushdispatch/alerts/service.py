# backend/pushdispatch/alerts/service.py

"""
運用アラートの送信と集計。

- LoggingAlertSender: しきい値以上のアラートを構造化ログ（extra["alert"]）として出す
- AlertService: 複数 Sender へのファンアウトと、kind ごとの発生件数の集計
"""

from __future__ import annotations

import logging
import threading
from collections import Counter
from typing import Dict, Iterable, List, Protocol

from .schemas import AlertSeverity, OperationalAlert

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    AlertSeverity.INFO: logging.INFO,
    AlertSeverity.WARNING: logging.WARNING,
    AlertSeverity.ERROR: logging.ERROR,
}


class AlertSender(Protocol):
    def send(self, alert: OperationalAlert) -> None:  # pragma: no cover - Protocol
        ...


class LoggingAlertSender:
    """
    アラートを 1 行のログにする Sender。

    min_severity 未満のアラートは出力しない。
    """

    def __init__(
        self,
        logger_: logging.Logger | None = None,
        *,
        min_severity: AlertSeverity = AlertSeverity.INFO,
    ) -> None:
        self._logger = logger_ or logger
        self._min_severity = min_severity

    def send(self, alert: OperationalAlert) -> None:
        if alert.severity.rank < self._min_severity.rank:
            return

        self._logger.log(
            _LOG_LEVELS[alert.severity],
            "%s notification=%s provider_id=%s: %s",
            alert.kind,
            alert.notification_id or "-",
            alert.provider_id or "-",
            alert.body,
            extra={"alert": alert.log_fields()},
        )


class AlertService:
    """
    アラートの受け口。

    Sender の失敗はディスパッチ本体に影響させない。
    kind ごとの件数はプロセス内で累積し、/health から参照する。
    """

    def __init__(self, senders: Iterable[AlertSender]) -> None:
        self._senders: List[AlertSender] = list(senders)
        self._counts: Counter = Counter()
        self._lock = threading.Lock()

    def send(self, alert: OperationalAlert) -> None:
        with self._lock:
            self._counts[alert.kind] += 1

        for sender in self._senders:
            try:
                sender.send(alert)
            except Exception:  # noqa: BLE001 - アラートの失敗で送信結果を変えない
                logger.exception("Alert sender %s failed.", type(sender).__name__)

    def counts(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._counts)

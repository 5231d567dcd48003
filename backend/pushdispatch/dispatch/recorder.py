# backend/pushdispatch/dispatch/recorder.py

"""
送信結果を通知ストアに書き戻すモジュール。

プッシュ自体は送信済みなので、ここでの失敗はディスパッチを失敗扱いにしない。
運用アラート（PersistenceWarning）に残すだけ。
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from pushdispatch.alerts.factory import get_alert_service
from pushdispatch.alerts.schemas import AlertSeverity, OperationalAlert
from pushdispatch.alerts.service import AlertService

from .errors import DispatchError
from .schemas import ProviderResult
from .store import NotificationStore

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DeliveryRecorder:
    """
    ProviderResult を notifications の結果カラムに書き込む。
    """

    def __init__(
        self,
        store: NotificationStore,
        *,
        alerts: Optional[AlertService] = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._store = store
        self._alerts = alerts or get_alert_service()
        self._clock = clock

    def build_fields(self, result: ProviderResult) -> Dict[str, Any]:
        stamp = self._clock().isoformat()
        return {
            "onesignal_notification_id": result.provider_id,
            "recipients_count": result.recipients,
            "successful_deliveries": result.recipients,
            "sent_at": stamp,
            "updated_at": stamp,
        }

    def record(self, notification_id: str, result: ProviderResult) -> bool:
        """
        結果を書き込む。成功なら True、失敗なら False（例外は投げない）。
        """
        fields = self.build_fields(result)

        try:
            updated = self._store.update(notification_id, fields)
        except Exception as exc:  # noqa: BLE001 - 書き戻し失敗で送信成功を覆さない
            reason = exc.describe() if isinstance(exc, DispatchError) else repr(exc)
            self._warn(notification_id, result, reason)
            return False

        if updated == 0:
            # 読み取り後に他のワークフローがレコードを消した場合など
            self._warn(notification_id, result, "no row matched the update")
            return False

        logger.info(
            "Recorded delivery for notification %s (provider_id=%s, recipients=%d).",
            notification_id,
            result.provider_id,
            result.recipients,
        )
        return True

    def _warn(self, notification_id: str, result: ProviderResult, reason: str) -> None:
        self._alerts.send(
            OperationalAlert(
                severity=AlertSeverity.WARNING,
                kind="PersistenceWarning",
                body=f"Notification was sent but the outcome was not recorded: {reason}",
                notification_id=notification_id,
                provider_id=result.provider_id,
            )
        )

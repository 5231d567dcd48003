# backend/pushdispatch/dispatch/service.py

"""
プッシュ通知ディスパッチのサービス層（オーケストレーター）。

1 回の呼び出しで行うこと（順番は固定、前の段階に戻ることはない）:
  1. 通知レコードを読み込む
  2. ステータスが送信待ち（デフォルト 'sent'）でなければスキップ
     （この判定は生レコードの status だけで行い、他のカラムは解釈しない）
  3. 送信対象を解決する
  4. OneSignal payload を組み立てる
  5. レコードをクレーム（送信待ち → 送信済みへの条件付き更新）
  6. OneSignal に送信する
  7. 結果を書き戻す（失敗しても送信成功は覆さない）

DispatchError はすべて success=False の DispatchResult に変換し、
運用アラートとして 1 回だけ記録する。リトライは行わない（呼び出し元の責務）。
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from pushdispatch.alerts.factory import get_alert_service
from pushdispatch.alerts.schemas import AlertSeverity, OperationalAlert
from pushdispatch.alerts.service import AlertService

from .audience import AudienceResolver
from .client import OneSignalClient
from .config import (
    DispatchSettings,
    get_dispatch_settings,
    get_onesignal_settings,
    get_store_settings,
)
from .errors import (
    AudienceLookupFailed,
    DispatchError,
    DispatchValidationError,
    MissingCredentials,
    NotificationNotFound,
    ProviderRejected,
    ProviderUnavailable,
    StoreError,
)
from .payload import build_payload
from .recorder import DeliveryRecorder
from .schemas import DispatchResult, Notification
from .store import NotificationStore, SupabaseNotificationStore, SupabaseUserDirectory

logger = logging.getLogger(__name__)

# 運用者の対応が必要な失敗。それ以外（入力不備・対象 0 件など）は WARNING。
_OPERATIONAL_FAILURES = (
    StoreError,
    AudienceLookupFailed,
    MissingCredentials,
    ProviderRejected,
    ProviderUnavailable,
)


def _render_status(value: Any) -> str:
    """スキップ理由に埋め込むステータス表記。None は JSON と同じく null。"""
    return "null" if value is None else str(value)


class DispatchService:
    """
    1 件の通知を OneSignal に送信するオーケストレーター。

    同一 ID への同時呼び出しによる二重送信を防ぐため、
    claim_enabled の場合は送信直前にステータスの compare-and-set を行う。
    """

    def __init__(
        self,
        *,
        store: NotificationStore,
        resolver: AudienceResolver,
        client: OneSignalClient,
        recorder: Optional[DeliveryRecorder] = None,
        settings: Optional[DispatchSettings] = None,
        alerts: Optional[AlertService] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._store = store
        self._resolver = resolver
        self._client = client
        self._alerts = alerts or get_alert_service()
        self._recorder = recorder or DeliveryRecorder(store, alerts=self._alerts)
        self._settings = settings or DispatchSettings()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    # ---- 公開 API ------------------------------------------------------

    def dispatch(self, notification_id: Optional[str]) -> DispatchResult:
        """
        通知 1 件をディスパッチして結果を返す。

        DispatchError 以外の例外（バグや想定外の障害）はそのまま送出する。
        その場合もクレーム済みなら解放してから送出する。
        """
        try:
            return self._dispatch(notification_id)
        except DispatchError as exc:
            self._report_failure(notification_id, exc)
            return DispatchResult(
                success=False,
                error=exc.describe(),
                error_kind=exc.kind,
            )

    # ---- 内部ヘルパー -------------------------------------------------

    def _now_iso(self) -> str:
        return self._clock().isoformat()

    def _report_failure(self, notification_id: Optional[str], exc: DispatchError) -> None:
        severity = (
            AlertSeverity.ERROR if isinstance(exc, _OPERATIONAL_FAILURES) else AlertSeverity.WARNING
        )
        self._alerts.send(
            OperationalAlert(
                severity=severity,
                kind=exc.kind,
                body=exc.describe(),
                notification_id=str(notification_id) if notification_id else None,
            )
        )

    def _skip(self, notification_id: str, message: str) -> DispatchResult:
        logger.info("Skipping notification %s: %s", notification_id, message)
        return DispatchResult(success=True, notification_id=notification_id, message=message)

    def _load(self, notification_id: str) -> Dict[str, Any]:
        logger.info("Fetching notification: %s", notification_id)
        row = self._store.fetch(notification_id)
        if row is None:
            raise NotificationNotFound(notification_id)

        logger.info("Notification found: %s status: %s", notification_id, row.get("status"))
        return row

    def _claim(self, notification_id: str) -> bool:
        """送信待ち → 送信済みへの条件付き更新。他の呼び出しに先を越されたら False。"""
        updated = self._store.update(
            notification_id,
            {"status": self._settings.dispatched_status, "updated_at": self._now_iso()},
            expected_status=self._settings.ready_status,
        )
        return updated > 0

    def _release(self, notification_id: str) -> None:
        """送信に失敗したときにクレームを戻し、呼び出し元が再実行できるようにする。"""
        try:
            self._store.update(
                notification_id,
                {"status": self._settings.ready_status, "updated_at": self._now_iso()},
                expected_status=self._settings.dispatched_status,
            )
        except Exception:  # noqa: BLE001 - 送信側の例外を優先する
            logger.exception("Failed to release claim for notification %s.", notification_id)

    def _dispatch(self, notification_id: Optional[str]) -> DispatchResult:
        if notification_id is None or not str(notification_id).strip():
            raise DispatchValidationError("notificationId is required")
        notification_id = str(notification_id).strip()

        row = self._load(notification_id)

        status = row.get("status")
        if status != self._settings.ready_status:
            return self._skip(
                notification_id,
                f"Notification status is {_render_status(status)}, skipping send",
            )

        notification = Notification.from_record(row)

        # 認証情報が無ければディレクトリ検索もクレームもしない
        self._client.ensure_credentials()

        directive = self._resolver.resolve(
            notification.target_type,
            notification.target_user_ids,
            notification.target_roles,
        )
        payload = build_payload(notification, directive, app_id=self._client.app_id)

        claimed = False
        if self._settings.claim_enabled:
            claimed = self._claim(notification_id)
            if not claimed:
                return self._skip(
                    notification_id,
                    "Notification was already claimed by another dispatch, skipping send",
                )

        logger.info("Calling OneSignal API for notification: %s", notification.title)
        try:
            result = self._client.send(payload)
        except Exception:
            if claimed:
                self._release(notification_id)
            raise

        recorded = self._recorder.record(notification_id, result)

        return DispatchResult(
            success=True,
            notification_id=notification_id,
            provider_id=result.provider_id,
            recipients=result.recipients,
            recorded=recorded,
        )


def build_dispatch_service() -> DispatchService:
    """
    環境変数から設定を読み直して DispatchService を組み立てる。

    設定は呼び出しごとに読む（キャッシュしない）。
    """
    store_settings = get_store_settings()
    store = SupabaseNotificationStore(store_settings)

    return DispatchService(
        store=store,
        resolver=AudienceResolver(SupabaseUserDirectory(store_settings)),
        client=OneSignalClient(get_onesignal_settings()),
        settings=get_dispatch_settings(),
    )

# backend/pushdispatch/dispatch/errors.py

"""
ディスパッチパイプラインの例外定義。

各例外は kind（呼び出し元に返すエラー種別名）を持つ。
DispatchService はここで定義された DispatchError だけを捕捉し、
失敗レスポンス（success=False）に変換する。
"""

from typing import Optional


class DispatchError(Exception):
    """ディスパッチ処理全般の基底例外。"""

    kind = "DispatchError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def describe(self) -> str:
        """レスポンスの error 文字列（'<kind>: <message>'）を返す。"""
        return f"{self.kind}: {self.message}"


class DispatchValidationError(DispatchError):
    """notificationId が未指定・不正な場合の例外。"""

    kind = "ValidationError"


class NotificationNotFound(DispatchError):
    """指定 ID の通知がストアに存在しない場合の例外。"""

    kind = "NotFound"

    def __init__(self, notification_id: str) -> None:
        super().__init__(f"Notification not found: {notification_id}")
        self.notification_id = notification_id


class StoreError(DispatchError):
    """通知ストアの読み書きに失敗した場合の例外。"""

    kind = "DatabaseError"


class UnknownTargetType(DispatchError):
    """target_type が single / custom / role / all のいずれでもない場合の例外。"""

    kind = "UnknownTargetType"

    def __init__(self, target_type: object) -> None:
        super().__init__(f"Unknown target_type: {target_type}")
        self.target_type = target_type


class EmptyAudience(DispatchError):
    """ブロードキャスト以外で送信対象ユーザーが 0 件だった場合の例外。"""

    kind = "EmptyAudience"

    def __init__(self, message: str = "No target users found") -> None:
        super().__init__(message)


class AudienceLookupFailed(DispatchError):
    """ロール指定のユーザー検索に失敗した場合の例外。"""

    kind = "AudienceLookupFailed"


class MissingCredentials(DispatchError):
    """OneSignal の app id / REST API キーが設定されていない場合の例外。"""

    kind = "MissingCredentials"


class ProviderRejected(DispatchError):
    """OneSignal が 2xx 以外を返した場合の例外。レスポンス本文はそのまま保持する。"""

    kind = "ProviderRejected"

    def __init__(self, status_code: int, body: Optional[str] = None) -> None:
        super().__init__(f"{status_code} - {body}" if body else str(status_code))
        self.status_code = status_code
        self.body = body


class ProviderUnavailable(DispatchError):
    """OneSignal への接続エラー・タイムアウト時の例外。"""

    kind = "ProviderUnavailable"

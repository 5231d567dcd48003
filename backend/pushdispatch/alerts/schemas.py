# backend/pushdispatch/alerts/schemas.py

"""
運用アラートのスキーマ定義。

ディスパッチ失敗や結果の書き戻し失敗を、ログ基盤で集計しやすい
構造化フィールド（kind / notification_id / provider_id）付きで表す。
※ REST API キーなどの機密情報は含めないこと。
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class AlertSeverity(str, Enum):
    """アラートの重要度。rank で大小比較できる。"""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    AlertSeverity.INFO: 0,
    AlertSeverity.WARNING: 1,
    AlertSeverity.ERROR: 2,
}


class OperationalAlert(BaseModel):
    """
    アラート 1件分。

    kind はエラー種別名（ProviderRejected, PersistenceWarning など）で、
    集計キーとしても使う。
    """

    severity: AlertSeverity
    kind: str = Field(..., description="エラー種別名。")
    body: str = Field(..., description="本文（プレーンテキスト）。")
    notification_id: Optional[str] = None
    provider_id: Optional[str] = Field(None, description="OneSignal 側の通知 ID（送信済みの場合）。")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def log_fields(self) -> Dict[str, Any]:
        """ログの extra に載せる構造化フィールド。None の項目は除く。"""
        return self.model_dump(mode="json", exclude_none=True)

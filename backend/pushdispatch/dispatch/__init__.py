"""
プッシュ通知ディスパッチ用モジュール。

- config: OneSignal / Supabase / ディスパッチ挙動の設定値
- errors: ディスパッチの例外（エラー種別）
- schemas: Notification / 送信指示 / OneSignal payload / 結果モデル
- store: 通知ストアとユーザーディレクトリ（Supabase REST）
- audience: 送信対象の解決
- payload: OneSignal payload の組み立て
- client: OneSignal API クライアント
- recorder: 送信結果の書き戻し
- service: 一連の流れをまとめるオーケストレーター
- router: POST /send-notification エンドポイント
"""

from .errors import DispatchError  # noqa: F401
from .schemas import (  # noqa: F401
    Broadcast,
    DispatchResult,
    Explicit,
    Notification,
    OneSignalPayload,
    ProviderResult,
    TargetType,
)
from .service import DispatchService, build_dispatch_service  # noqa: F401

# backend/pushdispatch/dispatch/config.py

"""
プッシュ通知ディスパッチに必要な設定値をまとめるモジュール。

- OneSignal（プッシュプロバイダ）の app id / REST API キー
- Supabase（通知ストア / ユーザーディレクトリ）の URL / service role キー
- 送信可否を判定するステータス値と、二重送信防止のクレーム設定

NOTE:
- 設定は呼び出しごとに読み直す（lru_cache しない）。
- OneSignal の認証情報は未設定でも例外にしない。
  送信直前に OneSignalClient が MissingCredentials として扱う。
"""

from dataclasses import dataclass
from typing import Optional

from pushdispatch.utils.config import get_env, get_env_bool, get_env_float

DEFAULT_ONESIGNAL_API_URL = "https://api.onesignal.com/notifications"


@dataclass(frozen=True)
class OneSignalSettings:
    """OneSignal API 用の設定値コンテナ。"""

    app_id: Optional[str]
    rest_api_key: Optional[str]
    api_url: str = DEFAULT_ONESIGNAL_API_URL
    timeout_seconds: float = 10.0


@dataclass(frozen=True)
class StoreSettings:
    """
    Supabase REST (PostgREST) 用の設定値コンテナ。

    directory_url はロール指定のユーザー検索先。未設定なら base_url と同じ。
    """

    base_url: str
    service_role_key: str
    directory_url: Optional[str] = None
    timeout_seconds: float = 10.0


@dataclass(frozen=True)
class DispatchSettings:
    """
    ディスパッチ処理そのものの挙動に関する設定値。

    - ready_status: この値のときだけ送信する
    - dispatched_status: クレーム時に書き込むステータス
    - claim_enabled: False にすると送信前のクレームを行わない
    """

    ready_status: str = "sent"
    dispatched_status: str = "dispatched"
    claim_enabled: bool = True


def get_onesignal_settings() -> OneSignalSettings:
    """
    環境変数から OneSignal 設定を読み込む。

    必須（ただし未設定でも例外にしない）:
      - ONESIGNAL_APP_ID
      - ONESIGNAL_REST_API_KEY

    任意:
      - ONESIGNAL_API_URL         (デフォルト: https://api.onesignal.com/notifications)
      - ONESIGNAL_TIMEOUT_SECONDS (デフォルト: 10)
    """
    return OneSignalSettings(
        app_id=get_env("ONESIGNAL_APP_ID", required=False),
        rest_api_key=get_env("ONESIGNAL_REST_API_KEY", required=False),
        api_url=get_env(
            "ONESIGNAL_API_URL",
            default=DEFAULT_ONESIGNAL_API_URL,
            required=False,
        ),
        timeout_seconds=get_env_float("ONESIGNAL_TIMEOUT_SECONDS", default=10.0),
    )


def get_store_settings() -> StoreSettings:
    """
    環境変数から Supabase 設定を読み込む。

    必須:
      - SUPABASE_URL
      - SUPABASE_SERVICE_ROLE_KEY

    任意:
      - DIRECTORY_API_URL       (デフォルト: SUPABASE_URL)
      - SUPABASE_TIMEOUT_SECONDS (デフォルト: 10)
    """
    base_url = get_env("SUPABASE_URL")
    service_role_key = get_env("SUPABASE_SERVICE_ROLE_KEY")

    return StoreSettings(
        base_url=base_url.rstrip("/"),
        service_role_key=service_role_key,
        directory_url=get_env("DIRECTORY_API_URL", required=False),
        timeout_seconds=get_env_float("SUPABASE_TIMEOUT_SECONDS", default=10.0),
    )


def get_dispatch_settings() -> DispatchSettings:
    """
    環境変数からディスパッチ挙動の設定を読み込む。

    任意:
      - NOTIFICATION_READY_STATUS      (デフォルト: sent)
      - NOTIFICATION_DISPATCHED_STATUS (デフォルト: dispatched)
      - NOTIFICATION_CLAIM_ENABLED     (デフォルト: true)
    """
    return DispatchSettings(
        ready_status=get_env("NOTIFICATION_READY_STATUS", default="sent", required=False),
        dispatched_status=get_env(
            "NOTIFICATION_DISPATCHED_STATUS",
            default="dispatched",
            required=False,
        ),
        claim_enabled=get_env_bool("NOTIFICATION_CLAIM_ENABLED", default=True),
    )

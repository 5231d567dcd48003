# backend/pushdispatch/dispatch/client.py

"""
OneSignal Create Notification API との通信を担当するクライアントモジュール。

- 認証: Authorization: Basic <REST API キー>
- 1 回の send() につきリクエストは 1 回だけ（リトライしない）
"""

import logging
from typing import Any, Dict

import httpx

from .config import OneSignalSettings, get_onesignal_settings
from .errors import MissingCredentials, ProviderRejected, ProviderUnavailable
from .schemas import OneSignalPayload, ProviderResult

logger = logging.getLogger(__name__)


def _mask(secret: str, visible: int = 6) -> str:
    return secret[:visible] + "..."


def _parse_recipients(value: Any) -> int:
    """
    recipients を整数にする。

    2xx + id が返った時点で送信は受け付けられているので、
    欠損・数値でない値はエラーにせず 0 とみなす。
    """
    if isinstance(value, bool):
        return 0
    try:
        return max(int(value), 0)
    except (TypeError, ValueError, OverflowError):
        if value is not None:
            logger.warning("Ignoring non-numeric recipients in OneSignal response: %r", value)
        return 0


class OneSignalClient:
    """
    OneSignal API の薄いラッパークライアント。
    """

    def __init__(self, settings: OneSignalSettings | None = None) -> None:
        self._settings = settings or get_onesignal_settings()

    @property
    def app_id(self) -> str | None:
        return self._settings.app_id

    @property
    def api_url(self) -> str:
        return self._settings.api_url

    @property
    def timeout(self) -> float:
        return self._settings.timeout_seconds

    def ensure_credentials(self) -> None:
        """
        app id / REST API キーが設定されているかを確認する。

        :raises MissingCredentials: どちらかが未設定の場合
        """
        if not self._settings.rest_api_key:
            raise MissingCredentials("ONESIGNAL_REST_API_KEY not configured")
        if not self._settings.app_id:
            raise MissingCredentials("ONESIGNAL_APP_ID not configured")

    def _build_headers(self) -> Dict[str, str]:
        """
        OneSignal API 呼び出しに必要なヘッダーを構築。
        """
        return {
            "Content-Type": "application/json",
            "Authorization": f"Basic {self._settings.rest_api_key}",
        }

    def send(self, payload: OneSignalPayload) -> ProviderResult:
        """
        payload を OneSignal に送信する。

        :raises MissingCredentials: 認証情報が未設定（ネットワークアクセス前に判定）
        :raises ProviderRejected: OneSignal が 2xx 以外を返した / id が無い
        :raises ProviderUnavailable: 接続エラー・タイムアウト
        """
        self.ensure_credentials()

        logger.info(
            "Calling OneSignal API (key=%s) url=%s",
            _mask(self._settings.rest_api_key),
            self.api_url,
        )
        body = payload.to_json()
        logger.debug("OneSignal payload: %s", body)

        try:
            response = httpx.post(
                self.api_url,
                content=body.encode("utf-8"),
                headers=self._build_headers(),
                timeout=self.timeout,
            )
        except httpx.RequestError as exc:  # 接続エラー・タイムアウトなど
            raise ProviderUnavailable(f"Failed to call OneSignal API: {exc}") from exc

        if response.status_code // 100 != 2:
            raise ProviderRejected(status_code=response.status_code, body=response.text)

        try:
            data: Dict[str, Any] = response.json()
        except ValueError as exc:
            raise ProviderRejected(
                status_code=response.status_code,
                body=f"invalid JSON response: {response.text}",
            ) from exc

        provider_id = data.get("id") if isinstance(data, dict) else None
        if not provider_id:
            raise ProviderRejected(
                status_code=response.status_code,
                body=f"response has no notification id: {response.text}",
            )

        errors = data.get("errors")
        if errors:
            # 未購読ユーザーなど。送信自体は受け付けられている。
            logger.warning("OneSignal accepted notification %s with errors: %s", provider_id, errors)

        return ProviderResult(
            provider_id=str(provider_id),
            recipients=_parse_recipients(data.get("recipients")),
            errors=errors or None,
        )

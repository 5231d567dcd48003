# backend/pushdispatch/dispatch/store.py

"""
通知ストア / ユーザーディレクトリとの通信を担当するモジュール。

どちらも Supabase の REST (PostgREST) エンドポイントを httpx で直接叩く。
- notifications テーブル: ID 指定の取得と更新（条件付き更新を含む）
- profiles テーブル: ロール指定のユーザー ID 検索
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence

import httpx

from .config import StoreSettings, get_store_settings
from .errors import AudienceLookupFailed, StoreError

logger = logging.getLogger(__name__)

NOTIFICATIONS_TABLE = "notifications"
PROFILES_TABLE = "profiles"


class NotificationStore(Protocol):
    """
    通知ストアの最小インターフェース。

    - fetch: ID で 1 件取得（無ければ None）
    - update: ID で更新。expected_status を渡した場合は
      「現在のステータスが一致するときだけ」更新する（compare-and-set）。
      戻り値は更新された行数。
    """

    def fetch(self, notification_id: str) -> Optional[Dict[str, Any]]:  # pragma: no cover - Protocol
        ...

    def update(
        self,
        notification_id: str,
        fields: Mapping[str, Any],
        *,
        expected_status: Optional[str] = None,
    ) -> int:  # pragma: no cover - Protocol
        ...


class UserDirectory(Protocol):
    """ロール名の集合からユーザー ID を引くディレクトリのインターフェース。"""

    def find_user_ids_by_roles(self, roles: Sequence[str]) -> List[str]:  # pragma: no cover - Protocol
        ...


def _build_headers(service_role_key: str) -> Dict[str, str]:
    """Supabase REST 呼び出しに必要なヘッダーを構築。"""
    return {
        "apikey": service_role_key,
        "Authorization": f"Bearer {service_role_key}",
        "Content-Type": "application/json",
    }


def _in_filter(values: Sequence[str]) -> str:
    """PostgREST の in フィルタ文字列（in.("a","b")）を作る。"""
    quoted = ",".join('"' + v.replace('"', '\\"') + '"' for v in values)
    return f"in.({quoted})"


class SupabaseNotificationStore:
    """
    notifications テーブルへの薄いラッパー。

    通知レコードの作成は行わない（他のワークフローの責務）。
    """

    def __init__(self, settings: StoreSettings | None = None) -> None:
        self._settings = settings or get_store_settings()

    @property
    def table_url(self) -> str:
        return f"{self._settings.base_url}/rest/v1/{NOTIFICATIONS_TABLE}"

    def _raise_for_status(self, response: httpx.Response, action: str) -> None:
        if response.status_code >= 400:
            raise StoreError(
                f"Failed to {action}: {response.status_code} {response.text}"
            )

    def fetch(self, notification_id: str) -> Optional[Dict[str, Any]]:
        """
        ID 指定で通知を 1 件取得する。存在しなければ None を返す。
        """
        try:
            response = httpx.get(
                self.table_url,
                params={"id": f"eq.{notification_id}", "select": "*"},
                headers=_build_headers(self._settings.service_role_key),
                timeout=self._settings.timeout_seconds,
            )
        except httpx.RequestError as exc:
            raise StoreError(f"Failed to call notification store: {exc}") from exc

        self._raise_for_status(response, "fetch notification")

        try:
            rows = response.json()
        except ValueError as exc:
            raise StoreError(
                f"Unexpected store response (not JSON): {response.status_code} {response.text}"
            ) from exc
        if not isinstance(rows, list):
            raise StoreError("Unexpected store response format: expected a list of rows.")
        if not rows:
            return None
        return rows[0]

    def update(
        self,
        notification_id: str,
        fields: Mapping[str, Any],
        *,
        expected_status: Optional[str] = None,
    ) -> int:
        """
        通知を更新し、更新された行数を返す。

        expected_status を指定した場合は status も条件に含めるため、
        他のリクエストが先に更新していれば 0 が返る。
        """
        params = {"id": f"eq.{notification_id}"}
        if expected_status is not None:
            params["status"] = f"eq.{expected_status}"

        headers = _build_headers(self._settings.service_role_key)
        headers["Prefer"] = "return=representation"

        try:
            response = httpx.patch(
                self.table_url,
                params=params,
                headers=headers,
                json=dict(fields),
                timeout=self._settings.timeout_seconds,
            )
        except httpx.RequestError as exc:
            raise StoreError(f"Failed to update notification store: {exc}") from exc

        self._raise_for_status(response, "update notification")

        try:
            rows = response.json()
        except ValueError:
            # return=representation が効かない環境では件数が分からないので 1 件とみなす
            return 1
        return len(rows) if isinstance(rows, list) else 1


class SupabaseUserDirectory:
    """
    profiles テーブルからロール指定でユーザー ID を検索するディレクトリ。

    DIRECTORY_API_URL が設定されていればそちらを、無ければ SUPABASE_URL を使う。
    """

    def __init__(self, settings: StoreSettings | None = None) -> None:
        self._settings = settings or get_store_settings()

    @property
    def table_url(self) -> str:
        base_url = (self._settings.directory_url or self._settings.base_url).rstrip("/")
        return f"{base_url}/rest/v1/{PROFILES_TABLE}"

    def find_user_ids_by_roles(self, roles: Sequence[str]) -> List[str]:
        """
        role が roles のいずれかに一致するユーザーの ID を返す。

        :raises AudienceLookupFailed: 通信エラー・4xx/5xx・想定外のレスポンス形式
        """
        if not roles:
            return []

        try:
            response = httpx.get(
                self.table_url,
                params={"select": "id", "role": _in_filter(roles)},
                headers=_build_headers(self._settings.service_role_key),
                timeout=self._settings.timeout_seconds,
            )
        except httpx.RequestError as exc:
            raise AudienceLookupFailed(f"Failed to fetch users by role: {exc}") from exc

        if response.status_code >= 400:
            raise AudienceLookupFailed(
                f"Failed to fetch users by role: {response.status_code} {response.text}"
            )

        try:
            rows = response.json()
        except ValueError as exc:
            raise AudienceLookupFailed(
                f"Unexpected directory response (not JSON): {response.status_code} {response.text}"
            ) from exc
        if not isinstance(rows, list):
            raise AudienceLookupFailed("Unexpected directory response format: expected a list.")

        user_ids = [str(row["id"]) for row in rows if isinstance(row, dict) and row.get("id")]
        logger.info("Resolved %d user(s) for roles %s.", len(user_ids), list(roles))
        return user_ids

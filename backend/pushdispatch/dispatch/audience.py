# backend/pushdispatch/dispatch/audience.py

"""
通知の送信対象指定（target_type）を、具体的な送信指示に変換するモジュール。

- single / custom → Explicit(target_user_ids)
- role            → ディレクトリ検索結果で Explicit(...)
- all             → Broadcast()
"""

import logging
from typing import List, Sequence

from .errors import EmptyAudience
from .schemas import Broadcast, Explicit, TargetDirective, TargetType
from .store import UserDirectory

logger = logging.getLogger(__name__)


class AudienceResolver:
    """
    TargetType ごとの送信対象解決ロジック。

    ロール指定のときだけ UserDirectory を使う。
    ディレクトリの失敗（AudienceLookupFailed）はリトライせずそのまま投げる。
    """

    def __init__(self, directory: UserDirectory) -> None:
        self._directory = directory

    def _lookup_roles(self, target_roles: Sequence[str]) -> List[str]:
        if not target_roles:
            return []
        return list(self._directory.find_user_ids_by_roles(list(target_roles)))

    def resolve(
        self,
        target_type: TargetType | str,
        target_user_ids: Sequence[str] = (),
        target_roles: Sequence[str] = (),
    ) -> TargetDirective:
        """
        送信指示を返す。

        :raises UnknownTargetType: target_type が未知の値
        :raises EmptyAudience: ブロードキャスト以外で受信者が 0 件
        :raises AudienceLookupFailed: ロール検索に失敗
        """
        kind = TargetType.parse(target_type)

        if kind is TargetType.ALL:
            return Broadcast()

        if kind in (TargetType.SINGLE, TargetType.CUSTOM):
            recipients = list(target_user_ids or [])
        elif kind is TargetType.ROLE:
            recipients = self._lookup_roles(target_roles or [])
        else:  # pragma: no cover - TargetType は 4 値で閉じている
            raise AssertionError(f"Unhandled target type: {kind}")

        if not recipients:
            logger.warning("No recipients resolved for target_type=%s.", kind.value)
            raise EmptyAudience()

        return Explicit(recipient_ids=tuple(recipients))

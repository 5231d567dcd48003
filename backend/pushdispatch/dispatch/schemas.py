# backend/pushdispatch/dispatch/schemas.py

"""
プッシュ通知ディスパッチ用のスキーマ定義。

- Notification: 通知ストアの 1 レコード（読み取り専用の内部モデル）
- TargetType / Broadcast / Explicit: 送信対象の指定と解決結果
- OneSignalPayload: OneSignal に送る JSON 本体
- ProviderResult: OneSignal のレスポンスを解釈した結果
- DispatchRequest / DispatchResult: エンドポイントの入出力
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import StoreError, UnknownTargetType


class TargetType(str, Enum):
    """
    通知の送信対象の指定方法。

    - SINGLE / CUSTOM: target_user_ids をそのまま使う
    - ROLE: target_roles に該当するユーザーをディレクトリから検索する
    - ALL: 全ユーザーにブロードキャスト
    """

    SINGLE = "single"
    CUSTOM = "custom"
    ROLE = "role"
    ALL = "all"

    @classmethod
    def parse(cls, value: object) -> "TargetType":
        """文字列 / TargetType を TargetType に変換する。未知の値は UnknownTargetType。"""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError as exc:
            raise UnknownTargetType(value) from exc


class Notification(BaseModel):
    """
    通知ストアの 1 レコードを表現する内部モデル。

    カラム名はストア側（snake_case）と 1:1 で対応させる。
    ディスパッチ結果のカラム（onesignal_notification_id など）は
    DeliveryRecorder が書き込むだけなので、ここでは読まない。
    """

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., description="通知 ID（不変）")
    status: Optional[str] = Field(None, description="通知ステータス（'sent' のときだけ送信対象）")
    title: str = Field("", description="通知タイトル")
    message: str = Field("", description="通知本文")
    type: Optional[str] = Field(None, description="通知の種別。payload の data.type にそのまま入る")
    target_type: TargetType = Field(..., description="送信対象の指定方法")
    target_user_ids: List[str] = Field(default_factory=list)
    target_roles: List[str] = Field(default_factory=list)
    data: Dict[str, Any] = Field(default_factory=dict)
    sound: Optional[str] = None
    category: Optional[str] = None
    priority: Optional[int] = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, value: Any) -> Any:
        # uuid / 整数 ID のどちらでも受け付ける
        if value is None:
            return value
        return str(value)

    @field_validator("title", "message", mode="before")
    @classmethod
    def _null_text_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("target_user_ids", "target_roles", mode="before")
    @classmethod
    def _null_list_as_empty(cls, value: Any) -> Any:
        if value is None:
            return []
        return [str(v) for v in value]

    @field_validator("data", mode="before")
    @classmethod
    def _null_data_as_empty(cls, value: Any) -> Any:
        return {} if value is None else value

    @classmethod
    def from_record(cls, row: Mapping[str, Any]) -> "Notification":
        """
        ストアの生レコード（dict）から Notification を構築する。

        - target_type が未知の値なら UnknownTargetType
        - それ以外の型不整合は StoreError（ストア側のデータ破損として扱う）
        """
        TargetType.parse(row.get("target_type"))

        try:
            return cls.model_validate(dict(row))
        except ValidationError as exc:
            raise StoreError(
                f"Malformed notification record {row.get('id')!r}: {exc.error_count()} invalid field(s)"
            ) from exc


@dataclass(frozen=True)
class Broadcast:
    """全ユーザーへの送信指示。"""


@dataclass(frozen=True)
class Explicit:
    """明示的な受信者リストへの送信指示。空リストにはならない。"""

    recipient_ids: Tuple[str, ...]


TargetDirective = Union[Broadcast, Explicit]


class OneSignalPayload(BaseModel):
    """
    OneSignal Create Notification API に送る JSON 本体。

    任意項目（sound / category / priority 由来のもの、ターゲティング）は
    None のままなら送信 JSON から完全に除外される。
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    app_id: str
    headings: Dict[str, str]
    contents: Dict[str, str]

    small_icon: str
    large_icon: str
    android_accent_color: str
    ios_badge_type: str = Field(..., alias="ios_badgeType")
    ios_badge_count: int = Field(..., alias="ios_badgeCount")

    included_segments: Optional[List[str]] = None
    include_aliases: Optional[Dict[str, List[str]]] = None
    target_channel: Optional[str] = None

    android_sound: Optional[str] = None
    ios_sound: Optional[str] = None
    android_channel_id: Optional[str] = None
    priority: Optional[int] = None

    data: Dict[str, Any] = Field(default_factory=dict)

    def to_wire(self) -> Dict[str, Any]:
        """
        送信用の dict を返す。

        data は利用者が自由に入れた値（None を含む）をそのまま転送するため、
        exclude_none の対象外にして最後に付け足す。
        """
        body = self.model_dump(by_alias=True, exclude_none=True, exclude={"data"})
        body["data"] = dict(self.data)
        return body

    def to_json(self) -> str:
        """to_wire() の結果を JSON 文字列にする。同じ入力なら常に同じ文字列になる。"""
        return json.dumps(self.to_wire(), ensure_ascii=False, separators=(",", ":"))


class ProviderResult(BaseModel):
    """OneSignal の成功レスポンスを解釈した結果。"""

    provider_id: str = Field(..., description="OneSignal が払い出した通知 ID")
    recipients: int = Field(0, description="受信者数。レスポンスに無ければ 0")
    errors: Optional[Any] = Field(
        None,
        description="OneSignal が 200 と一緒に返す errors（未購読ユーザーなど）。",
    )


class DispatchRequest(BaseModel):
    """POST /send-notification のリクエストボディ。"""

    model_config = ConfigDict(populate_by_name=True)

    notification_id: Optional[str] = Field(None, alias="notificationId")

    @field_validator("notification_id", mode="before")
    @classmethod
    def _id_as_str(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)


class DispatchResult(BaseModel):
    """
    1 回のディスパッチの結果。

    - 送信成功: success=True, provider_id / recipients あり
    - ステータス不一致などのスキップ: success=True, message あり
    - 失敗: success=False, error / error_kind あり
    """

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    notification_id: Optional[str] = Field(None, alias="notificationId")
    provider_id: Optional[str] = Field(None, alias="providerId")
    recipients: Optional[int] = None
    message: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[str] = Field(None, alias="errorKind")
    recorded: Optional[bool] = None

    @property
    def skipped(self) -> bool:
        return self.success and self.provider_id is None

    def to_envelope(self) -> Dict[str, Any]:
        """レスポンス JSON（camelCase、None の項目は除外）を返す。"""
        return self.model_dump(by_alias=True, exclude_none=True, exclude={"recorded"})

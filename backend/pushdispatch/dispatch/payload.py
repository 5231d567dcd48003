# backend/pushdispatch/dispatch/payload.py

"""
Notification と送信指示から OneSignal 向け payload を組み立てるモジュール。

純粋関数のみ。I/O は一切行わない。
"""

from typing import Any, Dict

from .schemas import Broadcast, Explicit, Notification, OneSignalPayload, TargetDirective

LOCALE = "en"

# プロダクト固定の見た目設定（入力からは決めない）
SMALL_ICON = "ic_stat_onesignal_default"
LARGE_ICON = "ic_launcher"
ANDROID_ACCENT_COLOR = "FF2196F3"
IOS_BADGE_TYPE = "Increase"
IOS_BADGE_COUNT = 1

BROADCAST_SEGMENT = "All"
ALIAS_LABEL = "external_id"
TARGET_CHANNEL = "push"
IOS_SOUND_SUFFIX = ".wav"


def build_data_block(notification: Notification) -> Dict[str, Any]:
    """
    payload の data ブロックを作る。

    notification_id / type は固定キーで、自由入力の data に同名キーがあっても上書きさせない。
    """
    fixed: Dict[str, Any] = {"notification_id": notification.id}
    if notification.type is not None:
        fixed["type"] = notification.type

    data = dict(fixed)
    for key, value in notification.data.items():
        if key in ("notification_id", "type"):
            continue
        data[key] = value
    return data


def build_payload(
    notification: Notification,
    directive: TargetDirective,
    *,
    app_id: str,
) -> OneSignalPayload:
    """
    OneSignalPayload を構築する。

    - sound / category / priority は通知側に値があるときだけ設定する
    - Broadcast → included_segments=["All"]
    - Explicit  → include_aliases.external_id + target_channel="push"
    """
    fields: Dict[str, Any] = {
        "app_id": app_id,
        "headings": {LOCALE: notification.title},
        "contents": {LOCALE: notification.message},
        "small_icon": SMALL_ICON,
        "large_icon": LARGE_ICON,
        "android_accent_color": ANDROID_ACCENT_COLOR,
        "ios_badge_type": IOS_BADGE_TYPE,
        "ios_badge_count": IOS_BADGE_COUNT,
        "data": build_data_block(notification),
    }

    if isinstance(directive, Broadcast):
        fields["included_segments"] = [BROADCAST_SEGMENT]
    elif isinstance(directive, Explicit):
        fields["include_aliases"] = {ALIAS_LABEL: list(directive.recipient_ids)}
        fields["target_channel"] = TARGET_CHANNEL
    else:  # pragma: no cover - TargetDirective は 2 種類のみ
        raise TypeError(f"Unsupported target directive: {directive!r}")

    if notification.sound:
        fields["android_sound"] = notification.sound
        fields["ios_sound"] = f"{notification.sound}{IOS_SOUND_SUFFIX}"

    if notification.category:
        fields["android_channel_id"] = notification.category

    if notification.priority is not None:
        fields["priority"] = notification.priority

    return OneSignalPayload(**fields)

# backend/pushdispatch/dispatch/router.py

"""
プッシュ通知ディスパッチ用の FastAPI ルーター定義。

- POST /send-notification
"""

import logging
from typing import Callable

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from .schemas import DispatchRequest
from .service import DispatchService, build_dispatch_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["dispatch"])

DispatchServiceFactory = Callable[[], DispatchService]


def get_dispatch_service_factory() -> DispatchServiceFactory:
    """
    DispatchService の生成関数を返す。

    NOTE:
    - 設定はリクエストごとに読み直すため、サービス自体はキャッシュしない。
    - 生成時の設定エラーもエンドポイント側で失敗レスポンスに変換できるよう、
      インスタンスではなく生成関数を渡す。
    - テストでは dependency_overrides で差し替える。
    """
    return build_dispatch_service


def _failure(error: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": error},
    )


@router.post(
    "/send-notification",
    summary="保存済みの通知 1 件を OneSignal で送信する",
    description=(
        "notificationId の通知を読み込み、ステータスが送信待ちなら送信対象を解決して "
        "OneSignal に送信し、結果を通知レコードに書き戻す。"
    ),
)
def send_notification(
    body: DispatchRequest,
    service_factory: DispatchServiceFactory = Depends(get_dispatch_service_factory),
) -> JSONResponse:
    """
    ディスパッチ結果を常に {success: bool, ...} 形式の JSON で返す。

    - 送信成功 / スキップ → 200
    - DispatchError 由来の失敗 → 500（error に '<種別>: <詳細>'）
    - 想定外の例外 → 500
    """
    try:
        service = service_factory()
        result = service.dispatch(body.notification_id)
    except Exception as exc:  # noqa: BLE001
        # 想定外の例外も envelope 形式で返す（詳細はログ側で確認）
        logger.exception("Unexpected error in send-notification.")
        return _failure(str(exc))

    status_code = status.HTTP_200_OK if result.success else status.HTTP_500_INTERNAL_SERVER_ERROR
    return JSONResponse(status_code=status_code, content=result.to_envelope())

# backend/pushdispatch/main.py

"""
バックエンドアプリケーションのエントリーポイント。

主な責務:
- /send-notification エンドポイントを公開する
- /health エンドポイントを公開する
- リクエストボディの検証エラーも {success: false, ...} 形式で返す
"""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pushdispatch.alerts.factory import get_alert_service
from pushdispatch.dispatch.router import router as dispatch_router

CORS_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "invalid request body"
    return "; ".join(str(error.get("msg", "invalid value")) for error in errors)


def create_app() -> FastAPI:
    """
    FastAPI アプリケーションファクトリ。

    - 通知ディスパッチエンドポイント (/send-notification)
    - ヘルスチェックエンドポイント (/health)
    """
    app = FastAPI(title="Push Dispatch Backend")

    # モバイル / Web クライアントから直接呼ばれるため全オリジンを許可する
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["POST", "OPTIONS"],
        allow_headers=CORS_ALLOW_HEADERS,
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        # JSON として読めないボディも他の失敗と同じ envelope / 500 で返す
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "error": f"ValidationError: {_describe_validation_error(exc)}",
                "errorKind": "ValidationError",
            },
        )

    app.include_router(dispatch_router)

    @app.get("/health", tags=["health"])
    def health_check() -> dict:
        """
        簡易ヘルスチェックエンドポイント。
        起動以降に発生した運用アラートの件数（kind 別）も返す。
        """
        return {"status": "ok", "alerts": get_alert_service().counts()}

    return app


# uvicorn 実行時のエントリーポイント
app = create_app()

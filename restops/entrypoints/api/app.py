"""FastAPI アプリケーション

店舗オペレーション（時間帯別タスク・完了率）のバックエンド API。
Cloud Run Service として動作し、Firebase Auth で認証する。

エンドポイント一覧:
  GET    /api/periods
  GET    /api/periods/current
  GET    /api/summary
  GET    /api/executive/summary          ← ceo / manager のみ
  GET    /api/submissions
  POST   /api/submissions
  POST   /api/submissions/{id}/review    ← manager のみ
  POST   /api/submissions/{id}/resubmit
  DELETE /api/submissions/{id}           ← manager のみ
  GET    /api/business-cycle
  POST   /api/period-transitions
  GET    /api/inventory/fifo
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.responses import Response

from restops.domain.errors import (
    ConfigurationError,
    NotFoundError,
    RepositoryError,
    SubmissionError,
)
from restops.entrypoints.api.routes import (
    business_cycle,
    executive,
    inventory,
    periods,
    submissions,
    summary,
)
from restops.logging_config import setup_logging

# ── ロギング初期化 ───────────────────────────────────────────────────────────
setup_logging(os.environ.get("RESTAURANT_ID"))
logger = logging.getLogger(__name__)

# ── FastAPI アプリ ───────────────────────────────────────────────────────────
app = FastAPI(
    title="Restaurant Ops API",
    description="時間帯別タスクの提出と完了率ダッシュボードのバックエンド API",
    version="1.0.0",
)


# ── ドメイン例外 → HTTP ステータス ────────────────────────────────────────────


def _error_response(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.exception_handler(NotFoundError)
async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return _error_response(status.HTTP_404_NOT_FOUND, exc)


@app.exception_handler(SubmissionError)
async def _conflict(request: Request, exc: SubmissionError) -> JSONResponse:
    return _error_response(status.HTTP_409_CONFLICT, exc)


@app.exception_handler(ConfigurationError)
async def _invalid_config(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error("Invalid workflow configuration: %s", exc)
    return _error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, exc)


@app.exception_handler(RepositoryError)
async def _backend_unavailable(request: Request, exc: RepositoryError) -> JSONResponse:
    logger.error("Backend error: %s %s - %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Backend temporarily unavailable"},
    )


# ── グローバル例外ミドルウェア ──────────────────────────────────────────────────
# 【登録順の注意】
#   add_middleware は後から登録したものが外側になる。
#   このミドルウェアを CORSMiddleware より先に登録して内側に置くことで、
#   500 レスポンスにも CORS ヘッダーが付与される。
#
# スタック: ServerErrorMiddleware → CORSMiddleware → このMW → ExceptionMiddleware → Routes


@app.middleware("http")
async def _catch_unhandled_exceptions(
    request: Request, call_next: Callable[[Request], Response]
) -> Response:
    try:
        return await call_next(request)
    except Exception as exc:
        logger.error(
            "Unhandled exception: %s %s - %s",
            request.method,
            request.url.path,
            exc,
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )


# ── CORS（スタッフ用フロントエンドからのリクエストを許可） ─────────────────────
_origins = [
    o.strip() for o in os.environ.get("CORS_ORIGINS", "").split(",") if o.strip()
]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins or ["http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

# ── ルーター登録 ─────────────────────────────────────────────────────────────
_PREFIX = "/api"

app.include_router(periods.router, prefix=_PREFIX)
app.include_router(summary.router, prefix=_PREFIX)
app.include_router(executive.router, prefix=_PREFIX)
app.include_router(submissions.router, prefix=_PREFIX)
app.include_router(business_cycle.router, prefix=_PREFIX)
app.include_router(inventory.router, prefix=_PREFIX)


@app.get("/health")
async def health() -> dict:
    """ヘルスチェックエンドポイント（Cloud Run の起動確認用）"""
    return {"status": "ok"}


logger.info("Restaurant Ops API started")

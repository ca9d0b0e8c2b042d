"""FastAPI 依存性注入

Firebase Auth JWT 検証と Firestore / GCS 依存の組み立てを担当する。
各ルートは Depends() でこのモジュールの関数を呼び出して
スタッフのコンテキストとサービスインスタンスを受け取る。

スタッフのロールと所属店舗は Firebase のカスタムクレーム
（role, restaurant_id）で付与する。
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

import firebase_admin
import firebase_admin.auth as fb_auth
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from firebase_admin import credentials as fb_creds
from google.cloud import firestore

from restops.adapters.firestore_repository import (
    FirestoreInventoryRepository,
    FirestorePeriodTransitionRepository,
)
from restops.config import AppConfig
from restops.domain.models import Role
from restops.entrypoints import factory
from restops.services.dashboard import DashboardService
from restops.services.submission_service import SubmissionService

logger = logging.getLogger(__name__)

# ── 設定・Firebase Admin 初期化（プロセス内で1回のみ） ───────────────────────

_config: AppConfig | None = None
_firebase_app: firebase_admin.App | None = None


def get_config() -> AppConfig:
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def _get_firebase_app() -> firebase_admin.App:
    global _firebase_app
    if _firebase_app is None:
        try:
            _firebase_app = firebase_admin.get_app()
        except ValueError:
            project_id = get_config().project_id
            _firebase_app = firebase_admin.initialize_app(
                fb_creds.ApplicationDefault(), options={"projectId": project_id}
            )
            logger.info("Firebase Admin initialized project=%s", project_id)
    return _firebase_app


# ── 認証 ────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class StaffContext:
    """認証済みスタッフのコンテキスト"""

    uid: str
    restaurant_id: str
    role: Role


_bearer = HTTPBearer()


async def get_staff_context(
    creds: HTTPAuthorizationCredentials = Depends(_bearer),
) -> StaffContext:
    """
    Authorization: Bearer <id_token> ヘッダーを検証して StaffContext を返す。

    Raises:
        HTTPException(401): トークンが無効な場合
        HTTPException(403): role / restaurant_id クレームがない、または不正な場合
    """
    _get_firebase_app()
    try:
        decoded = fb_auth.verify_id_token(creds.credentials)
    except Exception as e:
        logger.warning("Invalid Firebase ID token: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired Firebase ID token",
        ) from e

    restaurant_id = decoded.get("restaurant_id")
    try:
        role = Role(decoded.get("role") or "")
    except ValueError:
        role = None
    if not restaurant_id or role is None:
        logger.warning("Missing staff claims: uid=%s", decoded.get("uid"))
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="STAFF_CLAIMS_REQUIRED",
        )

    return StaffContext(uid=decoded["uid"], restaurant_id=restaurant_id, role=role)


def require_roles(*roles: Role) -> Callable:
    """
    指定ロールのみ許可する依存関数を返す。

    Raises:
        HTTPException(403): ロールが許可されていない場合
    """

    async def _dependency(
        ctx: StaffContext = Depends(get_staff_context),
    ) -> StaffContext:
        if ctx.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="この操作の権限がありません。",
            )
        return ctx

    return _dependency


# ── Firestore クライアント（シングルトン） ──────────────────────────────────────

_firestore_client: firestore.Client | None = None


def _get_firestore_client() -> firestore.Client:
    global _firestore_client
    if _firestore_client is None:
        _firestore_client = factory.create_firestore_client(get_config())
    return _firestore_client


# ── サービス・リポジトリ依存 ───────────────────────────────────────────────────


def get_dashboard_service() -> DashboardService:
    """DashboardService を返す依存関数"""
    return factory.create_dashboard_service(get_config(), _get_firestore_client())


def get_submission_service() -> SubmissionService:
    """SubmissionService を返す依存関数"""
    return factory.create_submission_service(get_config(), _get_firestore_client())


def get_transition_repo() -> FirestorePeriodTransitionRepository:
    """PeriodTransitionRepository を返す依存関数"""
    return FirestorePeriodTransitionRepository(_get_firestore_client())


def get_inventory_repo() -> FirestoreInventoryRepository:
    """InventoryRepository を返す依存関数"""
    return factory.create_inventory_repository(get_config(), _get_firestore_client())

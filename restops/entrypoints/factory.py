"""Factory - 依存性注入の組み立て

Firestore / GCS の Adapter と Service を組み立てる。
CLI と API の両方から使う。
"""

import logging
from datetime import datetime
from zoneinfo import ZoneInfo

from google.cloud import firestore

from restops.adapters.cloud_storage import GCSMediaStorage
from restops.adapters.firestore_repository import (
    FirestoreInventoryRepository,
    FirestorePeriodTransitionRepository,
    FirestoreSubmissionRepository,
    FirestoreWorkflowConfigSource,
)
from restops.config import AppConfig
from restops.services.dashboard import DashboardService
from restops.services.submission_service import SubmissionService

logger = logging.getLogger(__name__)


def create_firestore_client(config: AppConfig) -> firestore.Client:
    logger.info("Initializing Firestore client: project_id=%s", config.project_id)
    return firestore.Client(project=config.project_id)


def create_dashboard_service(
    config: AppConfig | None = None, db: firestore.Client | None = None
) -> DashboardService:
    """
    DashboardService を生成（全依存を組み立て）。

    Args:
        config: アプリケーション設定（Noneの場合は環境変数から読み込み）
        db: Firestore クライアント（Noneの場合は新規作成）

    Raises:
        ValueError: 必須設定が不足している場合
    """
    if config is None:
        config = AppConfig.from_env()
    db = db or create_firestore_client(config)

    service = DashboardService(
        config_source=FirestoreWorkflowConfigSource(db),
        submissions=FirestoreSubmissionRepository(db),
        transitions=FirestorePeriodTransitionRepository(db),
        timezone=config.timezone,
        rollover=config.business_day_rollover,
    )
    logger.info(
        "DashboardService created: restaurant_id=%s, timezone=%s",
        config.restaurant_id,
        config.timezone,
    )
    return service


def create_submission_service(
    config: AppConfig | None = None, db: firestore.Client | None = None
) -> SubmissionService:
    """
    SubmissionService を生成。

    GCS_BUCKET_NAME が未設定の場合、写真・音声の添付は受け付けない。
    """
    if config is None:
        config = AppConfig.from_env()
    db = db or create_firestore_client(config)
    tz = ZoneInfo(config.timezone)

    media_storage = None
    if config.gcs_bucket_name:
        media_storage = GCSMediaStorage(bucket_name=config.gcs_bucket_name)
    else:
        logger.warning("GCS_BUCKET_NAME not set, media uploads are disabled")

    return SubmissionService(
        repository=FirestoreSubmissionRepository(db),
        config_source=FirestoreWorkflowConfigSource(db),
        media_storage=media_storage,
        clock=lambda: datetime.now(tz),
        rollover=config.business_day_rollover,
    )


def create_inventory_repository(
    config: AppConfig | None = None, db: firestore.Client | None = None
) -> FirestoreInventoryRepository:
    if config is None:
        config = AppConfig.from_env()
    return FirestoreInventoryRepository(db or create_firestore_client(config))

"""Firestore Repository Adapter

WorkflowConfigSource と各 Repository の Firestore 実装。

Firestore コレクション構造:
  restaurants/{rid}/periods/{periodId}                        ← 時間帯
  restaurants/{rid}/tasks/{taskId}                            ← タスク定義
  restaurants/{rid}/task_records/{recordId}                   ← 提出レコード
  restaurants/{rid}/period_transitions/{transitionId}         ← 時間帯遷移
  restaurants/{rid}/inventory/{itemId}/price_history/{batchId} ← 仕入れロット
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import date, datetime
from typing import Any

from google.api_core.exceptions import GoogleAPICallError
from google.cloud import firestore

from restops.domain.errors import RepositoryError
from restops.domain.models import (
    Period,
    PeriodTransition,
    PriceBatch,
    RecordStatus,
    ReviewStatus,
    SubmissionKind,
    TaskDefinition,
    TaskSubmissionRecord,
    TransitionAction,
)
from restops.domain.ports import (
    InventoryRepository,
    PeriodTransitionRepository,
    SubmissionRepository,
    Subscription,
    WorkflowConfigSource,
)
from restops.services.workflow_config import build_period, build_task_definition

logger = logging.getLogger(__name__)

_RESTAURANTS = "restaurants"
_PERIODS = "periods"
_TASKS = "tasks"
_TASK_RECORDS = "task_records"
_PERIOD_TRANSITIONS = "period_transitions"
_INVENTORY = "inventory"
_PRICE_HISTORY = "price_history"


def _restaurant(db: firestore.Client, restaurant_id: str):
    return db.collection(_RESTAURANTS).document(restaurant_id)


class FirestoreWorkflowConfigSource(WorkflowConfigSource):
    """
    Firestore を使った WorkflowConfigSource 実装。

    各行は workflow_config を通して変換するため、不正な設定は
    読み込み時点で ConfigurationError になる。
    """

    def __init__(self, db: firestore.Client) -> None:
        self._db = db

    def load_periods(self, restaurant_id: str) -> list[Period]:
        try:
            snaps = list(
                _restaurant(self._db, restaurant_id)
                .collection(_PERIODS)
                .order_by("display_order")
                .stream()
            )
        except GoogleAPICallError as e:
            raise RepositoryError(f"Failed to load periods: {e}") from e

        periods = [
            build_period(snap.id, d)
            for snap in snaps
            for d in (snap.to_dict() or {},)
            if d.get("is_active", True)
        ]
        logger.debug("Loaded %d periods: restaurant_id=%s", len(periods), restaurant_id)
        return periods

    def load_task_definitions(self, restaurant_id: str) -> list[TaskDefinition]:
        try:
            snaps = list(_restaurant(self._db, restaurant_id).collection(_TASKS).stream())
        except GoogleAPICallError as e:
            raise RepositoryError(f"Failed to load tasks: {e}") from e

        tasks = [
            build_task_definition(snap.id, d)
            for snap in snaps
            for d in (snap.to_dict() or {},)
            if d.get("is_active", True)
        ]
        logger.debug("Loaded %d tasks: restaurant_id=%s", len(tasks), restaurant_id)
        return tasks


class _FirestoreSubscription(Subscription):
    """on_snapshot の Watch をラップする"""

    def __init__(self, watch) -> None:
        self._watch = watch

    def unsubscribe(self) -> None:
        self._watch.unsubscribe()


class FirestoreSubmissionRepository(SubmissionRepository):
    """
    Firestore を使った SubmissionRepository 実装。

    business_date は "YYYY-MM-DD" 文字列で保存し、日付の等値クエリに使う。
    """

    def __init__(self, db: firestore.Client) -> None:
        """
        Args:
            db: 初期化済みの Firestore クライアント
        """
        self._db = db

    def _records(self, restaurant_id: str):
        return _restaurant(self._db, restaurant_id).collection(_TASK_RECORDS)

    def create(self, record: TaskSubmissionRecord) -> str:
        """提出レコードを作成。IDを返す"""
        record_id = record.id or str(uuid.uuid4())
        try:
            self._records(record.restaurant_id).document(record_id).set(
                self._record_to_dict(record)
            )
        except GoogleAPICallError as e:
            raise RepositoryError(f"Failed to create record: {e}") from e
        logger.info(
            "Created record: restaurant_id=%s, record_id=%s, task_id=%s",
            record.restaurant_id,
            record_id,
            record.task_id,
        )
        return record_id

    def get(self, restaurant_id: str, record_id: str) -> TaskSubmissionRecord | None:
        """提出レコードを取得。存在しない場合は None を返す"""
        try:
            snap = self._records(restaurant_id).document(record_id).get()
        except GoogleAPICallError as e:
            raise RepositoryError(f"Failed to get record: {e}") from e
        if not snap.exists:
            return None
        return self._dict_to_record(record_id, restaurant_id, snap.to_dict() or {})

    def list_for_date(
        self,
        restaurant_id: str,
        business_date: date,
        user_id: str | None = None,
    ) -> list[TaskSubmissionRecord]:
        """営業日の提出レコードを取得（user_id 指定時は本人分のみ）"""
        query = self._records(restaurant_id).where(
            "business_date", "==", business_date.isoformat()
        )
        if user_id:
            query = query.where("user_id", "==", user_id)
        try:
            return [
                self._dict_to_record(snap.id, restaurant_id, snap.to_dict() or {})
                for snap in query.stream()
            ]
        except GoogleAPICallError as e:
            raise RepositoryError(f"Failed to list records: {e}") from e

    def update_review(
        self,
        restaurant_id: str,
        record_id: str,
        review_status: ReviewStatus,
        reviewed_by: str,
        reject_reason: str | None = None,
    ) -> None:
        """審査結果を書き込む（承認は completed、却下は rejected）"""
        status = (
            RecordStatus.COMPLETED
            if review_status is ReviewStatus.APPROVED
            else RecordStatus.REJECTED
        )
        update: dict[str, Any] = {
            "status": status.value,
            "review_status": review_status.value,
            "reviewed_by": reviewed_by,
            "reviewed_at": firestore.SERVER_TIMESTAMP,
            "reject_reason": reject_reason,
            "updated_at": firestore.SERVER_TIMESTAMP,
        }
        try:
            self._records(restaurant_id).document(record_id).update(update)
        except GoogleAPICallError as e:
            raise RepositoryError(f"Failed to update review: {e}") from e
        logger.info(
            "Updated review: restaurant_id=%s, record_id=%s, review_status=%s",
            restaurant_id,
            record_id,
            review_status.value,
        )

    def delete(self, restaurant_id: str, record_id: str) -> None:
        try:
            self._records(restaurant_id).document(record_id).delete()
        except GoogleAPICallError as e:
            raise RepositoryError(f"Failed to delete record: {e}") from e
        logger.info(
            "Deleted record: restaurant_id=%s, record_id=%s", restaurant_id, record_id
        )

    def watch(
        self,
        restaurant_id: str,
        business_date: date,
        callback: Callable[[list[TaskSubmissionRecord]], None],
    ) -> Subscription:
        """営業日の提出レコードを on_snapshot で購読する"""
        query = self._records(restaurant_id).where(
            "business_date", "==", business_date.isoformat()
        )

        def _on_snapshot(snapshots, changes, read_time) -> None:
            records = [
                self._dict_to_record(snap.id, restaurant_id, snap.to_dict() or {})
                for snap in snapshots
            ]
            callback(records)

        logger.info(
            "Watching records: restaurant_id=%s, date=%s", restaurant_id, business_date
        )
        return _FirestoreSubscription(query.on_snapshot(_on_snapshot))

    # ── 変換ヘルパー ──────────────────────────────────────────────────────────

    @staticmethod
    def _record_to_dict(record: TaskSubmissionRecord) -> dict:
        return {
            "task_id": record.task_id,
            "user_id": record.user_id,
            "business_date": record.business_date.isoformat(),
            "period_id": record.period_id,
            "status": record.status.value,
            "submission_type": record.submission_kind.value,
            "text_content": record.text_content,
            "photo_urls": list(record.photo_urls),
            "audio_url": record.audio_url,
            "metadata": record.metadata,
            "is_late": record.is_late,
            "review_status": record.review_status.value if record.review_status else None,
            "reviewed_by": record.reviewed_by,
            "reviewed_at": record.reviewed_at,
            "reject_reason": record.reject_reason,
            "created_at": record.created_at or firestore.SERVER_TIMESTAMP,
            "updated_at": firestore.SERVER_TIMESTAMP,
        }

    @staticmethod
    def _dict_to_record(
        record_id: str, restaurant_id: str, data: dict
    ) -> TaskSubmissionRecord:
        review_status = data.get("review_status")
        return TaskSubmissionRecord(
            id=record_id,
            restaurant_id=restaurant_id,
            task_id=data.get("task_id", ""),
            user_id=data.get("user_id", ""),
            business_date=date.fromisoformat(data["business_date"]),
            period_id=data.get("period_id"),
            status=RecordStatus(data.get("status") or "submitted"),
            submission_kind=SubmissionKind(data.get("submission_type") or "none"),
            text_content=data.get("text_content") or "",
            photo_urls=tuple(data.get("photo_urls") or ()),
            audio_url=data.get("audio_url"),
            metadata=data.get("metadata") or {},
            is_late=bool(data.get("is_late", False)),
            review_status=ReviewStatus(review_status) if review_status else None,
            reviewed_by=data.get("reviewed_by"),
            reviewed_at=data.get("reviewed_at"),
            reject_reason=data.get("reject_reason"),
            created_at=data.get("created_at"),
        )


class FirestorePeriodTransitionRepository(PeriodTransitionRepository):
    """Firestore を使った PeriodTransitionRepository 実装"""

    def __init__(self, db: firestore.Client) -> None:
        self._db = db

    def _transitions(self, restaurant_id: str):
        return _restaurant(self._db, restaurant_id).collection(_PERIOD_TRANSITIONS)

    def record(self, transition: PeriodTransition) -> str:
        transition_id = transition.id or str(uuid.uuid4())
        try:
            self._transitions(transition.restaurant_id).document(transition_id).set(
                {
                    "user_id": transition.user_id,
                    "business_date": transition.business_date.isoformat(),
                    "period_id": transition.period_id,
                    "action": transition.action.value,
                    "timestamp": transition.timestamp,
                }
            )
        except GoogleAPICallError as e:
            raise RepositoryError(f"Failed to record transition: {e}") from e
        logger.info(
            "Recorded transition: restaurant_id=%s, period_id=%s, action=%s",
            transition.restaurant_id,
            transition.period_id,
            transition.action.value,
        )
        return transition_id

    def list_between(
        self, restaurant_id: str, start: datetime, end: datetime
    ) -> list[PeriodTransition]:
        query = (
            self._transitions(restaurant_id)
            .where("timestamp", ">=", start)
            .where("timestamp", "<=", end)
            .order_by("timestamp")
        )
        try:
            return [
                PeriodTransition(
                    id=snap.id,
                    restaurant_id=restaurant_id,
                    user_id=d.get("user_id", ""),
                    business_date=date.fromisoformat(d["business_date"]),
                    period_id=d.get("period_id", ""),
                    action=TransitionAction(d.get("action") or "enter"),
                    timestamp=d["timestamp"],
                )
                for snap in query.stream()
                for d in (snap.to_dict() or {},)
            ]
        except GoogleAPICallError as e:
            raise RepositoryError(f"Failed to list transitions: {e}") from e


class FirestoreInventoryRepository(InventoryRepository):
    """
    Firestore を使った InventoryRepository 実装。

    品目は inventory/{itemId}.item_name で検索し、price_history の
    残量のあるロットを返す。
    """

    def __init__(self, db: firestore.Client) -> None:
        self._db = db

    def list_purchase_batches(
        self, restaurant_id: str, item_name: str
    ) -> list[PriceBatch]:
        items = (
            _restaurant(self._db, restaurant_id)
            .collection(_INVENTORY)
            .where("item_name", "==", item_name)
            .limit(1)
            .stream()
        )
        try:
            for item in items:
                batches = [
                    PriceBatch(
                        id=snap.id,
                        unit_price=float(d.get("unit_price") or 0),
                        remaining_quantity=float(d.get("remaining_quantity") or 0),
                        created_at=d["created_at"],
                    )
                    for snap in item.reference.collection(_PRICE_HISTORY).stream()
                    for d in (snap.to_dict() or {},)
                ]
                return sorted(
                    (b for b in batches if b.remaining_quantity > 0),
                    key=lambda b: b.created_at,
                )
        except GoogleAPICallError as e:
            raise RepositoryError(f"Failed to list purchase batches: {e}") from e

        logger.warning(
            "Inventory item not found: restaurant_id=%s, item_name=%s",
            restaurant_id,
            item_name,
        )
        return []
